"""
Static catalog of offerable appointment slots.

Ids are stable for the lifetime of the process; the catalog is read-only.
"""

from typing import Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, PositiveInt


class Slot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: PositiveInt
    when: str


class SlotCatalog:
    """
    Ordered, immutable collection of slots.

    Usage:
        catalog = SlotCatalog(DEFAULT_SLOTS)
        slot = catalog.find_by_id(2)
    """

    def __init__(self, slots: Iterable[Slot]) -> None:
        self._slots: Tuple[Slot, ...] = tuple(slots)

        ids = [slot.id for slot in self._slots]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate slot ids in catalog: {ids}")

    def list(self) -> Tuple[Slot, ...]:
        return self._slots

    def find_by_id(self, slot_id: int) -> Optional[Slot]:
        for slot in self._slots:
            if slot.id == slot_id:
                return slot
        return None

    def __len__(self) -> int:
        return len(self._slots)


DEFAULT_SLOTS = (
    Slot(id=1, when="Amanhã 09:00"),
    Slot(id=2, when="Amanhã 10:30"),
    Slot(id=3, when="Amanhã 14:00"),
    Slot(id=4, when="Depois de amanhã 16:00"),
)

default_catalog = SlotCatalog(DEFAULT_SLOTS)
