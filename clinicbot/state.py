from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from clinicbot.slots import SlotCatalog

Step = Literal[
    "idle",
    "get_name",
    "get_phone",
    "offer_slots",
    "confirm",
]

# Steps at which each collected field may be present.
_NAME_STEPS = {"get_phone", "offer_slots", "confirm"}
_PHONE_STEPS = {"offer_slots", "confirm"}
_SLOT_STEPS = {"confirm"}


class BookingData(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    slot: Optional[str] = Field(
        default=None, description="Display label of the chosen slot"
    )

    def is_empty(self) -> bool:
        return self.name is None and self.phone is None and self.slot is None


class Session(BaseModel):
    """
    Conversation state for one sender.

    Collected fields are gated by step, so a session can never carry a slot
    before the user reached confirmation, or any data while idle.
    """

    model_config = ConfigDict(frozen=True)

    step: Step = "idle"
    data: BookingData = Field(default_factory=BookingData)

    @model_validator(mode="after")
    def _check_step_gating(self) -> "Session":
        if self.data.name is not None and self.step not in _NAME_STEPS:
            raise ValueError(f"name cannot be set at step '{self.step}'")
        if self.data.phone is not None and self.step not in _PHONE_STEPS:
            raise ValueError(f"phone cannot be set at step '{self.step}'")
        if self.data.slot is not None and self.step not in _SLOT_STEPS:
            raise ValueError(f"slot cannot be set at step '{self.step}'")
        return self


class Notification(BaseModel):
    recipient: str
    text: str


class TurnResult(BaseModel):
    session: Session
    notifications: List[Notification] = Field(default_factory=list)


class TurnState(BaseModel):
    """
    Graph state for a single inbound message.
    Exactly one node runs per turn and writes `session` and `outbox`.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    sender_id: str
    text: str = ""
    session: Session = Field(default_factory=Session)
    catalog: SlotCatalog

    # Turn context
    notify_to: Optional[str] = Field(
        default=None, description="Fixed recipient of booking notices and alerts"
    )
    connect_url: Optional[str] = Field(
        default=None, description="Google Calendar authorization link, if offered"
    )

    # Output
    outbox: List[Notification] = Field(default_factory=list)
