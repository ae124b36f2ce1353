"""
In-memory store of Google Calendar credentials, keyed by entity id
(one entry per dentist / business).

Records are written only after a completed code exchange. A later exchange
for the same entity replaces the record entirely.
"""

import logging
from datetime import datetime
from typing import AsyncContextManager, Dict, List, Optional

from pydantic import BaseModel, Field

from clinicbot.stores.locks import KeyedLocks

logger = logging.getLogger(__name__)

DEFAULT_ENTITY_ID = "default"


class CredentialRecord(BaseModel):
    entity_id: str = DEFAULT_ENTITY_ID
    access_token: Optional[str] = None
    # Google omits the refresh token on re-authorization without a consent prompt
    refresh_token: Optional[str] = None
    expiry: Optional[datetime] = None
    token_uri: Optional[str] = None
    scopes: List[str] = Field(default_factory=list)


class CredentialStore:
    def __init__(self) -> None:
        self._records: Dict[str, CredentialRecord] = {}
        self._locks = KeyedLocks()

    def put(self, entity_id: str, record: CredentialRecord) -> None:
        self._records[entity_id] = record
        logger.info(
            "Credentials stored for %s (has_refresh_token=%s, expiry=%s)",
            entity_id,
            bool(record.refresh_token),
            record.expiry,
        )

    def get(self, entity_id: str) -> Optional[CredentialRecord]:
        return self._records.get(entity_id)

    def locked(self, entity_id: str) -> AsyncContextManager[None]:
        return self._locks.hold(entity_id)

    async def save(self, entity_id: str, record: CredentialRecord) -> None:
        """Upsert under the entity's lock."""
        async with self.locked(entity_id):
            self.put(entity_id, record)
