"""
In-memory session store.

One Session per sender id. Sessions are volatile and live for the lifetime
of the process; there is no expiry or eviction.
"""

import logging
from typing import AsyncContextManager, Dict

from clinicbot.state import Session
from clinicbot.stores.locks import KeyedLocks

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Usage:
        store = SessionStore()
        async with store.locked(sender_id):
            session = store.get(sender_id)
            ...
            store.set(sender_id, next_session)
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}
        self._locks = KeyedLocks()

    def get(self, sender_id: str) -> Session:
        """Return the sender's session, creating an idle one on first contact."""
        session = self._sessions.get(sender_id)
        if session is None:
            session = self._sessions.setdefault(sender_id, Session())
            logger.debug("Created session for %s", sender_id)
        return session

    def set(self, sender_id: str, session: Session) -> None:
        self._sessions[sender_id] = session

    def locked(self, sender_id: str) -> AsyncContextManager[None]:
        return self._locks.hold(sender_id)

    def __contains__(self, sender_id: str) -> bool:
        return sender_id in self._sessions
