"""
service.py

Conversation service: the boundary between the HTTP handlers and the
booking state machine.

Responsibilities:
- Serialize turns per sender (read-modify-write of the session)
- Run the state machine and persist the resulting session
- Deliver the turn's notifications, in order, through the messenger
- Store credentials produced by a completed Google authorization
"""

import logging
from typing import Optional, Protocol

from clinicbot.slots import SlotCatalog, default_catalog
from clinicbot.state import TurnResult
from clinicbot.stores.credential_store import CredentialRecord, CredentialStore
from clinicbot.stores.session_store import SessionStore
from clinicbot.workflow import advance

logger = logging.getLogger(__name__)


class Messenger(Protocol):
    async def send_text(self, to: str, body: str) -> bool:
        ...


def verify_subscription(mode: Optional[str], token: Optional[str], secret: Optional[str]) -> bool:
    """
    Webhook subscription handshake check.
    Fails closed when no secret is configured.
    """
    if not secret:
        return False
    return mode == "subscribe" and token == secret


class ConversationService:
    """
    Usage:
        service = ConversationService(SessionStore(), CredentialStore(), messenger=client)
        result = await service.handle_message("5511999999999", "agendar")
    """

    def __init__(
        self,
        sessions: SessionStore,
        credentials: CredentialStore,
        messenger: Optional[Messenger] = None,
        catalog: SlotCatalog = default_catalog,
        notify_to: Optional[str] = None,
    ) -> None:
        self.sessions = sessions
        self.credentials = credentials
        self.messenger = messenger
        self.catalog = catalog
        self.notify_to = notify_to or None

    async def handle_message(
        self, sender_id: str, text: Optional[str], connect_url: Optional[str] = None
    ) -> TurnResult:
        """
        Process one inbound message from `sender_id`.

        The sender's lock is held across the state transition and the
        delivery of its replies, so turns from one sender never interleave.
        """
        async with self.sessions.locked(sender_id):
            session = self.sessions.get(sender_id)
            result = advance(
                session,
                text,
                sender_id=sender_id,
                notify_to=self.notify_to,
                connect_url=connect_url,
                catalog=self.catalog,
            )
            self.sessions.set(sender_id, result.session)

            await self._deliver(result)

        return result

    async def _deliver(self, result: TurnResult) -> None:
        if self.messenger is None:
            logger.debug("No messenger configured; %d notifications not sent", len(result.notifications))
            return

        for notification in result.notifications:
            # Committed state is never rolled back on a failed send
            sent = await self.messenger.send_text(notification.recipient, notification.text)
            if not sent:
                logger.error("Failed to deliver notification to %s", notification.recipient)

    async def store_credentials(self, entity_id: str, record: CredentialRecord) -> None:
        """Upsert the credential for `entity_id` after a completed exchange."""
        await self.credentials.save(entity_id, record)
