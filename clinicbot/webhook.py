"""
webhook.py

WhatsApp Cloud API webhook handlers.

Responsibilities:
- Answer the subscription handshake (GET /webhook)
- Extract inbound text messages from change notifications (POST /webhook)
- Feed each message to the conversation service

Error handling:
- Delivery failures are handled inside the service and never surface here
- Unexpected errors are logged and answered with 500
"""

import logging
from typing import Any, Dict, Iterator, Optional, Tuple
from urllib.parse import urlencode

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, Response

from clinicbot.service import ConversationService, verify_subscription
from clinicbot.stores.credential_store import DEFAULT_ENTITY_ID

logger = logging.getLogger(__name__)

router = APIRouter()


def _dicts(items: Any) -> Iterator[Dict[str, Any]]:
    if not isinstance(items, list):
        return
    for item in items:
        if isinstance(item, dict):
            yield item


def iter_text_messages(payload: Any) -> Iterator[Tuple[str, str]]:
    """
    Yield (sender, text) for every message in a change notification.
    Non-text messages yield an empty text; status callbacks yield nothing.
    """
    if not isinstance(payload, dict):
        return

    for entry in _dicts(payload.get("entry")):
        for change in _dicts(entry.get("changes")):
            value = change.get("value")
            if not isinstance(value, dict):
                continue
            for msg in _dicts(value.get("messages")):
                sender = msg.get("from")
                if not sender or not isinstance(sender, str):
                    continue
                text = msg.get("text")
                body = text.get("body") if isinstance(text, dict) else None
                yield sender, body.strip() if isinstance(body, str) else ""


def build_connect_url(base_url: str, entity_id: str = DEFAULT_ENTITY_ID) -> str:
    query = urlencode({"dentist_id": entity_id})
    return f"{base_url.rstrip('/')}/google/auth?{query}"


def _public_base_url(request: Request) -> str:
    settings = request.app.state.settings
    return settings.PUBLIC_BASE_URL or str(request.base_url)


# Routes ---------------------------------------------------------------------------


@router.get("/webhook")
async def verify_webhook(request: Request) -> Response:
    params = request.query_params
    mode: Optional[str] = params.get("hub.mode")
    token: Optional[str] = params.get("hub.verify_token")
    challenge = params.get("hub.challenge") or ""

    secret = request.app.state.settings.META_VERIFY_TOKEN
    if verify_subscription(mode, token, secret):
        logger.info("[Webhook] Subscription verified")
        return PlainTextResponse(challenge, status_code=200)

    logger.warning("[Webhook] Subscription verification rejected (mode=%s)", mode)
    return Response(status_code=403)


@router.post("/webhook")
async def receive_webhook(request: Request) -> Response:
    service: ConversationService = request.app.state.service

    try:
        payload: Dict[str, Any] = await request.json()
    except ValueError:
        logger.warning("[Webhook] Ignoring non-JSON body")
        return Response(status_code=200)

    try:
        connect_url = build_connect_url(_public_base_url(request))
        handled = 0
        for sender, text in iter_text_messages(payload):
            logger.info("[Webhook] Message from %s: %s", sender, text)
            await service.handle_message(sender, text, connect_url=connect_url)
            handled += 1

        if not handled:
            logger.debug("[Webhook] Notification without messages (status/delivery)")

    except Exception:
        logger.exception("[Webhook] Failed to process notification")
        return Response(status_code=500)

    return Response(status_code=200)
