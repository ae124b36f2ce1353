"""
WhatsApp Cloud API text delivery.

Failures are logged and reported as False; they never raise into the
conversation flow.
"""

import asyncio
import json
import logging
import urllib.error
import urllib.request
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from clinicbot.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

GRAPH_API_BASE = "https://graph.facebook.com"


class WhatsAppClient:
    _executor = ThreadPoolExecutor(max_workers=4)

    def __init__(self, settings: Optional[Settings] = None) -> None:
        settings = settings or default_settings
        self.phone_number_id = settings.WHATSAPP_PHONE_NUMBER_ID
        self.access_token = settings.WHATSAPP_ACCESS_TOKEN
        self.api_version = settings.WHATSAPP_API_VERSION
        self.timeout = settings.WHATSAPP_REQUEST_TIMEOUT

    @property
    def configured(self) -> bool:
        return bool(self.phone_number_id and self.access_token)

    @property
    def messages_url(self) -> str:
        return f"{GRAPH_API_BASE}/{self.api_version}/{self.phone_number_id}/messages"

    def build_payload(self, to: str, body: str) -> dict:
        return {
            "messaging_product": "whatsapp",
            "to": to,
            "type": "text",
            "text": {"body": body},
        }

    def _post_blocking(self, payload: dict) -> dict:
        req = urllib.request.Request(
            self.messages_url,
            data=json.dumps(payload).encode("utf-8"),
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "Content-Type": "application/json",
            },
            method="POST",
        )
        with urllib.request.urlopen(req, timeout=self.timeout) as response:
            return json.loads(response.read().decode() or "{}")

    async def send_text(self, to: str, body: str) -> bool:
        if not self.configured:
            logger.warning("[WhatsApp] Not configured; dropping message to %s", to)
            return False

        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(
                self._executor, self._post_blocking, self.build_payload(to, body)
            )
        except urllib.error.HTTPError as e:
            error_body = e.read().decode(errors="replace")
            logger.error("[WhatsApp] API error %s sending to %s: %s", e.code, to, error_body)
            return False
        except Exception as e:
            logger.error("[WhatsApp] Failed to send message to %s: %s", to, e)
            return False

        logger.info("[WhatsApp] Sent to %s: %s", to, data)
        return True
