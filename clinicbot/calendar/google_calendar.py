"""
Google Calendar read access

Responsibilities:
- List the calendars reachable with a stored credential
- Surface clear, domain-specific errors
"""

import logging
import asyncio
from typing import Any, Dict, List
from concurrent.futures import ThreadPoolExecutor

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from clinicbot.calendar.google_auth import GoogleOAuth
from clinicbot.stores.credential_store import CredentialRecord

logger = logging.getLogger(__name__)


class GoogleCalendarError(Exception):
    """
    Raised when a Calendar API call fails.
    """

    pass


class GoogleCalendarService:
    """
    Usage:
        calendar = GoogleCalendarService(oauth)
        calendars = await calendar.list_calendars(record)
    """

    _executor = ThreadPoolExecutor(max_workers=2)

    def __init__(self, oauth: GoogleOAuth):
        self.oauth = oauth

    # Public async API -----------------------------------------------------------------

    async def list_calendars(self, record: CredentialRecord) -> List[Dict[str, Any]]:
        """
        Return the calendar list entries visible to the credential.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor, self._list_calendars_blocking, record
        )

    # Internal blocking implementation ------------------------------------------------------------

    def _list_calendars_blocking(self, record: CredentialRecord) -> List[Dict[str, Any]]:
        creds = self.oauth.credentials_for(record)

        try:
            service = build(
                "calendar",
                "v3",
                credentials=creds,
                cache_discovery=False,
            )
            response = service.calendarList().list().execute()

        except HttpError as e:
            logger.exception("Google Calendar API error")
            raise GoogleCalendarError(f"Google Calendar API error: {e}") from e

        except Exception as e:
            logger.exception("Unexpected calendar error")
            raise GoogleCalendarError(
                "Unexpected error while listing calendars"
            ) from e

        items = response.get("items") or []
        logger.info(
            "Calendars found for %s: %d", record.entity_id, len(items)
        )
        return items
