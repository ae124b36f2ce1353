"""
Google OAuth2 authorization-code flow for Calendar access.

Responsibilities:
- Build the consent URL for an entity (dentist / business)
- Exchange the authorization code for credentials
- Surface actionable authentication errors
"""

import asyncio
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from clinicbot.config import Settings, settings as default_settings
from clinicbot.stores.credential_store import DEFAULT_ENTITY_ID, CredentialRecord

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
]


class GoogleAuthError(Exception):
    """
    Raised when the authorization URL cannot be built or the code
    exchange fails.

    This indicates a configuration issue, an expired or reused code,
    or a Google-side outage.
    """

    pass


def encode_state(entity_id: str) -> str:
    return json.dumps({"dentistId": entity_id})


def decode_state(state: Optional[str]) -> str:
    """
    Recover the entity id from the OAuth state parameter.
    Absent or malformed state falls back to the default entity.
    """
    if not state:
        return DEFAULT_ENTITY_ID
    try:
        parsed = json.loads(state)
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed OAuth state: %r", state)
        return DEFAULT_ENTITY_ID
    if isinstance(parsed, dict) and parsed.get("dentistId"):
        return str(parsed["dentistId"])
    return DEFAULT_ENTITY_ID


def to_record(entity_id: str, credentials: Credentials) -> CredentialRecord:
    return CredentialRecord(
        entity_id=entity_id,
        access_token=credentials.token,
        refresh_token=credentials.refresh_token,
        expiry=credentials.expiry,
        token_uri=credentials.token_uri,
        scopes=list(credentials.scopes or []),
    )


class GoogleOAuth:
    """
    Usage:
        oauth = GoogleOAuth()
        url = oauth.build_authorization_url("default")
        record = await oauth.exchange_code(code, "default")
    """

    _executor = ThreadPoolExecutor(max_workers=2)

    def __init__(self, settings: Optional[Settings] = None) -> None:
        settings = settings or default_settings
        self.client_id = settings.GOOGLE_CLIENT_ID
        self.client_secret = settings.GOOGLE_CLIENT_SECRET
        self.redirect_uri = settings.GOOGLE_REDIRECT_URI

        logger.debug(
            "GoogleOAuth initialized (client_id present=%s, redirect_uri=%s)",
            bool(self.client_id),
            self.redirect_uri,
        )

    @property
    def configured(self) -> bool:
        return all([self.client_id, self.client_secret, self.redirect_uri])

    # Internal helpers ------------------------------------------------------------------

    def _flow(self) -> Flow:
        if not self.configured:
            logger.error("Google OAuth settings are missing or incomplete")
            raise GoogleAuthError(
                "Missing GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, or GOOGLE_REDIRECT_URI"
            )

        client_config = {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token",
                "redirect_uris": [self.redirect_uri],
            }
        }
        # The callback runs on a fresh Flow, so there is no PKCE verifier to carry over.
        return Flow.from_client_config(
            client_config,
            scopes=SCOPES,
            redirect_uri=self.redirect_uri,
            autogenerate_code_verifier=False,
        )

    def _exchange_blocking(self, code: str, entity_id: str) -> CredentialRecord:
        flow = self._flow()
        try:
            flow.fetch_token(code=code)
        except Exception as e:
            logger.exception("Token exchange failed for %s", entity_id)
            raise GoogleAuthError("Failed to exchange authorization code") from e

        record = to_record(entity_id, flow.credentials)
        if not record.access_token:
            logger.error("Google returned no access token for %s", entity_id)
            raise GoogleAuthError("Received no access token from Google")

        return record

    # Public API ------------------------------------------------------------------

    def build_authorization_url(self, entity_id: str = DEFAULT_ENTITY_ID) -> str:
        """
        Return the Google consent URL. The entity id travels in `state`.
        """
        flow = self._flow()
        try:
            url, _ = flow.authorization_url(
                access_type="offline",
                prompt="consent",
                state=encode_state(entity_id),
            )
        except Exception as e:
            logger.exception("Failed to build authorization URL")
            raise GoogleAuthError("Failed to build authorization URL") from e

        logger.info("Generated authorization URL for %s", entity_id)
        return url

    async def exchange_code(self, code: str, entity_id: str = DEFAULT_ENTITY_ID) -> CredentialRecord:
        """
        Exchange an authorization code for credentials without blocking the loop.
        """
        if not code:
            raise GoogleAuthError("Authorization code is required")

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor, self._exchange_blocking, code, entity_id
        )

    def credentials_for(self, record: CredentialRecord) -> Credentials:
        """Rebuild google-auth credentials from a stored record."""
        return Credentials(
            token=record.access_token,
            refresh_token=record.refresh_token,
            token_uri=record.token_uri or "https://oauth2.googleapis.com/token",
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=record.scopes or SCOPES,
            expiry=record.expiry,
        )
