"""
main.py

FastAPI entry point for the booking assistant.
Wires the stores and collaborators, applies middleware and mounts routes.
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from clinicbot.calendar.google_auth import GoogleOAuth
from clinicbot.calendar.google_calendar import GoogleCalendarService
from clinicbot.calendar.routes import router as google_router
from clinicbot.config import Settings, settings as default_settings
from clinicbot.messaging.whatsapp import WhatsAppClient
from clinicbot.service import ConversationService, Messenger
from clinicbot.slots import SlotCatalog, default_catalog
from clinicbot.stores.credential_store import CredentialStore
from clinicbot.stores.session_store import SessionStore
from clinicbot.utils.logger import setup_logging
from clinicbot.webhook import router as webhook_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    messenger: Optional[Messenger] = None,
    oauth: Optional[GoogleOAuth] = None,
    calendar: Optional[GoogleCalendarService] = None,
    sessions: Optional[SessionStore] = None,
    credentials: Optional[CredentialStore] = None,
    catalog: SlotCatalog = default_catalog,
) -> FastAPI:
    settings = settings or default_settings

    oauth = oauth or GoogleOAuth(settings)
    calendar = calendar or GoogleCalendarService(oauth)
    service = ConversationService(
        sessions or SessionStore(),
        credentials or CredentialStore(),
        messenger=messenger or WhatsAppClient(settings),
        catalog=catalog,
        notify_to=settings.NOTIFY_RECIPIENT,
    )

    app = FastAPI(title="Dental Booking Assistant")
    app.state.settings = settings
    app.state.oauth = oauth
    app.state.calendar = calendar
    app.state.service = service

    # Startup: Environment check
    @app.on_event("startup")
    async def startup_event():
        """Log which integrations are configured. Never logs secrets."""
        logger.info(
            "ENV check: has_meta_verify=%s, has_phone_id=%s, has_wapp_token=%s, "
            "google_redirect=%s, notify_recipient=%s",
            bool(settings.META_VERIFY_TOKEN),
            bool(settings.WHATSAPP_PHONE_NUMBER_ID),
            bool(settings.WHATSAPP_ACCESS_TOKEN),
            settings.GOOGLE_REDIRECT_URI,
            bool(settings.NOTIFY_RECIPIENT),
        )
        if not (settings.WHATSAPP_PHONE_NUMBER_ID and settings.WHATSAPP_ACCESS_TOKEN):
            logger.warning("Missing WHATSAPP_PHONE_NUMBER_ID or WHATSAPP_ACCESS_TOKEN")
        if not oauth.configured:
            logger.warning(
                "Missing GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET or GOOGLE_REDIRECT_URI"
            )

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(webhook_router)
    app.include_router(google_router)

    @app.get("/health", response_class=PlainTextResponse)
    async def health():
        return "OK"

    return app


# Logging
setup_logging()

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=default_settings.APP_HOST, port=default_settings.APP_PORT)
