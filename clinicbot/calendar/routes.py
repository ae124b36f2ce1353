"""
Google Calendar authorization routes.

GET /google/auth      -> redirect to the Google consent screen
GET /google/callback  -> exchange the code, store the credential, validate it
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from clinicbot.calendar.google_auth import GoogleAuthError, GoogleOAuth, decode_state
from clinicbot.calendar.google_calendar import GoogleCalendarError, GoogleCalendarService
from clinicbot.service import ConversationService
from clinicbot.stores.credential_store import DEFAULT_ENTITY_ID

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/google")

CALLBACK_SUCCESS = "OAuth concluído com sucesso! Você já pode fechar esta janela. ✅"
CALLBACK_FAILED = "Falha ao concluir OAuth."
AUTH_FAILED = "Falha ao iniciar OAuth."
MISSING_CODE = "Código de autorização ausente."


@router.get("/auth")
async def start_authorization(request: Request, dentist_id: Optional[str] = None) -> Response:
    oauth: GoogleOAuth = request.app.state.oauth
    entity_id = dentist_id or DEFAULT_ENTITY_ID

    try:
        url = oauth.build_authorization_url(entity_id)
    except GoogleAuthError:
        logger.exception("[OAuth] Could not start authorization for %s", entity_id)
        return PlainTextResponse(AUTH_FAILED, status_code=500)

    return RedirectResponse(url, status_code=302)


@router.get("/callback")
async def authorization_callback(
    request: Request, code: Optional[str] = None, state: Optional[str] = None
) -> Response:
    if not code:
        return PlainTextResponse(MISSING_CODE, status_code=400)

    oauth: GoogleOAuth = request.app.state.oauth
    calendar: GoogleCalendarService = request.app.state.calendar
    service: ConversationService = request.app.state.service

    entity_id = decode_state(state)

    try:
        record = await oauth.exchange_code(code, entity_id)
    except GoogleAuthError:
        logger.exception("[OAuth] Code exchange failed for %s", entity_id)
        return PlainTextResponse(CALLBACK_FAILED, status_code=500)

    await service.store_credentials(entity_id, record)

    # Listing calendars only validates the fresh credential
    try:
        calendars = await calendar.list_calendars(record)
    except GoogleCalendarError:
        logger.exception("[OAuth] Calendar validation failed for %s", entity_id)
        return PlainTextResponse(CALLBACK_FAILED, status_code=500)

    logger.info(
        "[OAuth] Tokens saved for %s (has_access_token=%s, has_refresh_token=%s, expiry=%s, calendars=%d)",
        entity_id,
        bool(record.access_token),
        bool(record.refresh_token),
        record.expiry,
        len(calendars),
    )
    return PlainTextResponse(CALLBACK_SUCCESS)
