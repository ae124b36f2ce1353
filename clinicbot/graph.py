import logging
import re
from typing import List, Optional

from clinicbot import prompts
from clinicbot.state import BookingData, Notification, Session, TurnState

logger = logging.getLogger(__name__)

SCHEDULE_WORDS = frozenset({"agendar", "schedule"})
CANCEL_WORDS = frozenset({"cancelar", "cancel"})
CONFIRM_WORDS = frozenset({"confirmo", "confirmar", "confirm"})

CONNECT_PATTERN = re.compile(r"^(conectar|conectar google|link google)", re.IGNORECASE)


# Matching helpers --------------------------------


def normalize_text(text: Optional[str]) -> str:
    return (text or "").strip().lower()


def is_command(text: Optional[str], words: frozenset) -> bool:
    """Exact match of the whole trimmed message against a command vocabulary."""
    return normalize_text(text) in words


def is_connect_request(text: Optional[str]) -> bool:
    """Prefix match, so 'conectar google agora' also counts."""
    return CONNECT_PATTERN.match((text or "").strip()) is not None


NON_DIGITS = re.compile(r"[^0-9]")
SLOT_ID_PATTERN = re.compile(r"[0-9]+")


def digits_only(text: Optional[str]) -> str:
    """ASCII digits only; other Unicode digits are dropped too."""
    return NON_DIGITS.sub("", text or "")


def parse_slot_id(text: Optional[str]) -> Optional[int]:
    candidate = (text or "").strip()
    if not SLOT_ID_PATTERN.fullmatch(candidate):
        return None
    return int(candidate)


def _reply(state: TurnState, text: str) -> Notification:
    return Notification(recipient=state.sender_id, text=text)


def _reset() -> Session:
    return Session()


# Nodes --------------------------------


def cancel_node(state: TurnState) -> dict:
    logger.info("[CANCEL_NODE] Sender %s cancelled at step %s", state.sender_id, state.session.step)

    outbox: List[Notification] = [_reply(state, prompts.CANCELLED)]
    if state.notify_to:
        who = state.session.data.name or state.sender_id
        outbox.append(
            Notification(recipient=state.notify_to, text=prompts.CANCEL_ALERT.format(who=who))
        )

    return {"session": _reset(), "outbox": outbox}


def connect_calendar_node(state: TurnState) -> dict:
    logger.info("[CONNECT_CALENDAR_NODE] Sending authorization link to %s", state.sender_id)
    return {
        "session": state.session,
        "outbox": [_reply(state, prompts.CONNECT_CALENDAR.format(url=state.connect_url))],
    }


def start_node(state: TurnState) -> dict:
    logger.info("[START_NODE] Starting booking flow for %s", state.sender_id)
    return {
        "session": Session(step="get_name"),
        "outbox": [_reply(state, prompts.NAME_PROMPT)],
    }


def get_name_node(state: TurnState) -> dict:
    name = state.text.strip()
    logger.info("[GET_NAME_NODE] Name collected: %s", name)
    return {
        "session": Session(step="get_phone", data=BookingData(name=name)),
        "outbox": [_reply(state, prompts.PHONE_PROMPT.format(name=name))],
    }


def get_phone_node(state: TurnState) -> dict:
    phone = digits_only(state.text)
    logger.info("[GET_PHONE_NODE] Phone collected (%d digits)", len(phone))
    data = state.session.data.model_copy(update={"phone": phone})
    return {
        "session": Session(step="offer_slots", data=data),
        "outbox": [_reply(state, prompts.format_slot_list(state.catalog.list()))],
    }


def offer_slots_node(state: TurnState) -> dict:
    slot_id = parse_slot_id(state.text)
    slot = state.catalog.find_by_id(slot_id) if slot_id is not None else None

    if slot is None:
        logger.info("[OFFER_SLOTS_NODE] Invalid slot choice: %r", state.text)
        return {
            "session": state.session,
            "outbox": [_reply(state, prompts.INVALID_SLOT)],
        }

    logger.info("[OFFER_SLOTS_NODE] Slot %s chosen: %s", slot.id, slot.when)
    data = state.session.data.model_copy(update={"slot": slot.when})
    return {
        "session": Session(step="confirm", data=data),
        "outbox": [_reply(state, prompts.CONFIRM_PROMPT.format(slot=slot.when))],
    }


def confirm_node(state: TurnState) -> dict:
    data = state.session.data
    logger.info("[CONFIRM_NODE] Booking confirmed for %s at %s", state.sender_id, data.slot)

    outbox: List[Notification] = [_reply(state, prompts.BOOKING_SUCCESS.format(slot=data.slot))]
    if state.notify_to:
        outbox.append(
            Notification(
                recipient=state.notify_to,
                text=prompts.BOOKING_NOTICE.format(
                    name=data.name, phone=data.phone, slot=data.slot
                ),
            )
        )

    return {"session": _reset(), "outbox": outbox}


def fallback_node(state: TurnState) -> dict:
    logger.info("[FALLBACK_NODE] Unrecognized message at step %s", state.session.step)
    return {
        "session": state.session,
        "outbox": [_reply(state, prompts.FALLBACK)],
    }
