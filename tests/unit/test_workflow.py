import pytest

from clinicbot import prompts
from clinicbot.slots import Slot, SlotCatalog
from clinicbot.state import BookingData, Session, TurnState
from clinicbot.workflow import advance, route_turn

SENDER = "5511988887777"
CLINIC = "5511900000000"

NAMED = Session(step="get_phone", data=BookingData(name="Maria Silva"))
OFFERING = Session(step="offer_slots", data=BookingData(name="Maria Silva", phone="11912345678"))
CONFIRMING = Session(
    step="confirm",
    data=BookingData(name="Maria Silva", phone="11912345678", slot="Amanhã 10:30"),
)

ALL_STEPS = [Session(), Session(step="get_name"), NAMED, OFFERING, CONFIRMING]


def texts(result):
    return [n.text for n in result.notifications]


def test_fresh_sender_schedule_asks_for_name():
    result = advance(Session(), "agendar", sender_id=SENDER)

    assert result.session.step == "get_name"
    assert result.session.data.is_empty()
    assert texts(result) == [prompts.NAME_PROMPT]
    assert result.notifications[0].recipient == SENDER


def test_any_message_while_idle_starts_flow():
    result = advance(Session(), "oi, tudo bem?", sender_id=SENDER)
    assert result.session.step == "get_name"


def test_name_is_stored_trimmed():
    result = advance(Session(step="get_name"), "  Maria Silva  ", sender_id=SENDER)

    assert result.session.step == "get_phone"
    assert result.session.data.name == "Maria Silva"
    assert "Maria Silva" in texts(result)[0]


def test_phone_is_stripped_to_digits_and_slots_offered():
    result = advance(NAMED, "(11) 91234-5678", sender_id=SENDER)

    assert result.session.step == "offer_slots"
    assert result.session.data.phone == "11912345678"
    assert result.session.data.name == "Maria Silva"

    reply = texts(result)[0]
    assert "1 - Amanhã 09:00" in reply
    assert "2 - Amanhã 10:30" in reply
    assert "4 - Depois de amanhã 16:00" in reply


def test_valid_slot_moves_to_confirm():
    result = advance(OFFERING, " 2 ", sender_id=SENDER)

    assert result.session.step == "confirm"
    assert result.session.data.slot == "Amanhã 10:30"
    assert "Amanhã 10:30" in texts(result)[0]


@pytest.mark.parametrize("text", ["9", "0", "-1", "dois", "", "2.5", "1_0", "\u0662", "+2"])
def test_invalid_slot_leaves_session_unchanged(text):
    result = advance(OFFERING, text, sender_id=SENDER)

    assert result.session == OFFERING
    assert texts(result) == [prompts.INVALID_SLOT]


def test_confirm_resets_and_notifies_clinic():
    result = advance(CONFIRMING, "Confirmo", sender_id=SENDER, notify_to=CLINIC)

    assert result.session == Session()
    assert len(result.notifications) == 2

    to_user, to_clinic = result.notifications
    assert to_user.recipient == SENDER
    assert "Amanhã 10:30" in to_user.text
    assert to_clinic.recipient == CLINIC
    assert "Maria Silva" in to_clinic.text
    assert "11912345678" in to_clinic.text
    assert "Amanhã 10:30" in to_clinic.text


def test_confirm_without_recipient_only_replies_to_sender():
    result = advance(CONFIRMING, "confirm", sender_id=SENDER)

    assert result.session.step == "idle"
    assert [n.recipient for n in result.notifications] == [SENDER]


def test_confirm_requires_exact_word():
    result = advance(CONFIRMING, "confirmo sim", sender_id=SENDER)

    assert result.session == CONFIRMING
    assert texts(result) == [prompts.FALLBACK]


@pytest.mark.parametrize("session", ALL_STEPS)
@pytest.mark.parametrize("word", ["cancelar", "CANCEL", "  Cancelar "])
def test_cancel_from_any_step_resets(session, word):
    result = advance(session, word, sender_id=SENDER)

    assert result.session.step == "idle"
    assert result.session.data.is_empty()
    assert texts(result)[0] == prompts.CANCELLED


def test_cancel_alert_names_collected_name():
    result = advance(OFFERING, "cancelar", sender_id=SENDER, notify_to=CLINIC)

    alert = result.notifications[1]
    assert alert.recipient == CLINIC
    assert "Maria Silva" in alert.text


def test_cancel_alert_falls_back_to_sender_id():
    result = advance(Session(step="get_name"), "cancelar", sender_id=SENDER, notify_to=CLINIC)

    assert SENDER in result.notifications[1].text


def test_schedule_word_at_offer_slots_is_a_slot_choice():
    result = advance(OFFERING, "AGENDAR", sender_id=SENDER)

    assert result.session == OFFERING
    assert texts(result) == [prompts.INVALID_SLOT]


def test_schedule_word_at_get_name_is_stored_as_name():
    result = advance(Session(step="get_name"), "Agendar", sender_id=SENDER)

    assert result.session.step == "get_phone"
    assert result.session.data.name == "Agendar"


def test_schedule_word_at_confirm_restarts():
    result = advance(CONFIRMING, "agendar", sender_id=SENDER)

    assert result.session.step == "get_name"
    assert result.session.data.is_empty()
    assert texts(result) == [prompts.NAME_PROMPT]


def test_phone_drops_non_ascii_digits():
    result = advance(NAMED, "(11) \u0669\u0661\u0662 3456", sender_id=SENDER)
    assert result.session.data.phone == "113456"


def test_connect_request_replies_with_link():
    url = "https://bot.example.com/google/auth?dentist_id=default"
    for session in (Session(), CONFIRMING):
        result = advance(session, "Conectar Google agora", sender_id=SENDER, connect_url=url)

        assert result.session == session
        assert url in texts(result)[0]


def test_name_starting_with_connect_phrase_is_stored_as_name():
    url = "https://bot.example.com/google/auth?dentist_id=default"
    result = advance(Session(step="get_name"), "Link Google Souza", sender_id=SENDER, connect_url=url)

    assert result.session.step == "get_phone"
    assert result.session.data.name == "Link Google Souza"


def test_connect_request_disabled_without_url():
    result = advance(Session(), "conectar google", sender_id=SENDER)
    assert result.session.step == "get_name"


def test_cancel_wins_over_connect():
    state = {
        "sender_id": SENDER,
        "text": "cancelar",
        "session": NAMED,
        "catalog": SlotCatalog([Slot(id=1, when="x")]),
        "connect_url": "https://bot.example.com/google/auth",
    }

    assert route_turn(TurnState(**state)) == "CANCEL"


def test_custom_catalog():
    catalog = SlotCatalog([Slot(id=7, when="Sexta 08:00")])
    result = advance(OFFERING, "7", sender_id=SENDER, catalog=catalog)

    assert result.session.data.slot == "Sexta 08:00"


def test_full_dialogue():
    session = Session()
    for text in ["agendar", "Maria Silva", "(11) 91234-5678", "2"]:
        session = advance(session, text, sender_id=SENDER).session

    assert session == CONFIRMING

    result = advance(session, "confirmo", sender_id=SENDER, notify_to=CLINIC)
    assert result.session == Session()
    assert len(result.notifications) == 2
