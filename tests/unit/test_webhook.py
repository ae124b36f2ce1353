import pytest
from fastapi.testclient import TestClient

from clinicbot import prompts
from clinicbot.config import Settings
from clinicbot.main import create_app
from clinicbot.webhook import build_connect_url, iter_text_messages

SENDER = "5511988887777"
CLINIC = "5511900000000"


class FakeMessenger:
    def __init__(self):
        self.sent = []

    async def send_text(self, to, body):
        self.sent.append((to, body))
        return True


def message_payload(*messages):
    return {
        "object": "whatsapp_business_account",
        "entry": [{"changes": [{"value": {"messages": list(messages)}}]}],
    }


def text_message(sender, body):
    return {"from": sender, "type": "text", "text": {"body": body}}


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        META_VERIFY_TOKEN="s3cret",
        NOTIFY_RECIPIENT=CLINIC,
        PUBLIC_BASE_URL="https://bot.example.com",
        LOG_FILE_PATH=None,
    )


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def app(settings, messenger, mocker):
    return create_app(settings, messenger=messenger, oauth=mocker.MagicMock(), calendar=mocker.MagicMock())


@pytest.fixture
def client(app):
    return TestClient(app)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.text == "OK"


def test_handshake_echoes_challenge(client):
    params = {"hub.mode": "subscribe", "hub.verify_token": "s3cret", "hub.challenge": "1158201444"}

    first = client.get("/webhook", params=params)
    second = client.get("/webhook", params=params)

    assert first.status_code == second.status_code == 200
    assert first.text == second.text == "1158201444"


def test_handshake_rejects_wrong_token(client):
    params = {"hub.mode": "subscribe", "hub.verify_token": "nope", "hub.challenge": "1"}
    assert client.get("/webhook", params=params).status_code == 403


def test_handshake_fails_closed_without_secret(messenger, mocker):
    app = create_app(
        Settings(_env_file=None, META_VERIFY_TOKEN=None, LOG_FILE_PATH=None),
        messenger=messenger,
        oauth=mocker.MagicMock(),
        calendar=mocker.MagicMock(),
    )
    params = {"hub.mode": "subscribe", "hub.challenge": "1"}
    assert TestClient(app).get("/webhook", params=params).status_code == 403


def test_inbound_message_advances_session(client, app, messenger):
    response = client.post("/webhook", json=message_payload(text_message(SENDER, " agendar ")))

    assert response.status_code == 200
    assert messenger.sent == [(SENDER, prompts.NAME_PROMPT)]
    assert app.state.service.sessions.get(SENDER).step == "get_name"


def test_status_callback_is_acknowledged(client, messenger):
    payload = {"entry": [{"changes": [{"value": {"statuses": [{"status": "delivered"}]}}]}]}

    response = client.post("/webhook", json=payload)

    assert response.status_code == 200
    assert messenger.sent == []


def test_connect_request_sends_authorization_link(client, messenger):
    client.post("/webhook", json=message_payload(text_message(SENDER, "conectar google")))

    assert len(messenger.sent) == 1
    assert "https://bot.example.com/google/auth?dentist_id=default" in messenger.sent[0][1]


def test_unexpected_error_returns_500(client, app, mocker):
    mocker.patch.object(app.state.service, "handle_message", side_effect=RuntimeError("boom"))

    response = client.post("/webhook", json=message_payload(text_message(SENDER, "oi")))

    assert response.status_code == 500


def test_full_booking_over_webhook(client, messenger):
    for text in ["agendar", "Maria Silva", "(11) 91234-5678", "2", "confirmo"]:
        assert client.post("/webhook", json=message_payload(text_message(SENDER, text))).status_code == 200

    to_clinic = [body for to, body in messenger.sent if to == CLINIC]
    assert len(to_clinic) == 1
    assert "Amanhã 10:30" in to_clinic[0]


def test_iter_text_messages_handles_non_text_and_missing_sender():
    payload = message_payload(
        text_message(SENDER, "oi"),
        {"from": "5522", "type": "image", "image": {"id": "x"}},
        {"type": "text", "text": {"body": "no sender"}},
    )

    assert list(iter_text_messages(payload)) == [(SENDER, "oi"), ("5522", "")]


def test_iter_text_messages_ignores_garbage():
    assert list(iter_text_messages(None)) == []
    assert list(iter_text_messages({"entry": None})) == []
    assert list(iter_text_messages({"entry": "x", "object": 1})) == []


def test_iter_text_messages_skips_malformed_elements():
    payload = message_payload(
        {"from": "5533", "text": "hi"},
        "not a message",
        None,
        {"from": 5544, "text": {"body": "numeric sender"}},
        {"from": "5555", "text": {"body": None}},
        text_message(SENDER, "agendar"),
    )
    payload["entry"].append("garbage")
    payload["entry"][0]["changes"].append({"value": "garbage"})

    assert list(iter_text_messages(payload)) == [("5533", ""), ("5555", ""), (SENDER, "agendar")]


def test_malformed_message_does_not_drop_rest_of_batch(client, messenger):
    payload = message_payload({"from": "5533", "text": "hi"}, text_message(SENDER, "agendar"))

    response = client.post("/webhook", json=payload)

    assert response.status_code == 200
    assert (SENDER, prompts.NAME_PROMPT) in messenger.sent


def test_build_connect_url():
    assert (
        build_connect_url("http://testserver/")
        == "http://testserver/google/auth?dentist_id=default"
    )
