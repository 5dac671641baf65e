"""
Tests for the Twilio webhook endpoints.

These tests verify that:
1. POST /twilio/voice/incoming creates call state and asks for the name
2. Step endpoints return TwiML naming the next step's endpoint
3. Finalizing steps queue exactly one email in the background
4. Unknown calls get a safe goodbye
5. POST /twilio/sms always acknowledges with empty TwiML
6. GET / and GET /health report the service is up
"""

import os
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

# NOTE: email webhook settings are intentionally NOT set in tests
# This tests the notifications-disabled path
for _name in ("EMAIL_WEBHOOK_URL", "EMAIL_WEBHOOK_TOKEN", "SUMMARY_TO_EMAIL", "WEBHOOK_BASE_URL"):
    os.environ.pop(_name, None)

from intake.main import app, get_dialogue_controller
from intake.email_service import get_email_service
from dialogue.store import CALL_RECORDS
from dialogue.controller import ACTION_PERSONAL, ACTION_WORK_CAN_WAIT, ACTION_WORK_IMMEDIATE


@pytest.fixture
async def client():
    """Create async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture(autouse=True)
def clear_call_records():
    """Clear CALL_RECORDS before each test."""
    CALL_RECORDS.clear()
    yield
    CALL_RECORDS.clear()


@pytest.fixture
def notify():
    """Replace email delivery with a mock."""
    with patch.object(get_email_service(), "notify", new_callable=AsyncMock) as mock_notify:
        yield mock_notify


async def _step(client: AsyncClient, step: str, call_sid: str, speech: str = ""):
    return await client.post(
        f"/twilio/voice/step/{step}",
        data={"CallSid": call_sid, "SpeechResult": speech},
    )


class TestHealth:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/", "/health"])
    async def test_health(self, client: AsyncClient, path):
        response = await client.get(path)

        assert response.status_code == 200
        assert response.json() == {"ok": True, "service": "call-intake-assistant"}


class TestIncomingCall:

    @pytest.mark.asyncio
    async def test_returns_name_prompt(self, client: AsyncClient):
        response = await client.post(
            "/twilio/voice/incoming",
            data={"CallSid": "CA100", "From": "+15551112222"},
        )

        assert response.status_code == 200
        assert "application/xml" in response.headers["content-type"]
        assert "<Response>" in response.text
        assert "<Gather" in response.text
        assert "your name" in response.text
        assert '/twilio/voice/step/name"' in response.text

        record = CALL_RECORDS["CA100"]
        assert record.caller_number == "+15551112222"
        assert record.number_hidden is False

    @pytest.mark.asyncio
    async def test_missing_from_marks_number_hidden(self, client: AsyncClient):
        response = await client.post("/twilio/voice/incoming", data={"CallSid": "CA101"})

        assert response.status_code == 200
        assert CALL_RECORDS["CA101"].number_hidden is True

    @pytest.mark.asyncio
    async def test_missing_call_sid_rejected(self, client: AsyncClient):
        response = await client.post("/twilio/voice/incoming", data={"From": "+15551112222"})

        assert response.status_code == 422


class TestDialogueOverHttp:

    @pytest.mark.asyncio
    async def test_work_can_wait_call(self, client: AsyncClient, notify: AsyncMock):
        await client.post("/twilio/voice/incoming", data={"CallSid": "CA200", "From": "+15551112222"})

        response = await _step(client, "name", "CA200", "Alex")
        assert '/twilio/voice/step/type"' in response.text

        response = await _step(client, "type", "CA200", "it's about work")
        assert '/twilio/voice/step/topic"' in response.text

        response = await _step(client, "topic", "CA200", "the roof")
        assert '/twilio/voice/step/urgency"' in response.text

        response = await _step(client, "urgency", "CA200", "it can wait")
        assert '/twilio/voice/step/callback_time"' in response.text
        notify.assert_not_awaited()

        response = await _step(client, "callback_time", "CA200", "tomorrow morning")
        assert response.status_code == 200
        assert "<Hangup" in response.text
        assert "<Gather" not in response.text

        notify.assert_awaited_once()
        subject, body = notify.await_args.args
        assert subject == "New Call Summary - Work - Alex"
        assert 'Callback time (caller words): "tomorrow morning"' in body
        assert CALL_RECORDS["CA200"].final_action == ACTION_WORK_CAN_WAIT

    @pytest.mark.asyncio
    async def test_hidden_number_asks_for_callback(self, client: AsyncClient, notify: AsyncMock):
        await client.post("/twilio/voice/incoming", data={"CallSid": "CA201", "From": "Anonymous"})

        response = await _step(client, "name", "CA201", "Sam")
        assert '/twilio/voice/step/callback"' in response.text

        response = await _step(client, "callback", "CA201", "555-0100")
        assert '/twilio/voice/step/type"' in response.text

        await _step(client, "type", "CA201", "personal")

        subject, body = notify.await_args.args
        assert "Caller number: Provided by caller: 555-0100" in body
        assert CALL_RECORDS["CA201"].final_action == ACTION_PERSONAL

    @pytest.mark.asyncio
    async def test_emergency_finishes_call(self, client: AsyncClient, notify: AsyncMock):
        await client.post("/twilio/voice/incoming", data={"CallSid": "CA202", "From": "+15551112222"})
        await _step(client, "name", "CA202", "Pat")
        await _step(client, "type", "CA202", "work")
        await _step(client, "topic", "CA202", "server outage")

        response = await _step(client, "urgency", "CA202", "this is an emergency")

        assert "callback_time" not in response.text
        assert "<Hangup" in response.text
        assert CALL_RECORDS["CA202"].final_action == ACTION_WORK_IMMEDIATE
        notify.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_speech_result_field(self, client: AsyncClient, notify: AsyncMock):
        """Twilio may omit SpeechResult when nothing was heard."""
        await client.post("/twilio/voice/incoming", data={"CallSid": "CA203", "From": "+15551112222"})

        response = await client.post("/twilio/voice/step/name", data={"CallSid": "CA203"})

        assert response.status_code == 200
        assert '/twilio/voice/step/type"' in response.text
        assert CALL_RECORDS["CA203"].caller_name == ""

    @pytest.mark.asyncio
    async def test_duplicate_final_delivery_sends_one_email(self, client: AsyncClient, notify: AsyncMock):
        await client.post("/twilio/voice/incoming", data={"CallSid": "CA204", "From": "+15551112222"})
        await _step(client, "name", "CA204", "Jo")

        first = await _step(client, "type", "CA204", "personal")
        second = await _step(client, "type", "CA204", "personal")

        assert first.text == second.text
        notify.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_works_without_email_configuration(self, client: AsyncClient):
        """Unconfigured email skips delivery but the call still finishes."""
        assert get_email_service().is_configured is False

        await client.post("/twilio/voice/incoming", data={"CallSid": "CA205", "From": "+15551112222"})
        response = await _step(client, "type", "CA205", "personal")

        assert response.status_code == 200
        assert "<Hangup" in response.text
        assert CALL_RECORDS["CA205"].final_action == ACTION_PERSONAL


class TestUnknownCall:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("step", ["name", "callback", "type", "topic", "urgency", "callback_time"])
    async def test_unknown_call_gets_goodbye(self, client: AsyncClient, notify: AsyncMock, step):
        response = await _step(client, step, "CA-unknown", "hello")

        assert response.status_code == 200
        assert "Thanks for calling. Goodbye." in response.text
        assert "<Hangup" in response.text
        assert "<Gather" not in response.text
        notify.assert_not_awaited()


class TestSmsWebhook:

    @pytest.mark.asyncio
    async def test_forwards_message(self, client: AsyncClient, notify: AsyncMock):
        response = await client.post(
            "/twilio/sms",
            data={"From": "+15550001111", "To": "+15559990000", "Body": "Call me back please"},
        )

        assert response.status_code == 200
        assert "application/xml" in response.headers["content-type"]
        assert "<Response" in response.text
        assert "<Message" not in response.text

        notify.assert_awaited_once()
        subject, body = notify.await_args.args
        assert subject == "New SMS to your Twilio number - from +15550001111"
        assert "From: +15550001111" in body
        assert "To: +15559990000" in body
        assert "Call me back please" in body

    @pytest.mark.asyncio
    async def test_ack_when_email_fails(self, client: AsyncClient):
        """The acknowledgment never reflects delivery problems."""
        service = get_email_service()
        with patch.multiple(
            service,
            webhook_url="https://script.example.com/exec",
            webhook_token="secret-token",
            to_email="owner@example.com",
        ), patch("intake.email_service.httpx.AsyncClient", side_effect=RuntimeError("boom")):
            response = await client.post(
                "/twilio/sms",
                data={"From": "+15550001111", "To": "+15559990000", "Body": "hi"},
            )

        assert response.status_code == 200
        assert "<Response" in response.text

    @pytest.mark.asyncio
    async def test_empty_message(self, client: AsyncClient, notify: AsyncMock):
        response = await client.post("/twilio/sms", data={})

        assert response.status_code == 200
        subject, body = notify.await_args.args
        assert subject == "New SMS to your Twilio number - from Unknown"
        assert "(empty message)" in body


class TestControllerSingleton:

    def test_controller_shares_call_records(self):
        controller = get_dialogue_controller()
        controller.start_call("CA300", "+15551112222")

        assert "CA300" in CALL_RECORDS
