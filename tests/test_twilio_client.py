"""
Tests for Twilio glue: call-control TwiML, recording webhook parsing, SMS.
"""
from urllib.parse import parse_qs

import httpx
import pytest
from unittest.mock import patch
from tenacity import wait_none

from channels.telephony.twilio_client import RECORD_TWIML, TwilioClient
from models.errors import TransportError


def _twilio(handler) -> TwilioClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TwilioClient("AC_test_sid", "test_token", "+14427776437", client=http)


class TestRecordTwiml:
    def test_prompts_and_records(self):
        assert "Please leave a message after the tone." in RECORD_TWIML
        assert '<Record maxLength="30" />' in RECORD_TWIML
        assert RECORD_TWIML.startswith('<?xml version="1.0" encoding="UTF-8"?>')


class TestParseRecordingWebhook:
    def test_forwarded_from_is_recipient(self):
        parsed = TwilioClient.parse_recording_webhook({
            "CallSid": "CA123",
            "From": "+15551230000",
            "To": "+14427776437",
            "ForwardedFrom": "+15559998888",
            "RecordingUrl": "https://api.twilio.com/2010-04-01/Accounts/AC1/Recordings/RE1",
        })
        assert parsed["call_id"] == "CA123"
        assert parsed["from"] == "+15551230000"
        assert parsed["to"] == "+15559998888"
        assert parsed["recording_url"].endswith("/RE1")

    def test_missing_fields_default_empty(self):
        parsed = TwilioClient.parse_recording_webhook({})
        assert parsed["from"] == ""
        assert parsed["to"] == ""
        assert parsed["recording_url"] == ""
        assert parsed["call_id"] == ""


class TestSendSms:
    @pytest.mark.asyncio
    async def test_sends_form_with_basic_auth(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["form"] = parse_qs(request.content.decode())
            return httpx.Response(201, json={"sid": "SM1", "status": "queued"})

        client = _twilio(handler)
        result = await client.send_sms("+15559998888", "You have new voicemail")
        await client.close()

        assert seen["url"] == "https://api.twilio.com/2010-04-01/Accounts/AC_test_sid/Messages"
        assert seen["auth"].startswith("Basic ")
        assert seen["form"] == {
            "From": ["+14427776437"],
            "To": ["+15559998888"],
            "Body": ["You have new voicemail"],
        }
        assert result == {"sid": "SM1", "status": "queued", "to": "+15559998888"}

    @pytest.mark.asyncio
    async def test_non_201_raises(self):
        client = _twilio(lambda request: httpx.Response(400, json={"message": "invalid To"}))
        with pytest.raises(TransportError, match="400"):
            await client.send_sms("+1", "hi")

    @pytest.mark.asyncio
    async def test_non_json_201_raises_transport_error(self):
        client = _twilio(lambda request: httpx.Response(201, text="<html>created</html>"))
        with pytest.raises(TransportError, match="malformed body"):
            await client.send_sms("+1", "hi")

    @pytest.mark.asyncio
    async def test_non_object_201_raises_transport_error(self):
        client = _twilio(lambda request: httpx.Response(201, json=["SM1"]))
        with pytest.raises(TransportError, match="malformed body"):
            await client.send_sms("+1", "hi")

    @pytest.mark.asyncio
    async def test_network_error_retried_then_raised(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            raise httpx.ConnectError("unreachable", request=request)

        client = _twilio(handler)
        with patch.object(TwilioClient._request.retry, "wait", wait_none()):
            with pytest.raises(TransportError):
                await client.send_sms("+1", "hi")
        assert len(attempts) == 2
