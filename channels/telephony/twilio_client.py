"""
Twilio Telephony Client — forwarded-call voicemail capture.

Call flow:
1. A forwarded call hits GET /v1/call → RECORD_TWIML asks for a message
2. Twilio records and POSTs From / ForwardedFrom / RecordingUrl back
3. parse_recording_webhook() normalizes that form for the delivery engine
4. send_sms() tells a recipient without a linked number how to listen

API Docs: https://www.twilio.com/docs/voice/twiml/record
"""
from __future__ import annotations

import structlog
from typing import Any, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from models.errors import TransportError

logger = structlog.get_logger()


RECORD_TWIML = """<?xml version="1.0" encoding="UTF-8"?>
<Response>
	<Say>Please leave a message after the tone.</Say>
	<Record maxLength="30" />
	<Say>Sorry, no message could be recorded.</Say>
</Response>"""

EMPTY_TWIML = """<?xml version="1.0" encoding="UTF-8"?>
<Response />"""


class TwilioClient:
    """Twilio REST API client for outbound SMS notifications."""

    BASE_URL = "https://api.twilio.com/2010-04-01/Accounts"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.base_url = f"{self.BASE_URL}/{account_sid}"
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(30.0, connect=10.0))
        return self._client

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(2),
        wait=wait_exponential(min=1, max=5),
        reraise=True,
    )
    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        client = await self._get_client()
        url = f"{self.base_url}{path}"
        return await client.request(method, url, auth=(self.account_sid, self.auth_token), **kwargs)

    # ── Messaging ───────────────────────────────────────────

    async def send_sms(self, to: str, body: str) -> dict[str, Any]:
        """Send a text message. Twilio answers 201 Created on success."""
        payload = {
            "From": self.from_number,
            "To": to,
            "Body": body,
        }
        try:
            resp = await self._request("POST", "/Messages", data=payload)
        except httpx.HTTPError as e:
            raise TransportError(f"sending SMS to {to} failed: {e}") from e

        if resp.status_code != 201:
            logger.error(
                "twilio_api_error",
                status=resp.status_code,
                body=resp.text[:500],
                path=resp.request.url.path,
            )
            raise TransportError(f"{resp.request.url.path} returned {resp.status_code}")

        try:
            result = resp.json()
        except ValueError as e:
            raise TransportError(f"{resp.request.url.path} returned a malformed body: {e}") from e
        if not isinstance(result, dict):
            raise TransportError(f"{resp.request.url.path} returned a malformed body: {result!r}")
        logger.info("twilio_sms_sent", to=to, sid=result.get("sid", ""))
        return {"sid": result.get("sid", ""), "status": result.get("status", "queued"), "to": to}

    # ── Webhook Parsing ─────────────────────────────────────

    @staticmethod
    def parse_recording_webhook(payload: dict[str, Any]) -> dict[str, Any]:
        """
        Normalize the Twilio <Record> callback into our internal format.

        The voicemail is for the number that forwarded the call
        (ForwardedFrom), not the Twilio number that answered (To).
        """
        return {
            "call_id": payload.get("CallSid", ""),
            "from": payload.get("From", ""),
            "to": payload.get("ForwardedFrom", ""),
            "recording_url": payload.get("RecordingUrl", ""),
        }

    # ── Helpers ─────────────────────────────────────────────

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
