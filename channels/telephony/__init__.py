"""
Telephony provider glue for forwarded-call voicemail.

Usage:
    from channels.telephony import TwilioClient, RECORD_TWIML
    normalized = TwilioClient.parse_recording_webhook(form)
    await client.send_sms(to="+15559998888", body="...")
"""
from channels.telephony.twilio_client import TwilioClient, RECORD_TWIML, EMPTY_TWIML

__all__ = ["TwilioClient", "RECORD_TWIML", "EMPTY_TWIML"]
