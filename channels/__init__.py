"""Telephony-side channels: call control documents, webhook parsing, SMS."""
