"""
Error taxonomy for voicemail delivery.

  VoicemailError
    ├── InvalidRequest          bad webhook input, never retried
    ├── PersistentNonDelivery   retry still has no deliverable recipient
    ├── RemoteRejected          platform API answered with a non-200 status
    ├── TransportError          network / serialization / deadline failure
    └── StorageError            identity or pending-voicemail store unavailable
"""
from __future__ import annotations


class VoicemailError(Exception):
    """Base exception for all voicemail delivery failures."""

    def __init__(self, message: str, retryable: bool = False):
        self.retryable = retryable
        super().__init__(message)


class InvalidRequest(VoicemailError):
    pass


class PersistentNonDelivery(VoicemailError):
    def __init__(self, to_number: str):
        self.to_number = to_number
        super().__init__(f"retried delivery but {to_number} still doesn't have an account")


class RemoteRejected(VoicemailError):
    """The platform refused a conversation post."""

    def __init__(self, path: str, account_id: int, status_code: int, reason: str = ""):
        self.path = path
        self.account_id = account_id
        self.status_code = status_code
        status = f"{status_code} {reason}".strip()
        super().__init__(
            f"{path} (on behalf of {account_id}) returned {status}",
            retryable=status_code >= 500,
        )


class TransportError(VoicemailError):
    def __init__(self, message: str):
        super().__init__(message, retryable=True)


class StorageError(VoicemailError):
    def __init__(self, message: str):
        super().__init__(message, retryable=True)
