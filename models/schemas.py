"""
Core data models for the voicemail bridge.
These are the universal types shared across all modules.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models.errors import VoicemailError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ──────────────────────────────────────────────────────────────
#  Identity — phone number ↔ platform account linkage
# ──────────────────────────────────────────────────────────────

class Identity(BaseModel):
    """
    A phone number's linkage to a platform account.

    ``available`` keeps its stored name but reads inverted: True means the
    account has NOT linked a phone that receives calls directly, so
    voicemails for it must go through the bridge.
    """
    account: Optional[int] = None             # platform account id
    available: bool = False
    status: str = ""                          # display only

    @property
    def needs_voicemail_bridge(self) -> bool:
        return self.available

    @property
    def has_direct_account(self) -> bool:
        """Linked account that can receive voicemail as a conversation."""
        return self.account is not None and not self.available


# ──────────────────────────────────────────────────────────────
#  Pending voicemail — deferred until the recipient links a number
# ──────────────────────────────────────────────────────────────

class PendingVoicemail(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_number: str = Field(alias="from")
    to_number: str = Field(alias="to")
    audio_url: str
    delivered: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    delivered_at: Optional[datetime] = None


# ──────────────────────────────────────────────────────────────
#  Platform conversation (stream)
# ──────────────────────────────────────────────────────────────

class Participant(BaseModel):
    id: int


class Stream(BaseModel):
    """A conversation on the platform. ``others`` excludes the acting account."""
    id: int = 0
    others: list[Participant] = []


# ──────────────────────────────────────────────────────────────
#  Delivery outcome
# ──────────────────────────────────────────────────────────────

class OutcomeKind(str, Enum):
    DELIVERED = "delivered"
    QUEUED = "queued_pending"
    FAILED = "failed"


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one delivery attempt: delivered, queued-pending or failed."""
    kind: OutcomeKind
    queue_id: Optional[int] = None
    error: Optional[VoicemailError] = None

    @classmethod
    def delivered(cls) -> DeliveryOutcome:
        return cls(OutcomeKind.DELIVERED)

    @classmethod
    def queued(cls, queue_id: int) -> DeliveryOutcome:
        return cls(OutcomeKind.QUEUED, queue_id=queue_id)

    @classmethod
    def failed(cls, error: VoicemailError) -> DeliveryOutcome:
        return cls(OutcomeKind.FAILED, error=error)

    @property
    def is_delivered(self) -> bool:
        return self.kind == OutcomeKind.DELIVERED

    @property
    def is_queued(self) -> bool:
        return self.kind == OutcomeKind.QUEUED

    @property
    def is_failed(self) -> bool:
        return self.kind == OutcomeKind.FAILED

    @property
    def reason(self) -> str:
        return str(self.error) if self.error else ""
