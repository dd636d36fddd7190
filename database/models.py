"""
SQLAlchemy ORM models — Cross-database compatible.

Supports: PostgreSQL, MySQL 8+, SQLite.

  - identities are keyed by the phone number string (E.164)
  - pending voicemails get an auto-increment integer id
  - ``delivered`` is indexed; the flusher scans on delivered = false
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import BigInteger, Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all ORM models."""
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ──────────────────────────────────────────────────────────────
#  Identities
# ──────────────────────────────────────────────────────────────

class IdentityRow(Base):
    __tablename__ = "identities"

    phone_number: Mapped[str] = mapped_column(String(64), primary_key=True)
    account_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    available: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[str] = mapped_column(String(256), default="")

    def to_dict(self) -> dict[str, Any]:
        return {
            "account": self.account_id,
            "available": self.available,
            "status": self.status,
        }


# ──────────────────────────────────────────────────────────────
#  Pending Voicemails
# ──────────────────────────────────────────────────────────────

class PendingVoicemailRow(Base):
    __tablename__ = "pending_voicemails"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    from_number: Mapped[str] = mapped_column(String(64), nullable=False)
    to_number: Mapped[str] = mapped_column(String(64), nullable=False)
    audio_url: Mapped[str] = mapped_column(Text, nullable=False)
    delivered: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_pending_voicemails_delivered", "delivered"),
        Index("ix_pending_voicemails_to", "to_number"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_number,
            "to": self.to_number,
            "audio_url": self.audio_url,
            "delivered": self.delivered,
            "created_at": self.created_at,
            "delivered_at": self.delivered_at,
        }
