"""
Abstract Voicemail Store — Interface for all storage backends.

Implementations:
  - SqlVoicemailStore      (PostgreSQL / MySQL / SQLite via SQLAlchemy)
  - InMemoryVoicemailStore (dict-based, single-process, no persistence)
  - FileVoicemailStore     (JSON files on disk, single-process, durable)

Identities are owned by the platform; the bridge only reads them.
Pending voicemails are never deleted, delivered ones stay as an audit trail.
Backend failures surface as models.errors.StorageError.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional

from models.schemas import Identity, PendingVoicemail


class BaseVoicemailStore(ABC):
    """Interface that all voicemail store backends must implement."""

    backend_name: str = "base"

    # ── Identities ────────────────────────────────────────────

    @abstractmethod
    async def get_identity(self, phone_number: str) -> Optional[Identity]:
        """Point lookup by phone number. None means the number is unregistered."""
        ...

    @abstractmethod
    async def put_identity(self, phone_number: str, identity: Identity) -> None:
        ...

    # ── Pending voicemails ────────────────────────────────────

    @abstractmethod
    async def enqueue_pending(self, from_number: str, to_number: str, audio_url: str) -> int:
        """Insert an undelivered voicemail and return its id."""
        ...

    @abstractmethod
    async def get_pending(self, voicemail_id: int) -> Optional[PendingVoicemail]:
        ...

    @abstractmethod
    async def mark_delivered(self, voicemail_id: int) -> None:
        """Set delivered=True. Idempotent."""
        ...

    @abstractmethod
    def query_undelivered(self) -> AsyncIterator[tuple[int, PendingVoicemail]]:
        """Fresh snapshot scan of every record with delivered=False."""
        ...

    async def init(self) -> None:
        """Prepare the backend (create tables etc.). No-op by default."""
        pass

    async def close(self) -> None:
        pass
