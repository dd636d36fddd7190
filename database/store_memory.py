"""
InMemoryVoicemailStore — Dict-backed store for development and testing.

Features:
  - Zero dependencies (no database server)
  - Full interface compatibility with SqlVoicemailStore
  - Safe under a single asyncio event loop
  - All data lost on process restart

Best for: local development, unit tests, quick prototyping.
"""
from __future__ import annotations

import structlog
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional

from database.store_base import BaseVoicemailStore
from models.errors import StorageError
from models.schemas import Identity, PendingVoicemail

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryVoicemailStore(BaseVoicemailStore):
    """
    Full-featured in-memory store with the same interface as SqlVoicemailStore.
    Records are kept as JSON-ready dicts so the file backend can dump them as-is.
    """

    backend_name = "memory"

    def __init__(self):
        self._identities: dict[str, dict[str, Any]] = {}    # phone number → identity dict
        self._pending: dict[str, dict[str, Any]] = {}       # str(id) → voicemail dict
        self._next_id = 1
        logger.info("inmemory_store_initialized")

    # ── Identities ────────────────────────────────────────

    async def get_identity(self, phone_number: str) -> Optional[Identity]:
        data = self._identities.get(phone_number)
        return Identity.model_validate(data) if data else None

    async def put_identity(self, phone_number: str, identity: Identity) -> None:
        previous = self._identities.get(phone_number)
        self._identities[phone_number] = identity.model_dump(mode="json")
        try:
            self._mark_dirty("identities")
        except StorageError:
            if previous is None:
                self._identities.pop(phone_number, None)
            else:
                self._identities[phone_number] = previous
            raise

    # ── Pending voicemails ────────────────────────────────

    async def enqueue_pending(self, from_number: str, to_number: str, audio_url: str) -> int:
        voicemail_id = self._next_id
        self._next_id += 1
        record = PendingVoicemail(from_number=from_number, to_number=to_number, audio_url=audio_url)
        self._pending[str(voicemail_id)] = record.model_dump(mode="json", by_alias=True)
        try:
            self._mark_dirty("pending_voicemails")
        except StorageError:
            # Not persisted, so never visible to a scan
            del self._pending[str(voicemail_id)]
            self._next_id = voicemail_id
            raise
        return voicemail_id

    async def get_pending(self, voicemail_id: int) -> Optional[PendingVoicemail]:
        data = self._pending.get(str(voicemail_id))
        return PendingVoicemail.model_validate(data) if data else None

    async def mark_delivered(self, voicemail_id: int) -> None:
        data = self._pending.get(str(voicemail_id))
        if data is None:
            raise StorageError(f"pending voicemail {voicemail_id} does not exist")
        if data["delivered"]:
            return
        data["delivered"] = True
        data["delivered_at"] = _utcnow().isoformat()
        try:
            self._mark_dirty("pending_voicemails")
        except StorageError:
            data["delivered"] = False
            data["delivered_at"] = None
            raise

    async def query_undelivered(self) -> AsyncIterator[tuple[int, PendingVoicemail]]:
        # Snapshot; records enqueued mid-scan wait for the next cycle
        snapshot = [(k, dict(v)) for k, v in self._pending.items() if not v["delivered"]]
        for key, data in snapshot:
            yield int(key), PendingVoicemail.model_validate(data)

    # ── Hooks ─────────────────────────────────────────────

    def _mark_dirty(self, collection: str) -> None:
        """
        Called after every mutation. Overridden by FileVoicemailStore.
        Raising StorageError rolls the mutation back.
        """
        pass

    def stats(self) -> dict[str, int]:
        undelivered = sum(1 for v in self._pending.values() if not v["delivered"])
        return {
            "identities": len(self._identities),
            "pending_voicemails": len(self._pending),
            "undelivered": undelivered,
        }
