"""
Delivery Engine — decides how a recorded voicemail reaches the platform.

Given (from, to, audio_url, is_retry) every attempt ends in exactly one of:

  delivered       audio posted into a platform conversation
  queued_pending  recipient has no usable account yet, stored for later
  failed          bad input, retry still undeliverable, or platform error

Routing:
  recipient unregistered / needs bridge  → queue (first attempt) or fail (retry)
  sender and recipient both linked       → sender posts audio to recipient
  sender unknown                          → recipient opens the conversation
                                            with the caller's number, then the
                                            resolved caller account posts audio

The engine never retries. StorageError propagates to the caller.
"""
from __future__ import annotations

import asyncio
import structlog
from typing import Optional

from backend.platform import ConversationPoster
from core.identity import lookup_identity_pair
from database.store_base import BaseVoicemailStore
from models.errors import (
    InvalidRequest, PersistentNonDelivery, RemoteRejected, StorageError, TransportError,
)
from models.schemas import DeliveryOutcome, Identity
from utils.audio_url import normalize_audio_url

logger = structlog.get_logger()

ANONYMOUS_CALLER = "unknownuser"


class DeliveryEngine:
    """
    Routes one voicemail per deliver() call.

    Holds no per-request state, so a single instance serves all concurrent
    webhook requests and the queue flusher.
    """

    def __init__(
        self,
        store: BaseVoicemailStore,
        poster: ConversationPoster,
        anonymous_caller: str = ANONYMOUS_CALLER,
        timeout_s: Optional[float] = None,
    ):
        self.store = store
        self.poster = poster
        self.anonymous_caller = anonymous_caller
        self.timeout_s = timeout_s

    async def deliver(
        self, from_number: str, to_number: str, audio_url: str, is_retry: bool = False,
    ) -> DeliveryOutcome:
        if not to_number:
            error = InvalidRequest("empty recipient (did someone call us?)")
            logger.warning("voicemail_invalid_request", from_number=from_number, error=str(error))
            return DeliveryOutcome.failed(error)

        from_number = from_number or self.anonymous_caller
        audio_url = normalize_audio_url(audio_url)

        if not self.timeout_s or self.timeout_s <= 0:
            return await self._route(from_number, to_number, audio_url, is_retry)

        try:
            return await asyncio.wait_for(
                self._route(from_number, to_number, audio_url, is_retry),
                timeout=self.timeout_s,
            )
        except asyncio.TimeoutError:
            error = TransportError(
                f"delivery {from_number} -> {to_number} exceeded {self.timeout_s}s deadline"
            )
            logger.error("voicemail_deadline_exceeded",
                         from_number=from_number, to_number=to_number, timeout_s=self.timeout_s)
            return DeliveryOutcome.failed(error)

    async def _route(
        self, from_number: str, to_number: str, audio_url: str, is_retry: bool,
    ) -> DeliveryOutcome:
        from_identity, to_identity = await lookup_identity_pair(self.store, from_number, to_number)

        if to_identity is None or to_identity.needs_voicemail_bridge:
            if is_retry:
                # Already queued, don't add it again
                error = PersistentNonDelivery(to_number)
                logger.info("voicemail_still_undeliverable", to_number=to_number)
                return DeliveryOutcome.failed(error)
            return await self._enqueue(from_number, to_number, audio_url)

        to_account = to_identity.account
        try:
            if from_identity is not None and from_identity.has_direct_account:
                await self._post_direct(from_identity, to_account, audio_url)
            else:
                await self._post_reverse(from_number, to_account, audio_url)
        except (RemoteRejected, TransportError) as e:
            logger.error("voicemail_delivery_failed",
                         from_number=from_number, to_number=to_number,
                         to_account=to_account, error=str(e))
            return DeliveryOutcome.failed(e)

        logger.info("voicemail_delivered",
                    from_number=from_number, to_number=to_number, to_account=to_account)
        return DeliveryOutcome.delivered()

    async def _enqueue(self, from_number: str, to_number: str, audio_url: str) -> DeliveryOutcome:
        try:
            queue_id = await self.store.enqueue_pending(from_number, to_number, audio_url)
        except StorageError as e:
            raise StorageError(
                f"receiver {to_number} doesn't have an account, failed to store pending voicemail: {e}"
            ) from e
        logger.info("voicemail_queued",
                    from_number=from_number, to_number=to_number, queue_id=queue_id)
        return DeliveryOutcome.queued(queue_id)

    async def _post_direct(self, from_identity: Identity, to_account: int, audio_url: str) -> None:
        await self.poster.post_to_conversation(from_identity.account, 0, {
            "participant": to_account,
            "audio_url": audio_url,
        })

    async def _post_reverse(self, from_number: str, to_account: int, audio_url: str) -> None:
        """
        The caller has no account, so the recipient opens the conversation
        with the caller's number as participant. The platform resolves that
        number to an account, which then posts the audio.
        """
        # TODO: pass the caller's display name from the provider's CallerName field.
        stream = await self.poster.post_to_conversation(to_account, 0, {
            "participant": from_number,
            "reason": "voicemail",
        })
        if stream.others:
            from_account = stream.others[0].id
        else:
            # Monologue stream: the recipient left themselves a voicemail
            from_account = to_account
        await self.poster.post_to_conversation(from_account, stream.id, {
            "audio_url": audio_url,
        })
