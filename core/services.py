"""
Service container — builds every shared client once at startup.

The web app, the flush script and the tests all obtain their store,
platform client, engine and flusher from here instead of module globals.
"""
from __future__ import annotations

import structlog
from dataclasses import dataclass
from typing import Optional

from backend.platform import ConversationPoster, PlatformClient
from channels.telephony.twilio_client import TwilioClient
from config.settings import Settings
from core.engine import DeliveryEngine
from core.flusher import QueueFlusher
from database.store_base import BaseVoicemailStore
from database.store_factory import create_store

logger = structlog.get_logger()


@dataclass
class Services:
    settings: Settings
    store: BaseVoicemailStore
    poster: ConversationPoster
    engine: DeliveryEngine
    flusher: QueueFlusher
    sms: Optional[TwilioClient] = None

    async def start(self) -> None:
        await self.store.init()

    async def close(self) -> None:
        await self.flusher.stop()
        await self.poster.close()
        if self.sms:
            await self.sms.close()
        await self.store.close()


def build_services(
    settings: Settings,
    store: BaseVoicemailStore = None,
    poster: ConversationPoster = None,
    sms: TwilioClient = None,
) -> Services:
    """Wire the components from settings; any collaborator can be injected."""
    store = store or create_store(settings.database, debug=settings.debug)
    poster = poster or PlatformClient(settings.platform)

    if sms is None and settings.twilio.account_sid:
        sms = TwilioClient(
            account_sid=settings.twilio.account_sid,
            auth_token=settings.twilio.auth_token,
            from_number=settings.twilio.from_number,
        )

    engine = DeliveryEngine(
        store,
        poster,
        anonymous_caller=settings.voicemail.anonymous_caller,
        timeout_s=settings.voicemail.deliver_timeout_s,
    )
    flusher = QueueFlusher(store, engine, interval_s=settings.flusher.interval_s)

    logger.info("services_built",
                store_backend=store.backend_name,
                sms_enabled=sms is not None)
    return Services(
        settings=settings, store=store, poster=poster,
        engine=engine, flusher=flusher, sms=sms,
    )
