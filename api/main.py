"""
FastAPI Application — Twilio voicemail webhooks.

Provides:
- GET  /v1/call            static TwiML asking the caller to leave a message
- POST /v1/call            recording callback, delivery runs in the background
- POST /v1/pending/flush   on-demand pass over the pending-voicemail queue
- GET  /health             liveness and store backend
"""
from __future__ import annotations

import time
import structlog
from typing import Optional
from contextlib import asynccontextmanager

# Load .env before any config is read
from dotenv import load_dotenv
load_dotenv()

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import Response

from channels.telephony.twilio_client import EMPTY_TWIML, RECORD_TWIML, TwilioClient
from config.settings import Settings, get_settings
from core.services import Services, build_services
from models.errors import StorageError, TransportError
from models.schemas import DeliveryOutcome

logger = structlog.get_logger()


# ──────────────────────────────────────────────────────────────
#  Voicemail handling
# ──────────────────────────────────────────────────────────────

async def handle_recording(
    services: Services, from_number: str, to_number: str, audio_url: str, call_id: str = "",
) -> Optional[DeliveryOutcome]:
    """
    Deliver one freshly recorded voicemail and log the outcome.
    Nothing here reaches the caller; the TwiML response is already sent.
    """
    logger.info("voicemail_received", call_id=call_id,
                from_number=from_number, to_number=to_number, audio_url=audio_url)
    try:
        outcome = await services.engine.deliver(from_number, to_number, audio_url, is_retry=False)
    except StorageError as e:
        logger.error("voicemail_storage_failed", call_id=call_id,
                     from_number=from_number, to_number=to_number, error=str(e))
        return None

    if outcome.is_failed:
        logger.warning("voicemail_not_delivered", call_id=call_id,
                       from_number=from_number, to_number=to_number,
                       reason=outcome.reason, retryable=outcome.error.retryable)

    notifications = services.settings.notifications
    if outcome.is_queued and notifications.sms_on_queue and services.sms:
        try:
            await services.sms.send_sms(to_number, notifications.message)
        except TransportError as e:
            logger.warning("voicemail_notification_failed", to_number=to_number, error=str(e))

    return outcome


# ──────────────────────────────────────────────────────────────
#  App
# ──────────────────────────────────────────────────────────────

def create_app(settings: Settings = None, services: Services = None) -> FastAPI:
    """Build the app. Tests pass prebuilt services with fake collaborators."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        svc = services or build_services(settings or get_settings())
        await svc.start()
        app.state.services = svc

        if svc.settings.flusher.enabled:
            await svc.flusher.start()

        logger.info("voicemail_bridge_started",
                    store_backend=svc.store.backend_name,
                    flusher=svc.settings.flusher.enabled)
        yield

        await svc.close()
        logger.info("voicemail_bridge_stopped")

    app = FastAPI(
        title="Voicemail Bridge",
        description="Delivers forwarded-call voicemail into platform conversations",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def log_request_time(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        logger.info("request_handled",
                    method=request.method,
                    path=request.url.path,
                    status=response.status_code,
                    duration_ms=round((time.perf_counter() - start) * 1000, 1))
        return response

    # ══════════════════════════════════════════════════════════
    #  TWILIO WEBHOOKS
    # ══════════════════════════════════════════════════════════

    @app.get("/v1/call")
    async def incoming_call(request: Request):
        """Call-initiation request; it never carries a recording."""
        logger.info("incoming_call", query=dict(request.query_params))
        return Response(content=RECORD_TWIML, media_type="application/xml")

    @app.post("/v1/call")
    async def recording_callback(request: Request, background_tasks: BackgroundTasks):
        """Twilio <Record> callback, form-encoded."""
        body = dict(await request.form())
        normalized = TwilioClient.parse_recording_webhook(body)
        background_tasks.add_task(
            handle_recording,
            request.app.state.services,
            normalized["from"],
            normalized["to"],
            normalized["recording_url"],
            normalized["call_id"],
        )
        return Response(content=EMPTY_TWIML, media_type="application/xml")

    # ══════════════════════════════════════════════════════════
    #  PENDING QUEUE & HEALTH
    # ══════════════════════════════════════════════════════════

    @app.post("/v1/pending/flush")
    async def flush_pending(request: Request):
        stats = await request.app.state.services.flusher.flush_pending()
        return {"status": "ok", **stats}

    @app.get("/health")
    async def health(request: Request):
        svc: Services = request.app.state.services
        return {
            "status": "ok",
            "app": svc.settings.app_name,
            "store_backend": svc.store.backend_name,
        }

    return app


app = create_app()


# ══════════════════════════════════════════════════════════════
#  Entry Point
# ══════════════════════════════════════════════════════════════

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
