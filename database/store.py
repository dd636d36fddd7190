"""
SqlVoicemailStore — Portable SQL queries for PostgreSQL, MySQL, SQLite.

Every SQLAlchemy failure is re-raised as StorageError so callers see one
error type regardless of the database behind the store.
"""
from __future__ import annotations

import structlog
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, AsyncIterator, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from database.models import IdentityRow, PendingVoicemailRow
from database.session import create_engine, create_session_factory, init_db, session_scope
from database.store_base import BaseVoicemailStore
from models.errors import StorageError
from models.schemas import Identity, PendingVoicemail

logger = structlog.get_logger()


class SqlVoicemailStore(BaseVoicemailStore):
    """
    Persistent voicemail store backed by any SQLAlchemy-supported database.
    Works with PostgreSQL, MySQL 8+, and SQLite.
    """

    backend_name = "sql"

    def __init__(self, db_url: str = "", engine: AsyncEngine = None, debug: bool = False):
        if engine is None:
            engine = create_engine(db_url, debug=debug)
        self._engine = engine
        self._sessions = create_session_factory(engine)

    async def init(self) -> None:
        """Create tables if they don't exist."""
        try:
            await init_db(self._engine)
        except SQLAlchemyError as e:
            raise StorageError(f"failed to initialize database: {e}") from e

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with session_scope(self._sessions) as db:
                yield db
        except SQLAlchemyError as e:
            logger.error("sql_store_error", operation=operation, error=str(e))
            raise StorageError(f"{operation} failed: {e}") from e

    # ── Identity operations ────────────────────────────────

    async def get_identity(self, phone_number: str) -> Optional[Identity]:
        async with self._session("get_identity") as db:
            row = await db.get(IdentityRow, phone_number)
            return Identity.model_validate(row.to_dict()) if row else None

    async def put_identity(self, phone_number: str, identity: Identity) -> None:
        async with self._session("put_identity") as db:
            await db.merge(IdentityRow(
                phone_number=phone_number,
                account_id=identity.account,
                available=identity.available,
                status=identity.status,
            ))

    # ── Pending voicemail operations ───────────────────────

    async def enqueue_pending(self, from_number: str, to_number: str, audio_url: str) -> int:
        async with self._session("enqueue_pending") as db:
            row = PendingVoicemailRow(
                from_number=from_number,
                to_number=to_number,
                audio_url=audio_url,
                delivered=False,
            )
            db.add(row)
            await db.flush()
            return row.id

    async def get_pending(self, voicemail_id: int) -> Optional[PendingVoicemail]:
        async with self._session("get_pending") as db:
            row = await db.get(PendingVoicemailRow, voicemail_id)
            return PendingVoicemail.model_validate(row.to_dict()) if row else None

    async def mark_delivered(self, voicemail_id: int) -> None:
        async with self._session("mark_delivered") as db:
            result = await db.execute(
                update(PendingVoicemailRow)
                .where(
                    PendingVoicemailRow.id == voicemail_id,
                    PendingVoicemailRow.delivered.is_(False),
                )
                .values(delivered=True, delivered_at=datetime.now(timezone.utc))
            )
            if result.rowcount == 0 and await db.get(PendingVoicemailRow, voicemail_id) is None:
                raise StorageError(f"pending voicemail {voicemail_id} does not exist")

    async def query_undelivered(self) -> AsyncIterator[tuple[int, PendingVoicemail]]:
        async with self._session("query_undelivered") as db:
            stmt = (
                select(PendingVoicemailRow)
                .where(PendingVoicemailRow.delivered.is_(False))
                .order_by(PendingVoicemailRow.id)
            )
            result = await db.execute(stmt)
            rows = [(r.id, r.to_dict()) for r in result.scalars().all()]
        for voicemail_id, data in rows:
            yield voicemail_id, PendingVoicemail.model_validate(data)

    async def close(self) -> None:
        await self._engine.dispose()
        logger.info("database_closed")
