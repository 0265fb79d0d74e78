# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, select, text
from sqlalchemy.orm import Session, sessionmaker

from gateway.domain.sessions import SessionStore
from gateway.infrastructure.db.models import SessionRecord
from gateway.infrastructure.db.session import session_scope


class SqlAlchemySessionStore(SessionStore):
    """Session payloads in the ``user_sessions`` table.

    SQLAlchemy calls are blocking, so each operation runs in a worker thread.
    """

    def __init__(self, factory: sessionmaker[Session]) -> None:
        self._factory = factory

    async def get(self, session_id: str) -> str | None:
        return await asyncio.to_thread(self._get, session_id)

    async def set(self, session_id: str, payload: str, ttl_seconds: int) -> None:
        await asyncio.to_thread(self._set, session_id, payload, ttl_seconds)

    async def delete(self, session_id: str) -> None:
        await asyncio.to_thread(self._delete, session_id)

    async def ping(self) -> None:
        await asyncio.to_thread(self._ping)

    def purge_expired(self) -> int:
        with session_scope(self._factory) as db:
            result = db.execute(
                delete(SessionRecord).where(SessionRecord.expires_at <= datetime.now(UTC))
            )
            return int(result.rowcount or 0)

    def _get(self, session_id: str) -> str | None:
        with session_scope(self._factory) as db:
            return db.execute(
                select(SessionRecord.payload).where(
                    SessionRecord.id == session_id,
                    SessionRecord.expires_at > datetime.now(UTC),
                )
            ).scalar_one_or_none()

    def _set(self, session_id: str, payload: str, ttl_seconds: int) -> None:
        expires_at = datetime.now(UTC) + timedelta(seconds=ttl_seconds)
        with session_scope(self._factory) as db:
            row = db.get(SessionRecord, session_id)
            if row is None:
                db.add(SessionRecord(id=session_id, payload=payload, expires_at=expires_at))
            else:
                row.payload = payload
                row.expires_at = expires_at

    def _delete(self, session_id: str) -> None:
        with session_scope(self._factory) as db:
            db.execute(delete(SessionRecord).where(SessionRecord.id == session_id))

    def _ping(self) -> None:
        with session_scope(self._factory) as db:
            db.execute(text("SELECT 1"))


__all__ = ["SqlAlchemySessionStore"]
