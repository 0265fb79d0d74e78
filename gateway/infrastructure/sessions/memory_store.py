# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock

from gateway.domain.sessions import SessionStore
from gateway.shared.logging import logger, sid_prefix


@dataclass(slots=True)
class _Entry:
    payload: str
    expires_at: float


class InMemorySessionStore(SessionStore):
    """Process-local store; sessions do not survive a restart."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = Lock()
        self._entries: dict[str, _Entry] = {}

    async def get(self, session_id: str) -> str | None:
        with self._lock:
            entry = self._entries.get(session_id)
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                self._entries.pop(session_id, None)
                logger.debug(f"memory_store: expired sid={sid_prefix(session_id)}")
                return None
            return entry.payload

    async def set(self, session_id: str, payload: str, ttl_seconds: int) -> None:
        with self._lock:
            self._entries[session_id] = _Entry(payload, self._clock() + ttl_seconds)

    async def delete(self, session_id: str) -> None:
        with self._lock:
            self._entries.pop(session_id, None)

    async def ping(self) -> None:
        return None

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            stale = [key for key, entry in self._entries.items() if now >= entry.expires_at]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["InMemorySessionStore"]
