# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from gateway.domain.sessions import SessionStore
from gateway.infrastructure.resilience import CircuitBreaker, resilient_call
from gateway.shared.errors import SessionStoreUnavailableError
from gateway.shared.logging import logger, sid_prefix

T = TypeVar("T")


class ResilientSessionStore(SessionStore):
    """Bounds every store call in time and reports failures as one error type.

    A timeout, a backend exception or an open circuit all surface as
    ``SessionStoreUnavailableError``, never as a missing session.
    """

    def __init__(
        self,
        inner: SessionStore,
        *,
        timeout: float,
        retries: int = 0,
        breaker: CircuitBreaker | None = None,
        backoff_base: float = 0.05,
        backoff_cap: float = 1.0,
    ) -> None:
        self._inner = inner
        self._timeout = timeout
        self._retries = retries
        self._breaker = breaker
        self._backoff_base = backoff_base
        self._backoff_cap = backoff_cap

    @property
    def inner(self) -> SessionStore:
        return self._inner

    async def get(self, session_id: str) -> str | None:
        return await self._call("get", session_id, self._inner.get, session_id)

    async def set(self, session_id: str, payload: str, ttl_seconds: int) -> None:
        # A write that has started must finish even if the request goes away.
        write = asyncio.ensure_future(
            self._call("set", session_id, self._inner.set, session_id, payload, ttl_seconds)
        )
        await asyncio.shield(write)

    async def delete(self, session_id: str) -> None:
        await self._call("delete", session_id, self._inner.delete, session_id)

    async def ping(self) -> None:
        await self._call("ping", None, self._inner.ping)

    async def _call(
        self,
        operation: str,
        session_id: str | None,
        func: Callable[..., Awaitable[T]],
        *args: Any,
    ) -> T:
        try:
            return await resilient_call(
                func,
                *args,
                timeout=self._timeout,
                retries=self._retries,
                breaker=self._breaker,
                backoff_base=self._backoff_base,
                backoff_cap=self._backoff_cap,
            )
        except asyncio.CancelledError:
            raise
        except TimeoutError as exc:
            logger.error(
                f"session_store: {operation} timed out after {self._timeout:.2f}s "
                f"sid={sid_prefix(session_id)}"
            )
            raise SessionStoreUnavailableError(operation) from exc
        except Exception as exc:
            logger.error(
                f"session_store: {operation} failed ({type(exc).__name__}) "
                f"sid={sid_prefix(session_id)}"
            )
            raise SessionStoreUnavailableError(operation) from exc


__all__ = ["ResilientSessionStore"]
