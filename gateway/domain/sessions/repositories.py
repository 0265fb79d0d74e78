# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from typing import Protocol


class SessionStore(Protocol):
    """Key-value persistence for serialized session payloads.

    Stores know nothing about payload contents. ``get`` never returns an
    expired entry; ``set`` is an upsert and ``delete`` of a missing id is a
    no-op, so every operation is safe to retry. Backend failures are raised,
    never reported as a missing entry.
    """

    async def get(self, session_id: str) -> str | None: ...

    async def set(self, session_id: str, payload: str, ttl_seconds: int) -> None: ...

    async def delete(self, session_id: str) -> None: ...

    async def ping(self) -> None: ...
