# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from gateway.domain.sessions import SessionStore
from gateway.utils.asyncio_utils import run_async


def check_session_store(store: SessionStore) -> bool:
    run_async(store.ping())
    return True


__all__ = ["check_session_store"]
