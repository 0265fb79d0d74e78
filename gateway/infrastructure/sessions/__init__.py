# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .memory_store import InMemorySessionStore
from .resilient_store import ResilientSessionStore
from .sqlalchemy_store import SqlAlchemySessionStore

__all__ = ["InMemorySessionStore", "ResilientSessionStore", "SqlAlchemySessionStore"]
