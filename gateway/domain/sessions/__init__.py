# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .entities import USER_KEY, Identity, Session
from .repositories import SessionStore

__all__ = ["USER_KEY", "Identity", "Session", "SessionStore"]
