# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .manager import SessionManager, generate_session_id

__all__ = ["SessionManager", "generate_session_id"]
