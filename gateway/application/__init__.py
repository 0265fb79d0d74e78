# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .authorization import AccessState, AuthorizationGate
from .origin_policy import OriginDecision, OriginPolicy
from .sessions import SessionManager

__all__ = [
    "AccessState",
    "AuthorizationGate",
    "OriginDecision",
    "OriginPolicy",
    "SessionManager",
]
