# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from gateway.domain.sessions import Identity, Session
from gateway.shared.errors import UnauthorizedError

PROTECTED_PREFIXES: tuple[str, ...] = ("/payments", "/user")

# Entry points that must work before a session carries an identity.
PUBLIC_PATHS: frozenset[str] = frozenset({"/user/signin", "/user/signup", "/user/signout"})


class AccessState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


def _normalize(path: str) -> str:
    if len(path) > 1:
        return path.rstrip("/") or "/"
    return path


class AuthorizationGate:
    """Decides from session contents alone whether a request may proceed."""

    def __init__(
        self,
        *,
        protected_prefixes: Iterable[str] = PROTECTED_PREFIXES,
        public_paths: Iterable[str] = PUBLIC_PATHS,
    ) -> None:
        self._prefixes = tuple(_normalize(prefix) for prefix in protected_prefixes)
        self._public = frozenset(_normalize(path) for path in public_paths)

    @staticmethod
    def state_of(session: Session | None) -> AccessState:
        if session is not None and session.identity is not None:
            return AccessState.AUTHENTICATED
        return AccessState.UNAUTHENTICATED

    def is_protected(self, path: str) -> bool:
        path = _normalize(path)
        if path in self._public:
            return False
        return any(path == prefix or path.startswith(prefix + "/") for prefix in self._prefixes)

    def authorize(self, path: str, session: Session | None) -> Identity | None:
        """Return the caller's identity, or raise for anonymous access to a protected path."""
        identity = session.identity if session is not None else None
        if identity is None and self.is_protected(path):
            raise UnauthorizedError()
        return identity


__all__ = ["PROTECTED_PREFIXES", "PUBLIC_PATHS", "AccessState", "AuthorizationGate"]
