# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Use-case for ending a browser session."""

from __future__ import annotations

from gateway.application.sessions import SessionManager
from gateway.domain.sessions import Session
from gateway.infrastructure.audit import AuditAction, audit_log


class SignOutUseCase:
    def __init__(self, *, sessions: SessionManager) -> None:
        self._sessions = sessions

    async def execute(self, session: Session, *, ip_address: str | None = None) -> None:
        identity = session.identity
        await self._sessions.sign_out(session)
        audit_log(
            AuditAction.SIGNOUT,
            account_id=identity.account_id if identity else None,
            ip_address=ip_address,
            success=True,
        )

__all__ = ["SignOutUseCase"]
