# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import json
from typing import Any

from gateway.application.sessions import SessionManager
from gateway.domain.sessions import Identity, Session
from gateway.infrastructure.audit import AuditAction, audit_log
from gateway.infrastructure.downstream import DownstreamResponse, DownstreamService
from gateway.shared.errors import InvalidIdentityError
from gateway.shared.logging import logger

_JSON_HEADERS = (("Content-Type", "application/json"), ("Accept", "application/json"))


def identity_from_response(response: DownstreamResponse, service: str) -> Identity:
    """Read the ``user`` record a users service returns after verifying credentials."""
    try:
        body = response.json()
    except ValueError as exc:
        raise InvalidIdentityError(service) from exc

    user = body.get("user") if isinstance(body, dict) else None
    if not isinstance(user, dict):
        raise InvalidIdentityError(service)

    identity = Identity.parse(
        {
            "account_id": user.get("account_id", user.get("id")),
            "display_name": user.get("display_name", user.get("name")),
        }
    )
    if identity is None:
        raise InvalidIdentityError(service)
    return identity


class _EstablishIdentityUseCase:
    remote_path: str
    success_action: AuditAction
    failure_action: AuditAction

    def __init__(self, *, users: DownstreamService, sessions: SessionManager) -> None:
        self._users = users
        self._sessions = sessions

    async def execute(
        self,
        session: Session,
        payload: dict[str, Any],
        *,
        ip_address: str | None = None,
    ) -> DownstreamResponse:
        response = await self._users.forward(
            "POST",
            self.remote_path,
            headers=_JSON_HEADERS,
            body=json.dumps(payload).encode("utf-8"),
            client_ip=ip_address,
        )
        username = payload.get("username")

        if not response.ok:
            audit_log(
                self.failure_action,
                ip_address=ip_address,
                details={"username": username, "status": response.status_code},
                success=False,
            )
            return response

        identity = identity_from_response(response, self._users.name)
        await self._sessions.sign_in(session, identity)

        audit_log(
            self.success_action,
            account_id=identity.account_id,
            ip_address=ip_address,
            details={"username": username},
            success=True,
        )
        logger.info(f"users.{self.remote_path.strip('/')}: ok account={identity.account_id}")
        return response


class SignInUseCase(_EstablishIdentityUseCase):
    remote_path = "/signin"
    success_action = AuditAction.SIGNIN_SUCCESS
    failure_action = AuditAction.SIGNIN_FAILED


class SignUpUseCase(_EstablishIdentityUseCase):
    remote_path = "/signup"
    success_action = AuditAction.SIGNUP_SUCCESS
    failure_action = AuditAction.SIGNUP_FAILED


__all__ = ["SignInUseCase", "SignUpUseCase", "identity_from_response"]
