# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, ClassVar


@dataclass(slots=True)
class AppError(Exception):
    code: str
    status: HTTPStatus
    context: Mapping[str, Any] | None = None

    # Errors that must not leak a body (e.g. CORS denials) set this to False.
    exposes_body: ClassVar[bool] = True

    def __post_init__(self) -> None:
        Exception.__init__(self, self.code)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.code}
        if self.context:
            payload["context"] = dict(self.context)
        return payload


class InfrastructureError(AppError):
    def __init__(
        self,
        code: str = "infrastructure_error",
        *,
        status: HTTPStatus | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        resolved_status = status or HTTPStatus.INTERNAL_SERVER_ERROR
        super().__init__(code=code, status=resolved_status, context=context)


class ValidationError(AppError):
    def __init__(
        self,
        code: str = "validation_error",
        *,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            status=HTTPStatus.UNPROCESSABLE_ENTITY,
            context=context,
        )


class OriginRejectedError(AppError):
    exposes_body = False

    def __init__(self) -> None:
        super().__init__(code="origin_rejected", status=HTTPStatus.FORBIDDEN)


class UnauthorizedError(AppError):
    def __init__(self) -> None:
        super().__init__(code="unauthorized", status=HTTPStatus.UNAUTHORIZED)


class RouteNotFoundError(AppError):
    def __init__(self) -> None:
        super().__init__(code="not_found", status=HTTPStatus.NOT_FOUND)


class RateLimitedError(AppError):
    def __init__(self) -> None:
        super().__init__(code="rate_limited", status=HTTPStatus.TOO_MANY_REQUESTS)


class SessionStoreUnavailableError(InfrastructureError):
    def __init__(self, operation: str) -> None:
        super().__init__(
            "session_store_unavailable",
            status=HTTPStatus.SERVICE_UNAVAILABLE,
        )
        self.operation = operation


class DownstreamUnavailableError(InfrastructureError):
    def __init__(self, service: str) -> None:
        super().__init__(
            "downstream_unavailable",
            status=HTTPStatus.BAD_GATEWAY,
            context={"service": service},
        )


class InvalidIdentityError(InfrastructureError):
    def __init__(self, service: str) -> None:
        super().__init__(
            "invalid_identity",
            status=HTTPStatus.BAD_GATEWAY,
            context={"service": service},
        )
