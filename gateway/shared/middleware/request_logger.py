# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import re
import secrets
import time
from datetime import UTC, datetime
from typing import Any

from flask import Flask, Response, g, request

from gateway.shared.logging import (
    clear_correlation_id,
    get_correlation_id,
    log_access,
    logger,
    set_correlation_id,
    sid_prefix,
)
from gateway.utils.http import client_ip

_REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

_SENSITIVE_HEADERS = frozenset(
    {"authorization", "cookie", "x-api-key", "x-auth-token", "x-account-id"}
)
_SENSITIVE_PARAMS = ("password", "token", "key", "secret", "auth")


def _incoming_request_id() -> str:
    candidate = request.headers.get(_REQUEST_ID_HEADER, "")
    if _REQUEST_ID_RE.match(candidate):
        return candidate
    return secrets.token_urlsafe(8)


def _session_hint() -> str:
    session = getattr(g, "session", None)
    return sid_prefix(session.id if session is not None else None)


def _sanitize_headers(headers: dict[str, str]) -> dict[str, str]:
    return {
        key: ("<redacted>" if key.lower() in _SENSITIVE_HEADERS else value)
        for key, value in headers.items()
    }


def _sanitize_query_params(params: dict[str, Any]) -> dict[str, Any]:
    return {
        key: ("<redacted>" if any(s in key.lower() for s in _SENSITIVE_PARAMS) else value)
        for key, value in params.items()
    }


def _access_line(response: Response) -> str:
    # Common Log Format; the user field is always "-", identities stay out of access logs.
    timestamp = datetime.now(UTC).strftime("%d/%b/%Y:%H:%M:%S %z")
    path = request.full_path.rstrip("?") if request.query_string else request.path
    size = response.calculate_content_length()
    return (
        f'{client_ip()} - - [{timestamp}] "{request.method} {path} '
        f'{request.environ.get("SERVER_PROTOCOL", "HTTP/1.1")}" '
        f"{response.status_code} {size if size is not None else '-'}"
    )


def configure_request_logging(app: Flask, *, debug_mode: bool = False) -> None:
    """Install correlation ids, per-request application logs and the access log."""

    @app.before_request
    def _before_request() -> None:
        set_correlation_id(_incoming_request_id())
        g.request_start_time = time.perf_counter()

        if debug_mode:
            logger.info(
                f"Request started: {request.method} {request.path} from {client_ip()} "
                f"query={_sanitize_query_params(dict(request.args))} "
                f"headers={_sanitize_headers(dict(request.headers))} "
                f"body_size={request.content_length or 0}"
            )
        else:
            logger.debug(f"Request: {request.method} {request.path} from {client_ip()}")

    @app.after_request
    def _after_request(response: Response) -> Response:
        start = getattr(g, "request_start_time", None)
        duration = time.perf_counter() - start if start is not None else 0.0
        logger.info(
            f"Response: {request.method} {request.path} status={response.status_code} "
            f"duration={duration:.3f}s sid={_session_hint()}"
        )
        log_access(_access_line(response))
        response.headers[_REQUEST_ID_HEADER] = get_correlation_id()
        return response

    @app.teardown_request
    def _teardown_request(exc: BaseException | None) -> None:
        if exc is not None:
            logger.error(
                f"Request error: {type(exc).__name__} on {request.method} {request.path}"
            )
        clear_correlation_id()


__all__ = ["configure_request_logging"]
