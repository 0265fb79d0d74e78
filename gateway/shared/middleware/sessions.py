# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Flask, Response, g, request

from gateway.application.sessions import SessionManager
from gateway.shared.config import SecurityConfig, SessionConfig
from gateway.shared.errors import SessionStoreUnavailableError
from gateway.shared.logging import logger, sid_prefix
from gateway.utils.asyncio_utils import run_async

PERSIST_STATUS_HEADER = "X-Session-Persist"


def configure_sessions(
    app: Flask,
    manager: SessionManager,
    *,
    session_config: SessionConfig,
    security: SecurityConfig,
) -> None:
    """Attach ``g.session`` to every request and write it back on the way out.

    A store failure while loading fails the request with 503, as does one
    raised by a handler's own session write; that session is then left as
    the store last saw it, with no cookie change. A failure while writing
    back leaves the already computed response untouched apart from
    ``X-Session-Persist: failed`` and the missing cookie.
    """
    cookie_name = session_config.cookie_name

    def _set_cookie(response: Response, session_id: str) -> None:
        response.set_cookie(
            cookie_name,
            manager.sign(session_id),
            max_age=manager.idle_timeout,
            path="/",
            domain=security.cookie_domain,
            secure=security.cookie_secure,
            httponly=True,
            samesite=security.cookie_samesite,
        )

    def _clear_cookie(response: Response) -> None:
        response.delete_cookie(
            cookie_name,
            path="/",
            domain=security.cookie_domain,
            secure=security.cookie_secure,
            httponly=True,
            samesite=security.cookie_samesite,
        )

    @app.before_request
    def _resolve_session() -> None:
        session, is_new = run_async(manager.resolve(request.cookies.get(cookie_name)))
        g.session = session
        if is_new and request.cookies.get(cookie_name):
            logger.debug("session: presented credential did not resolve, issued a fresh session")

    @app.after_request
    def _commit_session(response: Response) -> Response:
        session = g.get("session")
        # A store write that failed inside the handler already ended the request with 503.
        if session is None or session.write_failed:
            return response

        if session.invalidated:
            _clear_cookie(response)
            return response

        if session.needs_persist:
            try:
                run_async(manager.persist(session))
            except SessionStoreUnavailableError:
                logger.error(
                    f"session: write-back failed after {request.method} {request.path} "
                    f"status={response.status_code} sid={sid_prefix(session.id)}"
                )
                response.headers[PERSIST_STATUS_HEADER] = "failed"
                return response

        if session.persisted:
            _set_cookie(response, session.id)
        return response


__all__ = ["PERSIST_STATUS_HEADER", "configure_sessions"]
