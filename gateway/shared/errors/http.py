# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from http import HTTPStatus

from flask import Flask, Response, g, jsonify, request
from werkzeug.exceptions import HTTPException, NotFound

from gateway.shared.logging import logger, sid_prefix

from .base import AppError, RouteNotFoundError


def handle_app_error(error: AppError) -> tuple[Response, HTTPStatus]:
    if not error.exposes_body:
        return Response(status=error.status), error.status
    response = jsonify(error.to_dict())
    return response, error.status


def _session_hint() -> str:
    session = getattr(g, "session", None)
    return sid_prefix(session.id if session is not None else None)


def register_error_handler(
    app: Flask,
    *,
    debug_mode: bool = False,
    default_status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR,
) -> None:
    @app.errorhandler(AppError)
    def _handle_app_error(exc: AppError):
        if exc.status >= HTTPStatus.INTERNAL_SERVER_ERROR:
            logger.error(
                f"Gateway error {exc.code} on {request.method} {request.path} sid={_session_hint()}"
            )
        else:
            logger.warning(
                f"Handled {exc.code} on {request.method} {request.path} sid={_session_hint()}"
            )
        return handle_app_error(exc)

    @app.errorhandler(NotFound)
    def _handle_not_found(_: NotFound):
        return handle_app_error(RouteNotFoundError())

    @app.errorhandler(HTTPException)
    def _handle_http(exc: HTTPException):
        code = (exc.name or "http_error").lower().replace(" ", "_")
        response = jsonify({"error": code})
        response.status_code = exc.code or default_status
        if exc.code == HTTPStatus.METHOD_NOT_ALLOWED:
            allowed = exc.get_headers()
            for key, value in allowed:
                if key.lower() == "allow":
                    response.headers["Allow"] = value
        return response

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        if debug_mode:
            logger.exception(
                f"Unhandled exception: {request.method} {request.path} "
                f"sid={_session_hint()} query={dict(request.args)}"
            )
        else:
            logger.error(f"Error: {type(exc).__name__} on {request.method} {request.path}")

        response = jsonify({"error": "internal_error"})
        return response, default_status


__all__ = ["handle_app_error", "register_error_handler"]
