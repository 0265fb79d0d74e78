# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Flask, Response, request
from flask_cors import CORS

from gateway.application.origin_policy import OriginPolicy
from gateway.shared.errors import OriginRejectedError
from gateway.shared.logging import logger
from gateway.utils.http import is_preflight


def configure_origin_policy(app: Flask, policy: OriginPolicy) -> None:
    """Reject foreign origins and answer preflights before any session work.

    flask-cors renders the response headers from the same exact-origin list.
    """
    CORS(app, resources={r"/*": policy.cors_options()})

    @app.before_request
    def _enforce_origin_policy():
        origin = request.headers.get("Origin")
        decision = policy.decide(origin)
        if not decision.allowed:
            logger.warning(f"cors: rejected origin={origin!r} on {request.method} {request.path}")
            raise OriginRejectedError()
        if is_preflight():
            return Response(status=204)
        return None


__all__ = ["configure_origin_policy"]
