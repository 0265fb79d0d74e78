# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Flask, g, request

from gateway.application.authorization import AuthorizationGate


def configure_authorization(app: Flask, gate: AuthorizationGate) -> None:
    """Refuse anonymous access to protected paths before routing."""

    @app.before_request
    def _authorize() -> None:
        g.identity = gate.authorize(request.path, g.get("session"))


__all__ = ["configure_authorization"]
