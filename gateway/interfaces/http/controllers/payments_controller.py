# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Blueprint, Response

from gateway.infrastructure.downstream import DownstreamService

from .forwarding import forward_current_request

_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


class PaymentsController:
    """Everything under ``/payments`` belongs to the payments service."""

    def __init__(self, *, payments: DownstreamService) -> None:
        self._payments = payments

    def forward(self, subpath: str = "") -> Response:
        return forward_current_request(self._payments, subpath)

    def as_blueprint(self) -> Blueprint:
        bp = Blueprint("payments", __name__, url_prefix="/payments")
        bp.add_url_rule("", view_func=self.forward, methods=_METHODS, strict_slashes=False)
        bp.add_url_rule("/<path:subpath>", view_func=self.forward, methods=_METHODS)
        return bp
