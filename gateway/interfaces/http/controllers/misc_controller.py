# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Blueprint, jsonify

from gateway.domain.sessions import SessionStore
from gateway.infrastructure.health import check_session_store
from gateway.shared.errors import SessionStoreUnavailableError


class MiscController:
    def __init__(self, *, store: SessionStore) -> None:
        self._store = store

    def as_blueprint(self) -> Blueprint:
        bp = Blueprint("misc", __name__)
        bp.add_url_rule("/", view_func=self.index, methods=["GET"])
        bp.add_url_rule("/health", view_func=self.health, methods=["GET"])
        return bp

    def index(self):
        return jsonify({"message": "Hello, World!"})

    def health(self):
        status: dict[str, object] = {"ok": True}
        try:
            check_session_store(self._store)
            status["session_store"] = "ok"
        except SessionStoreUnavailableError as exc:
            status["ok"] = False
            status["session_store"] = f"error: {exc.code}"
            return jsonify(status), 503
        return jsonify(status)
