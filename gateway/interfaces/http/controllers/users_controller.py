# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Blueprint, Response, g, jsonify, request
from pydantic import ValidationError
from werkzeug.exceptions import MethodNotAllowed

from gateway.application.use_cases.users import (
    SignInUseCase,
    SignOutUseCase,
    SignUpUseCase,
)
from gateway.infrastructure.downstream import DownstreamService
from gateway.interfaces.http.dto.users import (
    SignInRequestDTO,
    SignOutResponseDTO,
    SignUpRequestDTO,
)
from gateway.shared.errors.validation import raise_validation_error
from gateway.shared.logging import logger
from gateway.shared.middleware.rate_limit import InMemoryRateLimiter, rate_limit
from gateway.utils.asyncio_utils import run_async
from gateway.utils.http import client_ip

from .forwarding import forward_current_request, relay

_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]

# Handled by the gateway itself, never forwarded.
_LOCAL_ACTIONS = frozenset({"signin", "signup", "signout"})


class UsersController:
    def __init__(
        self,
        *,
        users: DownstreamService,
        sign_in_use_case: SignInUseCase,
        sign_up_use_case: SignUpUseCase,
        sign_out_use_case: SignOutUseCase,
        limiter: InMemoryRateLimiter | None = None,
    ) -> None:
        self._users = users
        self._sign_in_use_case = sign_in_use_case
        self._sign_up_use_case = sign_up_use_case
        self._sign_out_use_case = sign_out_use_case
        self._limiter = limiter

    def sign_in(self) -> Response:
        try:
            dto = SignInRequestDTO.model_validate(request.get_json(silent=True) or {})
        except ValidationError as exc:
            raise_validation_error(exc)

        downstream = run_async(
            self._sign_in_use_case.execute(
                g.session, dto.model_dump(exclude_none=True), ip_address=client_ip()
            )
        )
        return relay(downstream)

    def sign_up(self) -> Response:
        try:
            dto = SignUpRequestDTO.model_validate(request.get_json(silent=True) or {})
        except ValidationError as exc:
            raise_validation_error(exc)

        downstream = run_async(
            self._sign_up_use_case.execute(
                g.session, dto.model_dump(exclude_none=True), ip_address=client_ip()
            )
        )
        return relay(downstream)

    def sign_out(self) -> tuple[Response, int]:
        run_async(self._sign_out_use_case.execute(g.session, ip_address=client_ip()))
        logger.info("users.signout: ok")
        return jsonify(SignOutResponseDTO().model_dump()), 200

    def forward(self, subpath: str) -> Response:
        if subpath.strip("/") in _LOCAL_ACTIONS:
            raise MethodNotAllowed(valid_methods=["POST"])
        return forward_current_request(self._users, subpath)

    def as_blueprint(self) -> Blueprint:
        bp = Blueprint("users", __name__, url_prefix="/user")
        limited = rate_limit(self._limiter)
        bp.add_url_rule("/signin", view_func=limited(self.sign_in), methods=["POST"])
        bp.add_url_rule("/signup", view_func=limited(self.sign_up), methods=["POST"])
        bp.add_url_rule("/signout", view_func=self.sign_out, methods=["POST"])
        bp.add_url_rule("/<path:subpath>", view_func=self.forward, methods=_METHODS)
        return bp
