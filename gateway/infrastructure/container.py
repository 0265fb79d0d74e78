# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from functools import cached_property

import httpx
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from gateway.application.authorization import AuthorizationGate
from gateway.application.origin_policy import OriginPolicy
from gateway.application.sessions import SessionManager
from gateway.application.use_cases.users import (
    SignInUseCase,
    SignOutUseCase,
    SignUpUseCase,
)
from gateway.domain.sessions import SessionStore
from gateway.infrastructure.db import build_engine, build_session_factory
from gateway.infrastructure.downstream import DownstreamService
from gateway.infrastructure.resilience import CircuitBreaker
from gateway.infrastructure.sessions import (
    InMemorySessionStore,
    ResilientSessionStore,
    SqlAlchemySessionStore,
)
from gateway.interfaces.http.controllers.misc_controller import MiscController
from gateway.interfaces.http.controllers.payments_controller import PaymentsController
from gateway.interfaces.http.controllers.users_controller import UsersController
from gateway.shared.config import AppConfig
from gateway.shared.middleware.rate_limit import InMemoryRateLimiter


class Container:
    """Wires one application instance.

    ``session_store`` replaces the raw backend (it is still wrapped with
    timeouts and the circuit breaker). ``transport`` is handed to every
    downstream client, which lets tests answer with ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        session_store: SessionStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._raw_store = session_store
        self._transport = transport

    # Storage

    @cached_property
    def engine(self) -> Engine:
        return build_engine(self.config.database)

    @cached_property
    def session_factory(self) -> sessionmaker[Session]:
        return build_session_factory(self.engine)

    @property
    def uses_database(self) -> bool:
        return self._raw_store is None and self.config.session.store_backend == "sqlalchemy"

    @cached_property
    def store_breaker(self) -> CircuitBreaker:
        resilience = self.config.resilience
        return CircuitBreaker(
            failure_threshold=resilience.circuit_fail_threshold,
            reset_timeout=resilience.circuit_reset_timeout,
            name="session_store",
        )

    @cached_property
    def session_store(self) -> ResilientSessionStore:
        inner = self._raw_store
        if inner is None:
            if self.config.session.store_backend == "memory":
                inner = InMemorySessionStore()
            else:
                inner = SqlAlchemySessionStore(self.session_factory)
        return ResilientSessionStore(
            inner,
            timeout=self.config.session.store_timeout,
            retries=self.config.session.store_retries,
            breaker=self.store_breaker,
            backoff_base=self.config.resilience.backoff_base,
            backoff_cap=self.config.resilience.backoff_cap,
        )

    # Request pipeline

    @cached_property
    def session_manager(self) -> SessionManager:
        return SessionManager(
            self.session_store,
            secret=self.config.session.secret,
            idle_timeout=self.config.session.idle_timeout,
        )

    @cached_property
    def origin_policy(self) -> OriginPolicy:
        return OriginPolicy(self.config.security.allowed_origins)

    @cached_property
    def authorization_gate(self) -> AuthorizationGate:
        return AuthorizationGate()

    # Collaborators

    @cached_property
    def payments_service(self) -> DownstreamService:
        return DownstreamService(
            "payments",
            self.config.downstream.payments_url,
            timeout=self.config.downstream.timeout,
            transport=self._transport,
        )

    @cached_property
    def users_service(self) -> DownstreamService:
        return DownstreamService(
            "users",
            self.config.downstream.users_url,
            timeout=self.config.downstream.timeout,
            transport=self._transport,
        )

    # Use cases

    @cached_property
    def sign_in_use_case(self) -> SignInUseCase:
        return SignInUseCase(users=self.users_service, sessions=self.session_manager)

    @cached_property
    def sign_up_use_case(self) -> SignUpUseCase:
        return SignUpUseCase(users=self.users_service, sessions=self.session_manager)

    @cached_property
    def sign_out_use_case(self) -> SignOutUseCase:
        return SignOutUseCase(sessions=self.session_manager)

    # Controllers

    @cached_property
    def auth_rate_limiter(self) -> InMemoryRateLimiter | None:
        security = self.config.security
        if not security.enable_rate_limit:
            return None
        return InMemoryRateLimiter(security.rate_limit_requests, security.rate_limit_window)

    @cached_property
    def misc_controller(self) -> MiscController:
        return MiscController(store=self.session_store)

    @cached_property
    def users_controller(self) -> UsersController:
        return UsersController(
            users=self.users_service,
            sign_in_use_case=self.sign_in_use_case,
            sign_up_use_case=self.sign_up_use_case,
            sign_out_use_case=self.sign_out_use_case,
            limiter=self.auth_rate_limiter,
        )

    @cached_property
    def payments_controller(self) -> PaymentsController:
        return PaymentsController(payments=self.payments_service)


__all__ = ["Container"]
