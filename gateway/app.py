# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Flask, Response
from sqlalchemy.engine import make_url

from gateway.infrastructure.container import Container
from gateway.infrastructure.db import init_db
from gateway.interfaces.http.routes import register_routes
from gateway.shared.config import AppConfig, SecurityConfig, load_config
from gateway.shared.logging import logger, setup_logging
from gateway.shared.middleware.authorization import configure_authorization
from gateway.shared.middleware.error_handler import configure_error_handling
from gateway.shared.middleware.origin import configure_origin_policy
from gateway.shared.middleware.request_logger import configure_request_logging
from gateway.shared.middleware.sessions import configure_sessions


def _configure_security_headers(app: Flask, security: SecurityConfig) -> None:
    @app.after_request
    def _add_security_headers(resp: Response) -> Response:
        resp.headers.setdefault("X-Frame-Options", "DENY")
        resp.headers.setdefault("Referrer-Policy", "no-referrer")
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("X-Permitted-Cross-Domain-Policies", "none")

        if security.enable_hsts:
            resp.headers.setdefault(
                "Strict-Transport-Security",
                "max-age=31536000; includeSubDomains",
            )

        return resp


def _log_startup(config: AppConfig, container: Container) -> None:
    origins = ", ".join(sorted(container.origin_policy.allowed_origins)) or "<none>"
    logger.info(f"cors: allowed origins {origins}")
    if container.uses_database:
        safe_url = make_url(config.database.url).render_as_string(hide_password=True)
        logger.info(f"session store: sqlalchemy {safe_url}")
    else:
        logger.info(f"session store: {type(container.session_store.inner).__name__}")
    logger.info(
        f"downstream: payments={container.payments_service.base_url} "
        f"users={container.users_service.base_url}"
    )


def create_app(config: AppConfig | None = None, container: Container | None = None) -> Flask:
    config = config or (container.config if container is not None else load_config())
    container = container or Container(config)

    setup_logging(
        config.log_level,
        log_file=config.log_file,
        access_log_file=config.access_log_file,
    )
    if container.uses_database:
        init_db(container.engine)

    app = Flask(__name__)
    configure_error_handling(app, debug_mode=config.debug_logging)

    # before_request hooks run in registration order.
    configure_request_logging(app, debug_mode=config.debug_logging)
    configure_origin_policy(app, container.origin_policy)
    configure_sessions(
        app,
        container.session_manager,
        session_config=config.session,
        security=config.security,
    )
    configure_authorization(app, container.authorization_gate)

    register_routes(app, container)
    _configure_security_headers(app, config.security)

    app.extensions["gateway.container"] = container
    _log_startup(config, container)
    logger.info("Flask app initialized")
    return app


__all__ = ["create_app"]
