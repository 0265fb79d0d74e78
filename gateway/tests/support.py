from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import httpx
from flask import Flask
from flask.testing import FlaskClient

from gateway.infrastructure.container import Container
from gateway.shared.config import (
    AppConfig,
    DownstreamConfig,
    ResilienceConfig,
    SecurityConfig,
    SessionConfig,
)

ORIGIN = "https://app.example.com"
OTHER_ORIGIN = "https://admin.example.com"
PAYMENTS_HOST = "payments.test"
USERS_HOST = "users.test"


def make_config(tmp_path: Path, **security_overrides) -> AppConfig:
    security = {
        "allowed_origins": (ORIGIN, OTHER_ORIGIN),
        "cookie_secure": True,
        "cookie_samesite": "Lax",
        "enable_rate_limit": False,
    }
    security.update(security_overrides)
    return AppConfig(
        app_env="test",
        log_level="DEBUG",
        log_file=tmp_path / "gateway.log",
        access_log_file=tmp_path / "access.log",
        session=SessionConfig(
            secret="test-secret-that-is-long-enough-for-signing",
            store_backend="memory",
            idle_timeout=3600,
            store_timeout=0.2,
            store_retries=0,
        ),
        downstream=DownstreamConfig(
            payments_url=f"http://{PAYMENTS_HOST}",
            users_url=f"http://{USERS_HOST}",
            timeout=1.0,
        ),
        resilience=ResilienceConfig(backoff_base=0.0, backoff_cap=0.0),
        security=SecurityConfig(**security),
    )


class Collaborators:
    """Fake payments and users services behind ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.users_reply: Callable[[httpx.Request], httpx.Response] = self._default_users
        self.payments_reply: Callable[[httpx.Request], httpx.Response] = self._default_payments

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == USERS_HOST:
            return self.users_reply(request)
        return self.payments_reply(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def sent_to(self, host: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.host == host]

    @staticmethod
    def _default_users(request: httpx.Request) -> httpx.Response:
        if request.url.path in ("/signin", "/signup"):
            body = json.loads(request.content)
            return httpx.Response(
                200,
                json={"user": {"account_id": f"acct-{body['username']}", "display_name": "Alice"}},
            )
        return httpx.Response(200, json={"path": request.url.path})

    @staticmethod
    def _default_payments(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, json={"charged": True, "path": request.url.path})


def container_of(app: Flask) -> Container:
    return app.extensions["gateway.container"]


def set_cookies(response) -> list[str]:
    return response.headers.getlist("Set-Cookie")


def session_cookie(response, name: str = "sid") -> str | None:
    for header in set_cookies(response):
        key, _, rest = header.partition("=")
        if key == name:
            value = rest.split(";", 1)[0]
            return value or None
    return None


def sign_in(client: FlaskClient, username: str = "alice") -> str:
    response = client.post("/user/signin", json={"username": username, "password": "pw"})
    assert response.status_code == 200
    cookie = session_cookie(response)
    assert cookie
    return cookie
