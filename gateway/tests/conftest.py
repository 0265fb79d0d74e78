from __future__ import annotations

from pathlib import Path

import pytest
from flask import Flask
from flask.testing import FlaskClient

from gateway.app import create_app
from gateway.domain.sessions import SessionStore
from gateway.infrastructure.container import Container
from gateway.infrastructure.sessions import InMemorySessionStore

from .support import Collaborators, make_config


@pytest.fixture()
def collaborators() -> Collaborators:
    return Collaborators()


@pytest.fixture()
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture()
def build_app(tmp_path: Path, collaborators: Collaborators):
    def _build(
        session_store: SessionStore | None = None,
        **security_overrides,
    ) -> Flask:
        config = make_config(tmp_path, **security_overrides)
        container = Container(
            config,
            session_store=session_store if session_store is not None else InMemorySessionStore(),
            transport=collaborators.transport(),
        )
        return create_app(config, container)

    return _build


@pytest.fixture()
def app(build_app, store: InMemorySessionStore) -> Flask:
    return build_app(store)


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    # Cookies are passed explicitly so tests see exactly what the gateway issued.
    return app.test_client(use_cookies=False)
