from __future__ import annotations

import asyncio

import httpx

from gateway.domain.sessions import USER_KEY
from gateway.infrastructure.downstream import ACCOUNT_HEADER
from gateway.infrastructure.sessions import InMemorySessionStore
from gateway.shared.middleware.sessions import PERSIST_STATUS_HEADER

from .support import (
    PAYMENTS_HOST,
    USERS_HOST,
    container_of,
    session_cookie,
    set_cookies,
    sign_in,
)


class SlowStore(InMemorySessionStore):
    async def get(self, session_id: str) -> str | None:
        await asyncio.sleep(1.0)
        return await super().get(session_id)


class WriteFailingStore(InMemorySessionStore):
    def __init__(self) -> None:
        super().__init__()
        self.fail_writes = False

    async def set(self, session_id: str, payload: str, ttl_seconds: int) -> None:
        if self.fail_writes:
            raise ConnectionError("store offline")
        await super().set(session_id, payload, ttl_seconds)


class FlakyStore(InMemorySessionStore):
    """Fails the next write or delete once, then behaves normally."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_next_set = False
        self.fail_next_delete = False

    async def set(self, session_id: str, payload: str, ttl_seconds: int) -> None:
        if self.fail_next_set:
            self.fail_next_set = False
            raise ConnectionError("store offline")
        await super().set(session_id, payload, ttl_seconds)

    async def delete(self, session_id: str) -> None:
        if self.fail_next_delete:
            self.fail_next_delete = False
            raise ConnectionError("store offline")
        await super().delete(session_id)


def _seed_session(app, data: dict) -> str:
    """Persist a session with ``data`` and return its signed cookie value."""
    manager = container_of(app).session_manager
    session = manager.new_session()
    for key, value in data.items():
        session.set(key, value)
    asyncio.run(manager.persist(session))
    return manager.sign(session.id)


def test_root_answers_hello_world_without_cookie(client) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert response.get_json() == {"message": "Hello, World!"}
    assert set_cookies(response) == []


def test_security_headers_and_request_id(client) -> None:
    response = client.get("/", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Referrer-Policy"] == "no-referrer"
    assert response.headers["X-Request-ID"] == "req-123"
    assert "Strict-Transport-Security" not in response.headers


def test_unmatched_path_is_not_found(client) -> None:
    response = client.get("/nowhere")

    assert response.status_code == 404
    assert response.get_json() == {"error": "not_found"}


def test_health_reports_store_status(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.get_json() == {"ok": True, "session_store": "ok"}


def test_anonymous_charge_is_unauthorized_and_not_forwarded(client, collaborators) -> None:
    response = client.post("/payments/charge", json={"amount": 100})

    assert response.status_code == 401
    assert response.get_json() == {"error": "unauthorized"}
    assert collaborators.sent_to(PAYMENTS_HOST) == []
    assert set_cookies(response) == []


def test_unauthorized_body_does_not_reveal_route_existence(client) -> None:
    existing = client.post("/payments/charge")
    missing = client.get("/payments/definitely/not/a/route")
    user_area = client.get("/user/profile")

    assert existing.status_code == missing.status_code == user_area.status_code == 401
    assert existing.data == missing.data == user_area.data


def test_sign_in_then_charge_is_forwarded_with_identity(client, collaborators) -> None:
    cookie = sign_in(client, "alice")

    response = client.post(
        "/payments/charge?currency=eur",
        json={"amount": 100},
        headers={"Cookie": f"sid={cookie}", ACCOUNT_HEADER: "spoofed"},
    )

    assert response.status_code == 201
    assert response.get_json() == {"charged": True, "path": "/charge"}

    forwarded = collaborators.sent_to(PAYMENTS_HOST)
    assert len(forwarded) == 1
    request = forwarded[0]
    assert request.method == "POST"
    assert request.url.path == "/charge"
    assert request.url.params["currency"] == "eur"
    assert request.headers[ACCOUNT_HEADER] == "acct-alice"
    assert "cookie" not in request.headers
    assert request.headers["X-Request-ID"] == response.headers["X-Request-ID"]


def test_sign_in_cookie_attributes(client) -> None:
    response = client.post("/user/signin", json={"username": "alice", "password": "pw"})

    assert response.status_code == 200
    header = next(h for h in set_cookies(response) if h.startswith("sid="))
    assert "HttpOnly" in header
    assert "Secure" in header
    assert "SameSite=Lax" in header
    assert "Path=/" in header
    assert "Max-Age=3600" in header


def test_existing_session_gets_rolling_cookie(client) -> None:
    cookie = sign_in(client)

    response = client.get("/", headers={"Cookie": f"sid={cookie}"})

    assert response.status_code == 200
    assert session_cookie(response) == cookie


def test_sign_in_relays_collaborator_rejection(client, collaborators, store) -> None:
    collaborators.users_reply = lambda request: httpx.Response(
        401, json={"error": "bad credentials"}
    )

    response = client.post("/user/signin", json={"username": "alice", "password": "wrong"})

    assert response.status_code == 401
    assert response.get_json() == {"error": "bad credentials"}
    assert set_cookies(response) == []
    assert len(store) == 0


def test_sign_in_with_ill_formed_identity_is_bad_gateway(client, collaborators, store) -> None:
    collaborators.users_reply = lambda request: httpx.Response(200, json={"user": {"name": "x"}})

    response = client.post("/user/signin", json={"username": "alice", "password": "pw"})

    assert response.status_code == 502
    assert response.get_json()["error"] == "invalid_identity"
    assert set_cookies(response) == []
    assert len(store) == 0


def test_sign_in_validates_body(client, collaborators) -> None:
    response = client.post("/user/signin", json={"username": ""})

    assert response.status_code == 422
    body = response.get_json()
    assert body["error"] == "validation_error"
    assert "password" in body["context"]["fields"]
    assert collaborators.sent_to(USERS_HOST) == []


def test_sign_up_establishes_session(client, collaborators) -> None:
    response = client.post(
        "/user/signup",
        json={"username": "carol", "password": "pw", "display_name": "Carol"},
    )

    assert response.status_code == 200
    assert session_cookie(response)
    sent = collaborators.sent_to(USERS_HOST)[0]
    assert sent.url.path == "/signup"
    assert b"Carol" in sent.content


def test_sign_out_clears_cookie_and_session(client, store) -> None:
    cookie = sign_in(client)
    assert len(store) == 1

    response = client.post("/user/signout", headers={"Cookie": f"sid={cookie}"})

    assert response.status_code == 200
    assert response.get_json() == {"ok": True}
    header = next(h for h in set_cookies(response) if h.startswith("sid="))
    assert "Max-Age=0" in header or "Expires=Thu, 01 Jan 1970" in header
    assert len(store) == 0

    after = client.post("/payments/charge", headers={"Cookie": f"sid={cookie}"})
    assert after.status_code == 401


def test_sign_out_is_idempotent_for_anonymous_clients(client, store) -> None:
    response = client.post("/user/signout")

    assert response.status_code == 200
    assert len(store) == 0


def test_ill_formed_identity_in_session_is_unauthenticated(app, client, collaborators) -> None:
    for record in ({"account_id": ""}, "alice", {"display_name": "no id"}):
        cookie = _seed_session(app, {USER_KEY: record})

        response = client.post("/payments/charge", headers={"Cookie": f"sid={cookie}"})

        assert response.status_code == 401
    assert collaborators.sent_to(PAYMENTS_HOST) == []


def test_tampered_cookie_is_anonymous(client) -> None:
    cookie = sign_in(client)
    tampered = ("A" if cookie[0] != "A" else "B") + cookie[1:]

    response = client.post("/payments/charge", headers={"Cookie": f"sid={tampered}"})

    assert response.status_code == 401


def test_users_area_is_forwarded_for_authenticated_clients(client, collaborators) -> None:
    cookie = sign_in(client, "dave")

    response = client.get("/user/profile", headers={"Cookie": f"sid={cookie}"})

    assert response.status_code == 200
    assert response.get_json() == {"path": "/profile"}
    sent = collaborators.sent_to(USERS_HOST)[-1]
    assert sent.headers[ACCOUNT_HEADER] == "acct-dave"


def test_local_user_actions_are_not_forwarded_on_other_methods(client, collaborators) -> None:
    cookie = sign_in(client)
    before = len(collaborators.requests)

    response = client.get("/user/signin", headers={"Cookie": f"sid={cookie}"})

    assert response.status_code == 405
    assert "POST" in response.headers["Allow"]
    assert len(collaborators.requests) == before


def test_collaborator_errors_are_relayed_verbatim(client, collaborators) -> None:
    collaborators.payments_reply = lambda request: httpx.Response(
        402, content=b"card declined", headers={"Content-Type": "text/plain"}
    )
    cookie = sign_in(client)

    response = client.post("/payments/charge", headers={"Cookie": f"sid={cookie}"})

    assert response.status_code == 402
    assert response.data == b"card declined"
    assert response.headers["Content-Type"] == "text/plain"


def test_unreachable_collaborator_is_bad_gateway(client, collaborators) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    cookie = sign_in(client)
    collaborators.payments_reply = refuse

    response = client.post("/payments/charge", headers={"Cookie": f"sid={cookie}"})

    assert response.status_code == 502
    assert response.get_json()["error"] == "downstream_unavailable"


def test_store_timeout_during_resolve_is_unavailable_without_cookie(build_app) -> None:
    app = build_app(SlowStore())
    client = app.test_client(use_cookies=False)
    credential = container_of(app).session_manager.sign("some-session-id")

    response = client.get("/", headers={"Cookie": f"sid={credential}"})

    assert response.status_code == 503
    assert response.get_json()["error"] == "session_store_unavailable"
    assert set_cookies(response) == []


def test_sign_in_with_store_down_is_unavailable(build_app) -> None:
    store = WriteFailingStore()
    store.fail_writes = True
    app = build_app(store)
    client = app.test_client(use_cookies=False)

    response = client.post("/user/signin", json={"username": "alice", "password": "pw"})

    assert response.status_code == 503
    assert set_cookies(response) == []


def test_failed_sign_in_write_is_not_retried_on_the_way_out(build_app) -> None:
    store = FlakyStore()
    store.fail_next_set = True
    app = build_app(store)
    client = app.test_client(use_cookies=False)

    response = client.post("/user/signin", json={"username": "alice", "password": "pw"})

    assert response.status_code == 503
    assert set_cookies(response) == []
    assert PERSIST_STATUS_HEADER not in response.headers
    assert len(store) == 0

    retry = sign_in(client)
    assert client.post("/payments/charge", headers={"Cookie": f"sid={retry}"}).status_code == 201


def test_failed_sign_out_leaves_session_signed_in(build_app, collaborators) -> None:
    store = FlakyStore()
    app = build_app(store)
    client = app.test_client(use_cookies=False)
    cookie = sign_in(client)

    store.fail_next_delete = True
    response = client.post("/user/signout", headers={"Cookie": f"sid={cookie}"})

    assert response.status_code == 503
    assert set_cookies(response) == []
    assert len(store) == 1

    after = client.post("/payments/charge", headers={"Cookie": f"sid={cookie}"})
    assert after.status_code == 201
    assert len(collaborators.sent_to(PAYMENTS_HOST)) == 1


def test_failed_write_back_keeps_response_and_reports_it(build_app) -> None:
    store = WriteFailingStore()
    app = build_app(store)
    client = app.test_client(use_cookies=False)
    cookie = sign_in(client)

    store.fail_writes = True
    response = client.get("/", headers={"Cookie": f"sid={cookie}"})

    assert response.status_code == 200
    assert response.get_json() == {"message": "Hello, World!"}
    assert response.headers[PERSIST_STATUS_HEADER] == "failed"
    assert set_cookies(response) == []


def test_sign_in_is_rate_limited_when_enabled(build_app) -> None:
    app = build_app(enable_rate_limit=True, rate_limit_requests=2)
    client = app.test_client(use_cookies=False)
    payload = {"username": "alice", "password": "pw"}

    assert client.post("/user/signin", json=payload).status_code == 200
    assert client.post("/user/signin", json=payload).status_code == 200
    limited = client.post("/user/signin", json=payload)

    assert limited.status_code == 429
    assert limited.get_json() == {"error": "rate_limited"}


def test_hsts_header_when_enabled(build_app) -> None:
    app = build_app(enable_hsts=True)

    response = app.test_client().get("/")

    assert response.headers["Strict-Transport-Security"].startswith("max-age=")
