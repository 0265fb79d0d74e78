from __future__ import annotations

import pytest

from gateway.application.origin_policy import OriginPolicy

from .support import ORIGIN, OTHER_ORIGIN, PAYMENTS_HOST


@pytest.fixture()
def policy() -> OriginPolicy:
    return OriginPolicy([ORIGIN, OTHER_ORIGIN])


@pytest.mark.parametrize("origin", [None, ""])
def test_absent_origin_is_allowed_without_credentials(policy: OriginPolicy, origin) -> None:
    decision = policy.decide(origin)

    assert decision.allowed
    assert not decision.share_credentials


def test_exact_origin_shares_credentials(policy: OriginPolicy) -> None:
    decision = policy.decide(ORIGIN)

    assert decision.allowed
    assert decision.share_credentials
    assert decision.origin == ORIGIN


@pytest.mark.parametrize(
    "origin",
    [
        "https://evil.example.com",
        "https://app.example.com.evil.net",
        "http://app.example.com",
        "https://APP.example.com",
        "null",
    ],
)
def test_near_misses_are_denied(policy: OriginPolicy, origin: str) -> None:
    decision = policy.decide(origin)

    assert not decision.allowed
    assert not decision.share_credentials


def test_wildcard_is_refused() -> None:
    with pytest.raises(ValueError):
        OriginPolicy(["*", ORIGIN])


def test_cors_options_list_exact_origins(policy: OriginPolicy) -> None:
    options = policy.cors_options()

    assert options["origins"] == sorted([ORIGIN, OTHER_ORIGIN])
    assert options["supports_credentials"] is True
    assert "OPTIONS" in options["methods"]


def test_allowed_origin_gets_credential_headers(client) -> None:
    response = client.get("/", headers={"Origin": ORIGIN})

    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == ORIGIN
    assert response.headers["Access-Control-Allow-Credentials"] == "true"
    assert "Origin" in response.headers.get("Vary", "")


def test_request_without_origin_gets_no_cors_headers(client) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert "Access-Control-Allow-Origin" not in response.headers


def test_denied_origin_is_rejected_before_session_work(client, store, collaborators) -> None:
    response = client.post(
        "/payments/charge",
        headers={"Origin": "https://evil.example.com"},
        json={"amount": 10},
    )

    assert response.status_code == 403
    assert response.data == b""
    assert "Access-Control-Allow-Origin" not in response.headers
    assert "Set-Cookie" not in response.headers
    assert len(store) == 0
    assert collaborators.sent_to(PAYMENTS_HOST) == []


def test_preflight_from_allowed_origin_is_answered_directly(client, collaborators) -> None:
    response = client.options(
        "/payments/charge",
        headers={
            "Origin": ORIGIN,
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert response.status_code == 204
    assert response.headers["Access-Control-Allow-Origin"] == ORIGIN
    assert response.headers["Access-Control-Allow-Credentials"] == "true"
    assert "Set-Cookie" not in response.headers
    assert collaborators.requests == []


def test_preflight_on_unknown_path_is_still_no_content(client) -> None:
    response = client.options(
        "/does/not/exist",
        headers={"Origin": ORIGIN, "Access-Control-Request-Method": "GET"},
    )

    assert response.status_code == 204


def test_preflight_from_denied_origin_is_forbidden(client) -> None:
    response = client.options(
        "/payments/charge",
        headers={"Origin": "https://evil.example.com", "Access-Control-Request-Method": "POST"},
    )

    assert response.status_code == 403
    assert "Access-Control-Allow-Origin" not in response.headers
