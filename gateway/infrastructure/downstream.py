# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from gateway.domain.sessions import Identity
from gateway.shared.errors import DownstreamUnavailableError
from gateway.shared.logging import get_correlation_id, logger

ACCOUNT_HEADER = "X-Account-Id"

_HOP_BY_HOP = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "trailers",
        "transfer-encoding",
        "upgrade",
    }
)

# Never passed on: the gateway owns the session credential and the identity header.
_STRIPPED_REQUEST = _HOP_BY_HOP | {
    "host",
    "cookie",
    "content-length",
    "x-request-id",
    "x-forwarded-for",
    ACCOUNT_HEADER.lower(),
}

_RELAYED_RESPONSE = frozenset({"content-type", "cache-control", "location", "retry-after"})


@dataclass(slots=True, frozen=True)
class DownstreamResponse:
    status_code: int
    content: bytes = b""
    headers: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        return json.loads(self.content)


def _forwardable(headers: Iterable[tuple[str, str]]) -> dict[str, str]:
    return {key: value for key, value in headers if key.lower() not in _STRIPPED_REQUEST}


class DownstreamService:
    """HTTP client for one downstream collaborator.

    Statuses and bodies are relayed as received. Only transport failures
    and timeouts are turned into gateway errors.
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        *,
        timeout: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.name = name
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    async def forward(
        self,
        method: str,
        path: str,
        *,
        headers: Iterable[tuple[str, str]] = (),
        query: Mapping[str, Any] | Iterable[tuple[str, str]] | None = None,
        body: bytes | None = None,
        identity: Identity | None = None,
        client_ip: str | None = None,
    ) -> DownstreamResponse:
        outgoing = _forwardable(headers)
        if identity is not None:
            outgoing[ACCOUNT_HEADER] = identity.account_id
        correlation_id = get_correlation_id()
        if correlation_id != "-":
            outgoing["X-Request-ID"] = correlation_id
        if client_ip:
            outgoing["X-Forwarded-For"] = client_ip

        url = f"{self._base_url}/{path.lstrip('/')}"
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as http:
            try:
                response = await http.request(
                    method,
                    url,
                    headers=outgoing,
                    params=query,
                    content=body or None,
                )
            except httpx.TimeoutException as exc:
                logger.error(f"downstream: {self.name} timed out {method} /{path.lstrip('/')}")
                raise DownstreamUnavailableError(self.name) from exc
            except httpx.TransportError as exc:
                logger.error(
                    f"downstream: {self.name} unreachable {method} /{path.lstrip('/')} "
                    f"({type(exc).__name__})"
                )
                raise DownstreamUnavailableError(self.name) from exc

        logger.info(
            f"downstream: {self.name} {method} /{path.lstrip('/')} -> {response.status_code}"
        )
        relayed = tuple(
            (key, value)
            for key, value in response.headers.items()
            if key.lower() in _RELAYED_RESPONSE
        )
        return DownstreamResponse(
            status_code=response.status_code,
            content=response.content,
            headers=relayed,
        )


__all__ = ["ACCOUNT_HEADER", "DownstreamResponse", "DownstreamService"]
