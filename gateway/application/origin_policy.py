# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

CORS_METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "OPTIONS")
CORS_HEADERS: tuple[str, ...] = (
    "Content-Type",
    "Authorization",
    "Access-Control-Allow-Origin",
)


@dataclass(slots=True, frozen=True)
class OriginDecision:
    allowed: bool
    origin: str | None = None
    share_credentials: bool = False


class OriginPolicy:
    """Exact-match cross-origin policy.

    Requests without an Origin header are same-origin or non-browser and are
    allowed without CORS headers. Credentials are only ever shared with an
    origin that matched one of the configured values exactly.
    """

    def __init__(self, allowed_origins: Iterable[str]) -> None:
        origins = frozenset(allowed_origins)
        if "*" in origins:
            raise ValueError("wildcard origins cannot be combined with credentials")
        self._allowed = origins

    @property
    def allowed_origins(self) -> frozenset[str]:
        return self._allowed

    def decide(self, origin: str | None) -> OriginDecision:
        if not origin:
            return OriginDecision(allowed=True)
        if origin in self._allowed:
            return OriginDecision(allowed=True, origin=origin, share_credentials=True)
        return OriginDecision(allowed=False, origin=origin)

    def cors_options(self) -> dict[str, Any]:
        return {
            "origins": sorted(self._allowed),
            "methods": list(CORS_METHODS),
            "allow_headers": list(CORS_HEADERS),
            "supports_credentials": True,
            "vary_header": True,
        }


__all__ = ["CORS_HEADERS", "CORS_METHODS", "OriginDecision", "OriginPolicy"]
