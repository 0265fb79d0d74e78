# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Request, request


def client_ip(req: Request | None = None) -> str:
    req = req or request
    forwarded = req.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return req.remote_addr or "unknown"


def is_preflight(req: Request | None = None) -> bool:
    req = req or request
    return req.method == "OPTIONS"
