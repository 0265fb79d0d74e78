# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Response, g, request

from gateway.infrastructure.downstream import DownstreamResponse, DownstreamService
from gateway.utils.asyncio_utils import run_async
from gateway.utils.http import client_ip


def relay(downstream: DownstreamResponse) -> Response:
    """Hand a collaborator's answer back to the client as received."""
    response = Response(downstream.content, status=downstream.status_code)
    # Flask's default mimetype must not mask what the collaborator sent.
    response.headers.pop("Content-Type", None)
    for key, value in downstream.headers:
        response.headers[key] = value
    return response


def forward_current_request(service: DownstreamService, path: str) -> Response:
    """Forward the active request to ``service`` under ``path`` with the caller's identity."""
    downstream = run_async(
        service.forward(
            request.method,
            path,
            headers=request.headers.items(),
            query=list(request.args.items(multi=True)),
            body=request.get_data(cache=False),
            identity=g.get("identity"),
            client_ip=client_ip(),
        )
    )
    return relay(downstream)


__all__ = ["forward_current_request", "relay"]
