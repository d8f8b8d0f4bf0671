"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Starlette / FastAPI request adapter.
"""

from __future__ import annotations

from starlette.requests import Request

from ..core.context import HTTPRequestInfo


def request_info_from_starlette(request: Request) -> HTTPRequestInfo:
    """Capture the request facts the agent needs from a Starlette request."""
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"
    client = request.client
    return HTTPRequestInfo(
        host=request.headers.get("host", ""),
        path=path,
        client_addr=client.host if client is not None else "",
        headers=dict(request.headers),
    )
