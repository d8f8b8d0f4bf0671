"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

GraphQL execution instrumentation and default normalizers.
"""

from .middleware import (
    CONTEXT_ATTR,
    CONTEXT_KEY,
    ResolverHooks,
    ResolverTimingMiddleware,
    attach_context,
    context_from_info,
)
from .normalize import (
    CLIENT_NAME_HEADER,
    CLIENT_VERSION_HEADER,
    normalize_client,
    normalize_query,
    query_signature,
)

__all__ = [
    "CONTEXT_KEY",
    "CONTEXT_ATTR",
    "ResolverHooks",
    "ResolverTimingMiddleware",
    "attach_context",
    "context_from_info",
    "CLIENT_NAME_HEADER",
    "CLIENT_VERSION_HEADER",
    "normalize_client",
    "normalize_query",
    "query_signature",
]
