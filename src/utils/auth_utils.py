"""
Authentication utilities for MCP server.

Provides helpers for locating the caller's access token in request headers.
The token is passed through as-is; it is neither decoded nor validated here.
"""

import logging
from typing import Any, Mapping, Optional

from fastmcp.server.dependencies import get_http_request
from multidict import CIMultiDict

logger = logging.getLogger(__name__)

# Injected by App Service / Container Apps authentication (EasyAuth)
EASY_AUTH_TOKEN_HEADER = "X-MS-TOKEN-AAD-ACCESS-TOKEN"
AUTHORIZATION_HEADER = "Authorization"
BEARER_PREFIX = "bearer "


def get_request_headers(ctx: Any) -> Optional[Mapping[str, str]]:
    """Return the HTTP headers of the request behind a tool invocation.

    Args:
        ctx: FastMCP Context for the current tool call.

    Returns:
        The request headers, or None when no HTTP request is reachable
        (e.g. stdio transport or a call outside a request).
    """
    request_context = getattr(ctx, "request_context", None)
    request = getattr(request_context, "request", None)

    if request is None:
        # Before the MCP session is bound the HTTP request is only in FastMCP's context
        try:
            request = get_http_request()
        except RuntimeError as e:
            logger.warning("No HTTP request available: %s", e)
            return None

    return request.headers


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    """Strip a case-insensitive ``Bearer`` scheme from an Authorization value.

    Returns None for other schemes or an empty credential.
    """
    if not authorization:
        return None
    value = authorization.strip()
    if not value.lower().startswith(BEARER_PREFIX):
        return None
    return value[len(BEARER_PREFIX):].strip() or None


def resolve_user_token(headers: Mapping[str, str]) -> Optional[str]:
    """Find the caller's access token.

    The platform-injected EasyAuth header wins over ``Authorization: Bearer``
    whenever it is present, even if blank.

    Args:
        headers: Request headers. Names are matched case-insensitively.

    Returns:
        The raw token string, or None if the caller sent none.
    """
    lookup = CIMultiDict(headers)

    if EASY_AUTH_TOKEN_HEADER in lookup:
        logger.debug("Using token from %s header", EASY_AUTH_TOKEN_HEADER)
        return lookup[EASY_AUTH_TOKEN_HEADER].strip() or None

    return parse_bearer(lookup.get(AUTHORIZATION_HEADER))
