"""
Utilities module for the Hello MCP Server.
"""

from .auth_utils import (
    get_request_headers,
    parse_bearer,
    resolve_user_token,
)
from .formatters import format_json_response
from .http import close_http_session, get_http_session, http_session_lifespan

__all__ = [
    "get_request_headers",
    "parse_bearer",
    "resolve_user_token",
    "format_json_response",
    "get_http_session",
    "close_http_session",
    "http_session_lifespan",
]
