"""
Core module for MCP server components and factory patterns.
"""

from .exceptions import (
    ClaimsFormatError,
    ConfigurationError,
    MCPServerError,
    ProfileLookupError,
    ServiceRegistrationError,
    TokenExchangeError,
)
from .factory import Domain, MCPToolBase, MCPToolFactory

__all__ = [
    "Domain",
    "MCPToolBase",
    "MCPToolFactory",
    "MCPServerError",
    "ConfigurationError",
    "ServiceRegistrationError",
    "ClaimsFormatError",
    "TokenExchangeError",
    "ProfileLookupError",
]
