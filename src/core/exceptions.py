"""
Custom exception hierarchy for the MCP server.

Identity-resolution errors (claims, exchange, profile) are caught by the
greeting handler and degrade the response; configuration and registration
errors stop the server from starting.
"""


class MCPServerError(Exception):
    """
    Base exception for all MCP server errors.

    All custom exceptions in the MCP server should inherit from this class
    to allow catching all MCP-related errors with a single except clause.
    """

    pass


class ConfigurationError(MCPServerError):
    """
    Configuration validation failed.

    Raised when required configuration values are missing or invalid.
    Examples:
    - Missing TENANT_ID when the OBO exchange is enabled
    - Neither CLIENT_SECRET nor FEDERATED_CREDENTIAL_OID configured
    """

    pass


class ServiceRegistrationError(MCPServerError):
    """
    Service registration failed.

    Raised when a service cannot be registered with the factory,
    e.g. a second service for an already registered domain.
    """

    pass


class ClaimsFormatError(MCPServerError, ValueError):
    """
    A token could not be decoded into claims.

    Raised for tokens with fewer than two segments, payloads that are not
    valid base64url, UTF-8 or a JSON object.
    """

    pass


class TokenExchangeError(MCPServerError):
    """
    On-Behalf-Of token exchange failed.

    Covers network errors, rejected assertions, missing consent and
    missing credentials. Not retried.
    """

    pass


class ProfileLookupError(MCPServerError):
    """Downstream profile lookup failed or returned no display name."""

    pass
