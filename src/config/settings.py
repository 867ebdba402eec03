"""
Configuration settings for the Hello MCP Server.

Settings are read once from the environment (and an optional ``.env`` file)
and frozen afterwards, so handlers can share one instance safely.
"""

from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

GRAPH_DEFAULT_SCOPE = "https://graph.microsoft.com/.default"


class HelloServerConfig(BaseSettings):
    """Hello MCP Server configuration.

    Groups:
    - Server settings (host, port, debug, name)
    - On-Behalf-Of settings (tenant, client credentials, downstream scopes)
    - Downstream Graph settings (profile endpoint, HTTP timeout)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra environment variables
        frozen=True,
    )

    # Server settings
    host: str = Field(default="0.0.0.0", description="Host to bind to")
    port: int = Field(default=9000, description="Port to bind to")
    debug: bool = Field(default=False, description="Enable debug mode")
    server_name: str = Field(default="HelloMcpServer", description="Server name")

    # On-Behalf-Of settings
    enable_obo: bool = Field(
        default=True, description="Exchange the caller's token for a Graph token"
    )
    tenant_id: Optional[str] = Field(default=None, description="Azure AD tenant ID")
    client_id: Optional[str] = Field(
        default=None, description="Application (client) ID"
    )
    client_secret: Optional[SecretStr] = Field(
        default=None,
        description="OAuth 2.0 client secret for On-Behalf-Of (OBO) token exchange",
    )
    federated_credential_oid: Optional[str] = Field(
        default=None,
        description="Client ID of the user-assigned managed identity used as a federated credential (secretless OBO flow).",
    )
    downstream_scopes: list[str] = Field(
        default_factory=lambda: [GRAPH_DEFAULT_SCOPE],
        description="Scopes requested for the downstream API (JSON list in env)",
    )
    authority_host: str = Field(
        default="https://login.microsoftonline.com",
        description="Identity provider host (override for sovereign clouds)",
    )

    # Downstream Graph settings
    graph_profile_url: str = Field(
        default="https://graph.microsoft.com/v1.0/me?$select=displayName",
        description="Graph endpoint used to resolve the caller's display name",
    )
    http_timeout_seconds: float = Field(
        default=10.0, description="Total timeout for outbound HTTP calls"
    )

    @property
    def token_endpoint(self) -> str:
        """OAuth 2.0 token endpoint for the configured tenant."""
        return f"{self.authority_host.rstrip('/')}/{self.tenant_id}/oauth2/v2.0/token"


# Global configuration instance - lazy initialized
_server_config: HelloServerConfig | None = None


def get_server_config(config: HelloServerConfig | None = None) -> HelloServerConfig:
    """Get the global server configuration with optional injection.

    Args:
        config: Optional config instance to inject (useful for testing).
                If provided, sets this as the global config.

    Returns:
        The global HelloServerConfig instance.
    """
    global _server_config
    if config is not None:
        _server_config = config
    if _server_config is None:
        _server_config = HelloServerConfig()
    return _server_config


def reset_config() -> None:
    """Reset the config singleton for testing."""
    global _server_config
    _server_config = None
