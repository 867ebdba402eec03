"""
Configuration module for the Hello MCP Server.
"""

from .settings import (
    GRAPH_DEFAULT_SCOPE,
    HelloServerConfig,
    get_server_config,
    reset_config,
)

__all__ = [
    "GRAPH_DEFAULT_SCOPE",
    "HelloServerConfig",
    "get_server_config",
    "reset_config",
]
