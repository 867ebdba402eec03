"""
Hello MCP Server - FastMCP server exposing the ``hello`` greeting tool.

This module wires together:
- Configuration loading and validation for the On-Behalf-Of (OBO) flow
- Tool service registration through the MCP tool factory
- A shared outbound HTTP session owned by the server lifespan
- Health check endpoint for container orchestration

Usage:
    # Run with the OBO exchange disabled (claims-only greeting)
    python server.py --no-obo

    # Run with the OBO exchange enabled
    python server.py

    # Run with debug logging
    python server.py --debug
"""

import argparse
import logging
from typing import Any, Optional, cast

from config.settings import HelloServerConfig, get_server_config
from core.exceptions import ConfigurationError, ServiceRegistrationError
from core.factory import MCPToolBase, MCPToolFactory
from fastmcp import FastMCP
from fastmcp.server.server import Transport
from services.hello_service import HelloService
from starlette.requests import Request
from starlette.responses import JSONResponse
from utils.http import http_session_lifespan

# Setup logging - will be reconfigured based on config
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# =============================================================================
# Service Registration
# =============================================================================


def get_default_services(config: HelloServerConfig) -> list[MCPToolBase]:
    """Return default service instances.

    Args:
        config: The server configuration handed to each service.

    Returns:
        List containing the HelloService instance.
    """
    return [
        HelloService(config),
    ]


def create_factory(
    config: Optional[HelloServerConfig] = None,
    services: Optional[list[MCPToolBase]] = None,
) -> MCPToolFactory:
    """Create factory with services.

    Args:
        config: Optional config instance. If None, uses global config.
        services: Optional list of services to register. If None, uses defaults.

    Returns:
        Configured MCPToolFactory instance.
    """
    factory = MCPToolFactory()
    for service in services or get_default_services(config or get_server_config()):
        factory.register_service(service)
    return factory


# =============================================================================
# Endpoint Registration
# =============================================================================


def register_health_endpoint(mcp_server: FastMCP) -> None:
    """Register health check endpoint for container orchestration.

    Args:
        mcp_server: The FastMCP server instance.
    """

    @mcp_server.custom_route("/health", methods=["GET"], name="health_check")
    async def health_check(request: Request) -> JSONResponse:
        """Simple health check endpoint for container orchestration."""
        return JSONResponse(
            content={"status": "healthy", "service": "hello-mcp-server"},
            headers={"Content-Type": "application/json"},
        )

    logger.info("Health check endpoint registered at /health")


# =============================================================================
# Server Initialization
# =============================================================================


def validate_obo_config(config: HelloServerConfig) -> None:
    """Validate On-Behalf-Of configuration.

    Args:
        config: The server configuration.

    Raises:
        ConfigurationError: If OBO is enabled but required values are missing.
    """
    if not config.enable_obo:
        logger.info("OBO exchange disabled; greetings will use token claims only")
        return

    missing = []
    if not config.tenant_id:
        missing.append("TENANT_ID")
    if not config.client_id:
        missing.append("CLIENT_ID")
    if not config.downstream_scopes:
        missing.append("DOWNSTREAM_SCOPES")

    has_client_secret = config.client_secret and config.client_secret.get_secret_value()
    has_federated_credential = bool(config.federated_credential_oid)
    if not has_client_secret and not has_federated_credential:
        missing.append("CLIENT_SECRET or FEDERATED_CREDENTIAL_OID")

    if missing:
        logger.error(
            "ENABLE_OBO=true but required config missing",
            extra={"missing_config": missing},
        )
        raise ConfigurationError(
            f"OBO exchange enabled but missing required configuration: {', '.join(missing)}"
        )

    logger.info(
        "OBO config loaded",
        extra={
            "tenant_id": config.tenant_id,
            "client_id": config.client_id,
            "downstream_scopes": config.downstream_scopes,
        },
    )


def create_fastmcp_server(
    config: Optional[HelloServerConfig] = None,
    services: Optional[list[MCPToolBase]] = None,
) -> FastMCP:
    """Create and configure FastMCP server.

    Args:
        config: Optional config instance. If None, uses global config.
        services: Optional list of services. If None, uses defaults.

    Returns:
        Configured FastMCP server instance.

    Raises:
        ConfigurationError: If configuration validation fails.
        ServiceRegistrationError: If two services claim the same domain.
    """
    config = config or get_server_config()

    log_level = logging.DEBUG if config.debug else logging.INFO
    logging.getLogger().setLevel(log_level)

    validate_obo_config(config)

    factory = create_factory(config, services)
    mcp_server = factory.create_mcp_server(
        name=config.server_name,
        lifespan=http_session_lifespan,
    )

    register_health_endpoint(mcp_server)

    logger.info("FastMCP server created successfully")
    return mcp_server


# =============================================================================
# Global Server Instance (Lazy Initialization via __getattr__)
# =============================================================================

_mcp: Optional[FastMCP] = None
_initialized: bool = False


def _lazy_init() -> None:
    """Initialize mcp on first access using the environment configuration."""
    global _mcp, _initialized
    if _initialized:
        return
    _initialized = True
    try:
        _mcp = create_fastmcp_server()
    except (ConfigurationError, ServiceRegistrationError) as e:
        logger.warning(f"Deferred server initialization due to: {e}")


def __getattr__(name: str) -> Any:
    """Lazy initialization of module-level mcp.

    This enables `fastmcp run server.py` to work without eager initialization.
    For CLI usage, main() sets _mcp directly before any access.
    """
    if name == "mcp":
        _lazy_init()
        return _mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


# =============================================================================
# Server Runtime
# =============================================================================


def log_server_info(config: HelloServerConfig) -> None:
    summary = create_factory(config).get_tool_summary()

    logger.info(
        "Server initialized",
        extra={
            "server_name": config.server_name,
            "total_services": summary["total_services"],
            "total_tools": summary["total_tools"],
            "obo_enabled": config.enable_obo,
        },
    )

    for domain, info in summary["services"].items():
        logger.info(
            f"Service registered: {domain}",
            extra={"tool_count": info["tool_count"], "class_name": info["class_name"]},
        )


def run_server(
    server_instance: Optional[FastMCP],
    config: HelloServerConfig,
    transport: Transport = "streamable-http",
    **kwargs: Any,
) -> None:
    """Run the FastMCP server.

    Args:
        server_instance: The FastMCP server to run.
        config: Server configuration providing host and port.
        transport: Transport protocol (default: streamable-http).
        **kwargs: Additional arguments passed to server.run().
    """
    if not server_instance:
        logger.error("Cannot start FastMCP server - not available")
        return

    log_server_info(config)

    logger.info(
        "Starting FastMCP server",
        extra={"transport": transport, "host": config.host, "port": config.port},
    )
    server_instance.run(
        transport=transport, host=config.host, port=config.port, **kwargs
    )


# =============================================================================
# CLI Entry Point
# =============================================================================


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Hello MCP Server")
    parser.add_argument(
        "--transport",
        "-t",
        choices=["streamable-http"],
        default="streamable-http",
        help="Transport protocol (default: streamable-http)",
    )
    parser.add_argument("--host", help="Host to bind to (default: HOST or 0.0.0.0)")
    parser.add_argument(
        "--port", "-p", type=int, help="Port to bind to (default: PORT or 9000)"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    parser.add_argument(
        "--no-obo", action="store_true", help="Disable the On-Behalf-Of exchange"
    )
    return parser


def apply_cli_overrides(
    base_config: HelloServerConfig, args: argparse.Namespace
) -> HelloServerConfig:
    """Return a config copy with command line overrides applied."""
    overrides: dict[str, Any] = {}
    if args.host:
        overrides["host"] = args.host
    if args.port:
        overrides["port"] = args.port
    if args.debug:
        overrides["debug"] = True
    if args.no_obo:
        overrides["enable_obo"] = False

    if overrides:
        return base_config.model_copy(update=overrides)
    return base_config


def main() -> None:
    """Main entry point with argument parsing."""
    global _mcp, _initialized

    args = build_arg_parser().parse_args()
    config = get_server_config(apply_cli_overrides(get_server_config(), args))

    try:
        server = create_fastmcp_server(config=config)
    except (ConfigurationError, ServiceRegistrationError) as e:
        print(f"Failed to create server: {e}")
        return

    # Mark as initialized to prevent lazy init from overwriting
    _mcp = server
    _initialized = True

    print("Starting Hello MCP Server")
    print(f"Transport: {args.transport.upper()}")
    print(f"Debug: {config.debug}")
    print(f"OBO: {'Enabled' if config.enable_obo else 'Disabled'}")
    print(f"Host: {config.host}")
    print(f"Port: {config.port}")
    print("-" * 50)

    run_server(
        server,
        config,
        transport=cast(Transport, args.transport),
        log_level="debug" if config.debug else "info",
    )


if __name__ == "__main__":
    main()
