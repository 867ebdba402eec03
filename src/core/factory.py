"""
Core MCP server components and factory patterns.

Tool services are grouped by domain and registered with a factory that
builds the FastMCP server instance.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional

from fastmcp import FastMCP

from .exceptions import ServiceRegistrationError


class Domain(Enum):
    """Service domains for organizing MCP tools."""

    GREETING = "greeting"


class MCPToolBase(ABC):
    """Base class for MCP tool services.

    All tool services must inherit from this class and implement
    the register_tools method to register their tools with the MCP server.
    """

    def __init__(self, domain: Domain) -> None:
        self.domain = domain

    @abstractmethod
    def register_tools(self, mcp: FastMCP) -> None:
        """Register tools with the MCP server.

        Args:
            mcp: The FastMCP server instance to register tools with.
        """
        pass

    @property
    @abstractmethod
    def tool_count(self) -> int:
        """Return the number of tools provided by this service."""
        pass


class MCPToolFactory:
    """Factory for creating and managing MCP tools.

    This factory manages the registration of tool services and creates
    configured MCP server instances.
    """

    def __init__(self) -> None:
        self._services: Dict[Domain, MCPToolBase] = {}
        self._mcp_server: Optional[FastMCP] = None

    def register_service(self, service: MCPToolBase) -> None:
        """Register a tool service with the factory.

        Args:
            service: The tool service to register.

        Raises:
            ServiceRegistrationError: If a service for the domain already exists.
        """
        if service.domain in self._services:
            raise ServiceRegistrationError(
                f"Service already registered for domain '{service.domain.value}'"
            )
        self._services[service.domain] = service

    def create_mcp_server(
        self,
        name: str = "Hello MCP Server",
        lifespan: Optional[Any] = None,
    ) -> FastMCP:
        """Create and configure the MCP server with all registered services.

        Args:
            name: The name of the MCP server.
            lifespan: Optional async context manager factory run around the server.

        Returns:
            Configured FastMCP server instance.
        """
        if lifespan:
            self._mcp_server = FastMCP(name, lifespan=lifespan)
        else:
            self._mcp_server = FastMCP(name)

        for service in self._services.values():
            service.register_tools(self._mcp_server)

        return self._mcp_server

    def get_tool_summary(self) -> Dict[str, Any]:
        """Get a summary of all tools and services.

        Returns:
            Dictionary containing service and tool counts.
        """
        summary: Dict[str, Any] = {
            "total_services": len(self._services),
            "total_tools": sum(
                service.tool_count for service in self._services.values()
            ),
            "services": {},
        }

        for domain, service in self._services.items():
            summary["services"][domain.value] = {
                "tool_count": service.tool_count,
                "class_name": service.__class__.__name__,
            }

        return summary
