"""
Hello MCP Server - greeting tool with On-Behalf-Of identity resolution.

A small MCP server exposing a ``hello`` tool. The tool greets the caller,
echoes selected claims from their access token, and resolves their display
name from Microsoft Graph through the OAuth 2.0 On-Behalf-Of (OBO) flow.
"""

__version__ = "0.1.0"
