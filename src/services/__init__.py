"""
Tool services for the Hello MCP Server.
"""
