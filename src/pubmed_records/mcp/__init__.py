"""MCP server exposing the retrieval API as tools."""

from .server import create_server, main

__all__ = ["create_server", "main"]
