"""
MCP server for sandboxed filesystem access.
"""

from fsgate.server.app import create_server, register_filesystem_tools

__all__ = [
    "create_server",
    "register_filesystem_tools",
]
