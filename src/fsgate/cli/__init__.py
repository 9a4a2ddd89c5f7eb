"""
CLI module for fsgate.

Provides the command-line entry point that starts the MCP server and
inspects sandbox configurations.
"""

from fsgate.cli.main import cli

__all__ = ["cli"]
