"""
fsgate - sandboxed filesystem access for AI agents.

This package provides a path sandbox, a tiered set of filesystem
operations, and an MCP server that exposes them to agents.
"""

__version__ = "0.1.0"

from fsgate.filesystem import (
    ErrorKind,
    FileSystemAccessConfig,
    FileSystemError,
    LLMFileSystemTools,
    PathGuard,
    PermissionTier,
    ToolRegistry,
)

__all__ = [
    # Version
    "__version__",
    # Config
    "FileSystemAccessConfig",
    "PermissionTier",
    # Core
    "PathGuard",
    "ToolRegistry",
    "LLMFileSystemTools",
    # Errors
    "ErrorKind",
    "FileSystemError",
]
