"""
Sandboxed filesystem access for agents.

This module confines every path to a fixed set of allowed directories and
exposes reading, enumeration, search, editing and mutation operations,
gated by a permission tier chosen at startup.
"""

from fsgate.filesystem.config import FileSystemAccessConfig, PermissionTier
from fsgate.filesystem.editor import RestrictedFileEditor
from fsgate.filesystem.exceptions import (
    AmbiguousMatchError,
    BinaryFileError,
    DirectoryNotEmptyError,
    ErrorKind,
    FileAccessDeniedError,
    FileSizeLimitExceededError,
    FileSystemError,
    InvalidParamsError,
    InvalidPathError,
    NoMatchError,
    OperationFailedError,
    PathNotFoundError,
    SearchError,
)
from fsgate.filesystem.guard import PathGuard, ResolvedPath, ResolveMode
from fsgate.filesystem.reader import RestrictedFileReader
from fsgate.filesystem.registry import OPERATIONS, OperationSpec, ToolRegistry
from fsgate.filesystem.search import GlobPattern, RestrictedSearchTools
from fsgate.filesystem.tools import LLMFileSystemTools
from fsgate.filesystem.tree import DirectoryTreeWalker
from fsgate.filesystem.writer import RestrictedFileWriter

__all__ = [
    # Config
    "FileSystemAccessConfig",
    "PermissionTier",
    # Errors
    "ErrorKind",
    "FileSystemError",
    "InvalidParamsError",
    "InvalidPathError",
    "FileAccessDeniedError",
    "PathNotFoundError",
    "BinaryFileError",
    "FileSizeLimitExceededError",
    "NoMatchError",
    "AmbiguousMatchError",
    "DirectoryNotEmptyError",
    "SearchError",
    "OperationFailedError",
    # Sandbox
    "PathGuard",
    "ResolvedPath",
    "ResolveMode",
    # Registry
    "OPERATIONS",
    "OperationSpec",
    "ToolRegistry",
    # Operations
    "RestrictedFileReader",
    "DirectoryTreeWalker",
    "GlobPattern",
    "RestrictedSearchTools",
    "RestrictedFileEditor",
    "RestrictedFileWriter",
    "LLMFileSystemTools",
]
