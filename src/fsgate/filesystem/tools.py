"""
Unified filesystem tools interface.

Provides a single entry point for dispatching operations by name, plus
OpenAI-style function schemas for the operations the permission tier
exposes.
"""

import inspect
import logging
from typing import Any, Callable

from pydantic import BaseModel

from fsgate.filesystem.config import FileSystemAccessConfig
from fsgate.filesystem.editor import RestrictedFileEditor
from fsgate.filesystem.exceptions import ErrorKind, FileSystemError
from fsgate.filesystem.guard import PathGuard
from fsgate.filesystem.reader import RestrictedFileReader
from fsgate.filesystem.registry import ToolRegistry
from fsgate.filesystem.search import RestrictedSearchTools
from fsgate.filesystem.tree import DirectoryTreeWalker
from fsgate.filesystem.writer import RestrictedFileWriter

logger = logging.getLogger(__name__)


class LLMFileSystemTools:
    """
    Filesystem operations dispatched by name.

    Every component shares one :class:`PathGuard`, and only the operations
    in the tier's :class:`ToolRegistry` can be executed.

    Usage:
        config = FileSystemAccessConfig(
            allowed_directories=[Path("/tmp/repos")],
        )
        tools = LLMFileSystemTools(config)

        # Get tool schemas for an LLM
        schemas = tools.get_tool_schemas()

        # Execute tool call
        result = await tools.execute_tool(
            tool_name="read_file",
            arguments={"path": "/tmp/repos/main.py"}
        )
    """

    def __init__(self, config: FileSystemAccessConfig):
        """
        Initialize filesystem tools.

        Args:
            config: Filesystem access configuration
        """
        self.config = config
        self.guard = PathGuard(config)
        self.registry = ToolRegistry.from_config(config)
        self.reader = RestrictedFileReader(config, self.guard)
        self.tree = DirectoryTreeWalker(config, self.guard)
        self.search = RestrictedSearchTools(config, self.guard)
        self.editor = RestrictedFileEditor(config, self.guard, self.reader)
        self.writer = RestrictedFileWriter(config, self.guard)

        self._handlers: dict[str, Callable[..., Any]] = {
            "list_allowed_directories": self._list_allowed_directories,
            "list_directory": self.reader.list_directory,
            "read_file": self.reader.read_file,
            "read_multiple_files": self._read_multiple_files,
            "get_file_info": self.reader.get_file_info,
            "directory_tree": self.tree.directory_tree,
            "search_files": self.search.search_files,
            "write_file": self.writer.write_file,
            "edit_file": self.editor.edit_file,
            "create_directory": self.writer.create_directory,
            "delete_file": self.writer.delete_file,
            "delete_directory": self.writer.delete_directory,
            "move_file": self.writer.move_file,
        }

    def get_tool_schemas(self) -> list[dict[str, Any]]:
        """
        Get OpenAI function calling schemas for the exposed tools.

        Returns:
            List of tool schemas in OpenAI format
        """
        return self.registry.function_schemas()

    async def execute_tool(
        self, tool_name: str, arguments: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Execute a tool call.

        Args:
            tool_name: Name of the tool to execute
            arguments: Tool arguments (from the function call)

        Returns:
            ``{"success": True, ...result}`` or
            ``{"success": False, "error": ..., "error_type": ..., "error_kind": ...}``

        Raises:
            ValueError: If the tool is unknown or not exposed at this tier
        """
        if not self.registry.is_exposed(tool_name):
            raise ValueError(f"Unknown tool: {tool_name}")

        handler = self._handlers[tool_name]
        try:
            bound = inspect.signature(handler).bind(**arguments)
        except TypeError as e:
            logger.warning(f"{tool_name} called with invalid arguments: {e}")
            return {
                "success": False,
                "error": f"Invalid arguments: {e}",
                "error_type": "InvalidArguments",
                "error_kind": ErrorKind.INVALID_PARAMS.value,
            }

        try:
            result = handler(*bound.args, **bound.kwargs)
        except FileSystemError as e:
            logger.warning(f"{tool_name} failed: {e}")
            return {"success": False, **e.to_dict()}
        except Exception as e:
            logger.error(f"{tool_name} unexpected error: {e}", exc_info=True)
            return {
                "success": False,
                "error": f"Unexpected error: {e}",
                "error_type": "UnexpectedError",
                "error_kind": ErrorKind.INTERNAL.value,
            }

        return {"success": True, **self._serialize(result)}

    def _list_allowed_directories(self) -> dict[str, Any]:
        return {"directories": self.reader.list_allowed_directories()}

    def _read_multiple_files(self, paths: list[str]) -> dict[str, Any]:
        items = self.reader.read_multiple_files(paths)
        return {
            "files": [item.model_dump(mode="json") for item in items],
            "failed": sum(1 for item in items if not item.ok),
        }

    @staticmethod
    def _serialize(result: Any) -> dict[str, Any]:
        if isinstance(result, BaseModel):
            return result.model_dump(mode="json")
        return result

    def get_summary(self) -> dict[str, Any]:
        """
        Get a summary of the filesystem access configuration.

        Returns:
            Dict with configuration summary
        """
        return {
            "allowed_directories": [str(d) for d in self.config.allowed_directories],
            "permission_tier": self.config.permission_tier.value,
            "tools": list(self.registry.names()),
            "max_read_size_mb": self.config.max_read_size_bytes / (1024 * 1024),
            "max_depth": self.config.max_depth,
            "max_search_results": self.config.max_search_results,
        }
