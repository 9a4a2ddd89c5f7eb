"""
MCP server exposing the sandboxed filesystem operations over stdio.

Only the operations granted by the configured permission tier are
registered, so a client never sees a tool it is not allowed to call.
"""

import logging
from typing import Callable, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.types import ToolAnnotations

from fsgate.filesystem.config import FileSystemAccessConfig
from fsgate.filesystem.exceptions import FileSystemError
from fsgate.filesystem.formatting import (
    render_allowed_directories,
    render_batch,
    render_edit,
    render_file,
    render_info,
    render_listing,
    render_search,
    render_tree,
)
from fsgate.filesystem.models import EditOperation
from fsgate.filesystem.tools import LLMFileSystemTools

logger = logging.getLogger(__name__)

SERVER_NAME = "fsgate"

INSTRUCTIONS = (
    "Sandboxed filesystem access. Call list_allowed_directories first; every "
    "path must be absolute and lie inside one of those directories."
)


def _tool_error(name: str, error: FileSystemError) -> ToolError:
    logger.warning(f"{name} failed: {error}")
    return ToolError(f"[{error.kind.value}] {error.message}")


def build_handlers(tools: LLMFileSystemTools) -> dict[str, Callable]:
    """Async tool handlers keyed by operation name, returning plain text."""

    async def list_allowed_directories() -> str:
        return render_allowed_directories(tools.reader.list_allowed_directories())

    async def list_directory(path: str) -> str:
        try:
            return render_listing(tools.reader.list_directory(path))
        except FileSystemError as e:
            raise _tool_error("list_directory", e)

    async def read_file(
        path: str, offset: Optional[int] = None, limit: Optional[int] = None
    ) -> str:
        try:
            return render_file(tools.reader.read_file(path, offset, limit))
        except FileSystemError as e:
            raise _tool_error("read_file", e)

    async def read_multiple_files(paths: list[str]) -> str:
        return render_batch(tools.reader.read_multiple_files(paths))

    async def get_file_info(path: str) -> str:
        try:
            return render_info(tools.reader.get_file_info(path))
        except FileSystemError as e:
            raise _tool_error("get_file_info", e)

    async def directory_tree(path: str, max_depth: Optional[int] = None) -> str:
        try:
            return render_tree(tools.tree.directory_tree(path, max_depth))
        except FileSystemError as e:
            raise _tool_error("directory_tree", e)

    async def search_files(
        path: str, pattern: str, max_results: Optional[int] = None
    ) -> str:
        try:
            return render_search(tools.search.search_files(path, pattern, max_results))
        except FileSystemError as e:
            raise _tool_error("search_files", e)

    async def write_file(path: str, content: str) -> str:
        try:
            result = tools.writer.write_file(path, content)
        except FileSystemError as e:
            raise _tool_error("write_file", e)
        verb = "Created" if result.created else "Overwrote"
        return f"{verb} {result.path} ({result.bytes_written} bytes)"

    async def edit_file(
        path: str, edits: list[EditOperation], dry_run: bool = False
    ) -> str:
        try:
            return render_edit(tools.editor.edit_file(path, edits, dry_run))
        except FileSystemError as e:
            raise _tool_error("edit_file", e)

    async def create_directory(path: str) -> str:
        try:
            result = tools.writer.create_directory(path)
        except FileSystemError as e:
            raise _tool_error("create_directory", e)
        if result.created:
            return f"Created directory {result.path}"
        return f"Directory already exists: {result.path}"

    async def delete_file(path: str) -> str:
        try:
            result = tools.writer.delete_file(path)
        except FileSystemError as e:
            raise _tool_error("delete_file", e)
        return f"Deleted file {result.path}"

    async def delete_directory(path: str) -> str:
        try:
            result = tools.writer.delete_directory(path)
        except FileSystemError as e:
            raise _tool_error("delete_directory", e)
        return f"Deleted directory {result.path}"

    async def move_file(source: str, destination: str) -> str:
        try:
            result = tools.writer.move_file(source, destination)
        except FileSystemError as e:
            raise _tool_error("move_file", e)
        return f"Moved {result.source} to {result.destination}"

    return {
        "list_allowed_directories": list_allowed_directories,
        "list_directory": list_directory,
        "read_file": read_file,
        "read_multiple_files": read_multiple_files,
        "get_file_info": get_file_info,
        "directory_tree": directory_tree,
        "search_files": search_files,
        "write_file": write_file,
        "edit_file": edit_file,
        "create_directory": create_directory,
        "delete_file": delete_file,
        "delete_directory": delete_directory,
        "move_file": move_file,
    }


def register_filesystem_tools(mcp: FastMCP, tools: LLMFileSystemTools) -> list[str]:
    """
    Register the tier's operations on an MCP server.

    Returns:
        Names of the registered tools, in registry order
    """
    handlers = build_handlers(tools)
    for op in tools.registry:
        mcp.add_tool(
            handlers[op.name],
            name=op.name,
            description=op.description,
            annotations=ToolAnnotations(
                readOnlyHint=op.read_only,
                destructiveHint=op.destructive,
                openWorldHint=False,
            ),
        )
    names = list(tools.registry.names())
    logger.debug(f"Registered {len(names)} tools: {', '.join(names)}")
    return names


def create_server(config: FileSystemAccessConfig) -> FastMCP:
    """
    Build the MCP server for a configuration.

    Usage:
        server = create_server(config)
        server.run(transport="stdio")
    """
    tools = LLMFileSystemTools(config)
    mcp = FastMCP(SERVER_NAME, instructions=INSTRUCTIONS)
    register_filesystem_tools(mcp, tools)
    logger.info(
        f"Serving {len(config.allowed_directories)} allowed director"
        f"{'y' if len(config.allowed_directories) == 1 else 'ies'} "
        f"at tier {config.permission_tier.value}"
    )
    return mcp
