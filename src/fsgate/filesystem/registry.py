"""
Operation registry gated by permission tier.

The registry is an allowlist built once at startup: an operation that the
tier does not grant is simply absent, so it never shows up in a tool
listing and invoking it looks exactly like invoking a name that does not
exist.
"""

from dataclasses import dataclass, field
from typing import Any, Iterator

from fsgate.filesystem.config import FileSystemAccessConfig, PermissionTier


def _path_param(description: str) -> dict[str, Any]:
    return {"type": "string", "description": description}


def _object(properties: dict[str, Any], required: list[str]) -> dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required}


@dataclass(frozen=True)
class OperationSpec:
    """Static description of one operation."""

    name: str
    tier: PermissionTier
    description: str
    parameters: dict[str, Any] = field(default_factory=lambda: _object({}, []))
    read_only: bool = True
    destructive: bool = False


OPERATIONS: tuple[OperationSpec, ...] = (
    # Read-only
    OperationSpec(
        name="list_allowed_directories",
        tier=PermissionTier.READ_ONLY,
        description="Lists all directories this server is allowed to access, "
        "one fully canonicalized path per line.",
    ),
    OperationSpec(
        name="list_directory",
        tier=PermissionTier.READ_ONLY,
        description="Lists the contents of a directory. Directories come first, "
        "then other entries, each sorted by name. Shows type, name, and for files "
        "size and modification date.",
        parameters=_object(
            {"path": _path_param("Absolute path to the directory to list")},
            ["path"],
        ),
    ),
    OperationSpec(
        name="read_file",
        tier=PermissionTier.READ_ONLY,
        description="Reads a text file. Use offset (0-based line) and limit "
        "(number of lines) to read a range; ranged reads are not subject to the "
        "size limit. Binary files are rejected.",
        parameters=_object(
            {
                "path": _path_param("Absolute path to the file to read"),
                "offset": {
                    "type": "integer",
                    "minimum": 0,
                    "description": "Line offset (0-based) to start reading from",
                },
                "limit": {
                    "type": "integer",
                    "minimum": 0,
                    "description": "Maximum number of lines to read",
                },
            },
            ["path"],
        ),
    ),
    OperationSpec(
        name="read_multiple_files",
        tier=PermissionTier.READ_ONLY,
        description="Reads several files at once. A file that fails to read is "
        "reported inline and the remaining files are still processed.",
        parameters=_object(
            {
                "paths": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Absolute paths of the files to read",
                }
            },
            ["paths"],
        ),
    ),
    OperationSpec(
        name="get_file_info",
        tier=PermissionTier.READ_ONLY,
        description="Returns metadata about a file or directory: type, size, "
        "MIME type, timestamps and permissions.",
        parameters=_object(
            {"path": _path_param("Absolute path to the file or directory")},
            ["path"],
        ),
    ),
    OperationSpec(
        name="directory_tree",
        tier=PermissionTier.READ_ONLY,
        description="Shows the directory structure as a tree. Symlinks are shown "
        "but not followed, hidden entries are skipped, and large trees are "
        "truncated.",
        parameters=_object(
            {
                "path": _path_param("Absolute path to the directory"),
                "max_depth": {
                    "type": "integer",
                    "minimum": 0,
                    "description": "Maximum depth to traverse (capped by the server limit)",
                },
            },
            ["path"],
        ),
    ),
    OperationSpec(
        name="search_files",
        tier=PermissionTier.READ_ONLY,
        description="Finds files and directories matching a glob pattern. A "
        "pattern without '/' matches entry names at any depth ('*.py'); a pattern "
        "with '/' matches the path relative to the search root, where '**' "
        "spans directories ('src/**/*.py'). Matching is case-sensitive.",
        parameters=_object(
            {
                "path": _path_param("Absolute path to the directory to search in"),
                "pattern": {"type": "string", "description": "Glob pattern"},
                "max_results": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "Maximum number of results (default 50, max 200)",
                },
            },
            ["path", "pattern"],
        ),
    ),
    # Write
    OperationSpec(
        name="write_file",
        tier=PermissionTier.WRITE,
        description="Creates a new file or overwrites an existing one. The parent "
        "directory must already exist.",
        parameters=_object(
            {
                "path": _path_param("Absolute path to the file to create or overwrite"),
                "content": {"type": "string", "description": "Content to write"},
            },
            ["path", "content"],
        ),
        read_only=False,
        destructive=True,
    ),
    OperationSpec(
        name="edit_file",
        tier=PermissionTier.WRITE,
        description="Applies exact-text replacements to a file in order. Each "
        "old_text must match exactly one location; if any edit fails nothing is "
        "written. Returns a unified diff.",
        parameters=_object(
            {
                "path": _path_param("Absolute path to the file to edit"),
                "edits": {
                    "type": "array",
                    "items": _object(
                        {
                            "old_text": {
                                "type": "string",
                                "description": "Exact text to search for",
                            },
                            "new_text": {
                                "type": "string",
                                "description": "Text to replace it with",
                            },
                        },
                        ["old_text", "new_text"],
                    ),
                    "description": "Edits applied sequentially",
                },
                "dry_run": {
                    "type": "boolean",
                    "description": "Return the diff without writing (default false)",
                },
            },
            ["path", "edits"],
        ),
        read_only=False,
    ),
    OperationSpec(
        name="create_directory",
        tier=PermissionTier.WRITE,
        description="Creates a directory and any missing parents (like mkdir -p). "
        "Succeeds if the directory already exists.",
        parameters=_object(
            {"path": _path_param("Absolute path to the directory to create")},
            ["path"],
        ),
        read_only=False,
    ),
    # Destructive
    OperationSpec(
        name="delete_file",
        tier=PermissionTier.DESTRUCTIVE,
        description="Deletes a single regular file.",
        parameters=_object(
            {"path": _path_param("Absolute path to the file to delete")},
            ["path"],
        ),
        read_only=False,
        destructive=True,
    ),
    OperationSpec(
        name="delete_directory",
        tier=PermissionTier.DESTRUCTIVE,
        description="Deletes an empty directory. Never deletes recursively.",
        parameters=_object(
            {"path": _path_param("Absolute path to the empty directory to delete")},
            ["path"],
        ),
        read_only=False,
        destructive=True,
    ),
    OperationSpec(
        name="move_file",
        tier=PermissionTier.DESTRUCTIVE,
        description="Moves or renames a file or directory. Source and destination "
        "must both be inside allowed directories; the destination must not exist.",
        parameters=_object(
            {
                "source": _path_param("Absolute path to the source"),
                "destination": _path_param("Absolute path to the destination"),
            },
            ["source", "destination"],
        ),
        read_only=False,
        destructive=True,
    ),
)


class ToolRegistry:
    """
    The fixed set of operations exposed for a permission tier.

    Usage:
        registry = ToolRegistry(PermissionTier.WRITE)
        registry.names()              # read-only + write operations
        registry.is_exposed("delete_file")  # False
    """

    def __init__(self, tier: PermissionTier = PermissionTier.READ_ONLY):
        self.tier = tier
        self._operations = {
            op.name: op for op in OPERATIONS if tier.includes(op.tier)
        }

    @classmethod
    def from_config(cls, config: FileSystemAccessConfig) -> "ToolRegistry":
        return cls(config.permission_tier)

    def names(self) -> tuple[str, ...]:
        return tuple(self._operations)

    def descriptors(self) -> tuple[OperationSpec, ...]:
        return tuple(self._operations.values())

    def function_schemas(self) -> list[dict[str, Any]]:
        """Exposed operations in OpenAI function calling format."""
        return [
            {
                "type": "function",
                "function": {
                    "name": op.name,
                    "description": op.description,
                    "parameters": op.parameters,
                },
            }
            for op in self._operations.values()
        ]

    def is_exposed(self, name: str) -> bool:
        return name in self._operations

    def get(self, name: str) -> OperationSpec:
        """
        Look up an exposed operation.

        Raises:
            KeyError: If the operation is not exposed at this tier
        """
        return self._operations[name]

    def __contains__(self, name: object) -> bool:
        return name in self._operations

    def __iter__(self) -> Iterator[OperationSpec]:
        return iter(self._operations.values())

    def __len__(self) -> int:
        return len(self._operations)

    def __repr__(self) -> str:
        return f"ToolRegistry(tier={self.tier.value}, operations={len(self)})"
