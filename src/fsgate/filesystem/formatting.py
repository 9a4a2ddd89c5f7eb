"""
Text renderings of operation results.

The MCP server returns plain text to the agent; these helpers turn the
result models into compact, readable output.
"""

import stat
from datetime import datetime, timezone
from typing import Optional

from fsgate.filesystem.models import (
    BatchReadItem,
    DirectoryListing,
    DirectoryTree,
    EditResult,
    EntryKind,
    FileContent,
    FileInfo,
    SearchResult,
    TreeNode,
)

_TEE = "├── "
_ELBOW = "└── "
_PIPE = "│   "
_SPACE = "    "


def format_size(size: int) -> str:
    """Format a byte count as a human-readable size string."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    if size < 1024 * 1024 * 1024:
        return f"{size / (1024 * 1024):.1f} MB"
    return f"{size / (1024 * 1024 * 1024):.1f} GB"


def timestamp(value: Optional[float]) -> Optional[datetime]:
    """Convert an epoch timestamp to an aware UTC datetime."""
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def format_date(value: Optional[datetime]) -> str:
    if value is None:
        return "unknown"
    return value.strftime("%Y-%m-%d")


def format_datetime(value: Optional[datetime]) -> str:
    if value is None:
        return "unknown"
    return value.strftime("%Y-%m-%d %H:%M:%S UTC")


def format_permissions(mode: int) -> str:
    """Permission bits as an octal string, e.g. '644'."""
    return f"{stat.S_IMODE(mode):o}"


def render_allowed_directories(directories: list[str]) -> str:
    return "\n".join(directories)


def render_listing(listing: DirectoryListing) -> str:
    if not listing.entries:
        return "(empty directory)"

    lines = []
    for entry in listing.entries:
        if entry.kind is EntryKind.DIRECTORY:
            lines.append(f"[DIR]  {entry.name}/")
        elif entry.kind is EntryKind.SYMLINK:
            lines.append(f"[LINK] {entry.name}")
        elif entry.kind is EntryKind.FILE:
            lines.append(
                f"[FILE] {entry.name} ({format_size(entry.size)}, "
                f"{format_date(entry.modified)})"
            )
        else:
            lines.append(f"[OTHER] {entry.name}")

    if listing.truncated:
        lines.append(
            f"\n(Showing first {len(listing.entries)} of {listing.total} entries. "
            f"Use search_files to find specific files.)"
        )
    return "\n".join(lines)


def render_file(content: FileContent) -> str:
    if content.total_lines == 0:
        return f"File: {content.path} (0 B)\n\n(empty file)"
    header = (
        f"File: {content.path} (Lines {content.start_line}-{content.end_line} "
        f"of {content.total_lines} total, {format_size(content.size)})"
    )
    return f"{header}\n\n{content.content}"


def render_batch(items: list[BatchReadItem]) -> str:
    sections = []
    for item in items:
        if item.file is not None:
            sections.append(
                f"=== {item.file.path} ({item.file.total_lines} lines, "
                f"{format_size(item.file.size)}) ===\n{item.file.content}"
            )
        else:
            error = (item.error or {}).get("error", "unknown error")
            sections.append(f"=== {item.path} ===\nError: {error}")
    return "\n\n".join(sections)


def render_info(info: FileInfo) -> str:
    return "\n".join(
        [
            f"Path: {info.path}",
            f"Type: {info.kind.value}",
            f"Size: {format_size(info.size)}",
            f"MIME: {info.mime_type or 'N/A'}",
            f"Modified: {format_datetime(info.modified)}",
            f"Accessed: {format_datetime(info.accessed)}",
            f"Created: {format_datetime(info.created)}",
            f"Permissions: {info.permissions}",
        ]
    )


def _tree_label(node: TreeNode) -> str:
    if node.kind is EntryKind.DIRECTORY:
        return f"{node.name}/"
    if node.kind is EntryKind.SYMLINK:
        return f"{node.name} -> (symlink)"
    if node.kind is EntryKind.FILE:
        return f"{node.name} ({format_size(node.size)})"
    return node.name


def _render_children(node: TreeNode, prefix: str, lines: list[str]) -> None:
    children = node.children or []
    for index, child in enumerate(children):
        last = index == len(children) - 1
        lines.append(f"{prefix}{_ELBOW if last else _TEE}{_tree_label(child)}")
        if child.children:
            _render_children(child, prefix + (_SPACE if last else _PIPE), lines)


def render_tree(tree: DirectoryTree) -> str:
    lines = [f"{tree.path}/"]
    _render_children(tree.root, "", lines)
    if tree.truncated:
        lines.append(
            f"... (truncated after {tree.node_count} entries. "
            f"Use search_files to find specific files.)"
        )
    return "\n".join(lines)


def render_search(result: SearchResult) -> str:
    if not result.matches:
        return f'No matches found for pattern "{result.pattern}" in {result.root}'

    count = len(result.matches)
    lines = [
        f"Found {count} match{'' if count == 1 else 'es'} for pattern "
        f'"{result.pattern}" in {result.root}'
        f"{' (results truncated)' if result.truncated else ''}:",
        "",
    ]
    for match in result.matches:
        if match.kind is EntryKind.FILE:
            lines.append(f"{match.path} ({format_size(match.size)})")
        else:
            lines.append(f"{match.path} [{match.kind.value}]")
    return "\n".join(lines)


def render_edit(result: EditResult) -> str:
    if not result.diff:
        return f"Applied {result.edits_applied} edit(s) to {result.path} (no changes)"
    verb = "Applied" if result.written else "Would apply"
    return f"{verb} {result.edits_applied} edit(s) to {result.path}\n\n{result.diff}"
