"""
Result models for filesystem operations.

These are transient: built per request and discarded once the protocol
layer has serialized them.
"""

import stat
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class EntryKind(str, Enum):
    """Kind of a filesystem entry, as seen without following symlinks."""

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    OTHER = "other"

    @classmethod
    def from_mode(cls, mode: int) -> "EntryKind":
        if stat.S_ISLNK(mode):
            return cls.SYMLINK
        if stat.S_ISDIR(mode):
            return cls.DIRECTORY
        if stat.S_ISREG(mode):
            return cls.FILE
        return cls.OTHER


class DirectoryEntry(BaseModel):
    """A direct child of a listed directory."""

    name: str = Field(description="Entry name")
    kind: EntryKind = Field(description="Entry kind")
    size: int = Field(default=0, description="Size in bytes")
    modified: Optional[datetime] = Field(default=None, description="Last modification time")


class DirectoryListing(BaseModel):
    """Result of list_directory."""

    path: str = Field(description="Canonical directory path")
    entries: list[DirectoryEntry] = Field(default_factory=list)
    total: int = Field(default=0, description="Number of entries before truncation")
    truncated: bool = Field(default=False)


class FileContent(BaseModel):
    """Result of read_file."""

    path: str = Field(description="Canonical file path")
    content: str = Field(description="Text content (whole file or selected lines)")
    size: int = Field(description="File size in bytes")
    total_lines: int = Field(description="Number of lines in the file")
    start_line: int = Field(description="First line returned (1-based, 0 if none)")
    end_line: int = Field(description="Last line returned (1-based, 0 if none)")
    partial: bool = Field(default=False, description="Whether a line range was requested")


class BatchReadItem(BaseModel):
    """One entry of a read_multiple_files batch."""

    path: str = Field(description="Path as requested")
    file: Optional[FileContent] = None
    error: Optional[dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class FileInfo(BaseModel):
    """Result of get_file_info."""

    path: str
    kind: EntryKind
    size: int
    mime_type: Optional[str] = None
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    accessed: Optional[datetime] = None
    permissions: str = Field(description="Permission bits in octal, uninterpreted")


class TreeNode(BaseModel):
    """A node of a directory tree."""

    name: str
    kind: EntryKind
    size: int = 0
    children: Optional[list["TreeNode"]] = Field(
        default=None,
        description="Child nodes; None for non-directories and directories at the depth cap",
    )


TreeNode.model_rebuild()


class DirectoryTree(BaseModel):
    """Result of directory_tree."""

    path: str
    root: TreeNode
    max_depth: int
    node_count: int = 0
    truncated: bool = False


class SearchMatch(BaseModel):
    """A single search hit."""

    path: str = Field(description="Canonical path of the match")
    relative_path: str = Field(description="POSIX path relative to the search root")
    kind: EntryKind
    size: int = 0


class SearchResult(BaseModel):
    """Result of search_files."""

    root: str
    pattern: str
    max_results: int
    matches: list[SearchMatch] = Field(default_factory=list)
    truncated: bool = False


class EditOperation(BaseModel):
    """A single exact-text replacement."""

    model_config = ConfigDict(frozen=True)

    old_text: str = Field(
        validation_alias=AliasChoices("old_text", "oldText"),
        description="Exact text to replace; must occur exactly once",
    )
    new_text: str = Field(
        validation_alias=AliasChoices("new_text", "newText"),
        description="Replacement text",
    )


class EditResult(BaseModel):
    """Result of edit_file."""

    path: str
    edits_applied: int
    diff: str
    written: bool


class WriteResult(BaseModel):
    """Result of write_file and create_directory."""

    path: str
    created: bool
    bytes_written: int = 0


class MoveResult(BaseModel):
    """Result of move_file."""

    source: str
    destination: str


class DeleteResult(BaseModel):
    """Result of delete_file and delete_directory."""

    path: str
    kind: EntryKind
