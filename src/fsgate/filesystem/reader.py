"""
Restricted file reader for safe agent access to files.
"""

import io
import logging
import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fsgate.filesystem.config import FileSystemAccessConfig
from fsgate.filesystem.exceptions import (
    BinaryFileError,
    FileSizeLimitExceededError,
    FileSystemError,
    InvalidParamsError,
    InvalidPathError,
    OperationFailedError,
)
from fsgate.filesystem.formatting import format_permissions, timestamp
from fsgate.filesystem.guard import PathGuard, ResolveMode
from fsgate.filesystem.models import (
    BatchReadItem,
    DirectoryEntry,
    DirectoryListing,
    EntryKind,
    FileContent,
    FileInfo,
)

logger = logging.getLogger(__name__)

# Number of leading bytes checked for NUL when detecting binary files
BINARY_CHECK_SIZE = 8192


@dataclass(frozen=True)
class ScannedEntry:
    """A directory child, stat'ed without following symlinks."""

    path: Path
    name: str
    kind: EntryKind
    size: int
    modified: Optional[float]


def _sort_key(entry: ScannedEntry) -> tuple[int, str]:
    return (0 if entry.kind is EntryKind.DIRECTORY else 1, entry.name)


def scan_directory(directory: Path, include_hidden: bool = True) -> list[ScannedEntry]:
    """
    List the direct children of a directory.

    Symlinks are reported as such and never followed. Entries whose
    metadata cannot be read are skipped. The result is ordered directories
    first, then everything else, each group by code-point order of the name
    (case-sensitive on every platform).

    Raises:
        OSError: If the directory itself cannot be read
    """
    entries = []
    with os.scandir(directory) as it:
        for item in it:
            if not include_hidden and item.name.startswith("."):
                continue
            try:
                st = item.stat(follow_symlinks=False)
            except OSError as e:
                logger.debug(f"Skipping {item.path}: {e}")
                continue
            kind = EntryKind.from_mode(st.st_mode)
            entries.append(
                ScannedEntry(
                    path=Path(item.path),
                    name=item.name,
                    kind=kind,
                    size=st.st_size if kind is EntryKind.FILE else 0,
                    modified=st.st_mtime,
                )
            )
    entries.sort(key=_sort_key)
    return entries


def is_binary(sample: bytes) -> bool:
    return b"\x00" in sample[:BINARY_CHECK_SIZE]


def count_lines(text: str) -> int:
    """Count lines as text-mode file iteration splits them (universal newlines)."""
    return sum(1 for _ in io.StringIO(text, newline=None))


class RestrictedFileReader:
    """
    Secure file reader confined to the allowed directories.

    Usage:
        config = FileSystemAccessConfig(
            allowed_directories=[Path("/tmp/sandbox")],
            max_read_size_bytes=1_000_000,
        )
        reader = RestrictedFileReader(config)

        try:
            content = reader.read_file("/tmp/sandbox/main.py")
        except FileAccessDeniedError as e:
            print(f"Access denied: {e}")
    """

    def __init__(self, config: FileSystemAccessConfig, guard: Optional[PathGuard] = None):
        """
        Initialize the file reader.

        Args:
            config: Filesystem access configuration
            guard: Path guard to share with other components
        """
        self.config = config
        self.guard = guard or PathGuard(config)

    def list_allowed_directories(self) -> list[str]:
        return [str(d) for d in self.config.allowed_directories]

    def list_directory(self, path: str) -> DirectoryListing:
        """
        List the direct children of a directory.

        Args:
            path: Directory to list

        Returns:
            DirectoryListing, truncated to ``max_list_entries``

        Raises:
            FileAccessDeniedError: If access is denied
            PathNotFoundError: If the directory doesn't exist
            InvalidPathError: If the path is not a directory
        """
        directory = self.guard.validate_directory(path).path

        try:
            scanned = scan_directory(directory)
        except OSError as e:
            raise OperationFailedError.from_os_error(e, path)

        limit = self.config.max_list_entries
        entries = [
            DirectoryEntry(
                name=item.name,
                kind=item.kind,
                size=item.size,
                modified=timestamp(item.modified),
            )
            for item in scanned[:limit]
        ]

        logger.debug(f"Listed {len(scanned)} entries in {directory}")
        return DirectoryListing(
            path=str(directory),
            entries=entries,
            total=len(scanned),
            truncated=len(scanned) > limit,
        )

    def read_file(
        self,
        path: str,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> FileContent:
        """
        Read a text file, optionally a line range.

        Without offset/limit the whole file is read and the size ceiling
        applies. With either set, only the requested lines are kept and the
        ceiling is bypassed.

        Args:
            path: Path to the file to read
            offset: 0-based line to start from
            limit: Maximum number of lines

        Raises:
            FileAccessDeniedError: If access is denied
            PathNotFoundError: If the file doesn't exist
            InvalidPathError: If the path is not a regular file
            BinaryFileError: If a NUL byte occurs in the first 8 KiB
            FileSizeLimitExceededError: If a full read exceeds the ceiling
            InvalidParamsError: If offset/limit are negative or offset is
                past the end of the file
        """
        for name, value in (("offset", offset), ("limit", limit)):
            if value is not None and value < 0:
                raise InvalidParamsError(f"{name} must be a non-negative integer", path)

        file_path = self.guard.validate_file(path).path

        try:
            size = file_path.stat().st_size
            with open(file_path, "rb") as f:
                sample = f.read(BINARY_CHECK_SIZE)
        except OSError as e:
            raise OperationFailedError.from_os_error(e, path)

        if is_binary(sample):
            logger.debug(f"Refusing binary file {file_path}")
            raise BinaryFileError(path)

        if offset is None and limit is None:
            return self._read_whole(path, file_path, size)
        return self._read_range(path, file_path, size, offset or 0, limit)

    def load_text(self, path: str, file_path: Path) -> str:
        """
        Load a file that is about to be rewritten.

        Decoding is strict so that rewriting never mangles bytes, and line
        endings are preserved as-is.
        """
        try:
            size = file_path.stat().st_size
            if size > self.config.max_read_size_bytes:
                raise FileSizeLimitExceededError(
                    path, size, self.config.max_read_size_bytes
                )
            data = file_path.read_bytes()
        except OSError as e:
            raise OperationFailedError.from_os_error(e, path)

        if is_binary(data):
            raise BinaryFileError(path)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidPathError(path, "File is not valid UTF-8 text")

    def read_multiple_files(self, paths: list[str]) -> list[BatchReadItem]:
        """
        Read several files independently.

        A failure on one path is captured in that item and does not stop
        the rest of the batch.

        Raises:
            InvalidParamsError: If paths is not a list of strings
        """
        if not isinstance(paths, (list, tuple)) or not all(
            isinstance(path, str) for path in paths
        ):
            raise InvalidParamsError("paths must be a list of strings")

        items = []
        for path in paths:
            try:
                items.append(BatchReadItem(path=path, file=self.read_file(path)))
            except FileSystemError as e:
                logger.warning(f"Skipping file {path}: {e}")
                items.append(BatchReadItem(path=path, error=e.to_dict()))
        return items

    def get_file_info(self, path: str) -> FileInfo:
        """
        Return metadata for a file or directory.

        Permissions are reported as octal bits and not interpreted.
        """
        target = self.guard.resolve(path, ResolveMode.MUST_EXIST).path

        try:
            st = target.lstat()
        except OSError as e:
            raise OperationFailedError.from_os_error(e, path)

        kind = EntryKind.from_mode(st.st_mode)
        mime_type = None
        if kind is EntryKind.FILE:
            mime_type = mimetypes.guess_type(target.name)[0] or "application/octet-stream"

        return FileInfo(
            path=str(target),
            kind=kind,
            size=st.st_size,
            mime_type=mime_type,
            created=timestamp(getattr(st, "st_birthtime", None)),
            modified=timestamp(st.st_mtime),
            accessed=timestamp(st.st_atime),
            permissions=format_permissions(st.st_mode),
        )

    def _read_whole(self, path: str, file_path: Path, size: int) -> FileContent:
        if size > self.config.max_read_size_bytes:
            logger.warning(
                f"File too large: {file_path} ({size} bytes > "
                f"{self.config.max_read_size_bytes} bytes)"
            )
            raise FileSizeLimitExceededError(path, size, self.config.max_read_size_bytes)

        try:
            data = file_path.read_bytes()
        except OSError as e:
            raise OperationFailedError.from_os_error(e, path)

        if is_binary(data):
            raise BinaryFileError(path)

        text = data.decode("utf-8", errors="replace")
        total = count_lines(text)
        logger.debug(f"Read file: {file_path} ({size} bytes)")
        return FileContent(
            path=str(file_path),
            content=text,
            size=size,
            total_lines=total,
            start_line=1 if total else 0,
            end_line=total,
        )

    def _read_range(
        self,
        path: str,
        file_path: Path,
        size: int,
        offset: int,
        limit: Optional[int],
    ) -> FileContent:
        stop = None if limit is None else offset + limit
        selected: list[str] = []
        total = 0
        try:
            with open(file_path, "r", encoding="utf-8", errors="replace") as f:
                # Only the requested range is kept; the rest is just counted
                for index, line in enumerate(f):
                    if index >= offset and (stop is None or index < stop):
                        selected.append(line.rstrip("\r\n"))
                    total = index + 1
        except OSError as e:
            raise OperationFailedError.from_os_error(e, path)

        if total and offset >= total:
            raise InvalidParamsError(
                f"Offset {offset} is beyond end of file ({total} lines)", path
            )

        logger.debug(f"Read lines {offset}-{offset + len(selected)} of {file_path}")
        return FileContent(
            path=str(file_path),
            content="\n".join(selected),
            size=size,
            total_lines=total,
            start_line=offset + 1 if selected else 0,
            end_line=offset + len(selected) if selected else 0,
            partial=True,
        )
