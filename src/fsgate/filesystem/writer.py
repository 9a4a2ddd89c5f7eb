"""
Restricted file writer for creating, replacing, moving and deleting entries.
"""

import errno
import logging
import shutil
from typing import Optional

from fsgate.filesystem.config import FileSystemAccessConfig
from fsgate.filesystem.exceptions import (
    DirectoryNotEmptyError,
    FileAccessDeniedError,
    InvalidPathError,
    OperationFailedError,
)
from fsgate.filesystem.guard import PathGuard, ResolveMode
from fsgate.filesystem.models import (
    DeleteResult,
    EntryKind,
    MoveResult,
    WriteResult,
)

logger = logging.getLogger(__name__)


class RestrictedFileWriter:
    """
    Secure file writer confined to the allowed directories.

    Writes need the WRITE tier; deletes and moves need DESTRUCTIVE.
    Deletion is never recursive, and neither an allowed root nor anything
    outside the roots can be removed or moved.

    Usage:
        config = FileSystemAccessConfig(
            allowed_directories=[Path("/tmp/sandbox")],
            allow_write=True,
        )
        writer = RestrictedFileWriter(config)

        try:
            writer.write_file("/tmp/sandbox/output.txt", "Hello, world!")
        except FileAccessDeniedError as e:
            print(f"Access denied: {e}")
    """

    def __init__(self, config: FileSystemAccessConfig, guard: Optional[PathGuard] = None):
        """
        Initialize the file writer.

        Args:
            config: Filesystem access configuration
            guard: Path guard to share with other components
        """
        self.config = config
        self.guard = guard or PathGuard(config)

    def write_file(self, path: str, content: str) -> WriteResult:
        """
        Create or overwrite a file with UTF-8 content.

        The parent directory must already exist.

        Raises:
            FileAccessDeniedError: If write access is denied
            PathNotFoundError: If the parent directory doesn't exist
            InvalidPathError: If the path names an existing directory
        """
        self._require_write(path)
        target = self.guard.resolve(path, ResolveMode.MAY_NOT_EXIST)

        if target.path.is_dir():
            raise InvalidPathError(path, "Is a directory")

        data = content.encode("utf-8")
        try:
            target.path.write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to write file {target.path}: {e}")
            raise OperationFailedError.from_os_error(e, path)

        logger.info(f"Wrote file: {target.path} ({len(data)} bytes)")
        return WriteResult(
            path=str(target.path), created=not target.exists, bytes_written=len(data)
        )

    def create_directory(self, path: str) -> WriteResult:
        """
        Create a directory and any missing parents.

        Succeeds without change if the directory already exists.

        Raises:
            FileAccessDeniedError: If write access is denied
            InvalidPathError: If a non-directory is in the way
        """
        self._require_write(path)
        target = self.guard.validate_creatable(path)

        if target.exists and not target.path.is_dir():
            raise InvalidPathError(path, "Not a directory")

        try:
            target.path.mkdir(parents=True, exist_ok=True)
        except FileExistsError:
            raise InvalidPathError(path, "Not a directory")
        except OSError as e:
            logger.error(f"Failed to create directory {target.path}: {e}")
            raise OperationFailedError.from_os_error(e, path)

        if not target.exists:
            logger.info(f"Created directory: {target.path}")
        return WriteResult(path=str(target.path), created=not target.exists)

    def delete_file(self, path: str) -> DeleteResult:
        """
        Delete a single regular file.

        Raises:
            FileAccessDeniedError: If delete access is denied
            PathNotFoundError: If the file doesn't exist
            InvalidPathError: If the path is not a regular file
        """
        self._require_destructive(path)
        target = self.guard.validate_file(path)

        try:
            target.path.unlink()
        except OSError as e:
            logger.error(f"Failed to delete file {target.path}: {e}")
            raise OperationFailedError.from_os_error(e, path)

        logger.info(f"Deleted file: {target.path}")
        return DeleteResult(path=str(target.path), kind=EntryKind.FILE)

    def delete_directory(self, path: str) -> DeleteResult:
        """
        Delete an empty directory.

        Raises:
            FileAccessDeniedError: If delete access is denied or the path is
                an allowed root
            PathNotFoundError: If the directory doesn't exist
            InvalidPathError: If the path is not a directory
            DirectoryNotEmptyError: If the directory has entries
        """
        self._require_destructive(path)
        target = self.guard.validate_directory(path)

        if self.guard.is_root(target.path):
            logger.warning(f"Refusing to delete allowed directory {target.path}")
            raise FileAccessDeniedError(path, "Cannot delete an allowed directory")

        try:
            if any(target.path.iterdir()):
                raise DirectoryNotEmptyError(path)
            target.path.rmdir()
        except OSError as e:
            if e.errno in (errno.ENOTEMPTY, errno.EEXIST):
                raise DirectoryNotEmptyError(path)
            logger.error(f"Failed to delete directory {target.path}: {e}")
            raise OperationFailedError.from_os_error(e, path)

        logger.info(f"Deleted directory: {target.path}")
        return DeleteResult(path=str(target.path), kind=EntryKind.DIRECTORY)

    def move_file(self, source: str, destination: str) -> MoveResult:
        """
        Move or rename a file or directory.

        Both ends must lie inside the allowed directories and the
        destination must not exist yet.

        Raises:
            FileAccessDeniedError: If access is denied for either path or the
                source is an allowed root
            PathNotFoundError: If the source or destination parent is missing
            InvalidPathError: If the destination already exists
        """
        self._require_destructive(source)
        src = self.guard.resolve(source, ResolveMode.MUST_EXIST)
        dst = self.guard.resolve(destination, ResolveMode.MAY_NOT_EXIST)

        if self.guard.is_root(src.path):
            logger.warning(f"Refusing to move allowed directory {src.path}")
            raise FileAccessDeniedError(source, "Cannot move an allowed directory")

        if dst.exists:
            raise InvalidPathError(destination, "Destination already exists")

        if src.path.is_dir() and (dst.path == src.path or src.path in dst.path.parents):
            raise InvalidPathError(destination, "Cannot move a directory into itself")

        try:
            shutil.move(str(src.path), str(dst.path))
        except OSError as e:
            logger.error(f"Failed to move {src.path} to {dst.path}: {e}")
            raise OperationFailedError.from_os_error(e, source)

        logger.info(f"Moved {src.path} to {dst.path}")
        return MoveResult(source=str(src.path), destination=str(dst.path))

    def _require_write(self, path: str) -> None:
        if not self.config.allow_write:
            logger.warning(f"Write denied for {path}: write operations are disabled")
            raise FileAccessDeniedError(path, "Write operations are disabled")

    def _require_destructive(self, path: str) -> None:
        if not self.config.allow_destructive:
            logger.warning(f"Delete/move denied for {path}: destructive operations are disabled")
            raise FileAccessDeniedError(path, "Destructive operations are disabled")
