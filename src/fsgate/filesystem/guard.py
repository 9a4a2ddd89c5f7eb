"""
Path validation for the filesystem sandbox.

Every filesystem-touching operation resolves its input through
:class:`PathGuard` before any I/O. Resolution always goes through the
operating system (``Path.resolve``), so symlinks are followed to their
final target *before* the containment check, and containment is decided
on path components rather than string prefixes.
"""

import errno
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from fsgate.filesystem.config import FileSystemAccessConfig
from fsgate.filesystem.exceptions import (
    FileAccessDeniedError,
    InvalidPathError,
    OperationFailedError,
    PathNotFoundError,
)

logger = logging.getLogger(__name__)


class ResolveMode(str, Enum):
    """How a path is expected to relate to the filesystem."""

    MUST_EXIST = "must_exist"
    MAY_NOT_EXIST = "may_not_exist"


@dataclass(frozen=True)
class ResolvedPath:
    """A canonical path that passed the sandbox check."""

    path: Path
    exists: bool
    requested: str

    def __fspath__(self) -> str:
        return str(self.path)

    def __str__(self) -> str:
        return str(self.path)


def _is_within_directory(path: Path, directory: Path) -> bool:
    """Check if path is directory itself or lies beneath it (component-wise)."""
    try:
        path.relative_to(directory)
        return True
    except ValueError:
        return False


def _segments(raw: str) -> list[str]:
    separators = {"/", os.sep}
    if os.altsep:
        separators.add(os.altsep)
    parts = [raw]
    for sep in separators:
        parts = [piece for part in parts for piece in part.split(sep)]
    return parts


def _is_symlink_loop(error: BaseException) -> bool:
    # Python < 3.13 raises RuntimeError for loops, newer versions OSError(ELOOP)
    if isinstance(error, RuntimeError):
        return True
    return isinstance(error, OSError) and error.errno == errno.ELOOP


class PathGuard:
    """
    Resolves user-supplied paths and confines them to the allowed roots.

    Usage:
        guard = PathGuard(config)
        resolved = guard.resolve("/srv/sandbox/notes.txt")
        new_file = guard.resolve("/srv/sandbox/new.txt", ResolveMode.MAY_NOT_EXIST)
    """

    def __init__(self, config: FileSystemAccessConfig):
        self.config = config

    @property
    def roots(self) -> tuple[Path, ...]:
        return self.config.allowed_directories

    def is_allowed(self, path: Path) -> bool:
        """True if a canonical path equals or lies beneath an allowed root."""
        return any(_is_within_directory(path, root) for root in self.roots)

    def is_root(self, path: Path) -> bool:
        return path in self.roots

    def resolve(
        self, path: str, mode: ResolveMode = ResolveMode.MUST_EXIST
    ) -> ResolvedPath:
        """
        Resolve a path to its canonical form and check it against the sandbox.

        Args:
            path: Path as supplied by the caller
            mode: MUST_EXIST for operations on existing entries,
                MAY_NOT_EXIST for operations that create the final component

        Returns:
            ResolvedPath with the canonical path

        Raises:
            InvalidPathError: If the input is malformed or, for MAY_NOT_EXIST,
                contains a '.' or '..' segment
            PathNotFoundError: If the path (or, for MAY_NOT_EXIST, its parent)
                does not exist
            FileAccessDeniedError: If the canonical path is outside every
                allowed directory
        """
        raw = self._check_input(path)

        if mode is ResolveMode.MAY_NOT_EXIST:
            self._reject_relative_segments(raw)
            resolved = self._resolve_new(raw)
        else:
            resolved = self._resolve_existing(raw)

        self._check_contained(raw, resolved.path)
        return resolved

    def validate_file(self, path: str) -> ResolvedPath:
        """Resolve an existing path and require a regular file."""
        resolved = self.resolve(path, ResolveMode.MUST_EXIST)
        if not resolved.path.is_file():
            raise InvalidPathError(path, "Not a file")
        return resolved

    def validate_directory(self, path: str) -> ResolvedPath:
        """Resolve an existing path and require a directory."""
        resolved = self.resolve(path, ResolveMode.MUST_EXIST)
        if not resolved.path.is_dir():
            raise InvalidPathError(path, "Not a directory")
        return resolved

    def validate_creatable(self, path: str) -> ResolvedPath:
        """
        Validate a path for recursive directory creation (``mkdir -p``).

        Walks up to the nearest existing ancestor, canonicalizes and checks
        it, then re-joins the missing tail segments. '.' and '..' segments
        are rejected up front since the tail is never canonicalized.
        """
        raw = self._check_input(path)
        self._reject_relative_segments(raw)

        candidate = Path(raw).expanduser()
        if not candidate.is_absolute():
            candidate = Path.cwd() / candidate

        existing = candidate
        tail: list[str] = []
        while not existing.exists():
            if existing.parent == existing:
                raise PathNotFoundError(path)
            tail.append(existing.name)
            existing = existing.parent

        base = self._canonicalize(path, existing)
        self._check_contained(raw, base)

        if tail and not base.is_dir():
            raise InvalidPathError(str(existing), "Not a directory")

        return ResolvedPath(
            path=base.joinpath(*reversed(tail)),
            exists=not tail,
            requested=path,
        )

    def _check_input(self, path: Optional[str]) -> str:
        if not isinstance(path, (str, os.PathLike)):
            raise InvalidPathError(repr(path), "Path must be a string")
        raw = os.fspath(path)
        if not raw or not raw.strip():
            raise InvalidPathError(raw, "Path must not be empty")
        if "\x00" in raw:
            raise InvalidPathError(raw.replace("\x00", "\\0"), "Path contains a NUL byte")
        return raw

    def _reject_relative_segments(self, raw: str) -> None:
        if any(segment in (".", "..") for segment in _segments(raw)):
            logger.warning(f"Rejected relative segment in path: {raw}")
            raise InvalidPathError(raw, "Path must not contain '.' or '..' segments")

    def _canonicalize(self, raw: str, candidate: Path) -> Path:
        try:
            return candidate.resolve(strict=True)
        except (FileNotFoundError, NotADirectoryError):
            # Missing paths outside the roots are denied, not reported missing
            self._check_contained(raw, self._resolve_lenient(raw, candidate))
            raise PathNotFoundError(raw)
        except (OSError, RuntimeError) as e:
            if _is_symlink_loop(e):
                raise InvalidPathError(raw, "Too many levels of symbolic links")
            raise OperationFailedError.from_os_error(e, raw)

    def _resolve_lenient(self, raw: str, candidate: Path) -> Path:
        """Resolve as far as the path exists, keeping the missing tail."""
        try:
            return candidate.resolve(strict=False)
        except (OSError, RuntimeError) as e:
            if _is_symlink_loop(e):
                raise InvalidPathError(raw, "Too many levels of symbolic links")
            raise OperationFailedError.from_os_error(e, raw)

    def _resolve_existing(self, raw: str) -> ResolvedPath:
        canonical = self._canonicalize(raw, Path(raw).expanduser())
        return ResolvedPath(path=canonical, exists=True, requested=raw)

    def _resolve_new(self, raw: str) -> ResolvedPath:
        candidate = Path(raw).expanduser()
        name = candidate.name
        if not name:
            raise InvalidPathError(raw, "Path has no final component")

        parent = self._canonicalize(str(candidate.parent), candidate.parent)
        if not parent.is_dir():
            raise InvalidPathError(str(candidate.parent), "Not a directory")

        target = parent / name
        if target.is_symlink():
            # Writing through an existing link lands on its target
            try:
                target = target.resolve()
            except (OSError, RuntimeError) as e:
                if _is_symlink_loop(e):
                    raise InvalidPathError(raw, "Too many levels of symbolic links")
                raise OperationFailedError.from_os_error(e, raw)

        return ResolvedPath(
            path=target, exists=os.path.lexists(target), requested=raw
        )

    def _check_contained(self, raw: str, canonical: Path) -> None:
        if not self.is_allowed(canonical):
            logger.warning(f"Access denied to {canonical} (requested {raw})")
            raise FileAccessDeniedError(raw, "Access denied: path outside allowed directories")
