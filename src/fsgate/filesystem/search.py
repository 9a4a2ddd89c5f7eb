"""
Restricted glob search over the sandbox.

Pattern dialect (case-sensitive everywhere, built on ``fnmatch.fnmatchcase``):

- A pattern without '/' is matched against the entry *name* at any depth:
  ``*.py``, ``test_?.txt``, ``[a-c]*``.
- A pattern with '/' is matched segment by segment against the POSIX path
  relative to the search root. ``*``, ``?`` and ``[...]`` never cross a
  '/', while a ``**`` segment matches zero or more whole segments:
  ``src/*.py``, ``src/**/*.py``, ``**/tests/*``. A leading '/' is ignored.
- A trailing '/' restricts the pattern to directories: ``build/``,
  ``**/node_modules/``.
"""

import logging
from fnmatch import fnmatchcase
from pathlib import PurePosixPath
from typing import Optional

from fsgate.filesystem.config import FileSystemAccessConfig
from fsgate.filesystem.exceptions import (
    InvalidParamsError,
    OperationFailedError,
    SearchError,
)
from fsgate.filesystem.guard import PathGuard
from fsgate.filesystem.models import EntryKind, SearchMatch, SearchResult
from fsgate.filesystem.tree import walk

logger = logging.getLogger(__name__)


def _match_segments(pattern: tuple[str, ...], parts: tuple[str, ...]) -> bool:
    if not pattern:
        return not parts
    head, rest = pattern[0], pattern[1:]
    if head == "**":
        # Zero or more whole segments
        return any(_match_segments(rest, parts[i:]) for i in range(len(parts) + 1))
    if not parts:
        return False
    return fnmatchcase(parts[0], head) and _match_segments(rest, parts[1:])


class GlobPattern:
    """A compiled search pattern."""

    def __init__(self, pattern: str):
        if not pattern or not pattern.strip():
            raise SearchError("Search pattern must not be empty")

        self.pattern = pattern
        self.directories_only = pattern.endswith("/")
        body = pattern.strip("/")
        if not body:
            raise SearchError(f"Invalid pattern: {pattern!r}")

        self.segments = tuple(body.split("/"))
        if any(seg in ("", ".", "..") for seg in self.segments):
            raise SearchError(
                f"Invalid pattern: {pattern!r} (empty, '.' or '..' segment)"
            )
        self.name_only = len(self.segments) == 1 and self.segments[0] != "**"

    def matches(self, relative_path: PurePosixPath, kind: EntryKind) -> bool:
        if self.directories_only and kind is not EntryKind.DIRECTORY:
            return False
        if self.name_only:
            return fnmatchcase(relative_path.name, self.segments[0])
        return _match_segments(self.segments, relative_path.parts)

    def __repr__(self) -> str:
        return f"GlobPattern({self.pattern!r})"


class RestrictedSearchTools:
    """
    Pattern search confined to the allowed directories.

    Usage:
        search = RestrictedSearchTools(config)
        result = search.search_files("/srv/sandbox", "**/*.py", max_results=20)
        for match in result.matches:
            print(match.relative_path)
    """

    def __init__(self, config: FileSystemAccessConfig, guard: Optional[PathGuard] = None):
        """
        Initialize search tools.

        Args:
            config: Filesystem access configuration
            guard: Path guard to share with other components
        """
        self.config = config
        self.guard = guard or PathGuard(config)

    def result_cap(self, max_results: Optional[int]) -> int:
        """Requested cap bounded to ``[1, max_search_results]``."""
        if max_results is None:
            return self.config.default_search_results
        if max_results < 1:
            raise InvalidParamsError("max_results must be a positive integer")
        return min(max_results, self.config.max_search_results)

    def search_files(
        self,
        path: str,
        pattern: str,
        max_results: Optional[int] = None,
    ) -> SearchResult:
        """
        Find entries below a directory whose name or relative path matches.

        Matches are emitted in traversal order; once the cap is reached the
        walk stops and the result is marked truncated.

        Args:
            path: Directory to search in
            pattern: Glob pattern (see module docstring)
            max_results: Result cap, bounded by the configured hard maximum

        Raises:
            FileAccessDeniedError: If directory access is denied
            PathNotFoundError: If the directory doesn't exist
            InvalidPathError: If the path is not a directory
            SearchError: If the pattern is invalid
        """
        glob = GlobPattern(pattern)
        cap = self.result_cap(max_results)
        root = self.guard.validate_directory(path).path

        matches: list[SearchMatch] = []
        truncated = False
        try:
            for entry in walk(root, self.config.max_depth):
                if not glob.matches(entry.relative_path, entry.kind):
                    continue
                if len(matches) >= cap:
                    truncated = True
                    break
                matches.append(
                    SearchMatch(
                        path=str(entry.path),
                        relative_path=str(entry.relative_path),
                        kind=entry.kind,
                        size=entry.size,
                    )
                )
        except OSError as e:
            raise OperationFailedError.from_os_error(e, path)

        if truncated:
            logger.info(f"Search in {root} for {pattern!r} truncated at {cap} results")
        logger.debug(f"Search in {root} for {pattern!r} found {len(matches)} matches")

        return SearchResult(
            root=str(root),
            pattern=pattern,
            max_results=cap,
            matches=matches,
            truncated=truncated,
        )
