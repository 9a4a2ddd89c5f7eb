"""
Bounded directory tree enumeration.

``walk`` is the shared traversal: depth-first, bounded by depth, and never
following symlinks, so it cannot cycle or wander outside the directory it
started in. ``DirectoryTreeWalker`` builds a nested tree on top of it and
the searcher filters it by pattern.
"""

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterator, Optional

from fsgate.filesystem.config import FileSystemAccessConfig
from fsgate.filesystem.exceptions import InvalidParamsError, OperationFailedError
from fsgate.filesystem.guard import PathGuard
from fsgate.filesystem.models import DirectoryTree, EntryKind, TreeNode
from fsgate.filesystem.reader import scan_directory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalkEntry:
    """An entry visited by :func:`walk`."""

    path: Path
    relative_path: PurePosixPath
    name: str
    kind: EntryKind
    size: int
    depth: int
    descend: bool


def walk(root: Path, max_depth: int, include_hidden: bool = True) -> Iterator[WalkEntry]:
    """
    Depth-first traversal below ``root``.

    Children of ``root`` are at depth 1. A directory at depth ``d`` is
    descended into only while ``d <= max_depth``; deeper directories are
    yielded with ``descend=False``. Entries are visited in
    :func:`scan_directory` order. The walk is lazy so callers can stop as
    soon as they have enough.

    Raises:
        OSError: If ``root`` itself cannot be read
    """
    stack = [iter(scan_directory(root, include_hidden))]
    while stack:
        item = next(stack[-1], None)
        if item is None:
            stack.pop()
            continue

        depth = len(stack)
        descend = item.kind is EntryKind.DIRECTORY and depth <= max_depth
        yield WalkEntry(
            path=item.path,
            relative_path=PurePosixPath(item.path.relative_to(root).as_posix()),
            name=item.name,
            kind=item.kind,
            size=item.size,
            depth=depth,
            descend=descend,
        )

        if descend:
            try:
                children = scan_directory(item.path, include_hidden)
            except OSError as e:
                logger.debug(f"Cannot read {item.path}: {e}")
                continue
            stack.append(iter(children))


class DirectoryTreeWalker:
    """
    Builds bounded directory trees.

    Usage:
        walker = DirectoryTreeWalker(config)
        tree = walker.directory_tree("/srv/sandbox/project", max_depth=2)
    """

    def __init__(self, config: FileSystemAccessConfig, guard: Optional[PathGuard] = None):
        self.config = config
        self.guard = guard or PathGuard(config)

    def effective_depth(self, max_depth: Optional[int]) -> int:
        """Requested depth clamped to the configured maximum."""
        if max_depth is None:
            return self.config.max_depth
        if max_depth < 0:
            raise InvalidParamsError("max_depth must be a non-negative integer")
        return min(max_depth, self.config.max_depth)

    def directory_tree(
        self,
        path: str,
        max_depth: Optional[int] = None,
        include_hidden: bool = False,
    ) -> DirectoryTree:
        """
        Build a tree below a directory.

        Stops early once ``max_tree_entries`` nodes have been emitted and
        marks the result truncated; the partial tree is still returned.

        Args:
            path: Directory to start from
            max_depth: Levels to expand below the root's children
            include_hidden: Include entries whose name starts with '.'

        Raises:
            FileAccessDeniedError: If access is denied
            PathNotFoundError: If the directory doesn't exist
            InvalidPathError: If the path is not a directory
        """
        depth = self.effective_depth(max_depth)
        directory = self.guard.validate_directory(path).path
        cap = self.config.max_tree_entries

        root = TreeNode(name=directory.name or str(directory), kind=EntryKind.DIRECTORY, children=[])
        # parents[d] is the open directory node whose children sit at depth d + 1
        parents = [root]
        count = 0
        truncated = False

        try:
            for entry in walk(directory, depth, include_hidden):
                if count >= cap:
                    truncated = True
                    break
                count += 1

                node = TreeNode(
                    name=entry.name,
                    kind=entry.kind,
                    size=entry.size,
                    children=[] if entry.descend else None,
                )
                del parents[entry.depth:]
                parents[-1].children.append(node)
                if entry.descend:
                    parents.append(node)
        except OSError as e:
            raise OperationFailedError.from_os_error(e, path)

        if truncated:
            logger.info(f"Tree of {directory} truncated at {cap} entries")
        logger.debug(f"Built tree of {directory} ({count} nodes, depth {depth})")

        return DirectoryTree(
            path=str(directory),
            root=root,
            max_depth=depth,
            node_count=count,
            truncated=truncated,
        )
