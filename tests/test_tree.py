"""
Tests for directory tree enumeration.
"""

import tempfile
from pathlib import Path

import pytest

from fsgate.filesystem import (
    DirectoryTreeWalker,
    FileAccessDeniedError,
    FileSystemAccessConfig,
    InvalidParamsError,
    InvalidPathError,
)
from fsgate.filesystem.formatting import render_tree
from fsgate.filesystem.models import EntryKind
from fsgate.filesystem.tree import walk


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def project(temp_dir):
    """A small project layout."""
    (temp_dir / "src" / "pkg").mkdir(parents=True)
    (temp_dir / "src" / "pkg" / "core.py").write_text("x = 1\n")
    (temp_dir / "src" / "main.py").write_text("print(1)\n")
    (temp_dir / "README.md").write_text("# readme\n")
    (temp_dir / ".git").mkdir()
    (temp_dir / ".git" / "HEAD").write_text("ref\n")
    return temp_dir


@pytest.fixture
def walker(temp_dir):
    """Create a DirectoryTreeWalker instance."""
    config = FileSystemAccessConfig(allowed_directories=[temp_dir], max_tree_entries=50)
    return DirectoryTreeWalker(config)


def _names(node):
    return [child.name for child in node.children or []]


class TestWalk:
    """Tests for the shared traversal."""

    def test_depth_first_order(self, project):
        entries = list(walk(project, max_depth=10, include_hidden=False))
        assert [str(e.relative_path) for e in entries] == [
            "src",
            "src/pkg",
            "src/pkg/core.py",
            "src/main.py",
            "README.md",
        ]
        assert [e.depth for e in entries] == [1, 2, 3, 2, 1]

    def test_depth_limit(self, project):
        entries = list(walk(project, max_depth=1, include_hidden=False))
        assert [str(e.relative_path) for e in entries] == [
            "src",
            "src/pkg",
            "src/main.py",
            "README.md",
        ]
        pkg = entries[1]
        assert pkg.kind is EntryKind.DIRECTORY
        assert not pkg.descend

    def test_hidden_included_by_default(self, project):
        names = {str(e.relative_path) for e in walk(project, max_depth=10)}
        assert ".git/HEAD" in names

    def test_symlinked_directory_not_followed(self, project):
        (project / "loop").symlink_to(project)

        entries = list(walk(project, max_depth=10, include_hidden=False))
        loop = [e for e in entries if e.name == "loop"]
        assert len(loop) == 1
        assert loop[0].kind is EntryKind.SYMLINK
        assert not any(str(e.relative_path).startswith("loop/") for e in entries)


class TestDirectoryTree:
    """Tests for directory_tree."""

    def test_full_tree(self, project, walker):
        tree = walker.directory_tree(str(project))

        assert _names(tree.root) == ["src", "README.md"]
        src = tree.root.children[0]
        assert _names(src) == ["pkg", "main.py"]
        assert _names(src.children[0]) == ["core.py"]
        assert tree.node_count == 5
        assert not tree.truncated

    def test_hidden_entries_skipped(self, project, walker):
        tree = walker.directory_tree(str(project))
        assert ".git" not in _names(tree.root)

    def test_max_depth_zero_lists_children_only(self, project, walker):
        tree = walker.directory_tree(str(project), max_depth=0)

        assert _names(tree.root) == ["src", "README.md"]
        assert tree.root.children[0].children is None
        assert tree.max_depth == 0

    def test_requested_depth_capped_by_config(self, temp_dir):
        config = FileSystemAccessConfig(allowed_directories=[temp_dir], max_depth=2)
        tree = DirectoryTreeWalker(config).directory_tree(str(temp_dir), max_depth=50)
        assert tree.max_depth == 2

    def test_negative_depth(self, project, walker):
        with pytest.raises(InvalidParamsError):
            walker.directory_tree(str(project), max_depth=-1)

    def test_truncation(self, temp_dir):
        for i in range(10):
            (temp_dir / f"f{i}.txt").write_text("x")
        config = FileSystemAccessConfig(allowed_directories=[temp_dir], max_tree_entries=4)

        tree = DirectoryTreeWalker(config).directory_tree(str(temp_dir))
        assert tree.node_count == 4
        assert len(tree.root.children) == 4
        assert tree.truncated

    def test_symlink_shown_not_followed(self, project, walker):
        (project / "link").symlink_to(project / "src")

        tree = walker.directory_tree(str(project))
        link = next(c for c in tree.root.children if c.name == "link")
        assert link.kind is EntryKind.SYMLINK
        assert link.children is None

    def test_not_a_directory(self, project, walker):
        with pytest.raises(InvalidPathError):
            walker.directory_tree(str(project / "README.md"))

    def test_outside_denied(self, walker):
        with pytest.raises(FileAccessDeniedError):
            walker.directory_tree("/")

    def test_render(self, project, walker):
        text = render_tree(walker.directory_tree(str(project)))
        lines = text.splitlines()
        assert lines[0] == f"{project}/"
        assert lines[1] == "├── src/"
        assert lines[2] == "│   ├── pkg/"
        assert lines[3].startswith("│   │   └── core.py")
        assert lines[-1].startswith("└── README.md")
