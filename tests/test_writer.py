"""
Tests for write and destructive operations.
"""

import tempfile
from pathlib import Path

import pytest

from fsgate.filesystem import (
    DirectoryNotEmptyError,
    FileAccessDeniedError,
    FileSystemAccessConfig,
    InvalidPathError,
    PathNotFoundError,
    PermissionTier,
    RestrictedFileWriter,
)
from fsgate.filesystem.models import EntryKind


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def root(temp_dir):
    """The sandbox root."""
    path = temp_dir / "sandbox"
    path.mkdir()
    (temp_dir / "outside").mkdir()
    return path


@pytest.fixture
def writer(root):
    """Create a RestrictedFileWriter with every operation enabled."""
    config = FileSystemAccessConfig(
        allowed_directories=[root], permission_tier=PermissionTier.DESTRUCTIVE
    )
    return RestrictedFileWriter(config)


class TestWriteFile:
    """Tests for write_file."""

    def test_create_new_file(self, root, writer):
        result = writer.write_file(str(root / "new.txt"), "hello\n")

        assert result.created
        assert result.bytes_written == 6
        assert (root / "new.txt").read_text() == "hello\n"

    def test_overwrite_existing(self, root, writer):
        (root / "f.txt").write_text("old")

        result = writer.write_file(str(root / "f.txt"), "new")
        assert not result.created
        assert (root / "f.txt").read_text() == "new"

    def test_parent_must_exist(self, root, writer):
        with pytest.raises(PathNotFoundError):
            writer.write_file(str(root / "missing" / "f.txt"), "x")

    def test_directory_target_rejected(self, root, writer):
        (root / "dir").mkdir()
        with pytest.raises(InvalidPathError):
            writer.write_file(str(root / "dir"), "x")

    def test_outside_denied(self, temp_dir, writer):
        with pytest.raises(FileAccessDeniedError):
            writer.write_file(str(temp_dir / "outside" / "f.txt"), "x")
        assert not (temp_dir / "outside" / "f.txt").exists()

    def test_traversal_rejected(self, root, writer):
        with pytest.raises(InvalidPathError):
            writer.write_file(f"{root}/../outside/f.txt", "x")

    def test_requires_write_tier(self, root):
        writer = RestrictedFileWriter(FileSystemAccessConfig(allowed_directories=[root]))
        with pytest.raises(FileAccessDeniedError, match="Write operations are disabled"):
            writer.write_file(str(root / "f.txt"), "x")


class TestCreateDirectory:
    """Tests for create_directory."""

    def test_creates_parents(self, root, writer):
        result = writer.create_directory(str(root / "a" / "b" / "c"))

        assert result.created
        assert (root / "a" / "b" / "c").is_dir()

    def test_existing_directory_is_ok(self, root, writer):
        (root / "a").mkdir()

        result = writer.create_directory(str(root / "a"))
        assert not result.created

    def test_file_in_the_way(self, root, writer):
        (root / "f.txt").write_text("x")
        with pytest.raises(InvalidPathError):
            writer.create_directory(str(root / "f.txt"))

    def test_outside_denied(self, temp_dir, writer):
        with pytest.raises(FileAccessDeniedError):
            writer.create_directory(str(temp_dir / "outside" / "a" / "b"))
        assert not (temp_dir / "outside" / "a").exists()


class TestDelete:
    """Tests for delete_file and delete_directory."""

    def test_delete_file(self, root, writer):
        (root / "f.txt").write_text("x")

        result = writer.delete_file(str(root / "f.txt"))
        assert result.kind is EntryKind.FILE
        assert not (root / "f.txt").exists()

    def test_delete_file_rejects_directory(self, root, writer):
        (root / "dir").mkdir()
        with pytest.raises(InvalidPathError):
            writer.delete_file(str(root / "dir"))

    def test_delete_missing_file(self, root, writer):
        with pytest.raises(PathNotFoundError):
            writer.delete_file(str(root / "missing.txt"))

    def test_delete_empty_directory(self, root, writer):
        (root / "empty").mkdir()

        result = writer.delete_directory(str(root / "empty"))
        assert result.kind is EntryKind.DIRECTORY
        assert not (root / "empty").exists()

    def test_delete_non_empty_directory(self, root, writer):
        (root / "full").mkdir()
        (root / "full" / "child.txt").write_text("x")

        with pytest.raises(DirectoryNotEmptyError):
            writer.delete_directory(str(root / "full"))
        assert (root / "full" / "child.txt").exists()

    def test_delete_directory_with_hidden_child(self, root, writer):
        (root / "full").mkdir()
        (root / "full" / ".keep").write_text("")

        with pytest.raises(DirectoryNotEmptyError):
            writer.delete_directory(str(root / "full"))
        assert (root / "full").is_dir()

    def test_cannot_delete_root(self, root, writer):
        with pytest.raises(FileAccessDeniedError):
            writer.delete_directory(str(root))
        assert root.is_dir()

    def test_delete_through_symlink_to_outside(self, temp_dir, root, writer):
        (temp_dir / "outside" / "secret.txt").write_text("x")
        (root / "leak.txt").symlink_to(temp_dir / "outside" / "secret.txt")

        with pytest.raises(FileAccessDeniedError):
            writer.delete_file(str(root / "leak.txt"))
        assert (temp_dir / "outside" / "secret.txt").exists()

    def test_requires_destructive_tier(self, root):
        (root / "f.txt").write_text("x")
        config = FileSystemAccessConfig(allowed_directories=[root], allow_write=True)

        with pytest.raises(FileAccessDeniedError, match="Destructive operations are disabled"):
            RestrictedFileWriter(config).delete_file(str(root / "f.txt"))
        assert (root / "f.txt").exists()


class TestMoveFile:
    """Tests for move_file."""

    def test_rename_file(self, root, writer):
        (root / "a.txt").write_text("x")

        result = writer.move_file(str(root / "a.txt"), str(root / "b.txt"))
        assert result.destination == str(root / "b.txt")
        assert (root / "b.txt").read_text() == "x"
        assert not (root / "a.txt").exists()

    def test_move_directory(self, root, writer):
        (root / "src").mkdir()
        (root / "src" / "f.txt").write_text("x")
        (root / "dst").mkdir()

        writer.move_file(str(root / "src"), str(root / "dst" / "moved"))
        assert (root / "dst" / "moved" / "f.txt").exists()

    def test_destination_exists(self, root, writer):
        (root / "a.txt").write_text("a")
        (root / "b.txt").write_text("b")

        with pytest.raises(InvalidPathError, match="already exists"):
            writer.move_file(str(root / "a.txt"), str(root / "b.txt"))
        assert (root / "b.txt").read_text() == "b"

    def test_destination_outside_denied(self, temp_dir, root, writer):
        (root / "a.txt").write_text("a")

        with pytest.raises(FileAccessDeniedError):
            writer.move_file(str(root / "a.txt"), str(temp_dir / "outside" / "a.txt"))
        assert (root / "a.txt").exists()

    def test_source_outside_denied(self, temp_dir, root, writer):
        (temp_dir / "outside" / "a.txt").write_text("a")

        with pytest.raises(FileAccessDeniedError):
            writer.move_file(str(temp_dir / "outside" / "a.txt"), str(root / "a.txt"))

    def test_cannot_move_root(self, root, writer):
        with pytest.raises(FileAccessDeniedError):
            writer.move_file(str(root), str(root / "inner"))

    def test_cannot_move_directory_into_itself(self, root, writer):
        (root / "dir").mkdir()
        with pytest.raises(InvalidPathError):
            writer.move_file(str(root / "dir"), str(root / "dir" / "child"))
