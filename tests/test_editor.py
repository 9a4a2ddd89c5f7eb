"""
Tests for exact-text file editing.
"""

import tempfile
from pathlib import Path

import pytest

from fsgate.filesystem import (
    AmbiguousMatchError,
    BinaryFileError,
    FileAccessDeniedError,
    FileSystemAccessConfig,
    InvalidParamsError,
    NoMatchError,
    RestrictedFileEditor,
)
from fsgate.filesystem.editor import apply_edits, count_occurrences, unified_diff
from fsgate.filesystem.models import EditOperation


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def editor(temp_dir):
    """Create a RestrictedFileEditor instance."""
    config = FileSystemAccessConfig(allowed_directories=[temp_dir], allow_write=True)
    return RestrictedFileEditor(config)


@pytest.fixture
def source(temp_dir):
    """A file to edit."""
    path = temp_dir / "app.py"
    path.write_text("DEBUG = True\nNAME = 'app'\n\ndef main():\n    run()\n")
    return path


class TestApplyEdits:
    """Tests for the pure edit fold."""

    def test_sequential_edits_see_previous_result(self):
        edits = [
            EditOperation(old_text="alpha", new_text="beta"),
            EditOperation(old_text="beta", new_text="gamma"),
        ]
        assert apply_edits("alpha\n", edits, "f") == "gamma\n"

    def test_ambiguous(self):
        with pytest.raises(AmbiguousMatchError) as exc_info:
            apply_edits("foo bar foo", [EditOperation(old_text="foo", new_text="x")], "f")
        assert exc_info.value.count == 2

    def test_overlapping_occurrences_counted(self):
        assert count_occurrences("aaa", "aa") == 2
        with pytest.raises(AmbiguousMatchError):
            apply_edits("aaa", [EditOperation(old_text="aa", new_text="b")], "f")

    def test_no_match(self):
        with pytest.raises(NoMatchError):
            apply_edits("abc", [EditOperation(old_text="xyz", new_text="")], "f")

    def test_camel_case_aliases(self):
        edit = EditOperation.model_validate({"oldText": "a", "newText": "b"})
        assert edit.old_text == "a"
        assert edit.new_text == "b"


class TestUnifiedDiff:
    """Tests for diff rendering."""

    def test_diff_headers_and_hunk(self):
        diff = unified_diff("a\nb\n", "a\nc\n", "/x/f.txt")
        assert diff.startswith("--- /x/f.txt\n+++ /x/f.txt\n")
        assert "-b\n" in diff
        assert "+c\n" in diff

    def test_missing_trailing_newline_marked(self):
        diff = unified_diff("a\nb", "a\nc", "f")
        assert "\\ No newline at end of file" in diff

    def test_no_change_is_empty(self):
        assert unified_diff("same\n", "same\n", "f") == ""


class TestRestrictedFileEditor:
    """Tests for RestrictedFileEditor."""

    def test_edit_writes_and_returns_diff(self, source, editor):
        result = editor.edit_file(
            str(source), [{"old_text": "DEBUG = True", "new_text": "DEBUG = False"}]
        )

        assert result.written
        assert result.edits_applied == 1
        assert "-DEBUG = True" in result.diff
        assert "+DEBUG = False" in result.diff
        assert source.read_text().startswith("DEBUG = False\n")

    def test_reapplying_fails_with_no_match(self, source, editor):
        edits = [{"old_text": "DEBUG = True", "new_text": "DEBUG = False"}]
        editor.edit_file(str(source), edits)

        with pytest.raises(NoMatchError):
            editor.edit_file(str(source), edits)

    def test_failed_edit_leaves_file_untouched(self, temp_dir, editor):
        path = temp_dir / "foo.txt"
        path.write_text("foo\nfoo\n")

        with pytest.raises(AmbiguousMatchError):
            editor.edit_file(str(path), [{"old_text": "foo", "new_text": "bar"}])
        assert path.read_text() == "foo\nfoo\n"

    def test_later_failure_prevents_earlier_edits(self, source, editor):
        original = source.read_text()
        with pytest.raises(NoMatchError):
            editor.edit_file(
                str(source),
                [
                    {"old_text": "DEBUG = True", "new_text": "DEBUG = False"},
                    {"old_text": "missing", "new_text": "x"},
                ],
            )
        assert source.read_text() == original

    def test_dry_run(self, source, editor):
        original = source.read_text()
        result = editor.edit_file(
            str(source), [{"oldText": "run()", "newText": "serve()"}], dry_run=True
        )

        assert not result.written
        assert "+    serve()" in result.diff
        assert source.read_text() == original

    def test_identity_edit_does_not_write(self, source, editor):
        before = source.stat().st_mtime_ns
        result = editor.edit_file(
            str(source), [{"old_text": "NAME = 'app'", "new_text": "NAME = 'app'"}]
        )
        assert not result.written
        assert result.diff == ""
        assert source.stat().st_mtime_ns == before

    def test_crlf_preserved(self, temp_dir, editor):
        path = temp_dir / "win.txt"
        path.write_bytes(b"one\r\ntwo\r\n")

        editor.edit_file(str(path), [{"old_text": "two", "new_text": "three"}])
        assert path.read_bytes() == b"one\r\nthree\r\n"

    def test_empty_edit_list(self, source, editor):
        with pytest.raises(InvalidParamsError):
            editor.edit_file(str(source), [])

    def test_empty_old_text(self, source, editor):
        with pytest.raises(InvalidParamsError):
            editor.edit_file(str(source), [{"old_text": "", "new_text": "x"}])

    def test_malformed_edit(self, source, editor):
        with pytest.raises(InvalidParamsError):
            editor.edit_file(str(source), [{"old": "DEBUG"}])

    def test_binary_file(self, temp_dir, editor):
        path = temp_dir / "data.bin"
        path.write_bytes(b"abc\x00def")

        with pytest.raises(BinaryFileError):
            editor.edit_file(str(path), [{"old_text": "abc", "new_text": "x"}])

    def test_outside_denied(self, editor):
        with tempfile.TemporaryDirectory() as other:
            path = Path(other) / "victim.txt"
            path.write_text("a\n")

            with pytest.raises(FileAccessDeniedError):
                editor.edit_file(str(path), [{"old_text": "a", "new_text": "b"}])
            assert path.read_text() == "a\n"

    def test_requires_write_tier(self, source, temp_dir):
        """Test that a read-only config refuses real edits but allows dry runs."""
        editor = RestrictedFileEditor(FileSystemAccessConfig(allowed_directories=[temp_dir]))
        edits = [{"old_text": "DEBUG = True", "new_text": "DEBUG = False"}]

        with pytest.raises(FileAccessDeniedError, match="Write operations are disabled"):
            editor.edit_file(str(source), edits)

        result = editor.edit_file(str(source), edits, dry_run=True)
        assert "+DEBUG = False" in result.diff
        assert source.read_text().startswith("DEBUG = True\n")
