"""
Exact-text file editing.

Edits are applied to an in-memory copy, one after another, and the file is
written only if every edit matched exactly once. The caller gets a unified
diff back so it can check the change without re-reading the file.
"""

import difflib
import logging
from typing import Any, Optional, Sequence, Union

from pydantic import ValidationError

from fsgate.filesystem.config import FileSystemAccessConfig
from fsgate.filesystem.exceptions import (
    AmbiguousMatchError,
    FileAccessDeniedError,
    InvalidParamsError,
    NoMatchError,
    OperationFailedError,
)
from fsgate.filesystem.guard import PathGuard
from fsgate.filesystem.models import EditOperation, EditResult
from fsgate.filesystem.reader import RestrictedFileReader

logger = logging.getLogger(__name__)


def count_occurrences(content: str, text: str) -> int:
    """Count occurrences of text, including overlapping ones."""
    count = 0
    start = content.find(text)
    while start != -1:
        count += 1
        start = content.find(text, start + 1)
    return count


def apply_edit(content: str, edit: EditOperation, path: str) -> str:
    """
    Replace the single occurrence of ``edit.old_text``.

    Raises:
        NoMatchError: If old_text does not occur
        AmbiguousMatchError: If old_text occurs more than once
    """
    first = content.find(edit.old_text)
    if first == -1:
        raise NoMatchError(path, edit.old_text)
    if content.find(edit.old_text, first + 1) != -1:
        raise AmbiguousMatchError(
            path, edit.old_text, count_occurrences(content, edit.old_text)
        )
    return content[:first] + edit.new_text + content[first + len(edit.old_text):]


def apply_edits(content: str, edits: Sequence[EditOperation], path: str) -> str:
    """Fold the edits over the content; each sees the result of the previous."""
    for edit in edits:
        content = apply_edit(content, edit, path)
    return content


def unified_diff(original: str, updated: str, path: str) -> str:
    """Line-based unified diff between two versions of a file."""
    lines = difflib.unified_diff(
        original.splitlines(keepends=True),
        updated.splitlines(keepends=True),
        fromfile=path,
        tofile=path,
    )
    output = []
    for line in lines:
        if line.endswith("\n"):
            output.append(line)
        else:
            output.append(line + "\n\\ No newline at end of file\n")
    return "".join(output)


def parse_edits(edits: Sequence[Union[EditOperation, dict[str, Any]]], path: str) -> list[EditOperation]:
    """Validate raw edit dictionaries into EditOperation objects."""
    if not edits:
        raise InvalidParamsError("At least one edit is required", path)
    parsed = []
    for index, edit in enumerate(edits):
        try:
            operation = (
                edit if isinstance(edit, EditOperation) else EditOperation.model_validate(edit)
            )
        except ValidationError as e:
            raise InvalidParamsError(f"Invalid edit #{index + 1}: {e}", path)
        if not operation.old_text:
            raise InvalidParamsError(f"Edit #{index + 1} has an empty old_text", path)
        parsed.append(operation)
    return parsed


class RestrictedFileEditor:
    """
    Transactional exact-text editor confined to the allowed directories.

    Usage:
        editor = RestrictedFileEditor(config)
        result = editor.edit_file(
            "/srv/sandbox/app.py",
            [{"old_text": "DEBUG = True", "new_text": "DEBUG = False"}],
        )
        print(result.diff)
    """

    def __init__(
        self,
        config: FileSystemAccessConfig,
        guard: Optional[PathGuard] = None,
        reader: Optional[RestrictedFileReader] = None,
    ):
        self.config = config
        self.guard = guard or PathGuard(config)
        self.reader = reader or RestrictedFileReader(config, self.guard)

    def edit_file(
        self,
        path: str,
        edits: Sequence[Union[EditOperation, dict[str, Any]]],
        dry_run: bool = False,
    ) -> EditResult:
        """
        Apply a sequence of edits to a file.

        Nothing is written unless every edit applies. With ``dry_run`` the
        diff is computed but the file is left untouched.

        Args:
            path: File to edit
            edits: Ordered (old_text, new_text) replacements
            dry_run: Compute the diff without writing

        Returns:
            EditResult with the unified diff

        Raises:
            InvalidParamsError: If the edit list is empty or malformed
            NoMatchError: If an old_text is not found
            AmbiguousMatchError: If an old_text is found more than once
            BinaryFileError: If the file is binary
            FileAccessDeniedError: If writing is disabled and this is not a dry run
        """
        if not dry_run and not self.config.allow_write:
            logger.warning(f"Edit denied for {path}: write operations are disabled")
            raise FileAccessDeniedError(path, "Write operations are disabled")

        operations = parse_edits(edits, path)
        file_path = self.guard.validate_file(path).path

        original = self.reader.load_text(path, file_path)
        updated = apply_edits(original, operations, path)
        diff = unified_diff(original, updated, path)

        written = False
        if not dry_run and updated != original:
            try:
                file_path.write_bytes(updated.encode("utf-8"))
            except OSError as e:
                logger.error(f"Failed to write {file_path}: {e}")
                raise OperationFailedError.from_os_error(e, path)
            written = True
            logger.info(f"Applied {len(operations)} edit(s) to {file_path}")

        return EditResult(
            path=str(file_path),
            edits_applied=len(operations),
            diff=diff,
            written=written,
        )
