"""Writing replacement text back over a comment's range."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from dropcomments_core.errors import EditError
from dropcomments_core.models import Range

logger = logging.getLogger(__name__)


class EditApplier(Protocol):
    def apply(self, path: str, range_: Range, text: str, expected: str | None = None) -> None:
        """Replace range in path with text atomically, or raise EditError.

        When expected is given, the range must still hold exactly that text.
        """


def _offset(lines: list[str], line: int, character: int) -> int:
    return sum(len(s) for s in lines[:line]) + character


def _bare(line: str) -> str:
    return line.splitlines()[0] if line else ""


def _range_text(lines: list[str], range_: Range) -> str:
    """Text under range, with line breaks normalized to \\n as the extractor reports them."""
    body = [_bare(s) for s in lines[range_.start.line : range_.end.line + 1]]
    if len(body) == 1:
        return body[0][range_.start.character : range_.end.character]
    body[0] = body[0][range_.start.character :]
    body[-1] = body[-1][: range_.end.character]
    return "\n".join(body)


def _reindent(text: str, indent: str) -> str:
    """Indent continuation lines that the generator returned flush-left."""
    lines = text.split("\n")
    return "\n".join([lines[0]] + [indent + s if s and not s[0].isspace() else s for s in lines[1:]])


def replace_range(content: str, range_: Range, text: str, expected: str | None = None) -> str:
    lines = content.splitlines(keepends=True)
    if range_.end.line >= len(lines) or range_.start > range_.end:
        raise EditError(f"Range {range_} is outside the file ({len(lines)} lines).")
    if expected is not None and _range_text(lines, range_) != expected:
        raise EditError(
            f"Line {range_.start.line + 1} no longer holds the scanned comment; rescan before applying."
        )
    first = lines[range_.start.line]
    indent = first[: len(first) - len(first.lstrip())]
    newline = "\r\n" if first.endswith("\r\n") else "\n"
    start = _offset(lines, range_.start.line, range_.start.character)
    end = _offset(lines, range_.end.line, range_.end.character)
    replacement = _reindent(text.replace("\r\n", "\n").strip("\n"), indent).replace("\n", newline)
    return content[:start] + replacement + content[end:]


class FileEditApplier:
    """Applies edits to files under a workspace root via temp file + rename.

    The file is decoded without newline translation, so its line endings
    survive the rewrite.
    """

    def __init__(self, root: str):
        self.root = Path(root)

    def apply(self, path: str, range_: Range, text: str, expected: str | None = None) -> None:
        target = self.root / path
        try:
            content = target.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise EditError(f"Could not read {path}: {e}") from e

        updated = replace_range(content, range_, text, expected)

        fd, tmp_path = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(updated)
            os.replace(tmp_path, target)
        except OSError as e:
            Path(tmp_path).unlink(missing_ok=True)
            raise EditError(f"Could not write {path}: {e}") from e
        logger.debug("Replaced %s in %s", range_, path)
