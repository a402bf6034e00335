"""Data model shared by the extractor, heuristics, cache and item store.

Candidates and contexts are ephemeral and live only for one scan pass.
StaleCommentItem is the durable finding: its identity is a pure function of
(file path, range, original comment text) so that an unchanged file yields
the same identities on every rescan. Cache hits and the persisted dismissal
set both depend on that.
"""

from __future__ import annotations

import enum
import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable


@dataclass(frozen=True, order=True)
class Position:
    line: int  # zero-based
    character: int  # zero-based


@dataclass(frozen=True, order=True)
class Range:
    start: Position
    end: Position

    @classmethod
    def from_lines(cls, start_line: int, start_char: int, end_line: int, end_char: int) -> Range:
        return cls(Position(start_line, start_char), Position(end_line, end_char))


class CommentKind(str, enum.Enum):
    LINE = "line"
    BLOCK = "block"


@dataclass(frozen=True)
class CodeWindow:
    """The bounded span of code a comment is taken to describe."""

    start_line: int
    end_line: int
    lines: tuple[str, ...] = ()
    # First non-blank code line after the comment: usually the declaration
    # the comment documents.
    declaration: str | None = None

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


@dataclass(frozen=True)
class CommentCandidate:
    text: str
    range: Range
    kind: CommentKind
    window: CodeWindow


@dataclass
class VcsInfo:
    """Version-control metadata for one file. Absent entirely when unavailable."""

    last_modified: datetime
    revision: str
    # Zero-based line number -> time / revision of the commit that last touched it.
    line_times: dict[int, datetime] = field(default_factory=dict)
    line_revisions: dict[int, str] = field(default_factory=dict)
    # Loads the file's content at a revision; returns None when it cannot.
    content_at: Callable[[str], str | None] | None = None


@dataclass(frozen=True)
class FileContext:
    file_path: str
    language_id: str
    symbols: frozenset[str] = frozenset()
    workspace_root: str = ""
    vcs: VcsInfo | None = None
    # Identifiers used in code anywhere in the workspace; empty until a scan indexes it.
    workspace_symbols: frozenset[str] = frozenset()


class Status(str, enum.Enum):
    DETECTED = "detected"
    REGENERATING = "regenerating"
    UPDATED = "updated"
    APPLIED = "applied"
    DISMISSED = "dismissed"

    def can_transition(self, to: Status) -> bool:
        return to in _TRANSITIONS[self]


_TRANSITIONS: dict[Status, frozenset[Status]] = {
    Status.DETECTED: frozenset({Status.REGENERATING, Status.DISMISSED}),
    # Reverting to DETECTED is the only backwards move, and only on failure.
    Status.REGENERATING: frozenset({Status.UPDATED, Status.DETECTED}),
    Status.UPDATED: frozenset({Status.APPLIED, Status.DISMISSED}),
    Status.APPLIED: frozenset(),
    Status.DISMISSED: frozenset(),
}


def make_item_id(file_path: str, range_: Range, text: str) -> str:
    """Return the deterministic identity of a finding."""
    key = (
        f"{file_path}\x00{range_.start.line}:{range_.start.character}-"
        f"{range_.end.line}:{range_.end.character}\x00{text}"
    )
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]


@dataclass
class StaleCommentItem:
    id: str
    file_path: str
    range: Range
    original_comment_text: str
    surrounding_code: str
    score: float
    language_id: str
    reasons: list[str] = field(default_factory=list)  # heuristic names, strongest first
    reason_messages: list[str] = field(default_factory=list)
    status: Status = Status.DETECTED
    regenerated_text: str | None = None
    last_modified: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def sort_key(self) -> tuple:
        return (-self.score, self.file_path, self.range.start.line, self.range.start.character)


@dataclass(frozen=True)
class CacheEntry:
    digest: str
    mtime: float
    items: tuple[StaleCommentItem, ...] = ()
