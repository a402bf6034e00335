"""Error taxonomy for the scanning engine and the review lifecycle.

Only two conditions ever abort a whole workspace scan: cancellation and a
WorkspaceError raised while enumerating files. Everything else is isolated to
the file, heuristic or item it concerns.
"""

from __future__ import annotations

import enum


class DropCommentsError(Exception):
    """Base class for all errors raised by dropcomments_core."""


class WorkspaceError(DropCommentsError):
    """The workspace root cannot be enumerated."""


class ScanIOError(DropCommentsError):
    """A single file could not be read or was too large to scan.

    ``skipped`` marks files passed over on purpose (oversized or binary) as
    opposed to files that failed to read.
    """

    def __init__(self, path: str, message: str, skipped: bool = False):
        self.path = path
        self.skipped = skipped
        super().__init__(f"{path}: {message}")


class InvalidStateError(DropCommentsError):
    """A lifecycle operation was requested on an item that cannot accept it."""


class EditError(DropCommentsError):
    """A replacement could not be written back to the file."""


class GenerationErrorKind(str, enum.Enum):
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    TRANSIENT = "transient"
    OTHER = "other"


_KIND_MESSAGES = {
    GenerationErrorKind.AUTH: "Invalid API key. Please check your configuration.",
    GenerationErrorKind.RATE_LIMIT: "API rate limit exceeded. Please try again later.",
    GenerationErrorKind.TRANSIENT: "Generation service temporarily unavailable. Please try again later.",
    GenerationErrorKind.OTHER: "Failed to generate comment.",
}


class GenerationError(DropCommentsError):
    """A classified failure from the text generator."""

    def __init__(self, kind: GenerationErrorKind, detail: str = ""):
        self.kind = kind
        self.detail = detail
        message = _KIND_MESSAGES[kind]
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return self.kind in (GenerationErrorKind.RATE_LIMIT, GenerationErrorKind.TRANSIENT)
