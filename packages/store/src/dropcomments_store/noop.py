"""No-op store — state lives only as long as the process.

Using a NoOpStore rather than None lets the core always call
store.set_list() without conditional checks.
"""

from __future__ import annotations

from dropcomments_store.base import BaseStateStore


class NoOpStore(BaseStateStore):
    """Accepts every write and reads back nothing."""

    def get_list(self, key: str) -> list[str]:
        return []

    def set_list(self, key: str, values: list[str]) -> None:
        pass  # intentional no-op
