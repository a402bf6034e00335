"""Authoritative collection of current findings and the dismissed-identity set.

The store owns removal on apply/dismiss and the persisted dismissal set. It
performs no regeneration status changes of its own: moving an item through
``regenerating`` is the RegenerationDriver's job, guarded by the advisory
status check.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from dropcomments_core.errors import InvalidStateError
from dropcomments_core.models import StaleCommentItem, Status

if TYPE_CHECKING:
    from dropcomments_core.edits import EditApplier
    from dropcomments_store.base import BaseStateStore

logger = logging.getLogger(__name__)

DISMISSED_KEY = "dismissedStaleComments"


class ItemStore:
    def __init__(
        self,
        state_store: BaseStateStore,
        edit_applier: EditApplier | None = None,
        key: str = DISMISSED_KEY,
    ):
        self._state_store = state_store
        self._edit_applier = edit_applier
        self._key = key
        self._lock = threading.RLock()
        self._persist_lock = threading.Lock()
        self._items: dict[str, StaleCommentItem] = {}
        self._dismissed: set[str] = set(state_store.get_list(key))

    # ------------------------------------------------------------------ #
    # Queries                                                              #
    # ------------------------------------------------------------------ #

    def get_all(self) -> list[StaleCommentItem]:
        """Sorted snapshot: score descending, then file path, then range start."""
        with self._lock:
            visible = [item for item in self._items.values() if item.id not in self._dismissed]
        return sorted(visible, key=StaleCommentItem.sort_key)

    def get(self, item_id: str) -> StaleCommentItem | None:
        with self._lock:
            if item_id in self._dismissed:
                return None
            return self._items.get(item_id)

    def find(self, prefix: str) -> StaleCommentItem:
        """Resolve a unique id prefix to a visible item."""
        matches = [item for item in self.get_all() if item.id.startswith(prefix)]
        if not matches:
            raise InvalidStateError(f"No finding matches id {prefix!r}.")
        if len(matches) > 1:
            raise InvalidStateError(f"Id prefix {prefix!r} is ambiguous ({len(matches)} findings).")
        return matches[0]

    def is_dismissed(self, item_id: str) -> bool:
        with self._lock:
            return item_id in self._dismissed

    def dismissed_ids(self) -> set[str]:
        with self._lock:
            return set(self._dismissed)

    def __len__(self) -> int:
        return len(self.get_all())

    # ------------------------------------------------------------------ #
    # Replacement from scans                                               #
    # ------------------------------------------------------------------ #

    def replace_all(self, items: list[StaleCommentItem]) -> list[StaleCommentItem]:
        """Swap in a full scan's findings and return the items now held for them."""
        with self._lock:
            self._items = self._adopt(items)
            return list(self._items.values())

    def replace_files(self, paths: set[str], items: list[StaleCommentItem]) -> list[StaleCommentItem]:
        """Swap in new findings for the given files, leaving other files untouched."""
        with self._lock:
            adopted = self._adopt(items)
            kept = {i: item for i, item in self._items.items() if item.file_path not in paths}
            kept.update(adopted)
            self._items = kept
            return list(adopted.values())

    def _adopt(self, items: list[StaleCommentItem]) -> dict[str, StaleCommentItem]:
        # A rescan never moves a held finding's status backwards: the live
        # object keeps its status and regenerated text, and only its scoring
        # is refreshed. Same id means same file, range and comment text.
        adopted: dict[str, StaleCommentItem] = {}
        for item in items:
            if item.id in self._dismissed:
                continue
            live = self._items.get(item.id)
            if live is not None:
                live.score = item.score
                live.reasons = item.reasons
                live.reason_messages = item.reason_messages
                live.surrounding_code = item.surrounding_code
                item = live
            adopted[item.id] = item
        return adopted

    # ------------------------------------------------------------------ #
    # Lifecycle                                                            #
    # ------------------------------------------------------------------ #

    def dismiss(self, item: StaleCommentItem) -> None:
        """Hide a finding permanently. Dismissing twice is a no-op."""
        with self._lock:
            if item.id in self._dismissed:
                return
            if item.id not in self._items:
                raise InvalidStateError(f"Cannot dismiss unknown finding {item.id}.")
            if not item.status.can_transition(Status.DISMISSED):
                raise InvalidStateError(f"Cannot dismiss a finding that is {item.status.value}.")
            self._dismissed.add(item.id)
            del self._items[item.id]
            item.status = Status.DISMISSED
        self._persist()

    def restore(self, item_id: str) -> bool:
        """Forget a dismissal so the finding can surface on the next scan."""
        with self._lock:
            if item_id not in self._dismissed:
                return False
            self._dismissed.discard(item_id)
        self._persist()
        return True

    def apply(self, item: StaleCommentItem) -> None:
        """Write the regenerated text over the original comment and retire the item."""
        with self._lock:
            if item.id not in self._items or item.id in self._dismissed:
                raise InvalidStateError(f"Cannot apply unknown finding {item.id}.")
            if not item.regenerated_text:
                raise InvalidStateError("No regenerated text available; regenerate the comment first.")
            if not item.status.can_transition(Status.APPLIED):
                raise InvalidStateError(f"Cannot apply a finding that is {item.status.value}.")
        if self._edit_applier is None:
            raise InvalidStateError("No edit applier configured.")

        self._edit_applier.apply(item.file_path, item.range, item.regenerated_text, item.original_comment_text)

        with self._lock:
            self._items.pop(item.id, None)
            item.status = Status.APPLIED
        logger.info("Applied regenerated comment to %s:%d", item.file_path, item.range.start.line + 1)

    def _persist(self) -> None:
        # Snapshot and write under one lock so the newest set is always written last.
        with self._persist_lock:
            with self._lock:
                snapshot = sorted(self._dismissed)
            try:
                self._state_store.set_list(self._key, snapshot)
            except Exception as e:
                # The dismissal still holds for this process; only persistence failed.
                logger.warning("Could not persist dismissed findings (%s): %s", type(e).__name__, e)
