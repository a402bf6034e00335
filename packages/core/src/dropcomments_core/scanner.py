"""Workspace scan orchestration.

    scan() → enumerate_files() → ContextBuilder.index_workspace()
           → batches of scan_file()
           → cache hit?  yes → cached items
                         no  → extract_comments() → ContextBuilder.build()
                               → HeuristicEngine.build_item() → threshold
                               → cache.store()
           → ItemStore.replace_all() / replace_files()

Batches run one after another; the files inside a batch run concurrently.
Cancellation is only observed between batches, so a file that has started is
always finished.
"""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from dropcomments_core.cache import IncrementalCache, content_digest
from dropcomments_core.config import ScanSettings
from dropcomments_core.context import ContextBuilder
from dropcomments_core.errors import ScanIOError, WorkspaceError
from dropcomments_core.extractor import MAX_FILE_BYTES, extract_comments, language_for_path
from dropcomments_core.heuristics import HeuristicEngine
from dropcomments_core.items import ItemStore
from dropcomments_core.models import StaleCommentItem
from dropcomments_core.utils.code import IGNORED_DIRECTORIES, is_code_file, looks_binary
from dropcomments_core.utils.globs import matches_any

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class CancellationToken:
    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancellation_requested(self) -> bool:
        return self._event.is_set()


@dataclass
class ScanReport:
    items: list[StaleCommentItem] = field(default_factory=list)
    processed: int = 0
    total: int = 0
    cancelled: bool = False
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def enumerate_files(
    root: str,
    include_globs: list[str] | None = None,
    exclude_globs: list[str] | None = None,
    max_files: int = 5000,
) -> list[str]:
    """Return eligible workspace-relative POSIX paths in a deterministic order."""
    root_path = Path(root)
    try:
        os.listdir(root_path)
    except OSError as e:
        raise WorkspaceError(f"Cannot read workspace root {root}: {e}") from e

    include_globs = include_globs or ["**/*"]
    exclude_globs = exclude_globs or []
    found: list[str] = []

    for dirpath, dirnames, filenames in os.walk(root_path):
        dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_DIRECTORIES)
        rel_dir = Path(dirpath).relative_to(root_path).as_posix()
        for name in sorted(filenames):
            rel_path = name if rel_dir == "." else f"{rel_dir}/{name}"
            if not is_code_file(name):
                continue
            if not matches_any(rel_path, include_globs) or matches_any(rel_path, exclude_globs):
                continue
            found.append(rel_path)
            if len(found) >= max_files:
                logger.warning("Stopped enumerating at max_scan_files=%d", max_files)
                return found
    return found


class ScanOrchestrator:
    def __init__(
        self,
        root: str,
        engine: HeuristicEngine,
        cache: IncrementalCache,
        context_builder: ContextBuilder,
        item_store: ItemStore,
        settings: ScanSettings | None = None,
    ):
        self.root = Path(root)
        self.engine = engine
        self.cache = cache
        self.context_builder = context_builder
        self.item_store = item_store
        self.settings = settings or ScanSettings()

    # ------------------------------------------------------------------ #
    # Single file                                                          #
    # ------------------------------------------------------------------ #

    def scan_file(self, path: str) -> list[StaleCommentItem]:
        """Score one file, serving unchanged files from the cache.

        Raises ScanIOError for unreadable, oversized or binary files.
        """
        rel_path = self._relative(path)
        full_path = self.root / rel_path
        try:
            stat = full_path.stat()
            if stat.st_size > MAX_FILE_BYTES:
                raise ScanIOError(rel_path, f"larger than {MAX_FILE_BYTES} bytes", skipped=True)
            data = full_path.read_bytes()
        except OSError as e:
            raise ScanIOError(rel_path, str(e)) from e
        if looks_binary(data):
            raise ScanIOError(rel_path, "binary content", skipped=True)
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ScanIOError(rel_path, f"not valid UTF-8 ({e.reason})") from e

        digest = content_digest(text)
        cached = self.cache.lookup(rel_path, digest, stat.st_mtime)
        if cached is None:
            cached = self._score(rel_path, text)
            self.cache.store(rel_path, digest, stat.st_mtime, cached)
        return [item for item in cached if not self.item_store.is_dismissed(item.id)]

    def _score(self, rel_path: str, text: str) -> list[StaleCommentItem]:
        language_id = language_for_path(rel_path)
        candidates = extract_comments(text, language_id, self.settings.window_lines)
        if not candidates:
            return []
        context = self.context_builder.build(rel_path, text, language_id)
        items = []
        for candidate in candidates:
            item = self.engine.build_item(candidate, context)
            if self.settings.passes_threshold(item.score):
                items.append(item)
        logger.debug("%s: %d comments, %d above threshold", rel_path, len(candidates), len(items))
        return items

    # ------------------------------------------------------------------ #
    # Whole workspace                                                      #
    # ------------------------------------------------------------------ #

    def scan(
        self,
        progress_callback: ProgressCallback | None = None,
        cancellation_token: CancellationToken | None = None,
    ) -> ScanReport:
        """Scan the workspace in sequential batches and refresh the item store."""
        files = enumerate_files(
            str(self.root),
            self.settings.include_globs,
            self.settings.exclude_globs,
            self.settings.max_scan_files,
        )
        self.context_builder.index_workspace(files)
        report = ScanReport(total=len(files))
        batch_size = self.settings.scan_batch_size
        processed_paths: set[str] = set()

        if progress_callback:
            progress_callback(0, report.total)

        with ThreadPoolExecutor(max_workers=batch_size) as executor:
            for start in range(0, len(files), batch_size):
                if cancellation_token is not None and cancellation_token.is_cancellation_requested:
                    report.cancelled = True
                    logger.info("Scan cancelled after %d/%d files", report.processed, report.total)
                    break
                batch = files[start : start + batch_size]
                futures = [(path, executor.submit(self.scan_file, path)) for path in batch]
                for path, future in futures:
                    try:
                        report.items.extend(future.result())
                    except ScanIOError as e:
                        if e.skipped:
                            logger.info("Skipping %s", e)
                            report.skipped.append(path)
                        else:
                            logger.warning("Could not scan %s", e)
                            report.failed.append(path)
                    except Exception as e:
                        logger.warning("Unexpected error scanning %s: %s", path, e)
                        report.failed.append(path)
                    processed_paths.add(path)
                report.processed += len(batch)
                if progress_callback:
                    progress_callback(report.processed, report.total)

        if report.cancelled:
            report.items = self.item_store.replace_files(processed_paths, report.items)
        else:
            report.items = self.item_store.replace_all(report.items)
        report.items.sort(key=StaleCommentItem.sort_key)
        logger.info(
            "Scanned %d/%d files: %d findings, %d skipped, %d failed",
            report.processed,
            report.total,
            len(report.items),
            len(report.skipped),
            len(report.failed),
        )
        return report

    def _relative(self, path: str) -> str:
        p = Path(path)
        if p.is_absolute():
            try:
                return p.relative_to(self.root).as_posix()
            except ValueError:
                return p.resolve().relative_to(self.root.resolve()).as_posix()
        return p.as_posix()
