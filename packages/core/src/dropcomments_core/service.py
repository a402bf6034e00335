"""Facade wiring the scan pipeline, item store and regeneration driver together."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from dropcomments_core.cache import IncrementalCache
from dropcomments_core.config import RegenerationSettings, ScanSettings, load_prompt_template
from dropcomments_core.context import ContextBuilder
from dropcomments_core.edits import EditApplier, FileEditApplier
from dropcomments_core.heuristics import HeuristicEngine
from dropcomments_core.items import ItemStore
from dropcomments_core.models import StaleCommentItem
from dropcomments_core.providers.factory import get_generator
from dropcomments_core.regeneration import RegenerationDriver, RegenerationResult
from dropcomments_core.scanner import CancellationToken, ScanOrchestrator, ScanReport

if TYPE_CHECKING:
    from dropcomments_core.providers.base import BaseGenerator
    from dropcomments_store.base import BaseStateStore

logger = logging.getLogger(__name__)


class StaleCommentsService:
    def __init__(
        self,
        orchestrator: ScanOrchestrator,
        item_store: ItemStore,
        driver_factory: Callable[[], RegenerationDriver],
    ):
        self.orchestrator = orchestrator
        self.item_store = item_store
        self._driver_factory = driver_factory
        self._driver: RegenerationDriver | None = None

    @property
    def driver(self) -> RegenerationDriver:
        # Built on first use so scanning never needs generator credentials.
        if self._driver is None:
            self._driver = self._driver_factory()
        return self._driver

    def scan_workspace(
        self,
        progress_callback: Callable[[int, int], None] | None = None,
        cancellation_token: CancellationToken | None = None,
    ) -> ScanReport:
        return self.orchestrator.scan(progress_callback, cancellation_token)

    def get_items(self) -> list[StaleCommentItem]:
        return self.item_store.get_all()

    def find(self, prefix: str) -> StaleCommentItem:
        return self.item_store.find(prefix)

    def regenerate(self, item: StaleCommentItem) -> RegenerationResult:
        return self.driver.regenerate(item)

    def regenerate_all(
        self,
        items: list[StaleCommentItem] | None = None,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> list[RegenerationResult]:
        return self.driver.regenerate_all(self.get_items() if items is None else items, progress_callback)

    def apply(self, item: StaleCommentItem) -> None:
        self.item_store.apply(item)
        # The file changed on disk; its cached findings no longer describe it.
        self.orchestrator.cache.invalidate(item.file_path)

    def dismiss(self, item: StaleCommentItem) -> None:
        self.item_store.dismiss(item)

    def restore(self, item_id: str) -> bool:
        return self.item_store.restore(item_id)


def build_service(
    config: dict,
    root: str,
    state_store: BaseStateStore,
    generator: BaseGenerator | None = None,
    edit_applier: EditApplier | None = None,
) -> StaleCommentsService:
    """Construct a StaleCommentsService for one workspace from a config dict."""
    item_store = ItemStore(state_store, edit_applier or FileEditApplier(root))
    orchestrator = ScanOrchestrator(
        root=root,
        engine=HeuristicEngine.from_config(config),
        cache=IncrementalCache(max_files=int(config.get("cache_max_files", 5000))),
        context_builder=ContextBuilder(root, use_vcs=bool(config.get("use_git", True))),
        item_store=item_store,
        settings=ScanSettings.from_config(config),
    )

    def driver_factory() -> RegenerationDriver:
        return RegenerationDriver(
            generator or get_generator(config),
            RegenerationSettings.from_config(config),
            load_prompt_template(config),
        )

    logger.debug("Built service for %s (store: %s)", root, type(state_store).__name__)
    return StaleCommentsService(orchestrator, item_store, driver_factory)
