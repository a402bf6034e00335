"""Regeneration of stale comments through a text generator.

The driver is the only component that moves an item into or out of
``regenerating``. Whatever happens during generation the item ends up either
``updated`` with regenerated text or back at ``detected``; it is never left
in ``regenerating``.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable

from dropcomments_core.config import RegenerationSettings
from dropcomments_core.errors import DropCommentsError, GenerationError, GenerationErrorKind, InvalidStateError
from dropcomments_core.extractor import extract_comment_lines, strip_markdown_fences
from dropcomments_core.models import StaleCommentItem, Status
from dropcomments_core.prompting import RegenerationRequest, StyleOptions, build_prompt
from dropcomments_core.providers.base import BaseGenerator, classify_error

logger = logging.getLogger(__name__)


@dataclass
class RegenerationResult:
    item: StaleCommentItem
    ok: bool
    error: DropCommentsError | None = None


class RegenerationDriver:
    def __init__(
        self,
        generator: BaseGenerator,
        settings: RegenerationSettings | None = None,
        template: str | None = None,
    ):
        self.generator = generator
        self.settings = settings or RegenerationSettings()
        self.template = template

    @property
    def style(self) -> StyleOptions:
        return StyleOptions(
            use_emojis=self.settings.use_emojis,
            comment_style=self.settings.comment_style,
            comment_only=self.settings.comment_only,
        )

    def regenerate(self, item: StaleCommentItem) -> RegenerationResult:
        """Produce replacement text for one detected item.

        Raises InvalidStateError if the item is not ``detected``. Generation
        failures are returned, not raised.
        """
        if item.status is not Status.DETECTED:
            raise InvalidStateError(f"Cannot regenerate a finding that is {item.status.value}.")
        item.status = Status.REGENERATING

        try:
            text = self._generate(item)
        except Exception as e:
            item.status = Status.DETECTED
            error = classify_error(e)
            logger.warning(
                "Failed to regenerate comment for %s:%d: %s",
                item.file_path,
                item.range.start.line + 1,
                error,
            )
            return RegenerationResult(item=item, ok=False, error=error)

        item.regenerated_text = text
        item.status = Status.UPDATED
        logger.info("Regenerated comment for %s:%d", item.file_path, item.range.start.line + 1)
        return RegenerationResult(item=item, ok=True)

    def _generate(self, item: StaleCommentItem) -> str:
        style = self.style
        request = RegenerationRequest(
            language_id=item.language_id,
            original_comment=item.original_comment_text,
            surrounding_code=item.surrounding_code,
            reasons=item.reason_messages or item.reasons,
            style=style,
        )
        raw = self.generator.generate(item.language_id, build_prompt(request, self.template), style)
        if style.comment_only:
            text = extract_comment_lines(raw, item.language_id)
        else:
            text = strip_markdown_fences(raw)
        if not text.strip():
            raise GenerationError(GenerationErrorKind.OTHER, "generator returned no comment text")
        return text

    def regenerate_all(
        self,
        items: list[StaleCommentItem],
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> list[RegenerationResult]:
        """Regenerate every pending item in sequential waves of batch_concurrency."""
        pending = [item for item in items if not item.regenerated_text and item.status is Status.DETECTED]
        width = max(1, self.settings.batch_concurrency)
        results: list[RegenerationResult] = []

        with ThreadPoolExecutor(max_workers=width) as executor:
            for start in range(0, len(pending), width):
                wave = pending[start : start + width]
                futures = [(item, executor.submit(self.regenerate, item)) for item in wave]
                for item, future in futures:
                    try:
                        results.append(future.result())
                    except InvalidStateError as e:
                        # Another caller claimed the item between selection and submission.
                        results.append(RegenerationResult(item=item, ok=False, error=e))
                if progress_callback:
                    progress_callback(len(results), len(pending))

        failed = sum(1 for r in results if not r.ok)
        logger.info("Regenerated %d/%d comments (%d failed)", len(results) - failed, len(pending), failed)
        return results
