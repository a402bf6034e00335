"""Base generator implementing the Template Method pattern.

All providers share the same generation algorithm:
    generate() → _build_system_prompt()
               → _call_with_retry() → _call_api()   ← only this differs per provider
               → strip_markdown_fences()

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response

Failures leave this class as a GenerationError whose kind is classified from
the SDK exception. Only rate-limit and transient failures are retried.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod

from dropcomments_core.errors import GenerationError, GenerationErrorKind
from dropcomments_core.extractor import strip_markdown_fences
from dropcomments_core.prompting import StyleOptions, output_instruction

logger = logging.getLogger(__name__)

_MAX_RETRIES = 3
_MAX_TOKENS = 500


def classify_error(exc: Exception) -> GenerationError:
    """Map an SDK exception onto the generation error taxonomy."""
    if isinstance(exc, GenerationError):
        return exc
    status = getattr(exc, "status_code", None) or getattr(exc, "status", None)
    if isinstance(status, int):
        if status in (401, 403):
            return GenerationError(GenerationErrorKind.AUTH, str(exc))
        if status == 429:
            return GenerationError(GenerationErrorKind.RATE_LIMIT, str(exc))
        if status >= 500:
            return GenerationError(GenerationErrorKind.TRANSIENT, str(exc))
    name = type(exc).__name__
    if "Timeout" in name or "Connection" in name or isinstance(exc, (TimeoutError, ConnectionError)):
        return GenerationError(GenerationErrorKind.TRANSIENT, str(exc))
    return GenerationError(GenerationErrorKind.OTHER, str(exc))


class BaseGenerator(ABC):
    MAX_RETRIES: int = _MAX_RETRIES
    MAX_TOKENS: int = _MAX_TOKENS

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def generate(self, language_id: str, prompt: str, style: StyleOptions | None = None) -> str:
        """Return the model's text for a rendered regeneration prompt.

        Raises GenerationError on failure, including an empty response.
        """
        system = self._build_system_prompt(language_id, style)
        raw = self._call_with_retry(system, prompt)
        text = strip_markdown_fences(raw or "")
        if not text:
            raise GenerationError(GenerationErrorKind.OTHER, f"empty response from {self.__class__.__name__}")
        return text

    # ------------------------------------------------------------------ #
    # Provider hook                                                      #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single API call and return the raw text response.

        Raise on failure; _call_with_retry classifies the error and decides
        whether to retry.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _call_with_retry(self, system_prompt: str, user_prompt: str) -> str:
        for attempt in range(self.MAX_RETRIES):
            try:
                return self._call_api(system_prompt, user_prompt)
            except Exception as e:
                error = classify_error(e)
                if not error.retryable or attempt == self.MAX_RETRIES - 1:
                    logger.error(
                        "%s API failed after %d attempt(s): %s",
                        self.__class__.__name__,
                        attempt + 1,
                        e,
                    )
                    raise error from e
                delay = 2**attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %ds...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                time.sleep(delay)
        raise GenerationError(GenerationErrorKind.OTHER, "no attempts made")

    def _build_system_prompt(self, language_id: str, style: StyleOptions | None = None) -> str:
        prompt = (
            f"You are a senior developer who keeps {language_id} code comments accurate. "
            "Never change code; only rewrite the comment you are given."
        )
        if style is not None:
            prompt += " " + output_instruction(style)
        return prompt
