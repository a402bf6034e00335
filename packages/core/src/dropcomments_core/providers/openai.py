from __future__ import annotations

try:
    from openai import OpenAI as _OpenAI
except ImportError:
    _OpenAI = None  # type: ignore[assignment,misc]

from dropcomments_core.errors import GenerationError, GenerationErrorKind
from dropcomments_core.providers.base import BaseGenerator


class OpenAIGenerator(BaseGenerator):
    MODEL = "gpt-4o-mini"
    TEMPERATURE = 0.3

    def __init__(self, api_key: str | None, model: str | None = None):
        if _OpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this provider. "
                "Install it with: pip install 'dropcomments[openai]'"
            )
        if not api_key:
            raise GenerationError(GenerationErrorKind.AUTH, "OPENAI_API_KEY is not set")
        self.client = _OpenAI(api_key=api_key)
        self.model = model or self.MODEL

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        return response.choices[0].message.content or ""
