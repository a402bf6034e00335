"""Tests for text generator providers.

Shared behaviour (error classification, _call_with_retry, fence stripping)
lives in BaseGenerator and is tested once via a lightweight stub, not
duplicated per provider. Provider-specific tests cover only what differs
between implementations: the SDK client setup and _call_api.
"""

import sys
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from dropcomments_core.errors import GenerationError, GenerationErrorKind
from dropcomments_core.providers.base import BaseGenerator, classify_error
from dropcomments_core.providers.factory import get_generator
from dropcomments_core.prompting import StyleOptions


class _StubGenerator(BaseGenerator):
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = 0

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        self.calls += 1
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class _StatusError(Exception):
    def __init__(self, status_code):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


class APITimeoutError(Exception):
    pass


# ---------------------------------------------------------------------------
# Shared behaviour, tested once through the stub
# ---------------------------------------------------------------------------


class TestClassifyError:
    @pytest.mark.parametrize(
        "status, kind",
        [
            (401, GenerationErrorKind.AUTH),
            (403, GenerationErrorKind.AUTH),
            (429, GenerationErrorKind.RATE_LIMIT),
            (500, GenerationErrorKind.TRANSIENT),
            (503, GenerationErrorKind.TRANSIENT),
            (400, GenerationErrorKind.OTHER),
        ],
    )
    def test_status_codes(self, status, kind):
        assert classify_error(_StatusError(status)).kind == kind

    def test_timeout_by_name(self):
        assert classify_error(APITimeoutError("slow")).kind == GenerationErrorKind.TRANSIENT

    def test_builtin_connection_error(self):
        assert classify_error(ConnectionError("reset")).kind == GenerationErrorKind.TRANSIENT

    def test_unknown_error(self):
        assert classify_error(ValueError("odd")).kind == GenerationErrorKind.OTHER

    def test_generation_error_passes_through(self):
        error = GenerationError(GenerationErrorKind.AUTH, "missing key")
        assert classify_error(error) is error

    def test_only_rate_limit_and_transient_are_retryable(self):
        assert GenerationError(GenerationErrorKind.RATE_LIMIT).retryable
        assert GenerationError(GenerationErrorKind.TRANSIENT).retryable
        assert not GenerationError(GenerationErrorKind.AUTH).retryable
        assert not GenerationError(GenerationErrorKind.OTHER).retryable


class TestBaseGeneratorGenerate:
    def test_strips_fences(self):
        generator = _StubGenerator(["```python\n# Mean of values.\n```"])
        assert generator.generate("python", "prompt") == "# Mean of values."

    def test_empty_response_raises(self):
        with pytest.raises(GenerationError) as exc_info:
            _StubGenerator(["  "]).generate("python", "prompt")
        assert exc_info.value.kind == GenerationErrorKind.OTHER

    def test_system_prompt_names_language(self):
        assert "rust" in _StubGenerator([])._build_system_prompt("rust")

    def test_system_prompt_carries_output_instruction(self):
        prompt = _StubGenerator([])._build_system_prompt("rust", StyleOptions(comment_only=True))
        assert "Return ONLY the updated comment" in prompt


class TestBaseGeneratorRetry:
    def test_retries_transient_failure(self):
        generator = _StubGenerator([_StatusError(503), "# ok"])
        with patch("dropcomments_core.providers.base.time.sleep") as sleep:
            assert generator.generate("python", "prompt") == "# ok"
        assert generator.calls == 2
        sleep.assert_called_once_with(1)

    def test_backoff_doubles(self):
        generator = _StubGenerator([_StatusError(429), _StatusError(429), "# ok"])
        with patch("dropcomments_core.providers.base.time.sleep") as sleep:
            generator.generate("python", "prompt")
        assert [c.args[0] for c in sleep.call_args_list] == [1, 2]

    def test_gives_up_after_max_retries(self):
        generator = _StubGenerator([_StatusError(503)] * 3)
        with patch("dropcomments_core.providers.base.time.sleep"):
            with pytest.raises(GenerationError) as exc_info:
                generator.generate("python", "prompt")
        assert exc_info.value.kind == GenerationErrorKind.TRANSIENT
        assert generator.calls == 3

    def test_auth_failure_not_retried(self):
        generator = _StubGenerator([_StatusError(401), "# never"])
        with patch("dropcomments_core.providers.base.time.sleep") as sleep:
            with pytest.raises(GenerationError) as exc_info:
                generator.generate("python", "prompt")
        assert exc_info.value.kind == GenerationErrorKind.AUTH
        assert generator.calls == 1
        sleep.assert_not_called()


# ---------------------------------------------------------------------------
# Provider-specific, only what differs between Anthropic and OpenAI
# ---------------------------------------------------------------------------


class TestOpenAIGenerator:
    def test_raises_import_error_without_sdk(self):
        import dropcomments_core.providers.openai as openai_mod

        with patch.object(openai_mod, "_OpenAI", None):
            with pytest.raises(ImportError, match=r"dropcomments\[openai\]"):
                openai_mod.OpenAIGenerator(api_key="key")

    def test_missing_key_is_an_auth_error(self):
        import dropcomments_core.providers.openai as openai_mod

        with patch.object(openai_mod, "_OpenAI", MagicMock()):
            with pytest.raises(GenerationError) as exc_info:
                openai_mod.OpenAIGenerator(api_key=None)
        assert exc_info.value.kind == GenerationErrorKind.AUTH

    def test_call_api(self):
        import dropcomments_core.providers.openai as openai_mod

        client_cls = MagicMock()
        client = client_cls.return_value
        client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="# fresh"))]
        )
        with patch.object(openai_mod, "_OpenAI", client_cls):
            generator = openai_mod.OpenAIGenerator(api_key="key", model="gpt-test")
            assert generator.generate("python", "prompt") == "# fresh"

        client_cls.assert_called_once_with(api_key="key")
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-test"
        assert kwargs["messages"][1] == {"role": "user", "content": "prompt"}

    def test_defaults(self):
        from dropcomments_core.providers.openai import OpenAIGenerator

        assert "gpt" in OpenAIGenerator.MODEL
        assert OpenAIGenerator.TEMPERATURE == 0.3


class TestAnthropicGenerator:
    def test_raises_import_error_without_sdk(self):
        from dropcomments_core.providers.anthropic import AnthropicGenerator

        with patch.dict(sys.modules, {"anthropic": None}):
            with pytest.raises(ImportError, match=r"dropcomments\[anthropic\]"):
                AnthropicGenerator(api_key="key")

    def test_call_api_joins_text_blocks(self):
        from dropcomments_core.providers.anthropic import AnthropicGenerator

        class TextBlock:
            def __init__(self, text):
                self.text = text

        client = MagicMock()
        client.messages.create.return_value = SimpleNamespace(content=[TextBlock("# fresh "), TextBlock("comment")])
        anthropic_mod = MagicMock()
        anthropic_mod.Anthropic.return_value = client
        types_mod = SimpleNamespace(TextBlock=TextBlock)

        with patch.dict(sys.modules, {"anthropic": anthropic_mod, "anthropic.types": types_mod}):
            generator = AnthropicGenerator(api_key="key")
            assert generator.generate("python", "prompt") == "# fresh comment"

        assert client.messages.create.call_args.kwargs["model"] == AnthropicGenerator.MODEL

    def test_defaults(self):
        from dropcomments_core.providers.anthropic import AnthropicGenerator

        assert "claude" in AnthropicGenerator.MODEL
        assert AnthropicGenerator.TEMPERATURE == 0.3


class TestFactory:
    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown model provider"):
            get_generator({"model": "mystery"})

    def test_openai(self):
        with patch("dropcomments_core.providers.openai.OpenAIGenerator") as cls:
            get_generator({"model": "openai", "openai_api_key": "k", "model_name": "gpt-x"})
        cls.assert_called_once_with(api_key="k", model="gpt-x")

    def test_anthropic(self):
        with patch("dropcomments_core.providers.anthropic.AnthropicGenerator") as cls:
            get_generator({"model": "anthropic", "anthropic_api_key": "k"})
        cls.assert_called_once_with(api_key="k", model=None)
