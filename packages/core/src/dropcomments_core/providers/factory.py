from __future__ import annotations

from dropcomments_core.providers.base import BaseGenerator


def get_generator(config: dict) -> BaseGenerator:
    model = config["model"]
    model_name = config.get("model_name")
    if model == "anthropic":
        from dropcomments_core.providers.anthropic import AnthropicGenerator

        return AnthropicGenerator(api_key=config.get("anthropic_api_key"), model=model_name)
    if model == "openai":
        from dropcomments_core.providers.openai import OpenAIGenerator

        return OpenAIGenerator(api_key=config.get("openai_api_key"), model=model_name)
    raise ValueError(f"Unknown model provider: {model!r}. Choose 'anthropic' or 'openai'.")
