"""OpenAI-compatible endpoints (Groq, xAI, DeepSeek) via the openai SDK and a base_url."""

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from council.providers.base import ProviderError
from council.providers.openai_provider import OpenAIProvider


class OpenAICompatibleProvider(OpenAIProvider):
    """Any chat-completions API that speaks the OpenAI wire format."""

    def __init__(self, config: ModelConfig) -> None:
        if not config.base_url:
            raise ProviderError(config.name, "base_url is required for OpenAI-compatible providers")
        super().__init__(config)

    def _make_client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=api_key, base_url=self._config.base_url)
