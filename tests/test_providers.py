"""Unit tests for the provider adapters. SDK clients are mocked, no real API calls."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from config.config_loader import ModelConfig
from council.providers.anthropic import AnthropicProvider
from council.providers.base import CompletionClient, ProviderError, split_system
from council.providers.compatible import OpenAICompatibleProvider
from council.providers.gemini import to_gemini_contents
from council.providers.openai_provider import OpenAIProvider
from tests.conftest import MockProvider

_MESSAGES = [
    {"role": "system", "content": "Be terse."},
    {"role": "user", "content": "YAML or JSON?"},
]


def _config(sdk: str, **overrides) -> ModelConfig:
    values = dict(
        name="member",
        sdk=sdk,
        model="some-model",
        api_key_env="PROVIDER_TEST_KEY",
        timeout_sec=5,
        max_tokens=1000,
    )
    values.update(overrides)
    return ModelConfig(**values)


@pytest.fixture(autouse=True)
def api_key(monkeypatch):
    monkeypatch.setenv("PROVIDER_TEST_KEY", "sk-test")


def _openai_reply(content: str | None, total_tokens: int = 12):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(total_tokens=total_tokens),
    )


# --- base ---

def test_split_system():
    system, rest = split_system(_MESSAGES)
    assert system == "Be terse."
    assert rest == [{"role": "user", "content": "YAML or JSON?"}]


def test_split_system_without_system_message():
    system, rest = split_system(_MESSAGES[1:])
    assert system is None
    assert rest == _MESSAGES[1:]


async def test_completion_client_routes_by_member():
    a = MockProvider("a", "from a")
    b = MockProvider("b", "from b")
    client = CompletionClient({"a": a, "b": b})

    response = await client.complete("b", _MESSAGES, temperature=0.2, max_tokens=50)

    assert response.content == "from b"
    b.complete.assert_awaited_once_with(_MESSAGES, temperature=0.2, max_tokens=50)
    a.complete.assert_not_awaited()
    assert "a" in client
    assert "ghost" not in client


async def test_completion_client_unknown_member():
    with pytest.raises(ProviderError, match="ghost"):
        await CompletionClient({}).complete("ghost", _MESSAGES, temperature=0.2, max_tokens=50)


# --- OpenAI ---

def test_openai_requires_api_key(monkeypatch):
    monkeypatch.delenv("PROVIDER_TEST_KEY")
    with pytest.raises(ProviderError, match="Missing API key"):
        OpenAIProvider(_config("openai"))


async def test_openai_complete():
    provider = OpenAIProvider(_config("openai"))
    create = AsyncMock(return_value=_openai_reply("Use YAML."))
    provider._client = MagicMock()
    provider._client.chat.completions.create = create

    response = await provider.complete(_MESSAGES, temperature=0.7, max_tokens=2000)

    assert response.member == "member"
    assert response.model == "some-model"
    assert response.content == "Use YAML."
    assert response.token_count == 12
    kwargs = create.call_args.kwargs
    assert kwargs["messages"] == _MESSAGES
    assert kwargs["temperature"] == 0.7
    assert kwargs["max_tokens"] == 1000  # capped by the model config


async def test_openai_empty_content_is_an_error():
    provider = OpenAIProvider(_config("openai"))
    provider._client = MagicMock()
    provider._client.chat.completions.create = AsyncMock(return_value=_openai_reply(None))

    with pytest.raises(ProviderError, match="Empty response"):
        await provider.complete(_MESSAGES, temperature=0.7, max_tokens=100)


async def test_openai_sdk_error_is_wrapped():
    provider = OpenAIProvider(_config("openai"))
    provider._client = MagicMock()
    provider._client.chat.completions.create = AsyncMock(side_effect=ConnectionError("reset"))

    with pytest.raises(ProviderError, match="API call failed: reset"):
        await provider.complete(_MESSAGES, temperature=0.7, max_tokens=100)


async def test_openai_timeout():
    provider = OpenAIProvider(_config("openai", timeout_sec=0.05))

    async def hang(**kwargs):
        await asyncio.sleep(9999)

    provider._client = MagicMock()
    provider._client.chat.completions.create = AsyncMock(side_effect=hang)

    with pytest.raises(ProviderError, match="timed out"):
        await provider.complete(_MESSAGES, temperature=0.7, max_tokens=100)


def test_compatible_requires_base_url():
    with pytest.raises(ProviderError, match="base_url"):
        OpenAICompatibleProvider(_config("openai_compatible"))


def test_compatible_uses_base_url():
    provider = OpenAICompatibleProvider(_config("openai_compatible", base_url="https://api.groq.com/openai/v1"))
    assert "api.groq.com" in str(provider._client.base_url)


# --- Anthropic ---

async def test_anthropic_passes_system_separately():
    provider = AnthropicProvider(_config("anthropic"))
    reply = SimpleNamespace(
        content=[SimpleNamespace(type="text", text="Use JSON.")],
        usage=SimpleNamespace(input_tokens=5, output_tokens=7),
    )
    create = AsyncMock(return_value=reply)
    provider._client = MagicMock()
    provider._client.messages.create = create

    response = await provider.complete(_MESSAGES, temperature=0.3, max_tokens=500)

    assert response.content == "Use JSON."
    assert response.token_count == 12
    kwargs = create.call_args.kwargs
    assert kwargs["system"] == "Be terse."
    assert kwargs["messages"] == [{"role": "user", "content": "YAML or JSON?"}]
    assert kwargs["max_tokens"] == 500


async def test_anthropic_without_text_blocks():
    provider = AnthropicProvider(_config("anthropic"))
    reply = SimpleNamespace(content=[SimpleNamespace(type="tool_use")], usage=None)
    provider._client = MagicMock()
    provider._client.messages.create = AsyncMock(return_value=reply)

    with pytest.raises(ProviderError, match="No text blocks"):
        await provider.complete(_MESSAGES[1:], temperature=0.3, max_tokens=500)


# --- Gemini ---

def test_to_gemini_contents_maps_roles():
    contents = to_gemini_contents([
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello"},
    ])
    assert [c.role for c in contents] == ["user", "model"]
    assert contents[1].parts[0].text == "Hello"
