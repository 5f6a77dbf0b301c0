"""Shared pytest fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import (
    AppConfig,
    CouncilConfig,
    DefaultsConfig,
    ModelConfig,
    PromptsConfig,
    SamplingConfig,
)
from council.models import ModelResponse
from council.providers.base import AIProvider, CompletionClient, Messages


def make_response(member: str, content: str) -> ModelResponse:
    return ModelResponse(
        member=member,
        model="mock-model",
        content=content,
        latency_sec=0.1,
        token_count=10,
    )


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk="openai",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
        base_url=None,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        ranking="Rank the answers to: {question}\n\n{responses}\n\nEnd with FINAL RANKING:",
        chairman="Question: {question}\n\nAnswers:\n{responses}\n\nRanking:\n{rankings}\n\nReviews:\n{reviews}\n\nSynthesize:",
        system={"architect": "Be a pragmatic architect."},
    )


@pytest.fixture
def sample_council_config() -> CouncilConfig:
    return CouncilConfig(
        members=("m1", "m2", "m3"),
        chairman="chair",
        stage_delay_sec=0.0,
        enabled_modes=frozenset({"architect", "roast"}),
    )


@pytest.fixture
def sample_app_config(
    tmp_path: Path,
    sample_prompts_config: PromptsConfig,
    sample_council_config: CouncilConfig,
) -> AppConfig:
    models = {
        name: ModelConfig(
            name=name,
            sdk="openai",
            model=f"{name}-model",
            api_key_env=f"{name.upper()}_KEY",
            timeout_sec=60,
            max_tokens=4096,
        )
        for name in ("m1", "m2", "m3", "chair")
    }
    return AppConfig(
        defaults=DefaultsConfig(output_dir=tmp_path / "output", mode="architect"),
        council=sample_council_config,
        models=models,
        prompts=sample_prompts_config,
        sampling=SamplingConfig(),
        available_providers=set(models),
    )


@pytest.fixture
def sample_response() -> ModelResponse:
    return ModelResponse(
        member="claude",
        model="claude-sonnet-4-20250514",
        content="Use YAML for human-editable config, JSON for machine interchange.",
        latency_sec=1.5,
        token_count=42,
    )


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(self, provider_name: str = "mock", response_content: str = "Mock response") -> None:
        self._name = provider_name
        self._response_content = response_content
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because complete is defined in the class body below.
        self.complete = AsyncMock(  # type: ignore[assignment]
            return_value=make_response(provider_name, response_content)
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def complete(self, messages: Messages, temperature: float, max_tokens: int) -> ModelResponse:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return make_response(self._name, self._response_content)


def scripted(provider: MockProvider, *contents: str) -> MockProvider:
    """Make a provider answer successive calls with the given texts, in order."""
    provider.complete = AsyncMock(side_effect=[make_response(provider.name(), c) for c in contents])
    return provider


def client_for(*providers: AIProvider) -> CompletionClient:
    return CompletionClient({p.name(): p for p in providers})


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def two_mock_providers() -> list[MockProvider]:
    return [MockProvider("provider_a", "Response from A"), MockProvider("provider_b", "Response from B")]
