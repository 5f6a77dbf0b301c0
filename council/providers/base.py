"""Abstract base for all AI model providers, and the member-keyed completion client."""

from abc import ABC, abstractmethod

from council.models import ModelResponse

# Role-tagged chat messages: [{"role": "system" | "user" | "assistant", "content": "..."}]
Messages = list[dict[str, str]]


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class AIProvider(ABC):
    """Abstract base for all AI model providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the council member name this provider serves (e.g. 'claude')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def complete(self, messages: Messages, temperature: float, max_tokens: int) -> ModelResponse:
        """Generate a completion for a list of role-tagged messages.

        Args:
            messages: Chat messages, oldest first.
            temperature: Sampling temperature.
            max_tokens: Requested output budget, capped by the model's configured limit.

        Returns:
            ModelResponse dataclass with content and metadata.

        Raises:
            ProviderError: On API failure, timeout, or invalid response.
        """
        ...


class CompletionClient:
    """Routes completion calls to the provider registered for each member."""

    def __init__(self, providers: dict[str, AIProvider]) -> None:
        self._providers = dict(providers)

    def __contains__(self, member: str) -> bool:
        return member in self._providers

    async def complete(
        self,
        member: str,
        messages: Messages,
        temperature: float,
        max_tokens: int,
    ) -> ModelResponse:
        provider = self._providers.get(member)
        if provider is None:
            raise ProviderError(member, "No provider configured for this member")
        return await provider.complete(messages, temperature=temperature, max_tokens=max_tokens)


def split_system(messages: Messages) -> tuple[str | None, Messages]:
    """Pull system messages out for SDKs that take the system prompt separately."""
    system_parts = [m["content"] for m in messages if m["role"] == "system"]
    rest = [m for m in messages if m["role"] != "system"]
    return ("\n\n".join(system_parts) if system_parts else None), rest
