"""Model client protocol and provider factory."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from ollamalink.types import Message, Response, ToolSchema

if TYPE_CHECKING:
    from ollamalink.adapters.ollama import OllamaProvider


class ModelClient(Protocol):
    """Protocol for chat client handles.

    Handles produced by a provider's ``create_client`` implement this
    interface; callers drive them without further provider involvement.
    """

    @property
    def name(self) -> str:
        """Return the model name the handle is bound to."""
        ...

    def complete(
        self,
        messages: list[Message],
        tools: list[ToolSchema] | None = None,
        seed: int | None = None,
        temperature: float | None = None,
    ) -> Response:
        """Send messages to the model and return a response.

        Args:
            messages: Conversation history.
            tools: Optional tool schemas the model can call.
            seed: Optional seed for deterministic output.
            temperature: Optional temperature override.

        Returns:
            A Response with content, tool_calls, and usage.
        """
        ...


def get_provider(name: str, **kwargs: object) -> OllamaProvider:
    """Factory function to get a provider adapter by name.

    Args:
        name: Provider name. Only 'ollama' is available.
        **kwargs: Extra configuration passed to the provider.

    Returns:
        A provider instance.
    """
    if name == "ollama":
        from ollamalink.adapters.ollama import OllamaProvider

        return OllamaProvider(**kwargs)  # type: ignore[arg-type]
    raise KeyError(f"Unknown provider: {name}")
