"""Client interface and shared helpers for chat-completion access."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from anygpt.config import ClientConfig
from anygpt.llm.types import ChatMessage, ChatRequest, GenerateResult, Role


@runtime_checkable
class LLMClient(Protocol):
    async def generate(
        self,
        text: str,
        credential: str,
        *,
        model: str,
        system_prompt: str,
        config: ClientConfig | None = None,
    ) -> GenerateResult:
        """Send ``text`` as one completion request and return the reply."""

    async def validate_credential(self, credential: str, *, config: ClientConfig | None = None) -> bool:
        """Probe the endpoint with a minimal request."""

    def cancel_in_flight(self) -> None:
        """Cancel the most recent outstanding call, if any."""

    async def aclose(self) -> None:
        """Release any underlying client resources."""


def create_client(mode: str, **kwargs: Any) -> LLMClient:
    if mode == "mock":
        from anygpt.llm.mock import MockClient

        return MockClient(**kwargs)
    if mode == "openai":
        from anygpt.llm.openai import OpenAIClient

        return OpenAIClient(**kwargs)
    raise ValueError(f"Unsupported LLM mode: {mode}")


def truncate_text(text: str, max_length: int) -> tuple[str, bool]:
    if max_length >= 0 and len(text) > max_length:
        return text[:max_length], True
    return text, False


def build_chat_request(
    text: str,
    *,
    model: str,
    system_prompt: str,
    config: ClientConfig,
) -> tuple[ChatRequest, bool]:
    """Build the system+user request for ``text`` and report whether it was truncated."""
    processed, truncated = truncate_text(text, config.max_input_length)
    request = ChatRequest(
        model=model,
        messages=(
            ChatMessage(Role.SYSTEM, system_prompt),
            ChatMessage(Role.USER, processed),
        ),
        temperature=config.effective_temperature,
        max_tokens=config.effective_max_tokens,
    )
    return request, truncated
