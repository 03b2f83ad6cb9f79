"""Mock client for offline use and testing."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import hashlib

from anygpt.config import (
    DEFAULT_MODEL,
    DEFAULT_SYSTEM_PROMPT,
    VALIDATION_MODEL,
    VALIDATION_SYSTEM_PROMPT,
    VALIDATION_TEXT,
    ClientConfig,
)
from anygpt.llm.client import build_chat_request
from anygpt.llm.errors import LLMError, RequestCancelled
from anygpt.llm.types import ChatRequest, GenerateResult, Usage


@dataclass
class _Pending:
    delay: asyncio.Future
    cancel_requested: bool = False


class MockClient:
    def __init__(
        self,
        *,
        latency_ms: int = 15,
        jitter_ms: int = 10,
        fail_with: LLMError | None = None,
    ) -> None:
        self._latency_ms = latency_ms
        self._jitter_ms = jitter_ms
        self._fail_with = fail_with
        self._pending: list[_Pending] = []
        self.requests: list[ChatRequest] = []

    async def generate(
        self,
        text: str,
        credential: str,
        *,
        model: str = DEFAULT_MODEL,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        config: ClientConfig | None = None,
    ) -> GenerateResult:
        config = config or ClientConfig()
        request, truncated = build_chat_request(text, model=model, system_prompt=system_prompt, config=config)
        self.requests.append(request)

        delay_s = _simulated_delay_s(request, self._latency_ms, self._jitter_ms)
        pending = _Pending(asyncio.ensure_future(asyncio.sleep(delay_s)))
        self._pending.append(pending)
        try:
            await pending.delay
        except asyncio.CancelledError:
            if pending.cancel_requested:
                raise RequestCancelled() from None
            raise
        finally:
            self._pending.remove(pending)

        if self._fail_with is not None:
            raise self._fail_with
        reply = _mock_text(request)
        return GenerateResult(
            text=reply,
            truncated=truncated,
            usage=_mock_usage(request, reply),
            model=model,
        )

    async def validate_credential(self, credential: str, *, config: ClientConfig | None = None) -> bool:
        await self.generate(
            VALIDATION_TEXT,
            credential,
            model=VALIDATION_MODEL,
            system_prompt=VALIDATION_SYSTEM_PROMPT,
            config=config,
        )
        return True

    def cancel_in_flight(self) -> None:
        for pending in reversed(self._pending):
            if not pending.delay.done():
                pending.cancel_requested = True
                pending.delay.cancel()
                return

    async def aclose(self) -> None:
        return


def _mock_text(request: ChatRequest) -> str:
    user_text = request.messages[-1].content
    digest = _stable_seed(request).hex()[:8]
    return f"[mock {request.model} {digest}] {user_text}"


def _stable_seed(request: ChatRequest) -> bytes:
    hasher = hashlib.sha256()
    hasher.update(request.model.encode("utf-8"))
    for message in request.messages:
        hasher.update(message.role.value.encode("utf-8"))
        hasher.update(message.content.encode("utf-8"))
    return hasher.digest()


def _mock_usage(request: ChatRequest, text: str) -> Usage:
    prompt_text = " ".join(message.content for message in request.messages)
    prompt_tokens = max(1, len(prompt_text) // 4)
    completion_tokens = max(1, len(text) // 4)
    return Usage(prompt_tokens, completion_tokens, prompt_tokens + completion_tokens)


def _simulated_delay_s(request: ChatRequest, latency_ms: int, jitter_ms: int) -> float:
    jitter = _stable_seed(request)[1] % max(1, jitter_ms + 1)
    return (latency_ms + jitter) / 1000.0
