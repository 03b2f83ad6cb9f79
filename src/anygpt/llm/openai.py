"""OpenAI chat-completions client with retry and error classification."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
import json
import logging
from typing import Awaitable, Callable

import httpx

from anygpt.config import (
    DEFAULT_BASE_URL,
    DEFAULT_MODEL,
    DEFAULT_SYSTEM_PROMPT,
    VALIDATION_MODEL,
    VALIDATION_SYSTEM_PROMPT,
    VALIDATION_TEXT,
    ClientConfig,
)
from anygpt.llm.client import build_chat_request
from anygpt.llm.errors import (
    ApiError,
    DecodingError,
    InvalidEndpoint,
    LLMError,
    NetworkError,
    NoData,
    RateLimited,
    RequestCancelled,
    Timeout,
)
from anygpt.llm.retry import RetryPolicy, RetryTracker
from anygpt.llm.types import ChatRequest, ChatResponse, GenerateResult

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


@dataclass
class _InFlight:
    task: asyncio.Future
    cancel_requested: bool = False


class OpenAIClient:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: SleepFn | None = None,
    ) -> None:
        self._base_url = base_url or DEFAULT_BASE_URL
        self._client = httpx.AsyncClient(transport=transport, follow_redirects=False)
        self._sleep = sleep or asyncio.sleep
        self._in_flight: list[_InFlight] = []

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
        endpoint = self._endpoint()
        request, truncated = build_chat_request(text, model=model, system_prompt=system_prompt, config=config)

        handle = _InFlight(asyncio.ensure_future(self._run(endpoint, request, credential, config)))
        self._in_flight.append(handle)
        try:
            result = await handle.task
        except asyncio.CancelledError:
            if handle.cancel_requested:
                logger.info("Request cancelled")
                raise RequestCancelled() from None
            raise
        finally:
            self._in_flight.remove(handle)
        return replace(result, truncated=truncated)

    async def validate_credential(self, credential: str, *, config: ClientConfig | None = None) -> bool:
        try:
            await self.generate(
                VALIDATION_TEXT,
                credential,
                model=VALIDATION_MODEL,
                system_prompt=VALIDATION_SYSTEM_PROMPT,
                config=config,
            )
        except LLMError as exc:
            logger.error("API key validation failed: %s", exc)
            raise
        return True

    def cancel_in_flight(self) -> None:
        """Cancel the newest call that is still running."""
        for handle in reversed(self._in_flight):
            if not handle.task.done():
                handle.cancel_requested = True
                handle.task.cancel()
                return

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "OpenAIClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _endpoint(self) -> str:
        try:
            url = httpx.URL(self._base_url)
        except (httpx.InvalidURL, TypeError) as exc:
            raise InvalidEndpoint(str(self._base_url)) from exc
        if url.scheme not in {"http", "https"} or not url.host:
            raise InvalidEndpoint(self._base_url)
        return f"{str(url).rstrip('/')}/chat/completions"

    async def _run(
        self,
        endpoint: str,
        request: ChatRequest,
        credential: str,
        config: ClientConfig,
    ) -> GenerateResult:
        tracker = RetryTracker(RetryPolicy(config.max_retries, config.base_retry_delay_seconds))
        try:
            while True:
                try:
                    result = await self._attempt(endpoint, request, credential, config)
                except LLMError as exc:
                    decision = tracker.fail(exc)
                    if not decision.retry:
                        raise
                    logger.info(
                        "Retrying after %.2f seconds (attempt %d/%d): %s",
                        decision.delay_s,
                        tracker.attempt + 1,
                        tracker.policy.max_attempts,
                        exc,
                    )
                    await self._sleep(decision.delay_s)
                    tracker.resume()
                    continue
                tracker.succeed()
                return replace(result, attempts=tracker.attempt)
        except asyncio.CancelledError:
            tracker.abort(RequestCancelled())
            logger.debug("Call aborted during attempt %d (%s)", tracker.attempt, tracker.state.value)
            raise

    async def _attempt(
        self,
        endpoint: str,
        request: ChatRequest,
        credential: str,
        config: ClientConfig,
    ) -> GenerateResult:
        headers = {
            "Authorization": f"Bearer {credential}",
            "Content-Type": "application/json",
        }
        logger.debug("Sending request to %s (model=%s)", endpoint, request.model)
        try:
            # httpx bounds each phase; wait_for bounds the whole attempt including the body read.
            response = await asyncio.wait_for(
                self._client.post(
                    endpoint,
                    json=request.to_dict(),
                    headers=headers,
                    timeout=config.timeout_seconds,
                ),
                timeout=config.timeout_seconds,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            raise Timeout() from exc
        except (httpx.NetworkError, httpx.RemoteProtocolError) as exc:
            raise NetworkError(str(exc) or type(exc).__name__) from exc
        except httpx.TransportError as exc:
            raise NetworkError(str(exc) or type(exc).__name__, retryable=False) from exc

        status = response.status_code
        logger.debug("Received response with status code: %d", status)
        if 200 <= status < 300:
            return _parse_success(response.content)
        if status == 429:
            raise RateLimited()
        if 400 <= status < 500:
            raise ApiError(_error_message(response.content), status_code=status)
        if 500 <= status < 600:
            raise NetworkError(f"server error: {status}")
        raise NetworkError(f"unexpected status: {status}", retryable=False)


def _decode_body(body: bytes) -> str:
    if not body or not body.strip():
        raise NoData()
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise NoData() from exc


def _parse_success(body: bytes) -> GenerateResult:
    raw = _decode_body(body)
    try:
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise DecodingError(str(exc)) from exc
        parsed = ChatResponse.from_dict(payload)
    except DecodingError as exc:
        logger.warning("Decoding error, returning raw response: %s", exc.detail)
        return GenerateResult(text=raw, degraded=True)

    if parsed.error is not None:
        raise ApiError(parsed.error.message)

    content = parsed.first_content
    if content is None:
        logger.warning("Could not extract content, returning raw JSON")
        return GenerateResult(text=raw, degraded=True, usage=parsed.usage, model=parsed.model)

    if parsed.usage is not None:
        logger.info(
            "Token usage - Prompt: %d, Completion: %d, Total: %d",
            parsed.usage.prompt_tokens,
            parsed.usage.completion_tokens,
            parsed.usage.total_tokens,
        )
    return GenerateResult(text=content, usage=parsed.usage, model=parsed.model)


def _error_message(body: bytes) -> str:
    text = body.decode("utf-8", errors="replace")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        payload = None
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
    if text.strip():
        return text
    return "Unknown error"
