from __future__ import annotations

import json
from typing import Any, Callable

import httpx

Step = Callable[[httpx.Request], httpx.Response]


def completion_payload(content: str = "Hello! How can I help you today?", **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "created": 1677652288,
        "model": "gpt-4o-mini",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 8, "total_tokens": 18},
    }
    payload.update(extra)
    return payload


def reply(status: int, payload: Any = None, *, content: bytes | None = None) -> Step:
    def _step(request: httpx.Request) -> httpx.Response:
        if content is not None:
            return httpx.Response(status, content=content)
        if payload is None:
            return httpx.Response(status)
        return httpx.Response(status, json=payload)

    return _step


def fail(exc_type: type[httpx.TransportError], message: str = "boom") -> Step:
    def _step(request: httpx.Request) -> httpx.Response:
        raise exc_type(message, request=request)

    return _step


class ScriptedHandler:
    """MockTransport handler that plays back steps, repeating the last one."""

    def __init__(self, *steps: Step) -> None:
        self.steps = list(steps)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        step = self.steps[min(len(self.requests), len(self.steps)) - 1]
        return step(request)

    @property
    def bodies(self) -> list[dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests]
