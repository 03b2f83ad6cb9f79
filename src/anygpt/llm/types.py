"""Core request/response types for chat-completion clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from anygpt.llm.errors import DecodingError


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChatMessage":
        return cls(role=Role(data["role"]), content=str(data["content"]))


@dataclass(frozen=True)
class ChatRequest:
    model: str
    messages: tuple[ChatMessage, ...]
    temperature: float | None = None
    max_tokens: int | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model,
            "messages": [message.to_dict() for message in self.messages],
        }
        if self.temperature is not None:
            body["temperature"] = self.temperature
        if self.max_tokens is not None:
            body["max_tokens"] = self.max_tokens
        return body

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChatRequest":
        temperature = data.get("temperature")
        max_tokens = data.get("max_tokens")
        return cls(
            model=str(data["model"]),
            messages=tuple(ChatMessage.from_dict(item) for item in data["messages"]),
            temperature=float(temperature) if temperature is not None else None,
            max_tokens=int(max_tokens) if max_tokens is not None else None,
        )


@dataclass(frozen=True)
class Usage:
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int

    def to_dict(self) -> dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Usage | None":
        if not isinstance(data, dict):
            return None
        values = [data.get("prompt_tokens"), data.get("completion_tokens"), data.get("total_tokens")]
        if not all(isinstance(value, int) for value in values):
            return None
        return cls(*values)


@dataclass(frozen=True)
class ApiErrorBody:
    message: str
    type: str | None = None
    code: str | None = None


@dataclass(frozen=True)
class ChoiceMessage:
    role: str
    content: str | None


@dataclass(frozen=True)
class Choice:
    index: int
    message: ChoiceMessage
    finish_reason: str | None = None


@dataclass(frozen=True)
class ChatResponse:
    choices: list[Choice] = field(default_factory=list)
    id: str | None = None
    object: str | None = None
    created: int | None = None
    model: str | None = None
    usage: Usage | None = None
    error: ApiErrorBody | None = None

    @property
    def first_content(self) -> str | None:
        if not self.choices:
            return None
        return self.choices[0].message.content

    @classmethod
    def from_dict(cls, payload: Any) -> "ChatResponse":
        """Parse a decoded JSON body, ignoring unknown fields.

        Raises ``DecodingError`` when a known field has the wrong shape.
        """
        if not isinstance(payload, dict):
            raise DecodingError(f"expected a JSON object, got {type(payload).__name__}")

        return cls(
            choices=_parse_choices(payload.get("choices")),
            id=_optional_str(payload, "id"),
            object=_optional_str(payload, "object"),
            created=payload.get("created") if isinstance(payload.get("created"), int) else None,
            model=_optional_str(payload, "model"),
            usage=Usage.from_dict(payload.get("usage")),
            error=_parse_error(payload.get("error")),
        )


@dataclass(frozen=True)
class GenerateResult:
    """Outcome of a successful ``generate`` call.

    ``degraded`` is set when the body could not be read as a chat completion
    and ``text`` holds the raw body instead of extracted content.
    """

    text: str
    truncated: bool = False
    degraded: bool = False
    usage: Usage | None = None
    model: str | None = None
    attempts: int = 1


def _optional_str(payload: dict[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise DecodingError(f"'{key}' must be a string")
    return value


def _parse_error(raw: Any) -> ApiErrorBody | None:
    if raw is None:
        return None
    if not isinstance(raw, dict) or not isinstance(raw.get("message"), str):
        raise DecodingError("'error' must be an object with a 'message' string")
    error_type = raw.get("type")
    code = raw.get("code")
    return ApiErrorBody(
        message=raw["message"],
        type=str(error_type) if error_type is not None else None,
        code=str(code) if code is not None else None,
    )


def _parse_choices(raw: Any) -> list[Choice]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise DecodingError("'choices' must be a list")
    choices: list[Choice] = []
    for position, item in enumerate(raw):
        if not isinstance(item, dict):
            raise DecodingError(f"choice {position} must be an object")
        message = item.get("message")
        if not isinstance(message, dict):
            raise DecodingError(f"choice {position} is missing 'message'")
        content = message.get("content")
        if content is not None and not isinstance(content, str):
            raise DecodingError(f"choice {position} content must be a string")
        index = item.get("index", position)
        finish_reason = item.get("finish_reason")
        choices.append(
            Choice(
                index=index if isinstance(index, int) else position,
                message=ChoiceMessage(role=str(message.get("role", "assistant")), content=content),
                finish_reason=finish_reason if isinstance(finish_reason, str) else None,
            )
        )
    return choices
