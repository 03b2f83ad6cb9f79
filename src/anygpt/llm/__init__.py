"""Chat-completion client interfaces and implementations."""

from anygpt.llm.client import LLMClient, build_chat_request, create_client, truncate_text
from anygpt.llm.errors import (
    ApiError,
    DecodingError,
    ErrorKind,
    InvalidEndpoint,
    LLMError,
    NetworkError,
    NoData,
    RateLimited,
    RequestCancelled,
    Timeout,
)
from anygpt.llm.mock import MockClient
from anygpt.llm.openai import OpenAIClient
from anygpt.llm.retry import RetryDecision, RetryPolicy, RetryState
from anygpt.llm.types import ChatMessage, ChatRequest, ChatResponse, GenerateResult, Role, Usage

__all__ = [
    "ApiError",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "DecodingError",
    "ErrorKind",
    "GenerateResult",
    "InvalidEndpoint",
    "LLMClient",
    "LLMError",
    "MockClient",
    "NetworkError",
    "NoData",
    "OpenAIClient",
    "RateLimited",
    "RequestCancelled",
    "RetryDecision",
    "RetryPolicy",
    "RetryState",
    "Role",
    "Timeout",
    "Usage",
    "build_chat_request",
    "create_client",
    "truncate_text",
]
