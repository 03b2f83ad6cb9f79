"""Error taxonomy for chat-completion calls."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_ENDPOINT = "invalid_endpoint"
    NO_DATA = "no_data"
    DECODING_ERROR = "decoding_error"
    API_ERROR = "api_error"
    RATE_LIMITED = "rate_limited"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


class LLMError(Exception):
    """Base class for every failure surfaced by an LLM client.

    ``kind`` identifies the case, ``retryable`` tells the retry policy whether
    another attempt may succeed and ``message`` is the text shown to users.
    """

    kind: ErrorKind
    retryable: bool = False

    @property
    def message(self) -> str:
        return str(self)


class InvalidEndpoint(LLMError):
    kind = ErrorKind.INVALID_ENDPOINT

    def __init__(self, url: str = "") -> None:
        self.url = url
        super().__init__("Invalid API URL")


class NoData(LLMError):
    kind = ErrorKind.NO_DATA

    def __init__(self) -> None:
        super().__init__("No data received from API")


class DecodingError(LLMError):
    kind = ErrorKind.DECODING_ERROR

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Failed to decode response: {detail}")


class ApiError(LLMError):
    kind = ErrorKind.API_ERROR

    def __init__(self, api_message: str, *, status_code: int | None = None) -> None:
        self.api_message = api_message
        self.status_code = status_code
        super().__init__(f"API Error: {api_message}")


class RateLimited(LLMError):
    kind = ErrorKind.RATE_LIMITED
    retryable = True

    def __init__(self) -> None:
        super().__init__("Rate limited. Please try again later.")


class NetworkError(LLMError):
    kind = ErrorKind.NETWORK_ERROR

    def __init__(self, detail: str, *, retryable: bool = True) -> None:
        self.detail = detail
        self.retryable = retryable
        super().__init__(f"Network Error: {detail}")


class Timeout(LLMError):
    kind = ErrorKind.TIMEOUT
    retryable = True

    def __init__(self) -> None:
        super().__init__("Request timed out")


class RequestCancelled(LLMError):
    kind = ErrorKind.CANCELLED

    def __init__(self) -> None:
        super().__init__("Request cancelled")
