"""Retry policy and attempt state machine for chat-completion calls."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from anygpt.llm.errors import LLMError


class RetryState(str, Enum):
    ATTEMPTING = "attempting"
    WAITING = "waiting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class RetryDecision:
    retry: bool
    delay_s: float = 0.0


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 2
    base_delay_s: float = 0.5

    @property
    def max_attempts(self) -> int:
        return max(0, self.max_retries) + 1

    def backoff(self, retry_number: int) -> float:
        """Delay before retry ``retry_number`` (1-based): base * 2^(k-1)."""
        return self.base_delay_s * (2 ** (retry_number - 1))

    def decide(self, error: LLMError, attempt: int) -> RetryDecision:
        """Map a failure on ``attempt`` (1-based) to retry-after-delay or fail-now."""
        if not error.retryable or attempt >= self.max_attempts:
            return RetryDecision(retry=False)
        return RetryDecision(retry=True, delay_s=self.backoff(attempt))


class RetryTracker:
    """Tracks one call's progress through the retry states."""

    def __init__(self, policy: RetryPolicy) -> None:
        self.policy = policy
        self.state = RetryState.ATTEMPTING
        self.attempt = 1
        self.last_error: LLMError | None = None

    def succeed(self) -> None:
        self._require(RetryState.ATTEMPTING)
        self.state = RetryState.SUCCEEDED

    def fail(self, error: LLMError) -> RetryDecision:
        self._require(RetryState.ATTEMPTING)
        self.last_error = error
        decision = self.policy.decide(error, self.attempt)
        self.state = RetryState.WAITING if decision.retry else RetryState.FAILED
        return decision

    def resume(self) -> None:
        self._require(RetryState.WAITING)
        self.attempt += 1
        self.state = RetryState.ATTEMPTING

    def abort(self, error: LLMError) -> None:
        """End the call early from ATTEMPTING or WAITING."""
        if self.state in (RetryState.SUCCEEDED, RetryState.FAILED):
            raise RuntimeError(f"invalid retry transition from {self.state.value}")
        self.last_error = error
        self.state = RetryState.FAILED

    def _require(self, expected: RetryState) -> None:
        if self.state is not expected:
            raise RuntimeError(f"invalid retry transition from {self.state.value}")
