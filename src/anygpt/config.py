"""Configuration models and defaults for anygpt."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 500
DEFAULT_TIMEOUT_S = 20
DEFAULT_MAX_INPUT_LENGTH = 4000
DEFAULT_MAX_RETRIES = 2
DEFAULT_RETRY_DELAY_S = 0.5

VALIDATION_MODEL = "gpt-3.5-turbo"
VALIDATION_SYSTEM_PROMPT = "You are a test."
VALIDATION_TEXT = "Hi"


@dataclass(frozen=True)
class ClientConfig:
    timeout_seconds: float = DEFAULT_TIMEOUT_S
    max_input_length: int = DEFAULT_MAX_INPUT_LENGTH
    max_retries: int = DEFAULT_MAX_RETRIES
    base_retry_delay_seconds: float = DEFAULT_RETRY_DELAY_S
    temperature: float | None = None
    max_output_tokens: int | None = None

    @property
    def effective_temperature(self) -> float:
        # Zero (or negative) counts as unset.
        if not self.temperature or self.temperature < 0:
            return DEFAULT_TEMPERATURE
        return float(self.temperature)

    @property
    def effective_max_tokens(self) -> int:
        if not self.max_output_tokens or self.max_output_tokens < 0:
            return DEFAULT_MAX_TOKENS
        return int(self.max_output_tokens)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Settings:
    model: str = DEFAULT_MODEL
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    base_url: str = DEFAULT_BASE_URL
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout: int = DEFAULT_TIMEOUT_S
    max_input_length: int = DEFAULT_MAX_INPUT_LENGTH
    retry_attempts: int = DEFAULT_MAX_RETRIES
    auto_paste: bool = False
    play_sound: bool = False
    verbose_logging: bool = False

    def to_dict(self) -> dict:
        return asdict(self)

    def client_config(self) -> ClientConfig:
        return ClientConfig(
            timeout_seconds=self.timeout if self.timeout > 0 else DEFAULT_TIMEOUT_S,
            max_input_length=self.max_input_length if self.max_input_length > 0 else DEFAULT_MAX_INPUT_LENGTH,
            max_retries=max(0, self.retry_attempts),
            temperature=self.temperature,
            max_output_tokens=self.max_tokens,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        """Build settings from raw values, keeping defaults for anything unusable."""
        settings = cls()
        updates: dict[str, Any] = {}
        for key, value in data.items():
            if key not in SETTING_TYPES:
                continue
            try:
                updates[key] = coerce_setting(key, value)
            except ValueError:
                continue
        return replace(settings, **updates)


SETTING_TYPES: dict[str, type] = {item.name: type(getattr(Settings(), item.name)) for item in fields(Settings)}


def coerce_setting(key: str, value: Any) -> Any:
    if key not in SETTING_TYPES:
        raise KeyError(key)
    expected = SETTING_TYPES[key]
    if expected is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in {"1", "true", "yes", "on"}:
            return True
        if isinstance(value, str) and value.strip().lower() in {"0", "false", "no", "off"}:
            return False
        raise ValueError(f"{key} must be a boolean")
    if expected is int:
        if isinstance(value, bool):
            raise ValueError(f"{key} must be an integer")
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{key} must be an integer") from exc
    if expected is float:
        if isinstance(value, bool):
            raise ValueError(f"{key} must be a number")
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{key} must be a number") from exc
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value
