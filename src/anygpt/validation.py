"""Settings file validation helpers."""

from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
from typing import Any

import httpx

from anygpt.config import SETTING_TYPES, coerce_setting


@dataclass(frozen=True)
class ValidationIssue:
    path: str
    message: str


@dataclass(frozen=True)
class ValidationResult:
    settings: dict[str, Any] | None
    errors: list[ValidationIssue]
    warnings: list[ValidationIssue]


def load_and_validate_settings(path: Path) -> ValidationResult:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return ValidationResult(
            settings=None,
            errors=[],
            warnings=[ValidationIssue("settings", f"Settings not found: {path}; defaults apply.")],
        )
    except (OSError, json.JSONDecodeError) as exc:
        return ValidationResult(
            settings=None,
            errors=[ValidationIssue("settings", f"Invalid JSON: {exc}")],
            warnings=[],
        )
    if not isinstance(raw, dict):
        return ValidationResult(
            settings=None,
            errors=[ValidationIssue("settings", "Settings must be a JSON object.")],
            warnings=[],
        )
    return validate_settings(raw)


def validate_settings(data: dict[str, Any]) -> ValidationResult:
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []

    for key in sorted(data):
        if key not in SETTING_TYPES:
            warnings.append(ValidationIssue(key, "Unknown setting; it will be ignored."))

    for key in sorted(set(data) & set(SETTING_TYPES)):
        expected = SETTING_TYPES[key]
        value = data[key]
        if expected is float and isinstance(value, int) and not isinstance(value, bool):
            continue
        if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
            try:
                coerce_setting(key, value)
            except ValueError as exc:
                errors.append(ValidationIssue(key, f"{exc}; default will be used."))
                continue
            warnings.append(ValidationIssue(key, f"Expected {expected.__name__}, got {type(value).__name__}."))

    temperature = data.get("temperature")
    if isinstance(temperature, (int, float)) and not isinstance(temperature, bool):
        if temperature < 0 or temperature > 2:
            errors.append(ValidationIssue("temperature", "temperature must be between 0 and 2."))
        elif temperature == 0:
            warnings.append(ValidationIssue("temperature", "temperature 0 is treated as unset (0.7)."))

    for key in ("max_tokens", "timeout", "max_input_length"):
        _require_positive_int(data.get(key), key, errors, warnings)
    retries = data.get("retry_attempts")
    if isinstance(retries, int) and not isinstance(retries, bool) and retries < 0:
        errors.append(ValidationIssue("retry_attempts", "retry_attempts must be >= 0."))

    for key in ("model", "system_prompt"):
        value = data.get(key)
        if isinstance(value, str) and not value.strip():
            errors.append(ValidationIssue(key, f"{key} must not be empty."))

    base_url = data.get("base_url")
    if isinstance(base_url, str) and not _is_http_url(base_url):
        errors.append(ValidationIssue("base_url", "base_url must be an http(s) URL."))

    return ValidationResult(settings=data, errors=errors, warnings=warnings)


def _require_positive_int(
    value: Any,
    path: str,
    errors: list[ValidationIssue],
    warnings: list[ValidationIssue],
) -> None:
    if value is None or isinstance(value, bool) or not isinstance(value, int):
        return
    if value < 0:
        errors.append(ValidationIssue(path, f"{path} must be a positive integer."))
    elif value == 0:
        warnings.append(ValidationIssue(path, f"{path} 0 is treated as unset; default applies."))


def _is_http_url(value: str) -> bool:
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL:
        return False
    return url.scheme in {"http", "https"} and bool(url.host)
