"""Collaborator interfaces and their terminal implementations."""

from __future__ import annotations

import logging
import os
from pathlib import Path
import sys
from typing import Any, Protocol, TextIO, runtime_checkable

from anygpt.ui.render import render_notice

logger = logging.getLogger(__name__)

API_KEY_ENV = "OPENAI_API_KEY"


class CredentialNotFound(LookupError):
    def __init__(self, source: str = API_KEY_ENV) -> None:
        self.source = source
        super().__init__(f"No API key found ({source} is not set)")


@runtime_checkable
class CredentialStore(Protocol):
    def get(self) -> str:
        """Return the API credential or raise ``CredentialNotFound``."""


@runtime_checkable
class ClipboardPort(Protocol):
    def read_text(self) -> str | None: ...

    def write_text(self, text: str) -> None: ...

    def paste(self) -> None: ...


@runtime_checkable
class NotificationPort(Protocol):
    def show(self, title: str, message: str, *, is_error: bool = False) -> None: ...


@runtime_checkable
class Configuration(Protocol):
    def get(self, key: str) -> Any: ...


class EnvCredentialStore:
    def __init__(self, env_var: str = API_KEY_ENV) -> None:
        self.env_var = env_var

    def get(self) -> str:
        value = os.getenv(self.env_var, "").strip()
        if not value:
            raise CredentialNotFound(self.env_var)
        return value


class StaticCredentialStore:
    def __init__(self, credential: str | None) -> None:
        self._credential = credential

    def get(self) -> str:
        if self._credential is None:
            raise CredentialNotFound("static")
        return self._credential


class MemoryClipboard:
    def __init__(self, text: str | None = None) -> None:
        self.text = text
        self.history: list[str] = []
        self.paste_count = 0

    def read_text(self) -> str | None:
        if not self.text:
            return None
        return self.text

    def write_text(self, text: str) -> None:
        self.text = text
        self.history.append(text)

    def paste(self) -> None:
        self.paste_count += 1


class StreamClipboard:
    """Reads input from a stream and writes results to stdout or a file."""

    def __init__(
        self,
        *,
        source: TextIO | None = None,
        output_path: Path | None = None,
        sink: TextIO | None = None,
        initial_text: str | None = None,
    ) -> None:
        self._source = source if source is not None else sys.stdin
        self._output_path = output_path
        self._sink = sink if sink is not None else sys.stdout
        self._initial_text = initial_text

    def read_text(self) -> str | None:
        if self._initial_text is not None:
            text = self._initial_text
        elif self._source.isatty():
            return None
        else:
            text = self._source.read()
        return text if text.strip() else None

    def write_text(self, text: str) -> None:
        if self._output_path is not None:
            self._output_path.parent.mkdir(parents=True, exist_ok=True)
            self._output_path.write_text(text, encoding="utf-8")
            return
        self._sink.write(text)
        if not text.endswith("\n"):
            self._sink.write("\n")
        self._sink.flush()

    def paste(self) -> None:
        logger.debug("Auto-paste is not available for stream output")


class ConsoleNotifier:
    def show(self, title: str, message: str, *, is_error: bool = False) -> None:
        render_notice(title, message, is_error=is_error)


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str, bool]] = []

    def show(self, title: str, message: str, *, is_error: bool = False) -> None:
        self.messages.append((title, message, is_error))
