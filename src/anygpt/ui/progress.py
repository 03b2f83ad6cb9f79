"""Spinner shown while a request is outstanding."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from rich.status import Status
from rich.text import Text

from anygpt.ui.console import get_console


@contextmanager
def request_status(label: str, *, hint: str = "Ctrl+C cancels") -> Iterator[Status]:
    console = get_console()
    text = Text(label, style="brand")
    if hint:
        text.append(f" ({hint})", style="hint")
    with console.status(text, spinner="dots12", spinner_style="brand") as status:
        yield status
