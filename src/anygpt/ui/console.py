"""Console used for all human-facing output."""

from __future__ import annotations

from rich.console import Console

from anygpt.ui.theme import THEME

# stdout carries only model replies and machine-readable output.
_CONSOLE = Console(theme=THEME, highlight=False, stderr=True, soft_wrap=False)


def get_console() -> Console:
    return _CONSOLE
