"""Colour palette for anygpt terminal output."""

from __future__ import annotations

from rich.theme import Theme

THEME = Theme(
    {
        "brand": "bold magenta",
        "muted": "grey58",
        "hint": "italic grey58",
        "notice.ok": "green3",
        "notice.error": "bold red3",
        "notice.warn": "dark_orange",
        "setting.key": "grey58",
        "setting.value": "default",
        "setting.changed": "bold default",
        "model.current": "bold magenta",
        "file": "cyan",
    }
)
