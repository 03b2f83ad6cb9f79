"""Render helpers for the anygpt CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from rich import box
from rich.console import Group
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from anygpt.ui.console import get_console


def render_heading(text: str) -> None:
    get_console().print(Rule(Text(text, style="brand"), style="muted", align="left"))


def render_hint(text: str) -> None:
    get_console().print(text, style="hint", markup=False)


def render_warning(text: str) -> None:
    get_console().print(Text.assemble(("! ", "notice.warn"), (text, "notice.warn")))


def render_success(text: str) -> None:
    get_console().print(Text.assemble(("✓ ", "notice.ok"), text))


def render_error(text: str) -> None:
    get_console().print(Text.assemble(("✗ ", "notice.error"), (text, "notice.error")))


def render_notice(title: str, message: str, *, is_error: bool = False) -> None:
    """Terminal stand-in for a desktop notification."""
    style = "notice.error" if is_error else "notice.ok"
    get_console().print(Text.assemble((f"{title} ", "brand"), (message, style)))


def render_settings(values: Mapping[str, Any], *, defaults: Mapping[str, Any], path: Path) -> None:
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column(style="setting.key", no_wrap=True)
    table.add_column()
    for key, value in values.items():
        changed = defaults.get(key) != value
        table.add_row(key, Text(repr(value), style="setting.changed" if changed else "setting.value"))
    table.add_row("file", Text(str(path), style="file"))
    get_console().print(
        Panel(table, title=Text("settings", style="brand"), title_align="left", box=box.ROUNDED, border_style="muted")
    )


def render_validation(status: str, issues: Sequence[str], *, style: str) -> None:
    lines = [Text(f"• {issue}") for issue in issues]
    get_console().print(
        Panel(
            Group(*lines),
            title=Text(status, style=style),
            title_align="left",
            box=box.ROUNDED,
            border_style=style,
        )
    )


def render_models(rows: Iterable[tuple[str, str, str, bool]], *, current: str) -> None:
    table = Table(box=box.SIMPLE_HEAD, pad_edge=False, header_style="muted")
    table.add_column("", width=1)
    table.add_column("model", no_wrap=True)
    table.add_column("name")
    table.add_column("notes", style="muted")
    for slug, name, description, is_default in rows:
        marker = "●" if slug == current else ""
        notes = f"{description} (default)" if is_default else description
        table.add_row(marker, Text(slug, style="model.current" if slug == current else ""), name, notes)
    get_console().print(table)
