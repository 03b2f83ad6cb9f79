"""Curated list of chat models shown by ``anygpt models``."""

from __future__ import annotations

from dataclasses import dataclass
from importlib import resources
import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CATALOG_ENV_VAR = "ANYGPT_MODEL_CATALOG_PATH"


class CatalogError(ValueError):
    pass


@dataclass(frozen=True)
class ModelEntry:
    slug: str
    name: str
    description: str = ""
    is_default: bool = False

    @classmethod
    def from_dict(cls, raw: Any, index: int) -> "ModelEntry":
        if not isinstance(raw, dict):
            raise CatalogError(f"entry {index} is not an object")
        slug = raw.get("slug")
        if not isinstance(slug, str) or not slug.strip():
            raise CatalogError(f"entry {index} has no slug")
        name = raw.get("name")
        description = raw.get("description")
        return cls(
            slug=slug.strip(),
            name=name.strip() if isinstance(name, str) and name.strip() else slug.strip(),
            description=description.strip() if isinstance(description, str) else "",
            is_default=raw.get("default") is True,
        )


def load_model_catalog() -> tuple[list[ModelEntry], str | None]:
    """Return the catalog, plus a warning when an override file had to be ignored."""
    override = os.getenv(CATALOG_ENV_VAR)
    if not override:
        return _builtin_entries(), None
    try:
        return parse_catalog(json.loads(Path(override).read_text(encoding="utf-8"))), None
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring model catalog %s: %s", override, exc)
        return _builtin_entries(), f"Could not use {CATALOG_ENV_VAR} ({exc}); showing built-in models."


def parse_catalog(data: Any) -> list[ModelEntry]:
    if not isinstance(data, list) or not data:
        raise CatalogError("catalog must be a non-empty list")
    return [ModelEntry.from_dict(raw, index) for index, raw in enumerate(data)]


def default_model(entries: list[ModelEntry]) -> str:
    return next((entry.slug for entry in entries if entry.is_default), entries[0].slug)


def _builtin_entries() -> list[ModelEntry]:
    text = resources.files(__name__).joinpath("models.json").read_text(encoding="utf-8")
    return parse_catalog(json.loads(text))
