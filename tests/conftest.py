from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest
import pytest_asyncio

from anygpt.llm.openai import OpenAIClient
from anygpt.settings import SettingsStore

TEST_BASE_URL = "https://api.test/v1"


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("OPENAI_API_KEY", "ANYGPT_MODEL", "ANYGPT_BASE_URL", "ANYGPT_MODEL_CATALOG_PATH"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ANYGPT_SETTINGS_PATH", str(tmp_path / "config" / "settings.json"))
    monkeypatch.setenv("ANYGPT_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def settings_store(tmp_path: Path) -> SettingsStore:
    return SettingsStore(tmp_path / "config" / "settings.json")


@pytest_asyncio.fixture
async def make_client():
    created: list[OpenAIClient] = []

    def _make(
        handler: Callable[[httpx.Request], httpx.Response],
        *,
        base_url: str = TEST_BASE_URL,
        sleep=None,
    ) -> tuple[OpenAIClient, list[float]]:
        delays: list[float] = []

        async def record_sleep(delay: float) -> None:
            delays.append(delay)

        client = OpenAIClient(
            base_url=base_url,
            transport=httpx.MockTransport(handler),
            sleep=sleep or record_sleep,
        )
        created.append(client)
        return client, delays

    yield _make
    for client in created:
        await client.aclose()
