"""Shared fixtures for share pipeline tests."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from notecompanion.client.api import ProcessingClient
from notecompanion.core.config import PipelineSettings, ServerConfig

SERVER_URL = "http://test"


@pytest.fixture
def settings(tmp_path: Path) -> PipelineSettings:
    """Pipeline settings with storage under tmp_path and a short poll cap."""
    return PipelineSettings(
        server=ServerConfig(server_url=SERVER_URL),
        poll_max_attempts=5,
        staging_dir=tmp_path / "staging",
        data_dir=tmp_path / "data",
    )


@pytest.fixture
def sleep() -> AsyncMock:
    """Sleep replacement recording requested delays."""
    return AsyncMock()


@pytest_asyncio.fixture
async def client(settings: PipelineSettings) -> AsyncIterator[ProcessingClient]:
    """ProcessingClient pointed at the mocked service."""
    async with ProcessingClient(settings.server) as api:
        yield api

