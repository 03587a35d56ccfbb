"""Shared fixtures for the coursegen test suite."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from httpx import ASGITransport, AsyncClient

from coursegen.config import get_database_settings, get_settings
from coursegen.main import app


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def fixed_now() -> datetime:
  return datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def clear_settings_cache():
  get_settings.cache_clear()
  get_database_settings.cache_clear()
  yield
  get_settings.cache_clear()
  get_database_settings.cache_clear()


@pytest.fixture
async def async_client():
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    yield client
