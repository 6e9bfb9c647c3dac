"""Shared fixtures for plan-storage tests."""

from pathlib import Path

import pytest
import pytest_asyncio

from plan_storage import config as config_module
from plan_storage.storage.sqlite_provider import SqliteStorageProvider

from .helpers import MemoryStorageProvider, make_metadata, populate


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch):
	"""Keep config and data directories inside the test's tmp dir."""
	monkeypatch.setenv("PLAN_STORAGE_CONFIG_DIR", str(tmp_path / "config"))
	monkeypatch.setenv("PLAN_STORAGE_DATA_DIR", str(tmp_path / "data"))
	monkeypatch.delenv("PLAN_STORAGE_DEFAULT_FORMAT", raising=False)
	monkeypatch.delenv("PLAN_STORAGE_EXTENSION", raising=False)
	monkeypatch.setattr(config_module, "_config", None)


@pytest_asyncio.fixture
async def provider(tmp_path: Path):
	"""An initialized, empty SQLite plan."""
	p = SqliteStorageProvider(tmp_path / "test.plan")
	result = await p.initialize(make_metadata())
	assert result.success, result.error
	yield p
	await p.close()


@pytest_asyncio.fixture
async def populated(tmp_path: Path):
	"""A SQLite plan filled with steps, files, events, evidence and feedback."""
	p = SqliteStorageProvider(tmp_path / "populated.plan")
	await populate(p)
	yield p
	await p.close()


@pytest_asyncio.fixture
async def memory_plan():
	"""A populated in-memory plan reporting the directory format."""
	p = MemoryStorageProvider()
	await populate(p)
	return p
