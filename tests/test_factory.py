"""Tests for the storage provider factory."""

from pathlib import Path

import pytest

from plan_storage.config import DirectoryConfig, FormatConfig, SqliteConfig
from plan_storage.models import StorageFormat
from plan_storage.storage.factory import (
	ProviderUnavailableError,
	StorageProviderFactory,
	create_provider,
	create_storage_factory,
)
from plan_storage.storage.sqlite_provider import SqliteStorageProvider

from .helpers import MemoryStorageProvider, make_metadata


def test_sqlite_path_gets_sqlite_provider(tmp_path: Path):
	provider = StorageProviderFactory().create_provider(tmp_path / "plan.plan")
	assert isinstance(provider, SqliteStorageProvider)
	assert provider.path == str(tmp_path / "plan.plan")


def test_forced_sqlite_appends_extension(tmp_path: Path):
	provider = create_provider(tmp_path / "my-plan", format=StorageFormat.SQLITE)
	assert isinstance(provider, SqliteStorageProvider)
	assert provider.path.endswith("my-plan.plan")


def test_custom_extension_and_pragmas(tmp_path: Path):
	config = FormatConfig(sqlite=SqliteConfig(extension=".db", pragmas={"synchronous": "FULL"}))
	provider = StorageProviderFactory(config).create_provider(tmp_path / "x", "sqlite")
	assert provider.path.endswith("x.db")
	assert provider.config.pragmas == {"synchronous": "FULL"}


def test_directory_without_host_provider_raises(tmp_path: Path):
	with pytest.raises(ProviderUnavailableError):
		StorageProviderFactory().create_provider(tmp_path / "dir-plan")


def test_directory_uses_host_provider(tmp_path: Path):
	created = []

	def host_factory(path: str, config: DirectoryConfig):
		created.append((path, config))
		return MemoryStorageProvider(path, config)

	factory = create_storage_factory(
		{"directory": {"permissions": "0700"}}, directory_provider=host_factory
	)
	provider = factory.create_provider(tmp_path / "dir-plan")

	assert isinstance(provider, MemoryStorageProvider)
	assert created[0][0] == str(tmp_path / "dir-plan")
	assert created[0][1].permissions == "0700"


def test_default_format_applies_to_ambiguous_paths(tmp_path: Path):
	factory = StorageProviderFactory({"default_format": "sqlite"})
	assert factory.determine_format(tmp_path / "notes.txt") == StorageFormat.SQLITE
	assert factory.default_format == StorageFormat.SQLITE


@pytest.mark.asyncio
async def test_detected_format_beats_forced_shape(tmp_path: Path):
	# An existing database without the extension is still detected as SQLite
	path = tmp_path / "no-extension"
	async with SqliteStorageProvider(path) as p:
		await p.initialize(make_metadata())

	factory = StorageProviderFactory()
	assert factory.determine_format(path) == StorageFormat.SQLITE
	assert factory.determine_format(path, "directory") == StorageFormat.DIRECTORY


def test_supports_path(tmp_path: Path):
	factory = StorageProviderFactory()
	assert factory.supports_path(tmp_path / "new.plan")
	assert factory.supports_path(tmp_path / "new-dir")
	assert not factory.supports_path(tmp_path / "notes.txt")

	plan_dir = tmp_path / "existing"
	plan_dir.mkdir()
	(plan_dir / "STATUS.md").write_text("# Status")
	assert factory.supports_path(plan_dir)


def test_config_properties():
	factory = StorageProviderFactory()
	assert factory.sqlite_config.extension == ".plan"
	assert factory.directory_config.use_plan_subdir is True
	assert factory.default_format == StorageFormat.DIRECTORY
