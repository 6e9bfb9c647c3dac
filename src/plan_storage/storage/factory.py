"""
Storage Provider Factory.

Resolves a plan path (and an optional forced format) into a concrete
provider. The database provider ships with this package; the directory
provider is supplied by the host application as a callable.
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Union

from ..config import DirectoryConfig, FormatConfig, SqliteConfig, merge_format_config
from ..models import StorageFormat
from .formats import (
	UNKNOWN,
	detect_plan_format,
	ensure_format_extension,
	infer_format_from_shape,
	is_directory_path,
	is_sqlite_path,
)
from .provider import StorageProvider
from .sqlite_provider import SqliteStorageProvider

logger = logging.getLogger(__name__)

DirectoryProviderFactory = Callable[[str, DirectoryConfig], StorageProvider]


class ProviderUnavailableError(Exception):
	"""Raised when no implementation is available for the requested format."""
	pass


class StorageProviderFactory:
	"""
	Creates storage providers based on path characteristics and configuration.

	Usage:
		factory = StorageProviderFactory(config, directory_provider=host_factory)
		provider = factory.create_provider("plans/my-plan")
	"""

	def __init__(
		self,
		config: Union[FormatConfig, dict, None] = None,
		directory_provider: Optional[DirectoryProviderFactory] = None,
	):
		self.config = merge_format_config(config)
		self.directory_provider = directory_provider

	def create_provider(
		self,
		plan_path: Union[str, Path],
		format: Union[StorageFormat, str, None] = None,
	) -> StorageProvider:
		"""
		Create a provider for a plan path.

		Args:
			plan_path: Path to the plan (existing or not)
			format: Force a format instead of detecting one

		Raises:
			ProviderUnavailableError: For the directory format when the host
				supplied no directory provider
		"""
		fmt = self.determine_format(plan_path, format)
		final_path = ensure_format_extension(plan_path, fmt, self.config)
		logger.debug(f"Creating {fmt.value} provider for {final_path}")

		if fmt == StorageFormat.SQLITE:
			return SqliteStorageProvider(final_path, self.config.sqlite)

		if self.directory_provider is None:
			raise ProviderUnavailableError(
				"Directory storage provider is not available. "
				"Supply a directory_provider to the factory for directory-based plans."
			)
		return self.directory_provider(final_path, self.config.directory)

	def supports_path(self, plan_path: Union[str, Path]) -> bool:
		"""Whether the path is an existing plan or looks like it could become one."""
		if detect_plan_format(plan_path) != UNKNOWN:
			return True
		return is_sqlite_path(plan_path, self.config) or is_directory_path(plan_path)

	def determine_format(
		self,
		plan_path: Union[str, Path],
		forced: Union[StorageFormat, str, None] = None,
	) -> StorageFormat:
		"""Forced format, else the detected format, else the path-shape heuristic."""
		if forced:
			return StorageFormat(forced)

		detected = detect_plan_format(plan_path)
		if detected != UNKNOWN:
			return detected

		return infer_format_from_shape(plan_path, self.config)

	@property
	def default_format(self) -> StorageFormat:
		return self.config.default_format

	@property
	def sqlite_config(self) -> SqliteConfig:
		return self.config.sqlite

	@property
	def directory_config(self) -> DirectoryConfig:
		return self.config.directory


def create_storage_factory(
	config: Union[FormatConfig, dict, None] = None,
	directory_provider: Optional[DirectoryProviderFactory] = None,
) -> StorageProviderFactory:
	"""Create a storage provider factory with the given configuration."""
	return StorageProviderFactory(config, directory_provider)


def create_provider(
	plan_path: Union[str, Path],
	format: Union[StorageFormat, str, None] = None,
	config: Union[FormatConfig, dict, None] = None,
) -> StorageProvider:
	"""Create a provider for a path using a one-off factory."""
	return create_storage_factory(config).create_provider(plan_path, format)
