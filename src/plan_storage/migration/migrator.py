"""
Plan Migrator - copies a plan between storage formats.

Reads every collection from a source provider and writes it to a freshly
initialized target provider, optionally validating the copy and deleting
the source afterwards. Failures abort the remaining phases; the target is
not rolled back.
"""

import logging
import os
import shutil
import time
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

from ..config import FormatConfig
from ..models import StorageFormat, StorageResult
from ..storage.formats import ensure_format_extension, get_format_extension
from ..storage.provider import StorageProvider
from .models import (
	MigrationOptions,
	MigrationPhase,
	MigrationProgress,
	MigrationResult,
)
from .validator import MigrationValidator

logger = logging.getLogger(__name__)

MIGRATED_SUFFIX = "_migrated"


class MigrationError(Exception):
	"""Raised internally to abort a migration with a message."""
	pass


class PlanMigrator:
	"""
	Migrates plans between directory and SQLite formats.

	Usage:
		migrator = PlanMigrator()
		result = await migrator.migrate(src_path, dst_path, source, target)
		if not result.success:
			print(result.error)
	"""

	def __init__(self, validator: Optional[MigrationValidator] = None):
		self.validator = validator or MigrationValidator()

	async def migrate(
		self,
		source_path: Union[str, Path],
		target_path: Union[str, Path],
		source: StorageProvider,
		target: StorageProvider,
		options: Optional[MigrationOptions] = None,
	) -> MigrationResult:
		"""
		Migrate a plan from source to target.

		Args:
			source_path: Path of the source plan (deleted if keep_source is False)
			target_path: Path of the target plan
			source: Provider reading the source plan
			target: Provider writing the target plan
			options: Migration options

		Returns:
			MigrationResult with stats and warnings gathered so far
		"""
		options = options or MigrationOptions()
		started = time.monotonic()
		result = MigrationResult(
			success=False,
			source_format=source.format,
			target_format=target.format,
			source_path=str(source_path),
			target_path=str(target_path),
		)
		stats = result.stats

		def report(phase: MigrationPhase, percentage: int, item: Optional[str] = None) -> None:
			if options.on_progress:
				options.on_progress(MigrationProgress(phase=phase, percentage=percentage, current_item=item))

		try:
			if await target.exists() and not options.force:
				raise MigrationError(
					f"Target already exists: {target_path}. Use force option to overwrite."
				)

			report("reading", 0)
			metadata_result = await source.get_metadata()
			if not metadata_result.success or metadata_result.data is None:
				raise MigrationError(f"Failed to read source metadata: {metadata_result.error}")

			report("writing", 10, "metadata")
			init_result = await target.initialize(metadata_result.data)
			if not init_result.success:
				raise MigrationError(f"Failed to initialize target: {init_result.error}")

			report("converting", 20, "steps")
			stats.steps_converted = await self._copy(
				source.get_steps, target.add_step, "step", result.warnings
			)

			report("converting", 40, "files")
			stats.files_converted = await self._copy(
				source.get_files, target.save_file, "file", result.warnings
			)

			report("converting", 60, "timeline")
			stats.timeline_events_converted = await self._copy(
				source.get_timeline_events, target.add_timeline_event, "timeline event", result.warnings
			)

			report("converting", 70, "evidence")
			stats.evidence_converted = await self._copy(
				source.get_evidence, target.add_evidence, "evidence", result.warnings
			)

			report("converting", 80, "feedback")
			stats.feedback_converted = await self._copy(
				source.get_feedback, target.add_feedback, "feedback", result.warnings
			)

			report("converting", 90, "checkpoints")
			stats.checkpoints_converted = await self._copy(
				source.get_checkpoints, target.create_checkpoint, "checkpoint", result.warnings
			)

			if options.validate:
				report("validating", 95)
				validation = await self.validator.validate(source, target)
				result.warnings.extend(validation.warnings)
				if not validation.valid:
					messages = "; ".join(e.message for e in validation.errors)
					raise MigrationError(f"Validation failed: {messages}")

			if not options.keep_source:
				await source.close()
				delete_plan_storage(source_path, source.format)

			report("writing", 100)
			result.success = True
			logger.info(
				f"Migrated {source_path} ({source.format.value}) -> "
				f"{target_path} ({target.format.value})"
			)
		except Exception as e:
			result.error = str(e) or "Unknown error during migration"
			logger.warning(f"Migration of {source_path} failed: {result.error}")

		result.duration_seconds = time.monotonic() - started
		return result

	@staticmethod
	async def _copy(
		fetch: Callable[[], Awaitable[StorageResult]],
		store: Callable[..., Awaitable[StorageResult]],
		label: str,
		warnings: list[str],
	) -> int:
		"""
		Read a whole collection and insert it item by item.

		Inserts the target rejects are recorded as warnings and left out of
		the returned count.
		"""
		result = await fetch()
		if not result.success or not result.data:
			return 0
		copied = 0
		for item in result.data:
			stored = await store(item)
			if stored.success:
				copied += 1
			else:
				warning = f"Failed to copy {label}: {stored.error}"
				logger.warning(warning)
				warnings.append(warning)
		return copied


def delete_plan_storage(plan_path: Union[str, Path], fmt: StorageFormat) -> None:
	"""Delete a plan's backing storage, including SQLite side files."""
	plan_path = str(plan_path)
	if not os.path.exists(plan_path):
		return

	if fmt == StorageFormat.SQLITE:
		os.unlink(plan_path)
		for side_file in (f"{plan_path}-wal", f"{plan_path}-shm"):
			if os.path.exists(side_file):
				os.unlink(side_file)
	else:
		shutil.rmtree(plan_path)
	logger.debug(f"Deleted plan storage: {plan_path}")


def move_plan_storage(
	source_path: Union[str, Path],
	target_path: Union[str, Path],
	fmt: StorageFormat,
) -> None:
	"""Move a closed plan to a new path, including SQLite side files."""
	source_path, target_path = str(source_path), str(target_path)
	if fmt == StorageFormat.SQLITE:
		os.replace(source_path, target_path)
		for suffix in ("-wal", "-shm"):
			if os.path.exists(source_path + suffix):
				os.replace(source_path + suffix, target_path + suffix)
	else:
		shutil.move(source_path, target_path)
	logger.debug(f"Moved plan storage: {source_path} -> {target_path}")


def create_migrator() -> PlanMigrator:
	"""Create a plan migrator."""
	return PlanMigrator()


def generate_target_path(
	source_path: Union[str, Path],
	source_format: StorageFormat,
	target_format: StorageFormat,
	config: Optional[FormatConfig] = None,
) -> str:
	"""
	Default destination path for a migration.

	Toward SQLite the trailing separator is dropped and the extension added;
	toward a directory the extension is dropped and "_migrated" appended.
	"""
	source_path = str(source_path)
	if target_format == StorageFormat.SQLITE:
		return ensure_format_extension(source_path.rstrip("/\\"), StorageFormat.SQLITE, config)

	extension = get_format_extension(StorageFormat.SQLITE, config)
	if source_path.endswith(extension):
		source_path = source_path[: -len(extension)]
	return source_path + MIGRATED_SUFFIX


def infer_target_format(source_format: StorageFormat) -> StorageFormat:
	"""The other of the two known formats."""
	if source_format == StorageFormat.SQLITE:
		return StorageFormat.DIRECTORY
	return StorageFormat.SQLITE
