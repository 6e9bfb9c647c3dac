"""CLI for plan-storage: detect, inspect, search, migrate, validate, export and checkpoint plans."""

import argparse
import asyncio
import json
import logging
import shutil
import sys
import uuid
from pathlib import Path
from typing import Optional

from rich.console import Console

from .config import format_config_to_dict, get_config
from .logging_config import setup_logging
from .migration import (
	MigrationOptions,
	MigrationProgress,
	create_migrator,
	create_validator,
	delete_plan_storage,
	generate_target_path,
	infer_target_format,
	move_plan_storage,
)
from .models import Checkpoint, StorageFormat, TimelineEvent, TimelineEventType
from .renderer import RenderOptions, render_plan_to_markdown, write_rendered_plan
from .storage import (
	PlanNotFoundError,
	ProviderUnavailableError,
	StorageProvider,
	StorageProviderFactory,
	detect_plan_format,
)
from .storage.formats import UNKNOWN
from .views import (
	render_migration_result,
	render_plan_summary,
	render_search_results,
	render_validation_result,
)

logger = logging.getLogger(__name__)


def _factory() -> StorageProviderFactory:
	return StorageProviderFactory(get_config().format)


def _fail(message: str) -> None:
	print(f"Error: {message}", file=sys.stderr)
	sys.exit(1)


def _open(path: str, fmt: Optional[StorageFormat] = None, must_exist: bool = True) -> StorageProvider:
	"""Provider for a path, exiting with an error if none is available."""
	if must_exist and detect_plan_format(path) == UNKNOWN:
		_fail(f"Not a recognizable plan: {path}")
	try:
		return _factory().create_provider(path, fmt)
	except ProviderUnavailableError as e:
		_fail(str(e))


class CommandError(Exception):
	"""Raised by command coroutines to exit with an error message."""
	pass


def _run(coro) -> None:
	"""Run a command coroutine, turning failures into a CLI error."""
	try:
		asyncio.run(coro)
	except (CommandError, PlanNotFoundError) as e:
		_fail(str(e))


def cmd_detect(args: argparse.Namespace) -> None:
	"""Print the detected format of a path."""
	detected = detect_plan_format(args.path)
	print(getattr(detected, "value", detected))


def cmd_config(args: argparse.Namespace) -> None:
	"""Print the resolved format configuration as JSON."""
	config = get_config()
	print(json.dumps(format_config_to_dict(config.format), indent=2))


def cmd_info(args: argparse.Namespace) -> None:
	"""Show a plan's metadata, steps and checkpoints."""

	provider = _open(args.path)

	async def run() -> None:
		async with provider:
			metadata = await provider.get_metadata()
			if not metadata.success:
				raise CommandError(metadata.error)
			steps = await provider.get_steps()
			files = await provider.get_files()
			checkpoints = await provider.get_checkpoints()
			render_plan_summary(
				metadata.data,
				steps.data or [],
				files.data or [],
				checkpoints.data or [],
				location=f"{provider.path} ({provider.format.value})",
				console=Console(),
			)

	_run(run())


def cmd_search(args: argparse.Namespace) -> None:
	"""Search a plan's steps, files and evidence."""

	provider = _open(args.path)

	async def run() -> None:
		async with provider:
			result = await provider.search(args.query)
			if not result.success:
				raise CommandError(result.error)
			render_search_results(args.query, result.data or [], console=Console())

	_run(run())


def _log_progress(progress: MigrationProgress) -> None:
	item = f" {progress.current_item}" if progress.current_item else ""
	logger.info(f"[{progress.percentage:3d}%] {progress.phase}{item}")


def _staging_path(target_path: str) -> Path:
	"""Hidden sibling location to migrate into before replacing target_path."""
	target = Path(target_path)
	return target.parent / f".{target.name}.migrating-{uuid.uuid4().hex[:8]}" / target.name


def cmd_migrate(args: argparse.Namespace) -> None:
	"""Migrate a plan to the other storage format."""
	source_format = detect_plan_format(args.source)
	if source_format not in (StorageFormat.SQLITE, StorageFormat.DIRECTORY):
		_fail(f"Not a recognizable plan: {args.source}")

	target_format = StorageFormat(args.to) if args.to else infer_target_format(source_format)
	factory = _factory()
	target_path = args.target or generate_target_path(
		args.source, source_format, target_format, factory.config
	)

	# An existing plan is replaced only after the staged migration succeeds
	existing = detect_plan_format(target_path) if args.force else UNKNOWN
	replacing = existing in (StorageFormat.SQLITE, StorageFormat.DIRECTORY)
	write_path = _staging_path(target_path) if replacing else Path(target_path)

	source = _open(args.source, source_format)
	target = _open(str(write_path), target_format, must_exist=False)
	final_path = target_path if replacing else target.path
	options = MigrationOptions(
		force=args.force,
		keep_source=not args.delete_source,
		validate=not args.no_validate,
		on_progress=_log_progress,
	)

	async def run():
		try:
			return await create_migrator().migrate(args.source, final_path, source, target, options)
		finally:
			await source.close()
			await target.close()

	try:
		result = asyncio.run(run())
		if replacing and result.success:
			delete_plan_storage(target_path, existing)
			move_plan_storage(target.path, final_path, target_format)
	finally:
		if replacing:
			shutil.rmtree(write_path.parent, ignore_errors=True)
	render_migration_result(result, console=Console())
	if not result.success:
		sys.exit(1)


def cmd_validate(args: argparse.Namespace) -> None:
	"""Compare two plans and report differences."""
	source = _open(args.source)
	target = _open(args.target)

	async def run():
		try:
			return await create_validator().validate(source, target)
		finally:
			await source.close()
			await target.close()

	result = asyncio.run(run())
	render_validation_result(result, console=Console())
	if not result.valid:
		sys.exit(1)


def cmd_export(args: argparse.Namespace) -> None:
	"""Render a plan to markdown files."""
	options = RenderOptions(
		include_evidence=not args.no_evidence,
		include_feedback=not args.no_feedback,
		include_source_info=args.source_info,
	)

	provider = _open(args.path)

	async def run() -> None:
		async with provider:
			rendered = await render_plan_to_markdown(provider, options)
		written = write_rendered_plan(rendered, args.out_dir)
		print(f"Wrote {len(written)} files to {args.out_dir}")

	_run(run())


def cmd_checkpoint(args: argparse.Namespace) -> None:
	"""Create (or replace) a named checkpoint."""

	provider = _open(args.path)

	async def run() -> None:
		async with provider:
			snapshot = await provider.create_snapshot()
			result = await provider.create_checkpoint(
				Checkpoint(name=args.name, message=args.message or "", snapshot=snapshot)
			)
			if not result.success:
				raise CommandError(result.error)
			await provider.add_timeline_event(TimelineEvent(
				type=TimelineEventType.CHECKPOINT_CREATED,
				data={"name": args.name, "message": args.message or ""},
			))
		print(f"Checkpoint '{args.name}' created")

	_run(run())


def cmd_restore(args: argparse.Namespace) -> None:
	"""Restore a plan from a named checkpoint."""

	provider = _open(args.path)

	async def run() -> None:
		async with provider:
			result = await provider.restore_checkpoint(args.name)
			if not result.success:
				raise CommandError(result.error)
		print(f"Restored checkpoint '{args.name}'")

	_run(run())


def main() -> None:
	"""CLI entry point."""
	parser = argparse.ArgumentParser(
		prog="plan-storage",
		description="Storage, format detection and migration for plan files",
	)
	parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
	subparsers = parser.add_subparsers(dest="command")

	# detect
	detect_parser = subparsers.add_parser("detect", help="Detect the storage format of a path")
	detect_parser.add_argument("path", help="Plan path")
	detect_parser.set_defaults(func=cmd_detect)

	# config
	config_parser = subparsers.add_parser("config", help="Show the resolved format configuration")
	config_parser.set_defaults(func=cmd_config)

	# info
	info_parser = subparsers.add_parser("info", help="Show plan metadata and progress")
	info_parser.add_argument("path", help="Plan path")
	info_parser.set_defaults(func=cmd_info)

	# search
	search_parser = subparsers.add_parser("search", help="Search plan content")
	search_parser.add_argument("path", help="Plan path")
	search_parser.add_argument("query", help="Text to search for (case-insensitive)")
	search_parser.set_defaults(func=cmd_search)

	# migrate
	migrate_parser = subparsers.add_parser("migrate", help="Convert a plan to another format")
	migrate_parser.add_argument("source", help="Source plan path")
	migrate_parser.add_argument("target", nargs="?", default=None, help="Target path (default: derived)")
	migrate_parser.add_argument(
		"--to",
		choices=[f.value for f in StorageFormat],
		default=None,
		help="Target format (default: the other format)",
	)
	migrate_parser.add_argument("--force", action="store_true", help="Overwrite an existing target")
	migrate_parser.add_argument("--delete-source", action="store_true", help="Delete the source on success")
	migrate_parser.add_argument("--no-validate", action="store_true", help="Skip post-migration validation")
	migrate_parser.set_defaults(func=cmd_migrate)

	# validate
	validate_parser = subparsers.add_parser("validate", help="Compare two plans")
	validate_parser.add_argument("source", help="Reference plan path")
	validate_parser.add_argument("target", help="Plan path to check")
	validate_parser.set_defaults(func=cmd_validate)

	# export
	export_parser = subparsers.add_parser("export", help="Render a plan to markdown")
	export_parser.add_argument("path", help="Plan path")
	export_parser.add_argument("out_dir", help="Output directory")
	export_parser.add_argument("--no-evidence", action="store_true", help="Skip evidence files")
	export_parser.add_argument("--no-feedback", action="store_true", help="Skip feedback files")
	export_parser.add_argument("--source-info", action="store_true", help="Include schema version in SUMMARY.md")
	export_parser.set_defaults(func=cmd_export)

	# checkpoint
	checkpoint_parser = subparsers.add_parser("checkpoint", help="Create a named checkpoint")
	checkpoint_parser.add_argument("path", help="Plan path")
	checkpoint_parser.add_argument("name", help="Checkpoint name")
	checkpoint_parser.add_argument("-m", "--message", default=None, help="Checkpoint message")
	checkpoint_parser.set_defaults(func=cmd_checkpoint)

	# restore
	restore_parser = subparsers.add_parser("restore", help="Restore a named checkpoint")
	restore_parser.add_argument("path", help="Plan path")
	restore_parser.add_argument("name", help="Checkpoint name")
	restore_parser.set_defaults(func=cmd_restore)

	args = parser.parse_args()

	if not args.command:
		parser.print_help()
		sys.exit(1)

	setup_logging("DEBUG" if args.verbose else None)
	args.func(args)
