"""
Format detection and plan path helpers.

Classifies a filesystem path as a directory plan, a SQLite .plan file,
or unknown, and derives extensions and names from plan paths.
"""

import os
import re
import uuid
from pathlib import Path
from typing import Literal, Optional, Union

from ..config import FormatConfig, merge_format_config
from ..models import StorageFormat

# SQLite databases start with "SQLite format 3\0"
SQLITE_HEADER = b"SQLite format 3\x00"

DIRECTORY_PLAN_MARKERS = (
	"SUMMARY.md",
	"STATUS.md",
	"IDEA.md",
	"EXECUTION_PLAN.md",
)

UNKNOWN = "unknown"

DetectedFormat = Union[StorageFormat, Literal["unknown"]]
PathLike = Union[str, os.PathLike]


def _extension(config: Optional[FormatConfig]) -> str:
	return merge_format_config(config).sqlite.extension


def _suffix(plan_path: str) -> str:
	"""Extension of the last path segment, '.' for a bare trailing dot."""
	name = re.split(r"[/\\]", plan_path.rstrip("/\\"))[-1]
	return os.path.splitext(name)[1]


def detect_plan_format(plan_path: PathLike) -> DetectedFormat:
	"""
	Detect the format of an existing plan.

	Args:
		plan_path: Path to check

	Returns:
		The detected format, or "unknown" if the path is missing or not
		recognizable as a plan
	"""
	path = Path(plan_path)
	if not path.exists():
		return UNKNOWN

	if path.is_dir():
		for marker in DIRECTORY_PLAN_MARKERS:
			if (path / marker).exists():
				return StorageFormat.DIRECTORY
		if (path / "plan").is_dir():
			return StorageFormat.DIRECTORY
		return UNKNOWN

	if path.is_file() and has_sqlite_header(path):
		return StorageFormat.SQLITE

	# A .plan file without the header may be empty or corrupted
	return UNKNOWN


def has_sqlite_header(file_path: PathLike) -> bool:
	"""Whether the file starts with the SQLite magic bytes. Never raises."""
	try:
		with open(file_path, "rb") as f:
			header = f.read(len(SQLITE_HEADER))
	except OSError:
		return False
	return header == SQLITE_HEADER


def is_sqlite_path(plan_path: PathLike, config: Optional[FormatConfig] = None) -> bool:
	"""Whether the path carries the configured database extension."""
	return str(plan_path).endswith(_extension(config))


def is_directory_path(plan_path: PathLike) -> bool:
	"""
	Whether the path looks like a directory plan.

	An existing path must be a directory; a missing path qualifies when it
	has no file extension.
	"""
	path = Path(plan_path)
	if path.exists():
		return path.is_dir()
	return _suffix(str(plan_path)) in ("", ".")


def get_format_extension(fmt: StorageFormat, config: Optional[FormatConfig] = None) -> str:
	"""File extension for a format; directories have none."""
	if StorageFormat(fmt) == StorageFormat.SQLITE:
		return _extension(config)
	return ""


def ensure_format_extension(
	plan_path: PathLike,
	fmt: StorageFormat,
	config: Optional[FormatConfig] = None,
) -> str:
	"""Append the format's extension if the path lacks it."""
	plan_path = str(plan_path)
	extension = get_format_extension(fmt, config)
	if extension and not plan_path.endswith(extension):
		return f"{plan_path}{extension}"
	return plan_path


def infer_format_from_path(plan_path: PathLike, config: Optional[FormatConfig] = None) -> StorageFormat:
	"""
	Infer the format for a path, existing or not.

	An existing, recognizable plan always wins. Otherwise the path shape
	decides: database extension, then the extension-less directory
	heuristic, then the configured default.
	"""
	if Path(plan_path).exists():
		detected = detect_plan_format(plan_path)
		if detected != UNKNOWN:
			return detected
	return infer_format_from_shape(plan_path, config)


def infer_format_from_shape(plan_path: PathLike, config: Optional[FormatConfig] = None) -> StorageFormat:
	"""Classify a path by its shape alone, ignoring anything on disk."""
	if is_sqlite_path(plan_path, config):
		return StorageFormat.SQLITE
	if is_directory_path(plan_path):
		return StorageFormat.DIRECTORY
	return merge_format_config(config).default_format


def validate_plan_path(
	plan_path: PathLike,
	fmt: StorageFormat,
	config: Optional[FormatConfig] = None,
) -> Optional[str]:
	"""
	Validate a plan path for the given format.

	Returns:
		An error message if invalid, or None if valid
	"""
	plan_path = str(plan_path) if plan_path is not None else ""
	if not plan_path.strip():
		return "Plan path cannot be empty"

	fmt = StorageFormat(fmt)
	if fmt == StorageFormat.SQLITE:
		extension = get_format_extension(fmt, config)
		if not plan_path.endswith(extension):
			return f"SQLite plan path must end with {extension}"

	if fmt == StorageFormat.DIRECTORY:
		ext = _suffix(plan_path)
		if ext and ext != ".":
			return f"Directory plan path should not have a file extension (got {ext})"

	return None


def get_plan_name_from_path(
	plan_path: PathLike,
	fmt: StorageFormat,
	config: Optional[FormatConfig] = None,
) -> str:
	"""Plan name from a path: last segment, database extension removed."""
	name = str(plan_path)
	if StorageFormat(fmt) == StorageFormat.SQLITE:
		extension = get_format_extension(fmt, config)
		if name.endswith(extension):
			name = name[: -len(extension)]

	parts = re.split(r"[/\\]", name)
	return parts[-1] or name


def generate_plan_uuid() -> str:
	"""A new random plan UUID."""
	return str(uuid.uuid4())


def abbreviate_uuid(value: str) -> str:
	return value[:8]


def format_plan_filename(plan_uuid: str, slug: str, config: Optional[FormatConfig] = None) -> str:
	"""Filename for a database plan: {uuid-abbrev}-{slug}{extension}"""
	extension = get_format_extension(StorageFormat.SQLITE, config)
	return f"{abbreviate_uuid(plan_uuid)}-{slug}{extension}"
