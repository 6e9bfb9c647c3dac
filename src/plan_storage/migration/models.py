"""Data types for migration and validation results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Literal, Optional

from ..models import StorageFormat

MigrationPhase = Literal["reading", "converting", "writing", "validating"]


@dataclass
class MigrationProgress:
	"""A progress report emitted between migration phases."""
	phase: MigrationPhase
	percentage: int
	current_item: Optional[str] = None


ProgressCallback = Callable[[MigrationProgress], None]


@dataclass
class MigrationOptions:
	"""Options for a single migration."""
	force: bool = False
	keep_source: bool = True
	validate: bool = True
	on_progress: Optional[ProgressCallback] = None


@dataclass
class MigrationStats:
	"""Per-collection counts of copied items."""
	steps_converted: int = 0
	files_converted: int = 0
	timeline_events_converted: int = 0
	evidence_converted: int = 0
	feedback_converted: int = 0
	checkpoints_converted: int = 0


@dataclass
class MigrationResult:
	"""Outcome of a migration, including partial progress on failure."""
	success: bool
	source_format: StorageFormat
	target_format: StorageFormat
	source_path: str
	target_path: str
	error: Optional[str] = None
	warnings: list[str] = field(default_factory=list)
	stats: MigrationStats = field(default_factory=MigrationStats)
	duration_seconds: float = 0.0


class ValidationErrorType(str, Enum):
	"""Kinds of hard validation errors."""
	MISSING_STEP = "missing_step"
	CONTENT_MISMATCH = "content_mismatch"
	METADATA_DIFFERENCE = "metadata_difference"
	MISSING_FILE = "missing_file"
	MISSING_EVENT = "missing_event"


@dataclass
class ValidationIssue:
	"""A single hard difference between source and target."""
	type: ValidationErrorType
	path: str
	expected: Any
	actual: Any
	message: str


@dataclass
class ValidationStats:
	"""Number of source items compared per collection."""
	steps_compared: int = 0
	files_compared: int = 0
	timeline_events_compared: int = 0
	evidence_compared: int = 0
	feedback_compared: int = 0


@dataclass
class ValidationResult:
	"""Verdict of comparing two providers. Valid iff there are no errors."""
	valid: bool
	errors: list[ValidationIssue] = field(default_factory=list)
	warnings: list[str] = field(default_factory=list)
	stats: ValidationStats = field(default_factory=ValidationStats)
