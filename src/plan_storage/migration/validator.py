"""
Migration Validator - checks that two providers hold equivalent plans.

Metadata, steps, files, evidence and feedback must round-trip exactly and
produce hard errors when they don't. Timeline events are matched by type
and timestamp only and produce warnings, since their ids may be
regenerated on copy.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from ..models import PlanMetadata, StorageResult
from ..storage.provider import PlanNotFoundError, StorageProvider
from .models import ValidationErrorType, ValidationIssue, ValidationResult, ValidationStats

logger = logging.getLogger(__name__)


async def _read(fetch: Callable[[], Awaitable[StorageResult]]) -> Optional[Any]:
	"""Payload of a provider read, or None if it failed or the plan is missing."""
	try:
		result = await fetch()
	except PlanNotFoundError:
		return None
	return result.data if result.success else None


class MigrationValidator:
	"""Compares a source and a target provider entity by entity."""

	async def validate(self, source: StorageProvider, target: StorageProvider) -> ValidationResult:
		"""
		Validate that the target contains all data from the source.

		Returns:
			ValidationResult; valid iff no hard errors were found
		"""
		errors: list[ValidationIssue] = []
		warnings: list[str] = []
		stats = ValidationStats()

		await self._validate_metadata(source, target, errors)
		stats.steps_compared = await self._validate_steps(source, target, errors)
		stats.files_compared = await self._validate_files(source, target, errors)
		stats.timeline_events_compared = await self._validate_timeline(source, target, warnings)
		stats.evidence_compared = await self._validate_evidence(source, target, errors)
		stats.feedback_compared = await self._validate_feedback(source, target, errors)

		if errors:
			logger.warning(f"Validation of {target.path} found {len(errors)} error(s)")
		return ValidationResult(valid=not errors, errors=errors, warnings=warnings, stats=stats)

	async def _validate_metadata(
		self,
		source: StorageProvider,
		target: StorageProvider,
		errors: list[ValidationIssue],
	) -> None:
		source_meta: Optional[PlanMetadata] = await _read(source.get_metadata)
		if source_meta is None:
			errors.append(ValidationIssue(
				type=ValidationErrorType.METADATA_DIFFERENCE,
				path="metadata",
				expected="valid metadata",
				actual="failed to read source metadata",
				message="Could not read source metadata",
			))
			return

		target_meta: Optional[PlanMetadata] = await _read(target.get_metadata)
		if target_meta is None:
			errors.append(ValidationIssue(
				type=ValidationErrorType.METADATA_DIFFERENCE,
				path="metadata",
				expected="valid metadata",
				actual="failed to read target metadata",
				message="Could not read target metadata",
			))
			return

		for field_name, label in (("id", "ID"), ("name", "name"), ("stage", "stage")):
			expected = getattr(source_meta, field_name)
			actual = getattr(target_meta, field_name)
			if expected != actual:
				errors.append(ValidationIssue(
					type=ValidationErrorType.METADATA_DIFFERENCE,
					path=f"metadata.{field_name}",
					expected=expected,
					actual=actual,
					message=f'Plan {label} mismatch: expected "{_plain(expected)}", got "{_plain(actual)}"',
				))

	async def _validate_steps(
		self,
		source: StorageProvider,
		target: StorageProvider,
		errors: list[ValidationIssue],
	) -> int:
		source_steps = await _read(source.get_steps)
		if source_steps is None:
			return 0
		target_steps = {s.number: s for s in await _read(target.get_steps) or []}

		for step in source_steps:
			path = f"steps[{step.number}]"
			other = target_steps.get(step.number)
			if other is None:
				errors.append(ValidationIssue(
					type=ValidationErrorType.MISSING_STEP,
					path=path,
					expected=step,
					actual=None,
					message=f"Step {step.number} is missing in target",
				))
				continue

			for field_name in ("title", "status"):
				expected = getattr(step, field_name)
				actual = getattr(other, field_name)
				if expected != actual:
					errors.append(ValidationIssue(
						type=ValidationErrorType.CONTENT_MISMATCH,
						path=f"{path}.{field_name}",
						expected=expected,
						actual=actual,
						message=f"Step {step.number} {field_name} mismatch",
					))

			expected_content = step.content.strip()
			actual_content = other.content.strip()
			if expected_content != actual_content:
				errors.append(ValidationIssue(
					type=ValidationErrorType.CONTENT_MISMATCH,
					path=f"{path}.content",
					expected=f"{len(expected_content)} chars",
					actual=f"{len(actual_content)} chars",
					message=f"Step {step.number} content mismatch",
				))

		# Extra steps only appear when the target was modified independently
		source_numbers = {s.number for s in source_steps}
		for number, other in target_steps.items():
			if number not in source_numbers:
				errors.append(ValidationIssue(
					type=ValidationErrorType.CONTENT_MISMATCH,
					path=f"steps[{number}]",
					expected=None,
					actual=other,
					message=f"Unexpected step {number} in target",
				))

		return len(source_steps)

	async def _validate_files(
		self,
		source: StorageProvider,
		target: StorageProvider,
		errors: list[ValidationIssue],
	) -> int:
		source_files = await _read(source.get_files)
		if source_files is None:
			return 0
		target_files = {(f.type, f.filename): f for f in await _read(target.get_files) or []}

		for file in source_files:
			path = f"files[{file.type.value}/{file.filename}]"
			other = target_files.get((file.type, file.filename))
			if other is None:
				errors.append(ValidationIssue(
					type=ValidationErrorType.MISSING_FILE,
					path=path,
					expected=file,
					actual=None,
					message=f"File {file.filename} ({file.type.value}) is missing in target",
				))
				continue

			expected_content = file.content.strip()
			actual_content = other.content.strip()
			if expected_content != actual_content:
				errors.append(ValidationIssue(
					type=ValidationErrorType.CONTENT_MISMATCH,
					path=f"{path}.content",
					expected=f"{len(expected_content)} chars",
					actual=f"{len(actual_content)} chars",
					message=f"File {file.filename} content mismatch",
				))

		return len(source_files)

	async def _validate_timeline(
		self,
		source: StorageProvider,
		target: StorageProvider,
		warnings: list[str],
	) -> int:
		source_events = await _read(source.get_timeline_events)
		if source_events is None:
			return 0
		target_keys = {(e.type, e.timestamp) for e in await _read(target.get_timeline_events) or []}

		for event in source_events:
			if (event.type, event.timestamp) not in target_keys:
				warnings.append(
					f"Timeline event {event.type.value} at {event.timestamp} not found in target"
				)

		return len(source_events)

	async def _validate_evidence(
		self,
		source: StorageProvider,
		target: StorageProvider,
		errors: list[ValidationIssue],
	) -> int:
		source_evidence = await _read(source.get_evidence)
		if source_evidence is None:
			return 0
		descriptions = {e.description for e in await _read(target.get_evidence) or []}

		for item in source_evidence:
			if item.description not in descriptions:
				errors.append(ValidationIssue(
					type=ValidationErrorType.MISSING_FILE,
					path=f"evidence[{item.id}]",
					expected=item,
					actual=None,
					message=f'Evidence "{item.description}" is missing in target',
				))

		return len(source_evidence)

	async def _validate_feedback(
		self,
		source: StorageProvider,
		target: StorageProvider,
		errors: list[ValidationIssue],
	) -> int:
		source_feedback = await _read(source.get_feedback)
		if source_feedback is None:
			return 0
		contents = {f.content for f in await _read(target.get_feedback) or []}

		for item in source_feedback:
			if item.content not in contents:
				errors.append(ValidationIssue(
					type=ValidationErrorType.MISSING_FILE,
					path=f"feedback[{item.id}]",
					expected=item,
					actual=None,
					message=f'Feedback "{item.title or item.id}" is missing in target',
				))

		return len(source_feedback)


def _plain(value: Any) -> Any:
	return getattr(value, "value", value)


def create_validator() -> MigrationValidator:
	"""Create a migration validator."""
	return MigrationValidator()
