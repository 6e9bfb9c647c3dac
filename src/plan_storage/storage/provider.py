"""
Storage Provider Interface.

Both the single-file database provider and the host application's
directory provider implement this interface, so the migrator, validator
and renderer work with either format transparently.
"""

from abc import ABC, abstractmethod
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

from ..models import (
	Checkpoint,
	CheckpointSnapshot,
	EvidenceRecord,
	FeedbackRecord,
	FileSnapshot,
	PlanFile,
	PlanFileType,
	PlanMetadata,
	PlanStep,
	StepSnapshot,
	StorageFormat,
	StorageResult,
	TimelineEvent,
	TimelineEventType,
)


class PlanNotFoundError(Exception):
	"""Raised when an operation needs a plan but the store holds none."""
	pass


class SearchResult(BaseModel):
	"""A single content search hit."""
	type: Literal["step", "file", "evidence", "feedback", "timeline"]
	id: str = Field(description="Step number, filename or record id")
	snippet: str
	score: float = Field(ge=0, le=1)


class StorageProvider(ABC):
	"""Abstract storage provider for one plan."""

	format: StorageFormat
	path: str

	@abstractmethod
	async def exists(self) -> bool:
		"""Whether the plan exists in this store."""

	@abstractmethod
	async def initialize(self, metadata: PlanMetadata) -> StorageResult[None]:
		"""Create a new plan with the given metadata."""

	@abstractmethod
	async def close(self) -> None:
		"""Release underlying resources."""

	# Metadata

	@abstractmethod
	async def get_metadata(self) -> StorageResult[PlanMetadata]:
		...

	@abstractmethod
	async def update_metadata(self, **updates) -> StorageResult[None]:
		"""Patch the supplied metadata fields only."""

	# Steps

	@abstractmethod
	async def get_steps(self) -> StorageResult[list[PlanStep]]:
		"""All steps ordered by number."""

	@abstractmethod
	async def get_step(self, number: int) -> StorageResult[Optional[PlanStep]]:
		...

	@abstractmethod
	async def add_step(self, step: PlanStep) -> StorageResult[None]:
		...

	@abstractmethod
	async def update_step(self, number: int, **updates) -> StorageResult[None]:
		"""Patch the supplied step fields only."""

	@abstractmethod
	async def delete_step(self, number: int) -> StorageResult[None]:
		...

	# Files

	@abstractmethod
	async def get_files(self) -> StorageResult[list[PlanFile]]:
		...

	@abstractmethod
	async def get_file(
		self, file_type: Union[PlanFileType, str], filename: str
	) -> StorageResult[Optional[PlanFile]]:
		...

	@abstractmethod
	async def save_file(self, file: PlanFile) -> StorageResult[None]:
		"""Insert or update a file keyed by (type, filename)."""

	@abstractmethod
	async def delete_file(self, file_type: Union[PlanFileType, str], filename: str) -> StorageResult[None]:
		...

	# Timeline

	@abstractmethod
	async def get_timeline_events(
		self,
		since: Optional[str] = None,
		type: Union[TimelineEventType, str, None] = None,
		limit: Optional[int] = None,
	) -> StorageResult[list[TimelineEvent]]:
		"""Events newest first, optionally filtered."""

	@abstractmethod
	async def add_timeline_event(self, event: TimelineEvent) -> StorageResult[None]:
		...

	# Evidence

	@abstractmethod
	async def get_evidence(self) -> StorageResult[list[EvidenceRecord]]:
		...

	@abstractmethod
	async def add_evidence(self, evidence: EvidenceRecord) -> StorageResult[None]:
		...

	# Feedback

	@abstractmethod
	async def get_feedback(self) -> StorageResult[list[FeedbackRecord]]:
		...

	@abstractmethod
	async def add_feedback(self, feedback: FeedbackRecord) -> StorageResult[None]:
		...

	# Checkpoints

	@abstractmethod
	async def get_checkpoints(self) -> StorageResult[list[Checkpoint]]:
		...

	@abstractmethod
	async def get_checkpoint(self, name: str) -> StorageResult[Optional[Checkpoint]]:
		...

	@abstractmethod
	async def create_checkpoint(self, checkpoint: Checkpoint) -> StorageResult[None]:
		"""Insert or replace a checkpoint keyed by name."""

	@abstractmethod
	async def restore_checkpoint(self, name: str) -> StorageResult[None]:
		"""Apply a checkpoint's snapshot back onto metadata, steps and files."""

	# Search

	@abstractmethod
	async def search(self, query: str) -> StorageResult[list[SearchResult]]:
		...

	async def create_snapshot(self) -> CheckpointSnapshot:
		"""
		Capture the current plan state for a checkpoint.

		Steps keep only their status and timestamps; files keep only
		type, filename and content.

		Raises:
			PlanNotFoundError: If metadata cannot be read
		"""
		metadata_result = await self.get_metadata()
		if not metadata_result.success or metadata_result.data is None:
			raise PlanNotFoundError(f"Failed to get metadata for snapshot: {metadata_result.error}")

		steps_result = await self.get_steps()
		files_result = await self.get_files()

		return CheckpointSnapshot(
			metadata=metadata_result.data,
			steps=[
				StepSnapshot(
					number=s.number,
					status=s.status,
					started_at=s.started_at,
					completed_at=s.completed_at,
				)
				for s in steps_result.data or []
			],
			files=[
				FileSnapshot(type=f.type, filename=f.filename, content=f.content)
				for f in files_result.data or []
			],
		)

	async def __aenter__(self) -> "StorageProvider":
		return self

	async def __aexit__(self, exc_type, exc, tb) -> None:
		await self.close()
