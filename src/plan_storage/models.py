"""
Plan Models - Pydantic schemas for plan storage.

Defines the entities persisted by every storage provider: metadata,
steps, files, timeline events, evidence, feedback and checkpoints,
plus the result envelope returned by provider operations.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")

CURRENT_SCHEMA_VERSION = 1


def now_iso() -> str:
	"""Current local time as an ISO-8601 string."""
	return datetime.now().isoformat()


class StorageFormat(str, Enum):
	"""On-disk format of a plan."""
	DIRECTORY = "directory"
	SQLITE = "sqlite"


class PlanStage(str, Enum):
	"""Lifecycle stage of a plan."""
	IDEA = "idea"
	SHAPING = "shaping"
	BUILT = "built"
	EXECUTING = "executing"
	COMPLETED = "completed"
	CANCELLED = "cancelled"


class StepStatus(str, Enum):
	"""Status of a step within a plan."""
	PENDING = "pending"
	IN_PROGRESS = "in_progress"
	COMPLETED = "completed"
	SKIPPED = "skipped"


class PlanFileType(str, Enum):
	"""Known kinds of plan files."""
	IDEA = "idea"
	SHAPING = "shaping"
	SUMMARY = "summary"
	EXECUTION_PLAN = "execution_plan"
	STATUS = "status"
	PROVENANCE = "provenance"
	LIFECYCLE = "lifecycle"
	EVIDENCE = "evidence"
	FEEDBACK = "feedback"
	PROMPT = "prompt"
	REFLECTION = "reflection"
	OTHER = "other"


class TimelineEventType(str, Enum):
	"""Kinds of timeline events."""
	PLAN_CREATED = "plan_created"
	STAGE_TRANSITION = "stage_transition"
	STEP_STARTED = "step_started"
	STEP_COMPLETED = "step_completed"
	NOTE_ADDED = "note_added"
	CONSTRAINT_ADDED = "constraint_added"
	QUESTION_ADDED = "question_added"
	EVIDENCE_ADDED = "evidence_added"
	APPROACH_ADDED = "approach_added"
	APPROACH_SELECTED = "approach_selected"
	FEEDBACK_ADDED = "feedback_added"
	CHECKPOINT_CREATED = "checkpoint_created"
	NARRATIVE_ADDED = "narrative_added"
	REFLECTION_ADDED = "reflection_added"


class PlanMetadata(BaseModel):
	"""Top-level plan metadata. One per plan."""
	id: str = Field(description="Unique plan code (slug)")
	name: str = Field(description="Human-readable plan name")
	description: Optional[str] = Field(default=None)
	stage: PlanStage = Field(default=PlanStage.IDEA)
	created_at: str = Field(default_factory=now_iso)
	updated_at: str = Field(default_factory=now_iso)
	schema_version: int = Field(default=CURRENT_SCHEMA_VERSION)


class PlanStep(BaseModel):
	"""An ordered unit of work."""
	number: int = Field(ge=1, description="1-based step number, unique within a plan")
	code: str = Field(description="Step slug")
	title: str
	description: Optional[str] = Field(default=None, description="Step objective")
	status: StepStatus = Field(default=StepStatus.PENDING)
	started_at: Optional[str] = Field(default=None)
	completed_at: Optional[str] = Field(default=None)
	content: str = Field(default="", description="Full markdown content of the step")


class PlanFile(BaseModel):
	"""A named plan artifact, keyed by (type, filename)."""
	type: PlanFileType
	filename: str
	content: str
	created_at: str = Field(default_factory=now_iso)
	updated_at: str = Field(default_factory=now_iso)


class TimelineEvent(BaseModel):
	"""Append-only history record."""
	id: str = Field(default="", description="Event id; generated on insert when empty")
	timestamp: str = Field(default_factory=now_iso)
	type: TimelineEventType
	data: dict[str, Any] = Field(default_factory=dict)


class EvidenceRecord(BaseModel):
	"""A captured piece of evidence."""
	id: str = Field(default="")
	description: str
	source: Optional[str] = Field(default=None)
	source_url: Optional[str] = Field(default=None)
	gathering_method: Optional[Literal["manual", "model-assisted"]] = Field(default=None)
	content: Optional[str] = Field(default=None, description="Inline evidence content")
	file_path: Optional[str] = Field(default=None, description="Path for file-based evidence")
	relevance_score: Optional[float] = Field(default=None, ge=0, le=1)
	original_query: Optional[str] = Field(default=None)
	summary: Optional[str] = Field(default=None)
	created_at: str = Field(default_factory=now_iso)


class FeedbackRecord(BaseModel):
	"""Captured human or model feedback."""
	id: str = Field(default="")
	title: Optional[str] = Field(default=None)
	platform: Optional[str] = Field(default=None)
	content: str
	participants: Optional[list[str]] = Field(default=None)
	created_at: str = Field(default_factory=now_iso)


class StepSnapshot(BaseModel):
	"""Step status as captured by a checkpoint."""
	number: int
	status: StepStatus
	started_at: Optional[str] = Field(default=None)
	completed_at: Optional[str] = Field(default=None)


class FileSnapshot(BaseModel):
	"""File content as captured by a checkpoint."""
	type: PlanFileType
	filename: str
	content: str


class CheckpointSnapshot(BaseModel):
	"""Subset of plan state restorable from a checkpoint."""
	metadata: PlanMetadata
	steps: list[StepSnapshot] = Field(default_factory=list)
	files: list[FileSnapshot] = Field(default_factory=list)


class Checkpoint(BaseModel):
	"""A named, restorable snapshot. Names are unique per plan."""
	name: str
	message: str = Field(default="")
	created_at: str = Field(default_factory=now_iso)
	snapshot: CheckpointSnapshot


@dataclass
class StorageResult(Generic[T]):
	"""
	Outcome of a provider operation.

	A successful point lookup that finds nothing has success=True and
	data=None; a failed operation has success=False and an error message.
	"""
	success: bool
	data: Optional[T] = None
	error: Optional[str] = None

	@classmethod
	def ok(cls, data: Optional[T] = None) -> "StorageResult[T]":
		return cls(success=True, data=data)

	@classmethod
	def fail(cls, error: str) -> "StorageResult[T]":
		return cls(success=False, error=error)
