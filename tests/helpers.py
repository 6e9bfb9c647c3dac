"""Shared test fixtures and helpers for plan-storage tests."""

import uuid
from typing import Optional

from plan_storage.config import DirectoryConfig
from plan_storage.models import (
	Checkpoint,
	EvidenceRecord,
	FeedbackRecord,
	PlanFile,
	PlanFileType,
	PlanMetadata,
	PlanStage,
	PlanStep,
	StepStatus,
	StorageFormat,
	StorageResult,
	TimelineEvent,
	TimelineEventType,
	now_iso,
)
from plan_storage.storage.provider import PlanNotFoundError, SearchResult, StorageProvider


def make_metadata(
	plan_id: str = "test-plan",
	name: str = "Test Plan",
	stage: PlanStage = PlanStage.IDEA,
) -> PlanMetadata:
	return PlanMetadata(
		id=plan_id,
		name=name,
		description="A plan used in tests",
		stage=stage,
		created_at="2026-01-01T10:00:00",
		updated_at="2026-01-01T10:00:00",
	)


def make_step(number: int, title: Optional[str] = None, **kwargs) -> PlanStep:
	title = title or f"Step {number}"
	return PlanStep(
		number=number,
		code=kwargs.pop("code", f"step-{number}"),
		title=title,
		content=kwargs.pop("content", f"# {title}\n\nDo the work for step {number}."),
		**kwargs,
	)


async def populate(provider: StorageProvider) -> None:
	"""Fill a fresh provider with a small but complete plan."""
	result = await provider.initialize(make_metadata())
	assert result.success, result.error

	await provider.add_step(make_step(1, "Draft outline", status=StepStatus.COMPLETED))
	await provider.add_step(make_step(2, "Write chapters", status=StepStatus.IN_PROGRESS))
	await provider.add_step(make_step(3, "Review"))

	await provider.save_file(PlanFile(type=PlanFileType.IDEA, filename="IDEA.md", content="# Idea\n\nA book."))
	await provider.save_file(PlanFile(type=PlanFileType.SUMMARY, filename="SUMMARY.md", content="# Summary"))

	await provider.add_timeline_event(TimelineEvent(
		id="evt-1",
		timestamp="2026-01-01T10:00:00",
		type=TimelineEventType.PLAN_CREATED,
		data={"code": "test-plan"},
	))
	await provider.add_timeline_event(TimelineEvent(
		id="evt-2",
		timestamp="2026-01-02T10:00:00",
		type=TimelineEventType.STEP_COMPLETED,
		data={"step": 1},
	))

	await provider.add_evidence(EvidenceRecord(
		id="ev-1",
		description="Market survey",
		source="survey.pdf",
		gathering_method="manual",
		content="Readers want shorter chapters.",
		relevance_score=0.8,
	))
	await provider.add_feedback(FeedbackRecord(
		id="fb-1",
		title="Editor notes",
		platform="email",
		content="Tighten chapter two.",
		participants=["alice", "bob"],
	))


class MemoryStorageProvider(StorageProvider):
	"""
	In-memory provider reporting the directory format.

	Stands in for the host application's directory provider so migration
	can be exercised in both directions.
	"""

	format = StorageFormat.DIRECTORY

	def __init__(self, path: str = "memory-plan", config: Optional[DirectoryConfig] = None):
		self.path = str(path)
		self.config = config or DirectoryConfig()
		self.metadata: Optional[PlanMetadata] = None
		self.steps: dict[int, PlanStep] = {}
		self.files: dict[tuple, PlanFile] = {}
		self.events: list[TimelineEvent] = []
		self.evidence: list[EvidenceRecord] = []
		self.feedback: list[FeedbackRecord] = []
		self.checkpoints: dict[str, Checkpoint] = {}
		self.closed = False

	def _require_plan(self) -> None:
		if self.metadata is None:
			raise PlanNotFoundError(f"No plan in {self.path}")

	async def exists(self) -> bool:
		return self.metadata is not None

	async def initialize(self, metadata: PlanMetadata) -> StorageResult[None]:
		if self.metadata is not None:
			return StorageResult.fail(f"Plan already exists in {self.path}")
		self.metadata = metadata.model_copy()
		return StorageResult.ok()

	async def close(self) -> None:
		self.closed = True

	async def get_metadata(self) -> StorageResult[PlanMetadata]:
		if self.metadata is None:
			return StorageResult.fail("Plan not found")
		return StorageResult.ok(self.metadata.model_copy())

	async def update_metadata(self, **updates) -> StorageResult[None]:
		self._require_plan()
		if updates:
			updates.setdefault("updated_at", now_iso())
			self.metadata = self.metadata.model_copy(update=updates)
		return StorageResult.ok()

	async def get_steps(self) -> StorageResult[list[PlanStep]]:
		self._require_plan()
		return StorageResult.ok([self.steps[n] for n in sorted(self.steps)])

	async def get_step(self, number: int) -> StorageResult[Optional[PlanStep]]:
		self._require_plan()
		return StorageResult.ok(self.steps.get(number))

	async def add_step(self, step: PlanStep) -> StorageResult[None]:
		self._require_plan()
		if step.number in self.steps:
			return StorageResult.fail(f"Step {step.number} already exists")
		self.steps[step.number] = step.model_copy()
		return StorageResult.ok()

	async def update_step(self, number: int, **updates) -> StorageResult[None]:
		self._require_plan()
		if updates and number in self.steps:
			self.steps[number] = self.steps[number].model_copy(update=updates)
		return StorageResult.ok()

	async def delete_step(self, number: int) -> StorageResult[None]:
		self._require_plan()
		self.steps.pop(number, None)
		return StorageResult.ok()

	async def get_files(self) -> StorageResult[list[PlanFile]]:
		self._require_plan()
		return StorageResult.ok(list(self.files.values()))

	async def get_file(self, file_type, filename: str) -> StorageResult[Optional[PlanFile]]:
		self._require_plan()
		return StorageResult.ok(self.files.get((PlanFileType(file_type), filename)))

	async def save_file(self, file: PlanFile) -> StorageResult[None]:
		self._require_plan()
		self.files[(file.type, file.filename)] = file.model_copy()
		return StorageResult.ok()

	async def delete_file(self, file_type, filename: str) -> StorageResult[None]:
		self._require_plan()
		self.files.pop((PlanFileType(file_type), filename), None)
		return StorageResult.ok()

	async def get_timeline_events(self, since=None, type=None, limit=None) -> StorageResult[list[TimelineEvent]]:
		self._require_plan()
		events = sorted(self.events, key=lambda e: e.timestamp, reverse=True)
		if since:
			events = [e for e in events if e.timestamp >= since]
		if type:
			events = [e for e in events if e.type == TimelineEventType(type)]
		if limit:
			events = events[:limit]
		return StorageResult.ok(events)

	async def add_timeline_event(self, event: TimelineEvent) -> StorageResult[None]:
		self._require_plan()
		self.events.append(event.model_copy(update={"id": event.id or str(uuid.uuid4())}))
		return StorageResult.ok()

	async def get_evidence(self) -> StorageResult[list[EvidenceRecord]]:
		self._require_plan()
		return StorageResult.ok(list(self.evidence))

	async def add_evidence(self, evidence: EvidenceRecord) -> StorageResult[None]:
		self._require_plan()
		self.evidence.append(evidence.model_copy(update={"id": evidence.id or str(uuid.uuid4())}))
		return StorageResult.ok()

	async def get_feedback(self) -> StorageResult[list[FeedbackRecord]]:
		self._require_plan()
		return StorageResult.ok(list(self.feedback))

	async def add_feedback(self, feedback: FeedbackRecord) -> StorageResult[None]:
		self._require_plan()
		self.feedback.append(feedback.model_copy(update={"id": feedback.id or str(uuid.uuid4())}))
		return StorageResult.ok()

	async def get_checkpoints(self) -> StorageResult[list[Checkpoint]]:
		self._require_plan()
		return StorageResult.ok(list(self.checkpoints.values()))

	async def get_checkpoint(self, name: str) -> StorageResult[Optional[Checkpoint]]:
		self._require_plan()
		return StorageResult.ok(self.checkpoints.get(name))

	async def create_checkpoint(self, checkpoint: Checkpoint) -> StorageResult[None]:
		self._require_plan()
		self.checkpoints[checkpoint.name] = checkpoint.model_copy()
		return StorageResult.ok()

	async def restore_checkpoint(self, name: str) -> StorageResult[None]:
		self._require_plan()
		checkpoint = self.checkpoints.get(name)
		if checkpoint is None:
			return StorageResult.fail(f"Checkpoint not found: {name}")
		self.metadata = checkpoint.snapshot.metadata.model_copy()
		for s in checkpoint.snapshot.steps:
			if s.number in self.steps:
				self.steps[s.number] = self.steps[s.number].model_copy(update={
					"status": s.status,
					"started_at": s.started_at,
					"completed_at": s.completed_at,
				})
		for f in checkpoint.snapshot.files:
			self.files[(f.type, f.filename)] = PlanFile(type=f.type, filename=f.filename, content=f.content)
		return StorageResult.ok()

	async def search(self, query: str) -> StorageResult[list[SearchResult]]:
		self._require_plan()
		needle = query.lower()
		results = [
			SearchResult(type="step", id=str(s.number), snippet=s.title, score=1.0)
			for s in self.steps.values()
			if needle in f"{s.title}\n{s.content}".lower()
		]
		return StorageResult.ok(results)
