"""
SQLite Storage Provider - single-file .plan storage.

Features:
- One plan per database file, seven linked tables
- Partial updates for metadata and steps
- Upserts for files and checkpoints
- Atomic checkpoint restore
- Case-insensitive substring search with saturating scores
"""

import json
import logging
import re
import sqlite3
import uuid
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

import aiosqlite

from ..config import SqliteConfig
from ..models import (
	Checkpoint,
	CheckpointSnapshot,
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
from .provider import PlanNotFoundError, SearchResult, StorageProvider
from .schema import SCHEMA_SQL

logger = logging.getLogger(__name__)

# Failures reported through StorageResult rather than raised.
# pydantic's ValidationError and json's JSONDecodeError are ValueErrors.
STORAGE_ERRORS = (sqlite3.Error, ValueError, TypeError)

SNIPPET_CONTEXT = 50
SCORE_SATURATION = 10


def _value(value: Any) -> Any:
	"""Unwrap enum members for binding."""
	return value.value if isinstance(value, Enum) else value


def calculate_score(content: str, query: str) -> float:
	"""Occurrence count of query in content, saturating at 1.0 after ten hits."""
	if not query:
		return 0.0
	count = content.lower().count(query.lower())
	return min(1.0, count / SCORE_SATURATION)


def extract_snippet(content: str, query: str) -> str:
	"""Window of context around the first match, with ellipses where truncated."""
	match = re.search(re.escape(query), content, re.IGNORECASE)
	if match is None:
		window = SNIPPET_CONTEXT * 2
		return content[:window] + ("..." if len(content) > window else "")

	start = max(0, match.start() - SNIPPET_CONTEXT)
	end = min(len(content), match.end() + SNIPPET_CONTEXT)
	snippet = content[start:end]
	if start > 0:
		snippet = "..." + snippet
	if end < len(content):
		snippet = snippet + "..."
	return snippet


class SqliteStorageProvider(StorageProvider):
	"""
	SQLite-backed provider for a single .plan file.

	Usage:
		async with SqliteStorageProvider("my-plan.plan") as provider:
			await provider.initialize(metadata)
			await provider.add_step(step)
			steps = (await provider.get_steps()).data
	"""

	format = StorageFormat.SQLITE

	# Allowlists of patchable columns (prevents SQL injection via column names)
	METADATA_UPDATE_COLUMNS = frozenset({"name", "description", "stage", "updated_at"})
	STEP_UPDATE_COLUMNS = frozenset({
		"code", "title", "description", "status", "started_at", "completed_at", "content",
	})

	def __init__(self, plan_path: Union[str, Path], config: Optional[SqliteConfig] = None):
		self.path = str(plan_path)
		self.config = config or SqliteConfig()
		self._db: Optional[aiosqlite.Connection] = None
		self._plan_id: Optional[int] = None

	async def open(self) -> "SqliteStorageProvider":
		"""Open (or create) the database file and apply pragmas."""
		if self._db is None:
			Path(self.path).parent.mkdir(parents=True, exist_ok=True)
			self._db = await aiosqlite.connect(self.path)
			self._db.row_factory = aiosqlite.Row
			for name, value in self._pragmas().items():
				await self._db.execute(f"PRAGMA {name} = {value}")
			logger.debug(f"Opened plan database: {self.path}")
		return self

	def _pragmas(self) -> dict[str, str]:
		pragmas = {}
		for name, value in self.config.pragmas.items():
			if isinstance(value, bool):
				value = "ON" if value else "OFF"
			pragmas[name] = str(value)
		if self.config.wal_mode:
			pragmas["journal_mode"] = "WAL"
		elif pragmas.get("journal_mode", "").upper() == "WAL":
			pragmas["journal_mode"] = "DELETE"
		return pragmas

	async def _connection(self) -> aiosqlite.Connection:
		if self._db is None:
			await self.open()
		return self._db

	async def _get_plan_id(self) -> int:
		"""
		Resolve and cache the plan's row id.

		Raises:
			PlanNotFoundError: If the store holds no plan
		"""
		if self._plan_id is not None:
			return self._plan_id

		db = await self._connection()
		try:
			async with db.execute("SELECT id FROM plans LIMIT 1") as cursor:
				row = await cursor.fetchone()
		except sqlite3.OperationalError:
			# Schema not created yet
			row = None

		if not row:
			raise PlanNotFoundError(f"No plan found in database: {self.path}")
		self._plan_id = row["id"]
		return self._plan_id

	async def _write(self, sql: str, params: Union[tuple, list]) -> None:
		"""Execute a single write statement and commit it."""
		db = await self._connection()
		try:
			await db.execute(sql, params)
			await db.commit()
		except sqlite3.Error:
			await db.rollback()
			raise

	async def _fetchall(self, sql: str, params: Union[tuple, list]) -> list[aiosqlite.Row]:
		db = await self._connection()
		async with db.execute(sql, params) as cursor:
			return list(await cursor.fetchall())

	async def _fetchone(self, sql: str, params: Union[tuple, list]) -> Optional[aiosqlite.Row]:
		db = await self._connection()
		async with db.execute(sql, params) as cursor:
			return await cursor.fetchone()

	def _failure(self, action: str, error: Exception) -> StorageResult:
		logger.warning(f"Failed to {action} in {self.path}: {error}")
		return StorageResult.fail(str(error) or f"Failed to {action}")

	# ==================== Core Operations ====================

	async def exists(self) -> bool:
		try:
			row = await self._fetchone("SELECT COUNT(*) AS count FROM plans", ())
			return row["count"] > 0
		except sqlite3.Error:
			return False

	async def initialize(self, metadata: PlanMetadata) -> StorageResult[None]:
		"""
		Create the schema (idempotent) and insert the plan row.

		Fails if the store already holds a plan.
		"""
		try:
			db = await self._connection()
			await db.executescript(SCHEMA_SQL)

			existing = await self._fetchone("SELECT code FROM plans LIMIT 1", ())
			if existing:
				return StorageResult.fail(
					f"Plan already exists in {self.path}: {existing['code']}"
				)

			cursor = await db.execute(
				"""
				INSERT INTO plans (code, name, description, stage, created_at, updated_at, schema_version)
				VALUES (?, ?, ?, ?, ?, ?, ?)
				""",
				(
					metadata.id,
					metadata.name,
					metadata.description,
					metadata.stage.value,
					metadata.created_at,
					metadata.updated_at,
					metadata.schema_version,
				),
			)
			self._plan_id = cursor.lastrowid
			await db.commit()
			logger.info(f"Initialized plan {metadata.id} in {self.path}")
			return StorageResult.ok()
		except STORAGE_ERRORS as e:
			return self._failure("initialize plan", e)

	async def close(self) -> None:
		"""Close the database connection."""
		if self._db is not None:
			await self._db.close()
			self._db = None
			self._plan_id = None

	async def __aenter__(self) -> "SqliteStorageProvider":
		return await self.open()

	# ==================== Metadata Operations ====================

	async def get_metadata(self) -> StorageResult[PlanMetadata]:
		try:
			row = await self._fetchone(
				"""
				SELECT code, name, description, stage, created_at, updated_at, schema_version
				FROM plans WHERE id = ?
				""",
				(await self._get_plan_id(),),
			)
			if not row:
				return StorageResult.fail("Plan not found")

			return StorageResult.ok(PlanMetadata(
				id=row["code"],
				name=row["name"],
				description=row["description"],
				stage=row["stage"],
				created_at=row["created_at"],
				updated_at=row["updated_at"],
				schema_version=row["schema_version"],
			))
		except STORAGE_ERRORS as e:
			return self._failure("get metadata", e)

	async def update_metadata(self, **updates) -> StorageResult[None]:
		"""
		Patch plan metadata.

		Only the supplied fields are written. updated_at is stamped with the
		current time unless supplied; no fields at all is a no-op.

		Raises:
			ValueError: For fields that cannot be updated
		"""
		invalid = set(updates) - self.METADATA_UPDATE_COLUMNS
		if invalid:
			raise ValueError(f"Invalid metadata fields for update: {sorted(invalid)}")
		if not updates:
			return StorageResult.ok()
		updates.setdefault("updated_at", now_iso())
		set_clause = ", ".join(f"{k} = ?" for k in updates)

		try:
			if "stage" in updates:
				updates["stage"] = PlanStage(updates["stage"])
			values = [_value(v) for v in updates.values()]
			values.append(await self._get_plan_id())
			await self._write(f"UPDATE plans SET {set_clause} WHERE id = ?", values)
			return StorageResult.ok()
		except STORAGE_ERRORS as e:
			return self._failure("update metadata", e)

	# ==================== Step Operations ====================

	@staticmethod
	def _row_to_step(row: aiosqlite.Row) -> PlanStep:
		return PlanStep(
			number=row["number"],
			code=row["code"],
			title=row["title"],
			description=row["description"],
			status=row["status"],
			started_at=row["started_at"],
			completed_at=row["completed_at"],
			content=row["content"],
		)

	async def get_steps(self) -> StorageResult[list[PlanStep]]:
		try:
			rows = await self._fetchall(
				"""
				SELECT number, code, title, description, status, started_at, completed_at, content
				FROM plan_steps WHERE plan_id = ? ORDER BY number
				""",
				(await self._get_plan_id(),),
			)
			return StorageResult.ok([self._row_to_step(row) for row in rows])
		except STORAGE_ERRORS as e:
			return self._failure("get steps", e)

	async def get_step(self, number: int) -> StorageResult[Optional[PlanStep]]:
		try:
			row = await self._fetchone(
				"""
				SELECT number, code, title, description, status, started_at, completed_at, content
				FROM plan_steps WHERE plan_id = ? AND number = ?
				""",
				(await self._get_plan_id(), number),
			)
			return StorageResult.ok(self._row_to_step(row) if row else None)
		except STORAGE_ERRORS as e:
			return self._failure("get step", e)

	async def add_step(self, step: PlanStep) -> StorageResult[None]:
		try:
			await self._write(
				"""
				INSERT INTO plan_steps (plan_id, number, code, title, description, status,
					started_at, completed_at, content)
				VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
				""",
				(
					await self._get_plan_id(),
					step.number,
					step.code,
					step.title,
					step.description,
					step.status.value,
					step.started_at,
					step.completed_at,
					step.content,
				),
			)
			return StorageResult.ok()
		except STORAGE_ERRORS as e:
			return self._failure("add step", e)

	async def update_step(self, number: int, **updates) -> StorageResult[None]:
		"""
		Patch a step by number.

		Only the supplied fields are written; no fields at all is a no-op.

		Raises:
			ValueError: For fields that cannot be updated
		"""
		invalid = set(updates) - self.STEP_UPDATE_COLUMNS
		if invalid:
			raise ValueError(f"Invalid step fields for update: {sorted(invalid)}")
		if not updates:
			return StorageResult.ok()
		set_clause = ", ".join(f"{k} = ?" for k in updates)

		try:
			if "status" in updates:
				updates["status"] = StepStatus(updates["status"])
			values = [_value(v) for v in updates.values()]
			values.extend([await self._get_plan_id(), number])
			await self._write(
				f"UPDATE plan_steps SET {set_clause} WHERE plan_id = ? AND number = ?",
				values,
			)
			return StorageResult.ok()
		except STORAGE_ERRORS as e:
			return self._failure("update step", e)

	async def delete_step(self, number: int) -> StorageResult[None]:
		try:
			await self._write(
				"DELETE FROM plan_steps WHERE plan_id = ? AND number = ?",
				(await self._get_plan_id(), number),
			)
			return StorageResult.ok()
		except STORAGE_ERRORS as e:
			return self._failure("delete step", e)

	# ==================== File Operations ====================

	@staticmethod
	def _row_to_file(row: aiosqlite.Row) -> PlanFile:
		return PlanFile(
			type=row["file_type"],
			filename=row["filename"],
			content=row["content"],
			created_at=row["created_at"],
			updated_at=row["updated_at"],
		)

	async def get_files(self) -> StorageResult[list[PlanFile]]:
		try:
			rows = await self._fetchall(
				"""
				SELECT file_type, filename, content, created_at, updated_at
				FROM plan_files WHERE plan_id = ? ORDER BY id
				""",
				(await self._get_plan_id(),),
			)
			return StorageResult.ok([self._row_to_file(row) for row in rows])
		except STORAGE_ERRORS as e:
			return self._failure("get files", e)

	async def get_file(
		self, file_type: Union[PlanFileType, str], filename: str
	) -> StorageResult[Optional[PlanFile]]:
		try:
			row = await self._fetchone(
				"""
				SELECT file_type, filename, content, created_at, updated_at
				FROM plan_files WHERE plan_id = ? AND file_type = ? AND filename = ?
				""",
				(await self._get_plan_id(), _value(file_type), filename),
			)
			return StorageResult.ok(self._row_to_file(row) if row else None)
		except STORAGE_ERRORS as e:
			return self._failure("get file", e)

	async def save_file(self, file: PlanFile) -> StorageResult[None]:
		"""Insert a file, or replace its content and updated_at on conflict."""
		try:
			await self._write(
				"""
				INSERT INTO plan_files (plan_id, file_type, filename, content, created_at, updated_at)
				VALUES (?, ?, ?, ?, ?, ?)
				ON CONFLICT(plan_id, file_type, filename) DO UPDATE SET
					content = excluded.content,
					updated_at = excluded.updated_at
				""",
				(
					await self._get_plan_id(),
					file.type.value,
					file.filename,
					file.content,
					file.created_at,
					file.updated_at,
				),
			)
			return StorageResult.ok()
		except STORAGE_ERRORS as e:
			return self._failure("save file", e)

	async def delete_file(self, file_type: Union[PlanFileType, str], filename: str) -> StorageResult[None]:
		try:
			await self._write(
				"DELETE FROM plan_files WHERE plan_id = ? AND file_type = ? AND filename = ?",
				(await self._get_plan_id(), _value(file_type), filename),
			)
			return StorageResult.ok()
		except STORAGE_ERRORS as e:
			return self._failure("delete file", e)

	# ==================== Timeline Operations ====================

	async def get_timeline_events(
		self,
		since: Optional[str] = None,
		type: Union[TimelineEventType, str, None] = None,
		limit: Optional[int] = None,
	) -> StorageResult[list[TimelineEvent]]:
		"""
		Get timeline events, newest first.

		Args:
			since: Only events at or after this ISO timestamp
			type: Only events of this type
			limit: Maximum number of events
		"""
		try:
			conditions = ["plan_id = ?"]
			params: list[Any] = [await self._get_plan_id()]

			if since:
				conditions.append("timestamp >= ?")
				params.append(since)
			if type:
				conditions.append("event_type = ?")
				params.append(_value(type))

			sql = (
				"SELECT id, timestamp, event_type, data FROM timeline_events "
				f"WHERE {' AND '.join(conditions)} ORDER BY timestamp DESC, rowid DESC"
			)
			if limit:
				sql += " LIMIT ?"
				params.append(limit)

			rows = await self._fetchall(sql, params)
			return StorageResult.ok([
				TimelineEvent(
					id=row["id"],
					timestamp=row["timestamp"],
					type=row["event_type"],
					data=json.loads(row["data"]),
				)
				for row in rows
			])
		except STORAGE_ERRORS as e:
			return self._failure("get timeline events", e)

	async def add_timeline_event(self, event: TimelineEvent) -> StorageResult[None]:
		try:
			await self._write(
				"""
				INSERT INTO timeline_events (id, plan_id, timestamp, event_type, data)
				VALUES (?, ?, ?, ?, ?)
				""",
				(
					event.id or str(uuid.uuid4()),
					await self._get_plan_id(),
					event.timestamp,
					event.type.value,
					json.dumps(event.data),
				),
			)
			return StorageResult.ok()
		except STORAGE_ERRORS as e:
			return self._failure("add timeline event", e)

	# ==================== Evidence Operations ====================

	async def get_evidence(self) -> StorageResult[list[EvidenceRecord]]:
		try:
			rows = await self._fetchall(
				"""
				SELECT id, description, source, source_url, gathering_method, content, file_path,
					relevance_score, original_query, summary, created_at
				FROM evidence_records WHERE plan_id = ? ORDER BY created_at, rowid
				""",
				(await self._get_plan_id(),),
			)
			return StorageResult.ok([EvidenceRecord(**dict(row)) for row in rows])
		except STORAGE_ERRORS as e:
			return self._failure("get evidence", e)

	async def add_evidence(self, evidence: EvidenceRecord) -> StorageResult[None]:
		try:
			await self._write(
				"""
				INSERT INTO evidence_records (id, plan_id, description, source, source_url,
					gathering_method, content, file_path, relevance_score, original_query,
					summary, created_at)
				VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
				""",
				(
					evidence.id or str(uuid.uuid4()),
					await self._get_plan_id(),
					evidence.description,
					evidence.source,
					evidence.source_url,
					evidence.gathering_method,
					evidence.content,
					evidence.file_path,
					evidence.relevance_score,
					evidence.original_query,
					evidence.summary,
					evidence.created_at,
				),
			)
			return StorageResult.ok()
		except STORAGE_ERRORS as e:
			return self._failure("add evidence", e)

	# ==================== Feedback Operations ====================

	async def get_feedback(self) -> StorageResult[list[FeedbackRecord]]:
		try:
			rows = await self._fetchall(
				"""
				SELECT id, title, platform, content, participants, created_at
				FROM feedback_records WHERE plan_id = ? ORDER BY created_at, rowid
				""",
				(await self._get_plan_id(),),
			)
			return StorageResult.ok([
				FeedbackRecord(
					id=row["id"],
					title=row["title"],
					platform=row["platform"],
					content=row["content"],
					participants=json.loads(row["participants"]) if row["participants"] else None,
					created_at=row["created_at"],
				)
				for row in rows
			])
		except STORAGE_ERRORS as e:
			return self._failure("get feedback", e)

	async def add_feedback(self, feedback: FeedbackRecord) -> StorageResult[None]:
		try:
			await self._write(
				"""
				INSERT INTO feedback_records (id, plan_id, title, platform, content, participants, created_at)
				VALUES (?, ?, ?, ?, ?, ?, ?)
				""",
				(
					feedback.id or str(uuid.uuid4()),
					await self._get_plan_id(),
					feedback.title,
					feedback.platform,
					feedback.content,
					json.dumps(feedback.participants) if feedback.participants is not None else None,
					feedback.created_at,
				),
			)
			return StorageResult.ok()
		except STORAGE_ERRORS as e:
			return self._failure("add feedback", e)

	# ==================== Checkpoint Operations ====================

	@staticmethod
	def _row_to_checkpoint(row: aiosqlite.Row) -> Checkpoint:
		return Checkpoint(
			name=row["name"],
			message=row["message"],
			created_at=row["created_at"],
			snapshot=CheckpointSnapshot.model_validate_json(row["snapshot"]),
		)

	async def get_checkpoints(self) -> StorageResult[list[Checkpoint]]:
		try:
			rows = await self._fetchall(
				"""
				SELECT name, message, created_at, snapshot
				FROM checkpoints WHERE plan_id = ? ORDER BY created_at DESC
				""",
				(await self._get_plan_id(),),
			)
			return StorageResult.ok([self._row_to_checkpoint(row) for row in rows])
		except STORAGE_ERRORS as e:
			return self._failure("get checkpoints", e)

	async def get_checkpoint(self, name: str) -> StorageResult[Optional[Checkpoint]]:
		try:
			row = await self._fetchone(
				"""
				SELECT name, message, created_at, snapshot
				FROM checkpoints WHERE plan_id = ? AND name = ?
				""",
				(await self._get_plan_id(), name),
			)
			return StorageResult.ok(self._row_to_checkpoint(row) if row else None)
		except STORAGE_ERRORS as e:
			return self._failure("get checkpoint", e)

	async def create_checkpoint(self, checkpoint: Checkpoint) -> StorageResult[None]:
		"""Insert a checkpoint, replacing any existing one with the same name."""
		try:
			await self._write(
				"""
				INSERT INTO checkpoints (plan_id, name, message, created_at, snapshot)
				VALUES (?, ?, ?, ?, ?)
				ON CONFLICT(plan_id, name) DO UPDATE SET
					message = excluded.message,
					created_at = excluded.created_at,
					snapshot = excluded.snapshot
				""",
				(
					await self._get_plan_id(),
					checkpoint.name,
					checkpoint.message,
					checkpoint.created_at,
					checkpoint.snapshot.model_dump_json(),
				),
			)
			return StorageResult.ok()
		except STORAGE_ERRORS as e:
			return self._failure("create checkpoint", e)

	async def restore_checkpoint(self, name: str) -> StorageResult[None]:
		"""
		Restore metadata, step statuses and file contents from a checkpoint.

		Runs as one transaction: either every change applies or none does.
		Steps added after the checkpoint are left in place.
		"""
		try:
			checkpoint_result = await self.get_checkpoint(name)
			if not checkpoint_result.success:
				return StorageResult.fail(checkpoint_result.error or f"Failed to read checkpoint: {name}")
			if checkpoint_result.data is None:
				return StorageResult.fail(f"Checkpoint not found: {name}")

			snapshot = checkpoint_result.data.snapshot
			plan_id = await self._get_plan_id()
			db = await self._connection()
			restored_at = now_iso()

			try:
				await db.execute(
					"UPDATE plans SET name = ?, description = ?, stage = ?, updated_at = ? WHERE id = ?",
					(
						snapshot.metadata.name,
						snapshot.metadata.description,
						snapshot.metadata.stage.value,
						restored_at,
						plan_id,
					),
				)

				for step in snapshot.steps:
					await db.execute(
						"""
						UPDATE plan_steps SET status = ?, started_at = ?, completed_at = ?
						WHERE plan_id = ? AND number = ?
						""",
						(step.status.value, step.started_at, step.completed_at, plan_id, step.number),
					)

				for file in snapshot.files:
					await db.execute(
						"""
						INSERT INTO plan_files (plan_id, file_type, filename, content, created_at, updated_at)
						VALUES (?, ?, ?, ?, ?, ?)
						ON CONFLICT(plan_id, file_type, filename) DO UPDATE SET
							content = excluded.content,
							updated_at = excluded.updated_at
						""",
						(plan_id, file.type.value, file.filename, file.content, restored_at, restored_at),
					)

				await db.commit()
			except Exception:
				await db.rollback()
				raise

			logger.info(f"Restored checkpoint {name} in {self.path}")
			return StorageResult.ok()
		except STORAGE_ERRORS as e:
			return self._failure("restore checkpoint", e)

	# ==================== Search Operations ====================

	async def search(self, query: str) -> StorageResult[list[SearchResult]]:
		"""
		Case-insensitive substring search over steps, files and evidence.

		Results from all three kinds are pooled and sorted by score,
		highest first; ties keep step, file, evidence order.
		"""
		if not query:
			return StorageResult.ok([])

		try:
			plan_id = await self._get_plan_id()
			needle = query.lower()
			results: list[SearchResult] = []

			def add(kind: str, item_id: str, text: str) -> None:
				if needle in text.lower():
					results.append(SearchResult(
						type=kind,
						id=item_id,
						snippet=extract_snippet(text, query),
						score=calculate_score(text, query),
					))

			for row in await self._fetchall(
				"SELECT number, title, content FROM plan_steps WHERE plan_id = ? ORDER BY number",
				(plan_id,),
			):
				add("step", str(row["number"]), f"{row['title']}\n{row['content']}")

			for row in await self._fetchall(
				"SELECT filename, content FROM plan_files WHERE plan_id = ? ORDER BY id",
				(plan_id,),
			):
				add("file", row["filename"], row["content"])

			for row in await self._fetchall(
				"SELECT id, description, content FROM evidence_records WHERE plan_id = ? ORDER BY rowid",
				(plan_id,),
			):
				text = row["description"]
				if row["content"]:
					text = f"{text}\n{row['content']}"
				add("evidence", row["id"], text)

			results.sort(key=lambda r: r.score, reverse=True)
			return StorageResult.ok(results)
		except STORAGE_ERRORS as e:
			return self._failure("search", e)
