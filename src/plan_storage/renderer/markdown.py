"""
Markdown Renderer - projects a stored plan into markdown files.

Only read operations are used, so any provider can be exported. The
result is four filename-keyed collections: top-level files, step files,
evidence files and feedback files.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from ..models import (
	EvidenceRecord,
	FeedbackRecord,
	PlanMetadata,
	PlanStage,
	PlanStep,
	StepStatus,
)
from ..storage.provider import StorageProvider

logger = logging.getLogger(__name__)

STEP_DIR = "plan"
EVIDENCE_DIR = "evidence"
FEEDBACK_DIR = "feedback"

STEP_ICONS = {
	StepStatus.COMPLETED: "✅",
	StepStatus.IN_PROGRESS: "🔄",
	StepStatus.SKIPPED: "⏭️",
	StepStatus.PENDING: "⬜",
}

STAGE_ICONS = {
	PlanStage.COMPLETED: "✅",
	PlanStage.CANCELLED: "❌",
	PlanStage.EXECUTING: "🔄",
	PlanStage.BUILT: "📋",
	PlanStage.SHAPING: "🔧",
}


@dataclass
class RenderOptions:
	"""Options for markdown rendering."""
	include_evidence: bool = True
	include_feedback: bool = True
	include_source_info: bool = False


@dataclass
class RenderedPlan:
	"""A plan rendered as markdown, keyed by filename."""
	files: dict[str, str] = field(default_factory=dict)
	steps: dict[str, str] = field(default_factory=dict)
	evidence: dict[str, str] = field(default_factory=dict)
	feedback: dict[str, str] = field(default_factory=dict)


async def render_plan_to_markdown(
	provider: StorageProvider,
	options: Optional[RenderOptions] = None,
) -> RenderedPlan:
	"""
	Render a plan to markdown.

	SUMMARY.md and STATUS.md are generated from metadata and steps; stored
	files are copied by filename and may override them.
	"""
	options = options or RenderOptions()
	rendered = RenderedPlan()

	steps_result = await provider.get_steps()
	steps = steps_result.data if steps_result.success and steps_result.data else []

	metadata_result = await provider.get_metadata()
	if metadata_result.success and metadata_result.data:
		rendered.files["SUMMARY.md"] = render_summary(metadata_result.data, options)
		rendered.files["STATUS.md"] = render_status(metadata_result.data, steps)

	files_result = await provider.get_files()
	for file in files_result.data or []:
		rendered.files[file.filename] = file.content

	for step in steps:
		rendered.steps[step_filename(step)] = step.content

	if options.include_evidence:
		evidence_result = await provider.get_evidence()
		for evidence in evidence_result.data or []:
			rendered.evidence[f"{evidence.id}.md"] = render_evidence(evidence)

	if options.include_feedback:
		feedback_result = await provider.get_feedback()
		for feedback in feedback_result.data or []:
			rendered.feedback[f"{feedback.id}.md"] = render_feedback(feedback)

	return rendered


def render_summary(metadata: PlanMetadata, options: Optional[RenderOptions] = None) -> str:
	options = options or RenderOptions()
	lines = [
		f"# {metadata.name}",
		"",
		"## Overview",
		"",
		metadata.description or "_No description provided._",
		"",
		"## Metadata",
		"",
		f"- **ID**: {metadata.id}",
		f"- **Stage**: {metadata.stage.value}",
		f"- **Created**: {metadata.created_at}",
		f"- **Updated**: {metadata.updated_at}",
	]
	if options.include_source_info:
		lines.append(f"- **Schema Version**: {metadata.schema_version}")

	lines.extend(["", "---", "", f"*Generated: {datetime.now().isoformat()}*"])
	return "\n".join(lines)


def _date(timestamp: Optional[str]) -> str:
	return timestamp.split("T")[0] if timestamp else "-"


def render_status(metadata: PlanMetadata, steps: list[PlanStep]) -> str:
	"""STATUS.md: stage, progress counts and a per-step table."""
	completed = sum(1 for s in steps if s.status == StepStatus.COMPLETED)
	in_progress = sum(1 for s in steps if s.status == StepStatus.IN_PROGRESS)
	pending = sum(1 for s in steps if s.status == StepStatus.PENDING)
	total = len(steps)
	pct = round(completed / total * 100) if total else 0

	icon = stage_icon(metadata.stage, in_progress > 0)
	lines = [
		f"# {metadata.name} Status",
		"",
		"## Current State",
		"",
		"| Field | Value |",
		"|-------|-------|",
		f"| **Status** | {icon} {metadata.stage.value.upper()} |",
		f"| **Progress** | {pct}% ({completed}/{total} steps) |",
		f"| **In Progress** | {in_progress} |",
		f"| **Pending** | {pending} |",
		f"| **Last Updated** | {_date(metadata.updated_at)} |",
		"",
		"## Step Progress",
		"",
		"| Step | Name | Status | Started | Completed |",
		"|------|------|--------|---------|-----------|",
	]
	for step in steps:
		lines.append(
			f"| {step.number:02d} | {step.title} | {STEP_ICONS.get(step.status, '⬜')} "
			f"| {_date(step.started_at)} | {_date(step.completed_at)} |"
		)

	lines.extend(["", "---", "", f"*Last updated: {datetime.now().date().isoformat()}*"])
	return "\n".join(lines)


def stage_icon(stage: PlanStage, has_in_progress: bool = False) -> str:
	if stage in (PlanStage.COMPLETED, PlanStage.CANCELLED):
		return STAGE_ICONS[stage]
	if has_in_progress:
		return "🔄"
	return STAGE_ICONS.get(stage, "⬜")


def step_filename(step: PlanStep) -> str:
	"""NN-code.md, falling back to a slug of the title."""
	code = step.code or re.sub(r"[^a-z0-9]+", "-", step.title.lower())
	return f"{step.number:02d}-{code}.md"


def render_evidence(evidence: EvidenceRecord) -> str:
	lines = ["---", f"id: {evidence.id}", f"date: {evidence.created_at}"]
	if evidence.source:
		lines.append(f"source: {evidence.source}")
	if evidence.source_url:
		lines.append(f"url: {evidence.source_url}")
	if evidence.gathering_method:
		lines.append(f"gathering_method: {evidence.gathering_method}")
	lines.extend(["---", "", f"# {evidence.description}", ""])
	if evidence.content:
		lines.append(evidence.content)
	return "\n".join(lines)


def render_feedback(feedback: FeedbackRecord) -> str:
	lines = ["---", f"id: {feedback.id}", f"date: {feedback.created_at}"]
	if feedback.title:
		lines.append(f"title: {feedback.title}")
	if feedback.platform:
		lines.append(f"platform: {feedback.platform}")
	if feedback.participants:
		lines.append(f"participants: [{', '.join(feedback.participants)}]")
	lines.extend(["---", ""])
	if feedback.title:
		lines.extend([f"# {feedback.title}", ""])
	lines.append(feedback.content)
	return "\n".join(lines)


def write_rendered_plan(rendered: RenderedPlan, out_dir: Union[str, Path]) -> list[Path]:
	"""
	Write a rendered plan to disk.

	Top-level files go in out_dir; steps, evidence and feedback go in the
	plan/, evidence/ and feedback/ subdirectories.

	Returns:
		Paths written, in write order
	"""
	out_dir = Path(out_dir)
	written: list[Path] = []
	groups = (
		(out_dir, rendered.files),
		(out_dir / STEP_DIR, rendered.steps),
		(out_dir / EVIDENCE_DIR, rendered.evidence),
		(out_dir / FEEDBACK_DIR, rendered.feedback),
	)
	for directory, contents in groups:
		if not contents:
			continue
		for filename, content in contents.items():
			path = directory / filename
			path.parent.mkdir(parents=True, exist_ok=True)
			path.write_text(content, encoding="utf-8")
			written.append(path)

	logger.info(f"Wrote {len(written)} markdown file(s) to {out_dir}")
	return written
