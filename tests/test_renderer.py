"""Tests for markdown export."""

from pathlib import Path

import pytest

from plan_storage.models import PlanStage, PlanStep, StepStatus
from plan_storage.renderer import RenderOptions, render_plan_to_markdown, write_rendered_plan
from plan_storage.renderer.markdown import render_status, stage_icon, step_filename

from .helpers import MemoryStorageProvider, make_metadata, populate


@pytest.mark.asyncio
async def test_render_collections(populated):
	rendered = await render_plan_to_markdown(populated)

	assert set(rendered.steps) == {"01-step-1.md", "02-step-2.md", "03-step-3.md"}
	assert "IDEA.md" in rendered.files
	assert "STATUS.md" in rendered.files
	# Stored files override generated ones
	assert rendered.files["SUMMARY.md"] == "# Summary"
	assert set(rendered.evidence) == {"ev-1.md"}
	assert set(rendered.feedback) == {"fb-1.md"}


@pytest.mark.asyncio
async def test_generated_summary_and_status():
	provider = MemoryStorageProvider()
	await provider.initialize(make_metadata())
	await provider.add_step(PlanStep(number=1, code="a", title="First", status=StepStatus.COMPLETED,
		completed_at="2026-02-03T04:05:06"))
	await provider.add_step(PlanStep(number=2, code="b", title="Second"))

	rendered = await render_plan_to_markdown(provider, RenderOptions(include_source_info=True))

	summary = rendered.files["SUMMARY.md"]
	assert summary.startswith("# Test Plan")
	assert "- **ID**: test-plan" in summary
	assert "- **Schema Version**: 1" in summary

	status = rendered.files["STATUS.md"]
	assert "| **Progress** | 50% (1/2 steps) |" in status
	assert "| **Pending** | 1 |" in status
	assert "| 01 | First | ✅ | - | 2026-02-03 |" in status


@pytest.mark.asyncio
async def test_evidence_and_feedback_front_matter(memory_plan):
	rendered = await render_plan_to_markdown(memory_plan)

	evidence = rendered.evidence["ev-1.md"]
	assert evidence.startswith("---\nid: ev-1\n")
	assert "source: survey.pdf" in evidence
	assert "gathering_method: manual" in evidence
	assert "# Market survey" in evidence

	feedback = rendered.feedback["fb-1.md"]
	assert "participants: [alice, bob]" in feedback
	assert feedback.endswith("Tighten chapter two.")


@pytest.mark.asyncio
async def test_options_skip_evidence_and_feedback(memory_plan):
	rendered = await render_plan_to_markdown(
		memory_plan, RenderOptions(include_evidence=False, include_feedback=False)
	)
	assert rendered.evidence == {}
	assert rendered.feedback == {}


def test_step_filename_falls_back_to_title_slug():
	assert step_filename(PlanStep(number=7, code="", title="Write The Docs!")) == "07-write-the-docs-.md"
	assert step_filename(PlanStep(number=12, code="ship", title="Ship")) == "12-ship.md"


def test_stage_icons():
	assert stage_icon(PlanStage.COMPLETED, True) == "✅"
	assert stage_icon(PlanStage.IDEA, True) == "🔄"
	assert stage_icon(PlanStage.IDEA) == "⬜"
	assert stage_icon(PlanStage.BUILT) == "📋"


def test_status_with_no_steps():
	status = render_status(make_metadata(), [])
	assert "| **Progress** | 0% (0/0 steps) |" in status


@pytest.mark.asyncio
async def test_write_rendered_plan(memory_plan, tmp_path: Path):
	rendered = await render_plan_to_markdown(memory_plan)
	written = write_rendered_plan(rendered, tmp_path / "export")

	out = tmp_path / "export"
	assert (out / "SUMMARY.md").read_text() == "# Summary"
	assert (out / "plan" / "01-step-1.md").exists()
	assert (out / "evidence" / "ev-1.md").exists()
	assert (out / "feedback" / "fb-1.md").exists()
	assert len(written) == len(rendered.files) + 3 + 1 + 1
