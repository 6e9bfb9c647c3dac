"""Markdown export of stored plans."""

from .markdown import RenderedPlan, RenderOptions, render_plan_to_markdown, write_rendered_plan

__all__ = ["RenderOptions", "RenderedPlan", "render_plan_to_markdown", "write_rendered_plan"]
