"""Rich views for plans, search hits, migrations and validation results."""

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from .migration.models import MigrationResult, ValidationResult
from .models import Checkpoint, PlanFile, PlanMetadata, PlanStep, StepStatus
from .storage.provider import SearchResult

STATUS_ICONS = {
	StepStatus.PENDING: "[dim][ ][/dim]",
	StepStatus.IN_PROGRESS: "[yellow][~][/yellow]",
	StepStatus.COMPLETED: "[green][x][/green]",
	StepStatus.SKIPPED: "[dim][-][/dim]",
}


def render_plan_summary(
	metadata: PlanMetadata,
	steps: list[PlanStep],
	files: list[PlanFile],
	checkpoints: list[Checkpoint],
	location: str,
	console: Optional[Console] = None,
) -> None:
	"""Render a summary panel and a step tree for a plan."""
	console = console or Console()

	completed = sum(1 for s in steps if s.status == StepStatus.COMPLETED)
	pct = completed / len(steps) * 100 if steps else 0.0

	lines = []
	lines.append(f"[bold]Name:[/bold] {metadata.name}")
	if metadata.description:
		lines.append(f"[bold]Description:[/bold] {metadata.description}")
	lines.append(f"[bold]Stage:[/bold] {metadata.stage.value}")
	lines.append(f"[bold]Location:[/bold] {location}")
	lines.append(f"[bold]Schema:[/bold] v{metadata.schema_version}")
	lines.append("")
	lines.append(f"[bold]Progress:[/bold] {completed}/{len(steps)} steps ({pct:.0f}%)")
	lines.append(f"[bold]Files:[/bold] {len(files)}")

	if checkpoints:
		lines.append("")
		lines.append(f"[bold]Checkpoints:[/bold] {len(checkpoints)}")
		for c in checkpoints[:3]:
			lines.append(f"  - {c.name} [dim]{c.created_at}[/dim]")

	console.print(Panel("\n".join(lines), title=f"Plan: {metadata.id}", border_style="cyan"))

	if steps:
		tree = Tree("[bold]Steps[/bold]")
		for step in steps:
			icon = STATUS_ICONS.get(step.status, "[ ]")
			tree.add(f"{icon} {step.number:02d} {step.title}")
		console.print(tree)


def render_search_results(query: str, results: list[SearchResult], console: Optional[Console] = None) -> None:
	console = console or Console()

	if not results:
		console.print(f"[dim]No matches for '{query}'.[/dim]")
		return

	table = Table(title=f"Matches for '{query}'")
	table.add_column("Type", style="cyan")
	table.add_column("ID")
	table.add_column("Score", justify="right")
	table.add_column("Snippet", overflow="fold")

	for r in results:
		table.add_row(r.type, r.id, f"{r.score:.1f}", r.snippet.replace("\n", " "))

	console.print(table)


def render_migration_result(result: MigrationResult, console: Optional[Console] = None) -> None:
	"""Render the outcome of a migration."""
	console = console or Console()

	header = (
		f"{result.source_path} [dim]({result.source_format.value})[/dim] -> "
		f"{result.target_path} [dim]({result.target_format.value})[/dim]"
	)
	if result.success:
		console.print(f"[green]Migrated[/green] {header}")
	else:
		console.print(f"[red]Migration failed[/red] {header}")
		console.print(f"  [red]{result.error}[/red]")

	stats = result.stats
	table = Table(show_header=False, box=None)
	table.add_column("Collection")
	table.add_column("Count", justify="right")
	table.add_row("Steps", str(stats.steps_converted))
	table.add_row("Files", str(stats.files_converted))
	table.add_row("Timeline events", str(stats.timeline_events_converted))
	table.add_row("Evidence", str(stats.evidence_converted))
	table.add_row("Feedback", str(stats.feedback_converted))
	table.add_row("Checkpoints", str(stats.checkpoints_converted))
	console.print(table)

	for warning in result.warnings:
		console.print(f"  [yellow]warning:[/yellow] {warning}")
	console.print(f"[dim]{result.duration_seconds:.2f}s[/dim]")


def render_validation_result(result: ValidationResult, console: Optional[Console] = None) -> None:
	"""Render validation errors as a table, followed by warnings."""
	console = console or Console()

	stats = result.stats
	console.print(
		f"Compared {stats.steps_compared} steps, {stats.files_compared} files, "
		f"{stats.timeline_events_compared} events, {stats.evidence_compared} evidence, "
		f"{stats.feedback_compared} feedback"
	)

	if result.valid:
		console.print("[green]Valid[/green]")
	else:
		table = Table(title=f"{len(result.errors)} error(s)")
		table.add_column("Type", style="red")
		table.add_column("Path")
		table.add_column("Message", overflow="fold")
		for e in result.errors:
			table.add_row(e.type.value, e.path, e.message)
		console.print(table)

	for warning in result.warnings:
		console.print(f"  [yellow]warning:[/yellow] {warning}")
