"""Output helpers shared by the CLI commands."""

import json
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from phasegate.orchestrator import Orchestrator, OperationResult

console = Console()

Renderer = Callable[[Dict[str, Any]], None]


def get_orchestrator(ctx: click.Context) -> Orchestrator:
    """Build the orchestrator once per invocation."""
    obj = ctx.ensure_object(dict)
    if obj.get("orchestrator") is None:
        project_dir: Optional[Path] = obj.get("project_dir")
        obj["orchestrator"] = Orchestrator(project_root=project_dir)
    return obj["orchestrator"]


def emit(ctx: click.Context, result: OperationResult, render: Optional[Renderer] = None) -> None:
    """Print a result as JSON or rich text and exit 1 on failure."""
    if ctx.ensure_object(dict).get("json", True):
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
    elif not result.success:
        console.print(f"[red]Error:[/red] {result.error}")
        if result.hint:
            console.print(f"[dim]Hint: {result.hint}[/dim]")
    elif render is not None:
        render(result.data)
    else:
        render_mapping(result.data)

    if not result.success:
        ctx.exit(1)


def render_mapping(data: Dict[str, Any]) -> None:
    if "message" in data:
        console.print(f"[green]✓[/green] {data['message']}")
        return
    table = Table(show_header=False, box=None)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in data.items():
        if isinstance(value, (dict, list)):
            value = json.dumps(value, default=str)
        table.add_row(key.replace("_", " ").title(), str(value))
    console.print(table)


def render_session(data: Dict[str, Any]) -> None:
    """Render a session summary panel."""
    if not data.get("initialized", True):
        console.print(f"[yellow]{data.get('message', 'Orchestrator not initialized')}[/yellow]")
        return

    lines = [
        f"[bold]Domain:[/bold] {data.get('current_domain')}",
        f"[bold]Phase:[/bold] {data.get('current_phase')}",
        f"[bold]Checkpoint:[/bold] {data.get('checkpoint_status')}",
    ]
    if data.get("domains"):
        lines.append(f"[bold]Domains:[/bold] {', '.join(data['domains'])}")
    progress = data.get("progress")
    if progress:
        lines.append(
            f"[bold]Progress:[/bold] {progress['completed_count']}/"
            f"{progress['total_phases']} ({progress['percentage']}%)"
        )
    vcs = data.get("vcs")
    if vcs:
        branch = vcs.get("workflow_branch") or "-"
        lines.append(f"[bold]Git:[/bold] {vcs.get('mode')} ({branch})")
    if data.get("complete"):
        lines.append("[green]All domains complete[/green]")
    elif data.get("prompt"):
        lines.append(f"[bold]Next:[/bold] {data['prompt']}")

    console.print(Panel("\n".join(lines), title="Orchestration", border_style="blue"))


def render_advance(data: Dict[str, Any]) -> None:
    if data.get("needs_checkpoint"):
        console.print(Markdown(data.get("approval_prompt", "")))
        return
    if data.get("complete"):
        console.print("[green]✓ All domains and phases complete[/green]")
        console.print("Run 'phasegate finalize' to publish the workflow branch")
        return
    if data.get("new_domain"):
        console.print(f"[green]✓[/green] Moving to domain [bold]{data['new_domain']}[/bold]")
    console.print(f"[bold]Next:[/bold] {data.get('prompt')}")


def render_checkpoint(data: Dict[str, Any]) -> None:
    if data.get("rejected"):
        console.print("[yellow]Checkpoint rejected[/yellow]")
        if data.get("feedback"):
            console.print(f"Feedback: {data['feedback']}")
        if data.get("rollback_available"):
            console.print("Run 'phasegate rollback' to discard the phase's changes")
        return
    if data.get("approved"):
        console.print("[green]✓ Checkpoint approved[/green]")
        render_advance(data)
        return
    render_mapping(data)


def render_handoffs(data: Dict[str, Any]) -> None:
    table = Table(title="Handoffs")
    table.add_column("ID", style="cyan")
    table.add_column("From")
    table.add_column("To", style="bold")
    table.add_column("Status")
    table.add_column("Reason")

    status_colors = {
        "pending": "yellow",
        "in_progress": "blue",
        "complete": "green",
        "failed": "red",
    }
    for handoff in data.get("queue", []):
        color = status_colors.get(handoff["status"], "white")
        table.add_row(
            handoff["id"],
            handoff["from_agent"],
            handoff["to_agent"],
            f"[{color}]{handoff['status']}[/{color}]",
            handoff["reason"],
        )

    console.print(table)
    console.print(
        f"Pending: {data.get('pending', 0)}  In progress: {data.get('in_progress', 0)}  "
        f"Complete: {data.get('complete', 0)}  Failed: {data.get('failed', 0)}"
    )


def render_finalize(data: Dict[str, Any]) -> None:
    if data.get("branch"):
        console.print(f"[bold]Branch:[/bold] {data['branch']}")
    if data.get("pushed"):
        console.print("[green]✓ Branch pushed[/green]")
    if data.get("pr_url"):
        console.print(f"[green]✓ Pull request:[/green] {data['pr_url']}")
    if data.get("pr_error"):
        console.print(f"[yellow]Pull request not created:[/yellow] {data['pr_error']}")
    if data.get("manual_steps"):
        console.print("[bold]Next steps:[/bold]")
        for i, step in enumerate(data["manual_steps"], start=1):
            console.print(f"  {i}. {step}")
