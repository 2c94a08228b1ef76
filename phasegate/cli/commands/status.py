"""phasegate status, progress and prompt commands."""

from typing import Any, Dict

import click
from rich.progress import BarColumn, Progress, TextColumn

from phasegate.cli.output import console, emit, get_orchestrator, render_session


@click.command()
@click.pass_context
def status_command(ctx: click.Context) -> None:
    """Show the current orchestration session.

    \b
    Examples:
        phasegate status            # JSON for hooks
        phasegate --no-json status  # Human readable panel
    """
    emit(ctx, get_orchestrator(ctx).status(), render_session)


def _render_progress(data: Dict[str, Any]) -> None:
    with Progress(
        TextColumn("[bold]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total} phases"),
        console=console,
        transient=False,
    ) as progress:
        progress.add_task(
            f"{data['current_domain']}:{data['current_phase']}",
            total=data["total_phases"],
            completed=data["completed_count"],
        )


@click.command()
@click.pass_context
def progress_command(ctx: click.Context) -> None:
    """Show how many phases are complete."""
    emit(ctx, get_orchestrator(ctx).progress(), _render_progress)


def _render_prompt(data: Dict[str, Any]) -> None:
    if data.get("checkpoint_pending"):
        console.print("[yellow]Checkpoint pending; approve or reject first[/yellow]")
    console.print(data["prompt"])
    for handoff in data.get("handoffs", []):
        console.print(f"  ← @{handoff['from_agent']}: {handoff['reason']}")


@click.command()
@click.pass_context
def prompt_command(ctx: click.Context) -> None:
    """Print the invocation for the current worker."""
    emit(ctx, get_orchestrator(ctx).prompt(), _render_prompt)
