"""phasegate handoff commands."""

import json
from typing import Any, Dict, Tuple

import click

from phasegate.cli.output import console, emit, get_orchestrator, render_handoffs
from phasegate.core.exceptions import ValidationError
from phasegate.orchestrator import OperationResult


@click.group(invoke_without_command=True)
@click.pass_context
def handoff_group(ctx: click.Context) -> None:
    """Manage cross-domain handoff requests."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@handoff_group.command("register")
@click.argument("data", nargs=-1, required=True)
@click.pass_context
def register_command(ctx: click.Context, data: Tuple[str, ...]) -> None:
    """Register a handoff from a JSON object.

    \b
    Example:
        phasegate handoff register '{"to": "logging-standards",
            "reason": "new catch blocks need logging", "files": ["src/api.py"]}'
    """
    raw = " ".join(data)
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        emit(ctx, OperationResult.failure(ValidationError(f"Invalid JSON syntax: {e}")))
        return
    emit(ctx, get_orchestrator(ctx).handoff_register(payload))


@handoff_group.command("next")
@click.pass_context
def next_command(ctx: click.Context) -> None:
    """Show the first pending handoff."""
    emit(ctx, get_orchestrator(ctx).handoff_next())


@handoff_group.command("start")
@click.argument("handoff_id")
@click.pass_context
def start_command(ctx: click.Context, handoff_id: str) -> None:
    """Mark a pending handoff as in progress."""
    emit(ctx, get_orchestrator(ctx).handoff_start(handoff_id))


@handoff_group.command("complete")
@click.argument("handoff_id")
@click.argument("summary", nargs=-1)
@click.pass_context
def complete_command(ctx: click.Context, handoff_id: str, summary: Tuple[str, ...]) -> None:
    """Mark a handoff as complete."""
    emit(ctx, get_orchestrator(ctx).handoff_complete(handoff_id, " ".join(summary) or None))


@handoff_group.command("fail")
@click.argument("handoff_id")
@click.argument("reason", nargs=-1)
@click.pass_context
def fail_command(ctx: click.Context, handoff_id: str, reason: Tuple[str, ...]) -> None:
    """Mark a handoff as failed."""
    emit(ctx, get_orchestrator(ctx).handoff_fail(handoff_id, " ".join(reason) or None))


@handoff_group.command("status")
@click.pass_context
def status_command(ctx: click.Context) -> None:
    """List the handoff queue."""
    emit(ctx, get_orchestrator(ctx).handoff_status(), render_handoffs)


def _render_suggestions(data: Dict[str, Any]) -> None:
    if not data["suggestions"]:
        console.print(f"[yellow]No typical handoffs from {data['agent']}[/yellow]")
        return
    console.print(f"[bold]{data['agent']}[/bold] usually hands off to:")
    for worker in data["suggestions"]:
        console.print(f"  → @{worker}")


@handoff_group.command("suggest")
@click.argument("worker")
@click.pass_context
def suggest_command(ctx: click.Context, worker: str) -> None:
    """Show workers that usually follow WORKER."""
    emit(ctx, get_orchestrator(ctx).handoff_suggest(worker), _render_suggestions)


@handoff_group.command("clear")
@click.pass_context
def clear_command(ctx: click.Context) -> None:
    """Remove every handoff from the queue."""
    emit(ctx, get_orchestrator(ctx).handoff_clear())


@handoff_group.command("prune")
@click.pass_context
def prune_command(ctx: click.Context) -> None:
    """Remove completed handoffs."""
    emit(ctx, get_orchestrator(ctx).handoff_prune())
