"""phasegate rollback, finalize and reset commands."""

from typing import Optional

import click

from phasegate.cli.output import emit, get_orchestrator, render_finalize


@click.command()
@click.argument(
    "phase",
    required=False,
    type=click.Choice(["design", "validate-design", "build", "test", "validate"]),
)
@click.pass_context
def rollback_command(ctx: click.Context, phase: Optional[str]) -> None:
    """Hard-reset to the commit recorded at a checkpoint.

    Without PHASE the latest of build, then design, is used. Uncommitted
    work is stashed first.
    """
    emit(ctx, get_orchestrator(ctx).rollback(phase))


@click.command()
@click.option(
    "--mode",
    "-m",
    type=click.Choice(["pr", "push", "manual"]),
    help="Open a PR, only push, or only print next steps",
)
@click.pass_context
def finalize_command(ctx: click.Context, mode: Optional[str]) -> None:
    """Publish the workflow branch for integration."""
    emit(ctx, get_orchestrator(ctx).finalize(mode), render_finalize)


@click.command()
@click.pass_context
def reset_command(ctx: click.Context) -> None:
    """Delete the session snapshot."""
    emit(ctx, get_orchestrator(ctx).reset())
