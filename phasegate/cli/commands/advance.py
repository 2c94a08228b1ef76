"""phasegate advance command."""

import click

from phasegate.cli.output import emit, get_orchestrator, render_advance


@click.command()
@click.pass_context
def advance_command(ctx: click.Context) -> None:
    """Report the current phase as finished.

    After design and build this commits the phase's changes and stops at a
    checkpoint until it is approved or rejected.
    """
    emit(ctx, get_orchestrator(ctx).advance(), render_advance)
