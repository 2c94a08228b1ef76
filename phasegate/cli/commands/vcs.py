"""phasegate vcs commands."""

import click

from phasegate.cli.output import emit, get_orchestrator


@click.group(invoke_without_command=True)
@click.pass_context
def vcs_group(ctx: click.Context) -> None:
    """Inspect or control the git workflow."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@vcs_group.command("status")
@click.pass_context
def status_command(ctx: click.Context) -> None:
    """Show git workflow state and uncommitted files."""
    emit(ctx, get_orchestrator(ctx).vcs_status())


@vcs_group.command("commit")
@click.pass_context
def commit_command(ctx: click.Context) -> None:
    """Commit work in progress without advancing the phase."""
    emit(ctx, get_orchestrator(ctx).vcs_commit())


@vcs_group.command("disable")
@click.pass_context
def disable_command(ctx: click.Context) -> None:
    """Stop all git activity for this session."""
    emit(ctx, get_orchestrator(ctx).vcs_disable())
