"""phasegate checkpoint commands."""

from typing import Any, Dict, Tuple

import click
from rich.markdown import Markdown

from phasegate.cli.output import console, emit, get_orchestrator, render_checkpoint


@click.group(invoke_without_command=True)
@click.pass_context
def checkpoint_group(ctx: click.Context) -> None:
    """Resolve or inspect the approval gate after design and build."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@checkpoint_group.command("approve")
@click.argument("feedback", nargs=-1)
@click.pass_context
def approve_command(ctx: click.Context, feedback: Tuple[str, ...]) -> None:
    """Approve the pending checkpoint and move on."""
    result = get_orchestrator(ctx).checkpoint("approve", " ".join(feedback) or None)
    emit(ctx, result, render_checkpoint)


@checkpoint_group.command("reject")
@click.argument("feedback", nargs=-1)
@click.pass_context
def reject_command(ctx: click.Context, feedback: Tuple[str, ...]) -> None:
    """Reject the pending checkpoint; the phase stays current."""
    result = get_orchestrator(ctx).checkpoint("reject", " ".join(feedback) or None)
    emit(ctx, result, render_checkpoint)


@checkpoint_group.command("status")
@click.pass_context
def status_command(ctx: click.Context) -> None:
    """Show the checkpoint gate."""
    emit(ctx, get_orchestrator(ctx).checkpoint("status"))


@checkpoint_group.command("respond")
@click.argument("text", nargs=-1)
@click.pass_context
def respond_command(ctx: click.Context, text: Tuple[str, ...]) -> None:
    """Answer the checkpoint in free text.

    \b
    Examples:
        phasegate checkpoint respond lgtm
        phasegate checkpoint respond "please rename the helper first"
        phasegate checkpoint respond "no, rollback"
    """
    emit(ctx, get_orchestrator(ctx).respond(" ".join(text)), render_checkpoint)


def _render_prompt(data: Dict[str, Any]) -> None:
    console.print(Markdown(data["prompt"]))


@checkpoint_group.command("prompt")
@click.argument("changes", nargs=-1)
@click.option("--message", is_flag=True, help="Print the JSON hook message instead")
@click.pass_context
def prompt_command(ctx: click.Context, changes: Tuple[str, ...], message: bool) -> None:
    """Render the approval prompt for the current phase."""
    result = get_orchestrator(ctx).approval_prompt(list(changes))
    if message and result.success:
        click.echo(result.data["message"])
        return
    emit(ctx, result, _render_prompt)


@checkpoint_group.command("hook")
@click.pass_context
def hook_command(ctx: click.Context) -> None:
    """Print the edit-hook decision (block while a checkpoint is pending)."""
    result = get_orchestrator(ctx).hook_response()
    if result.success:
        click.echo(result.data["response"])
        return
    emit(ctx, result)
