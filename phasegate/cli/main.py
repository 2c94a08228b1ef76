"""Main CLI entry point for phasegate."""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from phasegate.cli.commands.advance import advance_command
from phasegate.cli.commands.checkpoint import checkpoint_group
from phasegate.cli.commands.handoff import handoff_group
from phasegate.cli.commands.init import init_command
from phasegate.cli.commands.status import progress_command, prompt_command, status_command
from phasegate.cli.commands.vcs import vcs_group
from phasegate.cli.commands.workflow import finalize_command, reset_command, rollback_command
from phasegate.core.exceptions import PhasegateError

console = Console(stderr=True)


@click.group()
@click.option(
    "--json/--no-json",
    "json_output",
    default=True,
    help="Print JSON (default, for hooks) or human readable output",
)
@click.option(
    "--project-dir",
    "-C",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Workspace root (default: current directory)",
)
@click.pass_context
def cli(ctx: click.Context, json_output: bool, project_dir: Optional[Path]) -> None:
    """phasegate: multi-domain phase orchestrator.

    Drives specialist workers through design, validate-design, build, test
    and validate, with approval checkpoints after design and build and a
    git branch per run.

    \b
    Examples:
        phasegate init all                   # Start a run over every domain
        phasegate prompt                     # Which worker runs next
        phasegate advance                    # Current phase is done
        phasegate checkpoint approve         # Approve the pending checkpoint
        phasegate handoff register '{...}'   # Queue cross-domain work
        phasegate rollback build             # Discard work since build
        phasegate finalize                   # Push and open a pull request
    """
    ctx.ensure_object(dict)
    ctx.obj["json"] = json_output
    ctx.obj["project_dir"] = project_dir


cli.add_command(init_command, name="init")
cli.add_command(status_command, name="status")
cli.add_command(advance_command, name="advance")
cli.add_command(prompt_command, name="prompt")
cli.add_command(progress_command, name="progress")
cli.add_command(checkpoint_group, name="checkpoint")
cli.add_command(handoff_group, name="handoff")
cli.add_command(vcs_group, name="vcs")
cli.add_command(rollback_command, name="rollback")
cli.add_command(finalize_command, name="finalize")
cli.add_command(reset_command, name="reset")


def main() -> None:
    """Main entry point for the CLI."""
    try:
        cli()
    except PhasegateError as e:
        console.print(f"[red]Error:[/red] {e}")
        if e.hint:
            console.print(f"[dim]Hint: {e.hint}[/dim]")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
