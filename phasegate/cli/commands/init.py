"""phasegate init command."""

from typing import Optional, Tuple

import click

from phasegate.cli.output import emit, get_orchestrator, render_session
from phasegate.core.exceptions import ValidationError
from phasegate.core.invocation import parse_args, validate_orchestrator_params
from phasegate.orchestrator import OperationResult


@click.command()
@click.argument("target", nargs=-1, required=True)
@click.option("--phase", "-p", help="Phase to start at (default: design)")
@click.option(
    "--vcs-mode",
    "-g",
    type=click.Choice(["auto", "manual", "disabled"]),
    help="Git workflow mode (default: from config)",
)
@click.pass_context
def init_command(
    ctx: click.Context,
    target: Tuple[str, ...],
    phase: Optional[str],
    vcs_mode: Optional[str],
) -> None:
    """Start a new orchestration session.

    TARGET is a domain name or "all". Invocation style parameters are
    accepted as well.

    \b
    Examples:
        phasegate init logging                 # One domain, auto git workflow
        phasegate init all --vcs-mode manual   # Every domain, no branch
        phasegate init domain=git phase=build gitMode=disabled
    """
    params = parse_args(target)
    positional = [t for t in target if "=" not in t]
    if positional and "domain" not in params:
        params["domain"] = positional[0]
    if phase:
        params["phase"] = phase
    if vcs_mode:
        params["gitMode"] = vcs_mode

    try:
        validate_orchestrator_params(params)
    except ValidationError as e:
        emit(ctx, OperationResult.failure(e))
        return

    result = get_orchestrator(ctx).init(
        params["domain"], phase=params.get("phase"), vcs_mode=params.get("gitMode")
    )
    emit(ctx, result, render_session)
