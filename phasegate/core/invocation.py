"""Parsing of ``@agent key=value`` worker invocations."""

import re
from typing import Any, Dict, Iterable, Mapping, Optional

from pydantic import BaseModel, Field

from .domains import ALL_DOMAINS
from .exceptions import ValidationError
from .session_state import PHASES, Domain, VcsMode

AGENT_PATTERN = re.compile(r"^@([a-zA-Z][a-zA-Z0-9-]*)")
PARAM_PATTERN = re.compile(r"([a-zA-Z][a-zA-Z0-9_]*)=(\"[^\"]*\"|'[^']*'|\S+)")
ARG_PATTERN = re.compile(r"^([a-zA-Z][a-zA-Z0-9_]*)=(.+)$")

VALID_DOMAINS = tuple(d.value for d in Domain) + (ALL_DOMAINS,)
VALID_PHASES = tuple(p.value for p in PHASES)
VALID_GIT_MODES = tuple(m.value for m in VcsMode)


class Invocation(BaseModel):
    """A parsed worker invocation."""

    agent: str
    params: Dict[str, str] = Field(default_factory=dict)


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def parse_invocation(text: Optional[str]) -> Optional[Invocation]:
    """
    Parse ``@agent-name key=value key="quoted value"``.

    Returns:
        The invocation, or None if ``text`` does not start with ``@agent``
    """
    if not text or not isinstance(text, str):
        return None

    trimmed = text.strip()
    match = AGENT_PATTERN.match(trimmed)
    if not match:
        return None

    remainder = trimmed[match.end():]
    params = {key: _unquote(value) for key, value in PARAM_PATTERN.findall(remainder)}
    return Invocation(agent=match.group(1), params=params)


def parse_args(args: Iterable[str]) -> Dict[str, str]:
    """Collect ``key=value`` tokens, ignoring anything else."""
    params: Dict[str, str] = {}
    for arg in args:
        match = ARG_PATTERN.match(arg)
        if match:
            params[match.group(1)] = _unquote(match.group(2))
    return params


def validate_orchestrator_params(params: Mapping[str, Any]) -> None:
    """
    Check the parameters accepted by the orchestrator entry point.

    Raises:
        ValidationError: If domain is missing or any value is unknown
    """
    if not isinstance(params, Mapping):
        raise ValidationError("Parameters object required")

    domain = params.get("domain")
    if not domain:
        raise ValidationError(
            "Missing required parameter: domain",
            hint=f"Valid domains: {', '.join(VALID_DOMAINS)}",
        )
    if domain not in VALID_DOMAINS:
        raise ValidationError(
            f"Invalid domain: {domain}",
            hint=f"Valid domains: {', '.join(VALID_DOMAINS)}",
        )

    phase = params.get("phase")
    if phase and phase not in VALID_PHASES:
        raise ValidationError(
            f"Invalid phase: {phase}", hint=f"Valid phases: {', '.join(VALID_PHASES)}"
        )

    git_mode = params.get("gitMode")
    if git_mode and git_mode not in VALID_GIT_MODES:
        raise ValidationError(
            f"Invalid gitMode: {git_mode}",
            hint=f"Valid git modes: {', '.join(VALID_GIT_MODES)}",
        )


def format_params(params: Mapping[str, Any]) -> str:
    """Inverse of :func:`parse_args`; values containing spaces are quoted."""
    parts = []
    for key, value in params.items():
        if isinstance(value, str) and " " in value:
            parts.append(f'{key}="{value}"')
        else:
            parts.append(f"{key}={value}")
    return " ".join(parts)
