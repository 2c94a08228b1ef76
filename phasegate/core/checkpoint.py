"""Checkpoint protocol for human approval gates.

Checkpoints pause the workflow after the design and build phases. This
module renders the approval prompt and turns free-form human replies into a
strict decision; the state machine only ever sees a boolean plus feedback.
"""

import json
import re
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from pydantic import BaseModel

from .domains import worker_for
from .exceptions import ValidationError
from .session_state import Domain, Handoff, Phase

APPROVAL_PHRASES = (
    "approve",
    "approved",
    "proceed",
    "continue",
    "yes",
    "lgtm",
    "looks good",
    "ship it",
    "go ahead",
)

REJECTION_PHRASES = (
    "reject",
    "rejected",
    "rollback",
    "cancel",
    "stop",
    "abort",
)

SHORT_APPROVALS = frozenset({"ok", "y"})
SHORT_REJECTIONS = frozenset({"no", "n"})


class CheckpointDecision(BaseModel):
    """Strict result of interpreting a checkpoint reply."""

    approved: bool
    feedback: Optional[str] = None
    rejected: bool = False

    @property
    def is_modification_request(self) -> bool:
        return not self.approved and not self.rejected


def _contains_phrase(text: str, phrase: str) -> bool:
    return re.search(rf"\b{re.escape(phrase)}\b", text) is not None


def parse_response(response: Optional[str]) -> CheckpointDecision:
    """
    Interpret a free-form checkpoint reply.

    Anything that is neither an approval nor a rejection is a modification
    request. It is never treated as approval.

    Args:
        response: Text typed by the user

    Returns:
        CheckpointDecision
    """
    if not response or not isinstance(response, str) or not response.strip():
        return CheckpointDecision(approved=False, feedback="No response provided")

    lower = response.lower().strip()

    if lower in SHORT_REJECTIONS or any(
        _contains_phrase(lower, phrase) for phrase in REJECTION_PHRASES
    ):
        return CheckpointDecision(approved=False, rejected=True, feedback=response)

    if lower in SHORT_APPROVALS or any(
        _contains_phrase(lower, phrase) for phrase in APPROVAL_PHRASES
    ):
        return CheckpointDecision(approved=True)

    return CheckpointDecision(approved=False, feedback=response)


def _handoff_line(handoff: Union[Handoff, Mapping[str, Any]]) -> str:
    if isinstance(handoff, Handoff):
        return f"@{handoff.to_agent}: {handoff.reason}"
    return f"@{handoff.get('to', handoff.get('to_agent', '?'))}: {handoff.get('reason', '')}"


def generate_approval_prompt(
    domain: Domain,
    phase: Phase,
    changes: Sequence[str] = (),
    handoffs: Iterable[Union[Handoff, Mapping[str, Any]]] = (),
) -> str:
    """
    Render the markdown prompt shown to the user at a checkpoint.

    Args:
        domain: Domain whose phase just finished
        phase: The finished phase
        changes: Human-readable list of changes made
        handoffs: Pending handoffs to surface

    Returns:
        Markdown text
    """
    domain = Domain(domain)
    phase = Phase(phase)
    handoffs = list(handoffs)

    lines = [
        f"## Checkpoint: {phase.value} Complete",
        "",
        f"**Agent**: @{worker_for(domain)}",
        f"**Phase**: {phase.value}",
        "**Status**: Awaiting user approval",
        "",
    ]

    if changes:
        lines.append("### Changes Made")
        lines.extend(f"- {change}" for change in changes)
        lines.append("")

    if handoffs:
        lines.append("### Pending Handoffs")
        lines.extend(
            f"{i}. → {_handoff_line(h)}" for i, h in enumerate(handoffs, start=1)
        )
        lines.append("")

    lines.extend(
        [
            "### User Action Required",
            "- [ ] Approve and proceed",
            "- [ ] Request modifications",
            "- [ ] Reject and rollback",
        ]
    )
    return "\n".join(lines) + "\n"


def validate_checkpoint_context(context: Any) -> None:
    """
    Validate a checkpoint context mapping received from a host hook.

    Raises:
        ValidationError: If a required field is missing or mistyped
    """
    if not isinstance(context, Mapping):
        raise ValidationError("Context object required")
    if not context.get("domain") or not isinstance(context["domain"], str):
        raise ValidationError("Domain string required")
    if not context.get("phase") or not isinstance(context["phase"], str):
        raise ValidationError("Phase string required")
    if "changes" in context and not isinstance(context["changes"], list):
        raise ValidationError("Changes must be an array")
    if "handoffs" in context and not isinstance(context["handoffs"], list):
        raise ValidationError("Handoffs must be an array")


def create_checkpoint_message(
    domain: Domain,
    phase: Phase,
    changes: Sequence[str] = (),
    handoffs: Iterable[Union[Handoff, Mapping[str, Any]]] = (),
) -> str:
    """JSON checkpoint message for hook integration."""
    handoffs = list(handoffs)
    return json.dumps(
        {
            "type": "checkpoint",
            "domain": Domain(domain).value,
            "phase": Phase(phase).value,
            "status": "pending",
            "changes": list(changes),
            "handoffs": [
                h.model_dump(mode="json") if isinstance(h, Handoff) else dict(h)
                for h in handoffs
            ],
            "prompt": generate_approval_prompt(domain, phase, changes, handoffs),
        },
        indent=2,
    )


def create_blocking_response(phase: Phase) -> str:
    """Hook decision that blocks edits while a checkpoint is pending."""
    phase = Phase(phase)
    return json.dumps(
        {
            "decision": "block",
            "reason": (
                f"Checkpoint pending for {phase.value} phase. "
                "Please approve or reject before making changes."
            ),
            "checkpoint": phase.value,
        }
    )


def create_allow_response() -> str:
    """Hook decision used when no checkpoint is pending."""
    return json.dumps({"decision": "allow"})
