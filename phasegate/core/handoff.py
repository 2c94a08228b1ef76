"""Handoff tracker for cross-domain follow-up work.

A handoff is work one worker asks another to do, e.g. the error worker
adding catch blocks that the logging worker must instrument. Handoffs that
point backwards in the execution order are recorded as skipped instead of
queued, so the run can never loop between domains.
"""

import random
import re
import string
import time
from typing import Any, List, Optional, Sequence

from pydantic import BaseModel, Field

from .domains import DEFAULT_GRAPH, HANDOFF_SUGGESTIONS, DomainGraph, domain_from_worker, worker_for
from .exceptions import StateError, ValidationError
from .session_state import (
    Domain,
    Handoff,
    HandoffStatus,
    HistoryEventType,
    OrchestrationSession,
    utcnow,
)

HANDOFF_ID_PATTERN = re.compile(r"^handoff-\d+-[a-z0-9]{9}$")


class CycleCheck(BaseModel):
    """Outcome of the cycle check for a handoff request."""

    cycle: bool
    reason: Optional[str] = None


class HandoffRegistration(BaseModel):
    """Result of registering a handoff."""

    id: Optional[str] = None
    skipped: bool = False
    cycle_reason: Optional[str] = None
    position: Optional[int] = None


class HandoffQueueStatus(BaseModel):
    """Counts by status plus the full queue."""

    pending: int = 0
    in_progress: int = 0
    complete: int = 0
    failed: int = 0
    queue: List[Handoff] = Field(default_factory=list)


def generate_handoff_id() -> str:
    """Generate ``handoff-<epoch ms>-<9 lowercase alphanumerics>``."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"handoff-{int(time.time() * 1000)}-{suffix}"


def validate_handoff_id(handoff_id: Any) -> str:
    """
    Check a handoff id received from the command surface.

    Raises:
        ValidationError: If the id is not in the generated format
    """
    if not handoff_id or not isinstance(handoff_id, str):
        raise ValidationError("Handoff ID must be a non-empty string")
    if not HANDOFF_ID_PATTERN.match(handoff_id):
        raise ValidationError(
            f'Invalid handoff ID format: "{handoff_id}"',
            hint="Expected: handoff-<timestamp>-<alphanumeric>",
        )
    return handoff_id


def detect_cycle(
    from_domain: Optional[Domain],
    to_domain: Domain,
    completed_domains: Sequence[Domain] = (),
    graph: DomainGraph = DEFAULT_GRAPH,
) -> CycleCheck:
    """
    Decide whether a handoff would send work backwards.

    The check is order-based: a target that already ran, or that runs before
    the source in the canonical order, is treated as a cycle. This can reject
    handoffs that would not actually loop.
    """
    if to_domain in completed_domains:
        return CycleCheck(
            cycle=True,
            reason=f"{to_domain.value} already completed - backward handoff would create cycle",
        )

    if from_domain is not None:
        from_index = graph.index_of(from_domain)
        to_index = graph.index_of(to_domain)
        if to_index < from_index:
            return CycleCheck(
                cycle=True,
                reason=(
                    f"{to_domain.value} (index {to_index}) comes before "
                    f"{from_domain.value} (index {from_index}) in execution order"
                ),
            )

    return CycleCheck(cycle=False)


def format_handoff(handoff: Handoff) -> str:
    """Format a handoff for display."""
    text = f"[{handoff.status.value.upper()}] {handoff.from_agent} → {handoff.to_agent}\n"
    text += f"  Reason: {handoff.reason}\n"
    if handoff.files:
        text += f"  Files: {', '.join(handoff.files)}\n"
    return text


class HandoffTracker:
    """
    Manages the handoff queue stored on an orchestration session.

    The queue lives in ``session.pending_handoffs`` so that it is saved and
    restored together with the rest of the session.
    """

    def __init__(self, session: OrchestrationSession, graph: DomainGraph = DEFAULT_GRAPH):
        self.session = session
        self.graph = graph

    @property
    def queue(self) -> List[Handoff]:
        return self.session.pending_handoffs

    def register(
        self,
        to: Any,
        reason: Any,
        files: Any = None,
        context: Any = None,
        from_agent: Optional[str] = None,
    ) -> HandoffRegistration:
        """
        Register a handoff request from the current worker.

        Args:
            to: Target worker, e.g. ``logging-standards``
            reason: Why the handoff is needed
            files: Affected file paths
            context: Additional free-text context
            from_agent: Source worker (default: the current domain's worker)

        Returns:
            HandoffRegistration; ``skipped`` is set when the request was
            rejected as a cycle

        Raises:
            ValidationError: If the request is malformed
        """
        if not to or not isinstance(to, str):
            raise ValidationError('Missing required field: "to" (target agent)')
        if not reason or not isinstance(reason, str):
            raise ValidationError('Missing required field: "reason"')
        if files is None:
            files = []
        if not isinstance(files, list) or not all(isinstance(f, str) for f in files):
            raise ValidationError('"files" must be an array of file paths')
        if context is not None and not isinstance(context, str):
            raise ValidationError('"context" must be a string')

        to_domain = domain_from_worker(to)
        current = self.session.current_domain
        if from_agent is None:
            from_agent = worker_for(current) if current is not None else "unknown"

        check = detect_cycle(
            current, to_domain, self.session.completed_domains(), self.graph
        )
        if check.cycle:
            self.session.record(
                HistoryEventType.HANDOFF_SKIPPED,
                domain=current,
                **{"from": from_agent, "to": to, "reason": check.reason},
            )
            return HandoffRegistration(skipped=True, cycle_reason=check.reason)

        entry = Handoff(
            id=generate_handoff_id(),
            from_agent=from_agent,
            to_agent=to,
            reason=reason,
            files=files,
            context=context or "",
        )
        self.queue.append(entry)
        self.session.record(
            HistoryEventType.HANDOFF_REGISTERED,
            domain=current,
            id=entry.id,
            **{"from": from_agent, "to": to},
        )
        return HandoffRegistration(id=entry.id, position=len(self.queue))

    def get_by_id(self, handoff_id: str) -> Optional[Handoff]:
        return next((h for h in self.queue if h.id == handoff_id), None)

    def _require(self, handoff_id: str) -> Handoff:
        handoff = self.get_by_id(handoff_id)
        if handoff is None:
            raise ValidationError(
                f"Handoff not found: {handoff_id}",
                hint="Run 'phasegate handoff status' to list handoff ids",
            )
        return handoff

    def get_next(self) -> Optional[Handoff]:
        """First pending handoff in registration order."""
        return next((h for h in self.queue if h.status == HandoffStatus.PENDING), None)

    def start(self, handoff_id: str) -> Handoff:
        handoff = self._require(handoff_id)
        if handoff.status != HandoffStatus.PENDING:
            raise StateError(f"Handoff is {handoff.status.value}, not pending")
        handoff.status = HandoffStatus.IN_PROGRESS
        handoff.started_at = utcnow()
        return handoff

    def complete(self, handoff_id: str, summary: Optional[str] = None) -> Handoff:
        handoff = self._require(handoff_id)
        handoff.status = HandoffStatus.COMPLETE
        handoff.completed_at = utcnow()
        if summary:
            handoff.summary = summary
        return handoff

    def fail(self, handoff_id: str, reason: str) -> Handoff:
        handoff = self._require(handoff_id)
        handoff.status = HandoffStatus.FAILED
        handoff.failed_at = utcnow()
        handoff.failure_reason = reason
        return handoff

    def get_for_agent(self, worker: str) -> List[Handoff]:
        """All handoffs targeting ``worker``, in registration order."""
        return [h for h in self.queue if h.to_agent == worker]

    def get_pending_for_agent(self, worker: str) -> List[Handoff]:
        return [
            h for h in self.queue
            if h.to_agent == worker and h.status == HandoffStatus.PENDING
        ]

    def all_pending(self) -> List[Handoff]:
        return [h for h in self.queue if h.status == HandoffStatus.PENDING]

    def status(self) -> HandoffQueueStatus:
        counts = {status: 0 for status in HandoffStatus}
        for handoff in self.queue:
            counts[handoff.status] += 1
        return HandoffQueueStatus(
            pending=counts[HandoffStatus.PENDING],
            in_progress=counts[HandoffStatus.IN_PROGRESS],
            complete=counts[HandoffStatus.COMPLETE],
            failed=counts[HandoffStatus.FAILED],
            queue=list(self.queue),
        )

    @staticmethod
    def suggest(worker: str) -> List[str]:
        """Workers that usually need a handoff after ``worker`` finishes."""
        return list(HANDOFF_SUGGESTIONS.get(worker, ()))

    def clear(self) -> None:
        self.queue.clear()

    def prune(self) -> int:
        """Remove completed handoffs. Returns the number removed."""
        before = len(self.queue)
        self.queue[:] = [h for h in self.queue if h.status != HandoffStatus.COMPLETE]
        return before - len(self.queue)
