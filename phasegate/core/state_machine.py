"""Phase state machine for orchestration sessions."""

from typing import Optional, Union

from pydantic import BaseModel

from .domains import DEFAULT_GRAPH, DomainGraph, parse_phase, worker_for
from .exceptions import StateError
from .session_state import (
    CHECKPOINT_PHASES,
    PHASES,
    CheckpointStatus,
    CompletedPhase,
    Domain,
    HistoryEventType,
    OrchestrationSession,
    Phase,
    PhaseCommit,
    VcsState,
)
from .vcs_workflow import VcsWorkflow


class AdvanceResult(BaseModel):
    """Outcome of reporting the current phase as finished."""

    needs_checkpoint: bool = False
    checkpoint_phase: Optional[Phase] = None
    next_phase: Optional[Phase] = None
    new_domain: Optional[Domain] = None
    complete: bool = False
    commit: Optional[PhaseCommit] = None


class CheckpointOutcome(BaseModel):
    """Outcome of resolving a pending checkpoint."""

    approved: bool
    rejected: bool = False
    feedback: Optional[str] = None
    next_phase: Optional[Phase] = None
    new_domain: Optional[Domain] = None
    complete: bool = False
    rollback_available: bool = False


class Progress(BaseModel):
    """Progress summary for a session."""

    total_phases: int
    completed_count: int
    current_domain: Optional[Domain] = None
    current_phase: Optional[Phase] = None
    percentage: int


class PhaseStateMachine:
    """
    Advances an orchestration session through the fixed phase sequence.

    The machine holds no session state of its own; every call receives the
    caller-owned session. ``current_phase`` only changes through
    :meth:`advance` and :meth:`process_checkpoint`.
    """

    def __init__(self, graph: DomainGraph = DEFAULT_GRAPH, vcs: Optional[VcsWorkflow] = None):
        """
        Initialize the state machine.

        Args:
            graph: Domain dependency graph supplying the execution order
            vcs: Git workflow used to commit at checkpoint phases
        """
        self.graph = graph
        self.vcs = vcs

    def initialize(
        self,
        session: OrchestrationSession,
        domain: Union[str, Domain],
        phase: Optional[Union[str, Phase]] = None,
    ) -> OrchestrationSession:
        """
        Reset ``session`` for a new run.

        Args:
            session: Session to reset in place
            domain: Domain to run, or "all" for every domain in canonical order
            phase: Phase to start at (default: design)

        Raises:
            InitializationError: On unknown domain or phase
        """
        domains = self.graph.resolve_order(domain)
        start_phase = parse_phase(phase) if phase else PHASES[0]

        session.domains = domains
        session.current_domain = domains[0]
        session.current_phase = start_phase
        session.completed_phases = []
        session.pending_handoffs = []
        session.checkpoint_status = CheckpointStatus.NONE
        session.history = []
        session.vcs = VcsState()

        session.record(
            HistoryEventType.INIT,
            domain=session.current_domain,
            phase=session.current_phase,
            requested=str(getattr(domain, "value", domain)),
        )
        return session

    @staticmethod
    def worker_prompt(session: OrchestrationSession) -> str:
        """``@<worker> phase=<phase>``, or an empty string if uninitialized."""
        if not session.is_initialized:
            return ""
        return f"@{worker_for(session.current_domain)} phase={session.current_phase.value}"

    @staticmethod
    def is_complete(session: OrchestrationSession) -> bool:
        for event in reversed(session.history):
            if event.type == HistoryEventType.COMPLETE:
                return True
            if event.type in (HistoryEventType.INIT, HistoryEventType.ROLLBACK):
                return False
        return False

    def _require_initialized(self, session: OrchestrationSession) -> None:
        if not session.is_initialized:
            raise StateError(
                "Orchestrator not initialized",
                hint="Run 'phasegate init <domain>' first",
            )

    def _step(self, session: OrchestrationSession) -> AdvanceResult:
        """Move the cursor one phase, one domain, or to completion."""
        index = PHASES.index(session.current_phase)
        if index < len(PHASES) - 1:
            session.current_phase = PHASES[index + 1]
            session.record(
                HistoryEventType.PHASE_ADVANCE,
                domain=session.current_domain,
                phase=session.current_phase,
            )
            return AdvanceResult(next_phase=session.current_phase)

        domain_index = session.domains.index(session.current_domain)
        if domain_index < len(session.domains) - 1:
            session.current_domain = session.domains[domain_index + 1]
            session.current_phase = PHASES[0]
            # Rollback points belong to the domain that recorded them
            session.vcs.rollback_points = {}
            session.record(
                HistoryEventType.DOMAIN_ADVANCE,
                domain=session.current_domain,
                phase=session.current_phase,
            )
            return AdvanceResult(
                next_phase=session.current_phase, new_domain=session.current_domain
            )

        session.record(HistoryEventType.COMPLETE)
        return AdvanceResult(complete=True)

    def advance(self, session: OrchestrationSession) -> AdvanceResult:
        """
        Report the current phase as finished.

        After design and build this commits phase changes, records a rollback
        point and stops at a checkpoint without moving the cursor.

        Raises:
            StateError: If uninitialized, a checkpoint is pending, or the run
                is already complete
            VcsOperationError: If the phase commit fails
        """
        self._require_initialized(session)
        if session.checkpoint_status == CheckpointStatus.PENDING:
            raise StateError(
                f"Checkpoint pending for {session.current_phase.value} phase",
                hint="Approve or reject the checkpoint before advancing",
            )
        if self.is_complete(session):
            raise StateError(
                "All domains and phases are complete",
                hint="Run 'phasegate finalize' or 'phasegate reset'",
            )

        domain, phase = session.current_domain, session.current_phase

        if phase in CHECKPOINT_PHASES:
            # Commit first so a VCS failure leaves the phase unrecorded
            commit = None
            if self.vcs is not None:
                commit = self.vcs.commit_phase_changes(session, domain, phase)
            session.completed_phases.append(CompletedPhase(domain=domain, phase=phase))
            session.checkpoint_status = CheckpointStatus.PENDING
            session.record(HistoryEventType.CHECKPOINT_REQUESTED, domain=domain, phase=phase)
            return AdvanceResult(
                needs_checkpoint=True, checkpoint_phase=phase, commit=commit
            )

        session.completed_phases.append(CompletedPhase(domain=domain, phase=phase))
        if session.checkpoint_status == CheckpointStatus.REJECTED:
            session.checkpoint_status = CheckpointStatus.NONE
        return self._step(session)

    def process_checkpoint(
        self,
        session: OrchestrationSession,
        approved: bool,
        feedback: Optional[str] = None,
    ) -> CheckpointOutcome:
        """
        Resolve the pending checkpoint.

        Approval clears the gate and advances exactly one step. Rejection
        clears the gate and leaves the cursor where it is.

        Raises:
            StateError: If no checkpoint is pending
        """
        if session.checkpoint_status != CheckpointStatus.PENDING:
            raise StateError(
                "No pending checkpoint",
                hint="Checkpoints are requested by advancing past design or build",
            )

        session.record(
            HistoryEventType.CHECKPOINT_RESPONSE,
            domain=session.current_domain,
            phase=session.current_phase,
            approved=bool(approved),
            feedback=feedback or None,
        )

        if approved:
            session.checkpoint_status = CheckpointStatus.NONE
            step = self._step(session)
            return CheckpointOutcome(
                approved=True,
                next_phase=step.next_phase,
                new_domain=step.new_domain,
                complete=step.complete,
            )

        session.checkpoint_status = CheckpointStatus.REJECTED
        return CheckpointOutcome(
            approved=False,
            rejected=True,
            feedback=feedback,
            rollback_available=session.vcs.enabled and bool(session.vcs.rollback_points),
        )

    @staticmethod
    def progress(session: OrchestrationSession) -> Progress:
        total = len(session.domains) * len(PHASES)
        # A rejected phase is recorded again when redone
        completed = len({(p.domain, p.phase) for p in session.completed_phases})
        percentage = round(completed / total * 100) if total else 0
        return Progress(
            total_phases=total,
            completed_count=completed,
            current_domain=session.current_domain,
            current_phase=session.current_phase,
            percentage=min(percentage, 100),
        )
