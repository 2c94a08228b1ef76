"""Orchestration session state definitions."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    """Timezone-aware current time used for every recorded timestamp."""
    return datetime.now(timezone.utc)


class Phase(str, Enum):
    """Workflow phases, in execution order."""

    DESIGN = "design"
    VALIDATE_DESIGN = "validate-design"
    BUILD = "build"
    TEST = "test"
    VALIDATE = "validate"


PHASES = (
    Phase.DESIGN,
    Phase.VALIDATE_DESIGN,
    Phase.BUILD,
    Phase.TEST,
    Phase.VALIDATE,
)

# Phases after which a human must approve before work continues
CHECKPOINT_PHASES = frozenset({Phase.DESIGN, Phase.BUILD})


class Domain(str, Enum):
    """Problem domains, each owned by one specialist worker."""

    NAMING = "naming"
    VALIDATION = "validation"
    ERROR = "error"
    LOGGING = "logging"
    LINT = "lint"
    TYPE = "type"
    HOUSEKEEPING = "housekeeping"
    GIT = "git"
    TEST = "test"


class CheckpointStatus(str, Enum):
    """Approval gate status."""

    NONE = "none"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class VcsMode(str, Enum):
    """How much the orchestrator does with git."""

    AUTO = "auto"
    MANUAL = "manual"
    DISABLED = "disabled"


class FinalizationMode(str, Enum):
    """What finalize should do with the workflow branch."""

    PR = "pr"
    PUSH = "push"
    MANUAL = "manual"


class HandoffStatus(str, Enum):
    """Handoff lifecycle states."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    FAILED = "failed"


class HistoryEventType(str, Enum):
    """Kinds of audit entries recorded on a session."""

    INIT = "init"
    CHECKPOINT_REQUESTED = "checkpoint_requested"
    CHECKPOINT_RESPONSE = "checkpoint_response"
    PHASE_ADVANCE = "phase_advance"
    DOMAIN_ADVANCE = "domain_advance"
    COMPLETE = "complete"
    HANDOFF_REGISTERED = "handoff_registered"
    HANDOFF_SKIPPED = "handoff_skipped"
    PHASE_COMMIT = "phase_commit"
    ROLLBACK = "rollback"
    FINALIZE = "finalize"
    VCS_DISABLED = "vcs_disabled"


class CompletedPhase(BaseModel):
    """A phase the caller reported as finished."""

    domain: Domain
    phase: Phase
    timestamp: datetime = Field(default_factory=utcnow)


class HistoryEvent(BaseModel):
    """Represents one state transition in the audit log."""

    type: HistoryEventType
    timestamp: datetime = Field(default_factory=utcnow)
    domain: Optional[Domain] = None
    phase: Optional[Phase] = None
    data: Dict[str, Any] = Field(default_factory=dict)


class PhaseCommit(BaseModel):
    """A commit created when a phase finished."""

    domain: Domain
    phase: Phase
    commit_hash: str
    message: str
    files: List[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utcnow)


class VcsState(BaseModel):
    """Git workflow sub-state of a session."""

    enabled: bool = False
    mode: VcsMode = VcsMode.DISABLED
    workflow_branch: Optional[str] = None
    base_branch: Optional[str] = None
    base_commit: Optional[str] = None
    phase_commits: List[PhaseCommit] = Field(default_factory=list)
    rollback_points: Dict[Phase, str] = Field(default_factory=dict)
    pr_required: bool = False
    remote: Optional[str] = None
    finalization_mode: Optional[FinalizationMode] = None
    finalized: bool = False
    pr_url: Optional[str] = None


class Handoff(BaseModel):
    """A cross-domain follow-up request."""

    id: str
    from_agent: str
    to_agent: str
    reason: str
    files: List[str] = Field(default_factory=list)
    context: str = ""
    status: HandoffStatus = HandoffStatus.PENDING
    registered_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    summary: Optional[str] = None
    failure_reason: Optional[str] = None

    @property
    def to_domain(self) -> Optional[Domain]:
        """Domain of the receiving worker, if it names a known domain."""
        name = self.to_agent[: -len("-standards")] if self.to_agent.endswith("-standards") else ""
        try:
            return Domain(name)
        except ValueError:
            return None


class OrchestrationSession(BaseModel):
    """Complete state of one orchestration run."""

    domains: List[Domain] = Field(default_factory=list)
    current_domain: Optional[Domain] = None
    current_phase: Optional[Phase] = None
    completed_phases: List[CompletedPhase] = Field(default_factory=list)
    checkpoint_status: CheckpointStatus = CheckpointStatus.NONE
    pending_handoffs: List[Handoff] = Field(default_factory=list)
    history: List[HistoryEvent] = Field(default_factory=list)
    vcs: VcsState = Field(default_factory=VcsState)

    @property
    def is_initialized(self) -> bool:
        return self.current_domain is not None and self.current_phase is not None

    def completed_domains(self) -> List[Domain]:
        """Distinct domains that have at least one completed phase, in order."""
        seen: List[Domain] = []
        for entry in self.completed_phases:
            if entry.domain not in seen:
                seen.append(entry.domain)
        return seen

    def record(
        self,
        event_type: HistoryEventType,
        domain: Optional[Domain] = None,
        phase: Optional[Phase] = None,
        **data: Any,
    ) -> HistoryEvent:
        """Append an audit entry to the session history."""
        event = HistoryEvent(type=event_type, domain=domain, phase=phase, data=data)
        self.history.append(event)
        return event
