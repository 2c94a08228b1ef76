"""Core phasegate functionality."""

from .checkpoint import (
    CheckpointDecision,
    create_allow_response,
    create_blocking_response,
    create_checkpoint_message,
    generate_approval_prompt,
    parse_response,
    validate_checkpoint_context,
)
from .domains import (
    ALL_DOMAINS,
    DEFAULT_GRAPH,
    DOMAIN_DEPENDENCIES,
    DOMAIN_EXECUTION_ORDER,
    HANDOFF_SUGGESTIONS,
    DomainGraph,
    domain_from_worker,
    parse_domain,
    parse_phase,
    worker_for,
)
from .exceptions import (
    ConfigurationError,
    InitializationError,
    PersistenceError,
    PhasegateError,
    StateError,
    ValidationError,
    VcsOperationError,
)
from .git_utils import GitUtils
from .handoff import (
    CycleCheck,
    HandoffQueueStatus,
    HandoffRegistration,
    HandoffTracker,
    detect_cycle,
    format_handoff,
    generate_handoff_id,
    validate_handoff_id,
)
from .invocation import (
    Invocation,
    format_params,
    parse_args,
    parse_invocation,
    validate_orchestrator_params,
)
from .session_state import (
    CHECKPOINT_PHASES,
    PHASES,
    CheckpointStatus,
    CompletedPhase,
    Domain,
    FinalizationMode,
    Handoff,
    HandoffStatus,
    HistoryEvent,
    HistoryEventType,
    OrchestrationSession,
    Phase,
    PhaseCommit,
    VcsMode,
    VcsState,
)
from .state_machine import AdvanceResult, CheckpointOutcome, PhaseStateMachine, Progress
from .state_persistence import SessionStore
from .vcs_workflow import FinalizeResult, RollbackResult, VcsWorkflow

__all__ = [
    # Exceptions
    "PhasegateError",
    "InitializationError",
    "StateError",
    "ValidationError",
    "VcsOperationError",
    "PersistenceError",
    "ConfigurationError",
    # Session model
    "Phase",
    "PHASES",
    "CHECKPOINT_PHASES",
    "Domain",
    "CheckpointStatus",
    "VcsMode",
    "FinalizationMode",
    "HandoffStatus",
    "HistoryEventType",
    "CompletedPhase",
    "HistoryEvent",
    "PhaseCommit",
    "VcsState",
    "Handoff",
    "OrchestrationSession",
    # Domains
    "ALL_DOMAINS",
    "DOMAIN_DEPENDENCIES",
    "DOMAIN_EXECUTION_ORDER",
    "HANDOFF_SUGGESTIONS",
    "DEFAULT_GRAPH",
    "DomainGraph",
    "worker_for",
    "domain_from_worker",
    "parse_domain",
    "parse_phase",
    # State machine
    "PhaseStateMachine",
    "AdvanceResult",
    "CheckpointOutcome",
    "Progress",
    # Checkpoints
    "CheckpointDecision",
    "parse_response",
    "generate_approval_prompt",
    "validate_checkpoint_context",
    "create_checkpoint_message",
    "create_blocking_response",
    "create_allow_response",
    # Handoffs
    "HandoffTracker",
    "HandoffRegistration",
    "HandoffQueueStatus",
    "CycleCheck",
    "detect_cycle",
    "format_handoff",
    "generate_handoff_id",
    "validate_handoff_id",
    # Invocation parsing
    "Invocation",
    "parse_invocation",
    "parse_args",
    "validate_orchestrator_params",
    "format_params",
    # Git and persistence
    "GitUtils",
    "VcsWorkflow",
    "RollbackResult",
    "FinalizeResult",
    "SessionStore",
]
