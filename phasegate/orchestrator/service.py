"""Orchestrator facade used by the command surface.

Every operation follows the same cycle: load the snapshot, run one core
operation against the session, save if the session changed, write an
activity event and return an :class:`OperationResult`. Core errors are
returned as structured failures instead of being raised.
"""

from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..config import PhasegateConfig, load_config
from ..core.checkpoint import (
    create_allow_response,
    create_blocking_response,
    create_checkpoint_message,
    generate_approval_prompt,
    parse_response,
)
from ..core.domains import DEFAULT_GRAPH, worker_for
from ..core.exceptions import InitializationError, PhasegateError, StateError, ValidationError
from ..core.git_utils import STATE_DIR_NAME, GitUtils
from ..core.handoff import HandoffTracker, validate_handoff_id
from ..core.session_state import (
    CheckpointStatus,
    FinalizationMode,
    OrchestrationSession,
    Phase,
    VcsMode,
)
from ..core.state_machine import PhaseStateMachine
from ..core.state_persistence import SessionStore
from ..core.vcs_workflow import VcsWorkflow
from ..tracking.activity_logger import ActivityLogger, EventType, NullActivityLogger
from .results import OperationResult

CHECKPOINT_ACTIONS = ("approve", "reject", "status")


def _enum_arg(enum_cls, value: Any, label: str):
    try:
        return enum_cls(value)
    except ValueError:
        valid = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {label}: {value}", hint=f"Valid values: {valid}") from None


class Orchestrator:
    """
    Caller-owned handle for one workspace's orchestration session.

    The session itself lives only in the snapshot file between calls; the
    handle keeps configuration and collaborators.
    """

    def __init__(
        self,
        project_root: Optional[Path] = None,
        config: Optional[PhasegateConfig] = None,
        store: Optional[SessionStore] = None,
        git: Optional[GitUtils] = None,
        logger: Optional[ActivityLogger] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            project_root: Workspace root (default: current directory)
            config: Configuration (default: loaded from config files)
            store: Snapshot store (default: from config)
            git: Git wrapper (default: from config)
            logger: Activity logger (default: from config)

        Raises:
            ConfigurationError: If configuration files are invalid
        """
        self.project_root = Path(project_root) if project_root else Path.cwd()
        self.config = config or load_config(start_dir=self.project_root)

        if logger is None:
            if self.config.logging.enabled:
                logger = ActivityLogger(
                    self.config.get_log_dir(self.project_root),
                    level=self.config.logging.level,
                )
            else:
                logger = NullActivityLogger()
        self.logger = logger

        self.store = store or SessionStore(
            self.config.get_state_file(self.project_root), logger=self.logger
        )
        self.ignored_dirs = self._ignored_dirs()
        self.git = git or GitUtils(
            self.project_root, timeout=self.config.git.timeout_seconds()
        )
        self.git.exclude(
            *(d.relative_to(self.project_root).as_posix() for d in self.ignored_dirs)
        )
        self.vcs = VcsWorkflow(
            self.git,
            protected_branches=self.config.git.protected_branches,
            branch_type=self.config.git.branch_type,
            remote=self.config.git.remote,
        )
        self.machine = PhaseStateMachine(DEFAULT_GRAPH, vcs=self.vcs)

    # Plumbing

    def _execute(self, action: str, operation: Callable[[], Dict[str, Any]]) -> OperationResult:
        try:
            data = operation()
        except PhasegateError as e:
            self.logger.log_error(e.message, action=action, error_kind=e.kind, hint=e.hint)
            return OperationResult.failure(e)
        return OperationResult.ok(data)

    def _load(self) -> OrchestrationSession:
        return self.store.load() or OrchestrationSession()

    def _load_initialized(self) -> OrchestrationSession:
        session = self._load()
        if not session.is_initialized:
            raise StateError(
                "Orchestrator not initialized",
                hint="Run 'phasegate init <domain>' first",
            )
        return session

    def _ignored_dirs(self) -> List[Path]:
        """Workspace directories holding phasegate's own files, outermost only."""
        candidates = [self.project_root / STATE_DIR_NAME, self.store.state_file.parent]
        if self.config.logging.enabled:
            candidates.append(self.config.get_log_dir(self.project_root))

        dirs: List[Path] = []
        for candidate in candidates:
            if candidate == self.project_root or not candidate.is_relative_to(self.project_root):
                continue
            if any(candidate == d or candidate.is_relative_to(d) for d in dirs):
                continue
            dirs = [d for d in dirs if not d.is_relative_to(candidate)]
            dirs.append(candidate)
        return dirs

    def _save(self, session: OrchestrationSession) -> None:
        for directory in self.ignored_dirs:
            directory.mkdir(parents=True, exist_ok=True)
            gitignore = directory / ".gitignore"
            if not gitignore.exists():
                gitignore.write_text("# phasegate state, logs and config\n*\n", encoding="utf-8")
        self.store.save(session)

    def _summary(self, session: OrchestrationSession) -> Dict[str, Any]:
        return {
            "domains": [d.value for d in session.domains],
            "current_domain": session.current_domain.value if session.current_domain else None,
            "current_phase": session.current_phase.value if session.current_phase else None,
            "checkpoint_status": session.checkpoint_status.value,
            "complete": self.machine.is_complete(session),
            "prompt": self.machine.worker_prompt(session),
        }

    # Session lifecycle

    def init(
        self,
        domain: str,
        phase: Optional[str] = None,
        vcs_mode: Optional[str] = None,
    ) -> OperationResult:
        """Start a new session, replacing any existing one."""

        def run() -> Dict[str, Any]:
            if vcs_mode:
                try:
                    mode = VcsMode(vcs_mode)
                except ValueError:
                    raise InitializationError(
                        f"Unknown VCS mode: {vcs_mode}",
                        hint=f"Valid modes: {', '.join(m.value for m in VcsMode)}",
                    ) from None
            else:
                mode = self.config.git.default_mode

            session = OrchestrationSession()
            self.machine.initialize(session, domain, phase)
            target = str(getattr(domain, "value", domain))
            self.vcs.setup(session, target, mode)
            self._save(session)

            self.logger.log_event(
                EventType.SESSION_INIT,
                f"Initialized orchestration for {target}",
                domain=session.current_domain,
                phase=session.current_phase,
                domains=[d.value for d in session.domains],
                vcs_mode=session.vcs.mode.value,
                branch=session.vcs.workflow_branch,
            )
            data = self._summary(session)
            data["vcs"] = session.vcs.model_dump(mode="json")
            return data

        return self._execute("init", run)

    def status(self) -> OperationResult:
        def run() -> Dict[str, Any]:
            session = self.store.load()
            if session is None or not session.is_initialized:
                return {
                    "initialized": False,
                    "message": "Orchestrator not initialized. Run: phasegate init <domain>",
                }
            data = {"initialized": True, **self._summary(session)}
            data["completed_phases"] = [
                {"domain": p.domain.value, "phase": p.phase.value}
                for p in session.completed_phases
            ]
            data["progress"] = self.machine.progress(session).model_dump(mode="json")
            data["handoffs"] = (
                HandoffTracker(session).status().model_dump(mode="json", exclude={"queue"})
            )
            data["vcs"] = {
                "enabled": session.vcs.enabled,
                "mode": session.vcs.mode.value,
                "workflow_branch": session.vcs.workflow_branch,
                "rollback_points": sorted(p.value for p in session.vcs.rollback_points),
            }
            return data

        return self._execute("status", run)

    def reset(self) -> OperationResult:
        def run() -> Dict[str, Any]:
            deleted = self.store.delete()
            self.logger.log_event(EventType.RESET, "Orchestrator reset", deleted=deleted)
            return {"deleted": deleted, "message": "Orchestrator reset"}

        return self._execute("reset", run)

    # Phases and checkpoints

    def advance(self) -> OperationResult:
        """Report the current phase as finished."""

        def run() -> Dict[str, Any]:
            session = self._load_initialized()
            domain, phase = session.current_domain, session.current_phase
            result = self.machine.advance(session)
            self._save(session)

            data = {**self._summary(session), **result.model_dump(mode="json")}
            if result.needs_checkpoint:
                changes = result.commit.files if result.commit else []
                data["approval_prompt"] = generate_approval_prompt(
                    domain, phase, changes, HandoffTracker(session).all_pending()
                )
                self.logger.log_event(
                    EventType.CHECKPOINT,
                    f"Checkpoint requested after {phase.value}",
                    domain=domain,
                    phase=phase,
                    commit=result.commit.commit_hash if result.commit else None,
                )
            else:
                self.logger.log_event(
                    EventType.PHASE_ADVANCE,
                    f"Completed {phase.value}",
                    domain=domain,
                    phase=phase,
                    next_phase=data["current_phase"],
                    complete=result.complete,
                )
            return data

        return self._execute("advance", run)

    def _resolve_checkpoint(
        self, session: OrchestrationSession, approved: bool, feedback: Optional[str]
    ) -> Dict[str, Any]:
        domain, phase = session.current_domain, session.current_phase
        outcome = self.machine.process_checkpoint(session, approved, feedback)
        self._save(session)
        self.logger.log_event(
            EventType.CHECKPOINT,
            f"Checkpoint {'approved' if approved else 'rejected'} for {phase.value}",
            domain=domain,
            phase=phase,
            approved=approved,
            feedback=feedback,
        )
        return {**self._summary(session), **outcome.model_dump(mode="json")}

    def checkpoint(self, action: str, feedback: Optional[str] = None) -> OperationResult:
        """Approve, reject or inspect the pending checkpoint."""

        def run() -> Dict[str, Any]:
            if action not in CHECKPOINT_ACTIONS:
                raise ValidationError(
                    f"Unknown checkpoint action: {action}",
                    hint="Usage: checkpoint <approve|reject|status> [feedback]",
                )
            session = self._load_initialized()
            if action == "status":
                return {
                    "checkpoint_status": session.checkpoint_status.value,
                    "current_domain": session.current_domain.value,
                    "current_phase": session.current_phase.value,
                    "rollback_points": sorted(p.value for p in session.vcs.rollback_points),
                }
            return self._resolve_checkpoint(session, action == "approve", feedback or None)

        return self._execute(f"checkpoint {action}", run)

    def respond(self, text: Optional[str]) -> OperationResult:
        """Resolve the pending checkpoint from a free-text reply."""

        def run() -> Dict[str, Any]:
            session = self._load_initialized()
            if session.checkpoint_status != CheckpointStatus.PENDING:
                raise StateError(
                    "No pending checkpoint",
                    hint="Checkpoints are requested by advancing past design or build",
                )

            decision = parse_response(text)
            if decision.approved:
                data = self._resolve_checkpoint(session, True, None)
            elif decision.rejected:
                data = self._resolve_checkpoint(session, False, decision.feedback)
            else:
                # Modification requests leave the gate pending
                self.logger.log_event(
                    EventType.CHECKPOINT,
                    "Modifications requested",
                    domain=session.current_domain,
                    phase=session.current_phase,
                    feedback=decision.feedback,
                )
                data = self._summary(session)
            data["decision"] = (
                "approve" if decision.approved else "reject" if decision.rejected else "modify"
            )
            data["feedback"] = decision.feedback
            return data

        return self._execute("checkpoint respond", run)

    def approval_prompt(self, changes: Sequence[str] = ()) -> OperationResult:
        """Markdown approval prompt and hook message for the current phase."""

        def run() -> Dict[str, Any]:
            session = self._load_initialized()
            pending = HandoffTracker(session).all_pending()
            return {
                "prompt": generate_approval_prompt(
                    session.current_domain, session.current_phase, changes, pending
                ),
                "message": create_checkpoint_message(
                    session.current_domain, session.current_phase, changes, pending
                ),
            }

        return self._execute("checkpoint prompt", run)

    def hook_response(self) -> OperationResult:
        """Hook decision: block edits while a checkpoint is pending."""

        def run() -> Dict[str, Any]:
            session = self.store.load()
            if session is not None and session.checkpoint_status == CheckpointStatus.PENDING:
                return {"response": create_blocking_response(session.current_phase)}
            return {"response": create_allow_response()}

        return self._execute("checkpoint hook", run)

    def prompt(self) -> OperationResult:
        def run() -> Dict[str, Any]:
            session = self._load_initialized()
            inbox = HandoffTracker(session).get_pending_for_agent(
                worker_for(session.current_domain)
            )
            return {
                "prompt": self.machine.worker_prompt(session),
                "checkpoint_pending": session.checkpoint_status == CheckpointStatus.PENDING,
                "handoffs": [h.model_dump(mode="json") for h in inbox],
            }

        return self._execute("prompt", run)

    def progress(self) -> OperationResult:
        def run() -> Dict[str, Any]:
            session = self._load_initialized()
            return self.machine.progress(session).model_dump(mode="json")

        return self._execute("progress", run)

    # Handoffs

    def _handoff_mutation(
        self, action: str, operation: Callable[[HandoffTracker], Dict[str, Any]]
    ) -> OperationResult:
        def run() -> Dict[str, Any]:
            session = self._load()
            tracker = HandoffTracker(session)
            data = operation(tracker)
            self._save(session)
            self.logger.log_event(
                EventType.HANDOFF,
                f"Handoff {action}",
                domain=session.current_domain,
                action=action,
                **{k: v for k, v in data.items() if k in ("id", "skipped", "removed")},
            )
            return data

        return self._execute(f"handoff {action}", run)

    def handoff_register(self, payload: Mapping[str, Any]) -> OperationResult:
        """Register a handoff from a decoded JSON request."""

        def register(tracker: HandoffTracker) -> Dict[str, Any]:
            if not isinstance(payload, Mapping):
                raise ValidationError("Handoff data must be a JSON object")
            result = tracker.register(
                payload.get("to"),
                payload.get("reason"),
                files=payload.get("files"),
                context=payload.get("context"),
                from_agent=payload.get("from"),
            )
            return result.model_dump(mode="json")

        return self._handoff_mutation("register", register)

    def handoff_start(self, handoff_id: str) -> OperationResult:
        def start(tracker: HandoffTracker) -> Dict[str, Any]:
            handoff = tracker.start(validate_handoff_id(handoff_id))
            return {"id": handoff.id, "handoff": handoff.model_dump(mode="json")}

        return self._handoff_mutation("start", start)

    def handoff_complete(self, handoff_id: str, summary: Optional[str] = None) -> OperationResult:
        def complete(tracker: HandoffTracker) -> Dict[str, Any]:
            handoff = tracker.complete(validate_handoff_id(handoff_id), summary or None)
            return {"id": handoff.id, "handoff": handoff.model_dump(mode="json")}

        return self._handoff_mutation("complete", complete)

    def handoff_fail(self, handoff_id: str, reason: Optional[str] = None) -> OperationResult:
        def fail(tracker: HandoffTracker) -> Dict[str, Any]:
            handoff = tracker.fail(
                validate_handoff_id(handoff_id), reason or "No reason provided"
            )
            return {"id": handoff.id, "handoff": handoff.model_dump(mode="json")}

        return self._handoff_mutation("fail", fail)

    def handoff_clear(self) -> OperationResult:
        def clear(tracker: HandoffTracker) -> Dict[str, Any]:
            tracker.clear()
            return {"message": "Handoff queue cleared"}

        return self._handoff_mutation("clear", clear)

    def handoff_prune(self) -> OperationResult:
        def prune(tracker: HandoffTracker) -> Dict[str, Any]:
            return {"removed": tracker.prune()}

        return self._handoff_mutation("prune", prune)

    def handoff_next(self) -> OperationResult:
        def run() -> Dict[str, Any]:
            handoff = HandoffTracker(self._load()).get_next()
            if handoff is None:
                return {"handoff": None, "message": "No pending handoffs"}
            return {"handoff": handoff.model_dump(mode="json")}

        return self._execute("handoff next", run)

    def handoff_status(self) -> OperationResult:
        def run() -> Dict[str, Any]:
            return HandoffTracker(self._load()).status().model_dump(mode="json")

        return self._execute("handoff status", run)

    def handoff_suggest(self, worker: str) -> OperationResult:
        def run() -> Dict[str, Any]:
            if not worker:
                raise ValidationError("Agent name required")
            return {"agent": worker, "suggestions": HandoffTracker.suggest(worker)}

        return self._execute("handoff suggest", run)

    # Version control

    def vcs_status(self) -> OperationResult:
        def run() -> Dict[str, Any]:
            session = self.store.load()
            if session is None or not session.vcs.enabled:
                return {"vcs": {"enabled": False}, "message": "Git workflow not active"}
            return self.vcs.status(session)

        return self._execute("vcs status", run)

    def vcs_commit(self) -> OperationResult:
        """Commit work in progress without advancing or recording a rollback point."""

        def run() -> Dict[str, Any]:
            session = self._load_initialized()
            if not session.vcs.enabled or session.vcs.mode != VcsMode.AUTO:
                return {
                    "committed": False,
                    "message": "Automatic commits need a session initialized with --vcs-mode auto",
                }
            commit = self.vcs.commit_work_in_progress(session)
            self._save(session)
            if commit is None:
                return {"committed": False, "message": "No changes to commit"}
            self.logger.log_vcs_operation(
                "commit",
                domain=session.current_domain.value,
                commit=commit.commit_hash,
                files=len(commit.files),
            )
            return {"committed": True, "commit": commit.model_dump(mode="json")}

        return self._execute("vcs commit", run)

    def vcs_disable(self) -> OperationResult:
        def run() -> Dict[str, Any]:
            session = self._load_initialized()
            was_enabled = self.vcs.disable(session)
            self._save(session)
            if was_enabled:
                self.logger.log_vcs_operation("disable")
                return {"disabled": True, "message": "Git workflow disabled"}
            return {"disabled": False, "message": "Git workflow was not enabled"}

        return self._execute("vcs disable", run)

    def rollback(self, phase: Optional[str] = None) -> OperationResult:
        """Hard-reset to a recorded rollback point."""

        def run() -> Dict[str, Any]:
            session = self._load_initialized()
            to_phase = _enum_arg(Phase, phase, "phase") if phase else None
            result = self.vcs.rollback(session, to_phase)
            self._save(session)
            self.logger.log_event(
                EventType.ROLLBACK,
                f"Rolled back to {result.phase.value}",
                domain=session.current_domain,
                phase=result.phase,
                commit=result.commit_hash,
                stashed=result.stashed,
            )
            return {**self._summary(session), **result.model_dump(mode="json")}

        return self._execute("rollback", run)

    def finalize(self, mode: Optional[str] = None) -> OperationResult:
        """Expose the workflow branch for integration."""

        def run() -> Dict[str, Any]:
            session = self._load_initialized()
            finalization_mode = _enum_arg(FinalizationMode, mode, "mode") if mode else None
            result = self.vcs.finalize(session, finalization_mode)
            self._save(session)
            self.logger.log_event(
                EventType.FINALIZE,
                "Finalized workflow",
                branch=result.branch,
                pushed=result.pushed,
                pr_url=result.pr_url,
                pr_error=result.pr_error,
            )
            return result.model_dump(mode="json")

        return self._execute("finalize", run)
