"""Git workflow integration for orchestration sessions.

Creates an isolated branch for the run, commits at phase boundaries, records
rollback points at the checkpoint phases, performs hard rollbacks and
finalizes the branch for integration.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from .exceptions import InitializationError, StateError, VcsOperationError
from .git_utils import GitUtils
from .session_state import (
    CHECKPOINT_PHASES,
    PHASES,
    CheckpointStatus,
    Domain,
    FinalizationMode,
    HistoryEventType,
    OrchestrationSession,
    Phase,
    PhaseCommit,
    VcsMode,
    VcsState,
)

DEFAULT_PROTECTED_BRANCHES = ("main", "master", "production", "develop", "staging", "release")


class RollbackResult(BaseModel):
    """What a rollback did."""

    phase: Phase
    commit_hash: str
    stashed: bool = False
    removed_phases: int = 0
    removed_commits: int = 0


class FinalizeResult(BaseModel):
    """Outcome of finalizing the workflow branch."""

    branch: Optional[str] = None
    committed: Optional[str] = None
    pushed: bool = False
    pr_url: Optional[str] = None
    pr_error: Optional[str] = None
    manual_steps: List[str] = Field(default_factory=list)


def commit_message(domain: Domain, phase: Phase) -> str:
    return f"{Domain(domain).value}: complete {Phase(phase).value} phase"


def wip_commit_message(domain: Domain, phase: Phase) -> str:
    return f"{Domain(domain).value}: wip {Phase(phase).value}"


def branch_name(branch_type: str, target: str, now: Optional[datetime] = None) -> str:
    """``<type>/orchestrator-<domain>-<YYYYMMDD-HHMMSS>``."""
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d-%H%M%S")
    return f"{branch_type}/orchestrator-{target}-{stamp}"


class VcsWorkflow:
    """
    Drives git on behalf of an orchestration session.

    Only ``auto`` mode commits and creates branches. ``manual`` mode records
    the base branch and commit so status and finalize can report on them.
    """

    def __init__(
        self,
        git: GitUtils,
        protected_branches: Sequence[str] = DEFAULT_PROTECTED_BRANCHES,
        branch_type: str = "feature",
        remote: str = "origin",
    ):
        self.git = git
        self.protected_branches = tuple(protected_branches)
        self.branch_type = branch_type
        self.remote = remote

    def setup(
        self, session: OrchestrationSession, target: str, mode: VcsMode
    ) -> VcsState:
        """
        Initialize the VCS sub-state for a new session.

        Args:
            session: Session being initialized
            target: Requested domain name, or "all"
            mode: VCS mode

        Returns:
            The new VcsState (also stored on the session)

        Raises:
            InitializationError: If preconditions for the mode are not met
        """
        mode = VcsMode(mode)
        if mode == VcsMode.DISABLED:
            session.vcs = VcsState(enabled=False, mode=VcsMode.DISABLED)
            return session.vcs

        if not self.git.is_git_repo():
            raise InitializationError(
                f"Not a git repository: {self.git.repo_path}",
                hint="Run 'git init' first, or initialize with --vcs-mode disabled",
            )

        try:
            base_branch = self.git.get_current_branch()
            base_commit = self.git.get_current_commit()
        except VcsOperationError as e:
            raise InitializationError(e.message, hint=e.hint) from e

        state = VcsState(
            enabled=True,
            mode=mode,
            base_branch=base_branch,
            base_commit=base_commit,
        )

        if mode == VcsMode.AUTO:
            if base_branch in self.protected_branches:
                raise InitializationError(
                    f"Cannot start a workflow on protected branch: {base_branch}",
                    hint="Create a feature branch first, or use --vcs-mode manual",
                )
            if self.git.has_uncommitted_changes():
                raise InitializationError(
                    "Working tree has uncommitted changes",
                    hint="Commit or stash your changes before starting a workflow",
                )

            name = branch_name(self.branch_type, target)
            if self.git.branch_exists(name):
                raise InitializationError(
                    f"Workflow branch already exists: {name}",
                    hint="Wait a second and run init again",
                )
            self.git.create_branch(name)
            state.workflow_branch = name
        else:
            state.workflow_branch = base_branch

        if self.git.has_remote(self.remote):
            state.remote = self.remote
        if state.remote and mode == VcsMode.AUTO:
            state.pr_required = True
            state.finalization_mode = FinalizationMode.PR
        else:
            state.finalization_mode = FinalizationMode.MANUAL

        session.vcs = state
        return state

    def commit_phase_changes(
        self, session: OrchestrationSession, domain: Domain, phase: Phase
    ) -> Optional[PhaseCommit]:
        """
        Commit work done in a phase and record a rollback point.

        A clean tree is not an error: no commit is made, and for checkpoint
        phases HEAD is recorded as the rollback point.

        Returns:
            The PhaseCommit created, or None
        """
        vcs = session.vcs
        if not vcs.enabled or vcs.mode != VcsMode.AUTO:
            return None

        commit = self._commit(session, domain, phase, commit_message(domain, phase))

        if phase in CHECKPOINT_PHASES:
            vcs.rollback_points[phase] = (
                commit.commit_hash if commit else self.git.get_current_commit()
            )

        return commit

    def commit_work_in_progress(
        self, session: OrchestrationSession
    ) -> Optional[PhaseCommit]:
        """Commit mid-phase work. The phase stays open and no rollback point is recorded."""
        if not session.vcs.enabled or session.vcs.mode != VcsMode.AUTO:
            return None
        domain, phase = session.current_domain, session.current_phase
        return self._commit(session, domain, phase, wip_commit_message(domain, phase))

    def _commit(
        self, session: OrchestrationSession, domain: Domain, phase: Phase, message: str
    ) -> Optional[PhaseCommit]:
        files = self.git.get_changed_files()
        if not files:
            return None

        commit_hash = self.git.create_commit(message)
        commit = PhaseCommit(
            domain=domain,
            phase=phase,
            commit_hash=commit_hash,
            message=message,
            files=files,
        )
        session.vcs.phase_commits.append(commit)
        session.record(
            HistoryEventType.PHASE_COMMIT,
            domain=domain,
            phase=phase,
            commit=commit_hash,
            files=len(files),
        )
        return commit

    def resolve_rollback_phase(
        self, session: OrchestrationSession, to_phase: Optional[Phase] = None
    ) -> Phase:
        """Pick the rollback target: explicit, else build, else design."""
        points = session.vcs.rollback_points
        if to_phase is not None:
            to_phase = Phase(to_phase)
            if to_phase not in points:
                recorded = ", ".join(p.value for p in points) or "none"
                raise StateError(
                    f"No rollback point for phase: {to_phase.value}",
                    hint=f"Recorded rollback points: {recorded}",
                )
            return to_phase

        for candidate in (Phase.BUILD, Phase.DESIGN):
            if candidate in points:
                return candidate

        raise StateError(
            "No rollback points recorded",
            hint="Rollback points are recorded when design or build completes",
        )

    def rollback(
        self, session: OrchestrationSession, to_phase: Optional[Phase] = None
    ) -> RollbackResult:
        """
        Hard-reset the working tree to a recorded rollback point.

        Dirty work is stashed first. Anything committed after the target is
        discarded from the branch.

        Raises:
            StateError: If VCS is disabled or no rollback point exists
            VcsOperationError: If stash or reset fails
        """
        vcs = session.vcs
        if not vcs.enabled:
            raise StateError(
                "Git workflow is disabled, nothing to roll back",
                hint="Rollback needs a session initialized with --vcs-mode auto",
            )
        if not vcs.rollback_points:
            raise StateError(
                "No rollback points recorded",
                hint="Rollback points are recorded when design or build completes",
            )

        target = self.resolve_rollback_phase(session, to_phase)
        commit_hash = vcs.rollback_points[target]
        domain = session.current_domain

        stashed = self.git.stash_changes(
            message=f"phasegate pre-rollback stash ({target.value})"
        )
        self.git.reset_hard(commit_hash)

        target_index = PHASES.index(target)

        def keep(entry_domain: Domain, entry_phase: Phase) -> bool:
            return entry_domain != domain or PHASES.index(entry_phase) < target_index

        before_phases = len(session.completed_phases)
        session.completed_phases = [
            p for p in session.completed_phases if keep(p.domain, p.phase)
        ]
        before_commits = len(vcs.phase_commits)
        vcs.phase_commits = [
            c for c in vcs.phase_commits if keep(c.domain, c.phase)
        ]
        vcs.rollback_points = {
            phase: ref
            for phase, ref in vcs.rollback_points.items()
            if PHASES.index(phase) <= target_index
        }

        session.current_phase = target
        session.checkpoint_status = CheckpointStatus.NONE

        result = RollbackResult(
            phase=target,
            commit_hash=commit_hash,
            stashed=stashed,
            removed_phases=before_phases - len(session.completed_phases),
            removed_commits=before_commits - len(vcs.phase_commits),
        )
        session.record(
            HistoryEventType.ROLLBACK,
            domain=domain,
            phase=target,
            commit=commit_hash,
            stashed=stashed,
        )
        return result

    def _pr_body(self, session: OrchestrationSession) -> str:
        vcs = session.vcs
        lines = ["## Orchestrated changes", "", "### Domains"]
        lines.extend(f"- {d.value}" for d in session.domains)
        lines.extend(["", "### Phase commits"])
        if vcs.phase_commits:
            lines.extend(
                f"- `{c.commit_hash[:8]}` {c.message}" for c in vcs.phase_commits
            )
        else:
            lines.append("- (none)")
        if vcs.base_commit:
            stat = self.git.diff_stat(vcs.base_commit)
            if stat:
                lines.extend(["", "### Changed files", "```", stat, "```"])
        return "\n".join(lines) + "\n"

    def _manual_steps(self, vcs: VcsState, pushed: bool) -> List[str]:
        branch = vcs.workflow_branch or "<workflow branch>"
        base = vcs.base_branch or "<base branch>"
        if not self._owns_branch(vcs):
            return [
                f"Review the changes on {branch}",
                f"Commit and push {branch} yourself, or move them to a feature branch first",
            ]
        steps = []
        if not pushed:
            if vcs.remote:
                steps.append(f"Push the branch: git push -u {vcs.remote} {branch}")
            else:
                steps.append("Add a remote: git remote add origin <url>")
                steps.append(f"Push the branch: git push -u origin {branch}")
        steps.append(f"Open a pull request from {branch} into {base}")
        return steps

    def _owns_branch(self, vcs: VcsState) -> bool:
        """True if the workflow branch was created by this run and may be pushed."""
        return (
            vcs.mode == VcsMode.AUTO
            and bool(vcs.workflow_branch)
            and vcs.workflow_branch != vcs.base_branch
            and vcs.workflow_branch not in self.protected_branches
        )

    def finalize(
        self, session: OrchestrationSession, mode: Optional[FinalizationMode] = None
    ) -> FinalizeResult:
        """
        Expose the workflow branch for integration.

        PR creation problems never fail the operation; they turn into manual
        next steps.
        """
        vcs = session.vcs
        if mode is not None:
            mode = FinalizationMode(mode)
            vcs.finalization_mode = mode

        result = FinalizeResult(branch=vcs.workflow_branch)
        if not vcs.enabled:
            result.manual_steps = [
                "Git workflow is disabled; commit and push your changes manually"
            ]
            return result

        if vcs.mode == VcsMode.AUTO and self.git.has_uncommitted_changes():
            domain = session.current_domain or (session.domains[-1] if session.domains else None)
            message = (
                f"{domain.value}: finalize orchestration" if domain else "finalize orchestration"
            )
            result.committed = self.git.create_commit(message)

        want_push = mode != FinalizationMode.MANUAL
        if want_push and vcs.remote and self._owns_branch(vcs):
            self.git.push(vcs.remote, vcs.workflow_branch)
            result.pushed = True

        want_pr = mode == FinalizationMode.PR or (mode is None and vcs.pr_required)
        if result.pushed and want_pr:
            if self.git.gh_available():
                title = f"Orchestrated improvements: {', '.join(d.value for d in session.domains)}"
                try:
                    result.pr_url = self.git.create_pull_request(
                        title=title,
                        body=self._pr_body(session),
                        base=vcs.base_branch or "main",
                        head=vcs.workflow_branch,
                    )
                except VcsOperationError as e:
                    result.pr_error = e.message
            else:
                result.pr_error = "GitHub CLI (gh) not available or not authenticated"

        if not result.pr_url:
            result.manual_steps = self._manual_steps(vcs, result.pushed)

        vcs.finalized = True
        vcs.pr_url = result.pr_url
        session.record(
            HistoryEventType.FINALIZE,
            branch=vcs.workflow_branch,
            pushed=result.pushed,
            pr_url=result.pr_url,
        )
        return result

    def status(self, session: OrchestrationSession) -> Dict[str, Any]:
        """VCS sub-state plus live working tree information."""
        info: Dict[str, Any] = {"vcs": session.vcs.model_dump(mode="json")}
        if session.vcs.enabled and self.git.is_git_repo():
            info["current_branch"] = self.git.get_current_branch()
            files = self.git.get_changed_files()
            info["uncommitted_files"] = files
            info["has_changes"] = bool(files)
        return info

    @staticmethod
    def disable(session: OrchestrationSession) -> bool:
        """Stop all git activity for the session. Returns False if already off."""
        was_enabled = session.vcs.enabled
        session.vcs.enabled = False
        session.vcs.mode = VcsMode.DISABLED
        if was_enabled:
            session.record(HistoryEventType.VCS_DISABLED)
        return was_enabled
