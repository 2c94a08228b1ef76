"""Tests for the orchestrator facade."""

import json

import pytest

from phasegate.config import LoggingConfig, PhasegateConfig
from phasegate.orchestrator import OperationResult


def init_disabled(orchestrator, domain="git", **kwargs):
    result = orchestrator.init(domain, vcs_mode="disabled", **kwargs)
    assert result.success, result.error
    return result


class TestOperationResult:
    """Test the structured result shape."""

    def test_ok_to_dict(self):
        assert OperationResult.ok({"a": 1}).to_dict() == {"success": True, "a": 1}

    def test_failure_to_dict(self, orchestrator):
        result = orchestrator.advance()
        data = result.to_dict()
        assert data["success"] is False
        assert data["error"] == "Orchestrator not initialized"
        assert data["error_kind"] == "state"
        assert "phasegate init" in data["hint"]


class TestInit:
    """Test session initialization through the facade."""

    def test_init_disabled(self, orchestrator):
        result = init_disabled(orchestrator, "logging")

        assert result.data["current_domain"] == "logging"
        assert result.data["current_phase"] == "design"
        assert result.data["prompt"] == "@logging-standards phase=design"
        assert result.data["vcs"]["enabled"] is False
        assert orchestrator.store.exists()

        gitignore = orchestrator.project_root / ".phasegate" / ".gitignore"
        assert gitignore.read_text().splitlines()[-1] == "*"

    def test_init_all_with_phase(self, orchestrator):
        result = init_disabled(orchestrator, "all", phase="build")
        assert len(result.data["domains"]) == 9
        assert result.data["current_phase"] == "build"

    def test_unknown_domain(self, orchestrator):
        result = orchestrator.init("security", vcs_mode="disabled")
        assert not result.success
        assert result.error_kind == "initialization"
        assert "all" in result.hint
        assert not orchestrator.store.exists()

    def test_unknown_vcs_mode(self, orchestrator):
        result = orchestrator.init("git", vcs_mode="sometimes")
        assert not result.success
        assert "Unknown VCS mode" in result.error

    def test_failed_vcs_setup_saves_nothing(self, orchestrator):
        """Test a VCS precondition failure leaves no session behind."""
        result = orchestrator.init("git", vcs_mode="auto")
        assert not result.success
        assert "Not a git repository" in result.error
        assert not orchestrator.store.exists()

    def test_default_mode_from_config(self, tmp_path, orchestrator_factory):
        project = tmp_path / "manual"
        project.mkdir()
        config = PhasegateConfig(
            git={"default_mode": "disabled"}, logging=LoggingConfig(enabled=False)
        )
        result = orchestrator_factory(project, config).init("git")
        assert result.success
        assert result.data["vcs"]["mode"] == "disabled"

    def test_reinit_replaces_session(self, orchestrator):
        init_disabled(orchestrator, "git")
        orchestrator.advance()
        init_disabled(orchestrator, "lint")
        status = orchestrator.status().data
        assert status["current_domain"] == "lint"
        assert status["completed_phases"] == []


class TestStatusAndReset:
    """Test status, progress and reset."""

    def test_status_uninitialized(self, orchestrator):
        result = orchestrator.status()
        assert result.success
        assert result.data["initialized"] is False

    def test_status(self, orchestrator):
        init_disabled(orchestrator, "all")
        data = orchestrator.status().data
        assert data["initialized"] is True
        assert data["current_domain"] == "naming"
        assert data["progress"]["total_phases"] == 45
        assert data["handoffs"] == {"pending": 0, "in_progress": 0, "complete": 0, "failed": 0}
        assert data["vcs"]["rollback_points"] == []

    def test_state_survives_new_handle(self, orchestrator, orchestrator_factory):
        init_disabled(orchestrator, "type")
        orchestrator.advance()
        other = orchestrator_factory(orchestrator.project_root)
        data = other.status().data
        assert data["current_domain"] == "type"
        assert data["checkpoint_status"] == "pending"

    def test_progress(self, orchestrator):
        init_disabled(orchestrator, "git", phase="validate-design")
        orchestrator.advance()
        data = orchestrator.progress().data
        assert data["completed_count"] == 1
        assert data["percentage"] == 20

    def test_reset(self, orchestrator):
        init_disabled(orchestrator)
        assert orchestrator.reset().data["deleted"] is True
        assert orchestrator.reset().data["deleted"] is False
        assert orchestrator.status().data["initialized"] is False


class TestAdvanceAndCheckpoints:
    """Test the phase cycle with checkpoints."""

    def test_advance_requests_checkpoint(self, orchestrator):
        init_disabled(orchestrator)
        data = orchestrator.advance().data
        assert data["needs_checkpoint"] is True
        assert data["checkpoint_status"] == "pending"
        assert data["approval_prompt"].startswith("## Checkpoint: design Complete")

    def test_advance_blocked_while_pending(self, orchestrator):
        init_disabled(orchestrator)
        orchestrator.advance()
        result = orchestrator.advance()
        assert not result.success
        assert result.error_kind == "state"
        assert "Checkpoint pending" in result.error

    def test_approve(self, orchestrator):
        init_disabled(orchestrator)
        orchestrator.advance()
        data = orchestrator.checkpoint("approve").data
        assert data["approved"] is True
        assert data["current_phase"] == "validate-design"
        assert data["prompt"] == "@git-standards phase=validate-design"

    def test_reject(self, orchestrator):
        init_disabled(orchestrator)
        orchestrator.advance()
        data = orchestrator.checkpoint("reject", "too broad").data
        assert data["rejected"] is True
        assert data["feedback"] == "too broad"
        assert data["current_phase"] == "design"
        assert data["rollback_available"] is False

    def test_checkpoint_status(self, orchestrator):
        init_disabled(orchestrator)
        orchestrator.advance()
        data = orchestrator.checkpoint("status").data
        assert data["checkpoint_status"] == "pending"
        assert data["current_phase"] == "design"

    def test_unknown_action(self, orchestrator):
        init_disabled(orchestrator)
        result = orchestrator.checkpoint("maybe")
        assert result.error_kind == "validation"

    def test_approve_without_checkpoint(self, orchestrator):
        init_disabled(orchestrator)
        result = orchestrator.checkpoint("approve")
        assert not result.success
        assert "No pending checkpoint" in result.error

    def test_full_run(self, orchestrator):
        """Test a single-domain run reaches completion."""
        init_disabled(orchestrator, "error")
        steps = 0
        while True:
            data = orchestrator.advance().data
            steps += 1
            if data.get("needs_checkpoint"):
                data = orchestrator.checkpoint("approve").data
            if data.get("complete"):
                break
        assert steps == 5
        assert orchestrator.status().data["progress"]["percentage"] == 100
        assert not orchestrator.advance().success


class TestRespond:
    """Test free-text checkpoint replies."""

    @pytest.fixture
    def pending(self, orchestrator):
        init_disabled(orchestrator)
        orchestrator.advance()
        return orchestrator

    def test_approve_text(self, pending):
        data = pending.respond("LGTM").data
        assert data["decision"] == "approve"
        assert data["current_phase"] == "validate-design"

    def test_reject_text(self, pending):
        data = pending.respond("no, rollback").data
        assert data["decision"] == "reject"
        assert data["checkpoint_status"] == "rejected"

    def test_modification_keeps_gate(self, pending):
        data = pending.respond("please rename the helper first").data
        assert data["decision"] == "modify"
        assert data["checkpoint_status"] == "pending"
        assert data["feedback"] == "please rename the helper first"

    def test_no_pending(self, orchestrator):
        init_disabled(orchestrator)
        result = orchestrator.respond("yes")
        assert not result.success
        assert result.error_kind == "state"


class TestHostIntegration:
    """Test prompts and hook responses."""

    def test_hook_allows_without_session(self, orchestrator):
        response = json.loads(orchestrator.hook_response().data["response"])
        assert response == {"decision": "allow"}

    def test_hook_blocks_while_pending(self, orchestrator):
        init_disabled(orchestrator)
        orchestrator.advance()
        response = json.loads(orchestrator.hook_response().data["response"])
        assert response["decision"] == "block"
        assert response["checkpoint"] == "design"

    def test_approval_prompt(self, orchestrator):
        init_disabled(orchestrator, "error")
        orchestrator.handoff_register({"to": "test-standards", "reason": "cover it"})
        data = orchestrator.approval_prompt(["src/api.py"]).data
        assert "- src/api.py" in data["prompt"]
        assert "→ @test-standards: cover it" in data["prompt"]
        message = json.loads(data["message"])
        assert message["type"] == "checkpoint"
        assert message["changes"] == ["src/api.py"]

    def test_worker_prompt_with_inbox(self, orchestrator):
        init_disabled(orchestrator, "all")
        orchestrator.handoff_register({"to": "naming-standards", "reason": "self"})
        data = orchestrator.prompt().data
        assert data["prompt"] == "@naming-standards phase=design"
        assert data["checkpoint_pending"] is False
        assert [h["reason"] for h in data["handoffs"]] == ["self"]


class TestHandoffs:
    """Test handoff operations through the facade."""

    def test_register_without_session(self, orchestrator):
        """Test handoffs can be queued before init."""
        data = orchestrator.handoff_register(
            {"to": "logging-standards", "reason": "log it", "from": "error-standards"}
        ).data
        assert data["position"] == 1
        assert orchestrator.handoff_status().data["pending"] == 1

    def test_lifecycle(self, orchestrator):
        init_disabled(orchestrator, "error")
        handoff_id = orchestrator.handoff_register(
            {"to": "logging-standards", "reason": "log it", "files": ["a.py"]}
        ).data["id"]

        assert orchestrator.handoff_next().data["handoff"]["id"] == handoff_id
        assert orchestrator.handoff_start(handoff_id).data["handoff"]["status"] == "in_progress"
        assert orchestrator.handoff_next().data["handoff"] is None

        done = orchestrator.handoff_complete(handoff_id, "added logging").data
        assert done["handoff"]["summary"] == "added logging"
        assert orchestrator.handoff_prune().data["removed"] == 1
        assert orchestrator.handoff_status().data["queue"] == []

    def test_fail_default_reason(self, orchestrator):
        init_disabled(orchestrator, "error")
        handoff_id = orchestrator.handoff_register(
            {"to": "test-standards", "reason": "cover"}
        ).data["id"]
        data = orchestrator.handoff_fail(handoff_id).data
        assert data["handoff"]["failure_reason"] == "No reason provided"

    def test_cycle_is_skipped(self, orchestrator):
        init_disabled(orchestrator, "all")
        orchestrator.advance()
        result = orchestrator.handoff_register({"to": "naming-standards", "reason": "again"})
        assert result.success
        assert result.data["skipped"] is True
        assert orchestrator.handoff_status().data["pending"] == 0

    @pytest.mark.parametrize(
        "payload",
        [["not", "an", "object"], {"reason": "no target"}, {"to": "nobody", "reason": "x"}],
    )
    def test_invalid_register(self, orchestrator, payload):
        result = orchestrator.handoff_register(payload)
        assert not result.success
        assert result.error_kind == "validation"

    def test_invalid_id(self, orchestrator):
        result = orchestrator.handoff_start("handoff-bad")
        assert result.error_kind == "validation"

    def test_clear(self, orchestrator):
        orchestrator.handoff_register({"to": "test-standards", "reason": "x"})
        orchestrator.handoff_clear()
        assert orchestrator.handoff_status().data["queue"] == []

    def test_suggest(self, orchestrator):
        data = orchestrator.handoff_suggest("error-standards").data
        assert data["suggestions"] == ["logging-standards", "test-standards"]
        assert orchestrator.handoff_suggest("").error_kind == "validation"


class TestVcsDisabled:
    """Test VCS operations on a session without git."""

    def test_vcs_status(self, orchestrator):
        init_disabled(orchestrator)
        data = orchestrator.vcs_status().data
        assert data["vcs"] == {"enabled": False}

    def test_commit_and_disable(self, orchestrator):
        init_disabled(orchestrator)
        assert orchestrator.vcs_commit().data["committed"] is False
        assert orchestrator.vcs_disable().data["disabled"] is False

    def test_rollback(self, orchestrator):
        init_disabled(orchestrator)
        assert orchestrator.rollback("design").error_kind == "state"
        result = orchestrator.rollback("deploy")
        assert result.error_kind == "validation"
        assert "Invalid phase" in result.error

    def test_finalize(self, orchestrator):
        init_disabled(orchestrator)
        data = orchestrator.finalize().data
        assert data["pushed"] is False
        assert data["manual_steps"]
        assert orchestrator.finalize("carrier-pigeon").error_kind == "validation"


class TestVcsAuto:
    """Test the git workflow end to end through the facade."""

    @pytest.fixture
    def auto(self, work_repo, orchestrator_factory):
        orchestrator = orchestrator_factory(work_repo)
        result = orchestrator.init("git", vcs_mode="auto")
        assert result.success, result.error
        return orchestrator

    def test_init_creates_branch(self, auto):
        data = auto.vcs_status().data
        assert data["vcs"]["mode"] == "auto"
        assert data["current_branch"].startswith("feature/orchestrator-git-")
        assert data["has_changes"] is False

    def test_protected_branch_refused(self, git_repo, orchestrator_factory):
        result = orchestrator_factory(git_repo).init("git", vcs_mode="auto")
        assert not result.success
        assert "protected branch" in result.error

    def test_commit_rollback_finalize(self, auto, work_repo):
        (work_repo / "design.md").write_text("plan\n")
        data = auto.advance().data
        assert data["commit"]["message"] == "git: complete design phase"
        auto.checkpoint("approve")

        (work_repo / "wip.py").write_text("x = 1\n")
        committed = auto.vcs_commit().data
        assert committed["committed"] is True
        assert committed["commit"]["message"] == "git: wip validate-design"
        assert auto.vcs_commit().data["committed"] is False

        rolled = auto.rollback("design").data
        assert rolled["phase"] == "design"
        assert rolled["current_phase"] == "design"
        assert not (work_repo / "wip.py").exists()
        assert (work_repo / "design.md").exists()

        final = auto.finalize().data
        assert final["pushed"] is False
        assert final["branch"].startswith("feature/orchestrator-git-")

    def test_disable(self, auto):
        assert auto.vcs_disable().data["disabled"] is True
        assert auto.vcs_status().data["message"] == "Git workflow not active"

    def test_wip_commit_is_not_a_phase_completion(self, auto, work_repo):
        """Test a manual commit mid-design neither claims completion nor sets a rollback point."""
        (work_repo / "draft.md").write_text("draft\n")
        data = auto.vcs_commit().data

        assert data["committed"] is True
        assert data["commit"]["message"] == "git: wip design"
        assert data["commit"]["phase"] == "design"
        assert auto.status().data["vcs"]["rollback_points"] == []
        assert auto.checkpoint("status").data["rollback_points"] == []

    def test_custom_state_and_log_dirs_stay_out_of_commits(
        self, work_repo, git_cmd, orchestrator_factory
    ):
        config = PhasegateConfig(
            state={"state_dir": "state"},
            logging={"enabled": True, "output_dir": "var/logs"},
        )
        orchestrator = orchestrator_factory(work_repo, config)
        assert orchestrator.init("git", vcs_mode="auto").success

        (work_repo / "d.md").write_text("plan\n")
        data = orchestrator.advance().data

        assert data["commit"]["files"] == ["d.md"]
        committed = git_cmd(work_repo, "show", "--name-only", "--format=", "HEAD").splitlines()
        assert committed == ["d.md"]
        assert (work_repo / "state" / "orchestrator-state.json").exists()
        assert (work_repo / "state" / ".gitignore").read_text().splitlines()[-1] == "*"
        assert (work_repo / "var" / "logs" / ".gitignore").exists()
        assert orchestrator.vcs_status().data["has_changes"] is False


class TestActivityLogging:
    """Test operations write activity events."""

    def test_events_written(self, tmp_path, orchestrator_factory):
        project = tmp_path / "logged"
        project.mkdir()
        orchestrator = orchestrator_factory(project, PhasegateConfig())
        init_disabled(orchestrator)
        orchestrator.checkpoint("approve")

        events = orchestrator.logger.get_recent_events()
        types = [e.event_type.value for e in events]
        assert types == ["session_init", "error"]
        assert events[1].data["action"] == "checkpoint approve"
        assert events[1].data["error_kind"] == "state"
        assert orchestrator.logger.main_log_file.is_relative_to(project / ".phasegate" / "logs")

    def test_configured_level_filters_events(self, tmp_path, orchestrator_factory):
        project = tmp_path / "quiet"
        project.mkdir()
        config = PhasegateConfig(logging={"level": "ERROR"})
        orchestrator = orchestrator_factory(project, config)
        init_disabled(orchestrator)
        orchestrator.checkpoint("approve")

        events = orchestrator.logger.get_recent_events()
        assert [e.event_type.value for e in events] == ["error"]
