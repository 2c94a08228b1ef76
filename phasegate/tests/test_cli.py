"""Tests for phasegate CLI commands."""

import json

import pytest
from click.testing import CliRunner

from phasegate.cli.main import cli


@pytest.fixture
def project(tmp_path, monkeypatch):
    """Empty workspace with the global config isolated."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def invoke(project):
    """Run the CLI against ``project``."""
    runner = CliRunner()

    def _invoke(*args):
        return runner.invoke(cli, ["--project-dir", str(project), *args])

    return _invoke


def payload(result):
    return json.loads(result.stdout)


class TestCLI:
    """Test top-level CLI behavior."""

    def test_cli_help(self):
        """Test CLI help output."""
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "multi-domain phase orchestrator" in result.output
        for command in ["init", "advance", "checkpoint", "handoff", "rollback", "finalize"]:
            assert command in result.output

    def test_group_without_subcommand_prints_help(self, invoke):
        result = invoke("handoff")
        assert result.exit_code == 0
        assert "register" in result.output


class TestInitCommand:
    """Test the init command."""

    def test_init(self, invoke, project):
        result = invoke("init", "git", "--vcs-mode", "disabled")
        assert result.exit_code == 0, result.output
        data = payload(result)
        assert data["success"] is True
        assert data["current_domain"] == "git"
        assert (project / ".phasegate" / "state" / "orchestrator-state.json").exists()

    def test_init_invocation_style(self, invoke):
        result = invoke("init", "domain=all", "phase=build", "gitMode=disabled")
        assert result.exit_code == 0, result.output
        data = payload(result)
        assert len(data["domains"]) == 9
        assert data["current_phase"] == "build"

    def test_init_invalid_domain(self, invoke):
        result = invoke("init", "security")
        assert result.exit_code == 1
        data = payload(result)
        assert data["success"] is False
        assert data["error"] == "Invalid domain: security"
        assert data["error_kind"] == "validation"

    def test_init_auto_outside_git(self, invoke):
        result = invoke("init", "git", "--vcs-mode", "auto")
        assert result.exit_code == 1
        assert "Not a git repository" in payload(result)["error"]

    def test_init_human_output(self, invoke):
        result = invoke("--no-json", "init", "logging", "-g", "disabled")
        assert result.exit_code == 0, result.output
        assert "Orchestration" in result.output
        assert "@logging-standards phase=design" in result.output


class TestPhaseCommands:
    """Test advance, checkpoint and status commands."""

    @pytest.fixture(autouse=True)
    def session(self, invoke):
        result = invoke("init", "git", "--vcs-mode", "disabled")
        assert result.exit_code == 0, result.output

    def test_advance_and_approve(self, invoke):
        data = payload(invoke("advance"))
        assert data["needs_checkpoint"] is True

        blocked = invoke("advance")
        assert blocked.exit_code == 1
        assert "Checkpoint pending" in payload(blocked)["error"]

        approved = payload(invoke("checkpoint", "approve"))
        assert approved["current_phase"] == "validate-design"

    def test_reject_with_feedback(self, invoke):
        invoke("advance")
        data = payload(invoke("checkpoint", "reject", "split", "the", "module"))
        assert data["rejected"] is True
        assert data["feedback"] == "split the module"

    def test_respond(self, invoke):
        invoke("advance")
        data = payload(invoke("checkpoint", "respond", "looks good"))
        assert data["decision"] == "approve"

    def test_hook(self, invoke):
        assert json.loads(invoke("checkpoint", "hook").stdout) == {"decision": "allow"}
        invoke("advance")
        assert json.loads(invoke("checkpoint", "hook").stdout)["decision"] == "block"

    def test_checkpoint_prompt(self, invoke):
        result = invoke("checkpoint", "prompt", "src/a.py")
        assert "### Changes Made\n- src/a.py" in payload(result)["prompt"]

        message = json.loads(invoke("checkpoint", "prompt", "--message").stdout)
        assert message["type"] == "checkpoint"
        assert message["domain"] == "git"

    def test_checkpoint_prompt_human(self, invoke):
        result = invoke("--no-json", "checkpoint", "prompt")
        assert result.exit_code == 0
        assert "Checkpoint: design Complete" in result.output

    def test_status(self, invoke):
        data = payload(invoke("status"))
        assert data["initialized"] is True
        assert data["prompt"] == "@git-standards phase=design"

    def test_prompt_and_progress(self, invoke):
        assert payload(invoke("prompt"))["prompt"] == "@git-standards phase=design"
        assert payload(invoke("progress"))["total_phases"] == 5

        result = invoke("--no-json", "progress")
        assert result.exit_code == 0
        assert "0/5 phases" in result.output

    def test_rollback_rejects_unknown_phase(self, invoke):
        result = invoke("rollback", "deploy")
        assert result.exit_code == 2

    def test_rollback_without_git(self, invoke):
        result = invoke("rollback")
        assert result.exit_code == 1
        assert payload(result)["error_kind"] == "state"

    def test_vcs_and_finalize(self, invoke):
        assert payload(invoke("vcs", "status"))["message"] == "Git workflow not active"
        data = payload(invoke("finalize", "--mode", "manual"))
        assert data["pushed"] is False
        assert data["manual_steps"]

    def test_reset(self, invoke):
        assert payload(invoke("reset"))["deleted"] is True
        result = invoke("--no-json", "status")
        assert "not initialized" in result.output


class TestHandoffCommands:
    """Test handoff commands."""

    def test_register_and_status(self, invoke):
        invoke("init", "error", "--vcs-mode", "disabled")
        result = invoke(
            "handoff",
            "register",
            json.dumps({"to": "logging-standards", "reason": "log new errors"}),
        )
        assert result.exit_code == 0, result.output
        handoff_id = payload(result)["id"]

        status = invoke("--no-json", "handoff", "status")
        assert status.exit_code == 0
        assert "Pending: 1" in status.output
        assert payload(invoke("handoff", "status"))["queue"][0]["to_agent"] == "logging-standards"

        assert payload(invoke("handoff", "start", handoff_id))["handoff"]["status"] == "in_progress"
        done = payload(invoke("handoff", "complete", handoff_id, "added", "logging"))
        assert done["handoff"]["summary"] == "added logging"
        assert payload(invoke("handoff", "prune"))["removed"] == 1

    def test_invalid_json(self, invoke):
        result = invoke("handoff", "register", "{not json")
        assert result.exit_code == 1
        assert payload(result)["error"].startswith("Invalid JSON syntax")

    def test_suggest_human(self, invoke):
        result = invoke("--no-json", "handoff", "suggest", "error-standards")
        assert result.exit_code == 0
        assert "@logging-standards" in result.output
        assert "@test-standards" in result.output
