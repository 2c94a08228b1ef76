"""Shared pytest fixtures for phasegate tests."""

import subprocess
from pathlib import Path
from typing import Generator

import pytest

from phasegate.config import LoggingConfig, PhasegateConfig
from phasegate.core import GitUtils, OrchestrationSession, PhaseStateMachine
from phasegate.orchestrator import Orchestrator


def run_git(repo_path: Path, *args: str) -> str:
    """Run a git command in ``repo_path`` and return stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=repo_path,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout.strip()


# ============================================================================
# Git Repository Fixtures
# ============================================================================


@pytest.fixture
def git_repo(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a temporary git repository for testing.

    The repository is initialized with:
    - Git config (user.name, user.email, no commit signing)
    - Initial commit with README.md on ``main``

    Yields:
        Path to the git repository
    """
    repo_path = tmp_path / "test_repo"
    repo_path.mkdir(parents=True, exist_ok=True)

    run_git(repo_path, "init")
    run_git(repo_path, "symbolic-ref", "HEAD", "refs/heads/main")
    run_git(repo_path, "config", "user.name", "Test User")
    run_git(repo_path, "config", "user.email", "test@example.com")
    run_git(repo_path, "config", "commit.gpgsign", "false")

    readme = repo_path / "README.md"
    readme.write_text("# Test Repository\n\nGenerated for testing.\n")
    run_git(repo_path, "add", ".")
    run_git(repo_path, "commit", "-m", "Initial commit")

    yield repo_path


@pytest.fixture
def work_repo(git_repo: Path) -> Path:
    """Git repository checked out on an unprotected ``work`` branch."""
    run_git(git_repo, "checkout", "-b", "work")
    return git_repo


@pytest.fixture
def remote_repo(work_repo: Path, tmp_path: Path) -> Path:
    """``work_repo`` with a bare repository configured as ``origin``."""
    bare = tmp_path / "origin.git"
    subprocess.run(
        ["git", "init", "--bare", str(bare)],
        check=True,
        capture_output=True,
    )
    run_git(work_repo, "remote", "add", "origin", str(bare))
    return work_repo


# ============================================================================
# Session Fixtures
# ============================================================================


@pytest.fixture
def session() -> OrchestrationSession:
    return OrchestrationSession()


@pytest.fixture
def machine() -> PhaseStateMachine:
    """State machine without a git workflow."""
    return PhaseStateMachine()


@pytest.fixture
def config() -> PhasegateConfig:
    """Default configuration with activity logging turned off."""
    return PhasegateConfig(logging=LoggingConfig(enabled=False))


def make_orchestrator(project_root: Path, config: PhasegateConfig) -> Orchestrator:
    return Orchestrator(
        project_root=project_root,
        config=config,
        git=GitUtils(project_root, timeout=30.0),
    )


@pytest.fixture
def orchestrator(tmp_path: Path, config: PhasegateConfig) -> Orchestrator:
    """Orchestrator for a plain directory (use vcs_mode='disabled')."""
    project = tmp_path / "project"
    project.mkdir()
    return make_orchestrator(project, config)


@pytest.fixture
def git_cmd():
    """Factory fixture for running raw git commands in a test repo."""
    return run_git


@pytest.fixture
def orchestrator_factory(config: PhasegateConfig):
    """Factory fixture for orchestrators bound to a given project root."""

    def _make(project_root: Path, cfg: PhasegateConfig = None) -> Orchestrator:
        return make_orchestrator(project_root, cfg or config)

    return _make
