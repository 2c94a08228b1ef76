"""Git and GitHub CLI wrappers used by the VCS workflow."""

import shutil
import subprocess
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .exceptions import VcsOperationError

DEFAULT_TIMEOUT = 30.0

# Never staged: the orchestrator's own config, state and logs
STATE_DIR_NAME = ".phasegate"


class GitUtils:
    """
    Safe wrappers around git commands.

    Every command blocks with an enforced timeout; a timeout or non-zero exit
    raises VcsOperationError carrying git's own message.
    """

    def __init__(
        self,
        repo_path: Optional[Path] = None,
        timeout: float = DEFAULT_TIMEOUT,
        excluded_paths: Iterable[str] = (STATE_DIR_NAME,),
    ):
        """
        Initialize Git utilities.

        Args:
            repo_path: Path to git repository (default: current directory)
            timeout: Seconds before any single command is abandoned
            excluded_paths: Repo-relative directories that are never staged,
                stashed or reported as changes
        """
        self.repo_path = Path(repo_path) if repo_path else Path.cwd()
        self.timeout = timeout
        self.excluded_paths: List[str] = []
        self.exclude(*excluded_paths)

    def exclude(self, *paths: str) -> None:
        """Add repo-relative directories to the excluded set."""
        for path in paths:
            path = Path(path).as_posix().strip("/")
            if path and path != "." and path not in self.excluded_paths:
                self.excluded_paths.append(path)

    def is_excluded(self, path: str) -> bool:
        return any(path == p or path.startswith(f"{p}/") for p in self.excluded_paths)

    def _run(
        self, program: str, *args: str, check: bool = True
    ) -> Tuple[int, str, str]:
        command = [program, *args]
        try:
            result = subprocess.run(
                command,
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise VcsOperationError(
                f"{program} command not found",
                hint=f"Install {program} and make sure it is on PATH",
            ) from e
        except subprocess.TimeoutExpired as e:
            raise VcsOperationError(
                f"Command timed out after {self.timeout:g}s: {' '.join(command)}",
                hint="Check for a stuck lock file or credential prompt, then retry",
            ) from e
        except OSError as e:
            raise VcsOperationError(f"{program} operation failed: {e}") from e

        if check and result.returncode != 0:
            raise VcsOperationError(
                f"Command failed: {' '.join(command)}\nError: {result.stderr.strip()}"
            )

        return result.returncode, result.stdout, result.stderr

    def _run_git(self, *args: str, check: bool = True) -> Tuple[int, str, str]:
        """
        Run a git command.

        Args:
            args: Git command arguments
            check: Raise error on non-zero exit

        Returns:
            Tuple of (returncode, stdout, stderr)

        Raises:
            VcsOperationError: If command fails and check=True, or times out
        """
        return self._run("git", *args, check=check)

    def is_git_repo(self) -> bool:
        """Check if the repository path is inside a git work tree."""
        try:
            returncode, _, _ = self._run_git("rev-parse", "--git-dir", check=False)
        except VcsOperationError:
            return False
        return returncode == 0

    def get_current_branch(self) -> str:
        """
        Get the name of the current branch.

        Raises:
            VcsOperationError: If not on a branch
        """
        _, stdout, _ = self._run_git("rev-parse", "--abbrev-ref", "HEAD")
        branch = stdout.strip()

        if branch == "HEAD":
            raise VcsOperationError(
                "Not currently on a branch (detached HEAD)",
                hint="Check out a branch before starting a workflow",
            )

        return branch

    def get_current_commit(self) -> str:
        """Get the current commit hash."""
        _, stdout, _ = self._run_git("rev-parse", "HEAD")
        return stdout.strip()

    def has_uncommitted_changes(self) -> bool:
        """True if there are uncommitted changes outside the state directory."""
        return bool(self.get_changed_files())

    def get_changed_files(self, since_commit: Optional[str] = None) -> List[str]:
        """
        Get list of changed files.

        Args:
            since_commit: Compare against this commit (default: working tree status)

        Returns:
            List of changed file paths
        """
        if since_commit:
            _, stdout, _ = self._run_git("diff", "--name-only", since_commit)
            return [f for f in stdout.strip().split("\n") if f]

        _, stdout, _ = self._run_git("status", "--porcelain", "--untracked-files=all")
        files = []
        for line in stdout.split("\n"):
            if not line.strip():
                continue
            # Porcelain format: "XY filename"
            path = line[3:]
            if " -> " in path:
                path = path.split(" -> ", 1)[1]
            path = path.strip('"')
            if self.is_excluded(path):
                continue
            files.append(path)
        return files

    def stage_all(self) -> None:
        """Stage every change except the excluded directories."""
        self._run_git("add", "-A")
        for path in self.excluded_paths:
            if (self.repo_path / path).exists():
                self._run_git("reset", "-q", "--", f"{path}/", check=False)

    def create_commit(self, message: str, allow_empty: bool = False) -> str:
        """
        Stage all changes and create a commit.

        Args:
            message: Commit message
            allow_empty: Allow empty commits

        Returns:
            Commit hash
        """
        self.stage_all()

        args = ["commit", "-m", message]
        if allow_empty:
            args.append("--allow-empty")
        self._run_git(*args)

        return self.get_current_commit()

    def branch_exists(self, name: str) -> bool:
        returncode, _, _ = self._run_git(
            "rev-parse", "--verify", "--quiet", f"refs/heads/{name}", check=False
        )
        return returncode == 0

    def list_branches(self) -> List[str]:
        _, stdout, _ = self._run_git("branch", "--format=%(refname:short)")
        return [b.strip() for b in stdout.split("\n") if b.strip()]

    def create_branch(self, name: str, checkout: bool = True) -> None:
        """
        Create a branch from HEAD.

        Args:
            name: Branch name
            checkout: Switch to the new branch
        """
        if checkout:
            self._run_git("checkout", "-b", name)
        else:
            self._run_git("branch", name)

    def reset_hard(self, ref: str) -> None:
        """
        Hard reset to a git reference.

        Raises:
            VcsOperationError: If reset fails
        """
        self._run_git("reset", "--hard", ref)

    def stash_changes(self, message: Optional[str] = None) -> bool:
        """
        Stash current changes, including untracked files.

        Returns:
            True if changes were stashed, False if nothing to stash
        """
        if not self.has_uncommitted_changes():
            return False

        args = ["stash", "push", "--include-untracked"]
        if message:
            args.extend(["-m", message])
        args.extend(["--", "."])
        args.extend(f":(exclude){path}" for path in self.excluded_paths)

        self._run_git(*args)
        return True

    def stash_pop(self) -> None:
        self._run_git("stash", "pop")

    def get_remotes(self) -> List[str]:
        _, stdout, _ = self._run_git("remote")
        return [r.strip() for r in stdout.split("\n") if r.strip()]

    def has_remote(self, name: Optional[str] = None) -> bool:
        remotes = self.get_remotes()
        if name is None:
            return bool(remotes)
        return name in remotes

    def push(self, remote: str, branch: str, set_upstream: bool = True) -> None:
        args = ["push"]
        if set_upstream:
            args.append("-u")
        args.extend([remote, branch])
        self._run_git(*args)

    def diff_stat(self, base: str, head: str = "HEAD") -> str:
        """Summary of changed files between two refs."""
        _, stdout, _ = self._run_git("diff", "--stat", f"{base}..{head}")
        return stdout.strip()

    def gh_available(self) -> bool:
        """True if the GitHub CLI is installed and authenticated."""
        if shutil.which("gh") is None:
            return False
        try:
            returncode, _, _ = self._run("gh", "auth", "status", check=False)
        except VcsOperationError:
            return False
        return returncode == 0

    def create_pull_request(
        self, title: str, body: str, base: str, head: str
    ) -> str:
        """
        Open a pull request with the GitHub CLI.

        Returns:
            URL of the created pull request
        """
        _, stdout, _ = self._run(
            "gh", "pr", "create",
            "--title", title,
            "--body", body,
            "--base", base,
            "--head", head,
        )
        return stdout.strip().splitlines()[-1] if stdout.strip() else ""
