"""Version control operations needed by the sync workflow.

The workflow only depends on the VersionControl protocol. GitRepository is the
implementation backed by the `git` CLI, run through a ProcessExecutor.
"""

import logging
from pathlib import Path
from typing import Iterable, Protocol

from ocm_support.errors import InputValidationError
from ocm_support.helpers.process import CommandResult, ProcessExecutor

log = logging.getLogger(__name__)


class VersionControl(Protocol):
    """Operations the sync workflow performs on a local clone."""

    repo_url: str
    local_path: Path

    def clone(self) -> None: ...

    def create_branch(self, name: str) -> None: ...

    def stage_all(self) -> None: ...

    def commit(self, message: str) -> None: ...

    def push(self, remote: str, branch: str) -> None: ...


def check_ref_format(name: str, executor: ProcessExecutor) -> CommandResult:
    """Ask git if a name is a valid branch name.

    Args:
        name: The proposed branch name.
        executor: The ProcessExecutor to run git with.

    Raises:
        ExternalToolError: If git rejects the name.
    """
    return executor.execute(["git", "check-ref-format", "--branch", name])


class GitRepository:
    """A remote git repository bound to a local working directory.

    Args:
        repo_url: The URL of the remote to clone.
        local_path: The directory the repository is cloned into.
        executor: The ProcessExecutor used to run git.
    """

    def __init__(self, repo_url: str, local_path: Path | str, executor: ProcessExecutor):
        self.repo_url = repo_url
        self.local_path = Path(local_path)
        self.executor = executor

    def __repr__(self) -> str:
        """Print the repository in human friendly way."""
        return f"GitRepository({self.repo_url!r} at {str(self.local_path)!r})"

    def is_cloned(self) -> bool:
        """Check if the local path holds a git working tree."""
        return (self.local_path / ".git").exists()

    def clone(self) -> None:
        """Clone the remote into the local path.

        Raises:
            ExternalToolError: If the path is not empty or the remote is unreachable.
        """
        log.info("Cloning %s into %s", self.repo_url, self.local_path)
        self.executor.execute(["git", "clone", self.repo_url, str(self.local_path)])

    def remote_add(self, name: str, url: str) -> None:
        """Add a new remote to the clone."""
        self._git("remote", "add", name, url)

    def create_branch(self, name: str) -> None:
        """Create a new branch from the current HEAD and check it out.

        Raises:
            ExternalToolError: If the branch already exists or the name is invalid.
        """
        log.info("Creating branch %s", name)
        self._git("checkout", "-b", name)

    def stage_files(self, files: Iterable[str]) -> None:
        """Stage the given files, one at a time, stopping at the first failure."""
        for file in files:
            self._git("add", "--", file)

    def stage_all(self) -> None:
        """Stage every change of the working tree, including deletions."""
        self._git("add", "--all")

    def commit(self, message: str) -> None:
        """Commit the staged changes.

        Raises:
            ExternalToolError: If nothing is staged.
        """
        log.info("Committing: %s", message)
        self._git("commit", "-m", message)

    def push(self, remote: str, branch: str) -> None:
        """Push a branch to a remote.

        Raises:
            ExternalToolError: On authentication failures, rejected pushes or network errors.
        """
        log.info("Pushing branch %s to %s", branch, remote)
        self._git("push", remote, branch)

    def _git(self, *args: str) -> CommandResult:
        """Run a git subcommand against the local clone.

        Raises:
            InputValidationError: If the repository has not been cloned yet.
            ExternalToolError: If git fails.
        """
        if not self.is_cloned():
            raise InputValidationError(
                "No git repository found at %s, it must be cloned first" % self.local_path
            )

        return self.executor.execute(["git", "-C", str(self.local_path), *args])
