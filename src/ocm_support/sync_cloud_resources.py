"""Module responsible for syncing cloud resources into AMS.

This module includes both
1. the high level function that runs the whole sync
2. the models describing a sync request, its steps and its result

The main function exposed is sync_cloud_resources(request), which will clone
the upstream repository into a temporary directory, replace its cloud
resources CSV, regenerate the quota rules, commit everything on a new branch
and, unless it is a dry run, push that branch.

Every step runs only if the previous one succeeded. The first failure is
raised as a StepFailedError and nothing after it is executed.
"""

import logging
from contextlib import contextmanager
from enum import StrEnum
from pathlib import Path
from typing import Callable, Iterator, List

from pydantic import BaseModel, ConfigDict

from ocm_support.config import CleanupPolicy, SyncConfig
from ocm_support.errors import FilesystemError, InputValidationError, StepFailedError, SyncError
from ocm_support.helpers.files import create_work_dir, remove_work_dir, replace_file_content
from ocm_support.helpers.git import GitRepository, VersionControl
from ocm_support.helpers.process import ProcessExecutor
from ocm_support.helpers.validators import validate_branch_name, validate_file_exists

log = logging.getLogger(__name__)

RepositoryFactory = Callable[[str, Path, ProcessExecutor], VersionControl]


class SyncStep(StrEnum):
    """Class representing the steps of a sync, in the order they run."""

    VALIDATE_BRANCH = "validate-branch"
    VALIDATE_CSV = "validate-csv"
    CREATE_WORK_DIR = "create-work-dir"
    CLONE = "clone"
    BRANCH = "branch"
    REPLACE_CONTENT = "replace-content"
    BUILD_AND_GENERATE = "build-and-generate"
    STAGE = "stage"
    COMMIT = "commit"
    PUSH = "push"


class SyncRequest(BaseModel):
    """Class representing the input of a single sync.

    Args:
        branch_name: The branch to create and push the changes to.
        csv_path: Path to the CSV file with the new cloud resources.
        dry_run: If True, everything but the push is done.

    Raises:
        ValidationError: From pydantic if the validation failed.
    """

    model_config = ConfigDict(frozen=True)

    branch_name: str
    csv_path: str
    dry_run: bool = True


class SyncResult(BaseModel):
    """Class representing a finished sync.

    Args:
        work_dir: The temporary clone. It no longer exists if it was cleaned up.
        branch: The branch that was created.
        commit_message: The message of the new commit.
        pushed: If the branch was pushed to the remote.
        steps: The steps that completed, in order.
    """

    work_dir: Path
    branch: str
    commit_message: str
    pushed: bool
    steps: List[SyncStep]


@contextmanager
def _step(step: SyncStep, description: str, completed: List[SyncStep]) -> Iterator[None]:
    """Wrap any SyncError raised in the block with the step that failed."""
    try:
        yield
    except StepFailedError:
        raise
    except SyncError as e:
        raise StepFailedError(step, description, e) from e

    completed.append(step)


def sync_cloud_resources(
    request: SyncRequest,
    config: SyncConfig | None = None,
    executor: ProcessExecutor | None = None,
    repository_factory: RepositoryFactory = GitRepository,
) -> SyncResult:
    """Sync the cloud resources CSV into the upstream repository.

    Args:
        request: The branch, CSV and dry-run flag of this run.
        config: The SyncConfig to use. Defaults are used if not given.
        executor: The ProcessExecutor for all external commands.
        repository_factory: Creates the VersionControl client for the clone, from the
                            repository URL, local path and executor.

    Returns:
        The SyncResult of a successful sync.

    Raises:
        StepFailedError: For the first step that failed. Its `kind` tells if the input
                         was invalid, an external command failed or a local file could
                         not be handled.
    """
    if config is None:
        config = SyncConfig()
    if executor is None:
        executor = ProcessExecutor(timeout=config.command_timeout)

    completed: List[SyncStep] = []
    branch = request.branch_name

    # Both values are checked before any external command is spawned
    with _step(SyncStep.VALIDATE_BRANCH, "invalid input", []):
        if not branch:
            raise InputValidationError("branch name cannot be empty")
    with _step(SyncStep.VALIDATE_CSV, "invalid input", []):
        if not request.csv_path:
            raise InputValidationError("csv path cannot be empty")

    log.info("Validating branch name %s", branch)
    with _step(SyncStep.VALIDATE_BRANCH, "incorrect branch name", completed):
        validate_branch_name(branch, executor)

    log.info("Validating csv path %s", request.csv_path)
    with _step(
        SyncStep.VALIDATE_CSV,
        "an error occurred while checking if the csv file exists",
        completed,
    ):
        validate_file_exists(request.csv_path)

    log.info("Creating temporary directory")
    with _step(
        SyncStep.CREATE_WORK_DIR,
        "an error occurred while creating temporary directory",
        completed,
    ):
        work_dir = create_work_dir(branch, root=config.work_dir_root)

    try:
        pushed = _run_in_work_dir(
            request, config, executor, repository_factory, work_dir, completed
        )
    except StepFailedError:
        if config.cleanup == CleanupPolicy.ALWAYS:
            _cleanup_work_dir(work_dir)
        else:
            log.info("Leaving %s in place for inspection", work_dir)
        raise

    if config.cleanup in (CleanupPolicy.ALWAYS, CleanupPolicy.ON_SUCCESS):
        _cleanup_work_dir(work_dir)

    return SyncResult(
        work_dir=work_dir,
        branch=branch,
        commit_message=_commit_message(config, branch),
        pushed=pushed,
        steps=completed,
    )


def _run_in_work_dir(
    request: SyncRequest,
    config: SyncConfig,
    executor: ProcessExecutor,
    repository_factory: RepositoryFactory,
    work_dir: Path,
    completed: List[SyncStep],
) -> bool:
    """Run every step from the clone onwards.

    Returns:
        True if the branch was pushed, False for a dry run.
    """
    branch = request.branch_name
    repo = repository_factory(config.upstream_repo, work_dir, executor)

    log.info("Cloning %s at: %s", config.upstream_repo, work_dir)
    with _step(SyncStep.CLONE, "an error occurred while cloning the repo", completed):
        repo.clone()

    log.info("Creating a new branch")
    with _step(SyncStep.BRANCH, "an error occurred while creating a new branch", completed):
        repo.create_branch(branch)

    log.info("Replacing cloud resources file")
    with _step(
        SyncStep.REPLACE_CONTENT,
        "an error occurred while replacing the cloud resources file",
        completed,
    ):
        replace_file_content(work_dir / config.cloud_resources_file, request.csv_path)

    log.info("Generating quota rules")
    with _step(
        SyncStep.BUILD_AND_GENERATE,
        "an error occurred while generating quota rules",
        completed,
    ):
        executor.execute(config.build_command, cwd=work_dir)
        executor.execute(
            config.generate_command.replace("{work_dir}", str(work_dir)), cwd=work_dir
        )

    log.info("Staging changes")
    with _step(SyncStep.STAGE, "an error occurred while staging the files", completed):
        repo.stage_all()

    log.info("Committing changes")
    with _step(SyncStep.COMMIT, "an error occurred committing the changes", completed):
        repo.commit(_commit_message(config, branch))

    if request.dry_run:
        log.warning("DRY RUN: Would push the changes to remote branch: %s", branch)
        return False

    log.info("Pushing changes to remote branch")
    with _step(SyncStep.PUSH, "an error occurred while pushing the changes", completed):
        repo.push(config.remote, branch)

    return True


def _commit_message(config: SyncConfig, branch: str) -> str:
    return config.commit_message.replace("{branch}", branch)


def _cleanup_work_dir(work_dir: Path) -> None:
    """Remove the work directory, only warning if that fails.

    The outcome of the sync, successful or not, is what the caller gets.
    """
    try:
        remove_work_dir(work_dir)
    except FilesystemError as e:
        log.warning("Could not clean up %s: %s", work_dir, e.message)
