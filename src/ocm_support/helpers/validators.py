"""Validation of user input, run before anything is mutated."""

import logging
import os

from ocm_support.errors import ExternalToolError, FilesystemError, InputValidationError
from ocm_support.helpers.git import check_ref_format
from ocm_support.helpers.process import ProcessExecutor

log = logging.getLogger(__name__)


def validate_branch_name(name: str, executor: ProcessExecutor) -> None:
    """Check that a name can be used for a new git branch.

    Empty names are rejected without spawning git. Everything else is checked
    with `git check-ref-format --branch`.

    Args:
        name: The proposed branch name.
        executor: The ProcessExecutor to run git with.

    Raises:
        InputValidationError: If the name is empty or git rejects it.
    """
    if not name or not name.strip():
        raise InputValidationError("branch name cannot be empty")

    try:
        check_ref_format(name, executor)
    except ExternalToolError as e:
        message = "git rejected %r" % name
        if e.output.strip():
            message += ": %s" % e.output.strip()
        raise InputValidationError(message, output=e.output) from e


def validate_file_exists(path: str | os.PathLike) -> None:
    """Check that a path resolves to an existing filesystem entry.

    Args:
        path: The path to check.

    Raises:
        InputValidationError: If nothing exists at the path.
        FilesystemError: If the path could not be checked for any other reason.
    """
    if not os.fspath(path):
        raise InputValidationError("file path cannot be empty")

    try:
        os.stat(path)
    except FileNotFoundError as e:
        raise InputValidationError("file not found: %s" % path) from e
    except OSError as e:
        raise FilesystemError("could not check if %s exists: %s" % (path, e)) from e
