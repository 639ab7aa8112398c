"""Exceptions raised while syncing cloud resources.

Every failure carries an ErrorKind, so callers can branch on the kind of
failure instead of parsing messages.
"""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Class representing the category of a failure."""

    VALIDATION = "validation"
    EXTERNAL_TOOL = "external-tool"
    FILESYSTEM = "filesystem"


class SyncError(Exception):
    """Base exception for all failures of the sync workflow.

    Args:
        message: Human readable description of the failure.
        kind: The category of the failure.
        output: Captured output of an external command, if any.
    """

    def __init__(self, message: str, kind: ErrorKind, output: str = ""):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.output = output


class InputValidationError(SyncError):
    """Exception for inputs that were rejected before any mutating action."""

    def __init__(self, message: str, output: str = ""):
        super().__init__(message, ErrorKind.VALIDATION, output)


class FilesystemError(SyncError):
    """Exception for failures creating, reading or writing local files."""

    def __init__(self, message: str):
        super().__init__(message, ErrorKind.FILESYSTEM)


class ExternalToolError(SyncError):
    """Exception for an external command that did not complete successfully.

    Args:
        command: The command as it was logged.
        returncode: Exit code of the process, or None if it never exited on its own.
        output: Combined stdout and stderr captured from the process.
        reason: Short description of why the command failed.
    """

    def __init__(
        self,
        command: str,
        returncode: int | None,
        output: str = "",
        reason: str | None = None,
    ):
        if reason is None:
            reason = f"exit status {returncode}"
        message = f"command `{command}` failed ({reason})"
        if output:
            message += f": {output.rstrip()}"
        super().__init__(message, ErrorKind.EXTERNAL_TOOL, output)
        self.command = command
        self.returncode = returncode
        self.reason = reason


class StepFailedError(SyncError):
    """Exception wrapping the first failure of a sync step.

    The kind and output are inherited from the original error, which is
    also kept as `__cause__`.
    """

    def __init__(self, step: str, description: str, cause: SyncError):
        super().__init__(f"{description}: {cause.message}", cause.kind, cause.output)
        self.step = step
        self.cause = cause
