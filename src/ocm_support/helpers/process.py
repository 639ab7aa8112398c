"""Helpers for running external commands.

This is the only way the rest of the package talks to git and to the build
tool of the cloned repository.
"""

import logging
import os
import shlex
import signal
import subprocess
import sys
import threading
import time
from pathlib import Path
from typing import IO, Sequence, TextIO

from pydantic import BaseModel, ConfigDict

from ocm_support.errors import ExternalToolError

log = logging.getLogger(__name__)

# How often a running command is checked against its deadline / cancellation
POLL_INTERVAL = 0.1


class CommandResult(BaseModel):
    """Class representing the outcome of a finished command.

    Args:
        command: The command that was run, as a single printable string.
        output: The combined stdout and stderr of the command.
        returncode: The exit code of the command.
    """

    model_config = ConfigDict(frozen=True)

    command: str
    output: str
    returncode: int

    @property
    def success(self) -> bool:
        """Whether the command exited with status 0."""
        return self.returncode == 0


def printable_command(command: str | Sequence[str]) -> str:
    """Return a shell-like representation of a command for logs and errors."""
    if isinstance(command, str):
        return command

    return shlex.join(command)


class ProcessExecutor:
    """Run commands, capturing their output while streaming it to the operator.

    Args:
        stream: Where the output of commands is echoed. Defaults to the current sys.stdout.
        timeout: Seconds after which a command is killed. None waits forever.
        cancel_event: When set, the running command is killed.
    """

    def __init__(
        self,
        stream: TextIO | None = None,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ):
        self._stream = stream
        self.timeout = timeout
        self.cancel_event = cancel_event

    @property
    def stream(self) -> TextIO:
        """The stream that command output is echoed to."""
        return self._stream if self._stream is not None else sys.stdout

    def execute(
        self, command: str | Sequence[str], cwd: Path | str | None = None
    ) -> CommandResult:
        """Run a command and wait for it to finish.

        A string is run through `bash -c`, so it may use shell syntax like `&&`.
        A sequence is run directly as an argument vector.

        Args:
            command: The command to run.
            cwd: Optional working directory for the command.

        Returns:
            The CommandResult of a command that exited with status 0.

        Raises:
            ExternalToolError: If the command could not be started, exited with a
                               non-zero status, timed out or was cancelled. The error
                               includes the full captured output.
        """
        args = ["bash", "-c", command] if isinstance(command, str) else list(command)
        printable = printable_command(command)
        log.info("Running command: %s", printable)

        try:
            process = subprocess.Popen(
                args,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                start_new_session=True,
            )
        except OSError as e:
            raise ExternalToolError(printable, None, reason=str(e)) from e

        captured: list[str] = []
        reader = threading.Thread(
            target=self._pump_output, args=(process.stdout, captured), daemon=True
        )
        reader.start()
        interrupted = self._wait(process)
        reader.join()
        output = "".join(captured)

        if interrupted is not None:
            log.error("Command %s: %s", interrupted, printable)
            raise ExternalToolError(printable, process.returncode, output, reason=interrupted)

        if process.returncode != 0:
            raise ExternalToolError(printable, process.returncode, output)

        return CommandResult(command=printable, output=output, returncode=process.returncode)

    def _pump_output(self, pipe: IO[str], captured: list[str]):
        """Copy every line of the process output to the buffer and the stream."""
        with pipe:
            for line in pipe:
                captured.append(line)
                self.stream.write(line)
                self.stream.flush()

    def _wait(self, process: subprocess.Popen) -> str | None:
        """Wait for the process, killing it on timeout or cancellation.

        Returns:
            None if the process exited on its own, otherwise why it was killed.
        """
        if self.timeout is None and self.cancel_event is None:
            process.wait()
            return None

        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        while True:
            try:
                process.wait(timeout=POLL_INTERVAL)
                return None
            except subprocess.TimeoutExpired:
                pass

            if self.cancel_event is not None and self.cancel_event.is_set():
                reason = "cancelled"
            elif deadline is not None and time.monotonic() >= deadline:
                reason = f"timed out after {self.timeout}s"
            else:
                continue

            _kill_process_group(process)
            return reason


def _kill_process_group(process: subprocess.Popen):
    """Kill the process and every child it spawned, then reap it."""
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        # Already gone
        pass
    process.wait()
