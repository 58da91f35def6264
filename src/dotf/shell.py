"""Shell execution utilities.

Commands run through ``sh -c`` so the fixed command strings used by the sync
engine can carry quoted arguments. Only strings assembled by dotf itself are
executed; user input is never interpolated into a command.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .errors import ShellExecError, ShellLaunchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a shell command execution.

    Attributes:
        command: The command string given to the shell.
        output: Combined standard output and standard error.
        returncode: Exit code of the command.
    """

    command: str
    output: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0

    def contains(self, *substrings: str) -> bool:
        """Return ``True`` if any of ``substrings`` occurs in the output."""
        return any(item in self.output for item in substrings)

    def check(self) -> "CommandResult":
        """Raise ``ShellExecError`` if the command exited non-zero."""
        if not self.success:
            raise ShellExecError(self.command, self.output, self.returncode)
        return self


class ShellExecutor:
    """Runs shell commands in a working directory and captures their output."""

    def __init__(self, shell: str = "sh", *, timeout: float | None = None) -> None:
        self.shell = shell
        self.timeout = timeout

    def run(self, directory: Path | str, command: str) -> CommandResult:
        """Execute ``command`` in ``directory`` without judging its exit status.

        Raises:
            ShellLaunchError: If the shell could not be started.
        """

        logger.info("$ %s", command)
        try:
            completed = subprocess.run(
                [self.shell, "-c", command],
                cwd=directory,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            raise ShellLaunchError(command, str(exc)) from exc

        if completed.stdout:
            logger.debug("%s", completed.stdout.rstrip())
        return CommandResult(command=command, output=completed.stdout, returncode=completed.returncode)

    def execute(self, directory: Path | str, command: str) -> str:
        """Execute ``command`` and return its output.

        Raises:
            ShellLaunchError: If the shell could not be started.
            ShellExecError: If the command exited non-zero.
        """

        return self.run(directory, command).check().output

    def execute_with_match(self, directory: Path | str, command: str, *expected: str) -> tuple[bool, CommandResult]:
        """Execute ``command`` and report whether its output contains any of ``expected``.

        The matched flag is valid even when the command exited non-zero; callers
        inspect ``result.success`` to decide whether the exit status matters.
        """

        result = self.run(directory, command)
        return result.contains(*expected), result
