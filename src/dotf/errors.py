"""Exception hierarchy for dotf."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class DotfError(RuntimeError):
    """Base class for every error dotf raises on purpose.

    ``kind`` names the error in user-facing output and ``soft`` marks errors
    the caller may recover from by asking the user and retrying.
    """

    kind = "error"
    soft = False

    def __init__(self, message: str, *, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class NotFoundError(DotfError):
    kind = "not-found"

    def __init__(self, path: Path | str) -> None:
        super().__init__(f"Path '{path}' does not exist", path=path)


class AlreadyExistsError(DotfError):
    kind = "already-exists"

    def __init__(self, path: Path | str) -> None:
        super().__init__(f"Path '{path}' already exists", path=path)


class AbortOnOverwriteError(DotfError):
    """Raised when a destination exists and overwriting was not permitted."""

    kind = "abort-on-overwrite"
    soft = True

    def __init__(self, path: Path | str) -> None:
        super().__init__(f"'{path}' already exists and would be overwritten", path=path)


class ConfirmProceedError(DotfError):
    """Carries a planned destination the user must confirm before proceeding."""

    kind = "confirm-proceed"
    soft = True

    def __init__(self, path: Path | str) -> None:
        super().__init__(f"The following path will be created: {path}", path=path)


class PrefixMismatchError(DotfError):
    kind = "prefix-mismatch"

    def __init__(self, path: Path | str, root: Path | str) -> None:
        super().__init__(f"Path '{path}' is not located under '{root}'", path=path)
        self.root = Path(root)


class NestedDotfilesError(DotfError):
    """Raised when a path to add contains the dotfiles tree itself."""

    kind = "nested-dotfiles"

    def __init__(self, path: Path | str, dotfiles_root: Path | str) -> None:
        super().__init__(f"'{path}' contains the dotfiles directory '{dotfiles_root}'", path=path)
        self.dotfiles_root = Path(dotfiles_root)


class SymlinkMissingError(DotfError):
    kind = "symlink-missing"

    def __init__(self, path: Path | str) -> None:
        super().__init__(f"Expected a symlink at '{path}'", path=path)


class DotfileMissingError(DotfError):
    kind = "dotfile-missing"

    def __init__(self, path: Path | str) -> None:
        super().__init__(f"Dotfile '{path}' does not exist", path=path)


class StatError(DotfError):
    kind = "stat-error"

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"Unable to inspect '{path}': {reason}", path=path)


class OperationStepError(DotfError):
    """A filesystem step inside a multi-step operation failed.

    Earlier steps are not rolled back; the backup area holds the recovery copy.
    """

    kind = "operation-step"

    def __init__(self, step: str, path: Path | str, reason: str) -> None:
        super().__init__(f"Step '{step}' failed for '{path}': {reason}", path=path)
        self.step = step


class ShellLaunchError(DotfError):
    kind = "shell-launch"

    def __init__(self, command: str, reason: str) -> None:
        super().__init__(f"Could not start shell for '{command}': {reason}")
        self.command = command


class ShellExecError(DotfError):
    kind = "shell-exec"

    def __init__(self, command: str, output: str, returncode: int) -> None:
        message = f"'{command}' exited with status {returncode}"
        if output.strip():
            message = f"{message}: {output.strip()}"
        super().__init__(message)
        self.command = command
        self.output = output
        self.returncode = returncode


class UnmatchedShellOutputError(DotfError):
    kind = "unmatched-shell-output"

    def __init__(self, command: str, expected: Sequence[str]) -> None:
        wanted = ", ".join(repr(item) for item in expected)
        super().__init__(f"Output of '{command}' did not contain any of: {wanted}")
        self.command = command
        self.expected = tuple(expected)


class MergeConflictError(DotfError):
    kind = "merge-conflict"

    def __init__(self, repo: Path | str, *, abort_failed: bool = False) -> None:
        if abort_failed:
            message = f"Merge was unsuccessful and could not be aborted. Manual intervention required in '{repo}'"
        else:
            message = f"Merge was unsuccessful and rolled back (aborted). Manual intervention required in '{repo}'"
        super().__init__(message, path=repo)
        self.abort_failed = abort_failed


class SyncError(DotfError):
    """A sync step failed in a way that stops the whole run."""

    kind = "fatal-sync-error"

    def __init__(self, state: str, repo: Path | str, cause: DotfError) -> None:
        super().__init__(f"Sync failed during {state} in '{repo}': {cause}", path=repo)
        self.state = state
        self.cause = cause


class ConfigError(DotfError):
    """Raised when a configuration file cannot be parsed or validated."""

    kind = "config-error"


class ConfigNotFoundError(ConfigError):
    kind = "config-not-found"


class ConfigMalformedError(ConfigError):
    kind = "config-malformed"


class ConfigMissingKeyError(ConfigError):
    kind = "config-missing-key"


class CliError(DotfError):
    kind = "cli-error"


class CliParseError(CliError):
    kind = "cli-parse"


class UnknownCommandError(CliError):
    kind = "cli-unknown-command"

    def __init__(self, name: str) -> None:
        super().__init__(f"'{name}' command does not exist. Try --help for available commands.")
        self.name = name


class ArgumentCountError(CliError):
    kind = "cli-argument-count"

    def __init__(self, command: str, given: int, required: int) -> None:
        super().__init__(
            f"{command}: {given} arguments given, but {required} required. Try adding --help."
        )
        self.given = given
        self.required = required


class HelpRequested(CliError):
    """Signals that usage was requested; exits successfully."""

    kind = "cli-help-requested"
    soft = True

    def __init__(self, command: str) -> None:
        super().__init__(f"help requested for '{command}'")
        self.command = command
