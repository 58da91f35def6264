"""Command table and dispatch for the dotf CLI.

Each command is a ``CommandSpec`` (name, overview, arguments, help text) plus
a ``run`` function. The set is closed: ``COMMANDS`` lists every command dotf
knows about.
"""

from __future__ import annotations

import io
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping, Protocol, TextIO

from .config import Config, default_config_path, load_config, render_config
from .errors import (
    AbortOnOverwriteError,
    ArgumentCountError,
    ConfirmProceedError,
    HelpRequested,
    UnknownCommandError,
)
from .filesystem import write_file
from .manager import DotfManager, migrate_symlinks
from .models import MigrationReport, SyncReport
from .paths import expand_tilde
from .sync import sync_local_and_remote

logger = logging.getLogger(__name__)

HELP_FLAGS = ("help", "h")
FLAG_EXTERNAL = "external"
FLAG_CONFIG = "config"


class UserInteractor(Protocol):
    def confirm(self, question: str) -> bool: ...


class StreamInteractor:
    """Asks yes/no questions on a text stream.

    ``Y``/``yes`` answer yes, ``n``/``no`` answer no; anything else asks
    again. End of input counts as no.
    """

    def __init__(self, reader: TextIO | None = None, writer: TextIO | None = None) -> None:
        self._reader = reader
        self._writer = writer

    def confirm(self, question: str) -> bool:
        reader = self._reader or sys.stdin
        writer = self._writer or sys.stdout
        while True:
            writer.write(f"{question} [Y/n] ")
            writer.flush()
            line = reader.readline()
            if not line:
                return False
            answer = line.strip()
            if answer in ("Y", "yes"):
                return True
            if answer in ("n", "no"):
                return False


@dataclass(frozen=True, slots=True)
class ArgSpec:
    name: str
    description: str


@dataclass(frozen=True, slots=True)
class FlagSpec:
    name: str
    description: str
    value_name: str | None = None


@dataclass(frozen=True, slots=True)
class CommandSpec:
    """Metadata shared by every command, used for dispatch and help output."""

    name: str
    overview: str
    usage: str
    arguments: tuple[ArgSpec, ...]
    description: str
    flags: tuple[FlagSpec, ...] = ()


@dataclass(frozen=True, slots=True)
class CommandInput:
    """Parsed command line: command name, positional arguments and flags."""

    name: str
    args: tuple[str, ...] = ()
    flags: Mapping[str, str | bool] = field(default_factory=dict)


CommandRunner = Callable[[CommandInput, "Config | None", UserInteractor], object]


@dataclass(frozen=True, slots=True)
class Command:
    spec: CommandSpec
    run: CommandRunner
    needs_config: bool = True


def render_usage(spec: CommandSpec, program: str = "dotf") -> str:
    """Render the usage block shown for ``<command> --help``."""

    buffer = io.StringIO()
    buffer.write(f"Name:\n\t{program} {spec.name} - {spec.overview}\n\n")
    buffer.write(f"Usage:\n\t{program} {spec.usage}\n\n")
    buffer.write("Arguments:\n")
    width = max((len(arg.name) for arg in spec.arguments), default=0) + 2
    for arg in spec.arguments:
        buffer.write(f"\t{('<' + arg.name + '>').ljust(width)}\t{arg.description}\n")
    for flag in spec.flags:
        value = f" <{flag.value_name}>" if flag.value_name else ""
        buffer.write(f"\t--{flag.name}{value}\t{flag.description}\n")
    buffer.write("\nDescription:\n")
    buffer.write(spec.description.rstrip() + "\n")
    return buffer.getvalue()


# ----------------------------------------------------------------------
# Command implementations


def _require_config(config: Config | None) -> Config:
    if config is None:
        raise RuntimeError("command requires a loaded configuration")
    return config


def _install(manager: DotfManager, path: str | Path, interactor: UserInteractor) -> None:
    try:
        manager.install(path)
    except AbortOnOverwriteError as exc:
        logger.warning("A file already exists in userspace: %s", exc.path)
        logger.warning("It is required to backup and delete this file to install the dotfile.")
        if not interactor.confirm("Do you want to continue?"):
            logger.warning("Aborted by user")
            return
        manager.install(path, overwrite=True)


def _install_external(manager: DotfManager, path: str, external_dir: str, interactor: UserInteractor) -> None:
    try:
        manager.import_external(path, external_dir, confirm=True)
    except ConfirmProceedError as exc:
        logger.warning("The following path will be created: %s", exc.path)
        if not interactor.confirm("Do you want to continue?"):
            logger.warning("Aborted by user")
            return
    dotfile = manager.import_external(path, external_dir, confirm=False)
    _install(manager, dotfile, interactor)


def run_add(inputs: CommandInput, config: Config | None, interactor: UserInteractor) -> Path:
    return DotfManager(_require_config(config)).add(inputs.args[0])


def run_install(inputs: CommandInput, config: Config | None, interactor: UserInteractor) -> None:
    manager = DotfManager(_require_config(config))
    external = inputs.flags.get(FLAG_EXTERNAL)
    if isinstance(external, str) and external:
        _install_external(manager, inputs.args[0], external, interactor)
        return
    _install(manager, inputs.args[0], interactor)


def run_revert(inputs: CommandInput, config: Config | None, interactor: UserInteractor) -> Path:
    return DotfManager(_require_config(config)).revert(inputs.args[0])


def run_sync(inputs: CommandInput, config: Config | None, interactor: UserInteractor) -> SyncReport:
    report = sync_local_and_remote(_require_config(config))
    logger.info("Sync finished: %s", " -> ".join(state.value for state in report.states))
    return report


def run_migrate(inputs: CommandInput, config: Config | None, interactor: UserInteractor) -> MigrationReport | None:
    dotfiles_dir, userspace_dir = inputs.args
    if not interactor.confirm("This operation can be destructive. Do you want to continue?"):
        logger.warning("Aborted by user")
        return None
    report = migrate_symlinks(userspace_dir, dotfiles_dir)
    logger.info(
        "Migration finished: %d updated, %d missing, %d left untouched",
        len(report.updated),
        len(report.missing),
        len(report.skipped),
    )
    return report


def run_setup(inputs: CommandInput, config: Config | None, interactor: UserInteractor) -> None:
    target = inputs.flags.get(FLAG_CONFIG)
    path = expand_tilde(target) if isinstance(target, str) and target else default_config_path()
    defaults = Config.default().model_copy(update={"config_path": path})
    body = render_config(defaults)

    try:
        write_file(path, body, overwrite=False)
    except AbortOnOverwriteError as exc:
        logger.warning("A config file already exists: %s", exc.path)
        logger.warning("Current configuration will be OVERWRITTEN if you say so")
        if not interactor.confirm("Do you want to continue?"):
            logger.warning("Aborted by user")
            return
        write_file(path, body, overwrite=True)

    logger.info("Configuration successfully created at %s", path)


ADD = CommandSpec(
    name="add",
    overview="Add file/dir from userspace to dotfiles.",
    usage="add <file/dir> [--help]",
    arguments=(ArgSpec("file/dir", "Path to the file or directory in userspace to track."),),
    description="""
    Copies a file or directory from userspace into the dotfiles directory at the same path
    relative to the userspace root, then replaces the original with a symlink pointing at the
    copy. A backup is made before anything is removed.""",
)

INSTALL = CommandSpec(
    name="install",
    overview="Install file/dir from dotfiles into userspace.",
    usage="install <file/dir> [--external <directory-path>] [--help]",
    arguments=(ArgSpec("file/dir", "Path to file/dir inside dotfiles or path to file/dir in userspace."),),
    flags=(FlagSpec(FLAG_EXTERNAL, "Install a dotfile from an external dotfiles directory.", "directory-path"),),
    description="""
    Installs a file or directory from dotfiles into the same location in userspace by creating a
    symlink pointing back at the dotfile. The path may be given from either side. If a file
    already exists in userspace you are asked whether it should be backed up and replaced.

    With --external the file is first copied from the given external dotfiles directory into the
    current dotfiles directory, using its path relative to the external directory, and then
    installed.""",
)

REVERT = CommandSpec(
    name="revert",
    overview="Revert file/dir from dotfiles back to original location in userspace.",
    usage="revert <file/dir> [--help]",
    arguments=(ArgSpec("file/dir", "Path to file or dir to revert back to original location."),),
    description="""
    Moves a file or directory previously added to dotfiles back to its original location in
    userspace, replacing the symlink. The path may be given from either side.""",
)

SYNC = CommandSpec(
    name="sync",
    overview="Sync changes with remote using merge strategy if needed.",
    usage="sync [--help]",
    arguments=(),
    description="""
    Uses the local git working copy to push unpushed commits, commit local changes, merge the
    newest changes from the remote and push the result. A merge that cannot complete cleanly is
    aborted and must be resolved by hand.""",
)

MIGRATE = CommandSpec(
    name="migrate",
    overview="Migrate userspace symlinks on dotfiles dir location change.",
    usage="migrate <dotfiles-dir> <userspace-dir> [--help]",
    arguments=(
        ArgSpec("dotfiles-dir", "Path specifies a re-located dotfiles directory."),
        ArgSpec("userspace-dir", "Specifies userspace root directory where symlinks will be updated."),
    ),
    description="""
    After the dotfiles directory has been moved, walks every file and directory in the new
    dotfiles-dir and repoints the matching symlink in userspace-dir at it. Entries in userspace
    that are not symlinks are never touched; missing entries are reported.""",
)

SETUP = CommandSpec(
    name="setup",
    overview="Create a sensible default configuration.",
    usage="setup [--config <path>] [--help]",
    arguments=(),
    description="""
    Writes a configuration file based on sensible defaults, at ~/.config/dotf/config unless
    --config points elsewhere. Check that it looks as expected before using the other
    commands.""",
)

COMMANDS: dict[str, Command] = {
    ADD.name: Command(ADD, run_add),
    INSTALL.name: Command(INSTALL, run_install),
    REVERT.name: Command(REVERT, run_revert),
    SYNC.name: Command(SYNC, run_sync),
    MIGRATE.name: Command(MIGRATE, run_migrate, needs_config=False),
    SETUP.name: Command(SETUP, run_setup, needs_config=False),
}


class Dispatcher:
    """Validates a ``CommandInput`` against the command table and runs it."""

    def __init__(
        self,
        *,
        interactor: UserInteractor | None = None,
        config_loader: Callable[[], Config] | None = None,
        commands: Mapping[str, Command] | None = None,
    ) -> None:
        self.interactor = interactor or StreamInteractor()
        self.config_loader = config_loader or load_config
        self.commands = commands if commands is not None else COMMANDS

    def get(self, name: str) -> Command:
        try:
            return self.commands[name]
        except KeyError:
            raise UnknownCommandError(name) from None

    def dispatch(self, inputs: CommandInput) -> object:
        """Run the command named by ``inputs`` and return its result."""

        command = self.get(inputs.name)

        if any(flag in inputs.flags for flag in HELP_FLAGS):
            raise HelpRequested(command.spec.name)

        required = len(command.spec.arguments)
        if len(inputs.args) != required:
            raise ArgumentCountError(command.spec.name, len(inputs.args), required)

        config = self.config_loader() if command.needs_config else None
        return command.run(inputs, config, self.interactor)
