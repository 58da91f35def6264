"""Command-line interface for dotf."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import click
import typer
from rich.console import Console
from rich.table import Table

from . import filesystem
from .commands import (
    ADD,
    COMMANDS,
    FLAG_CONFIG,
    FLAG_EXTERNAL,
    INSTALL,
    MIGRATE,
    REVERT,
    SETUP,
    SYNC,
    CommandInput,
    Dispatcher,
    UserInteractor,
    render_usage,
)
from .config import load_config
from .errors import ConfigNotFoundError, DotfError, HelpRequested, MergeConflictError, OperationStepError
from .log import setup_logging
from .models import MigrationReport, SyncReport

app = typer.Typer(
    help="Keep dotfiles in a git-synced directory and symlink them into place",
    context_settings={"help_option_names": ["--help", "--h"]},
)
console = Console()
logger = logging.getLogger(__name__)


@dataclass
class CliState:
    config_path: Path | None = None
    interactor: UserInteractor | None = None


def _handle_error(exc: Exception) -> None:
    if isinstance(exc, HelpRequested):
        console.print(render_usage(COMMANDS[exc.command].spec), markup=False, highlight=False)
        raise typer.Exit(code=0)
    if isinstance(exc, PermissionError):
        logger.error("Permission denied: %s", exc.filename or exc)
        console.print("[yellow]Re-run the command with elevated privileges or fix the permissions.[/yellow]")
        raise typer.Exit(code=1)
    if isinstance(exc, DotfError):
        log = logger.warning if exc.soft else logger.error
        log("%s: %s", exc.kind, exc)
        if isinstance(exc, ConfigNotFoundError):
            console.print("[yellow]Use 'dotf setup' to create a configuration file.[/yellow]")
        elif isinstance(exc, OperationStepError):
            console.print(f"[yellow]A backup of the affected path is kept under {filesystem.BACKUP_ROOT}.[/yellow]")
        elif isinstance(exc, MergeConflictError):
            console.print("[yellow]Resolve the conflict with git, then run 'dotf sync' again.[/yellow]")
        raise typer.Exit(code=1)
    raise exc


def _dispatch(ctx: typer.Context, name: str, *args: str, **flags: str | bool | None) -> object:
    state = ctx.ensure_object(CliState)
    present: dict[str, str | bool] = {key: value for key, value in flags.items() if value not in (None, False)}
    if state.config_path is not None:
        present[FLAG_CONFIG] = str(state.config_path)

    dispatcher = Dispatcher(
        interactor=state.interactor,
        config_loader=lambda: load_config(state.config_path),
    )
    try:
        return dispatcher.dispatch(CommandInput(name, tuple(args), present))
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)
    return None


def _format_sync_report(report: SyncReport) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Step", justify="right")
    table.add_column("State")

    for index, state in enumerate(report.states, start=1):
        table.add_row(str(index), state.value)

    console.print(table)


def _format_migration(report: MigrationReport) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Userspace path", overflow="fold")
    table.add_column("Action")

    rows: Iterable[tuple[Path, str]] = (
        *((path, "[green]relinked[/green]") for path in report.updated),
        *((path, "[red]missing[/red]") for path in report.missing),
        *((path, "[yellow]left untouched[/yellow]") for path in report.skipped),
    )
    for path, action in rows:
        table.add_row(str(path), action)

    console.print(table)


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to the dotf configuration file (defaults to $DOTF_CONFIG or ~/.config/dotf/config)",
        dir_okay=False,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show shell output and debug messages"),
) -> None:
    setup_logging(logging.DEBUG if verbose else logging.INFO)
    state = ctx.ensure_object(CliState)
    state.config_path = config


@app.command(help=ADD.description, short_help=ADD.overview)
def add(
    ctx: typer.Context,
    path: str = typer.Argument(..., metavar="FILE/DIR", help=ADD.arguments[0].description),
) -> None:
    dotfile = _dispatch(ctx, ADD.name, path)
    if dotfile is not None:
        console.print(f"[green]Tracking '{path}' as '{dotfile}'.[/green]")


@app.command(help=INSTALL.description, short_help=INSTALL.overview)
def install(
    ctx: typer.Context,
    path: str = typer.Argument(..., metavar="FILE/DIR", help=INSTALL.arguments[0].description),
    external: str | None = typer.Option(
        None,
        f"--{FLAG_EXTERNAL}",
        metavar="DIRECTORY-PATH",
        help=INSTALL.flags[0].description,
    ),
) -> None:
    _dispatch(ctx, INSTALL.name, path, external=external)


@app.command(help=REVERT.description, short_help=REVERT.overview)
def revert(
    ctx: typer.Context,
    path: str = typer.Argument(..., metavar="FILE/DIR", help=REVERT.arguments[0].description),
) -> None:
    restored = _dispatch(ctx, REVERT.name, path)
    if restored is not None:
        console.print(f"[green]Restored '{restored}'.[/green]")


@app.command(help=SYNC.description, short_help=SYNC.overview)
def sync(ctx: typer.Context) -> None:
    report = _dispatch(ctx, SYNC.name)
    if isinstance(report, SyncReport):
        _format_sync_report(report)


@app.command(help=MIGRATE.description, short_help=MIGRATE.overview)
def migrate(
    ctx: typer.Context,
    dotfiles_dir: str = typer.Argument(..., metavar="DOTFILES-DIR", help=MIGRATE.arguments[0].description),
    userspace_dir: str = typer.Argument(..., metavar="USERSPACE-DIR", help=MIGRATE.arguments[1].description),
) -> None:
    report = _dispatch(ctx, MIGRATE.name, dotfiles_dir, userspace_dir)
    if isinstance(report, MigrationReport):
        _format_migration(report)


@app.command(help=SETUP.description, short_help=SETUP.overview)
def setup(ctx: typer.Context) -> None:
    _dispatch(ctx, SETUP.name)


@app.command("commands")
def list_commands() -> None:
    """List every dotf command with a short overview."""

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Command")
    table.add_column("Usage")
    table.add_column("Overview", overflow="fold")

    for command in COMMANDS.values():
        table.add_row(command.spec.name, f"dotf {command.spec.usage}", command.spec.overview)

    console.print(table)


def run() -> None:
    """Entry point used for console_script bindings.

    Usage errors (unknown command, wrong number of arguments) exit with status 1.
    """

    try:
        code = app(standalone_mode=False)
    except click.UsageError as exc:
        exc.show()
        raise SystemExit(1) from None
    except click.ClickException as exc:
        exc.show()
        raise SystemExit(exc.exit_code) from None
    except click.Abort:
        console.print("[red]Aborted.[/red]")
        raise SystemExit(1) from None
    raise SystemExit(code or 0)
