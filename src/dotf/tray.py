"""Tray controller for periodic sync.

``TrayController`` holds the state a tray menu displays and the actions its
items trigger. Rendering the icon and menu is left to whatever front end
drives it; ``dotf-tray`` runs the controller headless in the foreground.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable

import typer
from rich.console import Console

from .config import Config, load_config
from .errors import DotfError
from .log import setup_logging
from .sync import sync_local_and_remote
from .worker import IntervalWorker

logger = logging.getLogger(__name__)

NO_ERROR = "No error."
NEVER_UPDATED = "N/A"
TIMESTAMP_FORMAT = "%H:%M:%S %d-%m-%Y"


class IconState(str, Enum):
    DEFAULT = "default"
    LOADING = "loading"
    ERROR = "error"


@dataclasses.dataclass(frozen=True)
class MenuState:
    """Snapshot of what the tray menu shows."""

    last_updated: str = NEVER_UPDATED
    error: str = NO_ERROR
    auto_updates: bool = False
    icon: IconState = IconState.DEFAULT


class TrayController:
    """Runs syncs on demand or on an interval and tracks their outcome.

    Manual updates go through the worker's ``tick`` so they never overlap a
    scheduled run.
    """

    def __init__(
        self,
        config: Config,
        *,
        sync: Callable[[Config], object] = sync_local_and_remote,
        clock: Callable[[], datetime] = datetime.now,
        on_change: Callable[[MenuState], None] | None = None,
    ) -> None:
        self.config = config
        self._sync = sync
        self._clock = clock
        self._on_change = on_change
        self._state_lock = threading.Lock()
        self._state = MenuState()
        self.worker = IntervalWorker(config.sync_interval_secs, self._update, name="dotf-autosync")

    @property
    def state(self) -> MenuState:
        with self._state_lock:
            return self._state

    def update_now(self) -> bool:
        """Sync immediately. Returns ``False`` if a sync was already running."""

        return self.worker.tick()

    def toggle_auto_updates(self) -> bool:
        """Start or stop periodic syncing. Returns the new setting."""

        enabled = not self.state.auto_updates
        if enabled:
            self.worker.start()
        else:
            self.worker.stop()
        self._set(auto_updates=enabled)
        return enabled

    def quit(self) -> None:
        self.worker.stop()
        self._set(auto_updates=False)

    def _update(self) -> None:
        self._set(icon=IconState.LOADING)
        try:
            self._sync(self.config)
        except Exception as exc:  # noqa: BLE001
            logger.error("Sync failed: %s", exc)
            self._set(icon=IconState.ERROR, error=str(exc))
            return
        self._set(
            icon=IconState.DEFAULT,
            error=NO_ERROR,
            last_updated=self._clock().strftime(TIMESTAMP_FORMAT),
        )

    def _set(self, **changes: object) -> None:
        with self._state_lock:
            self._state = dataclasses.replace(self._state, **changes)
            state = self._state
        if self._on_change is not None:
            self._on_change(state)


tray_app = typer.Typer(help="Run dotf's periodic sync in the foreground")
console = Console()


@tray_app.command()
def serve(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to the dotf configuration file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show shell output and debug messages"),
) -> None:
    """Sync once, then keep syncing at the configured interval until interrupted."""

    setup_logging(logging.DEBUG if verbose else logging.INFO)
    try:
        config_obj = load_config(config)
    except DotfError as exc:
        logger.error("%s: %s", exc.kind, exc)
        raise typer.Exit(code=1)

    controller = TrayController(config_obj)
    controller.update_now()
    if config_obj.auto_sync:
        controller.toggle_auto_updates()
    else:
        console.print("[yellow]autosync is not enabled in the configuration; nothing left to do.[/yellow]")
        return

    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        console.print("Stopping.")
    finally:
        controller.quit()


def main() -> None:
    """Entry point used for the ``dotf-tray`` console script."""

    tray_app()
