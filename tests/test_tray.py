from __future__ import annotations

from datetime import datetime
from pathlib import Path

from dotf.config import Config
from dotf.errors import MergeConflictError
from dotf.tray import IconState, MenuState, TrayController

FIXED_NOW = datetime(2024, 1, 2, 3, 4, 5)


def test_update_now_records_success(config: Config) -> None:
    synced: list[Config] = []
    controller = TrayController(config, sync=synced.append, clock=lambda: FIXED_NOW)

    assert controller.update_now() is True

    assert synced == [config]
    assert controller.state == MenuState(
        last_updated="03:04:05 02-01-2024",
        error="No error.",
        auto_updates=False,
        icon=IconState.DEFAULT,
    )


def test_update_shows_loading_then_error(config: Config, tmp_path: Path) -> None:
    seen: list[MenuState] = []

    def failing_sync(_: Config) -> None:
        raise MergeConflictError(tmp_path)

    controller = TrayController(config, sync=failing_sync, on_change=seen.append)
    controller.update_now()

    assert [state.icon for state in seen] == [IconState.LOADING, IconState.ERROR]
    assert "Manual intervention required" in controller.state.error
    assert controller.state.last_updated == "N/A"


def test_error_clears_after_successful_update(config: Config, tmp_path: Path) -> None:
    outcomes: list[Exception | None] = [MergeConflictError(tmp_path), None]

    def sync(_: Config) -> None:
        outcome = outcomes.pop(0)
        if outcome is not None:
            raise outcome

    controller = TrayController(config, sync=sync, clock=lambda: FIXED_NOW)
    controller.update_now()
    assert controller.state.icon is IconState.ERROR

    controller.update_now()
    assert controller.state.icon is IconState.DEFAULT
    assert controller.state.error == "No error."


def test_unexpected_errors_are_shown(config: Config) -> None:
    def sync(_: Config) -> None:
        raise OSError("disk full")

    controller = TrayController(config, sync=sync)
    controller.update_now()

    assert controller.state.icon is IconState.ERROR
    assert controller.state.error == "disk full"


def test_update_now_skips_while_sync_runs(config: Config) -> None:
    nested: list[bool] = []
    controller: TrayController

    def sync(_: Config) -> None:
        nested.append(controller.update_now())

    controller = TrayController(config, sync=sync)

    assert controller.update_now() is True
    assert nested == [False]


def test_toggle_auto_updates_starts_and_stops_worker(config: Config) -> None:
    controller = TrayController(config, sync=lambda _: None)

    assert controller.toggle_auto_updates() is True
    assert controller.worker.is_running
    assert controller.state.auto_updates

    assert controller.toggle_auto_updates() is False
    assert not controller.worker.is_running
    assert not controller.state.auto_updates


def test_quit_stops_worker(config: Config) -> None:
    controller = TrayController(config, sync=lambda _: None)
    controller.toggle_auto_updates()

    controller.quit()

    assert not controller.worker.is_running
    assert not controller.state.auto_updates
