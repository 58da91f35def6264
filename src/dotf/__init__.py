"""Core package for the dotf project."""

from .cli import app, run
from .config import Config, load_config
from .errors import DotfError
from .manager import DotfManager
from .models import EntryType, FileLocation, MigrationReport, SyncReport, SyncState
from .sync import GitAdapter, SyncMachine, sync_local_and_remote
from .tray import IconState, TrayController
from .worker import IntervalWorker

__all__ = [
    "Config",
    "load_config",
    "DotfError",
    "DotfManager",
    "EntryType",
    "FileLocation",
    "MigrationReport",
    "SyncReport",
    "SyncState",
    "GitAdapter",
    "SyncMachine",
    "sync_local_and_remote",
    "IconState",
    "TrayController",
    "IntervalWorker",
    "app",
    "run",
]
