"""Shared models and enums for dotf."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class EntryType(str, Enum):
    """Kinds of paths the transformer distinguishes."""

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    MISSING = "missing"


@dataclass(frozen=True, slots=True)
class FileLocation:
    """A file's paired locations in userspace and in the dotfiles tree."""

    original: Path
    userspace_file: Path
    dotfiles_file: Path
    inside_dotfiles: bool


@dataclass(slots=True)
class MigrationReport:
    """Outcome of relinking userspace symlinks after the dotfiles tree moved."""

    updated: list[Path] = field(default_factory=list)
    missing: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)


class SyncState(str, Enum):
    """States visited by the remote sync state machine."""

    FETCH = "fetch"
    CHECK_AHEAD = "check_ahead"
    PUSH_UNCOMMITTED = "push_uncommitted"
    CHECK_DIRTY = "check_dirty"
    PULL_ONLY = "pull_only"
    COMMIT = "commit"
    PULL_MERGE = "pull_merge"
    ABORT_MERGE = "abort_merge"
    PUSH_FINAL = "push_final"
    DONE = "done"


@dataclass(slots=True)
class SyncReport:
    """Transient record of a sync run."""

    repo: Path
    states: list[SyncState] = field(default_factory=list)
    observed: set[str] = field(default_factory=set)

    @property
    def completed(self) -> bool:
        return bool(self.states) and self.states[-1] is SyncState.DONE
