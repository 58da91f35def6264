"""Reconcile the local dotfiles working copy with its remote.

The sync is a fixed sequence of git commands. Which command runs next is
decided from the textual output of the previous one, so every substring the
engine depends on lives in ``GitAdapter``. On a merge that does not complete
cleanly the merge is aborted and the user is asked to step in; conflicts are
never resolved automatically.
"""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .config import Config
from .errors import (
    MergeConflictError,
    ShellExecError,
    ShellLaunchError,
    SyncError,
    UnmatchedShellOutputError,
)
from .models import SyncReport, SyncState
from .paths import to_absolute
from .shell import CommandResult, ShellExecutor

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GitAdapter:
    """Git command strings and the output substrings the sync relies on.

    The substrings match git 2.x output with an English locale.
    """

    branch: str = "master"
    remote: str = "origin"
    commit_message: str = "Commit made from dotf"
    merge_message: str = "Merge made by dotf"

    ahead_marker: str = "Your branch is ahead of"
    clean_marker: str = "nothing to commit, working tree clean"
    merge_markers: tuple[str, ...] = ("Merge made by", "Already up to date.", "Already up-to-date.")

    @property
    def push_marker(self) -> str:
        return f"{self.branch} -> {self.branch}"

    @property
    def fetch(self) -> str:
        return "git fetch"

    @property
    def status(self) -> str:
        return "git status"

    @property
    def add_all(self) -> str:
        return "git add ."

    @property
    def commit(self) -> str:
        return f"git commit -am {shlex.quote(self.commit_message)}"

    @property
    def merge(self) -> str:
        return f"git merge {self.remote}/{self.branch} -m {shlex.quote(self.merge_message)}"

    @property
    def abort_merge(self) -> str:
        return "git merge --abort"

    @property
    def push(self) -> str:
        return f"git push {self.remote} {self.branch}"

    @property
    def pull(self) -> str:
        return f"git pull {self.remote} {self.branch}"


class SyncMachine:
    """Drives one sync run against the working copy at ``repo``."""

    def __init__(
        self,
        repo: Path | str,
        *,
        adapter: GitAdapter | None = None,
        executor: ShellExecutor | None = None,
    ) -> None:
        self.repo = Path(repo)
        self.git = adapter or GitAdapter()
        self.executor = executor or ShellExecutor()
        self._handlers: dict[SyncState, Callable[[SyncReport], SyncState]] = {
            SyncState.FETCH: self._fetch,
            SyncState.CHECK_AHEAD: self._check_ahead,
            SyncState.PUSH_UNCOMMITTED: self._push_uncommitted,
            SyncState.CHECK_DIRTY: self._check_dirty,
            SyncState.PULL_ONLY: self._pull_only,
            SyncState.COMMIT: self._commit,
            SyncState.PULL_MERGE: self._pull_merge,
            SyncState.ABORT_MERGE: self._abort_merge,
            SyncState.PUSH_FINAL: self._push_final,
        }

    def run(self) -> SyncReport:
        """Run the sync to completion.

        Raises:
            SyncError: A command failed.
            MergeConflictError: The merge did not complete and was aborted.
            UnmatchedShellOutputError: The final push succeeded without reporting the branch update.
        """

        report = SyncReport(repo=self.repo)
        state = SyncState.FETCH
        while state is not SyncState.DONE:
            report.states.append(state)
            logger.debug("Sync state: %s", state.value)
            state = self._handlers[state](report)

        report.states.append(SyncState.DONE)
        logger.info("Local and remote are in sync: %s", self.repo)
        return report

    # ------------------------------------------------------------------
    # Command helpers

    def _run(self, state: SyncState, command: str) -> CommandResult:
        try:
            return self.executor.run(self.repo, command)
        except ShellLaunchError as exc:
            raise SyncError(state.value, self.repo, exc) from exc

    def _execute(self, state: SyncState, command: str) -> CommandResult:
        result = self._run(state, command)
        if not result.success:
            raise SyncError(state.value, self.repo, ShellExecError(command, result.output, result.returncode))
        return result

    def _observe(self, report: SyncReport, result: CommandResult, *markers: str) -> bool:
        seen = {marker for marker in markers if marker in result.output}
        report.observed.update(seen)
        return bool(seen)

    # ------------------------------------------------------------------
    # States

    def _fetch(self, report: SyncReport) -> SyncState:
        self._execute(SyncState.FETCH, self.git.fetch)
        return SyncState.CHECK_AHEAD

    def _check_ahead(self, report: SyncReport) -> SyncState:
        result = self._execute(SyncState.CHECK_AHEAD, self.git.status)
        if self._observe(report, result, self.git.ahead_marker):
            return SyncState.PUSH_UNCOMMITTED
        return SyncState.CHECK_DIRTY

    def _push_uncommitted(self, report: SyncReport) -> SyncState:
        self._execute(SyncState.PUSH_UNCOMMITTED, self.git.push)
        return SyncState.CHECK_DIRTY

    def _check_dirty(self, report: SyncReport) -> SyncState:
        result = self._execute(SyncState.CHECK_DIRTY, self.git.status)
        if self._observe(report, result, self.git.clean_marker):
            return SyncState.PULL_ONLY
        return SyncState.COMMIT

    def _pull_only(self, report: SyncReport) -> SyncState:
        self._execute(SyncState.PULL_ONLY, self.git.pull)
        return SyncState.DONE

    def _commit(self, report: SyncReport) -> SyncState:
        self._execute(SyncState.COMMIT, self.git.add_all)
        self._execute(SyncState.COMMIT, self.git.commit)
        return SyncState.PULL_MERGE

    def _pull_merge(self, report: SyncReport) -> SyncState:
        self._execute(SyncState.PULL_MERGE, self.git.fetch)
        # A conflicting merge exits non-zero; only the output decides.
        result = self._run(SyncState.PULL_MERGE, self.git.merge)
        if self._observe(report, result, *self.git.merge_markers):
            return SyncState.PUSH_FINAL
        return SyncState.ABORT_MERGE

    def _abort_merge(self, report: SyncReport) -> SyncState:
        try:
            aborted = self.executor.run(self.repo, self.git.abort_merge).success
        except ShellLaunchError as exc:
            raise MergeConflictError(self.repo, abort_failed=True) from exc
        raise MergeConflictError(self.repo, abort_failed=not aborted)

    def _push_final(self, report: SyncReport) -> SyncState:
        result = self._run(SyncState.PUSH_FINAL, self.git.push)
        if self._observe(report, result, self.git.push_marker):
            return SyncState.DONE
        if not result.success:
            cause = ShellExecError(result.command, result.output, result.returncode)
            raise SyncError(SyncState.PUSH_FINAL.value, self.repo, cause)
        raise UnmatchedShellOutputError(self.git.push, [self.git.push_marker])


def sync_local_and_remote(
    config: Config,
    *,
    adapter: GitAdapter | None = None,
    executor: ShellExecutor | None = None,
) -> SyncReport:
    """Sync the configured working copy with its remote."""

    repo = to_absolute(config.sync_dir)
    return SyncMachine(repo, adapter=adapter, executor=executor).run()
