"""Dotfile operations: add, install, revert, external import and migration.

Every operation keeps the userspace and dotfiles trees paired: each entry in
the dotfiles tree has either a symlink pointing back at it from the mirrored
userspace path, or nothing at that path. Steps run in order and stop at the
first failure. Completed steps are never rolled back; the backup area is the
recovery point.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .config import Config
from .errors import (
    AbortOnOverwriteError,
    AlreadyExistsError,
    ConfirmProceedError,
    DotfileMissingError,
    NestedDotfilesError,
    OperationStepError,
    SymlinkMissingError,
)
from .filesystem import backup_file, copy_file_or_dir, create_symlink, delete_file_or_dir
from .models import MigrationReport
from .paths import exists, is_symlink, is_under, locate, replace_prefix, to_absolute

logger = logging.getLogger(__name__)

PathLike = str | os.PathLike[str]


@contextmanager
def _step(name: str, path: Path) -> Iterator[None]:
    try:
        yield
    except OSError as exc:
        raise OperationStepError(name, path, exc.strerror or str(exc)) from exc


def _resolve_parent(path: Path) -> Path:
    return Path(os.path.realpath(path.parent)) / path.name


def add_dotfile(userspace_file: PathLike, userspace_root: PathLike, dotfiles_root: PathLike) -> Path:
    """Move ``userspace_file`` into the dotfiles tree and leave a symlink behind.

    Returns the path of the new dotfile.
    """

    source = to_absolute(userspace_file)
    userspace = to_absolute(userspace_root)
    dotfiles = to_absolute(dotfiles_root)

    # Already tracked.
    if is_under(source, dotfiles):
        raise AlreadyExistsError(source)
    if is_under(dotfiles, source):
        raise NestedDotfilesError(source, dotfiles)

    dotfile = replace_prefix(source, userspace, dotfiles)
    if exists(dotfile):
        raise AlreadyExistsError(dotfile)

    with _step("backup", source):
        backup_file(source)
    with _step("copy", source):
        copy_file_or_dir(source, dotfile)
    with _step("delete", source):
        delete_file_or_dir(source)
    with _step("symlink", source):
        create_symlink(source, dotfile)

    logger.info("Added %s to dotfiles", source)
    return dotfile


def install_dotfile(
    file: PathLike,
    userspace_root: PathLike,
    dotfiles_root: PathLike,
    *,
    overwrite: bool = False,
) -> Path:
    """Symlink an existing dotfile into its mirrored userspace location.

    ``file`` may name either the dotfile or its userspace counterpart. An
    existing userspace entry is only replaced, after a backup, when
    ``overwrite`` is set; otherwise ``AbortOnOverwriteError`` is raised so the
    caller can ask and retry. Returns the userspace path.
    """

    location = locate(file, userspace_root, dotfiles_root)
    dotfile = location.dotfiles_file
    target = location.userspace_file

    if not exists(dotfile):
        raise DotfileMissingError(dotfile)

    if is_symlink(target) and Path(os.readlink(target)) == dotfile:
        logger.info("%s is already installed", target)
        return target

    # Reached through a symlinked parent directory: target is the dotfile itself.
    if exists(target) and _resolve_parent(target) == _resolve_parent(dotfile):
        logger.info("%s is already installed through a linked directory", target)
        return target

    if exists(target):
        if not overwrite:
            raise AbortOnOverwriteError(target)
        with _step("backup", target):
            backup_file(target)
        with _step("delete", target):
            delete_file_or_dir(target)

    with _step("symlink", target):
        create_symlink(target, dotfile)

    logger.info("Installed %s -> %s", target, dotfile)
    return target


def revert_dotfile(file: PathLike, userspace_root: PathLike, dotfiles_root: PathLike) -> Path:
    """Undo ``add_dotfile``: put the real file back in userspace and drop the dotfile.

    ``file`` may name either side. Returns the restored userspace path.
    """

    location = locate(file, userspace_root, dotfiles_root)
    dotfile = location.dotfiles_file
    link = location.userspace_file

    if not exists(dotfile):
        raise DotfileMissingError(dotfile)
    if not is_symlink(link):
        raise SymlinkMissingError(link)

    with _step("backup", dotfile):
        backup_file(dotfile)
    with _step("delete", link):
        delete_file_or_dir(link)
    with _step("copy", dotfile):
        copy_file_or_dir(dotfile, link)
    with _step("delete", dotfile):
        delete_file_or_dir(dotfile)

    logger.info("Reverted %s", link)
    return link


def import_external(
    path: PathLike,
    external_root: PathLike,
    dotfiles_root: PathLike,
    *,
    confirm: bool,
) -> Path:
    """Copy an entry from a foreign dotfiles tree into the active one.

    With ``confirm`` set nothing is written; ``ConfirmProceedError`` carries the
    planned destination so the caller can ask the user and call again with
    ``confirm=False``. A symlink source is recreated as a symlink to its
    original target, with relative targets joined onto ``external_root``.
    Returns the destination path.
    """

    source = to_absolute(path)
    external = to_absolute(external_root)
    destination = replace_prefix(source, external, to_absolute(dotfiles_root))

    if confirm:
        raise ConfirmProceedError(destination)

    if exists(destination):
        raise AlreadyExistsError(destination)

    if is_symlink(source):
        stored = Path(os.readlink(source))
        target = stored if stored.is_absolute() else external / stored
        with _step("symlink", destination):
            create_symlink(destination, target)
    else:
        with _step("backup", source):
            backup_file(source)
        with _step("copy", source):
            copy_file_or_dir(source, destination)

    logger.info("Imported %s into %s", source, destination)
    return destination


def migrate_symlinks(userspace_root: PathLike, dotfiles_root: PathLike) -> MigrationReport:
    """Repoint userspace symlinks at a dotfiles tree that was moved.

    The dotfiles tree is walked depth-first. A mirrored userspace path that is a
    symlink is recreated to point at the dotfile; anything else in userspace is
    left alone, and missing mirrors are reported.
    """

    userspace = to_absolute(userspace_root)
    dotfiles = to_absolute(dotfiles_root)
    report = MigrationReport()

    for dirpath, dirnames, filenames in os.walk(dotfiles):
        current = Path(dirpath)
        descend: list[str] = []
        for name in sorted(dirnames + filenames):
            dotfile = current / name
            mirror = replace_prefix(dotfile, dotfiles, userspace)

            if not exists(mirror):
                logger.warning("No userspace entry found for %s", dotfile)
                report.missing.append(mirror)
            elif is_symlink(mirror):
                with _step("delete", mirror):
                    delete_file_or_dir(mirror)
                with _step("symlink", mirror):
                    create_symlink(mirror, dotfile)
                logger.info("Updated %s -> %s", mirror, dotfile)
                report.updated.append(mirror)
                continue
            else:
                report.skipped.append(mirror)

            if name in dirnames:
                descend.append(name)

        # Children of a symlinked directory resolve into the dotfiles tree itself.
        dirnames[:] = descend

    return report


class DotfManager:
    """Runs the dotfile operations against the configured directories."""

    def __init__(self, config: Config) -> None:
        self.config = config

    def add(self, path: PathLike) -> Path:
        return add_dotfile(path, self.config.userspace_dir, self.config.dotfiles_dir)

    def install(self, path: PathLike, *, overwrite: bool = False) -> Path:
        return install_dotfile(path, self.config.userspace_dir, self.config.dotfiles_dir, overwrite=overwrite)

    def revert(self, path: PathLike) -> Path:
        return revert_dotfile(path, self.config.userspace_dir, self.config.dotfiles_dir)

    def import_external(self, path: PathLike, external_dir: PathLike, *, confirm: bool) -> Path:
        return import_external(path, external_dir, self.config.dotfiles_dir, confirm=confirm)

    def migrate(self, dotfiles_dir: PathLike, userspace_dir: PathLike) -> MigrationReport:
        return migrate_symlinks(userspace_dir, dotfiles_dir)
