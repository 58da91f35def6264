"""Filesystem primitives shared by the dotfile operations."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from .errors import AbortOnOverwriteError
from .models import EntryType
from .paths import entry_type, exists, to_absolute

logger = logging.getLogger(__name__)

# Volatile scratch area; not expected to survive a reboot.
BACKUP_ROOT = Path("/tmp/dotf/backups")


def ensure_parent(path: Path) -> None:
    """Ensure the parent directory exists."""

    path.parent.mkdir(parents=True, exist_ok=True)


def copy_file_or_dir(source: Path, destination: Path) -> Path:
    """Copy ``source`` to ``destination`` without modifying ``source``.

    Directories are copied recursively. Symlinks, at the top level or inside a
    copied tree, are recreated as symlinks with the same stored target.
    Returns ``destination``.
    """

    kind = entry_type(source)
    ensure_parent(destination)

    if kind is EntryType.SYMLINK:
        destination.symlink_to(os.readlink(source))
    elif kind is EntryType.DIRECTORY:
        shutil.copytree(source, destination, symlinks=True, copy_function=shutil.copy2)
    elif kind is EntryType.FILE:
        shutil.copy2(source, destination)
    else:
        raise FileNotFoundError(f"the source '{source}' was not found")

    logger.info("Copied %s -> %s", source, destination)
    return destination


def delete_file_or_dir(path: Path) -> None:
    """Delete ``path`` whether it is a file, directory, or symlink.

    Symlinks are unlinked and never followed.
    """

    kind = entry_type(path)
    if kind is EntryType.MISSING:
        raise FileNotFoundError(f"nothing to delete at '{path}'")
    if kind is EntryType.DIRECTORY:
        shutil.rmtree(path)
    else:
        path.unlink()
    logger.info("Deleted %s", path)


def create_symlink(link: Path, target: Path) -> None:
    """Create ``link`` pointing at ``target``, storing the target verbatim."""

    ensure_parent(link)
    link.symlink_to(target)
    logger.info("Created symlink %s -> %s", link, target)


def backup_location(path: Path) -> Path:
    """Return where ``path`` is backed up: the backup root plus its absolute path."""

    absolute = to_absolute(path, must_exist=False)
    return BACKUP_ROOT.joinpath(*absolute.parts[1:])


def backup_file(path: Path) -> Path:
    """Copy ``path`` into the backup area and return the backup path.

    A previous backup of the same path is replaced. ``path`` is never touched.
    """

    destination = backup_location(path)
    if exists(destination):
        delete_file_or_dir(destination)
    copy_file_or_dir(path, destination)
    logger.info("Backed up %s to %s", path, destination)
    return destination


def write_file(path: Path, contents: str, *, overwrite: bool) -> Path:
    """Write ``contents`` to ``path``; refuse to replace an existing file unless allowed."""

    if exists(path) and not overwrite:
        raise AbortOnOverwriteError(path)
    ensure_parent(path)
    path.write_text(contents)
    logger.info("Wrote %s", path)
    return path
