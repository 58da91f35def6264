"""Path translation between the userspace and dotfiles trees.

All comparisons are lexical after absolutization. Roots are never resolved
through symlinks, so a dotfiles directory reached through a symlinked parent
keeps the spelling the user configured.
"""

from __future__ import annotations

import errno
import os
import stat
from pathlib import Path

from .errors import NotFoundError, PrefixMismatchError, StatError
from .models import EntryType, FileLocation


def expand_tilde(path: str | os.PathLike[str]) -> Path:
    """Expand a leading ``~/`` (or a bare ``~``) to the user's home directory."""

    text = os.fspath(path)
    if text == "~":
        return Path.home()
    if text.startswith("~/"):
        return Path.home() / text[2:]
    return Path(text)


def to_absolute(path: str | os.PathLike[str], *, must_exist: bool = True) -> Path:
    """Return the absolute, ``~``-expanded form of ``path``.

    Raises ``NotFoundError`` when ``must_exist`` is set and nothing lives at
    the path. A dangling symlink counts as present.
    """

    text = os.fspath(path)
    if not text:
        raise ValueError("cannot get absolute path of empty string")
    absolute = Path(os.path.abspath(expand_tilde(text)))
    if must_exist and not exists(absolute):
        raise NotFoundError(absolute)
    return absolute


def is_under(path: Path, root: Path) -> bool:
    return path.parts[: len(root.parts)] == root.parts


def relative_to_root(path: str | os.PathLike[str], root: str | os.PathLike[str]) -> Path:
    """Return the remainder of ``path`` below ``root``."""

    absolute = to_absolute(path, must_exist=False)
    absolute_root = to_absolute(root, must_exist=False)
    if not is_under(absolute, absolute_root):
        raise PrefixMismatchError(absolute, absolute_root)
    return Path(*absolute.parts[len(absolute_root.parts) :])


def replace_prefix(
    path: str | os.PathLike[str],
    old_root: str | os.PathLike[str],
    new_root: str | os.PathLike[str],
) -> Path:
    """Map ``path`` from below ``old_root`` to the same place below ``new_root``.

    >>> replace_prefix("/a/b/c/d", "/a/b", "/e/f")
    PosixPath('/e/f/c/d')
    """

    remainder = relative_to_root(path, old_root)
    return to_absolute(new_root, must_exist=False) / remainder


def _lstat(path: Path) -> os.stat_result | None:
    try:
        return path.lstat()
    except OSError as exc:
        if exc.errno in (errno.ENOENT, errno.ENOTDIR):
            return None
        raise StatError(path, exc.strerror or str(exc)) from exc


def exists(path: str | os.PathLike[str]) -> bool:
    """Return ``True`` if anything, including a dangling symlink, lives at ``path``."""

    return _lstat(Path(path)) is not None


def is_symlink(path: str | os.PathLike[str]) -> bool:
    """Return ``True`` if ``path`` itself is a symlink. The link is never followed."""

    return entry_type(path) is EntryType.SYMLINK


def entry_type(path: str | os.PathLike[str]) -> EntryType:
    """Determine the ``EntryType`` for ``path`` using link-level stat."""

    stat_result = _lstat(Path(path))
    if stat_result is None:
        return EntryType.MISSING

    if stat.S_ISLNK(stat_result.st_mode):
        return EntryType.SYMLINK
    if stat.S_ISDIR(stat_result.st_mode):
        return EntryType.DIRECTORY
    return EntryType.FILE


def locate(
    file: str | os.PathLike[str],
    userspace_root: str | os.PathLike[str],
    dotfiles_root: str | os.PathLike[str],
) -> FileLocation:
    """Compute both paired paths for ``file``, which may be given from either side.

    A path lexically under ``dotfiles_root`` is taken as the dotfile side;
    anything else is taken as the userspace side. Both roots must exist.
    """

    absolute = to_absolute(file, must_exist=False)
    userspace = to_absolute(userspace_root)
    dotfiles = to_absolute(dotfiles_root)

    if is_under(absolute, dotfiles):
        return FileLocation(
            original=absolute,
            userspace_file=replace_prefix(absolute, dotfiles, userspace),
            dotfiles_file=absolute,
            inside_dotfiles=True,
        )

    return FileLocation(
        original=absolute,
        userspace_file=absolute,
        dotfiles_file=replace_prefix(absolute, userspace, dotfiles),
        inside_dotfiles=False,
    )
