from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import pytest

from dotf import filesystem
from dotf.config import Config


@pytest.fixture
def fake_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.delenv("DOTF_CONFIG", raising=False)
    return home


@pytest.fixture(autouse=True)
def backup_root(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    root = tmp_path / "backups"
    monkeypatch.setattr(filesystem, "BACKUP_ROOT", root)
    return root


@pytest.fixture(autouse=True)
def _reset_dotf_logger():
    yield
    logger = logging.getLogger("dotf")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def roots(tmp_path: Path) -> tuple[Path, Path]:
    userspace = tmp_path / "userspace"
    dotfiles = tmp_path / "dotfiles"
    userspace.mkdir()
    dotfiles.mkdir()
    return userspace, dotfiles


@pytest.fixture
def config(roots: tuple[Path, Path]) -> Config:
    userspace, dotfiles = roots
    return Config(
        sync_dir=dotfiles,
        dotfiles_dir=dotfiles,
        userspace_dir=userspace,
        sync_interval_secs=60,
    )


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[..., Path]:
    def _write(userspace: Path, dotfiles: Path, *, sync_dir: Path | None = None, extra: str = "") -> Path:
        config_path = tmp_path / "config"
        config_path.write_text(
            f"""# test configuration
syncdir = "{sync_dir or dotfiles}"
dotfilesdir = "{dotfiles}"
userspacedir = "{userspace}"
syncinterval = 60
{extra}"""
        )
        return config_path

    return _write
