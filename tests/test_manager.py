from __future__ import annotations

import os
from pathlib import Path

import pytest

from dotf import manager as manager_module
from dotf.config import Config
from dotf.errors import (
    AbortOnOverwriteError,
    AlreadyExistsError,
    ConfirmProceedError,
    DotfileMissingError,
    NestedDotfilesError,
    OperationStepError,
    SymlinkMissingError,
)
from dotf.filesystem import backup_location
from dotf.manager import (
    DotfManager,
    add_dotfile,
    import_external,
    install_dotfile,
    migrate_symlinks,
    revert_dotfile,
)


def _points_at(link: Path, target: Path) -> bool:
    return link.is_symlink() and Path(os.readlink(link)) == target


def test_add_moves_file_and_leaves_symlink(roots: tuple[Path, Path]) -> None:
    userspace, dotfiles = roots
    bashrc = userspace / ".bashrc"
    bashrc.write_text("alias ll='ls -l'\n")

    dotfile = add_dotfile(bashrc, userspace, dotfiles)

    assert dotfile == dotfiles / ".bashrc"
    assert dotfile.read_text() == "alias ll='ls -l'\n"
    assert _points_at(bashrc, dotfile)
    assert backup_location(bashrc).read_text() == "alias ll='ls -l'\n"


def test_add_directory(roots: tuple[Path, Path]) -> None:
    userspace, dotfiles = roots
    nvim = userspace / ".config" / "nvim"
    nvim.mkdir(parents=True)
    (nvim / "init.lua").write_text("-- nvim\n")

    dotfile = add_dotfile(nvim, userspace, dotfiles)

    assert (dotfile / "init.lua").read_text() == "-- nvim\n"
    assert _points_at(nvim, dotfiles / ".config" / "nvim")
    assert (nvim / "init.lua").read_text() == "-- nvim\n"


def test_add_refuses_existing_dotfile(roots: tuple[Path, Path]) -> None:
    userspace, dotfiles = roots
    (userspace / ".vimrc").write_text("local\n")
    (dotfiles / ".vimrc").write_text("tracked\n")

    with pytest.raises(AlreadyExistsError):
        add_dotfile(userspace / ".vimrc", userspace, dotfiles)

    assert (userspace / ".vimrc").read_text() == "local\n"
    assert not (userspace / ".vimrc").is_symlink()


def test_add_refuses_paths_inside_dotfiles(roots: tuple[Path, Path]) -> None:
    userspace, dotfiles = roots
    (dotfiles / ".vimrc").write_text("tracked\n")

    with pytest.raises(AlreadyExistsError):
        add_dotfile(dotfiles / ".vimrc", userspace, dotfiles)


def test_add_refuses_directory_containing_dotfiles(tmp_path: Path) -> None:
    userspace = tmp_path / "home"
    sync_dir = userspace / "sync"
    dotfiles = sync_dir / "distros" / "host"
    dotfiles.mkdir(parents=True)
    (dotfiles / ".vimrc").write_text("tracked\n")

    with pytest.raises(NestedDotfilesError) as info:
        add_dotfile(sync_dir, userspace, dotfiles)

    assert info.value.path == sync_dir
    assert not sync_dir.is_symlink()
    assert sorted(path.name for path in dotfiles.iterdir()) == [".vimrc"]


def test_add_wraps_failed_step(roots: tuple[Path, Path], monkeypatch: pytest.MonkeyPatch) -> None:
    userspace, dotfiles = roots
    source = userspace / ".profile"
    source.write_text("export A=1\n")

    def broken_copy(source: Path, destination: Path) -> Path:
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(manager_module, "copy_file_or_dir", broken_copy)

    with pytest.raises(OperationStepError) as info:
        add_dotfile(source, userspace, dotfiles)

    assert info.value.step == "copy"
    assert info.value.path == source
    assert source.read_text() == "export A=1\n"
    assert backup_location(source).exists()


def test_install_creates_symlink(roots: tuple[Path, Path]) -> None:
    userspace, dotfiles = roots
    dotfile = dotfiles / ".config" / "foo"
    dotfile.parent.mkdir()
    dotfile.write_text("foo\n")

    target = install_dotfile(dotfile, userspace, dotfiles)

    assert target == userspace / ".config" / "foo"
    assert _points_at(target, dotfile)
    assert target.read_text() == "foo\n"


def test_install_from_userspace_path(roots: tuple[Path, Path]) -> None:
    userspace, dotfiles = roots
    (dotfiles / ".gitconfig").write_text("[user]\n")

    install_dotfile(userspace / ".gitconfig", userspace, dotfiles)

    assert _points_at(userspace / ".gitconfig", dotfiles / ".gitconfig")


def test_install_refuses_to_overwrite_without_permission(roots: tuple[Path, Path]) -> None:
    userspace, dotfiles = roots
    (dotfiles / ".zshrc").write_text("dotfile\n")
    existing = userspace / ".zshrc"
    existing.write_text("local\n")

    with pytest.raises(AbortOnOverwriteError) as info:
        install_dotfile(dotfiles / ".zshrc", userspace, dotfiles)

    assert info.value.path == existing
    assert existing.read_text() == "local\n"
    assert not existing.is_symlink()


def test_install_with_overwrite_backs_up_existing_file(roots: tuple[Path, Path]) -> None:
    userspace, dotfiles = roots
    (dotfiles / ".zshrc").write_text("dotfile\n")
    existing = userspace / ".zshrc"
    existing.write_text("local\n")

    install_dotfile(dotfiles / ".zshrc", userspace, dotfiles, overwrite=True)

    assert _points_at(existing, dotfiles / ".zshrc")
    assert backup_location(existing).read_text() == "local\n"


def test_install_is_a_no_op_when_already_linked(roots: tuple[Path, Path]) -> None:
    userspace, dotfiles = roots
    (dotfiles / ".tmux.conf").write_text("set -g mouse on\n")
    (userspace / ".tmux.conf").symlink_to(dotfiles / ".tmux.conf")

    target = install_dotfile(dotfiles / ".tmux.conf", userspace, dotfiles)

    assert _points_at(target, dotfiles / ".tmux.conf")


def test_install_through_linked_directory_keeps_dotfile(roots: tuple[Path, Path]) -> None:
    userspace, dotfiles = roots
    nvim = userspace / ".config" / "nvim"
    nvim.mkdir(parents=True)
    (nvim / "init.lua").write_text("-- nvim\n")
    add_dotfile(nvim, userspace, dotfiles)
    dotfile = dotfiles / ".config" / "nvim" / "init.lua"

    target = install_dotfile(dotfile, userspace, dotfiles, overwrite=True)

    assert target == nvim / "init.lua"
    assert not dotfile.is_symlink()
    assert dotfile.read_text() == "-- nvim\n"
    assert target.read_text() == "-- nvim\n"


def test_install_requires_dotfile(roots: tuple[Path, Path]) -> None:
    userspace, dotfiles = roots

    with pytest.raises(DotfileMissingError):
        install_dotfile(dotfiles / ".missing", userspace, dotfiles)


def test_revert_restores_original_file(roots: tuple[Path, Path]) -> None:
    userspace, dotfiles = roots
    bashrc = userspace / ".bashrc"
    bashrc.write_text("export EDITOR=vim\n")
    add_dotfile(bashrc, userspace, dotfiles)

    restored = revert_dotfile(dotfiles / ".bashrc", userspace, dotfiles)

    assert restored == bashrc
    assert not bashrc.is_symlink()
    assert bashrc.read_text() == "export EDITOR=vim\n"
    assert not (dotfiles / ".bashrc").exists()
    assert backup_location(dotfiles / ".bashrc").read_text() == "export EDITOR=vim\n"


def test_revert_requires_symlink_in_userspace(roots: tuple[Path, Path]) -> None:
    userspace, dotfiles = roots
    (dotfiles / ".bashrc").write_text("tracked\n")
    (userspace / ".bashrc").write_text("plain\n")

    with pytest.raises(SymlinkMissingError):
        revert_dotfile(userspace / ".bashrc", userspace, dotfiles)

    assert (dotfiles / ".bashrc").read_text() == "tracked\n"


def test_revert_requires_dotfile(roots: tuple[Path, Path]) -> None:
    userspace, dotfiles = roots

    with pytest.raises(DotfileMissingError):
        revert_dotfile(userspace / ".bashrc", userspace, dotfiles)


def test_import_external_asks_before_writing(tmp_path: Path, roots: tuple[Path, Path]) -> None:
    _, dotfiles = roots
    external = tmp_path / "other-machine"
    (external / ".config").mkdir(parents=True)
    (external / ".config" / "kitty.conf").write_text("font_size 12\n")

    with pytest.raises(ConfirmProceedError) as info:
        import_external(external / ".config" / "kitty.conf", external, dotfiles, confirm=True)

    assert info.value.path == dotfiles / ".config" / "kitty.conf"
    assert not info.value.path.exists()

    destination = import_external(external / ".config" / "kitty.conf", external, dotfiles, confirm=False)

    assert destination.read_text() == "font_size 12\n"
    assert (external / ".config" / "kitty.conf").exists()


def test_import_external_keeps_symlinks(tmp_path: Path, roots: tuple[Path, Path]) -> None:
    _, dotfiles = roots
    external = tmp_path / "other-machine"
    (external / "shared").mkdir(parents=True)
    (external / "shared" / "aliases").write_text("alias g=git\n")
    (external / ".aliases").symlink_to("shared/aliases")
    (external / ".absolute").symlink_to("/etc/hostname")

    relative = import_external(external / ".aliases", external, dotfiles, confirm=False)
    absolute = import_external(external / ".absolute", external, dotfiles, confirm=False)

    assert _points_at(relative, external / "shared" / "aliases")
    assert _points_at(absolute, Path("/etc/hostname"))


def test_import_external_refuses_existing_destination(tmp_path: Path, roots: tuple[Path, Path]) -> None:
    _, dotfiles = roots
    external = tmp_path / "other-machine"
    external.mkdir()
    (external / ".inputrc").write_text("external\n")
    (dotfiles / ".inputrc").write_text("mine\n")

    with pytest.raises(AlreadyExistsError):
        import_external(external / ".inputrc", external, dotfiles, confirm=False)

    assert (dotfiles / ".inputrc").read_text() == "mine\n"


def test_migrate_relinks_symlinks_after_move(tmp_path: Path) -> None:
    userspace = tmp_path / "home"
    old_dotfiles = tmp_path / "old-dotfiles"
    new_dotfiles = tmp_path / "new-dotfiles"
    userspace.mkdir()
    (old_dotfiles / "nvim").mkdir(parents=True)
    (old_dotfiles / "nvim" / "init.lua").write_text("-- nvim\n")
    (old_dotfiles / ".gitconfig").write_text("[user]\n")
    (old_dotfiles / ".plain").write_text("tracked\n")
    (old_dotfiles / ".orphan").write_text("no mirror\n")

    (userspace / "nvim").symlink_to(old_dotfiles / "nvim")
    (userspace / ".gitconfig").symlink_to(old_dotfiles / ".gitconfig")
    (userspace / ".plain").write_text("local copy\n")

    old_dotfiles.rename(new_dotfiles)

    report = migrate_symlinks(userspace, new_dotfiles)

    assert _points_at(userspace / "nvim", new_dotfiles / "nvim")
    assert _points_at(userspace / ".gitconfig", new_dotfiles / ".gitconfig")
    assert (userspace / "nvim" / "init.lua").read_text() == "-- nvim\n"
    assert (userspace / ".plain").read_text() == "local copy\n"
    assert not (userspace / ".plain").is_symlink()

    assert sorted(report.updated) == [userspace / ".gitconfig", userspace / "nvim"]
    assert report.skipped == [userspace / ".plain"]
    assert report.missing == [userspace / ".orphan"]


def test_manager_uses_configured_directories(config: Config) -> None:
    userspace, dotfiles = config.userspace_dir, config.dotfiles_dir
    (userspace / ".npmrc").write_text("save-exact=true\n")
    manager = DotfManager(config)

    manager.add(userspace / ".npmrc")
    assert _points_at(userspace / ".npmrc", dotfiles / ".npmrc")

    manager.revert(userspace / ".npmrc")
    assert (userspace / ".npmrc").read_text() == "save-exact=true\n"

    (dotfiles / ".npmrc").write_text("save-exact=false\n")
    with pytest.raises(AbortOnOverwriteError):
        manager.install(dotfiles / ".npmrc")
    manager.install(dotfiles / ".npmrc", overwrite=True)
    assert _points_at(userspace / ".npmrc", dotfiles / ".npmrc")
