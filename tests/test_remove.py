"""Tests for removing files from dotlnk."""

import os
import shutil
import stat
from pathlib import Path
from unittest.mock import patch

import pytest
from git import Repo

from dotlnk.core import Lnk
from dotlnk.exceptions import (
    DotlnkFileNotFoundError,
    DotlnkGitError,
    DotlnkNotManagedError,
)


@pytest.fixture
def managed_bashrc(lnk: Lnk, temp_home: Path) -> Path:
    """A managed ~/.bashrc with content X."""
    bashrc = temp_home / ".bashrc"
    bashrc.write_text("X")
    lnk.add(bashrc)
    return bashrc


class TestRemove:
    """Test the normal remove transaction."""

    def test_remove_restores_file(
        self, lnk: Lnk, managed_bashrc: Path, repo_path: Path
    ):
        """The real file comes back and the entry is gone."""
        lnk.remove(managed_bashrc)

        assert not managed_bashrc.is_symlink()
        assert managed_bashrc.read_text() == "X"
        assert not (repo_path / ".bashrc").exists()
        assert (repo_path / ".lnk").read_text() == ""
        assert lnk.get_commits()[0] == "dotlnk: removed .bashrc"

    def test_round_trip_keeps_mode(self, lnk: Lnk, temp_home: Path):
        """Add followed by remove leaves content and mode unchanged."""
        path = temp_home / ".netrc"
        path.write_text("machine x")
        path.chmod(0o600)

        lnk.add(path)
        lnk.remove(path)

        assert path.read_text() == "machine x"
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
        assert lnk.list() == []

    def test_remove_directory(self, lnk: Lnk, temp_home: Path, create_test_files):
        """Managed directories are moved back whole."""
        create_test_files(temp_home, {".config/fish/config.fish": "set x"})
        fish = temp_home / ".config" / "fish"
        lnk.add(fish)

        lnk.remove(fish)

        assert fish.is_dir() and not fish.is_symlink()
        assert (fish / "config.fish").read_text() == "set x"
        assert lnk.get_commits()[0] == "dotlnk: removed fish"

    def test_remove_host_file(self, host_lnk: Lnk, temp_home: Path, repo_path: Path):
        """Host entries are removed from their own profile."""
        path = temp_home / ".gitconfig"
        path.write_text("Y")
        host_lnk.add(path)

        host_lnk.remove(path)

        assert path.read_text() == "Y"
        assert (repo_path / ".lnk.work").read_text() == ""
        assert not (repo_path / "work.lnk" / ".gitconfig").exists()

    def test_remove_regular_file(self, lnk: Lnk, temp_home: Path):
        """Unmanaged files are refused with a hint."""
        path = temp_home / ".plain"
        path.write_text("x")
        with pytest.raises(DotlnkNotManagedError) as exc_info:
            lnk.remove(path)
        assert "dotlnk add" in exc_info.value.suggestion

    def test_remove_foreign_symlink(self, lnk: Lnk, temp_home: Path):
        """Symlinks pointing outside the repository are refused."""
        (temp_home / "target").write_text("x")
        (temp_home / ".link").symlink_to("target")
        with pytest.raises(DotlnkNotManagedError):
            lnk.remove(temp_home / ".link")

    def test_remove_untracked_link_into_repo(
        self, lnk: Lnk, temp_home: Path, repo_path: Path
    ):
        """A link into the repository that is not tracked is refused."""
        (repo_path / ".stray").write_text("x")
        (temp_home / ".stray").symlink_to(repo_path / ".stray")
        with pytest.raises(DotlnkNotManagedError):
            lnk.remove(temp_home / ".stray")

    def test_remove_missing_storage(
        self, lnk: Lnk, managed_bashrc: Path, repo_path: Path
    ):
        """A dangling managed link points the user at doctor."""
        (repo_path / ".bashrc").unlink()
        with pytest.raises(DotlnkFileNotFoundError) as exc_info:
            lnk.remove(managed_bashrc)
        assert "doctor" in exc_info.value.suggestion
        assert lnk.list() == [".bashrc"]

    def test_commit_failure_rolls_back(
        self, lnk: Lnk, managed_bashrc: Path, repo_path: Path
    ):
        """A failing commit recreates the link and keeps the entry."""
        failure = DotlnkGitError("boom", operation="commit")
        with patch.object(lnk.git, "commit", side_effect=failure):
            with pytest.raises(DotlnkGitError):
                lnk.remove(managed_bashrc)

        assert managed_bashrc.is_symlink()
        assert managed_bashrc.read_text() == "X"
        assert lnk.list() == [".bashrc"]
        repo = Repo(str(repo_path))
        assert repo.git.diff("--cached", "--name-only") == ""


class TestRemoveForce:
    """Test forced removal over inconsistent state."""

    def test_force_after_symlink_deleted(
        self, lnk: Lnk, managed_bashrc: Path, repo_path: Path
    ):
        """The entry and stored copy are dropped when the link is gone."""
        managed_bashrc.unlink()

        lnk.remove_force(managed_bashrc)

        assert lnk.list() == []
        assert not (repo_path / ".bashrc").exists()
        assert not os.path.lexists(managed_bashrc)
        assert lnk.get_commits()[0] == "dotlnk: force removed .bashrc"

    def test_force_with_symlink_present(
        self, lnk: Lnk, managed_bashrc: Path, repo_path: Path
    ):
        """An existing link is deleted along with the stored copy."""
        lnk.remove_force(managed_bashrc)

        assert not os.path.lexists(managed_bashrc)
        assert not (repo_path / ".bashrc").exists()

    def test_force_when_not_in_index(
        self, lnk: Lnk, temp_home: Path, repo_path: Path
    ):
        """Entries that never reached git are still cleaned up."""
        (repo_path / ".lnk").write_text(".ghost\n")
        (repo_path / ".ghost").write_text("x")

        lnk.remove_force(temp_home / ".ghost")

        assert lnk.list() == []
        assert not (repo_path / ".ghost").exists()
        assert lnk.get_commits()[0] == "dotlnk: force removed .ghost"

    def test_force_removes_directory(
        self, lnk: Lnk, temp_home: Path, repo_path: Path, create_test_files
    ):
        """Stored directories are deleted recursively."""
        create_test_files(temp_home, {".config/app/a": "a", ".config/app/b/c": "c"})
        app_dir = temp_home / ".config" / "app"
        lnk.add(app_dir)
        app_dir.unlink()

        lnk.remove_force(app_dir)

        assert not (repo_path / ".config" / "app").exists()

    def test_force_untracked(self, lnk: Lnk, temp_home: Path):
        """Untracked paths are refused."""
        with pytest.raises(DotlnkNotManagedError):
            lnk.remove_force(temp_home / ".nothing")

    def test_force_host_profile(self, host_lnk: Lnk, temp_home: Path, repo_path: Path):
        """Host entries are deleted from <host>.lnk."""
        path = temp_home / ".gitconfig"
        path.write_text("Y")
        host_lnk.add(path)
        path.unlink()

        host_lnk.remove_force(path)

        assert not (repo_path / "work.lnk" / ".gitconfig").exists()
        assert host_lnk.list() == []

    def test_force_directory_with_storage_deleted(
        self, lnk: Lnk, temp_home: Path, repo_path: Path, create_test_files
    ):
        """A directory entry leaves the index even when its storage is gone."""
        create_test_files(
            temp_home, {".nvim/init.vim": "set nu", ".nvim/lua/a.lua": "a"}
        )
        nvim = temp_home / ".nvim"
        lnk.add(nvim)
        nvim.unlink()
        shutil.rmtree(repo_path / ".nvim")

        lnk.remove_force(nvim)

        repo = Repo(str(repo_path))
        assert repo.git.ls_files() == ".lnk"
        assert repo.git.ls_tree("-r", "--name-only", "HEAD") == ".lnk"
        assert lnk.get_commits()[0] == "dotlnk: force removed .nvim"
