"""Tests for the doctor."""

from pathlib import Path

import pytest

from dotlnk.core import DoctorResult, Lnk
from dotlnk.exceptions import DotlnkRepositoryNotFoundError


@pytest.fixture
def two_managed(lnk: Lnk, temp_home: Path) -> Lnk:
    """A repository managing ~/.bashrc and ~/.vimrc."""
    (temp_home / ".bashrc").write_text("B")
    (temp_home / ".vimrc").write_text("V")
    lnk.add_multiple([temp_home / ".bashrc", temp_home / ".vimrc"])
    return lnk


class TestDoctorResult:
    """Test the result helpers."""

    def test_counts(self):
        """Issues are counted across both lists."""
        result = DoctorResult(invalid_entries=["a"], broken_symlinks=["b", "c"])
        assert result.has_issues()
        assert result.total_issues() == 3
        assert not DoctorResult().has_issues()


class TestDoctor:
    """Test previewing and fixing problems."""

    def test_healthy(self, two_managed: Lnk):
        """A consistent repository has no issues."""
        assert not two_managed.preview_doctor().has_issues()
        assert not two_managed.doctor().has_issues()

    def test_preview_and_fix(
        self, two_managed: Lnk, temp_home: Path, repo_path: Path, assert_symlink_correct
    ):
        """Invalid entries are dropped and broken links restored."""
        (repo_path / ".vimrc").unlink()
        (temp_home / ".bashrc").unlink()
        commits = two_managed.get_commits()

        preview = two_managed.preview_doctor()
        assert preview.invalid_entries == [".vimrc"]
        assert preview.broken_symlinks == [".bashrc"]
        assert not (temp_home / ".bashrc").exists()
        assert two_managed.get_commits() == commits

        result = two_managed.doctor()

        assert result.invalid_entries == [".vimrc"]
        assert result.broken_symlinks == [".bashrc"]
        assert_symlink_correct(temp_home / ".bashrc", repo_path / ".bashrc")
        assert (repo_path / ".lnk").read_text() == ".bashrc\n"
        assert two_managed.get_commits()[0] == "dotlnk: cleaned 1 invalid entry"

    def test_wrong_link_is_broken(self, two_managed: Lnk, temp_home: Path):
        """A link pointing somewhere else counts as broken."""
        (temp_home / ".bashrc").unlink()
        (temp_home / "other").write_text("o")
        (temp_home / ".bashrc").symlink_to("other")

        assert two_managed.preview_doctor().broken_symlinks == [".bashrc"]

    def test_regular_file_is_broken(self, two_managed: Lnk, temp_home: Path):
        """A plain file where the link should be counts as broken."""
        (temp_home / ".vimrc").unlink()
        (temp_home / ".vimrc").write_text("local copy")

        assert two_managed.preview_doctor().broken_symlinks == [".vimrc"]

    def test_malformed_entries(self, lnk: Lnk, repo_path: Path):
        """Entries escaping the repository are invalid and removed."""
        (repo_path / ".lnk").write_text("../../etc/passwd\n/etc/hosts\n")

        result = lnk.doctor()

        assert sorted(result.invalid_entries) == ["../../etc/passwd", "/etc/hosts"]
        assert (repo_path / ".lnk").read_text() == ""
        assert lnk.get_commits()[0] == "dotlnk: cleaned 2 invalid entries"

    def test_only_broken_links_make_no_commit(self, two_managed: Lnk, temp_home: Path):
        """Restoring links alone does not touch git."""
        (temp_home / ".bashrc").unlink()
        commits = two_managed.get_commits()

        result = two_managed.doctor()

        assert result.broken_symlinks == [".bashrc"]
        assert (temp_home / ".bashrc").is_symlink()
        assert two_managed.get_commits() == commits

    def test_host_profile(self, host_lnk: Lnk, temp_home: Path, repo_path: Path):
        """Doctor only looks at its own profile."""
        path = temp_home / ".gitconfig"
        path.write_text("Y")
        host_lnk.add(path)
        (repo_path / "work.lnk" / ".gitconfig").unlink()

        assert host_lnk.preview_doctor().invalid_entries == [".gitconfig"]
        assert not Lnk().preview_doctor().has_issues()

    def test_requires_repository(self, temp_home: Path):
        """Doctor needs an initialized repository."""
        with pytest.raises(DotlnkRepositoryNotFoundError):
            Lnk().preview_doctor()
