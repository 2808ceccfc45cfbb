"""Shared pytest fixtures and configuration."""

import os
from pathlib import Path
from typing import Callable, Dict, Generator

import pytest
from git import Repo
from loguru import logger

from dotlnk.core import Lnk


@pytest.fixture(autouse=True)
def quiet_logger() -> Generator[None, None, None]:
    """Drop any sinks a CLI test installed so later tests start clean."""
    yield
    logger.remove()
    logger.disable("dotlnk")


@pytest.fixture
def temp_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create a temporary home directory and point HOME and XDG at it."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    # Keep the machine's git configuration out of the tests
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    return home


@pytest.fixture
def repo_path(temp_home: Path) -> Path:
    """Location of the dotlnk repository inside the temporary home."""
    return temp_home / ".config" / "dotlnk"


@pytest.fixture
def lnk(temp_home: Path) -> Lnk:
    """An initialized common-profile Lnk."""
    instance = Lnk()
    instance.init()
    return instance


@pytest.fixture
def host_lnk(lnk: Lnk) -> Lnk:
    """An initialized Lnk for the 'work' host profile."""
    return Lnk(host="work")


@pytest.fixture
def bare_remote(tmp_path: Path) -> Path:
    """An empty bare repository usable as 'origin'."""
    remote = tmp_path / "remote.git"
    Repo.init(str(remote), bare=True, initial_branch="main")
    return remote


@pytest.fixture
def create_test_files() -> Callable[[Path, Dict[str, str]], Dict[str, Path]]:
    """Return a helper that writes ``{relative path: content}`` under a base."""

    def _create(base: Path, files: Dict[str, str]) -> Dict[str, Path]:
        created = {}
        for rel, content in files.items():
            path = base / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
            created[rel] = path
        return created

    return _create


@pytest.fixture
def assert_symlink_correct() -> Callable[[Path, Path], None]:
    """Return a helper asserting ``link`` is a relative symlink to ``target``."""

    def _assert(link: Path, target: Path) -> None:
        assert link.is_symlink(), f"{link} is not a symlink"
        stored = os.readlink(link)
        assert not os.path.isabs(stored), f"{link} points to absolute {stored}"
        assert os.path.realpath(link) == os.path.realpath(target)

    return _assert
