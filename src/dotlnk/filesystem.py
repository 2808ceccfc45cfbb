"""Filesystem primitives used by the add, remove and restore operations."""

import os
import shutil
import stat
from pathlib import Path
from typing import List

from loguru import logger

from .config import DIR_MODE
from .exceptions import (
    DotlnkAccessError,
    DotlnkFileNotFoundError,
    DotlnkFileOperationError,
    DotlnkNotManagedError,
    DotlnkSymlinkError,
    DotlnkUnsupportedTypeError,
)

NOT_MANAGED_SUGGESTION = "use 'dotlnk add' to manage this file first"


def validate_for_add(path: Path, allow_symlink: bool = False) -> os.stat_result:
    """
    Check that a path can be managed and return its stat result.

    Only regular files and directories are accepted. Symlinks are rejected
    unless ``allow_symlink`` is set, which the recursive expansion uses for
    links found inside a directory.
    """
    try:
        info = os.lstat(path)
    except FileNotFoundError as e:
        raise DotlnkFileNotFoundError(
            "File or directory not found", path=str(path)
        ) from e
    except OSError as e:
        raise DotlnkAccessError(
            "Unable to access file. Please check file permissions and try again",
            path=str(path),
        ) from e

    if stat.S_ISLNK(info.st_mode) and allow_symlink:
        return info
    if not stat.S_ISREG(info.st_mode) and not stat.S_ISDIR(info.st_mode):
        raise DotlnkUnsupportedTypeError(
            "Cannot manage this type of file",
            path=str(path),
            suggestion="dotlnk can only manage regular files and directories",
        )
    return info


def read_link_target(link: Path) -> Path:
    """Return the absolute, lexically normalized target of a symlink."""
    try:
        target = os.readlink(link)
    except OSError as e:
        raise DotlnkSymlinkError(
            "Unable to read symlink. The file may be corrupted or have invalid "
            "permissions",
            path=str(link),
        ) from e
    return Path(os.path.normpath(os.path.join(os.path.dirname(link), target)))


def validate_symlink_for_remove(path: Path, repo_root: Path) -> Path:
    """
    Check that ``path`` is a symlink into ``repo_root`` and return its target.

    The containment check is lexical: neither the link nor its target is
    resolved through further symlinks.
    """
    try:
        info = os.lstat(path)
    except FileNotFoundError as e:
        raise DotlnkFileNotFoundError(
            "File or directory not found", path=str(path)
        ) from e
    except OSError as e:
        raise DotlnkAccessError(
            "Unable to access file. Please check file permissions and try again",
            path=str(path),
        ) from e

    if not stat.S_ISLNK(info.st_mode):
        raise DotlnkNotManagedError(
            "File is not managed by dotlnk",
            path=str(path),
            suggestion=NOT_MANAGED_SUGGESTION,
        )

    target = read_link_target(path)
    root = Path(os.path.normpath(os.path.abspath(repo_root)))
    if target != root and not target.is_relative_to(root):
        raise DotlnkNotManagedError(
            "File is not managed by dotlnk",
            path=str(path),
            suggestion=NOT_MANAGED_SUGGESTION,
        )
    return target


def ensure_dir(path: Path) -> None:
    """Create a directory and its parents with the default mode."""
    try:
        path.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
    except OSError as e:
        raise DotlnkFileOperationError(
            "Failed to create directory. Please check permissions and available "
            "disk space",
            path=str(path),
        ) from e


def move(src: Path, dst: Path) -> None:
    """
    Rename ``src`` to ``dst``, creating the destination's parent.

    Files and directories are moved the same way. Cross-device moves are not
    attempted and surface as errors.
    """
    ensure_dir(Path(dst).parent)
    try:
        os.rename(src, dst)
    except OSError as e:
        raise DotlnkFileOperationError(
            f"Failed to move {src} to {dst}: {e.strerror or e}", path=str(src)
        ) from e
    logger.debug(f"Moved {src} -> {dst}")


def create_relative_symlink(target: Path, link: Path) -> None:
    """Create ``link`` pointing at ``target`` through a relative path."""
    try:
        rel_target = os.path.relpath(target, os.path.dirname(link))
    except ValueError as e:
        raise DotlnkSymlinkError(
            "Unable to create symlink due to path configuration issues. Please "
            "check file locations",
            path=str(link),
        ) from e

    try:
        os.symlink(rel_target, link)
    except OSError as e:
        raise DotlnkFileOperationError(
            f"Failed to create symlink: {e.strerror or e}", path=str(link)
        ) from e
    logger.debug(f"Linked {link} -> {rel_target}")


def remove_path(path: Path) -> None:
    """Remove a file, symlink or directory tree at ``path``."""
    try:
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.remove(path)
    except OSError as e:
        raise DotlnkFileOperationError(
            f"Failed to remove existing item: {e.strerror or e}", path=str(path)
        ) from e


def is_valid_symlink(link: Path, expected_target: Path) -> bool:
    """Return True if ``link`` is a symlink resolving to ``expected_target``."""
    if not os.path.islink(link):
        return False
    try:
        target = read_link_target(link)
    except DotlnkSymlinkError:
        return False
    return target == Path(os.path.normpath(os.path.abspath(expected_target)))


def walk_directory(directory: Path) -> List[Path]:
    """Collect regular files and symlinks below ``directory``, sorted."""
    found: List[Path] = []
    for root, dirs, files in os.walk(directory):
        for name in dirs:
            candidate = Path(root) / name
            # os.walk does not descend into directory symlinks
            if candidate.is_symlink():
                found.append(candidate)
        for name in files:
            candidate = Path(root) / name
            if candidate.is_symlink() or candidate.is_file():
                found.append(candidate)
    return sorted(found)
