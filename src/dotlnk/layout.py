"""Repository layout for common and host-specific profiles."""

import os
import posixpath
from pathlib import Path
from typing import Optional

from .config import HOST_STORAGE_SUFFIX, TRACKING_FILENAME
from .exceptions import DotlnkValidationError


class Layout:
    """
    Map home-relative paths to their storage locations for one profile.

    The common profile (empty host) stores items at the repository root and
    tracks them in ``.lnk``. A host profile stores items under
    ``<host>.lnk/`` and tracks them in ``.lnk.<host>``.
    """

    def __init__(self, repo_root: Path, profile: str = "") -> None:
        separators = [sep for sep in (os.sep, os.altsep, "/") if sep]
        if any(sep in profile for sep in separators):
            raise DotlnkValidationError(
                "Host name cannot contain a path separator",
                path=profile,
                suggestion="use a plain host name such as 'work'",
            )
        self.repo_root = Path(repo_root)
        self.profile = profile

    @property
    def tracking_filename(self) -> str:
        if not self.profile:
            return TRACKING_FILENAME
        return f"{TRACKING_FILENAME}.{self.profile}"

    @property
    def tracking_path(self) -> Path:
        return self.repo_root / self.tracking_filename

    @property
    def storage_root(self) -> Path:
        if not self.profile:
            return self.repo_root
        return self.repo_root / (self.profile + HOST_STORAGE_SUFFIX)

    def vcs_path(self, rel: str) -> str:
        """Path of a managed entry relative to the repository root."""
        if not self.profile:
            return rel
        return posixpath.join(self.profile + HOST_STORAGE_SUFFIX, rel)

    def storage_path(self, rel: str) -> Path:
        """Absolute location of a managed entry inside the repository."""
        return self.storage_root / rel


def get_relative_path(abs_path: Path, home_dir: Optional[Path]) -> str:
    """
    Convert an absolute path to the form recorded in the tracking file.

    Paths under home become home-relative, home itself becomes ``.`` and
    anything else keeps its absolute form minus the leading separator
    (``/etc/foo`` becomes ``etc/foo``).
    """
    abs_path = Path(os.path.abspath(abs_path))
    if home_dir is not None:
        home = Path(os.path.abspath(home_dir))
        if abs_path == home:
            return "."
        if abs_path.is_relative_to(home):
            return abs_path.relative_to(home).as_posix()
    return abs_path.as_posix().lstrip("/")


def is_malformed(rel: str) -> bool:
    """Return True when a tracked path would escape the storage root."""
    cleaned = posixpath.normpath(rel)
    return (
        cleaned == ".."
        or cleaned.startswith("../")
        or posixpath.isabs(cleaned)
        or os.path.isabs(rel)
    )
