"""Paths and settings for dotlnk."""

import os
from pathlib import Path
from typing import Dict, Optional

# ============================================================================
# CONSTANTS
# ============================================================================

PROJECT_NAME = "dotlnk"
COMMIT_PREFIX = "dotlnk:"
TRACKING_FILENAME = ".lnk"
HOST_STORAGE_SUFFIX = ".lnk"
BOOTSTRAP_SCRIPT = "bootstrap.sh"
PROGRESS_THRESHOLD = 10  # Report progress for recursive adds above 10 files

DIR_MODE = 0o755
TRACKING_FILE_MODE = 0o644

DEFAULT_GIT_USER_NAME = "dotlnk User"
DEFAULT_GIT_USER_EMAIL = "dotlnk@localhost"
DEFAULT_SYNC_MESSAGE = f"{COMMIT_PREFIX} sync configuration files"


# ============================================================================
# PATH MANAGEMENT
# ============================================================================


def get_home_dir() -> Optional[Path]:
    """Get the home directory, respecting environment variables for testing."""
    if os.environ.get("HOME"):
        return Path(os.environ["HOME"])
    try:
        return Path.home()
    except (RuntimeError, KeyError):
        return None


def get_repo_path() -> Path:
    """
    Return the dotlnk repository root.

    Uses $XDG_CONFIG_HOME/dotlnk when set, otherwise ~/.config/dotlnk. Falls
    back to ./dotlnk when the home directory cannot be determined.
    """
    xdg_config = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg_config:
        return Path(xdg_config) / PROJECT_NAME

    home_dir = get_home_dir()
    if home_dir is None:
        return Path(".") / PROJECT_NAME
    return home_dir / ".config" / PROJECT_NAME


def get_dotlnk_paths(home_dir: Optional[Path] = None) -> Dict[str, Path]:
    """Get the home and repository paths used by dotlnk."""
    if home_dir is None:
        home_dir = get_home_dir()

    return {
        "home": home_dir if home_dir is not None else Path("."),
        "repo": get_repo_path(),
    }
