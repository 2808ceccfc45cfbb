"""
dotlnk - A Git-backed dotfiles linker.

dotlnk moves configuration files into a Git repository and leaves relative
symlinks in their place, with a common profile shared by every machine and
optional host-specific profiles.
"""

__version__ = "0.1.0"
__license__ = "GPL-3.0-or-later"

from loguru import logger

from .core import DoctorResult, Lnk
from .exceptions import DotlnkError
from .layout import Layout
from .tracker import Tracker

# Library users opt in to dotlnk's log output with logger.enable("dotlnk")
logger.disable("dotlnk")

__all__ = [
    "Lnk",
    "DoctorResult",
    "DotlnkError",
    "Layout",
    "Tracker",
]
