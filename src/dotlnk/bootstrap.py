"""Running the repository's bootstrap script."""

import os
import subprocess  # nosec B404
from pathlib import Path
from typing import IO, Optional

from loguru import logger

from .config import BOOTSTRAP_SCRIPT
from .exceptions import (
    DotlnkBootstrapFailedError,
    DotlnkBootstrapNotFoundError,
    DotlnkBootstrapPermissionError,
)


def find_bootstrap_script(repo_path: Path) -> Optional[str]:
    """Return the bootstrap script name if the repository has one."""
    if (Path(repo_path) / BOOTSTRAP_SCRIPT).exists():
        return BOOTSTRAP_SCRIPT
    return None


def run_bootstrap_script(
    repo_path: Path,
    name: str,
    stdout: Optional[IO] = None,
    stderr: Optional[IO] = None,
    stdin: Optional[IO] = None,
) -> None:
    """
    Run ``name`` with bash from inside the repository.

    The streams default to the ones inherited from the current process.
    """
    script = Path(repo_path) / name
    if not script.exists():
        raise DotlnkBootstrapNotFoundError("Bootstrap script not found", path=name)

    try:
        os.chmod(script, 0o755)
    except OSError as e:
        raise DotlnkBootstrapPermissionError(
            "Failed to make bootstrap script executable", path=str(script)
        ) from e

    logger.debug(f"Running {script} in {repo_path}")
    try:
        subprocess.run(  # nosec B603 B607
            ["bash", str(script)],
            cwd=str(repo_path),
            stdout=stdout,
            stderr=stderr,
            stdin=stdin,
            check=True,
        )
    except subprocess.CalledProcessError as e:
        raise DotlnkBootstrapFailedError(
            "Bootstrap script failed",
            path=name,
            suggestion=f"exit status {e.returncode}",
        ) from e
    except FileNotFoundError as e:
        raise DotlnkBootstrapFailedError(
            "Bootstrap script failed", path=name, suggestion="bash not found"
        ) from e
