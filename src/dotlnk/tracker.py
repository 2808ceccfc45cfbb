"""The tracking file: a sorted list of managed paths for one profile."""

import os
import tempfile
from pathlib import Path
from typing import Iterable, List

from loguru import logger

from .config import TRACKING_FILE_MODE
from .exceptions import DotlnkFileOperationError


def sort_entries(items: Iterable[str]) -> List[str]:
    """Deduplicate and sort entries by byte value."""
    return sorted(set(items), key=lambda item: item.encode("utf-8"))


class Tracker:
    """
    Load and store the managed paths of a profile.

    There is no in-memory cache: every operation reads the file again so the
    file on disk stays the authority. Writes always sort the full set and
    replace the file atomically.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> List[str]:
        """Return tracked entries sorted by byte value, without blanks or repeats."""
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            raise DotlnkFileOperationError(
                f"Failed to read tracking file: {e}", path=str(self.path)
            ) from e

        return sort_entries(
            line.strip() for line in content.splitlines() if line.strip()
        )

    def contains(self, rel: str) -> bool:
        return rel in self.load()

    def add(self, rel: str) -> None:
        items = self.load()
        if rel in items:
            return
        items.append(rel)
        self.overwrite(items)

    def remove(self, rel: str) -> None:
        self.overwrite(item for item in self.load() if item != rel)

    def overwrite(self, items: Iterable[str]) -> None:
        """Replace the tracking file with the sorted, deduplicated items."""
        entries = sort_entries(items)
        content = "\n".join(entries)
        if entries:
            content += "\n"
        self._write_atomic(content)
        logger.debug(f"Wrote {len(entries)} entries to {self.path.name}")

    def _write_atomic(self, content: str) -> None:
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            tmp_path = Path(tmp_name)
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(content)
            os.chmod(tmp_path, TRACKING_FILE_MODE)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            raise DotlnkFileOperationError(
                f"Failed to write tracking file: {e}", path=str(self.path)
            ) from e
