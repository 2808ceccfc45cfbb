"""Core functionality for dotlnk - a Git-backed dotfiles linker."""

import os
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from loguru import logger

from . import bootstrap
from .config import (
    COMMIT_PREFIX,
    DEFAULT_SYNC_MESSAGE,
    PROGRESS_THRESHOLD,
    TRACKING_FILENAME,
    get_home_dir,
    get_repo_path,
)
from .exceptions import (
    DotlnkAlreadyManagedError,
    DotlnkEmptyInputError,
    DotlnkFileNotFoundError,
    DotlnkForeignRepositoryError,
    DotlnkGitError,
    DotlnkManagedFilesExistError,
    DotlnkNotManagedError,
    DotlnkRepositoryNotFoundError,
    DotlnkUnsupportedTypeError,
    SyncStatusDict,
)
from .filesystem import (
    NOT_MANAGED_SUGGESTION,
    create_relative_symlink,
    ensure_dir,
    is_valid_symlink,
    move,
    remove_path,
    validate_for_add,
    validate_symlink_for_remove,
    walk_directory,
)
from .git import GitRepository
from .layout import Layout, get_relative_path, is_malformed
from .rollback import RollbackStack
from .tracker import Tracker

# progress(current, total, basename), called before each item is applied
ProgressCallback = Callable[[int, int, str], None]

# (path as given or found, whether a symlink is an acceptable candidate)
Candidate = Tuple[Path, bool]


@dataclass
class DoctorResult:
    """Problems found in the tracking file of one profile."""

    invalid_entries: List[str] = field(default_factory=list)
    broken_symlinks: List[str] = field(default_factory=list)

    def has_issues(self) -> bool:
        return bool(self.invalid_entries or self.broken_symlinks)

    def total_issues(self) -> int:
        return len(self.invalid_entries) + len(self.broken_symlinks)


def plural_entries(count: int) -> str:
    return "entry" if count == 1 else "entries"


class Lnk:
    """
    Manage dotfiles for one profile of a dotlnk repository.

    ``host`` selects a host-specific profile; the empty string is the common
    profile shared by every machine. ``repo_path`` and ``home`` default to the
    locations derived from the environment.
    """

    def __init__(
        self,
        host: str = "",
        repo_path: Optional[Path] = None,
        home: Optional[Path] = None,
    ) -> None:
        self.repo_path = Path(repo_path) if repo_path is not None else get_repo_path()
        if home is None:
            home = get_home_dir()
        # Without a home directory every path is stored in its absolute form
        self.home = Path(home) if home is not None else Path(os.sep)
        self.host = host
        self.layout = Layout(self.repo_path, host)
        self.tracker = Tracker(self.layout.tracking_path)
        self.git = GitRepository(self.repo_path)

    # ========================================================================
    # REPOSITORY INITIALIZATION
    # ========================================================================

    def _require_repository(self) -> None:
        if not self.git.is_repository():
            raise DotlnkRepositoryNotFoundError(
                "dotlnk repository not initialized",
                path=str(self.repo_path),
                suggestion="run 'dotlnk init' first",
            )

    def has_user_content(self) -> bool:
        """True when the repository already holds a tracking file."""
        if (self.repo_path / TRACKING_FILENAME).exists():
            return True
        if self.host:
            return self.layout.tracking_path.exists()
        return any(self.repo_path.glob(f"{TRACKING_FILENAME}.*"))

    def init(self, remote: str = "", force: bool = False) -> None:
        """
        Create the repository, or clone it from ``remote``.

        Initializing an existing dotlnk repository is a no-op. A Git
        repository that dotlnk did not create is left untouched.
        """
        if remote:
            if self.has_user_content() and not force:
                raise DotlnkManagedFilesExistError(
                    "Directory already contains managed files",
                    path=str(self.repo_path),
                    suggestion="use 'dotlnk pull' to update from remote instead "
                    "of 'dotlnk init -r'",
                )
            logger.debug(f"Cloning {remote} into {self.repo_path}")
            self.git.clone(remote)
            return

        ensure_dir(self.repo_path)
        if self.git.is_repository():
            if self.has_user_content() or self.git.is_managed_repository():
                logger.debug("Repository already initialized")
                return
            raise DotlnkForeignRepositoryError(
                "Directory contains a Git repository not managed by dotlnk",
                path=str(self.repo_path),
                suggestion="back up or move the existing repository before "
                "initializing dotlnk",
            )

        self.git.init()
        logger.debug(f"Initialized repository at {self.repo_path}")

    def clone(self, url: str) -> None:
        self.git.clone(url)

    def add_remote(self, name: str, url: str) -> None:
        self._require_repository()
        self.git.add_remote(name, url)

    # ========================================================================
    # ADDING FILES
    # ========================================================================

    def add(self, path: Path) -> None:
        """Move ``path`` into the repository and leave a symlink behind."""
        self._add_candidates([(Path(path), False)])

    def add_multiple(
        self, paths: List[Path], progress: Optional[ProgressCallback] = None
    ) -> None:
        """Add several paths in one commit; either all succeed or none do."""
        if not paths:
            return
        self._add_candidates([(Path(p), False) for p in paths], progress=progress)

    def add_recursive(
        self, paths: List[Path], progress: Optional[ProgressCallback] = None
    ) -> None:
        """
        Add the files inside each directory as individual entries.

        Progress is only reported when more than ``PROGRESS_THRESHOLD`` files
        are found; the commit message then says the add was recursive.
        """
        candidates = self._expand([Path(p) for p in paths], recursive=True)
        if not candidates:
            raise DotlnkEmptyInputError(
                "No files found to add",
                path=", ".join(str(p) for p in paths) or None,
            )

        if len(candidates) > PROGRESS_THRESHOLD and progress is not None:
            self._add_candidates(candidates, progress=progress, recursive=True)
        else:
            self._add_candidates(candidates)

    def preview_add(self, paths: List[Path], recursive: bool = False) -> List[Path]:
        """Return the absolute paths an add would manage, changing nothing."""
        self._require_repository()
        plan = self._validate(self._expand([Path(p) for p in paths], recursive))
        return [abs_path for abs_path, _ in plan]

    def _expand(self, paths: List[Path], recursive: bool) -> List[Candidate]:
        candidates: List[Candidate] = []
        for path in paths:
            abs_path = Path(os.path.abspath(path))
            if recursive and abs_path.is_dir() and not abs_path.is_symlink():
                candidates.extend((found, True) for found in walk_directory(abs_path))
            else:
                candidates.append((abs_path, False))
        return candidates

    def _validate(self, candidates: List[Candidate]) -> List[Tuple[Path, str]]:
        """Check every candidate before anything is touched."""
        managed = set(self.tracker.load())
        seen = set()
        plan: List[Tuple[Path, str]] = []

        for path, allow_symlink in candidates:
            abs_path = Path(os.path.abspath(path))
            rel = get_relative_path(abs_path, self.home)
            try:
                validate_for_add(path, allow_symlink=allow_symlink)
            except DotlnkUnsupportedTypeError:
                # The symlink left behind by an earlier add
                if rel in managed:
                    raise DotlnkAlreadyManagedError(
                        "File is already managed by dotlnk", path=rel
                    ) from None
                raise
            if rel == ".":
                raise DotlnkUnsupportedTypeError(
                    "Cannot manage the home directory itself",
                    path=str(abs_path),
                    suggestion="add individual files or directories inside it",
                )
            if rel in managed or rel in seen:
                raise DotlnkAlreadyManagedError(
                    "File is already managed by dotlnk", path=rel
                )
            seen.add(rel)
            plan.append((abs_path, rel))
        return plan

    def _added_message(self, plan: List[Tuple[Path, str]], recursive: bool) -> str:
        if recursive:
            return f"{COMMIT_PREFIX} added {len(plan)} files recursively"
        if len(plan) == 1:
            return f"{COMMIT_PREFIX} added {posixpath.basename(plan[0][1])}"
        return f"{COMMIT_PREFIX} added {len(plan)} files"

    def _add_candidates(
        self,
        candidates: List[Candidate],
        progress: Optional[ProgressCallback] = None,
        recursive: bool = False,
    ) -> None:
        self._require_repository()
        plan = self._validate(candidates)
        rollback = RollbackStack()
        total = len(plan)

        try:
            for index, (abs_path, rel) in enumerate(plan, start=1):
                if progress is not None:
                    progress(index, total, abs_path.name)
                self._apply_add(abs_path, rel, rollback)

            for _, rel in plan:
                vcs_path = self.layout.vcs_path(rel)
                self.git.add(vcs_path)
                rollback.push(
                    f"unstage {vcs_path}", lambda p=vcs_path: self.git.unstage([p])
                )
            tracking_name = self.layout.tracking_filename
            self.git.add(tracking_name)
            rollback.push(
                f"unstage {tracking_name}",
                lambda: self.git.unstage([tracking_name]),
            )
            self.git.commit(self._added_message(plan, recursive))
        except Exception:
            logger.debug(f"Add failed, rolling back {len(rollback)} steps")
            rollback.rollback()
            raise

        rollback.clear()
        logger.debug(f"Added {total} item(s) to {self.layout.tracking_filename}")

    def _apply_add(self, abs_path: Path, rel: str, rollback: RollbackStack) -> None:
        dest = self.layout.storage_path(rel)

        move(abs_path, dest)
        rollback.push(
            f"move {rel} back", lambda src=dest, dst=abs_path: move(src, dst)
        )

        create_relative_symlink(dest, abs_path)
        rollback.push(
            f"remove symlink {abs_path}", lambda link=abs_path: os.remove(link)
        )

        self.tracker.add(rel)
        rollback.push(f"untrack {rel}", lambda r=rel: self.tracker.remove(r))

    # ========================================================================
    # REMOVING FILES
    # ========================================================================

    def remove(self, path: Path) -> None:
        """Stop managing ``path`` and put the real file back in its place."""
        self._require_repository()
        abs_path = Path(os.path.abspath(path))
        target = validate_symlink_for_remove(abs_path, self.repo_path)

        rel = get_relative_path(abs_path, self.home)
        if not self.tracker.contains(rel):
            raise DotlnkNotManagedError(
                "File is not managed by dotlnk",
                path=rel,
                suggestion=NOT_MANAGED_SUGGESTION,
            )

        if not os.path.lexists(target):
            raise DotlnkFileNotFoundError(
                "Managed file is missing from the repository",
                path=str(target),
                suggestion="run 'dotlnk doctor' to repair the repository",
            )

        rollback = RollbackStack()
        try:
            remove_path(abs_path)
            rollback.push(
                f"recreate symlink {abs_path}",
                lambda: create_relative_symlink(target, abs_path),
            )

            self.tracker.remove(rel)
            rollback.push(f"track {rel}", lambda: self.tracker.add(rel))

            vcs_path = self.layout.vcs_path(rel)
            self.git.rm(vcs_path)
            rollback.push(f"unstage {vcs_path}", lambda: self.git.unstage([vcs_path]))

            tracking_name = self.layout.tracking_filename
            self.git.add(tracking_name)
            rollback.push(
                f"unstage {tracking_name}",
                lambda: self.git.unstage([tracking_name]),
            )
            self.git.commit(f"{COMMIT_PREFIX} removed {posixpath.basename(rel)}")
        except Exception:
            logger.debug(f"Remove failed, rolling back {len(rollback)} steps")
            rollback.rollback()
            raise

        rollback.clear()
        move(target, abs_path)
        logger.debug(f"Restored {abs_path} from the repository")

    def remove_force(self, path: Path) -> None:
        """
        Remove a tracked entry whose symlink may already be gone.

        Every step is best effort except the tracking update and the commit.
        Nothing is rolled back.
        """
        self._require_repository()
        abs_path = Path(os.path.abspath(path))
        rel = get_relative_path(abs_path, self.home)
        if not self.tracker.contains(rel):
            raise DotlnkNotManagedError(
                "File is not managed by dotlnk",
                path=rel,
                suggestion=NOT_MANAGED_SUGGESTION,
            )

        if abs_path.is_symlink():
            try:
                os.remove(abs_path)
            except OSError as e:
                logger.warning(f"Could not remove symlink {abs_path}: {e}")

        self.tracker.remove(rel)

        vcs_path = self.layout.vcs_path(rel)
        try:
            self.git.rm(vcs_path)
        except DotlnkGitError as e:
            logger.warning(
                f"Could not remove {vcs_path} from the index: {e.output or e}"
            )

        self.git.add(self.layout.tracking_filename)
        self.git.commit(f"{COMMIT_PREFIX} force removed {posixpath.basename(rel)}")

        stored = self.repo_path / vcs_path
        if os.path.lexists(stored):
            remove_path(stored)

    # ========================================================================
    # LISTING AND SYNCHRONIZATION
    # ========================================================================

    def list(self) -> List[str]:
        self._require_repository()
        return self.tracker.load()

    def list_hosts(self) -> List[str]:
        """Hosts that have their own tracking file, sorted by name."""
        self._require_repository()
        prefix = f"{TRACKING_FILENAME}."
        hosts = [
            entry.name[len(prefix) :]
            for entry in self.repo_path.glob(f"{prefix}*")
            if entry.is_file()
        ]
        return sorted(host for host in hosts if host)

    def get_commits(self) -> List[str]:
        return self.git.get_commits()

    def status(self) -> SyncStatusDict:
        self._require_repository()
        return self.git.status()

    def diff(self, color: bool = False) -> str:
        self._require_repository()
        return self.git.diff(color)

    def push(self, message: str = DEFAULT_SYNC_MESSAGE) -> None:
        """Commit every pending change with ``message``, then push."""
        self._require_repository()
        if self.git.has_changes():
            self.git.add_all()
            self.git.commit(message)
        self.git.push()

    def pull(self) -> List[str]:
        """Pull from the remote and return the symlinks that were restored."""
        self._require_repository()
        self.git.pull()
        return self.restore_symlinks()

    def restore_symlinks(self) -> List[str]:
        """Make sure every tracked entry has a correct symlink in home."""
        restored: List[str] = []
        for rel in self.tracker.load():
            if is_malformed(rel):
                logger.warning(f"Skipping malformed entry {rel!r}")
                continue

            repo_item = self.layout.storage_path(rel)
            if not os.path.lexists(repo_item):
                logger.debug(f"Skipping {rel}: not present in the repository")
                continue

            link = self.home / rel
            if is_valid_symlink(link, repo_item):
                continue

            ensure_dir(link.parent)
            if os.path.lexists(link):
                remove_path(link)
            create_relative_symlink(repo_item, link)
            restored.append(rel)

        return restored

    # ========================================================================
    # DOCTOR
    # ========================================================================

    def preview_doctor(self) -> DoctorResult:
        """Report invalid entries and broken symlinks without changing anything."""
        self._require_repository()
        result = DoctorResult()
        for rel in self.tracker.load():
            if is_malformed(rel):
                result.invalid_entries.append(rel)
                continue

            repo_item = self.layout.storage_path(rel)
            if not os.path.lexists(repo_item):
                result.invalid_entries.append(rel)
            elif not is_valid_symlink(self.home / rel, repo_item):
                result.broken_symlinks.append(rel)
        return result

    def doctor(self) -> DoctorResult:
        """
        Repair what ``preview_doctor`` finds.

        Broken symlinks are restored first. Invalid entries are then dropped
        from the tracking file in a single commit. A failure part way through
        leaves whatever was already repaired in place.
        """
        result = self.preview_doctor()

        if result.broken_symlinks:
            self.restore_symlinks()

        if result.invalid_entries:
            invalid = set(result.invalid_entries)
            self.tracker.overwrite(
                rel for rel in self.tracker.load() if rel not in invalid
            )
            self.git.add(self.layout.tracking_filename)
            count = len(result.invalid_entries)
            self.git.commit(
                f"{COMMIT_PREFIX} cleaned {count} invalid {plural_entries(count)}"
            )

        return result

    # ========================================================================
    # BOOTSTRAP
    # ========================================================================

    def find_bootstrap_script(self) -> Optional[str]:
        self._require_repository()
        return bootstrap.find_bootstrap_script(self.repo_path)

    def run_bootstrap_script(
        self, name: str, stdout=None, stderr=None, stdin=None
    ) -> None:
        bootstrap.run_bootstrap_script(
            self.repo_path, name, stdout=stdout, stderr=stderr, stdin=stdin
        )
