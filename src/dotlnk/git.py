"""Git operations for the dotlnk repository, on top of GitPython."""

import shutil
from pathlib import Path
from typing import Any, List

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo
from loguru import logger

from .config import (
    COMMIT_PREFIX,
    DEFAULT_GIT_USER_EMAIL,
    DEFAULT_GIT_USER_NAME,
    DIR_MODE,
)
from .exceptions import (
    DotlnkFileOperationError,
    DotlnkGitError,
    DotlnkRepositoryNotFoundError,
    SyncStatusDict,
)

DEFAULT_BRANCH = "main"
DEFAULT_REMOTE_BRANCH = "origin/main"


class GitRepository:
    """
    The narrow set of Git commands dotlnk needs, run inside ``repo_path``.

    Every failing ``git`` invocation is reported as ``DotlnkGitError`` with
    the command name and whatever git printed on stderr.
    """

    def __init__(self, repo_path: Path) -> None:
        self.repo_path = Path(repo_path)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    @property
    def repo(self) -> Repo:
        try:
            return Repo(str(self.repo_path))
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise DotlnkRepositoryNotFoundError(
                "dotlnk repository not initialized",
                path=str(self.repo_path),
                suggestion="run 'dotlnk init' first",
            ) from e

    def _git(self, command: str, *args: Any, **kwargs: Any) -> str:
        operation = command.replace("_", "-")
        logger.debug(f"git {operation} {' '.join(str(a) for a in args)}")
        try:
            return getattr(self.repo.git, command)(*args, **kwargs)
        except GitCommandError as e:
            raise DotlnkGitError(
                f"git {operation} failed",
                operation=operation,
                output=str(e.stderr or "").strip(),
                path=str(self.repo_path),
            ) from e

    def _has_head(self) -> bool:
        return self.repo.head.is_valid()

    def _remote_names(self) -> List[str]:
        return [remote.name for remote in self.repo.remotes]

    def _require_remote(self, operation: str) -> str:
        """Return the URL of the default remote or fail."""
        names = self._remote_names()
        if not names:
            raise DotlnkGitError(
                "No remote repository is configured",
                operation=operation,
                suggestion="add a remote repository first",
            )
        name = "origin" if "origin" in names else names[0]
        return self._git("remote", "get-url", name)

    def _ensure_user_config(self) -> None:
        for key, default in (
            ("user.name", DEFAULT_GIT_USER_NAME),
            ("user.email", DEFAULT_GIT_USER_EMAIL),
        ):
            try:
                value = self.repo.git.config(key)
            except GitCommandError:
                value = ""
            if not value.strip():
                self._git("config", key, default)

    # ------------------------------------------------------------------
    # repository state
    # ------------------------------------------------------------------

    def is_repository(self) -> bool:
        return (self.repo_path / ".git").exists()

    def is_managed_repository(self) -> bool:
        """True for a repository with no commits or only dotlnk commits."""
        if not self.is_repository():
            return False
        try:
            commits = self.get_commits()
        except (DotlnkGitError, DotlnkRepositoryNotFoundError):
            return False
        return all(subject.startswith(COMMIT_PREFIX) for subject in commits)

    def get_commits(self) -> List[str]:
        """Commit subjects, newest first."""
        if not self._has_head():
            return []
        output = self._git("log", "--format=%s")
        return output.splitlines() if output else []

    def has_changes(self) -> bool:
        return bool(self._git("status", "--porcelain").strip())

    def status(self) -> SyncStatusDict:
        """Ahead/behind counts against the upstream branch."""
        self._require_remote("status")
        dirty = self.has_changes()

        try:
            remote_branch = self.repo.git.rev_parse(
                "--abbrev-ref", "--symbolic-full-name", "@{u}"
            ).strip()
        except GitCommandError:
            # No upstream branch set
            return {
                "ahead": self._count_commits(f"{DEFAULT_REMOTE_BRANCH}..HEAD", "HEAD"),
                "behind": 0,
                "remote": DEFAULT_REMOTE_BRANCH,
                "dirty": dirty,
            }

        return {
            "ahead": self._count_commits(f"{remote_branch}..HEAD", "HEAD"),
            "behind": self._count_commits(f"HEAD..{remote_branch}"),
            "remote": remote_branch,
            "dirty": dirty,
        }

    def _count_commits(self, *revision_ranges: str) -> int:
        """Count commits in the first range git accepts, else 0."""
        for revision_range in revision_ranges:
            try:
                output = self.repo.git.rev_list("--count", revision_range)
            except GitCommandError:
                continue
            try:
                return int(output.strip() or 0)
            except ValueError:
                return 0
        return 0

    def diff(self, color: bool = False) -> str:
        return self._git("diff", "--color=always" if color else "--color=never")

    # ------------------------------------------------------------------
    # repository setup
    # ------------------------------------------------------------------

    def init(self) -> None:
        """Create a repository whose first branch is ``main``."""
        try:
            Repo.init(str(self.repo_path), initial_branch=DEFAULT_BRANCH)
        except GitCommandError:
            # git < 2.28 has no --initial-branch
            logger.debug("git init --initial-branch unsupported, falling back")
            try:
                repo = Repo.init(str(self.repo_path))
                repo.git.symbolic_ref("HEAD", f"refs/heads/{DEFAULT_BRANCH}")
            except GitCommandError as e:
                raise DotlnkGitError(
                    "git init failed",
                    operation="init",
                    output=str(e.stderr or "").strip(),
                    path=str(self.repo_path),
                ) from e

    def clone(self, url: str) -> None:
        """Replace the repository directory with a fresh clone of ``url``."""
        try:
            if self.repo_path.exists():
                shutil.rmtree(self.repo_path)
            self.repo_path.parent.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        except OSError as e:
            raise DotlnkFileOperationError(
                f"Failed to prepare clone directory: {e}", path=str(self.repo_path)
            ) from e

        try:
            Repo.clone_from(url, str(self.repo_path))
        except GitCommandError as e:
            raise DotlnkGitError(
                "git clone failed",
                operation="clone",
                output=str(e.stderr or "").strip(),
                path=url,
                suggestion="check the repository URL and your network connection",
            ) from e

        # Best effort: an empty remote has no branch to track yet
        for branch in (DEFAULT_BRANCH, "master"):
            try:
                self.repo.git.branch(f"--set-upstream-to=origin/{branch}", branch)
                break
            except GitCommandError:
                continue

    def add_remote(self, name: str, url: str) -> None:
        """Add a remote; a no-op when it already points at ``url``."""
        try:
            existing = self.repo.git.remote("get-url", name).strip()
        except GitCommandError:
            self._git("remote", "add", name, url)
            return
        if existing != url:
            raise DotlnkGitError(
                "Remote is already configured with a different repository",
                operation="remote",
                path=name,
                suggestion=f"existing: {existing}, new: {url}",
            )

    # ------------------------------------------------------------------
    # staging and commits
    # ------------------------------------------------------------------

    def add(self, path: str) -> None:
        self._git("add", "--", path)

    def add_all(self) -> None:
        self._git("add", "-A")

    def rm(self, path: str) -> None:
        """
        Remove ``path`` from the index, leaving the working copy alone.

        Directories are removed whether or not they still exist on disk, and a
        path missing from the index is not an error.
        """
        self._git("rm", "-r", "--cached", "--ignore-unmatch", "--", path)

    def unstage(self, paths: List[str]) -> None:
        """Reset index entries for ``paths`` to the last commit."""
        if not paths:
            return
        if self._has_head():
            self._git("reset", "-q", "HEAD", "--", *paths)
        else:
            self._git("rm", "--cached", "-r", "-q", "--ignore-unmatch", "--", *paths)

    def commit(self, message: str) -> None:
        self._ensure_user_config()
        self._git("commit", "-m", message)

    # ------------------------------------------------------------------
    # synchronization
    # ------------------------------------------------------------------

    def push(self) -> None:
        self._require_remote("push")
        self._git("push", "-u", "origin", "HEAD")

    def pull(self) -> None:
        self._require_remote("pull")
        branch = self._git("symbolic_ref", "--short", "HEAD").strip()
        self._git("pull", "--no-rebase", "origin", branch)
