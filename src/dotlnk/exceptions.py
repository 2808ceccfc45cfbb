"""Exception classes for dotlnk - a Git-backed dotfiles linker."""

from typing import Optional, TypedDict


# Type definitions for structured data
class SyncStatusDict(TypedDict):
    """Type definition for repository sync status data."""

    ahead: int
    behind: int
    remote: str
    dirty: bool


class DotlnkError(Exception):
    """Base exception for all dotlnk-related errors.

    Carries an optional path and a suggestion so the CLI can render them on
    separate lines.
    """

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = str(path) if path is not None else None
        self.suggestion = suggestion

    def __str__(self) -> str:
        text = self.message
        if self.path:
            text += f": {self.path}"
        if self.suggestion:
            text += f" ({self.suggestion})"
        return text


class DotlnkRepositoryError(DotlnkError):
    """Errors related to dotlnk repository operations."""

    pass


class DotlnkRepositoryNotFoundError(DotlnkRepositoryError):
    """Raised when the dotlnk repository is not initialized."""

    pass


class DotlnkForeignRepositoryError(DotlnkRepositoryError):
    """Raised when init finds a Git repository not created by dotlnk."""

    pass


class DotlnkManagedFilesExistError(DotlnkRepositoryError):
    """Raised when cloning would overwrite existing managed files."""

    pass


class DotlnkGitError(DotlnkRepositoryError):
    """Errors related to Git operations."""

    def __init__(
        self,
        message: str,
        operation: str = "",
        output: str = "",
        path: Optional[str] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        super().__init__(message, path=path, suggestion=suggestion)
        self.operation = operation
        self.output = output


class DotlnkFileOperationError(DotlnkError):
    """Errors related to file operations."""

    pass


class DotlnkFileNotFoundError(DotlnkFileOperationError):
    """Raised when a file or directory cannot be found."""

    pass


class DotlnkAccessError(DotlnkFileOperationError):
    """Raised when a path exists but cannot be inspected."""

    pass


class DotlnkUnsupportedTypeError(DotlnkFileOperationError):
    """Raised for paths that are neither regular files nor directories."""

    pass


class DotlnkSymlinkError(DotlnkFileOperationError):
    """Errors related to symlink operations."""

    pass


class DotlnkNotManagedError(DotlnkError):
    """Raised when a path is not tracked by dotlnk."""

    pass


class DotlnkAlreadyManagedError(DotlnkError):
    """Raised when a path is already tracked by dotlnk."""

    pass


class DotlnkValidationError(DotlnkError):
    """Errors related to input or data validation."""

    pass


class DotlnkEmptyInputError(DotlnkValidationError):
    """Raised when an operation has nothing to work on."""

    pass


class DotlnkBootstrapError(DotlnkError):
    """Errors related to the bootstrap script."""

    pass


class DotlnkBootstrapNotFoundError(DotlnkBootstrapError):
    """Raised when the bootstrap script does not exist."""

    pass


class DotlnkBootstrapPermissionError(DotlnkBootstrapError):
    """Raised when the bootstrap script cannot be made executable."""

    pass


class DotlnkBootstrapFailedError(DotlnkBootstrapError):
    """Raised when the bootstrap script exits with an error."""

    pass
