"""Tests for dotlnk exception classes."""

from pathlib import Path

import pytest

from dotlnk.exceptions import (
    DotlnkAlreadyManagedError,
    DotlnkBootstrapFailedError,
    DotlnkBootstrapError,
    DotlnkEmptyInputError,
    DotlnkError,
    DotlnkFileNotFoundError,
    DotlnkFileOperationError,
    DotlnkGitError,
    DotlnkRepositoryError,
    DotlnkRepositoryNotFoundError,
    DotlnkSymlinkError,
    DotlnkValidationError,
)


class TestExceptionHierarchy:
    """Test exception class hierarchy and behavior."""

    def test_base_exception(self):
        """Test base DotlnkError exception."""
        error = DotlnkError("Test error")
        assert str(error) == "Test error"
        assert error.path is None
        assert error.suggestion is None
        assert isinstance(error, Exception)

    def test_path_and_suggestion(self):
        """Path and suggestion are part of the string form."""
        error = DotlnkFileNotFoundError(
            "File does not exist", path="/home/u/.bashrc", suggestion="check the path"
        )
        assert str(error) == "File does not exist: /home/u/.bashrc (check the path)"
        assert error.message == "File does not exist"

    def test_path_is_stringified(self):
        """Path objects are stored as strings."""
        error = DotlnkSymlinkError("Bad link", path=Path("/tmp/x"))
        assert error.path == "/tmp/x"

    def test_git_error(self):
        """Test DotlnkGitError."""
        error = DotlnkGitError(
            "git push failed", operation="push", output="rejected"
        )
        assert str(error) == "git push failed"
        assert error.operation == "push"
        assert error.output == "rejected"
        assert isinstance(error, DotlnkRepositoryError)

    @pytest.mark.parametrize(
        "error_class,parent",
        [
            (DotlnkRepositoryNotFoundError, DotlnkRepositoryError),
            (DotlnkFileNotFoundError, DotlnkFileOperationError),
            (DotlnkSymlinkError, DotlnkFileOperationError),
            (DotlnkEmptyInputError, DotlnkValidationError),
            (DotlnkBootstrapFailedError, DotlnkBootstrapError),
            (DotlnkAlreadyManagedError, DotlnkError),
        ],
    )
    def test_hierarchy(self, error_class, parent):
        """Every error can be caught through its parent and DotlnkError."""
        with pytest.raises(parent):
            raise error_class("failure")
        assert issubclass(error_class, DotlnkError)
