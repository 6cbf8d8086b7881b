"""JanusLens exceptions.

Every exception carries a stable ``kind`` string. The command surface reports
failures by kind, so kinds never change once published.
"""

from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from pathlib import Path


class JanusError(Exception):
    """Base exception for JanusLens errors."""

    kind: ClassVar[str] = "Unknown"


# =============================================================================
# Repository Exceptions
# =============================================================================


class RepositoryError(JanusError):
    """Base exception for repository errors."""


class NotARepositoryError(RepositoryError):
    """Raised when a path does not hold a usable repository.

    Attributes:
        path: The path that was opened.
    """

    kind: ClassVar[str] = "NotARepository"

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        """Initialize with error message and path context.

        Args:
            message: Human-readable error message.
            path: The path that was opened.
        """
        super().__init__(message)
        self.path: Path | None = path


class RepositoryBusyError(RepositoryError):
    """Raised when the repository lock cannot be acquired in time.

    Attributes:
        path: The repository root.
    """

    kind: ClassVar[str] = "RepositoryBusy"

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        """Initialize with error message and path context."""
        super().__init__(message)
        self.path: Path | None = path


class PathOutsideRepositoryError(RepositoryError, ValueError):
    """Raised when a path escapes the working tree or points into ``.git``.

    Attributes:
        path: The offending path.
        root: The repository root.
    """

    kind: ClassVar[str] = "PathOutsideRepository"

    def __init__(
        self,
        message: str,
        *,
        path: Path | str | None = None,
        root: Path | None = None,
    ) -> None:
        """Initialize with error message and path context.

        Args:
            message: Human-readable error message.
            path: The offending path.
            root: The repository root.
        """
        super().__init__(message)
        self.path: Path | str | None = path
        self.root: Path | None = root


class ObjectNotFoundError(RepositoryError, KeyError):
    """Raised when a path or object cannot be resolved.

    Attributes:
        path: Repository-relative path that was looked up, if any.
    """

    kind: ClassVar[str] = "ObjectNotFound"

    def __init__(self, message: str, *, path: str | None = None) -> None:
        """Initialize with error message and lookup context."""
        super().__init__(message)
        self.path: str | None = path

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class ConcurrentModificationError(RepositoryError):
    """Raised when a reference moved while an operation was updating it.

    Attributes:
        ref: The reference name that moved.
        details: Additional details about the race.
    """

    kind: ClassVar[str] = "ConcurrentModification"

    def __init__(
        self,
        message: str,
        *,
        ref: str | None = None,
        details: str | None = None,
    ) -> None:
        """Initialize with error message and race context."""
        super().__init__(message)
        self.ref: str | None = ref
        self.details: str | None = details


class DirtyWorkingTreeError(RepositoryError):
    """Raised when uncommitted changes would be overwritten.

    Attributes:
        paths: Repository-relative paths that block the operation.
    """

    kind: ClassVar[str] = "DirtyWorkingTree"

    def __init__(self, message: str, *, paths: tuple[str, ...] = ()) -> None:
        """Initialize with error message and the blocking paths."""
        super().__init__(message)
        self.paths: tuple[str, ...] = paths


class IoFailureError(RepositoryError):
    """Raised when a filesystem operation fails.

    Attributes:
        path: The path involved, if known.
    """

    kind: ClassVar[str] = "IoFailure"

    def __init__(self, message: str, *, path: Path | str | None = None) -> None:
        """Initialize with error message and path context."""
        super().__init__(message)
        self.path: Path | str | None = path


# =============================================================================
# Reference Exceptions
# =============================================================================


class BranchError(RepositoryError):
    """Base exception for branch and HEAD errors."""


class ReferenceNotFoundError(BranchError, KeyError):
    """Raised when a branch, ref or commit id does not resolve.

    Attributes:
        name: The name that was looked up.
    """

    kind: ClassVar[str] = "ReferenceNotFound"

    def __init__(self, message: str, *, name: str | None = None) -> None:
        """Initialize with error message and reference context."""
        super().__init__(message)
        self.name: str | None = name

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class ReferenceAlreadyExistsError(BranchError, ValueError):
    """Raised when creating a branch whose name is taken.

    Attributes:
        name: The branch name.
    """

    kind: ClassVar[str] = "ReferenceAlreadyExists"

    def __init__(self, message: str, *, name: str | None = None) -> None:
        """Initialize with error message and reference context."""
        super().__init__(message)
        self.name: str | None = name


class InvalidReferenceNameError(BranchError, ValueError):
    """Raised when a branch name is not a valid ref name.

    Attributes:
        name: The rejected name.
    """

    kind: ClassVar[str] = "InvalidReferenceName"

    def __init__(self, message: str, *, name: str | None = None) -> None:
        """Initialize with error message and reference context."""
        super().__init__(message)
        self.name: str | None = name


class CannotDeleteCheckedOutBranchError(BranchError):
    """Raised when deleting the branch HEAD is attached to.

    Attributes:
        name: The branch name.
    """

    kind: ClassVar[str] = "CannotDeleteCheckedOutBranch"

    def __init__(self, message: str, *, name: str | None = None) -> None:
        """Initialize with error message and reference context."""
        super().__init__(message)
        self.name: str | None = name


# =============================================================================
# Commit and Merge Exceptions
# =============================================================================


class NothingToCommitError(RepositoryError):
    """Raised when the index matches HEAD."""

    kind: ClassVar[str] = "NothingToCommit"


class EmptyCommitMessageError(RepositoryError, ValueError):
    """Raised when a commit message is empty or whitespace."""

    kind: ClassVar[str] = "EmptyCommitMessage"


class UnresolvedConflictsError(RepositoryError):
    """Raised when the index still holds unmerged entries.

    Attributes:
        paths: The conflicted paths.
    """

    kind: ClassVar[str] = "UnresolvedConflicts"

    def __init__(self, message: str, *, paths: tuple[str, ...] = ()) -> None:
        """Initialize with error message and the conflicted paths."""
        super().__init__(message)
        self.paths: tuple[str, ...] = paths


class MergeInProgressError(RepositoryError):
    """Raised when starting a merge while another one is unfinished."""

    kind: ClassVar[str] = "MergeInProgress"


class NoMergeInProgressError(RepositoryError):
    """Raised when aborting without an unfinished merge."""

    kind: ClassVar[str] = "NoMergeInProgress"


# =============================================================================
# Serialization Exceptions
# =============================================================================


class SerializationError(JanusError):
    """Raised when persisted JSON cannot be read or written.

    Attributes:
        path: The file involved, if any.
    """

    kind: ClassVar[str] = "SerializationFailure"

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        """Initialize with error message and file context."""
        super().__init__(message)
        self.path: Path | None = path


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(JanusError):
    """Base exception for configuration errors."""

    kind: ClassVar[str] = "ConfigurationFailure"


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


class ConfigValidationError(ConfigError):
    """Raised when configuration fails validation."""

    def __init__(
        self,
        message: str,
        *,
        key: str,
        value: Any,  # pyright: ignore[reportAny,reportExplicitAny]
        expected: str,
        source: str | None = None,
    ) -> None:
        """Initialize with error message and validation context."""
        super().__init__(message)
        self.key: str = key
        self.value: Any = value  # pyright: ignore[reportExplicitAny]
        self.expected: str = expected
        self.source: str | None = source
