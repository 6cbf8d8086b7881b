"""Repository models.

This module defines the data structures returned by repository operations.
All of them are immutable snapshots; none is persisted.
"""

from dataclasses import dataclass, field
from enum import StrEnum

# Width of the abbreviated commit id shown in listings
SHORT_ID_LENGTH = 8


class StatusKind(StrEnum):
    """Classification of a path in one status comparison."""

    NEW = "new"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    TYPECHANGE = "typechange"
    CONFLICTED = "conflicted"


class MergeKind(StrEnum):
    """How a merge attempt concluded."""

    UP_TO_DATE = "up_to_date"
    FAST_FORWARD = "fast_forward"
    MERGE_COMMIT = "merge_commit"
    CONFLICT = "conflict"


@dataclass(frozen=True, slots=True)
class FileVersion:
    """One side of a path in a tree or the index.

    Attributes:
        mode: Git file mode (e.g. 0o100644).
        sha: Hex object id of the blob as bytes.
    """

    mode: int
    sha: bytes


@dataclass(frozen=True, slots=True)
class BranchInfo:
    """Information about a local branch.

    Attributes:
        name: Branch name without the refs/heads/ prefix.
        is_head: True if the branch targets the commit HEAD resolves to.
        upstream: Upstream branch as "<remote>/<branch>", or None.
        commit_id: Hex id of the commit the branch targets.
    """

    name: str
    is_head: bool
    upstream: str | None
    commit_id: str


@dataclass(frozen=True, slots=True)
class CommitInfo:
    """Information about a single commit.

    Attributes:
        id: Full 40-character commit id.
        short_id: Abbreviated commit id.
        summary: First line of the message.
        message: Complete, unmodified commit message.
        author: Author name.
        author_email: Author email.
        time: Author timestamp in unix seconds.
        parent_ids: Parent commit ids, first parent first.
    """

    id: str
    short_id: str
    summary: str
    message: str
    author: str
    author_email: str
    time: int
    parent_ids: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class FileStatus:
    """Status of one path in one comparison.

    Attributes:
        path: Repository-relative path, "/"-separated.
        status: Classification of the change.
        old_path: Previous path for renames, None otherwise.
    """

    path: str
    status: StatusKind
    old_path: str | None = None


@dataclass(frozen=True, slots=True)
class RepoStatus:
    """Status snapshot of a repository.

    Attributes:
        staged: Index compared with the HEAD tree.
        unstaged: Working tree compared with the index, untracked files
            included as new.
    """

    staged: tuple[FileStatus, ...] = ()
    unstaged: tuple[FileStatus, ...] = ()

    @property
    def is_clean(self) -> bool:
        """Return True when neither comparison reports a change."""
        return not self.staged and not self.unstaged


@dataclass(frozen=True, slots=True)
class MergeResult:
    """Result of a merge attempt.

    Attributes:
        success: True when HEAD now contains the target.
        has_conflicts: True when the merge stopped on conflicts.
        message: Human-readable summary.
        conflicted_files: Paths left with conflict markers.
        kind: How the merge concluded.
        commit_id: Commit HEAD points to after a successful merge.
    """

    success: bool
    has_conflicts: bool
    message: str
    kind: MergeKind
    conflicted_files: tuple[str, ...] = field(default=())
    commit_id: str | None = None


@dataclass(frozen=True, slots=True)
class RepoInfo:
    """Summary of an opened repository.

    Attributes:
        path: Canonical repository root.
        name: Directory name of the repository root.
        last_accessed: Unix seconds of the last open.
    """

    path: str
    name: str
    last_accessed: int


@dataclass(frozen=True, slots=True)
class FileEntry:
    """A directory listing entry.

    Attributes:
        name: Base name.
        path: Path relative to the repository root.
        type: "directory" or "file".
    """

    name: str
    path: str
    type: str
