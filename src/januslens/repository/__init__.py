"""JanusLens repository engine.

This package implements the engine over on-disk Git repositories: commit
history walking, three-state status, unified diffs, staging and commits,
branch management, checkout and three-way merges with conflict reporting.

Classes:
    Repository: Handle on a non-bare repository opened at its root.
    RepositoryLock: Per-repository readers-writer lock.
    CommitWalker: Restartable, ordered history traversal.
    WorkingTreeProtocol: Runtime-checkable protocol for the working tree.
    FilesystemWorkingTree: Working tree backed by the filesystem.
    FakeWorkingTree: In-memory working tree for tests.

Models:
    BranchInfo, CommitInfo, FileStatus, RepoStatus, MergeResult, RepoInfo,
    FileEntry, FileVersion, StatusKind, MergeKind.

Example:
    >>> from januslens.repository import Repository
    >>> with Repository.open("/work/project") as repo:
    ...     status = repo.status()
    ...     result = repo.merge("feature")
"""

from januslens.repository._diff import render_file_diff
from januslens.repository._fake import FakeWorkingTree
from januslens.repository._lock import RepositoryLock
from januslens.repository._merge import (
    ConflictReason,
    LineMergeResult,
    MergeOptions,
    MergePlan,
    PathResolution,
    ResolutionKind,
    merge_lines,
    plan_merge,
)
from januslens.repository._models import (
    SHORT_ID_LENGTH,
    BranchInfo,
    CommitInfo,
    FileEntry,
    FileStatus,
    FileVersion,
    MergeKind,
    MergeResult,
    RepoInfo,
    RepoStatus,
    StatusKind,
)
from januslens.repository._protocol import WorkingTreeProtocol
from januslens.repository._repository import Repository, commit_to_info
from januslens.repository._walker import (
    CommitWalker,
    find_merge_base,
    find_merge_bases,
    is_ancestor,
)
from januslens.repository._worktree import FilesystemWorkingTree, normalize_path

__all__ = [
    "SHORT_ID_LENGTH",
    "BranchInfo",
    "CommitInfo",
    "CommitWalker",
    "ConflictReason",
    "FakeWorkingTree",
    "FileEntry",
    "FileStatus",
    "FileVersion",
    "FilesystemWorkingTree",
    "LineMergeResult",
    "MergeKind",
    "MergeOptions",
    "MergePlan",
    "MergeResult",
    "PathResolution",
    "RepoInfo",
    "RepoStatus",
    "Repository",
    "RepositoryLock",
    "ResolutionKind",
    "StatusKind",
    "WorkingTreeProtocol",
    "commit_to_info",
    "find_merge_base",
    "find_merge_bases",
    "is_ancestor",
    "merge_lines",
    "normalize_path",
    "plan_merge",
    "render_file_diff",
]
