"""Staging pipeline: index updates and commit creation.

Object writes always precede index writes, and index writes precede ref
moves, so a failure part way leaves refs untouched.
"""

from typing import TYPE_CHECKING

import pendulum
from dulwich.index import (
    ConflictedIndexEntry,
    IndexEntry,
    commit_tree,
    index_entry_from_stat,
)
from dulwich.objects import Blob, Commit

from januslens.exceptions import (
    EmptyCommitMessageError,
    IoFailureError,
    NothingToCommitError,
    UnresolvedConflictsError,
)
from januslens.repository._refs import HeadState, move_head
from januslens.repository._worktree import MODE_GITLINK
from januslens.utils._git import decode_bytes, encode_path

if TYPE_CHECKING:
    import os
    from collections.abc import Callable, Iterable, Mapping, Sequence

    from dulwich.index import Index
    from dulwich.repo import Repo

    from januslens.repository._models import FileVersion
    from januslens.repository._protocol import WorkingTreeProtocol
    from januslens.utils._author import AuthorInfo


def make_index_entry(
    sha: bytes,
    mode: int,
    st: os.stat_result | None,
    size: int = 0,
) -> IndexEntry:
    """Build an index entry, from lstat data when available.

    Without stat data the entry carries zeroed timestamps, which makes Git
    re-hash the file on its next status.
    """
    if st is not None:
        return index_entry_from_stat(st, sha, mode=mode)
    return IndexEntry(
        ctime=(0, 0),
        mtime=(0, 0),
        dev=0,
        ino=0,
        mode=mode,
        uid=0,
        gid=0,
        size=size,
        sha=sha,
    )


def _paths_under(paths: Iterable[str], prefix: str) -> list[str]:
    if not prefix:
        return sorted(paths)
    below = prefix + "/"
    return sorted(p for p in paths if p == prefix or p.startswith(below))


def stage_path(
    repo: Repo,
    index: Index,
    worktree: WorkingTreeProtocol,
    path: str,
    *,
    is_ignored: Callable[[str], bool],
) -> list[str]:
    """Copy working-tree content at or below a path into the index.

    A directory stages every non-ignored file below it, and records the
    deletion of tracked files that disappeared. A tracked file missing from
    disk stages its deletion. Staging an unmerged path resolves it.

    Args:
        repo: Repository receiving the blobs.
        index: Index to update; the caller writes it.
        worktree: Source of the content.
        path: Normalized repository-relative path ("" is the root).
        is_ignored: Ignore predicate; directory paths end with "/".

    Returns:
        The paths whose index entries changed or were removed.

    Raises:
        IoFailureError: If the path exists neither on disk nor in the index,
            or a file cannot be read.
    """
    tracked = {decode_bytes(p) for p in index.paths()}

    if worktree.is_dir(path):
        on_disk = [
            p
            for p in worktree.walk(path, prune=lambda d: is_ignored(d + "/"))
            if p in tracked or not is_ignored(p)
        ]
        candidates = sorted(set(on_disk) | set(_paths_under(tracked, path)))
    else:
        candidates = [path]
        if worktree.read(path) is None and path not in tracked:
            msg = f"Path does not exist: {path}"
            raise IoFailureError(msg, path=path)

    touched: list[str] = []
    for candidate in candidates:
        key = encode_path(candidate)
        if key in index and getattr(index[key], "mode", None) == MODE_GITLINK:
            continue
        try:
            found = worktree.read(candidate)
        except OSError as e:
            msg = f"Failed to read {candidate}: {e}"
            raise IoFailureError(msg, path=candidate) from e

        if found is None:
            if key in index:
                del index[key]
                touched.append(candidate)
            continue

        existing = index[key] if key in index else None
        mode, data = found
        blob = Blob.from_string(data)
        if (
            isinstance(existing, IndexEntry)
            and existing.sha == blob.id
            and existing.mode == mode
        ):
            continue

        repo.object_store.add_object(blob)
        index[key] = make_index_entry(
            blob.id, mode, worktree.stat(candidate), size=len(data)
        )
        touched.append(candidate)
    return touched


def unstage_path(
    index: Index,
    head_tree: Mapping[str, FileVersion],
    path: str,
) -> list[str]:
    """Reset index entries at or below a path to their HEAD versions.

    Entries absent from HEAD are removed. Unknown paths are a no-op.

    Args:
        index: Index to update; the caller writes it.
        head_tree: Flattened HEAD tree (empty on an unborn branch).
        path: Normalized repository-relative path ("" is the root).

    Returns:
        The paths whose index entries changed.
    """
    tracked = {decode_bytes(p) for p in index.paths()}
    touched: list[str] = []

    for candidate in _paths_under(tracked | set(head_tree), path):
        key = encode_path(candidate)
        version = head_tree.get(candidate)
        existing = index[key] if key in index else None

        if version is None:
            if existing is not None:
                del index[key]
                touched.append(candidate)
            continue

        if (
            isinstance(existing, IndexEntry)
            and existing.sha == version.sha
            and existing.mode == version.mode
        ):
            continue
        # Keep stat data when only the blob differs, so unchanged files stay fast
        if isinstance(existing, IndexEntry):
            index[key] = IndexEntry(
                ctime=existing.ctime,
                mtime=existing.mtime,
                dev=existing.dev,
                ino=existing.ino,
                mode=version.mode,
                uid=existing.uid,
                gid=existing.gid,
                size=existing.size,
                sha=version.sha,
            )
        else:
            index[key] = make_index_entry(version.sha, version.mode, None)
        touched.append(candidate)
    return touched


def conflicted_paths(index: Index) -> tuple[str, ...]:
    """Return unmerged paths in sorted order."""
    return tuple(
        sorted(
            decode_bytes(path)
            for path, entry in index.items()
            if isinstance(entry, ConflictedIndexEntry)
        )
    )


def write_index_tree(repo: Repo, index: Index) -> bytes:
    """Write the trees for the index and return the root tree id."""
    blobs = [
        (path, entry.sha, entry.mode)
        for path, entry in index.items()
        if isinstance(entry, IndexEntry)
    ]
    return commit_tree(repo.object_store, blobs)


def build_commit(
    tree_id: bytes,
    parents: Sequence[bytes],
    message: str,
    author: AuthorInfo,
) -> Commit:
    """Create a commit object stamped with the current local time."""
    now = pendulum.now()
    offset = now.utcoffset()
    tz = int(offset.total_seconds()) if offset is not None else 0
    identity = author.to_identity()

    commit = Commit()
    commit.tree = tree_id
    commit.parents = list(parents)
    commit.author = identity
    commit.committer = identity
    commit.author_time = now.int_timestamp
    commit.commit_time = now.int_timestamp
    commit.author_timezone = tz
    commit.commit_timezone = tz
    commit.encoding = b"UTF-8"
    commit.message = message.encode("utf-8")
    return commit


def create_commit(
    repo: Repo,
    index: Index,
    head: HeadState,
    message: str,
    author: AuthorInfo,
    *,
    merge_head: bytes | None = None,
) -> Commit:
    """Commit the index and advance HEAD.

    Args:
        repo: The repository.
        index: Current index.
        head: HEAD as read under the repository lock.
        message: Commit message, stored unmodified.
        author: Author and committer identity.
        merge_head: Second parent when concluding a merge.

    Returns:
        The new commit.

    Raises:
        EmptyCommitMessageError: If the message is blank.
        UnresolvedConflictsError: If the index holds unmerged entries.
        NothingToCommitError: If the tree equals HEAD's and no merge is
            being concluded.
        ConcurrentModificationError: If HEAD moved meanwhile.
    """
    if not message.strip():
        msg = "Commit message must not be empty"
        raise EmptyCommitMessageError(msg)

    conflicts = conflicted_paths(index)
    if conflicts:
        msg = f"Cannot commit with unresolved conflicts: {', '.join(conflicts)}"
        raise UnresolvedConflictsError(msg, paths=conflicts)

    tree_id = write_index_tree(repo, index)

    if head.commit_id is None:
        if merge_head is None and not len(index):
            msg = "Nothing to commit"
            raise NothingToCommitError(msg)
        parents: list[bytes] = []
    else:
        head_commit = repo[head.commit_id]
        if (
            merge_head is None
            and isinstance(head_commit, Commit)
            and head_commit.tree == tree_id
        ):
            msg = "Nothing to commit, working tree matches HEAD"
            raise NothingToCommitError(msg)
        parents = [head.commit_id]

    if merge_head is not None:
        parents.append(merge_head)

    commit = build_commit(tree_id, parents, message, author)
    repo.object_store.add_object(commit)

    summary = message.strip().splitlines()[0]
    prefix = "commit (merge)" if merge_head is not None else "commit"
    if head.commit_id is None:
        prefix = "commit (initial)"
    move_head(repo, head, commit.id, f"{prefix}: {summary}".encode())
    return commit
