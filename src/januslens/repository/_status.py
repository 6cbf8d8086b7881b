"""Status computation.

Compares the three states of a repository: the HEAD tree, the index and the
working tree. Trees and the index are first flattened into
``{path: FileVersion}`` mappings; the comparisons themselves only read the
working tree through WorkingTreeProtocol.
"""

import stat
from typing import TYPE_CHECKING

from dulwich.index import ConflictedIndexEntry, cleanup_mode
from dulwich.object_store import iter_tree_contents
from dulwich.objects import Blob

from januslens.repository._models import FileStatus, FileVersion, RepoStatus, StatusKind
from januslens.repository._worktree import MODE_GITLINK
from januslens.utils._git import decode_bytes

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from dulwich.index import Index
    from dulwich.object_store import BaseObjectStore

    from januslens.repository._protocol import WorkingTreeProtocol


def flatten_tree(
    object_store: BaseObjectStore,
    tree_id: bytes | None,
) -> dict[str, FileVersion]:
    """Flatten a tree into ``{path: FileVersion}``.

    Args:
        object_store: Store holding the tree.
        tree_id: Root tree id; None yields an empty mapping.

    Returns:
        Every blob, symlink and gitlink below the tree.
    """
    if tree_id is None:
        return {}
    return {
        decode_bytes(entry.path): FileVersion(mode=entry.mode, sha=entry.sha)
        for entry in iter_tree_contents(object_store, tree_id)
        if entry.path is not None and entry.mode is not None and entry.sha is not None
    }


def flatten_index(index: Index) -> tuple[dict[str, FileVersion], set[str]]:
    """Split the index into normal entries and unmerged paths.

    Returns:
        ``(entries, conflicted)`` where entries holds every normal entry.
    """
    entries: dict[str, FileVersion] = {}
    conflicted: set[str] = set()
    for raw_path, entry in index.items():
        path = decode_bytes(raw_path)
        if isinstance(entry, ConflictedIndexEntry):
            conflicted.add(path)
        else:
            entries[path] = FileVersion(mode=cleanup_mode(entry.mode), sha=entry.sha)
    return entries, conflicted


def blob_id(data: bytes) -> bytes:
    """Return the hex object id content would have as a blob."""
    return Blob.from_string(data).id


def _file_type(mode: int) -> int:
    return stat.S_IFMT(mode)


def classify(old: FileVersion | None, new: FileVersion | None) -> StatusKind | None:
    """Classify the change between two versions of one path.

    Returns:
        The status kind, or None when nothing changed.
    """
    if old is None and new is None:
        return None
    if old is None:
        return StatusKind.NEW
    if new is None:
        return StatusKind.DELETED
    if _file_type(old.mode) != _file_type(new.mode):
        return StatusKind.TYPECHANGE
    if old != new:
        return StatusKind.MODIFIED
    return None


def _pair_renames(
    changes: dict[str, StatusKind],
    old: Mapping[str, FileVersion],
    new: Mapping[str, FileVersion],
) -> list[FileStatus]:
    """Report deleted+new pairs with identical blobs once, as renames."""
    deleted_by_sha: dict[bytes, list[str]] = {}
    for path in sorted(p for p, kind in changes.items() if kind == StatusKind.DELETED):
        deleted_by_sha.setdefault(old[path].sha, []).append(path)

    renamed_from: dict[str, str] = {}
    for path in sorted(p for p, kind in changes.items() if kind == StatusKind.NEW):
        sources = deleted_by_sha.get(new[path].sha)
        if sources:
            renamed_from[path] = sources.pop(0)

    consumed = set(renamed_from.values())
    result: list[FileStatus] = []
    for path in sorted(changes):
        if path in consumed:
            continue
        if path in renamed_from:
            result.append(
                FileStatus(
                    path=path,
                    status=StatusKind.RENAMED,
                    old_path=renamed_from[path],
                )
            )
        else:
            result.append(FileStatus(path=path, status=changes[path]))
    return result


def staged_changes(
    head_tree: Mapping[str, FileVersion],
    index_entries: Mapping[str, FileVersion],
    conflicted: set[str] | frozenset[str] = frozenset(),
) -> list[FileStatus]:
    """Compare the index with the HEAD tree.

    Unmerged paths are left out; they are reported with the unstaged
    changes.

    Returns:
        Status entries sorted by path.
    """
    changes: dict[str, StatusKind] = {}
    for path in head_tree.keys() | index_entries.keys():
        if path in conflicted:
            continue
        kind = classify(head_tree.get(path), index_entries.get(path))
        if kind is not None:
            changes[path] = kind
    return _pair_renames(changes, head_tree, index_entries)


def worktree_version(worktree: WorkingTreeProtocol, path: str) -> FileVersion | None:
    """Hash the working-tree file at a path, or None if absent."""
    found = worktree.read(path)
    if found is None:
        return None
    mode, data = found
    return FileVersion(mode=mode, sha=blob_id(data))


def unstaged_changes(
    index_entries: Mapping[str, FileVersion],
    conflicted: set[str] | frozenset[str],
    worktree: WorkingTreeProtocol,
    is_ignored: Callable[[str], bool],
) -> list[FileStatus]:
    """Compare the working tree with the index.

    Tracked files are compared by content hash and file type. Files present
    only in the working tree are reported as new unless ignored; ignore
    rules never hide tracked files.

    Returns:
        Status entries sorted by path.
    """
    changes: dict[str, StatusKind] = {}

    for path, entry in index_entries.items():
        if entry.mode == MODE_GITLINK:
            continue
        kind = classify(entry, worktree_version(worktree, path))
        if kind is not None:
            changes[path] = kind

    for path in conflicted:
        changes[path] = StatusKind.CONFLICTED

    def prune(directory: str) -> bool:
        return is_ignored(directory + "/")

    for path in worktree.walk(prune=prune):
        if path in index_entries or path in conflicted:
            continue
        if is_ignored(path):
            continue
        changes[path] = StatusKind.NEW

    return [FileStatus(path=path, status=changes[path]) for path in sorted(changes)]


def overwritten_paths(
    paths: Iterable[str],
    head_tree: Mapping[str, FileVersion],
    index_entries: Mapping[str, FileVersion],
    target: Mapping[str, FileVersion],
    worktree: WorkingTreeProtocol,
) -> tuple[str, ...]:
    """Find paths whose uncommitted state a rewrite would destroy.

    A path blocks when its index entry differs from HEAD, when its working
    copy differs from the index, or when an untracked file sits where the
    target puts different content.

    Args:
        paths: Paths about to be rewritten or removed.
        head_tree: Flattened HEAD tree.
        index_entries: Normal index entries.
        target: Versions the paths are about to receive.
        worktree: The working tree.

    Returns:
        Blocking paths, sorted.
    """
    blocking: list[str] = []
    for path in sorted(paths):
        current = worktree_version(worktree, path)
        indexed = index_entries.get(path)
        if path not in head_tree and indexed is None:
            if current is not None and current != target.get(path):
                blocking.append(path)
            continue
        if indexed != head_tree.get(path) or current != indexed:
            blocking.append(path)
    return tuple(blocking)


def compute_status(
    head_tree: Mapping[str, FileVersion],
    index: Index,
    worktree: WorkingTreeProtocol,
    is_ignored: Callable[[str], bool],
) -> RepoStatus:
    """Compute the staged and unstaged status of a repository.

    Args:
        head_tree: Flattened HEAD tree (empty on an unborn branch).
        index: The repository index.
        worktree: The working tree.
        is_ignored: Ignore predicate; directory paths end with "/".

    Returns:
        RepoStatus with both lists sorted by path.
    """
    index_entries, conflicted = flatten_index(index)
    return RepoStatus(
        staged=tuple(staged_changes(head_tree, index_entries, conflicted)),
        unstaged=tuple(unstaged_changes(index_entries, conflicted, worktree, is_ignored)),
    )
