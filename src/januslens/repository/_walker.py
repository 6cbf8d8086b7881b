"""Commit graph traversal.

CommitWalker wraps dulwich's walker in topological order: commits come out
newest first by commit time, and a commit is never emitted before one of its
children that the walk returns. Ancestry questions and merge bases go through
``dulwich.graph``.
"""

from typing import TYPE_CHECKING

from dulwich.errors import MissingCommitError
from dulwich.graph import find_merge_base as lowest_common_ancestors
from dulwich.objects import Commit
from dulwich.walk import ORDER_TOPO

from januslens.exceptions import ObjectNotFoundError
from januslens.utils._git import decode_bytes

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from dulwich.object_store import BaseObjectStore
    from dulwich.repo import BaseRepo


def load_commit(object_store: BaseObjectStore, commit_id: bytes) -> Commit:
    """Load a commit object.

    Raises:
        ObjectNotFoundError: If the object is missing or not a commit.
    """
    try:
        obj = object_store[commit_id]
    except KeyError:
        msg = f"Commit not found: {decode_bytes(commit_id)}"
        raise ObjectNotFoundError(msg) from None
    if not isinstance(obj, Commit):
        msg = f"Object is not a commit: {decode_bytes(commit_id)}"
        raise ObjectNotFoundError(msg)
    return obj


class CommitWalker:
    """Restartable, ordered walk over the history of one or more commits.

    Each call to ``iter()`` starts a fresh dulwich walk. With a limit, only
    that many commits are read (plus dulwich's small look-ahead), so the first
    page of a long history is cheap.

    Example:
        >>> walker = CommitWalker(repo, head_id, limit=10)
        >>> [c.id for c in walker]  # newest first
    """

    __slots__: tuple[str, ...] = ("_limit", "_repo", "_starts")

    def __init__(
        self,
        repo: BaseRepo,
        start: bytes | Iterable[bytes],
        limit: int | None = None,
    ) -> None:
        """Initialize the walker.

        Args:
            repo: Repository holding the commits.
            start: Commit id, or several, to walk from.
            limit: Stop after this many commits.
        """
        starts = [start] if isinstance(start, bytes) else list(start)
        self._repo: BaseRepo = repo
        self._starts: tuple[bytes, ...] = tuple(dict.fromkeys(starts))
        self._limit: int | None = limit

    def __iter__(self) -> Iterator[Commit]:
        if self._limit is not None and self._limit <= 0:
            return iter(())
        return self._walk()

    def _walk(self) -> Iterator[Commit]:
        try:
            walker = self._repo.get_walker(
                include=list(self._starts),
                max_entries=self._limit,
                order=ORDER_TOPO,
            )
            for entry in walker:
                yield entry.commit
        except MissingCommitError as e:
            msg = f"Commit not found: {e}"
            raise ObjectNotFoundError(msg) from None


# =============================================================================
# Ancestry
# =============================================================================


def is_ancestor(repo: BaseRepo, ancestor: bytes, descendant: bytes) -> bool:
    """Check whether ``ancestor`` is reachable from ``descendant``.

    A commit counts as its own ancestor. ``can_fast_forward`` prunes by commit
    time and misses ancestors behind skewed clocks; the merge-base search
    does not.
    """
    if ancestor == descendant:
        return True
    try:
        return lowest_common_ancestors(repo, [ancestor, descendant]) == [ancestor]
    except KeyError as e:
        msg = f"Commit not found: {e}"
        raise ObjectNotFoundError(msg) from None


def find_merge_bases(repo: BaseRepo, a: bytes, b: bytes) -> list[bytes]:
    """Find every best common ancestor of two commits.

    A common ancestor is best when it is not an ancestor of another common
    ancestor.

    Returns:
        The best common ancestors, most recent first, then by id. Empty when
        the histories are unrelated.
    """
    try:
        bases = lowest_common_ancestors(repo, [a, b])
    except KeyError as e:
        msg = f"Commit not found: {e}"
        raise ObjectNotFoundError(msg) from None

    store = repo.object_store
    return sorted(
        set(bases),
        key=lambda c: (-load_commit(store, c).commit_time, c),
    )


def find_merge_base(repo: BaseRepo, a: bytes, b: bytes) -> bytes | None:
    """Pick one merge base deterministically: the most recent, then lowest id."""
    bases = find_merge_bases(repo, a, b)
    return bases[0] if bases else None
