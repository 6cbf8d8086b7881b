"""Repository handle.

Repository wraps a dulwich Repo opened at a working-tree root and exposes the
engine operations: references, history, status, diff, staging, commits,
checkout and merge. Every operation runs under the process-wide
RepositoryLock for the repository; reads take the shared side and anything
that writes refs, the index or the working tree takes the exclusive side.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Final, Self

from dulwich.errors import NotGitRepository
from dulwich.ignore import IgnoreFilterManager
from dulwich.index import ConflictedIndexEntry, IndexEntry
from dulwich.objects import Commit
from dulwich.repo import Repo

from januslens.config import Config, safe_load_config
from januslens.exceptions import (
    CannotDeleteCheckedOutBranchError,
    DirtyWorkingTreeError,
    IoFailureError,
    MergeInProgressError,
    NoMergeInProgressError,
    NotARepositoryError,
    ObjectNotFoundError,
    PathOutsideRepositoryError,
    ReferenceAlreadyExistsError,
    ReferenceNotFoundError,
    UnresolvedConflictsError,
)
from januslens.repository._diff import render_file_diff
from januslens.repository._lock import RepositoryLock
from januslens.repository._merge import (
    MergeOptions,
    apply_merge_plan,
    load_blob_data,
    plan_merge,
    restore_tree,
)
from januslens.repository._models import (
    SHORT_ID_LENGTH,
    BranchInfo,
    CommitInfo,
    FileEntry,
    FileVersion,
    MergeKind,
    MergeResult,
    RepoStatus,
)
from januslens.repository._refs import (
    HEAD,
    HeadState,
    detach_head,
    move_head,
    read_head,
    resolve,
    validate_branch_name,
)
from januslens.repository._staging import (
    conflicted_paths,
    create_commit,
    stage_path,
    unstage_path,
)
from januslens.repository._status import (
    compute_status,
    flatten_index,
    flatten_tree,
    overwritten_paths,
    staged_changes,
)
from januslens.repository._walker import (
    CommitWalker,
    find_merge_base,
    is_ancestor,
    load_commit,
)
from januslens.repository._worktree import (
    GIT_DIR,
    FilesystemWorkingTree,
    normalize_path,
)
from januslens.utils._author import get_author_info
from januslens.utils._git import (
    HEADS_PREFIX,
    branch_ref,
    decode_bytes,
    encode_path,
    is_full_sha,
    strip_refs_heads,
)
from januslens.utils._logging import create_null_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping
    from types import TracebackType

    from dulwich.index import Index
    from structlog.typing import FilteringBoundLogger

    from januslens.repository._protocol import WorkingTreeProtocol

MERGE_HEAD_FILE: Final = "MERGE_HEAD"
MERGE_MSG_FILE: Final = "MERGE_MSG"


@contextmanager
def _io_errors(path: Path | str | None = None) -> Iterator[None]:
    """Translate OSError into IoFailureError."""
    try:
        yield
    except OSError as e:
        msg = f"I/O failure: {e}"
        raise IoFailureError(msg, path=path or e.filename) from e


def _parse_identity(identity: bytes) -> tuple[str, str]:
    """Split a "Name <email>" identity line."""
    text = identity.decode("utf-8", errors="replace")
    if "<" in text and text.endswith(">"):
        name, _, email = text.rpartition("<")
        return name.strip(), email.rstrip(">")
    return text, ""


def commit_to_info(commit: Commit) -> CommitInfo:
    """Convert a dulwich commit into CommitInfo."""
    message = commit.message.decode(
        commit.encoding.decode() if commit.encoding else "utf-8", errors="replace"
    )
    author, email = _parse_identity(commit.author)
    commit_id = decode_bytes(commit.id)
    return CommitInfo(
        id=commit_id,
        short_id=commit_id[:SHORT_ID_LENGTH],
        summary=message.strip().split("\n", 1)[0] if message.strip() else "",
        message=message,
        author=author,
        author_email=email,
        time=commit.author_time,
        parent_ids=tuple(decode_bytes(p) for p in commit.parents),
    )


class Repository:
    """A non-bare Git repository opened at its working-tree root.

    Instances are safe to share between threads; handles opened on the same
    path share one RepositoryLock.

    The class implements the context manager protocol. Leaving the context
    closes the underlying dulwich Repo.

    Attributes:
        root: The resolved repository root.
        config: Configuration in effect for this repository.
    """

    __slots__: Final = ("_config", "_lock", "_logger", "_repo", "_root", "_worktree")

    def __init__(
        self,
        repo: Repo,
        root: Path,
        *,
        config: Config,
        logger: FilteringBoundLogger | None = None,
        worktree: WorkingTreeProtocol | None = None,
    ) -> None:
        """Initialize the handle. Use open() instead.

        Args:
            repo: An open, non-bare dulwich Repo.
            root: Resolved working-tree root.
            config: Configuration in effect.
            logger: Logger for operation events.
            worktree: Working tree implementation; defaults to the filesystem.
        """
        self._repo: Repo = repo
        self._root: Path = root
        self._config: Config = config
        self._lock: RepositoryLock = RepositoryLock.for_path(root)
        self._worktree: WorkingTreeProtocol = worktree or FilesystemWorkingTree(root)
        base_logger = logger or create_null_logger()
        self._logger: FilteringBoundLogger = base_logger.bind(repo_path=str(root))

    @classmethod
    def open(
        cls,
        path: Path | str,
        *,
        config: Config | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> Self:
        """Open the repository whose working tree is rooted at ``path``.

        Args:
            path: Repository root. Subdirectories are not searched upward.
            config: Configuration to use; loaded from the default sources
                (including ``.git/januslens.toml``) when omitted.
            logger: Logger for operation events.

        Returns:
            The repository handle.

        Raises:
            NotARepositoryError: If the path does not exist, is not a
                repository root, or holds a bare repository.
        """
        candidate = Path(path).expanduser()
        try:
            root = candidate.resolve(strict=True)
        except OSError:
            msg = f"Path does not exist: {candidate}"
            raise NotARepositoryError(msg, path=candidate) from None

        if not root.is_dir():
            msg = f"Not a directory: {root}"
            raise NotARepositoryError(msg, path=root)

        try:
            repo = Repo(str(root))
        except (NotGitRepository, OSError):
            msg = f"Not a git repository: {root}"
            raise NotARepositoryError(msg, path=root) from None

        if repo.bare:
            repo.close()
            msg = f"Bare repositories are not supported: {root}"
            raise NotARepositoryError(msg, path=root)

        if config is None:
            config, error = safe_load_config(repo_root=root)
            if error is not None and logger is not None:
                logger.warning("config_load_failed", error=error, repo_path=str(root))

        return cls(repo, root, config=config, logger=logger)

    @staticmethod
    def is_repository(path: Path | str) -> bool:
        """Check whether a path is the root of a non-bare repository."""
        try:
            root = Path(path).expanduser().resolve(strict=True)
            with Repo(str(root)) as repo:
                return not repo.bare
        except (NotGitRepository, OSError):
            return False

    # =========================================================================
    # Context Manager
    # =========================================================================

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying dulwich Repo."""
        self._repo.close()

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def root(self) -> Path:
        """The resolved repository root."""
        return self._root

    @property
    def config(self) -> Config:
        """Configuration in effect for this repository."""
        return self._config

    @property
    def lock(self) -> RepositoryLock:
        """The lock shared by every handle on this repository."""
        return self._lock

    @property
    def worktree(self) -> WorkingTreeProtocol:
        """The working tree."""
        return self._worktree

    @property
    def _timeout(self) -> float:
        return self._config.repository.lock_timeout

    @property
    def _control_dir(self) -> Path:
        return Path(self._repo.controldir())

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _relative(self, path: Path | str) -> str:
        """Normalize a caller path to a repository-relative path.

        Absolute paths are accepted when they lie inside the root.

        Raises:
            PathOutsideRepositoryError: If the path escapes the root or
                points into ``.git``.
        """
        candidate = Path(path)
        if candidate.is_absolute():
            try:
                candidate = candidate.relative_to(self._root)
            except ValueError:
                msg = f"Path is outside the repository: {path}"
                raise PathOutsideRepositoryError(
                    msg, path=Path(path), root=self._root
                ) from None
        return normalize_path(candidate.as_posix())

    def _is_ignored(self) -> Callable[[str], bool]:
        manager = IgnoreFilterManager.from_repo(self._repo)

        def is_ignored(path: str) -> bool:
            return bool(manager.is_ignored(path))

        return is_ignored

    def _tree_of(self, commit_id: bytes | None) -> dict[str, FileVersion]:
        if commit_id is None:
            return {}
        commit = load_commit(self._repo.object_store, commit_id)
        return flatten_tree(self._repo.object_store, commit.tree)

    def _read_merge_head(self) -> bytes | None:
        merge_head = self._control_dir / MERGE_HEAD_FILE
        try:
            content = merge_head.read_bytes()
        except FileNotFoundError:
            return None
        lines = content.split()
        return lines[0] if lines else None

    def _write_merge_state(self, their_id: bytes, message: str) -> None:
        (self._control_dir / MERGE_HEAD_FILE).write_bytes(their_id + b"\n")
        (self._control_dir / MERGE_MSG_FILE).write_text(message, encoding="utf-8")

    def _clear_merge_state(self) -> None:
        for name in (MERGE_HEAD_FILE, MERGE_MSG_FILE):
            (self._control_dir / name).unlink(missing_ok=True)

    def _require_no_conflicts(self, index: Index, action: str) -> None:
        conflicts = conflicted_paths(index)
        if conflicts:
            msg = f"Cannot {action} with unresolved conflicts: {', '.join(conflicts)}"
            raise UnresolvedConflictsError(msg, paths=conflicts)

    # =========================================================================
    # References
    # =========================================================================

    def resolve(self, name: str) -> str:
        """Resolve HEAD, a branch, a full ref or a full commit id.

        Returns:
            The 40-character hex commit id.

        Raises:
            ReferenceNotFoundError: If the name does not resolve to a commit.
        """
        with self._lock.shared(self._timeout):
            return decode_bytes(resolve(self._repo, name))

    def head_branch(self) -> str | None:
        """Return the branch HEAD is attached to, or None when detached."""
        with self._lock.shared(self._timeout):
            return read_head(self._repo).branch

    def head_commit(self) -> str | None:
        """Return the commit HEAD resolves to, or None on an unborn branch."""
        with self._lock.shared(self._timeout):
            commit_id = read_head(self._repo).commit_id
            return decode_bytes(commit_id) if commit_id else None

    def _upstream(self, name: str) -> str | None:
        config = self._repo.get_config()
        section = (b"branch", name.encode())
        try:
            remote = config.get(section, b"remote")
            merge = config.get(section, b"merge")
        except KeyError:
            return None
        return f"{decode_bytes(remote)}/{strip_refs_heads(merge)}"

    def _branch_info(self, name: str, head_id: bytes | None) -> BranchInfo:
        commit_id = resolve(self._repo, name)
        return BranchInfo(
            name=name,
            is_head=commit_id == head_id,
            upstream=self._upstream(name),
            commit_id=decode_bytes(commit_id),
        )

    def list_branches(self) -> list[BranchInfo]:
        """List local branches ordered by name.

        ``is_head`` is True for every branch targeting the commit HEAD
        resolves to.
        """
        with self._lock.shared(self._timeout):
            head_id = read_head(self._repo).commit_id
            names = sorted(decode_bytes(n) for n in self._repo.refs.keys(base=HEADS_PREFIX))
            return [self._branch_info(name, head_id) for name in names]

    def create_branch(self, name: str, at_commit: str | None = None) -> BranchInfo:
        """Create a branch at a commit, HEAD by default.

        Args:
            name: New branch name.
            at_commit: Start point: HEAD, branch, full ref or full commit id.

        Returns:
            The new branch.

        Raises:
            InvalidReferenceNameError: If the name is not a valid ref name.
            ReferenceAlreadyExistsError: If the branch exists.
            ReferenceNotFoundError: If the start point does not resolve.
        """
        ref = validate_branch_name(name)
        with self._lock.exclusive(self._timeout):
            if ref in self._repo.refs:
                msg = f"Branch already exists: {name}"
                raise ReferenceAlreadyExistsError(msg, name=name)

            target = resolve(self._repo, at_commit or "HEAD")
            message = f"branch: Created from {at_commit or 'HEAD'}".encode()
            if not self._repo.refs.add_if_new(ref, target, message=message):
                msg = f"Branch already exists: {name}"
                raise ReferenceAlreadyExistsError(msg, name=name)

            self._logger.info(
                "branch_created", branch=name, commit=decode_bytes(target)
            )
            return self._branch_info(name, read_head(self._repo).commit_id)

    def delete_branch(self, name: str) -> None:
        """Delete a local branch.

        Raises:
            CannotDeleteCheckedOutBranchError: If HEAD is attached to it.
            InvalidReferenceNameError: If the name is not a valid branch name.
            ReferenceNotFoundError: If the branch does not exist.
        """
        ref = validate_branch_name(name)
        with self._lock.exclusive(self._timeout):
            if read_head(self._repo).branch_ref == ref:
                msg = f"Cannot delete the checked out branch: {name}"
                raise CannotDeleteCheckedOutBranchError(msg, name=name)

            try:
                current = self._repo.refs[ref]
            except KeyError:
                msg = f"Branch not found: {name}"
                raise ReferenceNotFoundError(msg, name=name) from None

            if not self._repo.refs.remove_if_equals(ref, current):
                msg = f"Branch not found: {name}"
                raise ReferenceNotFoundError(msg, name=name)

            self._logger.info("branch_deleted", branch=name, commit=decode_bytes(current))

    def checkout(self, name: str) -> None:
        """Switch the working tree, index and HEAD to a branch or commit.

        A branch name (or ``refs/heads/...``) attaches HEAD; a full commit id
        or any other ref detaches it. Paths unchanged between the old and new
        trees keep their uncommitted state.

        Raises:
            ReferenceNotFoundError: If the name does not resolve.
            UnresolvedConflictsError: If the index holds unmerged entries.
            DirtyWorkingTreeError: If ``checkout.guard_dirty`` is set and
                uncommitted changes would be overwritten.
            IoFailureError: If the working tree cannot be rewritten.
        """
        with self._lock.exclusive(self._timeout), _io_errors():
            index = self._repo.open_index()
            self._require_no_conflicts(index, "checkout")

            attach: bytes | None
            if name.startswith("refs/heads/"):
                attach = name.encode()
            elif name.startswith("refs/") or (
                is_full_sha(name) and branch_ref(name) not in self._repo.refs
            ):
                attach = None
            else:
                attach = branch_ref(name)

            target_id = resolve(self._repo, name)
            head = read_head(self._repo)
            current = self._tree_of(head.commit_id)
            target = self._tree_of(target_id)

            if self._config.checkout.guard_dirty:
                self._guard_overwrite(index, current, target)

            changed = restore_tree(self._repo, index, self._worktree, current, target)
            index.write()

            origin = head.branch or decode_bytes(head.commit_id or b"(unborn)")
            message = f"checkout: moving from {origin} to {name}".encode()
            if attach is not None:
                self._repo.refs.set_symbolic_ref(HEAD, attach, message=message)
            else:
                identity = get_author_info(self._repo).to_identity()
                detach_head(self._repo, target_id, identity, message)

            self._logger.info(
                "checkout_completed",
                target=name,
                commit=decode_bytes(target_id),
                detached=attach is None,
                paths_changed=len(changed),
            )

    def _guard_overwrite(
        self,
        index: Index,
        current: Mapping[str, FileVersion],
        target: Mapping[str, FileVersion],
    ) -> None:
        index_entries, _ = flatten_index(index)
        touched = [p for p in current.keys() | target.keys() if current.get(p) != target.get(p)]
        blocking = overwritten_paths(
            touched, current, index_entries, target, self._worktree
        )
        if blocking:
            msg = f"Uncommitted changes would be overwritten: {', '.join(blocking)}"
            raise DirtyWorkingTreeError(msg, paths=blocking)

    # =========================================================================
    # History
    # =========================================================================

    def get_commits(
        self,
        branch: str | None = None,
        limit: int | None = None,
    ) -> list[CommitInfo]:
        """List commits reachable from a branch, newest first.

        Args:
            branch: Branch, ref or commit id; HEAD when omitted.
            limit: Maximum number of commits.

        Returns:
            Commits in walker order. Empty on an unborn HEAD.

        Raises:
            ReferenceNotFoundError: If the branch does not resolve.
        """
        with self._lock.shared(self._timeout):
            if branch is None:
                start = read_head(self._repo).commit_id
                if start is None:
                    return []
            else:
                start = resolve(self._repo, branch)
            walker = CommitWalker(self._repo, start, limit=limit)
            return [commit_to_info(commit) for commit in walker]

    def walker(self, start: str = "HEAD", limit: int | None = None) -> CommitWalker:
        """Return a restartable walker over the history of ``start``."""
        with self._lock.shared(self._timeout):
            start_id = resolve(self._repo, start)
        return CommitWalker(self._repo, start_id, limit=limit)

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """Check whether one commit is reachable from another."""
        with self._lock.shared(self._timeout):
            return is_ancestor(
                self._repo,
                resolve(self._repo, ancestor),
                resolve(self._repo, descendant),
            )

    def merge_base(self, a: str, b: str) -> str | None:
        """Return the merge base of two commits, None if unrelated."""
        with self._lock.shared(self._timeout):
            base = find_merge_base(
                self._repo,
                resolve(self._repo, a),
                resolve(self._repo, b),
            )
            return decode_bytes(base) if base else None

    # =========================================================================
    # Status and Diff
    # =========================================================================

    def status(self) -> RepoStatus:
        """Compute staged and unstaged changes."""
        with self._lock.shared(self._timeout), _io_errors():
            head_tree = self._tree_of(read_head(self._repo).commit_id)
            index = self._repo.open_index()
            return compute_status(head_tree, index, self._worktree, self._is_ignored())

    def _index_side(self, index: Index, path: str) -> tuple[int, bytes] | None:
        key = encode_path(path)
        if key not in index:
            return None
        entry = index[key]
        if isinstance(entry, ConflictedIndexEntry):
            entry = entry.this
        if not isinstance(entry, IndexEntry):
            return None
        return entry.mode, load_blob_data(self._repo, entry.sha)

    def _head_side(self, path: str) -> tuple[int, bytes] | None:
        version = self._tree_of(read_head(self._repo).commit_id).get(path)
        if version is None:
            return None
        return version.mode, load_blob_data(self._repo, version.sha)

    def diff(self, path: Path | str, *, staged: bool = False) -> str:
        """Render a unified diff for one path.

        Args:
            path: Repository-relative (or absolute, inside the root) path.
            staged: Compare HEAD with the index instead of the index with the
                working tree.

        Returns:
            Diff text, empty when nothing differs.

        Raises:
            ObjectNotFoundError: If the path exists on neither side.
            PathOutsideRepositoryError: If the path escapes the repository.
        """
        relative = self._relative(path)
        with self._lock.shared(self._timeout), _io_errors(relative):
            index = self._repo.open_index()
            if staged:
                old = self._head_side(relative)
                new = self._index_side(index, relative)
            else:
                old = self._index_side(index, relative)
                new = self._worktree.read(relative)

            if old is None and new is None:
                msg = f"Path not found on either side of the diff: {relative}"
                raise ObjectNotFoundError(msg, path=relative)

            return render_file_diff(
                relative,
                old,
                new,
                context_lines=self._config.diff.context_lines,
            )

    # =========================================================================
    # Staging and Commits
    # =========================================================================

    def stage(self, path: Path | str) -> list[str]:
        """Stage a file or every file below a directory.

        Returns:
            Paths whose index entries changed.

        Raises:
            PathOutsideRepositoryError: If the path escapes the repository.
            IoFailureError: If the path exists neither on disk nor in the
                index, or cannot be read.
        """
        relative = self._relative(path)
        with self._lock.exclusive(self._timeout), _io_errors(relative):
            index = self._repo.open_index()
            touched = stage_path(
                self._repo,
                index,
                self._worktree,
                relative,
                is_ignored=self._is_ignored(),
            )
            index.write()
            self._logger.debug("paths_staged", path=relative, count=len(touched))
            return touched

    def unstage(self, path: Path | str) -> list[str]:
        """Reset index entries at or below a path to HEAD.

        Returns:
            Paths whose index entries changed.
        """
        relative = self._relative(path)
        with self._lock.exclusive(self._timeout), _io_errors(relative):
            index = self._repo.open_index()
            head_tree = self._tree_of(read_head(self._repo).commit_id)
            touched = unstage_path(index, head_tree, relative)
            index.write()
            self._logger.debug("paths_unstaged", path=relative, count=len(touched))
            return touched

    def commit(self, message: str) -> CommitInfo:
        """Commit the index.

        Concluding a conflicted merge adds MERGE_HEAD as second parent and
        clears the merge state.

        Raises:
            EmptyCommitMessageError: If the message is blank.
            UnresolvedConflictsError: If unmerged entries remain.
            NothingToCommitError: If the index matches HEAD.
            ConcurrentModificationError: If HEAD moved meanwhile.
        """
        with self._lock.exclusive(self._timeout), _io_errors():
            index = self._repo.open_index()
            head = read_head(self._repo)
            merge_head = self._read_merge_head()
            commit = create_commit(
                self._repo,
                index,
                head,
                message,
                get_author_info(self._repo),
                merge_head=merge_head,
            )
            if merge_head is not None:
                self._clear_merge_state()

            info = commit_to_info(commit)
            self._logger.info(
                "commit_created",
                commit=info.id,
                branch=head.branch,
                parents=len(info.parent_ids),
            )
            return info

    # =========================================================================
    # Merge
    # =========================================================================

    def merge_in_progress(self) -> bool:
        """Check whether a conflicted merge awaits resolution."""
        with self._lock.shared(self._timeout):
            return (self._control_dir / MERGE_HEAD_FILE).exists()

    def merge(self, target: str) -> MergeResult:
        """Merge a branch or commit into HEAD.

        Args:
            target: Branch, full ref or full commit id to merge.

        Returns:
            The outcome: up to date, fast-forward, merge commit or conflict.

        Raises:
            ReferenceNotFoundError: If the target does not resolve.
            MergeInProgressError: If a conflicted merge awaits resolution.
            UnresolvedConflictsError: If the index holds unmerged entries.
            DirtyWorkingTreeError: If staged changes exist, or uncommitted
                changes would be overwritten.
        """
        with self._lock.exclusive(self._timeout), _io_errors():
            their_id = resolve(self._repo, target)
            if self._read_merge_head() is not None:
                msg = "A merge is already in progress; commit or abort it first"
                raise MergeInProgressError(msg)

            index = self._repo.open_index()
            self._require_no_conflicts(index, "merge")
            head = read_head(self._repo)

            if head.commit_id is not None and is_ancestor(
                self._repo, their_id, head.commit_id
            ):
                self._logger.info("merge_up_to_date", target=target)
                return MergeResult(
                    success=True,
                    has_conflicts=False,
                    message="Already up to date",
                    kind=MergeKind.UP_TO_DATE,
                    commit_id=decode_bytes(head.commit_id),
                )

            if head.commit_id is None or is_ancestor(self._repo, head.commit_id, their_id):
                return self._fast_forward(index, head, target, their_id)

            return self._three_way(index, head, target, their_id)

    def _fast_forward(
        self,
        index: Index,
        head: HeadState,
        target: str,
        their_id: bytes,
    ) -> MergeResult:
        current = self._tree_of(head.commit_id)
        theirs = self._tree_of(their_id)

        if self._config.checkout.guard_dirty:
            self._guard_overwrite(index, current, theirs)

        changed = restore_tree(self._repo, index, self._worktree, current, theirs)
        index.write()
        move_head(self._repo, head, their_id, f"merge {target}: Fast-forward".encode())

        self._logger.info(
            "merge_fast_forward",
            target=target,
            commit=decode_bytes(their_id),
            paths_changed=len(changed),
        )
        return MergeResult(
            success=True,
            has_conflicts=False,
            message="Fast-forward",
            kind=MergeKind.FAST_FORWARD,
            commit_id=decode_bytes(their_id),
        )

    def _three_way(
        self,
        index: Index,
        head: HeadState,
        target: str,
        their_id: bytes,
    ) -> MergeResult:
        if head.commit_id is None:
            msg = "HEAD has no commit to merge into"
            raise ReferenceNotFoundError(msg, name="HEAD")

        store = self._repo.object_store
        ours = self._tree_of(head.commit_id)
        theirs = self._tree_of(their_id)
        base_id = find_merge_base(self._repo, head.commit_id, their_id)
        base = self._tree_of(base_id)

        index_entries, _ = flatten_index(index)
        staged = staged_changes(ours, index_entries)
        if staged:
            paths = tuple(s.path for s in staged)
            msg = f"Cannot merge with staged changes: {', '.join(paths)}"
            raise DirtyWorkingTreeError(msg, paths=paths)

        merge_config = self._config.merge
        options = MergeOptions(
            line_level=merge_config.line_level,
            conflict_style=merge_config.conflict_style,
            ours_label="HEAD",
            theirs_label=target,
        )
        plan = plan_merge(
            base, ours, theirs, lambda sha: load_blob_data(self._repo, sha), options
        )

        outcome = {
            r.path: r.version
            for r in plan.changes_against(ours)
            if r.version is not None
        }
        touched = [r.path for r in plan.changes_against(ours)]
        touched.extend(r.side_path for r in plan.conflicts if r.side_path is not None)
        blocking = overwritten_paths(touched, ours, index_entries, outcome, self._worktree)
        if blocking:
            msg = f"Uncommitted changes would be overwritten: {', '.join(blocking)}"
            raise DirtyWorkingTreeError(msg, paths=blocking)

        current = head.branch or decode_bytes(head.commit_id)[:SHORT_ID_LENGTH]
        message = f"Merge branch '{target}' into {current}"
        changed = apply_merge_plan(self._repo, index, self._worktree, ours, plan)
        index.write()

        if plan.has_conflicts:
            conflicted = plan.conflicted_paths
            self._write_merge_state(
                their_id,
                message + "\n\nConflicts:\n" + "".join(f"\t{p}\n" for p in conflicted),
            )
            self._logger.warning(
                "merge_conflicts", target=target, conflicted_files=list(conflicted)
            )
            return MergeResult(
                success=False,
                has_conflicts=True,
                message=f"Merge conflicts in {len(conflicted)} file(s)",
                kind=MergeKind.CONFLICT,
                conflicted_files=conflicted,
            )

        commit = create_commit(
            self._repo,
            index,
            head,
            message,
            get_author_info(self._repo),
            merge_head=their_id,
        )
        self._logger.info(
            "merge_committed",
            target=target,
            commit=decode_bytes(commit.id),
            base=decode_bytes(base_id) if base_id else None,
            paths_changed=len(changed),
        )
        return MergeResult(
            success=True,
            has_conflicts=False,
            message=message,
            kind=MergeKind.MERGE_COMMIT,
            commit_id=decode_bytes(commit.id),
        )

    def abort_merge(self) -> None:
        """Abandon a conflicted merge and restore HEAD's state.

        Raises:
            NoMergeInProgressError: If no merge awaits resolution.
        """
        with self._lock.exclusive(self._timeout), _io_errors():
            if self._read_merge_head() is None:
                msg = "No merge in progress"
                raise NoMergeInProgressError(msg)

            index = self._repo.open_index()
            head_tree = self._tree_of(read_head(self._repo).commit_id)
            index_entries, conflicted = flatten_index(index)
            for path in conflicted:
                del index[encode_path(path)]

            # Unmerged paths are absent from index_entries, so those in HEAD
            # are rewritten and the rest are removed below
            changed = restore_tree(
                self._repo, index, self._worktree, index_entries, head_tree
            )
            for path in sorted(conflicted - head_tree.keys()):
                self._worktree.remove(path)
            index.write()
            self._clear_merge_state()
            self._logger.info("merge_aborted", paths_restored=len(changed))

    # =========================================================================
    # Files
    # =========================================================================

    def list_files(self, subdirectory: Path | str | None = None) -> list[FileEntry]:
        """List one directory of the working tree.

        Directories come first, each group ordered by name; ``.git`` is
        hidden.

        Raises:
            PathOutsideRepositoryError: If the path escapes the repository.
            IoFailureError: If the directory does not exist or cannot be read.
        """
        relative = self._relative(subdirectory) if subdirectory else ""
        with self._lock.shared(self._timeout), _io_errors(relative):
            if not self._worktree.is_dir(relative):
                msg = f"Not a directory: {relative or '.'}"
                raise IoFailureError(msg, path=relative)
            entries = [
                (name, is_dir)
                for name, is_dir in self._worktree.list_dir(relative)
                if name != GIT_DIR
            ]

        entries.sort(key=lambda item: (not item[1], item[0]))
        return [
            FileEntry(
                name=name,
                path=f"{relative}/{name}" if relative else name,
                type="directory" if is_dir else "file",
            )
            for name, is_dir in entries
        ]
