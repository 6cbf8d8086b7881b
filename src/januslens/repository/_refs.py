"""HEAD and reference helpers over a dulwich Repo."""

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import pendulum
from dulwich.file import GitFile
from dulwich.objects import Commit, Tag
from dulwich.reflog import format_reflog_line
from dulwich.refs import check_ref_format

from januslens.exceptions import (
    ConcurrentModificationError,
    InvalidReferenceNameError,
    ReferenceNotFoundError,
)
from januslens.utils._git import HEADS_PREFIX, branch_ref, decode_bytes, is_full_sha

if TYPE_CHECKING:
    from dulwich.repo import Repo

HEAD = b"HEAD"


@dataclass(frozen=True, slots=True)
class HeadState:
    """Where HEAD points.

    Attributes:
        branch_ref: Full ref name HEAD is attached to, None when detached.
        commit_id: Commit HEAD resolves to, None on an unborn branch.
    """

    branch_ref: bytes | None
    commit_id: bytes | None

    @property
    def branch(self) -> str | None:
        """Attached branch name without refs/heads/, if any."""
        if self.branch_ref is None or not self.branch_ref.startswith(HEADS_PREFIX):
            return None
        return decode_bytes(self.branch_ref[len(HEADS_PREFIX) :])

    @property
    def target_ref(self) -> bytes:
        """Ref a new commit moves: the attached branch, or HEAD itself."""
        return self.branch_ref or HEAD


def read_head(repo: Repo) -> HeadState:
    """Read HEAD without failing on unborn branches."""
    refnames, value = repo.refs.follow(HEAD)
    branch = refnames[-1] if len(refnames) > 1 else None
    return HeadState(branch_ref=branch, commit_id=value or None)


def validate_branch_name(name: str) -> bytes:
    """Return the full ref for a branch name.

    Raises:
        InvalidReferenceNameError: If the name is not a valid ref name.
    """
    if not name or name == "HEAD" or name.startswith("-"):
        msg = f"Invalid branch name: {name!r}"
        raise InvalidReferenceNameError(msg, name=name)
    ref = branch_ref(name)
    if not check_ref_format(ref):
        msg = f"Invalid branch name: {name!r}"
        raise InvalidReferenceNameError(msg, name=name)
    return ref


def peel_to_commit(repo: Repo, sha: bytes, name: str) -> bytes:
    """Follow annotated tags down to a commit id.

    Raises:
        ReferenceNotFoundError: If the object is missing or not a commit.
    """
    try:
        obj = repo[sha]
        while isinstance(obj, Tag):
            obj = repo[obj.object[1]]
    except KeyError:
        msg = f"Reference does not resolve to an object: {name}"
        raise ReferenceNotFoundError(msg, name=name) from None

    if not isinstance(obj, Commit):
        msg = f"Reference does not point to a commit: {name}"
        raise ReferenceNotFoundError(msg, name=name)
    return obj.id


def resolve(repo: Repo, name: str) -> bytes:
    """Resolve HEAD, a branch, a full ref or a full commit id.

    Args:
        repo: The repository.
        name: Name to resolve.

    Returns:
        Hex commit id as bytes.

    Raises:
        ReferenceNotFoundError: If the name does not resolve to a commit,
            including HEAD on an unborn branch.
    """
    if name == "HEAD":
        head = read_head(repo)
        if head.commit_id is None:
            msg = "HEAD does not point to a commit yet"
            raise ReferenceNotFoundError(msg, name=name)
        return peel_to_commit(repo, head.commit_id, name)

    if is_full_sha(name):
        return peel_to_commit(repo, name.lower().encode(), name)

    ref = name.encode() if name.startswith("refs/") else branch_ref(name)
    try:
        sha = repo.refs[ref]
    except KeyError:
        msg = f"Reference not found: {name}"
        raise ReferenceNotFoundError(msg, name=name) from None
    return peel_to_commit(repo, sha, name)


def move_ref(
    repo: Repo,
    ref: bytes,
    expected: bytes | None,
    new: bytes,
    message: bytes,
) -> None:
    """Move a ref with compare-and-swap semantics.

    Args:
        repo: The repository.
        ref: Full ref name, or HEAD for a detached HEAD.
        expected: Value the ref must still hold; None requires it absent.
        new: New commit id.
        message: Reflog message.

    Raises:
        ConcurrentModificationError: If the ref no longer holds ``expected``.
    """
    if expected is None:
        moved = repo.refs.add_if_new(ref, new, message=message)
    else:
        moved = repo.refs.set_if_equals(ref, expected, new, message=message)

    if not moved:
        name = decode_bytes(ref)
        msg = f"Reference {name} was changed by another writer"
        raise ConcurrentModificationError(
            msg,
            ref=name,
            details=f"expected {decode_bytes(expected or b'(none)')}",
        )


def move_head(repo: Repo, head: HeadState, new: bytes, message: bytes) -> None:
    """Advance whatever HEAD targets from ``head.commit_id`` to ``new``."""
    move_ref(repo, head.target_ref, head.commit_id, new, message)


def detach_head(repo: Repo, commit_id: bytes, identity: bytes, message: bytes) -> None:
    """Point HEAD directly at a commit.

    HEAD is replaced through a lock file and a rename, so a concurrent
    reader sees either the old HEAD or the new commit, never no HEAD.

    Args:
        repo: The repository.
        commit_id: Commit HEAD will hold.
        identity: ``Name <email>`` recorded in the HEAD reflog.
        message: Reflog message.
    """
    old = read_head(repo).commit_id
    control = Path(repo.controldir())
    with GitFile(control / "HEAD", "wb") as f:
        _ = f.write(commit_id + b"\n")

    now = pendulum.now()
    offset = now.utcoffset()
    tz = int(offset.total_seconds()) if offset is not None else 0
    log = control / "logs" / "HEAD"
    log.parent.mkdir(parents=True, exist_ok=True)
    with log.open("ab") as f:
        line = format_reflog_line(old, commit_id, identity, now.int_timestamp, tz, message)
        _ = f.write(line + b"\n")
