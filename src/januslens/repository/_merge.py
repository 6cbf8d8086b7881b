"""Three-way merge.

The decision logic is pure: plan_merge() takes flattened base, ours and
theirs trees plus a blob loader and returns a MergePlan saying, for every
path, which version wins, what merged content replaces it, or why it
conflicts. merge_lines() performs the line-level merge of one text file,
using sync regions where base, ours and theirs all agree.

apply_merge_plan() and restore_tree() write plans and trees back into the
index and working tree.
"""

import stat
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from enum import StrEnum
from typing import TYPE_CHECKING

from dulwich.index import ConflictedIndexEntry, IndexEntry
from dulwich.objects import Blob
from dulwich.patch import is_binary

from januslens.config._models._common import ConflictStyle
from januslens.repository._models import FileVersion
from januslens.repository._staging import make_index_entry
from januslens.repository._worktree import MODE_GITLINK, MODE_SYMLINK
from januslens.utils._git import encode_path

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping, Sequence

    from dulwich.index import Index
    from dulwich.repo import Repo

    from januslens.repository._protocol import WorkingTreeProtocol

MARKER_WIDTH = 7


class ResolutionKind(StrEnum):
    """How one path is resolved."""

    TAKE = "take"
    MERGED = "merged"
    CONFLICT = "conflict"


class ConflictReason(StrEnum):
    """Why a path conflicts."""

    CONTENT = "content"
    ADD_ADD = "add/add"
    DELETE_MODIFY = "delete/modify"
    BINARY = "binary"
    FILE_TYPE = "file type"
    MODE = "mode"
    DIRECTORY_FILE = "directory/file"


@dataclass(frozen=True, slots=True)
class MergeOptions:
    """Options for one merge.

    Attributes:
        line_level: Merge divergent text files line by line.
        conflict_style: Marker layout for conflicted text.
        ours_label: Label after the opening marker.
        theirs_label: Label after the closing marker.
        base_label: Label of the base section in diff3 style.
    """

    line_level: bool = True
    conflict_style: ConflictStyle = ConflictStyle.MERGE
    ours_label: str = "HEAD"
    theirs_label: str = "theirs"
    base_label: str = "base"


@dataclass(frozen=True, slots=True)
class PathResolution:
    """Resolution of a single path.

    Attributes:
        path: Repository-relative path.
        kind: How the path is resolved.
        version: Winning version for TAKE; None means the path is deleted.
        content: New content for MERGED, working-copy content for CONFLICT
            (None keeps what is on disk).
        mode: Mode of ``content``.
        base: Base version, recorded for conflicts.
        ours: Our version, recorded for conflicts.
        theirs: Their version, recorded for conflicts.
        reason: Why the path conflicts.
        side_path: Where the file is written instead when the other side
            made ``path`` a directory.
    """

    path: str
    kind: ResolutionKind
    version: FileVersion | None = None
    content: bytes | None = None
    mode: int | None = None
    base: FileVersion | None = None
    ours: FileVersion | None = None
    theirs: FileVersion | None = None
    reason: ConflictReason | None = None
    side_path: str | None = None


@dataclass(frozen=True, slots=True)
class MergePlan:
    """Per-path resolutions of a three-way merge, sorted by path."""

    resolutions: tuple[PathResolution, ...] = field(default=())

    @property
    def conflicts(self) -> tuple[PathResolution, ...]:
        """Resolutions that conflict."""
        return tuple(r for r in self.resolutions if r.kind is ResolutionKind.CONFLICT)

    @property
    def conflicted_paths(self) -> tuple[str, ...]:
        """Paths that conflict, sorted."""
        return tuple(r.path for r in self.conflicts)

    @property
    def has_conflicts(self) -> bool:
        """True when at least one path conflicts."""
        return any(r.kind is ResolutionKind.CONFLICT for r in self.resolutions)

    def changes_against(
        self, tree: Mapping[str, FileVersion]
    ) -> Iterator[PathResolution]:
        """Yield resolutions whose outcome differs from ``tree``."""
        for resolution in self.resolutions:
            if resolution.kind is ResolutionKind.TAKE and resolution.version == tree.get(
                resolution.path
            ):
                continue
            yield resolution


# =============================================================================
# Line-level merge
# =============================================================================


@dataclass(frozen=True, slots=True)
class LineMergeResult:
    """Outcome of merging one text file.

    Attributes:
        lines: Merged lines, including conflict markers.
        conflicts: Number of conflict hunks.
    """

    lines: tuple[bytes, ...]
    conflicts: int

    @property
    def content(self) -> bytes:
        """Merged lines joined back into file content."""
        return b"".join(self.lines)


# (base_start, base_end, ours_start, ours_end, theirs_start, theirs_end)
SyncRegion = tuple[int, int, int, int, int, int]


def find_sync_regions(
    base: Sequence[bytes],
    ours: Sequence[bytes],
    theirs: Sequence[bytes],
) -> list[SyncRegion]:
    """Find regions where base, ours and theirs hold identical lines.

    The last region is always an empty sentinel at the end of all three.
    """
    ours_blocks = SequenceMatcher(None, base, ours, autojunk=False).get_matching_blocks()
    theirs_blocks = SequenceMatcher(
        None, base, theirs, autojunk=False
    ).get_matching_blocks()

    regions: list[SyncRegion] = []
    oi = ti = 0
    while oi < len(ours_blocks) and ti < len(theirs_blocks):
        o_base, o_start, o_len = ours_blocks[oi]
        t_base, t_start, t_len = theirs_blocks[ti]

        start = max(o_base, t_base)
        end = min(o_base + o_len, t_base + t_len)
        if start < end:
            o_sub = o_start + (start - o_base)
            t_sub = t_start + (start - t_base)
            length = end - start
            regions.append((start, end, o_sub, o_sub + length, t_sub, t_sub + length))

        if o_base + o_len < t_base + t_len:
            oi += 1
        else:
            ti += 1

    regions.append((len(base), len(base), len(ours), len(ours), len(theirs), len(theirs)))
    return regions


def _with_newline(lines: Sequence[bytes]) -> list[bytes]:
    # Markers must start on their own line
    result = list(lines)
    if result and not result[-1].endswith(b"\n"):
        result[-1] += b"\n"
    return result


def _common_prefix(a: Sequence[bytes], b: Sequence[bytes]) -> int:
    n = 0
    for x, y in zip(a, b, strict=False):
        if x != y:
            break
        n += 1
    return n


def merge_lines(
    base: Sequence[bytes],
    ours: Sequence[bytes],
    theirs: Sequence[bytes],
    options: MergeOptions | None = None,
) -> LineMergeResult:
    """Three-way merge of line sequences.

    Edits made on one side only are applied; identical edits are applied
    once; overlapping different edits become conflict hunks delimited by
    ``<<<<<<<``, ``=======`` and ``>>>>>>>`` markers (plus ``|||||||``
    with the base lines in diff3 style).

    Args:
        base: Lines of the common ancestor, line endings kept.
        ours: Lines of our side.
        theirs: Lines of their side.
        options: Labels and marker style.

    Returns:
        The merged lines and the number of conflict hunks.
    """
    opts = options or MergeOptions()
    diff3 = opts.conflict_style is ConflictStyle.DIFF3
    base, ours, theirs = list(base), list(ours), list(theirs)
    out: list[bytes] = []
    conflicts = 0

    def emit_conflict(b: Sequence[bytes], o: Sequence[bytes], t: Sequence[bytes]) -> None:
        nonlocal conflicts
        conflicts += 1
        out.append(f"{'<' * MARKER_WIDTH} {opts.ours_label}\n".encode())
        out.extend(_with_newline(o))
        if diff3:
            out.append(f"{'|' * MARKER_WIDTH} {opts.base_label}\n".encode())
            out.extend(_with_newline(b))
        out.append(f"{'=' * MARKER_WIDTH}\n".encode())
        out.extend(_with_newline(t))
        out.append(f"{'>' * MARKER_WIDTH} {opts.theirs_label}\n".encode())

    bi = oi = ti = 0
    for b_start, b_end, o_start, o_end, t_start, t_end in find_sync_regions(
        base, ours, theirs
    ):
        b_chunk = base[bi:b_start]
        o_chunk = ours[oi:o_start]
        t_chunk = theirs[ti:t_start]

        if o_chunk or t_chunk:
            if o_chunk == t_chunk:
                out.extend(o_chunk)
            elif o_chunk == b_chunk:
                out.extend(t_chunk)
            elif t_chunk == b_chunk:
                out.extend(o_chunk)
            elif diff3:
                emit_conflict(b_chunk, o_chunk, t_chunk)
            else:
                # Shrink the hunk to the lines that really differ
                head = _common_prefix(o_chunk, t_chunk)
                tail = _common_prefix(o_chunk[head:][::-1], t_chunk[head:][::-1])
                out.extend(o_chunk[:head])
                emit_conflict(
                    b_chunk,
                    o_chunk[head : len(o_chunk) - tail],
                    t_chunk[head : len(t_chunk) - tail],
                )
                out.extend(o_chunk[len(o_chunk) - tail :])

        out.extend(base[b_start:b_end])
        bi, oi, ti = b_end, o_end, t_end

    return LineMergeResult(lines=tuple(out), conflicts=conflicts)


def whole_file_conflict(
    base: bytes,
    ours: bytes,
    theirs: bytes,
    options: MergeOptions | None = None,
) -> bytes:
    """Render both complete versions of a text file between markers."""
    opts = options or MergeOptions()
    out = [f"{'<' * MARKER_WIDTH} {opts.ours_label}\n".encode()]
    out.extend(_with_newline(ours.splitlines(keepends=True)))
    if opts.conflict_style is ConflictStyle.DIFF3:
        out.append(f"{'|' * MARKER_WIDTH} {opts.base_label}\n".encode())
        out.extend(_with_newline(base.splitlines(keepends=True)))
    out.append(f"{'=' * MARKER_WIDTH}\n".encode())
    out.extend(_with_newline(theirs.splitlines(keepends=True)))
    out.append(f"{'>' * MARKER_WIDTH} {opts.theirs_label}\n".encode())
    return b"".join(out)


# =============================================================================
# Path-level planning
# =============================================================================


def _file_type(mode: int) -> int:
    return stat.S_IFMT(mode)


def _merge_mode(
    base: FileVersion | None,
    ours: FileVersion,
    theirs: FileVersion,
) -> int | None:
    """Merge the modes of two present versions; None when they diverge."""
    if ours.mode == theirs.mode:
        return ours.mode
    if base is not None and base.mode == ours.mode:
        return theirs.mode
    if base is not None and base.mode == theirs.mode:
        return ours.mode
    return None


def _plan_path(
    path: str,
    base: FileVersion | None,
    ours: FileVersion | None,
    theirs: FileVersion | None,
    load_blob: Callable[[bytes], bytes],
    options: MergeOptions,
) -> PathResolution:
    if ours == theirs:
        return PathResolution(path=path, kind=ResolutionKind.TAKE, version=ours)
    if base == ours:
        return PathResolution(path=path, kind=ResolutionKind.TAKE, version=theirs)
    if base == theirs:
        return PathResolution(path=path, kind=ResolutionKind.TAKE, version=ours)

    def conflict(
        reason: ConflictReason,
        content: bytes | None = None,
        mode: int | None = None,
    ) -> PathResolution:
        return PathResolution(
            path=path,
            kind=ResolutionKind.CONFLICT,
            content=content,
            mode=mode,
            base=base,
            ours=ours,
            theirs=theirs,
            reason=reason,
        )

    if ours is None or theirs is None:
        # The surviving side stays on disk so nothing is lost
        if theirs is not None and _file_type(theirs.mode) != _file_type(MODE_GITLINK):
            return conflict(
                ConflictReason.DELETE_MODIFY, load_blob(theirs.sha), theirs.mode
            )
        return conflict(ConflictReason.DELETE_MODIFY)

    if _file_type(ours.mode) != _file_type(theirs.mode):
        return conflict(ConflictReason.FILE_TYPE)

    mode = _merge_mode(base, ours, theirs)

    if ours.sha == theirs.sha or (base is not None and base.sha in (ours.sha, theirs.sha)):
        # Only modes diverged, or content changed on one side only
        sha = theirs.sha if base is not None and base.sha == ours.sha else ours.sha
        if mode is None:
            return conflict(ConflictReason.MODE)
        return PathResolution(
            path=path,
            kind=ResolutionKind.TAKE,
            version=FileVersion(mode=mode, sha=sha),
        )

    reason = ConflictReason.CONTENT if base is not None else ConflictReason.ADD_ADD
    if _file_type(ours.mode) in {_file_type(MODE_SYMLINK), _file_type(MODE_GITLINK)}:
        return conflict(reason)

    base_data = load_blob(base.sha) if base is not None else b""
    ours_data = load_blob(ours.sha)
    theirs_data = load_blob(theirs.sha)

    if is_binary(base_data) or is_binary(ours_data) or is_binary(theirs_data):
        # Binary conflicts keep our version on disk
        return conflict(ConflictReason.BINARY)

    if not options.line_level:
        return conflict(
            reason,
            whole_file_conflict(base_data, ours_data, theirs_data, options),
            mode if mode is not None else ours.mode,
        )

    merged = merge_lines(
        base_data.splitlines(keepends=True),
        ours_data.splitlines(keepends=True),
        theirs_data.splitlines(keepends=True),
        options,
    )
    if merged.conflicts:
        return conflict(reason, merged.content, mode if mode is not None else ours.mode)
    if mode is None:
        return conflict(ConflictReason.MODE, merged.content, ours.mode)
    return PathResolution(
        path=path,
        kind=ResolutionKind.MERGED,
        content=merged.content,
        mode=mode,
    )


def plan_merge(
    base: Mapping[str, FileVersion],
    ours: Mapping[str, FileVersion],
    theirs: Mapping[str, FileVersion],
    load_blob: Callable[[bytes], bytes],
    options: MergeOptions | None = None,
) -> MergePlan:
    """Decide the outcome of a three-way merge for every path.

    A side that left a path unchanged takes the other side's version,
    deletion included; identical changes are taken once. Divergent text
    changes of the same file type are merged line by line; divergent
    binary, file-type and delete/modify changes conflict as a whole.

    Args:
        base: Flattened merge-base tree (empty without a common ancestor).
        ours: Flattened tree of HEAD.
        theirs: Flattened tree of the merge target.
        load_blob: Returns the content of a blob id.
        options: Merge options.

    A file that survives where the other side put a directory conflicts as
    ``DIRECTORY_FILE``: the directory keeps the path and the file moves to
    ``<path>~<label>``.

    Returns:
        Resolutions for the union of all paths, sorted by path.
    """
    opts = options or MergeOptions()
    paths = sorted(base.keys() | ours.keys() | theirs.keys())
    resolutions = [
        _plan_path(path, base.get(path), ours.get(path), theirs.get(path), load_blob, opts)
        for path in paths
    ]

    directories = {
        parent
        for r in resolutions
        if _survives(r)
        for parent in _parents(r.path)
    }
    if directories:
        taken = set(paths) | directories
        resolutions = [
            _displace(r, base, ours, theirs, load_blob, opts, taken)
            if r.path in directories and _survives(r)
            else r
            for r in resolutions
        ]
    return MergePlan(resolutions=tuple(resolutions))


def _survives(resolution: PathResolution) -> bool:
    if resolution.kind is ResolutionKind.TAKE:
        return resolution.version is not None
    return True


def _parents(path: str) -> Iterator[str]:
    parts = path.split("/")
    for end in range(1, len(parts)):
        yield "/".join(parts[:end])


def _displace(
    resolution: PathResolution,
    base: Mapping[str, FileVersion],
    ours: Mapping[str, FileVersion],
    theirs: Mapping[str, FileVersion],
    load_blob: Callable[[bytes], bytes],
    options: MergeOptions,
    taken: set[str],
) -> PathResolution:
    """Turn a file that blocks a directory into a directory/file conflict."""
    path = resolution.path
    # One tree cannot hold both a file and a directory at the same path
    if path in ours:
        version, label = ours[path], options.ours_label
    else:
        version, label = theirs[path], options.theirs_label

    side_path = f"{path}~{label.replace('/', '_')}"
    candidate, n = side_path, 0
    while candidate in taken:
        candidate = f"{side_path}_{n}"
        n += 1
    taken.add(candidate)

    content = None if version.mode == MODE_GITLINK else load_blob(version.sha)
    return PathResolution(
        path=path,
        kind=ResolutionKind.CONFLICT,
        content=content,
        mode=version.mode,
        base=base.get(path),
        ours=ours.get(path),
        theirs=theirs.get(path),
        reason=ConflictReason.DIRECTORY_FILE,
        side_path=candidate,
    )


# =============================================================================
# Applying
# =============================================================================


def _stage_entry(version: FileVersion | None) -> IndexEntry | None:
    if version is None:
        return None
    return make_index_entry(version.sha, version.mode, None)


def apply_merge_plan(
    repo: Repo,
    index: Index,
    worktree: WorkingTreeProtocol,
    ours_tree: Mapping[str, FileVersion],
    plan: MergePlan,
) -> list[str]:
    """Write a merge plan into the object store, working tree and index.

    Paths whose outcome equals our tree are left untouched. Conflicted paths
    receive marker text (or keep our file for binary conflicts) and an
    unmerged index entry. The caller writes the index.

    Returns:
        The paths that were changed.
    """
    changed: list[str] = []
    resolutions = list(plan.changes_against(ours_tree))

    # Deletions and displaced files first, so a file can make way for a directory
    resolutions.sort(key=lambda r: (not _clears_path(r), r.path))

    for resolution in resolutions:
        key = encode_path(resolution.path)
        changed.append(resolution.path)

        if resolution.kind is ResolutionKind.TAKE:
            version = resolution.version
            if version is None:
                worktree.remove(resolution.path)
                if key in index:
                    del index[key]
                continue
            index[key] = checkout_entry(repo, worktree, resolution.path, version)
            continue

        content, mode = resolution.content, resolution.mode
        if resolution.kind is ResolutionKind.MERGED and content is not None and mode is not None:
            blob = Blob.from_string(content)
            repo.object_store.add_object(blob)
            worktree.write(resolution.path, content, mode)
            index[key] = make_index_entry(
                blob.id, mode, worktree.stat(resolution.path), len(content)
            )
            continue

        if resolution.side_path is not None:
            if resolution.ours is not None:
                worktree.remove(resolution.path)
            if content is not None and mode is not None:
                worktree.write(resolution.side_path, content, mode)
                changed.append(resolution.side_path)
        elif content is not None and mode is not None:
            worktree.write(resolution.path, content, mode)
        index[key] = ConflictedIndexEntry(
            ancestor=_stage_entry(resolution.base),
            this=_stage_entry(resolution.ours),
            other=_stage_entry(resolution.theirs),
        )

    return changed


def _clears_path(resolution: PathResolution) -> bool:
    if resolution.side_path is not None:
        return True
    return resolution.kind is ResolutionKind.TAKE and resolution.version is None


def load_blob_data(repo: Repo, sha: bytes) -> bytes:
    """Return the raw content of a blob."""
    obj = repo.object_store[sha]
    return obj.as_raw_string()


def checkout_entry(
    repo: Repo,
    worktree: WorkingTreeProtocol,
    path: str,
    version: FileVersion,
) -> IndexEntry:
    """Write one version to the working tree and return its index entry.

    Submodule commits live in another repository, so a gitlink is recorded
    in the index only.
    """
    if version.mode == MODE_GITLINK:
        return make_index_entry(version.sha, version.mode, None)
    data = load_blob_data(repo, version.sha)
    worktree.write(path, data, version.mode)
    return make_index_entry(version.sha, version.mode, worktree.stat(path), len(data))


def restore_tree(
    repo: Repo,
    index: Index,
    worktree: WorkingTreeProtocol,
    current: Mapping[str, FileVersion],
    target: Mapping[str, FileVersion],
    *,
    force: bool = False,
) -> list[str]:
    """Make the index and working tree match ``target``.

    Args:
        repo: Repository holding the blobs.
        index: Index to update; the caller writes it.
        worktree: Working tree to rewrite.
        current: What the index and working tree hold now.
        target: Tree to switch to.
        force: Rewrite every target path, not only the ones that differ.

    Returns:
        The paths that were rewritten or removed.
    """
    paths = current.keys() | target.keys()
    changed = sorted(p for p in paths if force or current.get(p) != target.get(p))

    removals = [p for p in changed if p not in target]
    writes = [p for p in changed if p in target]

    for path in removals:
        worktree.remove(path)
        key = encode_path(path)
        if key in index:
            del index[key]

    for path in writes:
        index[encode_path(path)] = checkout_entry(repo, worktree, path, target[path])

    return changed
