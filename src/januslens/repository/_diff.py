"""Unified diff rendering for a single path."""

from typing import TYPE_CHECKING

from dulwich.patch import is_binary, unified_diff

from januslens.repository._status import blob_id

if TYPE_CHECKING:
    from collections.abc import Iterator

DEV_NULL = "/dev/null"

# Width of the abbreviated blob ids on the index line
_INDEX_ID_WIDTH = 7
_NULL_ID = "0" * _INDEX_ID_WIDTH

Side = tuple[int, bytes]


def _header(path: str, old: Side | None, new: Side | None) -> Iterator[str]:
    yield f"diff --git a/{path} b/{path}"

    old_id = blob_id(old[1]).decode()[:_INDEX_ID_WIDTH] if old else _NULL_ID
    new_id = blob_id(new[1]).decode()[:_INDEX_ID_WIDTH] if new else _NULL_ID

    if old is None and new is not None:
        yield f"new file mode {new[0]:06o}"
        yield f"index {old_id}..{new_id}"
    elif new is None and old is not None:
        yield f"deleted file mode {old[0]:06o}"
        yield f"index {old_id}..{new_id}"
    elif old is not None and new is not None:
        if old[0] != new[0]:
            yield f"old mode {old[0]:06o}"
            yield f"new mode {new[0]:06o}"
            if old[1] != new[1]:
                yield f"index {old_id}..{new_id}"
        else:
            yield f"index {old_id}..{new_id} {old[0]:06o}"


def render_file_diff(
    path: str,
    old: Side | None,
    new: Side | None,
    *,
    context_lines: int = 3,
) -> str:
    """Render a git-style unified diff for one path.

    Args:
        path: Repository-relative path shown in the headers.
        old: ``(mode, content)`` on the old side, None if absent.
        new: ``(mode, content)`` on the new side, None if absent.
        context_lines: Unchanged lines around each hunk.

    Returns:
        The diff text, or an empty string when both sides are equal.
    """
    if old == new:
        return ""

    lines = list(_header(path, old, new))
    old_data = old[1] if old else b""
    new_data = new[1] if new else b""

    if old_data == new_data:
        # Mode-only change
        return "\n".join(lines) + "\n"

    from_name = f"a/{path}" if old else DEV_NULL
    to_name = f"b/{path}" if new else DEV_NULL

    if is_binary(old_data) or is_binary(new_data):
        lines.append(f"Binary files {from_name} and {to_name} differ")
        return "\n".join(lines) + "\n"

    body = b"".join(
        unified_diff(
            old_data.splitlines(keepends=True),
            new_data.splitlines(keepends=True),
            fromfile=from_name.encode(),
            tofile=to_name.encode(),
            n=context_lines,
        )
    )
    return "\n".join(lines) + "\n" + body.decode("utf-8", errors="replace")
