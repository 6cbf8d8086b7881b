"""Common git utility functions.

Helpers shared by the repository package for ref names and byte/string
conversion.
"""

from typing import Final

HEADS_PREFIX: Final = b"refs/heads/"


def decode_bytes(value: bytes | str) -> str:
    """Decode bytes to str if needed.

    Args:
        value: A bytes or str value.

    Returns:
        The value as a string.
    """
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="surrogateescape")
    return value


def encode_path(value: str) -> bytes:
    """Encode a repository-relative path for dulwich."""
    return value.encode("utf-8", errors="surrogateescape")


def branch_ref(name: str) -> bytes:
    """Return the full ref name for a local branch."""
    return HEADS_PREFIX + name.encode()


def strip_refs_heads(branch: bytes | str | None) -> str | None:
    """Strip refs/heads/ prefix from a branch reference.

    Args:
        branch: Branch reference (bytes or str), possibly with refs/heads/ prefix.

    Returns:
        Branch name without prefix, or None if input is None.
    """
    if branch is None:
        return None
    branch_str = decode_bytes(branch)
    if branch_str.startswith("refs/heads/"):
        return branch_str[11:]
    return branch_str


def is_full_sha(value: str) -> bool:
    """Check whether a string is a full 40-character hex object id."""
    if len(value) != 40:  # noqa: PLR2004
        return False
    try:
        _ = bytes.fromhex(value)
    except ValueError:
        return False
    return True
