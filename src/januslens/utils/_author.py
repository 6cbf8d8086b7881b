"""Author information resolution utilities."""

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from dulwich.repo import Repo

_DEFAULT_NAME: Final = "JanusLens"
_DEFAULT_EMAIL: Final = "januslens@localhost"


@dataclass(slots=True, frozen=True)
class AuthorInfo:
    """Resolved author information.

    Attributes:
        name: Author name.
        email: Author email.
    """

    name: str
    email: str

    def to_identity(self) -> bytes:
        """Format as a Git identity line ("Name <email>")."""
        return f"{self.name} <{self.email}>".encode()


def get_author_info(repo: Repo | None = None) -> AuthorInfo:
    """Resolve author info from environment variables or git config.

    Resolution order:
    1. Environment variables (JANUSLENS_AUTHOR_NAME, JANUSLENS_AUTHOR_EMAIL)
    2. Git config of the repository, including user and system files
       (user.name, user.email)
    3. Built-in defaults

    Args:
        repo: Repository whose config stack is consulted, if any.

    Returns:
        AuthorInfo with resolved name and email.
    """
    name = os.environ.get("JANUSLENS_AUTHOR_NAME") or _git_config(repo, b"name")
    email = os.environ.get("JANUSLENS_AUTHOR_EMAIL") or _git_config(repo, b"email")

    return AuthorInfo(name=name or _DEFAULT_NAME, email=email or _DEFAULT_EMAIL)


def _git_config(repo: Repo | None, key: bytes) -> str | None:
    """Read a value from the [user] section of git config.

    Args:
        repo: Repository whose config stack is read.
        key: Key inside the user section.

    Returns:
        The config value, or None if not set.
    """
    if repo is None:
        return None
    try:
        value = repo.get_config_stack().get((b"user",), key)
    except KeyError:
        return None
    return value.decode("utf-8", errors="replace").strip() or None
