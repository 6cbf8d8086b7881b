"""Working tree protocol for type-safe dependency injection.

The status, staging and merge code only touch the working tree through this
protocol, so they can be exercised with the in-memory FakeWorkingTree.
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    import os
    from collections.abc import Callable, Iterator
    from pathlib import Path


@runtime_checkable
class WorkingTreeProtocol(Protocol):
    """Protocol for the file side of a repository.

    Paths are repository-relative and "/"-separated. Implementations never
    expose anything below ``.git``.

    Example:
        >>> def snapshot(tree: WorkingTreeProtocol) -> dict[str, bytes]:
        ...     return {p: tree.read(p)[1] for p in tree.walk()}
    """

    @property
    def root(self) -> Path:
        """Absolute path of the working tree root."""
        ...

    def read(self, path: str) -> tuple[int, bytes] | None:
        """Read a file.

        Args:
            path: Repository-relative path.

        Returns:
            ``(mode, content)`` where mode is a Git file mode and content is
            the link target for symlinks, or None when no file is there.
        """
        ...

    def stat(self, path: str) -> os.stat_result | None:
        """Return lstat data for a file, or None when unavailable."""
        ...

    def write(self, path: str, data: bytes, mode: int) -> None:
        """Create or replace a file, creating parent directories.

        Args:
            path: Repository-relative path.
            data: File content, or link target for symlink modes.
            mode: Git file mode.
        """
        ...

    def remove(self, path: str) -> None:
        """Remove a file and any directories left empty. Missing is a no-op."""
        ...

    def is_dir(self, path: str) -> bool:
        """Check whether a directory exists at the path ("" is the root)."""
        ...

    def list_dir(self, path: str) -> list[tuple[str, bool]]:
        """List a directory as ``(name, is_directory)`` pairs.

        Raises:
            OSError: If the directory cannot be listed.
        """
        ...

    def walk(
        self,
        path: str = "",
        *,
        prune: Callable[[str], bool] | None = None,
    ) -> Iterator[str]:
        """Yield every file below ``path``.

        Args:
            path: Directory to start from ("" is the root).
            prune: Called with a directory path; True skips the directory.

        Yields:
            Repository-relative file paths.
        """
        ...
