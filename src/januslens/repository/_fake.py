# ruff: noqa: TC003  # Path needed at runtime for dataclass fields
"""Fake working tree for testing.

This module provides a FakeWorkingTree class that implements
WorkingTreeProtocol in memory, for exercising status and merge logic
without touching the filesystem.
"""

import os
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from januslens.repository._worktree import MODE_FILE


@dataclass(slots=True)
class FakeWorkingTree:
    """In-memory working tree.

    Files are kept as ``{path: (mode, content)}``; directories exist
    implicitly as prefixes of file paths.

    Example:
        >>> tree = FakeWorkingTree()
        >>> tree.write("src/main.py", b"print()\\n", 0o100644)
        >>> tree.is_dir("src")
        True
        >>> list(tree.walk())
        ['src/main.py']
    """

    root: Path = field(default_factory=lambda: Path("/fake/worktree"))
    files: dict[str, tuple[int, bytes]] = field(default_factory=dict)
    writes: list[str] = field(default_factory=list)
    removals: list[str] = field(default_factory=list)

    # =========================================================================
    # Test helpers
    # =========================================================================

    def set_text(self, path: str, text: str, mode: int = MODE_FILE) -> None:
        """Store a UTF-8 text file without recording a write."""
        self.files[path] = (mode, text.encode())

    def text(self, path: str) -> str:
        """Return a stored file decoded as UTF-8.

        Raises:
            KeyError: If the file does not exist.
        """
        return self.files[path][1].decode()

    # =========================================================================
    # WorkingTreeProtocol Methods
    # =========================================================================

    def read(self, path: str) -> tuple[int, bytes] | None:
        return self.files.get(path)

    def stat(self, path: str) -> os.stat_result | None:
        return None

    def write(self, path: str, data: bytes, mode: int) -> None:
        # A file where a parent directory must go is replaced
        parts = path.split("/")
        for i in range(1, len(parts)):
            _ = self.files.pop("/".join(parts[:i]), None)
        prefix = path + "/"
        for existing in [p for p in self.files if p.startswith(prefix)]:
            del self.files[existing]

        self.files[path] = (mode, data)
        self.writes.append(path)

    def remove(self, path: str) -> None:
        if self.files.pop(path, None) is not None:
            self.removals.append(path)

    def is_dir(self, path: str) -> bool:
        if not path:
            return True
        prefix = path + "/"
        return any(p.startswith(prefix) for p in self.files)

    def list_dir(self, path: str) -> list[tuple[str, bool]]:
        if not self.is_dir(path):
            raise FileNotFoundError(path)
        prefix = f"{path}/" if path else ""
        entries: dict[str, bool] = {}
        for p in self.files:
            if not p.startswith(prefix):
                continue
            head, sep, _ = p[len(prefix) :].partition("/")
            entries[head] = entries.get(head, False) or bool(sep)
        return list(entries.items())

    def walk(
        self,
        path: str = "",
        *,
        prune: Callable[[str], bool] | None = None,
    ) -> Iterator[str]:
        prefix = f"{path}/" if path else ""
        for p in sorted(self.files):
            if not p.startswith(prefix):
                continue
            if prune is not None:
                parts = p.split("/")[:-1]
                dirs = ("/".join(parts[: i + 1]) for i in range(len(parts)))
                if any(prune(d) for d in dirs if len(d) > len(path)):
                    continue
            yield p
