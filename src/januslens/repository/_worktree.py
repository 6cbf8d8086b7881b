"""Filesystem-backed working tree."""

import os
import shutil
import stat
from pathlib import Path
from typing import TYPE_CHECKING

from januslens.exceptions import PathOutsideRepositoryError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

GIT_DIR = ".git"

MODE_FILE = 0o100644
MODE_EXECUTABLE = 0o100755
MODE_SYMLINK = 0o120000
MODE_GITLINK = 0o160000


def mode_from_stat(st: os.stat_result) -> int:
    """Return the Git file mode for lstat data."""
    if stat.S_ISLNK(st.st_mode):
        return MODE_SYMLINK
    if st.st_mode & 0o111:
        return MODE_EXECUTABLE
    return MODE_FILE


def normalize_path(path: str) -> str:
    """Normalize a repository-relative path to "/"-separated form.

    Args:
        path: Path as given by a caller; "." and "" denote the root.

    Returns:
        Normalized path without leading, trailing or repeated separators.

    Raises:
        PathOutsideRepositoryError: If the path is absolute, climbs out of
            the repository or points into ``.git``.
    """
    cleaned = path.replace("\\", "/")
    if cleaned.startswith("/"):
        msg = f"Path must be relative to the repository root: {path}"
        raise PathOutsideRepositoryError(msg, path=path)

    parts: list[str] = []
    for part in cleaned.split("/"):
        if part in {"", "."}:
            continue
        if part == "..":
            if not parts:
                msg = f"Path escapes the repository: {path}"
                raise PathOutsideRepositoryError(msg, path=path)
            _ = parts.pop()
            continue
        parts.append(part)

    if parts and parts[0] == GIT_DIR:
        msg = f"Path points into the repository metadata: {path}"
        raise PathOutsideRepositoryError(msg, path=path)
    return "/".join(parts)


class FilesystemWorkingTree:
    """Working tree rooted at a directory on disk.

    Implements WorkingTreeProtocol over ``os`` calls. Symlinks are read as
    links, never followed.
    """

    __slots__: tuple[str, ...] = ("_root",)

    def __init__(self, root: Path) -> None:
        self._root: Path = root.resolve()

    @property
    def root(self) -> Path:
        """Absolute path of the working tree root."""
        return self._root

    def _full(self, path: str) -> Path:
        return self._root.joinpath(*path.split("/")) if path else self._root

    def read(self, path: str) -> tuple[int, bytes] | None:
        full = self._full(path)
        try:
            st = full.lstat()
        except FileNotFoundError:
            return None
        except NotADirectoryError:
            return None

        if stat.S_ISLNK(st.st_mode):
            return MODE_SYMLINK, os.fsencode(os.readlink(full))
        if not stat.S_ISREG(st.st_mode):
            return None
        return mode_from_stat(st), full.read_bytes()

    def stat(self, path: str) -> os.stat_result | None:
        try:
            return self._full(path).lstat()
        except (FileNotFoundError, NotADirectoryError):
            return None

    def write(self, path: str, data: bytes, mode: int) -> None:
        full = self._full(path)
        self._clear_parents(path)
        full.parent.mkdir(parents=True, exist_ok=True)

        if full.is_symlink() or full.is_file():
            full.unlink()
        elif full.is_dir():
            shutil.rmtree(full)

        if mode == MODE_SYMLINK:
            os.symlink(os.fsdecode(data), full)
            return

        _ = full.write_bytes(data)
        full.chmod(0o755 if mode == MODE_EXECUTABLE else 0o644)

    def _clear_parents(self, path: str) -> None:
        # A file where a parent directory must go is replaced
        parts = path.split("/")[:-1]
        current = self._root
        for part in parts:
            current = current / part
            if current.is_symlink() or current.is_file():
                current.unlink()
                return

    def remove(self, path: str) -> None:
        full = self._full(path)
        try:
            full.unlink()
        except (FileNotFoundError, NotADirectoryError, IsADirectoryError):
            return

        parent = full.parent
        while parent != self._root:
            try:
                parent.rmdir()
            except OSError:
                break
            parent = parent.parent

    def is_dir(self, path: str) -> bool:
        full = self._full(path)
        return full.is_dir() and not full.is_symlink()

    def list_dir(self, path: str) -> list[tuple[str, bool]]:
        entries: list[tuple[str, bool]] = []
        with os.scandir(self._full(path)) as it:
            for entry in it:
                if not path and entry.name == GIT_DIR:
                    continue
                entries.append((entry.name, entry.is_dir(follow_symlinks=False)))
        return entries

    def walk(
        self,
        path: str = "",
        *,
        prune: Callable[[str], bool] | None = None,
    ) -> Iterator[str]:
        start = self._full(path)
        for dirpath, dirnames, filenames in os.walk(start):
            rel_dir = Path(dirpath).relative_to(self._root).as_posix()
            rel_dir = "" if rel_dir == "." else rel_dir

            kept: list[str] = []
            for name in sorted(dirnames):
                child = f"{rel_dir}/{name}" if rel_dir else name
                if not rel_dir and name == GIT_DIR:
                    continue
                if Path(dirpath, name).is_symlink():
                    # os.walk lists directory symlinks as directories
                    yield child
                    continue
                if (Path(dirpath, name) / GIT_DIR).exists():
                    # Nested repository
                    continue
                if prune is not None and prune(child):
                    continue
                kept.append(name)
            dirnames[:] = kept

            for name in sorted(filenames):
                yield f"{rel_dir}/{name}" if rel_dir else name

