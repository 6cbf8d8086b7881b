"""Recently opened repositories.

The list is persisted as ``{"repositories": [...]}`` in the per-user config
directory, most recent first, one entry per canonical repository path.

Example:
    >>> from januslens.recent import RecentRepositories
    >>> recent = RecentRepositories(max_entries=20)
    >>> recent.record("/work/project")
    RepoInfo(path='/work/project', name='project', last_accessed=...)
"""

import threading
from pathlib import Path
from typing import ClassVar

import orjson
import pendulum
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from januslens.exceptions import SerializationError
from januslens.repository._models import RepoInfo
from januslens.utils._json import write_json_atomic
from januslens.utils._paths import get_recent_repositories_file

DEFAULT_MAX_ENTRIES = 20


class RecentEntry(BaseModel):
    """One persisted entry."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    path: str
    name: str
    last_accessed: int = Field(ge=0)

    def to_info(self) -> RepoInfo:
        return RepoInfo(path=self.path, name=self.name, last_accessed=self.last_accessed)


class RecentDocument(BaseModel):
    """Top-level JSON document."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    repositories: tuple[RecentEntry, ...] = ()


def _canonical(path: Path | str) -> Path:
    return Path(path).expanduser().resolve()


class RecentRepositories:
    """JSON-backed list of recently opened repositories.

    Reads and writes are serialized by an instance lock; every write
    replaces the file in one step.
    """

    __slots__ = ("_lock", "_max_entries", "_path")

    def __init__(
        self,
        path: Path | None = None,
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        """Initialize the store.

        Args:
            path: JSON file; the per-user default when omitted.
            max_entries: Number of entries kept.
        """
        self._path: Path = path if path is not None else get_recent_repositories_file()
        self._max_entries: int = max(max_entries, 1)
        self._lock: threading.Lock = threading.Lock()

    @property
    def path(self) -> Path:
        """The JSON file backing the store."""
        return self._path

    @property
    def max_entries(self) -> int:
        """Number of entries kept."""
        return self._max_entries

    def _read(self) -> list[RecentEntry]:
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as e:
            msg = f"Failed to read recent repositories: {e}"
            raise SerializationError(msg, path=self._path) from e

        try:
            document = RecentDocument.model_validate(orjson.loads(raw))
        except (orjson.JSONDecodeError, ValidationError) as e:
            msg = f"Recent repositories file is corrupt: {self._path}"
            raise SerializationError(msg, path=self._path) from e
        return list(document.repositories)

    def _write(self, entries: list[RecentEntry]) -> None:
        document = RecentDocument(repositories=tuple(entries))
        try:
            write_json_atomic(self._path, document.model_dump(mode="json"))
        except OSError as e:
            msg = f"Failed to write recent repositories: {e}"
            raise SerializationError(msg, path=self._path) from e

    def entries(self) -> list[RepoInfo]:
        """Return the entries, most recent first.

        Raises:
            SerializationError: If the file is corrupt or unreadable.
        """
        with self._lock:
            entries = self._read()
        return [e.to_info() for e in entries[: self._max_entries]]

    def record(self, path: Path | str, *, timestamp: int | None = None) -> RepoInfo:
        """Move a repository to the front of the list.

        Args:
            path: Repository root; stored in canonical form.
            timestamp: Access time in unix seconds, now when omitted.

        Returns:
            The recorded entry.

        Raises:
            SerializationError: If the existing file is corrupt or the file
                cannot be written.
        """
        root = _canonical(path)
        entry = RecentEntry(
            path=str(root),
            name=root.name or str(root),
            last_accessed=timestamp if timestamp is not None else pendulum.now().int_timestamp,
        )
        with self._lock:
            entries = [e for e in self._read() if _canonical(e.path) != root]
            entries.insert(0, entry)
            self._write(entries[: self._max_entries])
        return entry.to_info()

    def remove(self, path: Path | str) -> bool:
        """Drop a repository from the list.

        Returns:
            True if an entry was removed.
        """
        root = _canonical(path)
        with self._lock:
            entries = self._read()
            kept = [e for e in entries if _canonical(e.path) != root]
            if len(kept) == len(entries):
                return False
            self._write(kept)
        return True

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._write([])
