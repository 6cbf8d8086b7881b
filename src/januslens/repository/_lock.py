"""Repository locking.

Each canonical repository path maps to one RepositoryLock shared by every
handle opened on it within the process. Reads take the shared side;
structural operations take the exclusive side plus an advisory ``flock`` on
``.git/januslens.lock`` so other processes are excluded too.

Example:
    >>> lock = RepositoryLock.for_path(Path("/work/repo"))
    >>> with lock.shared(timeout=5.0):
    ...     pass
"""

import fcntl
import os
import threading
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, ClassVar

from januslens.exceptions import RepositoryBusyError

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

LOCK_FILE_NAME = "januslens.lock"


class RepositoryLock:
    """Reentrant readers-writer lock for one repository.

    A thread holding the exclusive side may take either side again. Readers
    are admitted whenever no other thread holds the exclusive side.

    Use for_path() to obtain instances. Do not instantiate directly.

    Attributes:
        _registry: Class-level map of canonical paths to locks.
        _registry_lock: Class-level lock guarding the registry.
    """

    _registry: ClassVar[dict[Path, RepositoryLock]] = {}
    _registry_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, root: Path) -> None:
        """Initialize the lock. Use for_path() instead."""
        self._root: Path = root
        self._cond: threading.Condition = threading.Condition(threading.Lock())
        self._readers: dict[int, int] = {}
        self._writer: int | None = None
        self._writer_depth: int = 0
        self._file_fd: int | None = None

    @classmethod
    def for_path(cls, root: Path) -> RepositoryLock:
        """Return the lock shared by every handle on a repository.

        Args:
            root: Repository root; resolved before lookup.

        Returns:
            The process-wide lock for the canonical path.
        """
        key = root.resolve()
        with cls._registry_lock:
            lock = cls._registry.get(key)
            if lock is None:
                lock = cls(key)
                cls._registry[key] = lock
            return lock

    @classmethod
    def _reset_registry(cls) -> None:
        """Drop all registered locks. For tests only."""
        with cls._registry_lock:
            cls._registry.clear()

    @property
    def root(self) -> Path:
        """Canonical repository root."""
        return self._root

    @property
    def lock_file(self) -> Path:
        """Path of the inter-process lock file."""
        return self._root / ".git" / LOCK_FILE_NAME

    def _busy(self, timeout: float) -> RepositoryBusyError:
        msg = f"Repository is busy (waited {timeout:g}s): {self._root}"
        return RepositoryBusyError(msg, path=self._root)

    # =========================================================================
    # Shared side
    # =========================================================================

    @contextmanager
    def shared(self, timeout: float) -> Iterator[None]:
        """Hold the shared side for the duration of the block.

        Args:
            timeout: Seconds to wait for a writer to finish.

        Raises:
            RepositoryBusyError: If the lock cannot be taken in time.
        """
        me = threading.get_ident()
        deadline = time.monotonic() + timeout

        with self._cond:
            while self._writer is not None and self._writer != me:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise self._busy(timeout)
                _ = self._cond.wait(remaining)
            self._readers[me] = self._readers.get(me, 0) + 1

        try:
            yield
        finally:
            with self._cond:
                count = self._readers[me] - 1
                if count:
                    self._readers[me] = count
                else:
                    del self._readers[me]
                self._cond.notify_all()

    # =========================================================================
    # Exclusive side
    # =========================================================================

    @contextmanager
    def exclusive(self, timeout: float) -> Iterator[None]:
        """Hold the exclusive side for the duration of the block.

        The outermost acquisition also takes the inter-process file lock,
        tried once without blocking.

        Args:
            timeout: Seconds to wait for other threads to finish.

        Raises:
            RepositoryBusyError: If the lock cannot be taken in time, or
                another process holds the file lock.
        """
        me = threading.get_ident()
        deadline = time.monotonic() + timeout

        with self._cond:
            if self._writer == me:
                self._writer_depth += 1
                outermost = False
            else:
                while self._writer is not None or any(
                    tid != me for tid in self._readers
                ):
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise self._busy(timeout)
                    _ = self._cond.wait(remaining)
                self._writer = me
                self._writer_depth = 1
                outermost = True

        if outermost:
            try:
                self._acquire_file_lock()
            except BaseException:
                self._release_writer()
                raise

        try:
            yield
        finally:
            if outermost:
                self._release_file_lock()
            self._release_writer()

    def _release_writer(self) -> None:
        with self._cond:
            self._writer_depth -= 1
            if self._writer_depth == 0:
                self._writer = None
                self._cond.notify_all()

    def _acquire_file_lock(self) -> None:
        try:
            fd = os.open(self.lock_file, os.O_RDWR | os.O_CREAT, 0o644)
        except FileNotFoundError:
            # No .git directory; nothing to coordinate with
            return

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            os.close(fd)
            msg = f"Repository is locked by another process: {self._root}"
            raise RepositoryBusyError(msg, path=self._root) from None
        self._file_fd = fd

    def _release_file_lock(self) -> None:
        fd = self._file_fd
        if fd is None:
            return
        self._file_fd = None
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
