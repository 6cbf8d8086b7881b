"""Logging utilities for JanusLens.

This module provides standalone structlog logger factories that write
JSON-formatted or text-formatted logs to daily log files. Each logger is
self-contained and does not modify global structlog configuration.

Every logger also feeds a bounded in-memory LogBuffer, which backs the
recent-logs query and the log export of the command surface.
"""

import logging
import threading
from collections import deque
from os import getenv
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, Literal, TextIO, cast

import pendulum
import structlog
from pydantic import BaseModel, ConfigDict

from januslens.exceptions import IoFailureError
from januslens.utils._json import dump_json
from januslens.utils._paths import get_export_dir, get_log_dir

if TYPE_CHECKING:
    from structlog.typing import EventDict, FilteringBoundLogger, WrappedLogger

LogFormatType = Literal["json", "text"]

DEFAULT_BUFFER_SIZE = 1000

# Keys of the event dict that map onto LogEntry fields
_RESERVED_KEYS = frozenset({"event", "level", "timestamp", "component", "context_id"})


class LogEntry(BaseModel):
    """A captured log record.

    Attributes:
        timestamp: ISO 8601 timestamp.
        level: Upper-case level name.
        component: Component that emitted the record.
        message: The event message.
        details: Remaining structured fields, if any.
        context_id: Correlation id, if bound.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    timestamp: str
    level: str
    component: str = ""
    message: str
    details: dict[str, Any] | None = None  # pyright: ignore[reportExplicitAny]
    context_id: str | None = None


def _jsonable(value: object) -> object:
    if value is None or isinstance(value, str | int | float | bool):
        return value
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}  # pyright: ignore[reportUnknownVariableType]
    if isinstance(value, list | tuple):
        return [_jsonable(v) for v in value]  # pyright: ignore[reportUnknownVariableType]
    return str(value)


class LogBuffer:
    """Bounded, thread-safe buffer of recent log entries.

    Instances are structlog processors: adding one to a processor chain
    records every event that passes through it, then hands the event dict
    on unchanged.
    """

    def __init__(self, capacity: int = DEFAULT_BUFFER_SIZE) -> None:
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def __call__(
        self, logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        details = {
            key: _jsonable(value)
            for key, value in event_dict.items()
            if key not in _RESERVED_KEYS
        }
        context_id = event_dict.get("context_id")
        entry = LogEntry(
            timestamp=str(
                event_dict.get("timestamp") or pendulum.now("UTC").to_iso8601_string()
            ),
            level=str(event_dict.get("level", method_name)).upper(),
            component=str(event_dict.get("component", "")),
            message=str(event_dict.get("event", "")),
            details=details or None,
            context_id=str(context_id) if context_id is not None else None,
        )
        self.append(entry)
        return event_dict

    @property
    def capacity(self) -> int:
        """Maximum number of entries kept."""
        return self._entries.maxlen or 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def append(self, entry: LogEntry) -> None:
        """Add an entry, evicting the oldest one when full."""
        with self._lock:
            self._entries.append(entry)

    def clear(self) -> None:
        """Remove all entries."""
        with self._lock:
            self._entries.clear()

    def recent(
        self,
        *,
        level: str | None = None,
        component: str | None = None,
        context_id: str | None = None,
        limit: int | None = None,
    ) -> list[LogEntry]:
        """Return buffered entries, oldest first, matching every given filter.

        Args:
            level: Level name, compared case-insensitively.
            component: Exact component name.
            context_id: Exact correlation id.
            limit: Keep only the newest ``limit`` matches.

        Returns:
            Matching entries in the order they were logged.
        """
        with self._lock:
            entries = list(self._entries)

        if level is not None:
            wanted = level.upper()
            entries = [e for e in entries if e.level == wanted]
        if component is not None:
            entries = [e for e in entries if e.component == component]
        if context_id is not None:
            entries = [e for e in entries if e.context_id == context_id]
        if limit is not None and len(entries) > limit:
            entries = entries[len(entries) - limit :] if limit > 0 else []
        return entries


class DailyFileLogger:
    """structlog-compatible logger appending to one file per UTC day.

    Files are named ``januslens_YYYY-MM-DD.log`` inside ``directory``.
    """

    def __init__(self, directory: Path, *, prefix: str = "januslens") -> None:
        self._directory = directory
        self._prefix = prefix
        self._lock = threading.Lock()
        self._day: str | None = None
        self._file: TextIO | None = None

    @property
    def directory(self) -> Path:
        """Directory holding the daily files."""
        return self._directory

    def current_path(self) -> Path:
        """Path of the file for the current UTC day."""
        day = pendulum.now("UTC").to_date_string()
        return self._directory / f"{self._prefix}_{day}.log"

    def msg(self, message: str) -> None:
        """Append one rendered line to today's file."""
        with self._lock:
            day = pendulum.now("UTC").to_date_string()
            if self._file is None or day != self._day:
                if self._file is not None:
                    self._file.close()
                self._directory.mkdir(parents=True, exist_ok=True)
                path = self._directory / f"{self._prefix}_{day}.log"
                self._file = path.open("a", encoding="utf-8")
                self._day = day
            _ = self._file.write(message + "\n")
            self._file.flush()

    def close(self) -> None:
        """Close the open file, if any."""
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None

    log = debug = info = warn = warning = msg
    err = error = critical = exception = fatal = msg


def _get_log_level() -> int:
    """Get the log level from environment variables.

    Checks JANUSLENS_DEBUG first (sets DEBUG if present), then
    JANUSLENS_LOG_LEVEL. Defaults to INFO if neither is set.

    Returns:
        The logging level as an integer.
    """
    if getenv("JANUSLENS_DEBUG", None):
        return logging.DEBUG

    log_levels = logging.getLevelNamesMapping()
    return log_levels.get(getenv("JANUSLENS_LOG_LEVEL", "info").upper(), logging.INFO)


def _log_level_from_string(level: str, *, respect_env: bool = False) -> int:
    """Convert a log level string to a logging level integer.

    Args:
        level: Log level string (debug, info, warning, error).
        respect_env: If True, JANUSLENS_DEBUG overrides to DEBUG level.

    Returns:
        The logging level as an integer.
    """
    if respect_env and getenv("JANUSLENS_DEBUG", None):
        return logging.DEBUG

    log_levels = logging.getLevelNamesMapping()
    return log_levels.get(level.upper(), logging.INFO)


def _create_logger(
    raw_logger: object,
    *,
    log_level: int | None = None,
    log_format: LogFormatType = "json",
    buffer: LogBuffer | None = None,
) -> FilteringBoundLogger:
    """Wrap a raw logger with the JanusLens processor chain.

    Args:
        raw_logger: Object exposing structlog's logger methods.
        log_level: Override log level (uses env vars if not specified).
        log_format: Output format, either "json" or "text".
        buffer: Buffer that records every emitted entry.

    Returns:
        A configured FilteringBoundLogger instance.
    """
    effective_level = log_level if log_level is not None else _get_log_level()

    processors: list[structlog.typing.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if buffer is not None:
        processors.append(buffer)

    if log_format == "json":
        processors.append(structlog.processors.dict_tracebacks)
        processors.append(structlog.processors.JSONRenderer())
    else:
        # Text format: "timestamp [level] event key=value ..."
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    wrapper_class = structlog.make_filtering_bound_logger(effective_level)

    # wrap_logger leaves the global structlog configuration untouched
    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            raw_logger,
            processors=processors,
            wrapper_class=wrapper_class,
            context_class=dict,
        ),
    )


def create_engine_logger(
    *,
    level: str = "info",
    log_format: LogFormatType = "json",
    log_dir: str | Path = "",
    buffer: LogBuffer | None = None,
    component: str = "",
) -> FilteringBoundLogger:
    """Create a logger for engine and command activity.

    Writes structured logs to ``januslens_YYYY-MM-DD.log`` in ``log_dir``
    (the per-user data directory when empty) and records every entry in
    ``buffer`` when given.

    The log level can be overridden by environment variables:
    - JANUSLENS_DEBUG: If set, enables DEBUG level logging regardless of config

    Args:
        level: Log level threshold (debug, info, warning, error).
        log_format: Output format, either "json" or "text".
        log_dir: Directory for the daily files.
        buffer: In-memory buffer receiving every entry.
        component: Component name bound to all entries.

    Returns:
        A FilteringBoundLogger instance.
    """
    directory = Path(log_dir) if log_dir else get_log_dir()
    logger = _create_logger(
        DailyFileLogger(directory),
        log_level=_log_level_from_string(level, respect_env=True),
        log_format=log_format,
        buffer=buffer,
    )
    if component:
        return logger.bind(component=component)
    return logger


def create_null_logger() -> FilteringBoundLogger:
    """Create a logger that drops everything.

    Used by repository handles opened without a logger. Critical events
    still reach the wrapped ReturnLogger, which discards them.
    """
    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            structlog.ReturnLogger(),
            wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL),
            processors=[],
        ),
    )


def export_logs(
    filename: str,
    entries: list[LogEntry],
    *,
    export_dir: Path | None = None,
) -> Path:
    """Write log entries to a pretty-printed JSON array.

    Args:
        filename: Plain file name inside the export directory.
        entries: Entries to export, in order.
        export_dir: Destination directory (documents/JanusLens by default).

    Returns:
        Path of the written file.

    Raises:
        IoFailureError: If the name is not a plain file name or writing fails.
        SerializationError: If the entries cannot be serialized.
    """
    if not filename or Path(filename).name != filename or filename in {".", ".."}:
        msg = f"Invalid export file name: {filename!r}"
        raise IoFailureError(msg, path=filename)

    directory = export_dir if export_dir is not None else get_export_dir()
    payload = dump_json([e.model_dump(mode="json") for e in entries], pretty=True)

    target = directory / filename
    try:
        directory.mkdir(parents=True, exist_ok=True)
        _ = target.write_bytes(payload)
    except OSError as e:
        msg = f"Failed to write export file: {e}"
        raise IoFailureError(msg, path=target) from e
    return target
