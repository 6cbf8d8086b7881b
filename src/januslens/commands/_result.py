"""Tagged command results."""

import dataclasses
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Self

from pydantic import BaseModel

from januslens.utils._json import dump_json

if TYPE_CHECKING:
    from januslens.exceptions import JanusError


def to_plain(value: object) -> Any:  # pyright: ignore[reportExplicitAny]
    """Convert command output into JSON-compatible data.

    Dataclasses and pydantic models become dicts, tuples become lists and
    paths become strings.
    """
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_plain(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, list | tuple):
        return [to_plain(v) for v in value]  # pyright: ignore[reportUnknownVariableType]
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}  # pyright: ignore[reportUnknownVariableType]
    if value is None or isinstance(value, str | int | float | bool):
        return value
    return str(value)


@dataclass(frozen=True, slots=True)
class CommandError:
    """Failure payload.

    Attributes:
        kind: Stable error kind, e.g. "ReferenceNotFound".
        message: Human-readable description.
    """

    kind: str
    message: str


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of one command: either data or an error.

    Attributes:
        ok: True when the command succeeded.
        data: Command output on success.
        error: Failure payload otherwise.
    """

    ok: bool
    data: object = None
    error: CommandError | None = None

    @classmethod
    def success(cls, data: object = None) -> Self:
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: JanusError) -> Self:
        return cls(ok=False, error=CommandError(kind=error.kind, message=str(error)))

    def to_dict(self) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
        """Return ``{"ok", "data", "error"}`` with plain values."""
        return {
            "ok": self.ok,
            "data": to_plain(self.data),
            "error": to_plain(self.error),
        }

    def to_json(self, *, pretty: bool = False) -> bytes:
        """Serialize with orjson."""
        return dump_json(self.to_dict(), pretty=pretty)
