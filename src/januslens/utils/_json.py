"""JSON helpers backed by orjson."""

from typing import TYPE_CHECKING

import orjson

from januslens.exceptions import SerializationError

if TYPE_CHECKING:
    from pathlib import Path


def dump_json(value: object, *, pretty: bool = False) -> bytes:
    """Serialize a value to JSON bytes.

    Dataclasses, enums and datetimes are handled natively by orjson.

    Args:
        value: The value to serialize.
        pretty: Indent with two spaces.

    Returns:
        JSON document as bytes.

    Raises:
        SerializationError: If the value cannot be serialized.
    """
    option = orjson.OPT_INDENT_2 if pretty else 0
    try:
        return orjson.dumps(value, option=option)
    except orjson.JSONEncodeError as e:
        msg = f"Failed to serialize value: {e}"
        raise SerializationError(msg) from e


def write_json_atomic(path: Path, value: object, *, pretty: bool = True) -> None:
    """Write a JSON document by replacing the file in one step.

    Args:
        path: Destination file.
        value: The value to serialize.
        pretty: Indent with two spaces.

    Raises:
        SerializationError: If the value cannot be serialized.
        OSError: If the file cannot be written.
    """
    data = dump_json(value, pretty=pretty)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp")
    _ = tmp_path.write_bytes(data)
    _ = tmp_path.replace(path)
