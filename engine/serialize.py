"""Deterministic JSON helpers shared by the log, the wire protocol, and the API."""

from __future__ import annotations

import dataclasses
import hashlib
import json
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

LINE_DELIMITER = b"\n"


def to_serializable(value: Any) -> Any:
    """Convert engine records into JSON-serializable primitives."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Path):
        return str(value)
    if hasattr(value, "to_dict") and callable(value.to_dict):
        return to_serializable(value.to_dict())
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {field.name: to_serializable(getattr(value, field.name)) for field in dataclasses.fields(value)}
    if isinstance(value, Mapping):
        return {str(key): to_serializable(field_value) for key, field_value in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_serializable(item) for item in value]
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable.")


def json_dumps(value: Any, *, indent: int | None = None) -> str:
    """Serialize any supported value to a deterministic JSON string."""
    separators = (",", ":") if indent is None else None
    return json.dumps(
        to_serializable(value),
        sort_keys=True,
        ensure_ascii=True,
        separators=separators,
        indent=indent,
    )


def digest(value: Any) -> str:
    """Return a SHA256 digest of deterministic JSON encoding."""
    encoded = json_dumps(value).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def encode_line(value: Any) -> bytes:
    """Encode one wire message as a newline-terminated JSON line."""
    return json_dumps(value).encode("utf-8") + LINE_DELIMITER


def split_lines(buffer: bytes) -> tuple[list[bytes], bytes]:
    """Split a receive buffer into complete lines and the trailing partial line."""
    parts = buffer.split(LINE_DELIMITER)
    return [part for part in parts[:-1] if part.strip()], parts[-1]
