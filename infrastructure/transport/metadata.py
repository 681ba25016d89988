"""Conversions between plain mappings and gRPC metadata."""
from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Union

Metadata = tuple[tuple[str, Union[str, bytes]], ...]

BINARY_SUFFIX = "-bin"


def _coerce_value(key: str, value: Any) -> Union[str, bytes]:
    if isinstance(value, bytes):
        if key.endswith(BINARY_SUFFIX):
            return value
        return value.decode("utf-8", errors="replace")
    if isinstance(value, bool):
        return "true" if value else "false"
    return value if isinstance(value, str) else str(value)


def create_metadata(metadata: Optional[Union[Mapping[str, Any], Iterable[tuple[str, Any]]]]) -> Metadata:
    """Turn a mapping (or a sequence of pairs) into gRPC metadata.

    Keys are lower-cased as HTTP/2 requires; every value is coerced to a
    string except ``bytes`` under ``-bin`` keys. A mapping whose value is a
    list or tuple yields one entry per item.
    """
    if metadata is None:
        return ()
    pairs = metadata.items() if isinstance(metadata, Mapping) else metadata

    result: list[tuple[str, Union[str, bytes]]] = []
    for key, value in pairs:
        key = str(key).lower()
        values = value if isinstance(value, (list, tuple)) else (value,)
        for item in values:
            result.append((key, _coerce_value(key, item)))
    return tuple(result)


def flatten_metadata(metadata: Optional[Iterable[Any]]) -> dict[str, Any]:
    """Plain ``{key: value}`` view of gRPC metadata; repeated keys keep the last value."""
    if not metadata:
        return {}
    flat: dict[str, Any] = {}
    for item in metadata:
        key, value = item[0], item[1]
        flat[key] = value
    return flat
