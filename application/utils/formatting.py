"""Render replies, errors and metadata as indented JSON."""
from __future__ import annotations

import base64
import json
from typing import Any

import grpc
from google.protobuf import json_format
from google.protobuf.message import Message

from infrastructure.schema import JSON_FORMAT_OPTIONS
from infrastructure.transport.metadata import flatten_metadata


def _default(value: Any) -> Any:
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, Message):
        return reply_to_data(value)
    if isinstance(value, grpc.StatusCode):
        return value.name
    return str(value)


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=_default)


def reply_to_data(reply: Any) -> Any:
    if isinstance(reply, Message):
        return json_format.MessageToDict(reply, **JSON_FORMAT_OPTIONS)
    return reply


def _call_attr(exc: BaseException, name: str) -> Any:
    attr = getattr(exc, name, None)
    if not callable(attr):
        return None
    try:
        return attr()
    except Exception:  # noqa: BLE001
        return None


def error_to_data(exc: BaseException) -> dict[str, Any]:
    """Flatten an error, including any transport metadata, into plain data."""
    if not isinstance(exc, grpc.RpcError):
        return {"type": type(exc).__name__, "message": str(exc)}

    code = _call_attr(exc, "code")
    data: dict[str, Any] = {
        "code": code.name if isinstance(code, grpc.StatusCode) else code,
        "details": _call_attr(exc, "details"),
    }
    metadata = flatten_metadata(_call_attr(exc, "trailing_metadata"))
    initial = flatten_metadata(_call_attr(exc, "initial_metadata"))
    data["metadata"] = {**initial, **metadata}
    return data
