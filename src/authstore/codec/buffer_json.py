"""
JSON codec with lossless byte buffers.

Byte payloads (``bytes``, ``bytearray``, ``memoryview``) are written as a
tagged object::

    {"data": "<base64>", "type": "Buffer"}

and turned back into ``bytes`` on decode. The list form produced by a
JavaScript ``Buffer.toJSON()`` (``"data": [1, 2, 3]``) is accepted on decode
as well, so stores written by other clients can be read.

A plain dict consisting of exactly ``type == "Buffer"`` and ``data`` is
indistinguishable from a tag and always decodes as bytes.
"""

from __future__ import annotations

import base64
import binascii
from typing import Any

import orjson

from authstore.exceptions import DecodeError, EncodeError

BUFFER_TYPE = "Buffer"
_TAG_KEYS = frozenset({"type", "data"})


def _encode_default(obj: Any) -> Any:
    """orjson fallback for types it does not serialize natively."""
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return {"type": BUFFER_TYPE, "data": base64.b64encode(bytes(obj)).decode("ascii")}
    raise TypeError(f"Type is not JSON serializable: {type(obj).__name__}")


def _is_buffer_tag(obj: dict[str, Any]) -> bool:
    return obj.get("type") == BUFFER_TYPE and obj.keys() == _TAG_KEYS


def _buffer_from_tag(data: Any, path: str) -> bytes:
    if isinstance(data, str):
        try:
            return base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecodeError(
                "Malformed Buffer tag", {"reason": "invalid base64", "path": path}
            ) from e

    if isinstance(data, list):
        if all(type(b) is int and 0 <= b <= 255 for b in data):
            return bytes(data)
        raise DecodeError(
            "Malformed Buffer tag", {"reason": "data is not a list of byte values", "path": path}
        )

    raise DecodeError(
        "Malformed Buffer tag",
        {"reason": f"unsupported data type {type(data).__name__}", "path": path},
    )


def _revive(obj: Any, path: str) -> Any:
    """Walk a parsed JSON tree replacing Buffer tags with bytes."""
    if isinstance(obj, dict):
        if _is_buffer_tag(obj):
            return _buffer_from_tag(obj["data"], path)
        return {k: _revive(v, f"{path}.{k}") for k, v in obj.items()}
    if isinstance(obj, list):
        return [_revive(v, f"{path}[{i}]") for i, v in enumerate(obj)]
    return obj


class BufferJSONCodec:
    """Deterministic JSON codec that round-trips byte buffers.

    Keys are sorted on encode so equal values always produce equal text.
    Tuples are encoded as JSON arrays and come back as lists.
    """

    def encode(self, value: Any) -> str:
        """Serialize a value to JSON text.

        Raises:
            EncodeError: If the value contains unsupported types or
                non-string mapping keys.
        """
        try:
            raw = orjson.dumps(value, default=_encode_default, option=orjson.OPT_SORT_KEYS)
        except orjson.JSONEncodeError as e:
            raise EncodeError("Value cannot be serialized", {"reason": str(e)}) from e
        return raw.decode("utf-8")

    def decode(self, text: str) -> Any:
        """Parse JSON text, reviving Buffer tags into bytes.

        Raises:
            DecodeError: If the text is not valid JSON or contains a
                malformed Buffer tag.
        """
        if not isinstance(text, (str, bytes)):
            raise DecodeError(
                "Serialized value must be text", {"reason": f"got {type(text).__name__}"}
            )
        try:
            parsed = orjson.loads(text)
        except orjson.JSONDecodeError as e:
            raise DecodeError("Invalid JSON", {"reason": str(e)}) from e
        return _revive(parsed, "$")
