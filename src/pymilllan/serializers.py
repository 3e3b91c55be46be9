"""Serialization and deserialization of device request and response bodies.

This module provides stateless functions for converting between raw JSON
bodies and the typed models in :mod:`pymilllan.models`.

Design Philosophy:
    - Stateless functions (no classes, no state), safe to call concurrently
    - Schema-directed: the dataclass field metadata drives decoding
    - Tolerant: unknown keys are ignored, missing keys decode to None and
      unknown enumeration values decode to ``UNRECOGNIZED``
    - Strict about the envelope: a body without ``status`` is an error
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from dataclasses import fields, is_dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from pymilllan.const import CONTENT_TYPE_JSON
from pymilllan.exceptions import DecodeError, DecodeErrorKind
from pymilllan.models import WIRE_KIND, WIRE_NAME, Response


if TYPE_CHECKING:
    from collections.abc import Callable


__all__ = [
    "decode",
    "encode",
    "to_wire",
]

ResponseT = TypeVar("ResponseT", bound=Response)


def to_wire(value: Any) -> dict[str, Any]:
    """Convert a request value to a JSON-compatible mapping.

    Dataclass requests are mapped through their wire field names, fields that
    are None are left out. Plain mappings are copied as they are.

    Args:
        value: Request dataclass instance or mapping.

    Returns:
        Dictionary ready for JSON serialization.

    Raises:
        TypeError: If the value is neither a dataclass instance nor a mapping.
    """
    if is_dataclass(value) and not isinstance(value, type):
        return {
            f.metadata.get(WIRE_NAME, f.name): _wire_value(getattr(value, f.name))
            for f in fields(value)
            if getattr(value, f.name) is not None
        }
    if isinstance(value, Mapping):
        return {str(key): _wire_value(item) for key, item in value.items()}
    msg = f"Can't encode {type(value).__name__} as a request body"
    raise TypeError(msg)


def encode(value: Any) -> tuple[bytes, str]:
    """Encode a request value as a JSON body.

    Args:
        value: Request dataclass instance or mapping.

    Returns:
        Tuple of (body, content_type).

    Example:
        >>> encode({"value": True})
        (b'{"value":true}', 'application/json')
    """
    body = json.dumps(to_wire(value), separators=(",", ":"), ensure_ascii=False)
    return body.encode("utf-8"), CONTENT_TYPE_JSON


def decode(body: bytes | str | None, shape: type[ResponseT]) -> ResponseT:
    """Decode a JSON response body into a typed response.

    Args:
        body: Raw response body.
        shape: Response dataclass to decode into.

    Returns:
        Instance of ``shape``.

    Raises:
        DecodeError: With kind ``MISSING_ENVELOPE`` if the body is empty or has
            no ``status`` field, or kind ``MALFORMED`` if it isn't a JSON object
            or a field has the wrong type.

    Example:
        >>> response = decode(b'{"status": "ok", "value": 21.5}', SetTemperatureResponse)
        >>> response.value
        21.5
    """
    if body is None or not body.strip():
        msg = "Empty response body"
        raise DecodeError(msg, DecodeErrorKind.MISSING_ENVELOPE)

    try:
        data = json.loads(body)
    except ValueError as err:
        raise DecodeError(str(err), DecodeErrorKind.MALFORMED) from err

    if not isinstance(data, dict):
        msg = f"Expected a JSON object, got {type(data).__name__}"
        raise DecodeError(msg, DecodeErrorKind.MALFORMED)

    if data.get("status") is None:
        msg = "Response has no status"
        raise DecodeError(msg, DecodeErrorKind.MISSING_ENVELOPE)

    values: dict[str, Any] = {}
    for f in fields(shape):
        key = f.metadata.get(WIRE_NAME, f.name)
        values[f.name] = _decode_value(key, data.get(key), f.metadata.get(WIRE_KIND))
    return shape(**values)


# -------------------------------------------------------------------------
# Value Converters
# -------------------------------------------------------------------------


def _wire_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


def _malformed(key: str, expected: str, value: Any) -> DecodeError:
    msg = f"Expected {expected} for '{key}', got {value!r}"
    return DecodeError(msg, DecodeErrorKind.MALFORMED)


def _decode_float(key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise _malformed(key, "a number", value)
    try:
        number = float(value)
    except OverflowError:
        raise _malformed(key, "a finite number", value) from None
    if not math.isfinite(number):
        raise _malformed(key, "a finite number", value)
    return number


def _decode_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise _malformed(key, "an integer", value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if not isinstance(value, int):
        raise _malformed(key, "an integer", value)
    return value


def _decode_bool(key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise _malformed(key, "a boolean", value)
    return value


def _decode_str(key: str, value: Any) -> str:
    if not isinstance(value, str):
        raise _malformed(key, "a string", value)
    return value


_DECODERS: dict[Any, Callable[[str, Any], Any]] = {
    float: _decode_float,
    int: _decode_int,
    bool: _decode_bool,
    str: _decode_str,
}


def _decode_value(key: str, value: Any, kind: Any) -> Any:
    if value is None:
        return None
    if isinstance(kind, type) and issubclass(kind, Enum):
        # Non-string values can't match any member either
        return kind(value) if isinstance(value, str) else kind("")
    decoder = _DECODERS.get(kind)
    if decoder is None:
        return value
    return decoder(key, value)
