# src/exctrace/core/canonical.py
"""
Canonical JSON serialization for archived documents.

Two-phase approach:
1. Normalize: Convert enums, bytes and tuples to JSON-safe primitives (our code)
2. Serialize: Produce deterministic JSON per RFC 8785/JCS (rfc8785 package)

The same bytes are used to measure document size for the overflow policy
and to write blobs, so a document's size and its stored form never disagree.

IMPORTANT: RFC 8785 only admits integers within +/-(2**53 - 1). Quantities
(wei values, gas) must be hex-encoded by the codec before reaching here;
an out-of-range integer is rejected, not rounded.
"""

from __future__ import annotations

import base64
import json
from enum import Enum
from typing import Any

import rfc8785

MAX_SAFE_INT = 2**53 - 1


def _normalize_value(obj: Any) -> Any:
    """Convert a single value to a JSON-safe primitive.

    Raises:
        ValueError: If an integer is outside the RFC 8785 safe range
        TypeError: If value has no JSON representation
    """
    # IntEnum/StrEnum members are persisted by value
    if isinstance(obj, Enum):
        return _normalize_value(obj.value)

    if obj is None or isinstance(obj, str | bool):
        return obj

    if isinstance(obj, int):
        if abs(obj) > MAX_SAFE_INT:
            raise ValueError(f"Cannot canonicalize integer outside +/-(2**53 - 1): {obj}. Encode quantities as hex strings.")
        return obj

    if isinstance(obj, float):
        raise TypeError(f"Floats are not used in archived documents, got {obj!r}")

    if isinstance(obj, bytes):
        return {"__bytes__": base64.b64encode(obj).decode("ascii")}

    raise TypeError(f"Cannot canonicalize {type(obj).__name__}: {obj!r}")


def _normalize_for_canonical(data: Any) -> Any:
    """Recursively normalize a data structure for canonical JSON."""
    if isinstance(data, dict):
        return {k: _normalize_for_canonical(v) for k, v in data.items()}
    if isinstance(data, list | tuple):
        return [_normalize_for_canonical(v) for v in data]
    return _normalize_value(data)


def canonical_json(obj: Any) -> str:
    """Produce canonical JSON (no whitespace, sorted keys).

    Raises:
        ValueError: If data contains out-of-range integers
        TypeError: If data contains types that cannot be serialized
    """
    normalized = _normalize_for_canonical(obj)
    result: bytes = rfc8785.dumps(normalized)
    return result.decode("utf-8")


def canonical_bytes(obj: Any) -> bytes:
    """Canonical JSON encoded as UTF-8, the form written to storage."""
    return canonical_json(obj).encode("utf-8")


def document_size(obj: Any) -> int:
    """Size in bytes of obj's stored form."""
    return len(canonical_bytes(obj))


def load_json(data: bytes | str) -> Any:
    """Parse a stored document back into plain Python values."""
    return json.loads(data)
