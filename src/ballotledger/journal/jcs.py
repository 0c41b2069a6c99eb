"""Strict canonical JSON for journal hashing.

Goes beyond RFC 8785 in a few places:
- NFC normalization for object keys and string values
- Duplicate key rejection after NFC normalization
- Fixed-point decimal encoding (no exponent)
- Rejection of binary floats (weights and counts are integers)
"""

from __future__ import annotations

import hashlib
import json
import unicodedata
from decimal import Decimal
from enum import Enum
from typing import Any

_JSON_SEPARATORS = (",", ":")


class CanonicalizationError(ValueError):
    """Raised when a value has no canonical JSON form."""


def canonical_bytes(value: Any) -> bytes:
    """Return canonical UTF-8 bytes for the given JSON-serializable value."""
    return _canonical_json(value).encode("utf-8")


def canonical_text(value: Any) -> str:
    return _canonical_json(value)


def _canonical_json(value: Any) -> str:
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"

    # str-valued enums (Operation) serialize as their value
    if isinstance(value, Enum):
        value = value.value

    # bool is a subclass of int, so it is handled above
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        raise CanonicalizationError("floats are rejected; use int or Decimal")
    if isinstance(value, Decimal):
        return _canonical_decimal(value)

    if isinstance(value, str):
        normalized = unicodedata.normalize("NFC", value)
        return json.dumps(normalized, ensure_ascii=False, separators=_JSON_SEPARATORS)

    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonical_json(v) for v in value) + "]"

    if isinstance(value, dict):
        items: dict[str, Any] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise CanonicalizationError("object keys must be strings")
            normalized_key = unicodedata.normalize("NFC", key)
            if normalized_key in items:
                raise CanonicalizationError(
                    f"duplicate key after NFC normalization: {normalized_key!r}"
                )
            items[normalized_key] = item
        parts = [
            json.dumps(key, ensure_ascii=False, separators=_JSON_SEPARATORS)
            + ":"
            + _canonical_json(items[key])
            for key in sorted(items)
        ]
        return "{" + ",".join(parts) + "}"

    raise CanonicalizationError(f"type {type(value).__name__} is not JSON-serializable")


def _canonical_decimal(value: Decimal) -> str:
    if not value.is_finite():
        raise CanonicalizationError("NaN/Infinity are rejected")
    if value == 0:
        return "0"
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def sha256_hex(value: Any) -> str:
    """Return the SHA-256 hex digest of the canonical bytes."""
    return hashlib.sha256(canonical_bytes(value)).hexdigest()
