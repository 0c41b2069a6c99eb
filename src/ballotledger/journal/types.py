from __future__ import annotations

from decimal import Decimal
from typing import Any, TypeAlias

JSONPrimitive: TypeAlias = str | int | bool | None | Decimal
JSONValue: TypeAlias = JSONPrimitive | dict[str, "JSONValue"] | list["JSONValue"]

SigningKey: TypeAlias = Any  # cryptography is an optional dependency
VerifyKey: TypeAlias = Any  # cryptography is an optional dependency
