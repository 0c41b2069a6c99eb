"""Shared journal helpers used across backends."""

from __future__ import annotations

import copy
from enum import Enum
from typing import Final

from .errors import JournalConflictError, JournalVerificationError
from .jcs import sha256_hex
from .signing import sign_entry_hash
from .types import JSONValue, SigningKey


class _AnyTail(Enum):
    ANY = "any"


ANY_TAIL: Final = _AnyTail.ANY
"""Default ``expected_prev``: chain onto whatever the tail is."""

ExpectedTail = str | None | _AnyTail


def prepare_entry(
    entry: dict[str, JSONValue],
    last_entry: dict[str, JSONValue] | None,
    signing_key: SigningKey | None = None,
    expected_prev: ExpectedTail = ANY_TAIL,
) -> dict[str, JSONValue]:
    """Return a new entry chained onto ``last_entry``.

    Assigns ``seq`` and ``prev_entry_hash`` from the current tail, computes
    ``entry_hash`` and, when a key is given, ``entry_signature``. This is the
    single source of truth for journal chain hashing.

    When ``expected_prev`` is a hash (or ``None`` for an empty journal) and the
    tail differs, raises JournalConflictError before anything is written.
    """
    tail_hash = _tail_hash(last_entry)
    if expected_prev is not ANY_TAIL and expected_prev != tail_hash:
        raise JournalConflictError("journal was appended to by another writer")
    candidate = copy.deepcopy(entry)
    candidate.pop("entry_signature", None)
    candidate["seq"] = _next_seq(last_entry)
    candidate["prev_entry_hash"] = tail_hash
    candidate["entry_hash"] = None
    entry_hash = sha256_hex(candidate)
    candidate["entry_hash"] = entry_hash
    if signing_key is not None:
        candidate["entry_signature"] = sign_entry_hash(signing_key, entry_hash)
    return candidate


def _next_seq(last_entry: dict[str, JSONValue] | None) -> int:
    if last_entry is None:
        return 1
    seq = last_entry.get("seq")
    if not isinstance(seq, int) or isinstance(seq, bool):
        raise JournalVerificationError("seq missing or invalid at tail")
    return seq + 1


def _tail_hash(last_entry: dict[str, JSONValue] | None) -> str | None:
    if last_entry is None:
        return None
    entry_hash = last_entry.get("entry_hash")
    if not isinstance(entry_hash, str):
        raise JournalVerificationError("entry_hash missing or invalid at tail")
    return entry_hash
