"""Shared journal verification logic for every backend."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Iterable

from ballotledger.types import Operation

from .errors import JournalVerificationError
from .jcs import canonical_text, sha256_hex
from .signing import verify_entry_hash
from .types import JSONValue, VerifyKey
from .versioning import JOURNAL_VERSION, SCHEMA_VERSION

_OPERATIONS = frozenset(op.value for op in Operation)


@dataclass(frozen=True, slots=True)
class ParsedEntry:
    entry: dict[str, JSONValue]
    raw: str | None
    index: int
    row_entry_hash: str | None = None
    row_prev_hash: str | None = None


def validate_parsed_entries(
    entries: Iterable[ParsedEntry], *, public_key: VerifyKey | None = None
) -> int:
    """Validate a stream of parsed journal entries and return how many were seen."""
    expected_prev: str | None = None
    count = 0

    for parsed in entries:
        idx = parsed.index
        entry = parsed.entry
        if not isinstance(entry, dict):
            raise JournalVerificationError(f"entry {idx} is not an object")

        if parsed.raw is not None and canonical_text(entry) != parsed.raw:
            raise JournalVerificationError(f"entry {idx} is not canonical")

        if entry.get("schema_version") != SCHEMA_VERSION:
            raise JournalVerificationError(f"schema_version mismatch at entry {idx}")
        if entry.get("journal_version") != JOURNAL_VERSION:
            raise JournalVerificationError(f"journal_version mismatch at entry {idx}")

        seq = entry.get("seq")
        if not isinstance(seq, int) or isinstance(seq, bool) or seq != count + 1:
            raise JournalVerificationError(f"seq out of order at entry {idx}")

        operation = entry.get("operation")
        if operation not in _OPERATIONS:
            raise JournalVerificationError(f"operation invalid at entry {idx}")
        if (operation == Operation.OPEN.value) != (seq == 1):
            raise JournalVerificationError(f"open must be the first and only genesis entry (entry {idx})")

        if not isinstance(entry.get("caller"), str):
            raise JournalVerificationError(f"caller missing at entry {idx}")
        if not isinstance(entry.get("args"), dict):
            raise JournalVerificationError(f"args missing at entry {idx}")

        prev_hash = entry.get("prev_entry_hash")
        if prev_hash is not None and not isinstance(prev_hash, str):
            raise JournalVerificationError(f"prev_entry_hash type invalid at entry {idx}")
        if prev_hash != expected_prev:
            raise JournalVerificationError(f"prev_entry_hash mismatch at entry {idx}")

        unsigned = copy.deepcopy(entry)
        unsigned["entry_hash"] = None
        unsigned.pop("entry_signature", None)
        calculated_hash = sha256_hex(unsigned)

        actual_hash = entry.get("entry_hash")
        if not isinstance(actual_hash, str):
            raise JournalVerificationError(f"entry_hash missing at entry {idx}")
        if calculated_hash != actual_hash:
            raise JournalVerificationError(f"entry_hash mismatch at entry {idx}")

        if parsed.row_entry_hash is not None and parsed.row_entry_hash != actual_hash:
            raise JournalVerificationError(f"entry_hash column mismatch at entry {idx}")
        if parsed.row_prev_hash is not None and parsed.row_prev_hash != prev_hash:
            raise JournalVerificationError(f"prev_entry_hash column mismatch at entry {idx}")

        if public_key is not None:
            signature = entry.get("entry_signature")
            if not isinstance(signature, str):
                raise JournalVerificationError(f"entry_signature missing at entry {idx}")
            if not verify_entry_hash(public_key, actual_hash, signature):
                raise JournalVerificationError(f"entry_signature invalid at entry {idx}")

        expected_prev = actual_hash
        count += 1

    return count
