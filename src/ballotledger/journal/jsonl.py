"""Append-only JSONL journal with canonical hashing and locking."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Iterator, TextIO, cast

from ballotledger.types import JournalEntry

from .common import ANY_TAIL, ExpectedTail, prepare_entry
from .errors import (
    JournalConflictError,
    JournalError,
    JournalVerificationError,
    JournalWriteError,
    sanitize_exception,
)
from .filelock import locked_file
from .jcs import CanonicalizationError, canonical_text
from .types import JSONValue, SigningKey, VerifyKey
from .validation import ParsedEntry, validate_parsed_entries

TAIL_READ_CHUNK_SIZE = 4096


@dataclass(frozen=True)
class JSONLJournal:
    path: Path
    signing_key: SigningKey | None = None

    def append(self, entry: JournalEntry, *, expected_prev: ExpectedTail = ANY_TAIL) -> str:
        """Append an entry, assigning seq and chain hashes under the file lock."""
        try:
            with locked_file(self.path) as handle:
                last_entry = _read_last_entry(handle)
                prepared = prepare_entry(
                    cast(dict[str, JSONValue], entry), last_entry, self.signing_key, expected_prev
                )
                entry_hash = prepared["entry_hash"]
                if not isinstance(entry_hash, str):
                    raise JournalWriteError("entry_hash missing after preparation")
                handle.seek(0, os.SEEK_END)
                handle.write(canonical_text(prepared) + "\n")
                handle.flush()
                os.fsync(handle.fileno())
                return entry_hash
        except JournalConflictError:
            raise
        except (OSError, JournalError, CanonicalizationError) as exc:
            raise JournalWriteError(sanitize_exception(exc)) from exc

    def verify(self, *, public_key: VerifyKey | None = None) -> int:
        """Verify the entire journal, failing on any tamper, gap, or reordering."""
        try:
            if not self.path.exists():
                return 0
            with locked_file(self.path) as handle:
                handle.seek(0)
                return validate_parsed_entries(_iter_parsed(handle), public_key=public_key)
        except (OSError, JournalError, CanonicalizationError, json.JSONDecodeError) as exc:
            raise JournalVerificationError(sanitize_exception(exc)) from exc

    def entries(self) -> Iterator[dict[str, JSONValue]]:
        if not self.path.exists():
            return
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                for parsed in _iter_parsed(handle):
                    yield parsed.entry
        except (OSError, json.JSONDecodeError) as exc:
            raise JournalVerificationError(sanitize_exception(exc)) from exc


def _iter_parsed(handle: TextIO) -> Iterator[ParsedEntry]:
    line_number = 0
    for raw_line in handle:
        line_number += 1
        line = raw_line.rstrip("\n")
        if not line:
            raise JournalVerificationError(f"empty line at {line_number}")
        entry = json.loads(line, parse_float=Decimal, parse_int=int)
        if not isinstance(entry, dict):
            raise JournalVerificationError(f"line {line_number} is not an object")
        yield ParsedEntry(entry=cast(dict[str, JSONValue], entry), raw=line, index=line_number)


def _read_last_entry(handle: TextIO) -> dict[str, JSONValue] | None:
    """Return the last non-empty line as an object without scanning the whole file."""
    fb = handle.buffer  # type: ignore[attr-defined]
    fb.seek(0, os.SEEK_END)
    size = fb.tell()
    if size == 0:
        return None

    data = b""
    pos = size
    while pos > 0:
        read_size = min(TAIL_READ_CHUNK_SIZE, pos)
        pos -= read_size
        fb.seek(pos)
        data = fb.read(read_size) + data
        if b"\n" in data[:-1] or pos == 0:
            break

    last_line = data.rstrip(b"\n").split(b"\n")[-1].strip()
    if not last_line:
        return None
    try:
        last_entry = json.loads(last_line.decode("utf-8"), parse_float=Decimal, parse_int=int)
    except json.JSONDecodeError as exc:
        raise JournalVerificationError("invalid JSON at tail") from exc
    if not isinstance(last_entry, dict):
        raise JournalVerificationError("journal line is not an object")
    return cast(dict[str, JSONValue], last_entry)
