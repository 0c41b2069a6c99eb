"""In-process journal for embedding and tests."""

from __future__ import annotations

import copy
import threading
from typing import Iterator, cast

from ballotledger.types import JournalEntry

from .common import ANY_TAIL, ExpectedTail, prepare_entry
from .errors import (
    JournalConflictError,
    JournalError,
    JournalVerificationError,
    JournalWriteError,
)
from .jcs import CanonicalizationError
from .types import JSONValue, SigningKey, VerifyKey
from .validation import ParsedEntry, validate_parsed_entries


class MemoryJournal:
    """Journal that keeps prepared entries in a list."""

    def __init__(self, *, signing_key: SigningKey | None = None) -> None:
        self.signing_key = signing_key
        self._entries: list[dict[str, JSONValue]] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, entry: JournalEntry, *, expected_prev: ExpectedTail = ANY_TAIL) -> str:
        with self._lock:
            last_entry = self._entries[-1] if self._entries else None
            try:
                prepared = prepare_entry(
                    cast(dict[str, JSONValue], entry), last_entry, self.signing_key, expected_prev
                )
            except JournalConflictError:
                raise
            except (CanonicalizationError, JournalError) as exc:
                raise JournalWriteError(str(exc)) from exc
            self._entries.append(prepared)
            return cast(str, prepared["entry_hash"])

    def verify(self, *, public_key: VerifyKey | None = None) -> int:
        with self._lock:
            snapshot = list(self._entries)
        try:
            return validate_parsed_entries(
                (
                    ParsedEntry(entry=entry, raw=None, index=index)
                    for index, entry in enumerate(snapshot, start=1)
                ),
                public_key=public_key,
            )
        except CanonicalizationError as exc:
            raise JournalVerificationError(str(exc)) from exc

    def entries(self) -> Iterator[dict[str, JSONValue]]:
        with self._lock:
            snapshot = list(self._entries)
        for entry in snapshot:
            yield copy.deepcopy(entry)
