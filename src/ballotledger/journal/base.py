from __future__ import annotations

from typing import Iterator, Protocol

from ballotledger.types import JournalEntry

from .common import ANY_TAIL, ExpectedTail
from .types import JSONValue, VerifyKey


class Journal(Protocol):
    """Minimal journal interface used by VotingLedger and replay.

    Implementations should provide:
    - append-only writes that assign ``seq`` and chain hashes atomically
    - full-journal verification
    - ordered iteration over stored entries
    """

    def append(self, entry: JournalEntry, *, expected_prev: ExpectedTail = ANY_TAIL) -> str:
        """Append a single entry and return its chain hash.

        Raises JournalConflictError if ``expected_prev`` is given and is not
        the current tail hash.
        """
        ...

    def verify(self, *, public_key: VerifyKey | None = None) -> int:
        """Verify journal integrity (and optionally signatures); return the entry count."""
        ...

    def entries(self) -> Iterator[dict[str, JSONValue]]:
        """Yield stored entries in append order."""
        ...
