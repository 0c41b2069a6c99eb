"""Journal backends and verification utilities."""

from .base import Journal
from .errors import JournalConflictError, JournalError, JournalVerificationError, JournalWriteError
from .jsonl import JSONLJournal
from .memory import MemoryJournal
from .sqlite import SQLiteJournal
from .types import SigningKey, VerifyKey

__all__ = (
    "Journal",
    "JSONLJournal",
    "SQLiteJournal",
    "MemoryJournal",
    "SigningKey",
    "VerifyKey",
    "JournalError",
    "JournalWriteError",
    "JournalConflictError",
    "JournalVerificationError",
)
