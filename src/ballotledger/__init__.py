"""ballotledger public API."""

from .config import LedgerConfig
from .engine import VotingLedger
from .errors import (
    AlreadyVoted,
    BallotError,
    CycleDetected,
    InvalidProposal,
    InvalidState,
    NoVotingWeight,
    Unauthorized,
)
from .journal import (
    Journal,
    JournalConflictError,
    JournalError,
    JournalVerificationError,
    JournalWriteError,
    JSONLJournal,
    MemoryJournal,
    SQLiteJournal,
)
from .replay import open_ledger, replay
from .types import ConservationReport, Operation, Participant, Proposal

__all__ = (
    # Ledger
    "VotingLedger",
    "LedgerConfig",
    "replay",
    "open_ledger",
    # Types
    "Participant",
    "Proposal",
    "Operation",
    "ConservationReport",
    # Journal
    "Journal",
    "JSONLJournal",
    "SQLiteJournal",
    "MemoryJournal",
    "JournalError",
    "JournalWriteError",
    "JournalConflictError",
    "JournalVerificationError",
    # Errors
    "BallotError",
    "Unauthorized",
    "AlreadyVoted",
    "InvalidState",
    "CycleDetected",
    "InvalidProposal",
    "NoVotingWeight",
)
