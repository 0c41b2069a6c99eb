from __future__ import annotations

from typing import Any

import pytest

from ballotledger import (
    InvalidProposal,
    JournalVerificationError,
    JournalWriteError,
    MemoryJournal,
    Unauthorized,
    VotingLedger,
)
from ballotledger.types import JournalEntry


class _FailingJournal(MemoryJournal):
    fail = False

    def append(self, entry: JournalEntry, **kwargs: Any) -> str:
        if self.fail:
            raise JournalWriteError("disk full")
        return super().append(entry, **kwargs)


def test_memory_journal_records_every_accepted_operation(chair: str, fixed_now) -> None:
    journal = MemoryJournal()
    ledger = VotingLedger(chair, journal=journal, now=fixed_now)
    ledger.add_proposal(chair, "beach")
    ledger.register_participant(chair, "0xa", 1)

    entries = list(journal.entries())
    assert len(journal) == 3
    assert entries[0]["operation"] == "open"
    assert entries[0]["args"] == {"authority": chair, "strict_weight": False}
    assert entries[1]["created_at"] == "2026-01-25T12:00:00.000000Z"
    assert journal.verify() == 3


def test_rejected_operations_are_not_journaled(chair: str) -> None:
    journal = MemoryJournal()
    ledger = VotingLedger(chair, journal=journal)
    with pytest.raises(Unauthorized):
        ledger.add_proposal("0xmallory", "rigged")
    with pytest.raises(InvalidProposal):
        ledger.vote("0xa", 0)
    assert len(journal) == 1


def test_journal_write_failure_leaves_ledger_unchanged(chair: str) -> None:
    journal = _FailingJournal()
    ledger = VotingLedger(chair, journal=journal)
    ledger.add_proposal(chair, "beach")
    ledger.register_participant(chair, "0xa", 3)
    journal.fail = True

    with pytest.raises(JournalWriteError, match="disk full"):
        ledger.vote("0xa", 0)

    assert ledger.get_participant("0xa").has_voted is False
    assert ledger.get_participant("0xa").weight == 3
    assert ledger.get_proposal(0).vote_count == 0


def test_tampered_memory_entry_fails_verification(chair: str) -> None:
    journal = MemoryJournal()
    ledger = VotingLedger(chair, journal=journal)
    ledger.add_proposal(chair, "beach")
    journal._entries[1]["args"] = {"name": "mountain"}

    with pytest.raises(JournalVerificationError, match="entry_hash mismatch"):
        journal.verify()
