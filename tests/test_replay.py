from __future__ import annotations

from pathlib import Path

import pytest

from ballotledger import (
    JournalConflictError,
    JournalVerificationError,
    JSONLJournal,
    MemoryJournal,
    VotingLedger,
    open_ledger,
    replay,
)
from ballotledger.journal.jcs import canonical_text, sha256_hex

CHAIR = "0xchair"


def _scenario(ledger: VotingLedger) -> None:
    ledger.add_proposal(CHAIR, "beach")
    ledger.add_proposal(CHAIR, "mountain")
    ledger.register_participant(CHAIR, "0xa", 1)
    ledger.register_participant(CHAIR, "0xb", 2)
    ledger.register_participant(CHAIR, "0xc", 5)
    ledger.delegate("0xb", "0xa")
    ledger.delegate("0xc", "0xb")


def test_replay_reproduces_state(tmp_path: Path) -> None:
    journal = JSONLJournal(tmp_path / "journal.jsonl")
    original = VotingLedger(CHAIR, journal=journal)
    _scenario(original)

    rebuilt = replay(JSONLJournal(tmp_path / "journal.jsonl"))

    assert rebuilt.chairperson == CHAIR
    assert rebuilt.participants() == original.participants()
    assert rebuilt.proposals() == original.proposals()
    assert rebuilt.participant_count() == 3
    assert rebuilt.get_participant("0xa").weight == 8


def test_replayed_ledger_keeps_journaling(tmp_path: Path) -> None:
    path = tmp_path / "journal.jsonl"
    _scenario(VotingLedger(CHAIR, journal=JSONLJournal(path)))

    rebuilt = replay(JSONLJournal(path))
    rebuilt.vote("0xa", 1)

    final = replay(JSONLJournal(path))
    assert final.get_proposal(1).vote_count == 8
    assert final.winner_name() == "mountain"
    assert JSONLJournal(path).verify() == 9


def test_replay_preserves_strict_weight() -> None:
    journal = MemoryJournal()
    VotingLedger(CHAIR, strict_weight=True, journal=journal)
    assert replay(journal).strict_weight is True


def test_replay_of_empty_journal_fails() -> None:
    with pytest.raises(JournalVerificationError, match="empty"):
        replay(MemoryJournal())


def test_replay_rejects_entry_the_ledger_refuses(tmp_path: Path) -> None:
    path = tmp_path / "journal.jsonl"
    journal = JSONLJournal(path)
    ledger = VotingLedger(CHAIR, journal=journal)
    ledger.add_proposal(CHAIR, "beach")
    # a well-formed, correctly hashed entry that the ledger would never accept
    journal.append(
        {
            "schema_version": "1.0",
            "journal_version": "1.0",
            "seq": 0,
            "created_at": "2026-01-25T12:00:00.000000Z",
            "operation": "add_proposal",
            "caller": "0xmallory",
            "args": {"name": "rigged"},
            "prev_entry_hash": None,
            "entry_hash": None,
        }
    )
    assert journal.verify() == 3

    with pytest.raises(JournalVerificationError, match="entry 3 .*Unauthorized"):
        replay(journal)


def test_replay_without_verification_still_requires_open(tmp_path: Path) -> None:
    path = tmp_path / "journal.jsonl"
    entry = {
        "schema_version": "1.0",
        "journal_version": "1.0",
        "seq": 1,
        "created_at": "2026-01-25T12:00:00.000000Z",
        "operation": "vote",
        "caller": "0xa",
        "args": {"proposal": 0},
        "prev_entry_hash": None,
        "entry_hash": None,
    }
    entry["entry_hash"] = sha256_hex(entry)
    path.write_text(canonical_text(entry) + "\n", encoding="utf-8")

    with pytest.raises(JournalVerificationError):
        replay(JSONLJournal(path))
    with pytest.raises(JournalVerificationError, match="open entry"):
        replay(JSONLJournal(path), verify=False)


def test_open_ledger_creates_then_replays(tmp_path: Path) -> None:
    path = tmp_path / "journal.jsonl"
    first = open_ledger(JSONLJournal(path), CHAIR)
    first.add_proposal(CHAIR, "beach")

    second = open_ledger(JSONLJournal(path), CHAIR)
    assert second.proposal_count() == 1

    with pytest.raises(ValueError, match="different chairperson"):
        open_ledger(JSONLJournal(path), "0xother")


def test_stale_ledgers_cannot_both_vote(tmp_path: Path) -> None:
    path = tmp_path / "journal.jsonl"
    ledger = VotingLedger(CHAIR, journal=JSONLJournal(path))
    ledger.add_proposal(CHAIR, "beach")
    ledger.register_participant(CHAIR, "0xa", 3)

    first = replay(JSONLJournal(path))
    second = replay(JSONLJournal(path))
    first.vote("0xa", 0)

    with pytest.raises(JournalConflictError, match="another writer"):
        second.vote("0xa", 0)
    assert second.get_participant("0xa").has_voted is False
    assert second.get_proposal(0).vote_count == 0

    final = replay(JSONLJournal(path))
    assert final.get_proposal(0).vote_count == 3
    assert JSONLJournal(path).verify() == 4


def test_stale_ledger_rejects_unrelated_operation(tmp_path: Path) -> None:
    path = tmp_path / "journal.jsonl"
    VotingLedger(CHAIR, journal=JSONLJournal(path)).add_proposal(CHAIR, "beach")

    first = replay(JSONLJournal(path))
    second = replay(JSONLJournal(path))
    first.register_participant(CHAIR, "0xa", 1)

    with pytest.raises(JournalConflictError):
        second.add_proposal(CHAIR, "mountain")
    assert second.proposal_count() == 1

    fresh = replay(JSONLJournal(path))
    assert fresh.add_proposal(CHAIR, "mountain") == 1
    assert JSONLJournal(path).verify() == 4


def test_new_ledger_refuses_non_empty_journal() -> None:
    journal = MemoryJournal()
    VotingLedger(CHAIR, journal=journal).add_proposal(CHAIR, "beach")

    with pytest.raises(JournalConflictError):
        VotingLedger(CHAIR, journal=journal)
    assert len(journal) == 2
