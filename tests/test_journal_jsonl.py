from __future__ import annotations

import json
from pathlib import Path

import pytest

from ballotledger import JournalVerificationError, JSONLJournal, VotingLedger

CHAIR = "0xchair"


def _write_sample_journal(path: Path) -> JSONLJournal:
    journal = JSONLJournal(path)
    ledger = VotingLedger(CHAIR, journal=journal)
    ledger.add_proposal(CHAIR, "beach")
    ledger.register_participant(CHAIR, "0xa", 3)
    ledger.vote("0xa", 0)
    return journal


def _lines(journal: JSONLJournal) -> list[str]:
    return journal.path.read_text(encoding="utf-8").splitlines()


def test_append_and_verify_happy_path(tmp_path: Path) -> None:
    journal = _write_sample_journal(tmp_path / "journal.jsonl")
    assert journal.verify() == 4


def test_entries_are_chained_and_sequenced(tmp_path: Path) -> None:
    journal = _write_sample_journal(tmp_path / "journal.jsonl")
    entries = list(journal.entries())
    assert [e["seq"] for e in entries] == [1, 2, 3, 4]
    assert [e["operation"] for e in entries] == ["open", "add_proposal", "register_participant", "vote"]
    assert entries[0]["prev_entry_hash"] is None
    for prev, entry in zip(entries, entries[1:]):
        assert entry["prev_entry_hash"] == prev["entry_hash"]
    assert entries[2]["args"] == {"identity": "0xa", "weight": 3}


def test_missing_file_verifies_as_empty(tmp_path: Path) -> None:
    journal = JSONLJournal(tmp_path / "absent.jsonl")
    assert journal.verify() == 0
    assert list(journal.entries()) == []


def test_tamper_detection_on_modified_line(tmp_path: Path) -> None:
    journal = _write_sample_journal(tmp_path / "journal.jsonl")
    lines = _lines(journal)
    lines[1] = lines[1].replace('"beach"', '"tampered"')
    journal.path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    with pytest.raises(JournalVerificationError):
        journal.verify()


def test_deletion_breaks_chain(tmp_path: Path) -> None:
    journal = _write_sample_journal(tmp_path / "journal.jsonl")
    lines = _lines(journal)
    del lines[2]
    journal.path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    with pytest.raises(JournalVerificationError):
        journal.verify()


def test_reordering_is_rejected(tmp_path: Path) -> None:
    journal = _write_sample_journal(tmp_path / "journal.jsonl")
    lines = _lines(journal)
    lines[1], lines[2] = lines[2], lines[1]
    journal.path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    with pytest.raises(JournalVerificationError):
        journal.verify()


def test_partial_line_fails_verification(tmp_path: Path) -> None:
    journal = _write_sample_journal(tmp_path / "journal.jsonl")
    text = journal.path.read_text(encoding="utf-8")
    journal.path.write_text(text[:-5], encoding="utf-8")

    with pytest.raises(JournalVerificationError):
        journal.verify()


def test_non_canonical_line_is_rejected(tmp_path: Path) -> None:
    journal = _write_sample_journal(tmp_path / "journal.jsonl")
    lines = _lines(journal)
    lines[0] = json.dumps(json.loads(lines[0]), indent=None)
    journal.path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    with pytest.raises(JournalVerificationError, match="not canonical"):
        journal.verify()


def test_schema_version_mismatch_is_detected(tmp_path: Path) -> None:
    journal = _write_sample_journal(tmp_path / "journal.jsonl")
    lines = _lines(journal)
    lines[0] = lines[0].replace('"schema_version":"1.0"', '"schema_version":"0.9"')
    journal.path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    with pytest.raises(JournalVerificationError, match="schema_version"):
        journal.verify()


def test_append_continues_an_existing_file(tmp_path: Path) -> None:
    path = tmp_path / "journal.jsonl"
    _write_sample_journal(path)
    reopened = JSONLJournal(path)
    reopened.append(
        {
            "schema_version": "1.0",
            "journal_version": "1.0",
            "seq": 0,
            "created_at": "2026-01-25T12:00:00.000000Z",
            "operation": "add_proposal",
            "caller": CHAIR,
            "args": {"name": "city"},
            "prev_entry_hash": None,
            "entry_hash": None,
        }
    )
    assert reopened.verify() == 5
    assert list(reopened.entries())[-1]["seq"] == 5
