from __future__ import annotations

import pytest
from pydantic import ValidationError

from ballotledger.types import ConservationReport, Operation, Participant, Proposal


def test_participant_defaults() -> None:
    participant = Participant(identity="0xa")
    assert participant.weight == 0
    assert participant.has_voted is False
    assert participant.delegated is False
    assert participant.voted_directly is False


def test_participant_rejects_blank_identity() -> None:
    with pytest.raises(ValidationError):
        Participant(identity=" ")


def test_participant_rejects_negative_weight() -> None:
    with pytest.raises(ValidationError):
        Participant(identity="0xa", weight=-1)


def test_voted_participant_needs_exactly_one_outcome() -> None:
    with pytest.raises(ValidationError):
        Participant(identity="0xa", has_voted=True)
    with pytest.raises(ValidationError):
        Participant(identity="0xa", has_voted=True, voted_proposal=0, delegate="0xb")
    assert Participant(identity="0xa", has_voted=True, delegate="0xb").delegated is True
    assert Participant(identity="0xa", has_voted=True, voted_proposal=1).voted_directly is True


def test_unvoted_participant_cannot_carry_outcome() -> None:
    with pytest.raises(ValidationError):
        Participant(identity="0xa", delegate="0xb")


def test_snapshots_are_frozen() -> None:
    proposal = Proposal(index=0, name="beach")
    with pytest.raises(ValidationError):
        proposal.vote_count = 3  # type: ignore[misc]


def test_conservation_report_balanced_flag() -> None:
    assert ConservationReport(unspent=2, cast=3, granted=5).balanced is True
    assert ConservationReport(unspent=2, cast=2, granted=5).balanced is False


def test_operation_values_match_journal_names() -> None:
    assert [op.value for op in Operation] == [
        "open",
        "add_proposal",
        "register_participant",
        "delegate",
        "vote",
    ]
