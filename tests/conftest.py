from __future__ import annotations

from datetime import datetime, timezone

import pytest

from ballotledger import VotingLedger

CHAIR = "0xchair"


@pytest.fixture
def chair() -> str:
    """Identity that opens the ballot and acts as chairperson."""
    return CHAIR


@pytest.fixture
def accounts(chair: str) -> list[str]:
    """Ten participant identities; index 0 is the chairperson."""
    return [chair] + [f"0xvoter{i}" for i in range(1, 10)]


@pytest.fixture
def fixed_now():
    moment = datetime(2026, 1, 25, 12, 0, 0, tzinfo=timezone.utc)
    return lambda: moment


@pytest.fixture
def ledger(chair: str) -> VotingLedger:
    return VotingLedger(chair)


@pytest.fixture
def ballot(ledger: VotingLedger, chair: str) -> VotingLedger:
    """Ledger with the two proposals used throughout the scenarios."""
    ledger.add_proposal(chair, "beach")
    ledger.add_proposal(chair, "mountain")
    return ledger
