"""Winner selection and weight accounting over ledger snapshots."""

from __future__ import annotations

from typing import Iterable, Sequence

from .types import ConservationReport, Participant, Proposal


def winning_index(proposals: Sequence[Proposal]) -> int | None:
    """Return the index with the strictly greatest vote count.

    Scans in order so the lowest index wins a tie. Returns ``None`` when
    there are no proposals.
    """
    if not proposals:
        return None
    winner = 0
    best = proposals[0].vote_count
    for position, proposal in enumerate(proposals):
        if proposal.vote_count > best:
            best = proposal.vote_count
            winner = position
    return winner


def conservation(
    participants: Iterable[Participant], proposals: Iterable[Proposal], granted: int
) -> ConservationReport:
    unspent = sum(p.weight for p in participants if not p.has_voted)
    cast = sum(p.vote_count for p in proposals)
    return ConservationReport(unspent=unspent, cast=cast, granted=granted)
