"""Quickstart demo for ballotledger."""

from __future__ import annotations

import logging
from pathlib import Path

from ballotledger import CycleDetected, JSONLJournal, open_ledger

CHAIR = "0xchair"


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    journal = JSONLJournal(Path("ballot_journal.jsonl"))
    ledger = open_ledger(journal, CHAIR)

    if ledger.proposal_count() == 0:
        ledger.add_proposal(CHAIR, "beach")
        ledger.add_proposal(CHAIR, "mountain")
        for identity, weight in (("0xalice", 1), ("0xbob", 2), ("0xcarol", 5)):
            ledger.register_participant(CHAIR, identity, weight)

        print("bob delegates to alice, carol delegates to bob")
        ledger.delegate("0xbob", "0xalice")
        ledger.delegate("0xcarol", "0xbob")
        print(f"  alice now holds {ledger.get_participant('0xalice').weight}")

        print("\nalice tries to hand her weight back to carol")
        try:
            ledger.delegate("0xalice", "0xcarol")
        except CycleDetected as e:
            print(f"  rejected: {e}")

        ledger.vote("0xalice", 1)

    for proposal in ledger.proposals():
        print(f"{proposal.index}: {proposal.name:<10} {proposal.vote_count}")
    print(f"\nWinner: {ledger.winner_name()}")
    print("\nVerify journal:")
    print("  ballotledger verify ballot_journal.jsonl")


if __name__ == "__main__":
    main()
