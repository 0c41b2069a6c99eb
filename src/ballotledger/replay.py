"""Rebuild a VotingLedger from its journal."""

from __future__ import annotations

import logging
from typing import Mapping

from .engine import VotingLedger
from .errors import BallotError
from .journal.base import Journal
from .journal.errors import JournalVerificationError
from .journal.types import JSONValue, VerifyKey
from .types import Operation

_logger = logging.getLogger(__name__)


def replay(
    journal: Journal, *, verify: bool = True, public_key: VerifyKey | None = None
) -> VotingLedger:
    """Re-apply every journaled operation to a fresh ledger.

    The returned ledger journals further operations into ``journal`` and
    refuses to append once another writer has extended it.
    Raises JournalVerificationError if the chain is broken or if an entry
    is rejected by the ledger.
    """
    if verify:
        journal.verify(public_key=public_key)

    ledger: VotingLedger | None = None
    tail_hash: JSONValue = None
    applied = 0
    for entry in journal.entries():
        seq = entry.get("seq")
        tail_hash = entry.get("entry_hash")
        operation = entry.get("operation")
        caller = entry.get("caller")
        args = entry.get("args")
        if not isinstance(args, dict):
            raise JournalVerificationError(f"args missing at seq {seq}")
        if ledger is None:
            if operation != Operation.OPEN.value:
                raise JournalVerificationError("journal does not start with an open entry")
            ledger = _open(args)
            continue
        try:
            _apply(ledger, operation, caller, args)
        except (BallotError, KeyError) as exc:
            raise JournalVerificationError(
                f"entry {seq} ({operation}) rejected on replay: {exc.__class__.__name__}: {exc}"
            ) from exc
        applied += 1

    if ledger is None:
        raise JournalVerificationError("journal is empty")
    if not isinstance(tail_hash, str):
        raise JournalVerificationError("entry_hash missing at tail")
    _logger.debug("replayed %d operations", applied)
    ledger.attach_journal(journal, tail_hash)
    return ledger


def open_ledger(
    journal: Journal,
    authority: str,
    *,
    strict_weight: bool = False,
    public_key: VerifyKey | None = None,
) -> VotingLedger:
    """Replay ``journal`` if it has entries, else open a new ledger journaling into it."""
    if next(iter(journal.entries()), None) is None:
        return VotingLedger(authority, strict_weight=strict_weight, journal=journal)
    ledger = replay(journal, public_key=public_key)
    if ledger.chairperson != authority:
        raise ValueError("journal belongs to a different chairperson")
    return ledger


def _open(args: Mapping[str, JSONValue]) -> VotingLedger:
    authority = args.get("authority")
    strict_weight = args.get("strict_weight", False)
    if not isinstance(authority, str) or not isinstance(strict_weight, bool):
        raise JournalVerificationError("open entry is malformed")
    try:
        return VotingLedger(authority, strict_weight=strict_weight)
    except ValueError as exc:
        raise JournalVerificationError(f"open entry is malformed: {exc}") from exc


def _apply(
    ledger: VotingLedger, operation: JSONValue, caller: JSONValue, args: Mapping[str, JSONValue]
) -> None:
    if not isinstance(caller, str):
        raise JournalVerificationError("caller missing")
    if operation == Operation.ADD_PROPOSAL.value:
        ledger.add_proposal(caller, args["name"])  # type: ignore[arg-type]
    elif operation == Operation.REGISTER_PARTICIPANT.value:
        ledger.register_participant(caller, args["identity"], args["weight"])  # type: ignore[arg-type]
    elif operation == Operation.DELEGATE.value:
        ledger.delegate(caller, args["target"])  # type: ignore[arg-type]
    elif operation == Operation.VOTE.value:
        ledger.vote(caller, args["proposal"])  # type: ignore[arg-type]
    else:
        raise JournalVerificationError(f"unexpected operation {operation!r}")
