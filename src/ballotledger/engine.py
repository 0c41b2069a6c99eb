"""Delegation-voting ledger for ballotledger."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Concatenate, ParamSpec, TypeVar

from . import tally
from .errors import (
    AlreadyVoted,
    BallotError,
    CycleDetected,
    InvalidProposal,
    InvalidState,
    NoVotingWeight,
    Unauthorized,
)
from .journal.base import Journal
from .journal.errors import JournalError
from .journal.versioning import JOURNAL_VERSION, SCHEMA_VERSION
from .types import ConservationReport, JournalEntry, Operation, Participant, Proposal

P = ParamSpec("P")
R = TypeVar("R")

_logger = logging.getLogger(__name__)


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _is_identity(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _require_identity(value: object, role: str) -> str:
    if not _is_identity(value):
        raise InvalidState(f"{role} must be a non-empty string identity")
    return value  # type: ignore[return-value]


@dataclass
class _VoterState:
    weight: int = 0
    has_voted: bool = False
    voted_proposal: int | None = None
    delegate: str | None = None

    @property
    def delegated(self) -> bool:
        return self.has_voted and self.delegate is not None


@dataclass
class _ProposalState:
    name: str
    vote_count: int = 0


def _serialized(
    operation: Operation,
) -> Callable[[Callable[Concatenate["VotingLedger", P], R]], Callable[Concatenate["VotingLedger", P], R]]:
    """Run a mutating operation under the ledger lock and log its outcome."""

    def decorator(
        method: Callable[Concatenate["VotingLedger", P], R],
    ) -> Callable[Concatenate["VotingLedger", P], R]:
        @wraps(method)
        def wrapper(self: "VotingLedger", *args: P.args, **kwargs: P.kwargs) -> R:
            with self._lock:
                try:
                    result = method(self, *args, **kwargs)
                except BallotError as exc:
                    _logger.info(
                        "rejected %s: %s (%s)", operation.value, exc.__class__.__name__, exc
                    )
                    raise
                except JournalError as exc:
                    _logger.warning("journal write failed for %s: %s", operation.value, exc)
                    raise
            _logger.debug("applied %s args=%r", operation.value, args)
            return result

        return wrapper

    return decorator


class VotingLedger:
    """Single-authority weighted voting ledger with transitive delegation.

    Every mutating operation validates against current state first, then
    journals (when a journal is attached), then applies. A rejected call
    raises a :class:`~ballotledger.errors.BallotError` and changes nothing.
    """

    def __init__(
        self,
        authority: str,
        *,
        strict_weight: bool = False,
        journal: Journal | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        if not _is_identity(authority):
            raise ValueError("authority must be a non-empty string")
        self._authority = authority
        self._strict_weight = strict_weight
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._lock = threading.RLock()
        self._proposals: list[_ProposalState] = []
        self._voters: dict[str, _VoterState] = {}
        self._registered: set[str] = set()
        self._total_granted = 0
        self._journal: Journal | None = None
        self._journal_tail: str | None = None
        if journal is not None:
            self._journal = journal
            self._record(
                Operation.OPEN,
                authority,
                {"authority": authority, "strict_weight": strict_weight},
            )

    # ----- configuration -----

    @property
    def chairperson(self) -> str:
        return self._authority

    @property
    def strict_weight(self) -> bool:
        return self._strict_weight

    @property
    def journal(self) -> Journal | None:
        return self._journal

    def attach_journal(self, journal: Journal, tail_hash: str) -> None:
        """Journal subsequent operations into an already-opened journal.

        Used after replay; no ``open`` entry is written. ``tail_hash`` is the
        ``entry_hash`` of the last entry this ledger reflects. Appends fail
        with JournalConflictError once another writer has moved the tail.
        """
        with self._lock:
            if self._journal is not None:
                raise ValueError("a journal is already attached")
            self._journal = journal
            self._journal_tail = tail_hash

    # ----- authority operations -----

    @_serialized(Operation.ADD_PROPOSAL)
    def add_proposal(self, caller: str, name: str) -> int:
        """Append a proposal and return its index."""
        self._require_authority(caller)
        if not isinstance(name, str):
            raise InvalidState("proposal name must be a string")
        self._record(Operation.ADD_PROPOSAL, caller, {"name": name})
        self._proposals.append(_ProposalState(name=name))
        return len(self._proposals) - 1

    @_serialized(Operation.REGISTER_PARTICIPANT)
    def register_participant(self, caller: str, identity: str, weight: int) -> None:
        """Grant ``weight`` to ``identity``, adding to any weight it already holds."""
        self._require_authority(caller)
        _require_identity(identity, "participant")
        if not isinstance(weight, int) or isinstance(weight, bool) or weight < 0:
            raise InvalidState("weight must be a non-negative integer")
        current = self._voters.get(identity)
        if current is not None and current.has_voted:
            raise AlreadyVoted(f"{identity} has already voted")

        self._record(
            Operation.REGISTER_PARTICIPANT, caller, {"identity": identity, "weight": weight}
        )
        state = self._voters.setdefault(identity, _VoterState())
        state.weight += weight
        self._total_granted += weight
        if weight > 0:
            self._registered.add(identity)

    # ----- participant operations -----

    @_serialized(Operation.DELEGATE)
    def delegate(self, caller: str, target: str) -> None:
        """Forward the caller's weight to the end of ``target``'s delegation chain."""
        _require_identity(caller, "caller")
        _require_identity(target, "delegate")
        if caller == target:
            raise InvalidState("self-delegation is not allowed")
        current = self._voters.get(caller)
        if current is not None and current.has_voted:
            raise AlreadyVoted(f"{caller} has already voted")
        terminal = self._resolve_terminal(caller, target)

        self._record(Operation.DELEGATE, caller, {"target": target})
        sender = self._voters.setdefault(caller, _VoterState())
        receiver = self._voters.setdefault(terminal, _VoterState())
        moved = sender.weight
        sender.weight = 0
        sender.has_voted = True
        sender.delegate = terminal
        if receiver.has_voted:
            # chain walk only stops on a voted node when it voted directly
            self._proposals[receiver.voted_proposal].vote_count += moved  # type: ignore[index]
        else:
            receiver.weight += moved

    @_serialized(Operation.VOTE)
    def vote(self, caller: str, proposal_index: int) -> None:
        """Cast the caller's full weight for ``proposal_index``."""
        _require_identity(caller, "caller")
        current = self._voters.get(caller)
        if current is not None and current.has_voted:
            raise AlreadyVoted(f"{caller} has already voted")
        self._require_proposal(proposal_index)
        if self._strict_weight and (current is None or current.weight == 0):
            raise NoVotingWeight(f"{caller} has no voting weight")

        self._record(Operation.VOTE, caller, {"proposal": proposal_index})
        sender = self._voters.setdefault(caller, _VoterState())
        self._proposals[proposal_index].vote_count += sender.weight
        sender.weight = 0
        sender.has_voted = True
        sender.voted_proposal = proposal_index

    # ----- reads -----

    def winning_proposal(self) -> int | None:
        """Index of the proposal with the most weight; lowest index wins ties."""
        return tally.winning_index(self.proposals())

    def winner_name(self) -> str | None:
        winner = self.winning_proposal()
        if winner is None:
            return None
        return self.get_proposal(winner).name

    def participant_count(self) -> int:
        with self._lock:
            return len(self._registered)

    def proposal_count(self) -> int:
        with self._lock:
            return len(self._proposals)

    @property
    def total_granted(self) -> int:
        with self._lock:
            return self._total_granted

    def get_participant(self, identity: str) -> Participant:
        _require_identity(identity, "participant")
        with self._lock:
            return self._snapshot_voter(identity, self._voters.get(identity))

    def get_proposal(self, index: int) -> Proposal:
        with self._lock:
            self._require_proposal(index)
            state = self._proposals[index]
            return Proposal(index=index, name=state.name, vote_count=state.vote_count)

    def proposals(self) -> list[Proposal]:
        with self._lock:
            return [
                Proposal(index=index, name=state.name, vote_count=state.vote_count)
                for index, state in enumerate(self._proposals)
            ]

    def participants(self) -> list[Participant]:
        """Every identity the ledger holds state for, in first-seen order."""
        with self._lock:
            return [self._snapshot_voter(identity, state) for identity, state in self._voters.items()]

    def conservation(self) -> ConservationReport:
        with self._lock:
            return tally.conservation(self.participants(), self.proposals(), self._total_granted)

    # ----- internal helpers -----

    def _require_authority(self, caller: Any) -> None:
        if caller != self._authority:
            raise Unauthorized("only the chairperson may perform this operation")

    def _require_proposal(self, index: Any) -> None:
        if not isinstance(index, int) or isinstance(index, bool):
            raise InvalidProposal("proposal index must be an integer")
        if not 0 <= index < len(self._proposals):
            raise InvalidProposal(f"proposal {index} does not exist")

    def _resolve_terminal(self, caller: str, target: str) -> str:
        """Follow delegations from ``target`` to the first node that has not delegated.

        Bounded by the registry size; any revisit is a cycle.
        """
        visited: set[str] = set()
        current = target
        for _ in range(len(self._voters) + 1):
            if current == caller or current in visited:
                raise CycleDetected(f"delegation from {caller} to {target} would form a loop")
            visited.add(current)
            state = self._voters.get(current)
            if state is None or not state.delegated:
                return current
            current = state.delegate  # type: ignore[assignment]
        # guard only: the visited set raises CycleDetected before the bound runs out
        raise InvalidState("delegation chain exceeds participant count")

    def _record(self, operation: Operation, caller: str, args: dict[str, Any]) -> None:
        if self._journal is None:
            return
        entry: JournalEntry = {
            "schema_version": SCHEMA_VERSION,
            "journal_version": JOURNAL_VERSION,
            "seq": 0,
            "created_at": _format_timestamp(self._now()),
            "operation": operation.value,
            "caller": caller,
            "args": args,
            "prev_entry_hash": None,
            "entry_hash": None,
        }
        self._journal_tail = self._journal.append(entry, expected_prev=self._journal_tail)

    @staticmethod
    def _snapshot_voter(identity: str, state: _VoterState | None) -> Participant:
        if state is None:
            return Participant(identity=identity)
        return Participant(
            identity=identity,
            weight=state.weight,
            has_voted=state.has_voted,
            voted_proposal=state.voted_proposal,
            delegate=state.delegate,
        )
