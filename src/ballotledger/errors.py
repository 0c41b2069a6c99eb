"""Exception types for ballotledger.

Every ledger error aborts the call with no state change.
"""


class BallotError(Exception):
    """Base exception for all rejected ledger operations."""


class Unauthorized(BallotError):
    """Raised when a non-authority caller invokes an authority-only operation."""


class AlreadyVoted(BallotError):
    """Raised when a participant that already voted or delegated acts again."""


class InvalidState(BallotError):
    """Raised for structurally invalid requests such as self-delegation."""


class CycleDetected(BallotError):
    """Raised when a delegation chain would loop back to the delegator."""


class InvalidProposal(BallotError):
    """Raised when a proposal index is out of range."""


class NoVotingWeight(BallotError):
    """Raised by strict ledgers when a participant votes with zero weight."""
