"""Typed models for ballotledger."""

from __future__ import annotations

from enum import Enum
from typing import Any, NotRequired, TypedDict

from pydantic import BaseModel, Field, field_validator, model_validator


class Operation(str, Enum):
    """Journaled ledger operations."""

    OPEN = "open"
    ADD_PROPOSAL = "add_proposal"
    REGISTER_PARTICIPANT = "register_participant"
    DELEGATE = "delegate"
    VOTE = "vote"


class Participant(BaseModel):
    """Read-only snapshot of one participant."""

    model_config = {"frozen": True}

    identity: str
    weight: int = Field(default=0, ge=0)
    has_voted: bool = False
    voted_proposal: int | None = None
    delegate: str | None = None

    @field_validator("identity")
    @classmethod
    def _identity_non_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("identity must be a non-empty string")
        return value

    @model_validator(mode="after")
    def _voted_exactly_one_way(self) -> "Participant":
        delegated = self.delegate is not None
        voted_directly = self.voted_proposal is not None
        if self.has_voted and delegated == voted_directly:
            raise ValueError("a voted participant must have either delegated or voted directly")
        if not self.has_voted and (delegated or voted_directly):
            raise ValueError("delegate and voted_proposal require has_voted")
        return self

    @property
    def delegated(self) -> bool:
        return self.delegate is not None

    @property
    def voted_directly(self) -> bool:
        return self.has_voted and self.delegate is None


class Proposal(BaseModel):
    """Read-only snapshot of one proposal."""

    model_config = {"frozen": True}

    index: int = Field(ge=0)
    name: str
    vote_count: int = Field(default=0, ge=0)


class ConservationReport(BaseModel):
    """Where all granted weight currently sits."""

    model_config = {"frozen": True}

    unspent: int
    cast: int
    granted: int

    @property
    def balanced(self) -> bool:
        return self.unspent + self.cast == self.granted


# -------- Journal typed structures --------


class JournalEntry(TypedDict):
    schema_version: str
    journal_version: str
    seq: int
    created_at: str
    operation: str
    caller: str
    args: dict[str, Any]
    prev_entry_hash: str | None
    entry_hash: str | None
    entry_signature: NotRequired[str | None]
