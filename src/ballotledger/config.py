"""Runtime configuration for ballotledger."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Mapping

from pydantic import BaseModel, field_validator

from .journal.base import Journal
from .journal.jsonl import JSONLJournal
from .journal.signing import load_private_key_file
from .journal.sqlite import SQLiteJournal

ENV_PREFIX = "BALLOTLEDGER_"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


class LedgerConfig(BaseModel):
    """Settings shared by the CLI and embedding code."""

    model_config = {"frozen": True}

    strict_weight: bool = False
    journal_path: Path | None = None
    journal_backend: Literal["jsonl", "sqlite"] = "jsonl"
    signing_key_path: Path | None = None

    @field_validator("strict_weight", mode="before")
    @classmethod
    def _parse_flag(cls, value: object) -> object:
        if isinstance(value, str):
            text = value.strip().lower()
            if text in _TRUE_VALUES:
                return True
            if text in _FALSE_VALUES:
                return False
            raise ValueError(f"invalid boolean flag: {value!r}")
        return value

    @field_validator("journal_path", "signing_key_path", mode="before")
    @classmethod
    def _empty_path_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "LedgerConfig":
        """Build a config from ``BALLOTLEDGER_*`` environment variables."""
        env = os.environ if environ is None else environ
        values: dict[str, str] = {}
        for field in ("strict_weight", "journal_path", "journal_backend"):
            raw = env.get(ENV_PREFIX + field.upper())
            if raw is not None:
                values[field] = raw
        signing_key = env.get(ENV_PREFIX + "SIGNING_KEY")
        if signing_key is not None:
            values["signing_key_path"] = signing_key
        return cls.model_validate(values)

    def open_journal(self) -> Journal | None:
        """Return the configured journal backend, or ``None`` when no path is set."""
        if self.journal_path is None:
            return None
        signing_key = None
        if self.signing_key_path is not None:
            signing_key = load_private_key_file(self.signing_key_path)
        if self.journal_backend == "sqlite":
            return SQLiteJournal(self.journal_path, signing_key=signing_key)
        return JSONLJournal(self.journal_path, signing_key=signing_key)
