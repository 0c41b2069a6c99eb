from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from ballotledger import JSONLJournal, LedgerConfig, SQLiteJournal


def test_defaults_without_environment() -> None:
    config = LedgerConfig.from_env({})
    assert config.strict_weight is False
    assert config.journal_path is None
    assert config.journal_backend == "jsonl"
    assert config.open_journal() is None


def test_reads_prefixed_environment(tmp_path: Path) -> None:
    config = LedgerConfig.from_env(
        {
            "BALLOTLEDGER_STRICT_WEIGHT": "yes",
            "BALLOTLEDGER_JOURNAL_PATH": str(tmp_path / "j.db"),
            "BALLOTLEDGER_JOURNAL_BACKEND": "sqlite",
            "UNRELATED": "1",
        }
    )
    assert config.strict_weight is True
    assert config.journal_path == tmp_path / "j.db"
    journal = config.open_journal()
    assert isinstance(journal, SQLiteJournal)


def test_jsonl_is_the_default_backend(tmp_path: Path) -> None:
    config = LedgerConfig(journal_path=tmp_path / "j.jsonl")
    assert isinstance(config.open_journal(), JSONLJournal)


def test_blank_path_means_unset() -> None:
    assert LedgerConfig.from_env({"BALLOTLEDGER_JOURNAL_PATH": ""}).journal_path is None


@pytest.mark.parametrize(
    "env",
    [
        {"BALLOTLEDGER_STRICT_WEIGHT": "maybe"},
        {"BALLOTLEDGER_JOURNAL_BACKEND": "postgres"},
    ],
)
def test_invalid_values_are_rejected(env: dict[str, str]) -> None:
    with pytest.raises(ValidationError):
        LedgerConfig.from_env(env)
