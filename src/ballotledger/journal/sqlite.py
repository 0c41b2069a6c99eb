"""SQLite-backed journal. Same entry format and verification as the JSONL journal."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Iterator, cast

from ballotledger.types import JournalEntry

from .common import ANY_TAIL, ExpectedTail, prepare_entry
from .errors import (
    JournalConflictError,
    JournalError,
    JournalVerificationError,
    JournalWriteError,
)
from .jcs import CanonicalizationError, canonical_text
from .types import JSONValue, SigningKey, VerifyKey
from .validation import ParsedEntry, validate_parsed_entries


@dataclass(frozen=True)
class SQLiteJournal:
    path: Path
    signing_key: SigningKey | None = None

    def append(self, entry: JournalEntry, *, expected_prev: ExpectedTail = ANY_TAIL) -> str:
        """Append an entry inside an immediate transaction."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = _connect(self.path)
            try:
                _ensure_schema(conn)
                conn.execute("BEGIN IMMEDIATE")
                last_entry = _read_last_entry(conn)
                prepared = prepare_entry(
                    cast(dict[str, JSONValue], entry), last_entry, self.signing_key, expected_prev
                )
                entry_hash = prepared["entry_hash"]
                if not isinstance(entry_hash, str):
                    raise JournalWriteError("entry_hash missing after preparation")
                conn.execute(
                    "INSERT INTO journal (seq, entry_json, entry_hash, prev_entry_hash) VALUES (?, ?, ?, ?)",
                    (
                        prepared["seq"],
                        canonical_text(prepared),
                        entry_hash,
                        prepared["prev_entry_hash"],
                    ),
                )
                conn.commit()
                return entry_hash
            except BaseException:
                conn.rollback()
                raise
            finally:
                conn.close()
        except JournalConflictError:
            raise
        except (sqlite3.Error, CanonicalizationError, JournalError) as exc:
            raise JournalWriteError(str(exc)) from exc

    def verify(self, *, public_key: VerifyKey | None = None) -> int:
        """Verify the entire journal, failing on any tamper, gap, or reordering."""
        try:
            if not self.path.exists():
                return 0
            return validate_parsed_entries(self._iter_parsed(), public_key=public_key)
        except (sqlite3.Error, CanonicalizationError, JournalError, json.JSONDecodeError) as exc:
            raise JournalVerificationError(str(exc)) from exc

    def entries(self) -> Iterator[dict[str, JSONValue]]:
        if not self.path.exists():
            return
        try:
            for parsed in self._iter_parsed():
                yield parsed.entry
        except (sqlite3.Error, json.JSONDecodeError) as exc:
            raise JournalVerificationError(str(exc)) from exc

    def _iter_parsed(self) -> Iterator[ParsedEntry]:
        conn = _connect(self.path)
        try:
            _ensure_schema(conn)
            rows = conn.execute(
                "SELECT entry_json, entry_hash, prev_entry_hash FROM journal ORDER BY id ASC"
            ).fetchall()
        finally:
            conn.close()
        for index, (entry_json, row_hash, row_prev) in enumerate(rows, start=1):
            if not isinstance(entry_json, str) or not entry_json:
                raise JournalVerificationError(f"entry_json invalid at row {index}")
            entry = json.loads(entry_json, parse_float=Decimal, parse_int=int)
            if not isinstance(entry, dict):
                raise JournalVerificationError(f"row {index} is not an object")
            if not isinstance(row_hash, str):
                raise JournalVerificationError(f"entry_hash column missing at row {index}")
            yield ParsedEntry(
                entry=cast(dict[str, JSONValue], entry),
                raw=entry_json,
                index=index,
                row_entry_hash=row_hash,
                row_prev_hash=row_prev,
            )


def _connect(path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(path, isolation_level=None)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA synchronous=FULL")
    return conn


def _ensure_schema(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS journal (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            seq INTEGER NOT NULL UNIQUE,
            entry_json TEXT NOT NULL,
            entry_hash TEXT NOT NULL,
            prev_entry_hash TEXT
        )
        """
    )


def _read_last_entry(conn: sqlite3.Connection) -> dict[str, JSONValue] | None:
    row = conn.execute("SELECT entry_json FROM journal ORDER BY id DESC LIMIT 1").fetchone()
    if row is None:
        return None
    entry = json.loads(row[0], parse_float=Decimal, parse_int=int)
    if not isinstance(entry, dict):
        raise JournalVerificationError("journal row is not an object")
    return cast(dict[str, JSONValue], entry)
