"""Command-line interface for ballotledger."""

from __future__ import annotations

import argparse
import csv
import json
import sys
from pathlib import Path
from typing import Any, Callable, Iterable

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ballotledger.config import LedgerConfig
from ballotledger.engine import VotingLedger
from ballotledger.errors import BallotError
from ballotledger.journal.base import Journal
from ballotledger.journal.errors import JournalError
from ballotledger.journal.signing import generate_keypair, load_public_key
from ballotledger.replay import replay

CSV_FIELDS = (
    "seq",
    "created_at",
    "operation",
    "caller",
    "args",
    "entry_hash",
    "prev_entry_hash",
)


def _format_optional_dependency_error(exc: Exception) -> str:
    message = str(exc)
    if isinstance(exc, RuntimeError) and "cryptography" in message:
        return f"{message} (install \"ballotledger[crypto]\")"
    return message


def _stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, sort_keys=True, default=str)
    return str(value)


def _flatten_entry(entry: dict[str, Any]) -> dict[str, str]:
    return {field: _stringify(entry.get(field)) for field in CSV_FIELDS}


def _write_entries(
    entries: Iterable[dict[str, Any]],
    output_format: str,
    output_path: Path | None,
) -> int:
    """Stream entries in the requested format."""
    output = sys.stdout
    close_output = False
    if output_path is not None:
        output = output_path.open("w", encoding="utf-8", newline="")
        close_output = True
    try:
        if output_format == "json":
            output.write("[")
            first = True
            for entry in entries:
                if not first:
                    output.write(",")
                first = False
                output.write(json.dumps(entry, ensure_ascii=False, default=str))
            output.write("]\n")
        elif output_format == "ndjson":
            for entry in entries:
                output.write(
                    json.dumps(entry, ensure_ascii=False, separators=(",", ":"), default=str) + "\n"
                )
        elif output_format == "csv":
            writer = csv.DictWriter(
                output,
                fieldnames=CSV_FIELDS,
                extrasaction="ignore",
                lineterminator="\n",
            )
            writer.writeheader()
            for entry in entries:
                writer.writerow(_flatten_entry(entry))
        else:
            raise ValueError(f"unknown format: {output_format}")
    finally:
        if close_output:
            output.close()
    return 0


def _add_journal_args(parser: argparse.ArgumentParser, defaults: LedgerConfig) -> None:
    parser.add_argument("journal_path", type=Path, help="Path to the journal file")
    parser.add_argument(
        "--backend",
        choices=("jsonl", "sqlite"),
        default=defaults.journal_backend,
        help="Journal storage backend",
    )


def _add_write_args(parser: argparse.ArgumentParser, defaults: LedgerConfig) -> None:
    _add_journal_args(parser, defaults)
    parser.add_argument(
        "--private-key",
        type=Path,
        default=defaults.signing_key_path,
        help="Ed25519 private key PEM used to sign new entries",
    )


def _parse_args(argv: list[str], defaults: LedgerConfig) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="ballotledger", add_help=True)
    subparsers = parser.add_subparsers(dest="command", required=True)

    open_parser = subparsers.add_parser("open", help="Start a new ballot journal")
    _add_write_args(open_parser, defaults)
    open_parser.add_argument("--authority", required=True, help="Chairperson identity")
    open_parser.add_argument(
        "--strict-weight",
        action="store_true",
        default=defaults.strict_weight,
        help="Reject votes cast with zero weight",
    )

    proposal_parser = subparsers.add_parser("add-proposal", help="Add a proposal (chairperson only)")
    _add_write_args(proposal_parser, defaults)
    proposal_parser.add_argument("name", help="Proposal name")
    proposal_parser.add_argument("--caller", required=True, help="Caller identity")

    register_parser = subparsers.add_parser("register", help="Grant voting weight (chairperson only)")
    _add_write_args(register_parser, defaults)
    register_parser.add_argument("identity", help="Participant identity")
    register_parser.add_argument("weight", type=int, help="Weight to grant")
    register_parser.add_argument("--caller", required=True, help="Caller identity")

    delegate_parser = subparsers.add_parser("delegate", help="Delegate voting weight")
    _add_write_args(delegate_parser, defaults)
    delegate_parser.add_argument("target", help="Identity to delegate to")
    delegate_parser.add_argument("--caller", required=True, help="Caller identity")

    vote_parser = subparsers.add_parser("vote", help="Vote for a proposal")
    _add_write_args(vote_parser, defaults)
    vote_parser.add_argument("proposal", type=int, help="Proposal index")
    vote_parser.add_argument("--caller", required=True, help="Caller identity")

    tally_parser = subparsers.add_parser("tally", help="Show proposal tallies and the winner")
    _add_journal_args(tally_parser, defaults)
    tally_parser.add_argument("--json", action="store_true", help="Output JSON")

    participant_parser = subparsers.add_parser("participant", help="Show one participant")
    _add_journal_args(participant_parser, defaults)
    participant_parser.add_argument("identity", help="Participant identity")
    participant_parser.add_argument("--json", action="store_true", help="Output JSON")

    verify_parser = subparsers.add_parser("verify", help="Verify a journal")
    _add_journal_args(verify_parser, defaults)
    verify_parser.add_argument("--json", action="store_true", help="Output JSON")
    verify_parser.add_argument("--public-key", type=Path, help="Path to Ed25519 public key PEM")

    export_parser = subparsers.add_parser("export", help="Export journal entries")
    _add_journal_args(export_parser, defaults)
    export_parser.add_argument(
        "--format",
        choices=("json", "ndjson", "csv"),
        default="ndjson",
        help="Output format",
    )
    export_parser.add_argument("--output", type=Path, help="Output file path")

    keygen_parser = subparsers.add_parser("keygen", help="Generate Ed25519 key pair")
    keygen_parser.add_argument("--private-key", type=Path, required=True, help="Path to private key PEM")
    keygen_parser.add_argument("--public-key", type=Path, required=True, help="Path to public key PEM")
    keygen_parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Overwrite existing key files",
    )

    return parser.parse_args(argv)


def _journal(path: Path, backend: str, private_key_path: Path | None = None) -> Journal:
    config = LedgerConfig(
        journal_path=path, journal_backend=backend, signing_key_path=private_key_path
    )
    journal = config.open_journal()
    if journal is None:
        raise ValueError("journal path is required")
    return journal


def _cmd_open(args: argparse.Namespace) -> int:
    try:
        journal = _journal(args.journal_path, args.backend, args.private_key)
        if next(iter(journal.entries()), None) is not None:
            print("journal already opened", file=sys.stderr)
            return 1
        VotingLedger(args.authority, strict_weight=args.strict_weight, journal=journal)
    except ValueError as exc:
        print(f"open failed: {exc}", file=sys.stderr)
        return 2
    except (OSError, RuntimeError) as exc:
        print(f"open failed: {_format_optional_dependency_error(exc)}", file=sys.stderr)
        return 1
    print(f"opened ballot chaired by {args.authority}")
    return 0


def _run_operation(args: argparse.Namespace, apply: Callable[[VotingLedger], str]) -> int:
    if not args.journal_path.exists():
        print("journal file not found", file=sys.stderr)
        return 1
    try:
        journal = _journal(args.journal_path, args.backend, args.private_key)
        ledger = replay(journal)
        message = apply(ledger)
    except BallotError as exc:
        print(f"rejected: {exc.__class__.__name__}: {exc}", file=sys.stderr)
        return 1
    except (OSError, RuntimeError, ValueError) as exc:
        print(f"{args.command} failed: {_format_optional_dependency_error(exc)}", file=sys.stderr)
        return 1
    print(message)
    return 0


def _cmd_add_proposal(args: argparse.Namespace) -> int:
    def apply(ledger: VotingLedger) -> str:
        index = ledger.add_proposal(args.caller, args.name)
        return f"proposal {index}: {args.name}"

    return _run_operation(args, apply)


def _cmd_register(args: argparse.Namespace) -> int:
    def apply(ledger: VotingLedger) -> str:
        ledger.register_participant(args.caller, args.identity, args.weight)
        return f"{args.identity} weight {ledger.get_participant(args.identity).weight}"

    return _run_operation(args, apply)


def _cmd_delegate(args: argparse.Namespace) -> int:
    def apply(ledger: VotingLedger) -> str:
        ledger.delegate(args.caller, args.target)
        terminal = ledger.get_participant(args.caller).delegate
        return f"{args.caller} delegated to {terminal}"

    return _run_operation(args, apply)


def _cmd_vote(args: argparse.Namespace) -> int:
    def apply(ledger: VotingLedger) -> str:
        ledger.vote(args.caller, args.proposal)
        return f"{args.caller} voted for proposal {args.proposal}"

    return _run_operation(args, apply)


def _load_for_read(path: Path, backend: str) -> VotingLedger | None:
    if not path.exists():
        print("journal file not found", file=sys.stderr)
        return None
    try:
        return replay(_journal(path, backend))
    except (OSError, JournalError) as exc:
        print(f"load failed: {exc}", file=sys.stderr)
        return None


def _cmd_tally(path: Path, backend: str, json_output: bool) -> int:
    ledger = _load_for_read(path, backend)
    if ledger is None:
        return 1
    proposals = ledger.proposals()
    winner = ledger.winning_proposal()
    report = ledger.conservation()
    if json_output:
        payload = {
            "chairperson": ledger.chairperson,
            "proposals": [p.model_dump() for p in proposals],
            "winner": winner,
            "winner_name": ledger.winner_name(),
            "participants": ledger.participant_count(),
            "conservation": {**report.model_dump(), "balanced": report.balanced},
        }
        print(json.dumps(payload, ensure_ascii=False))
        return 0

    console = Console()
    table = Table(title="Proposals")
    table.add_column("#", justify="right")
    table.add_column("Name")
    table.add_column("Votes", justify="right")
    for proposal in proposals:
        marker = " *" if proposal.index == winner else ""
        table.add_row(str(proposal.index), escape(proposal.name) + marker, str(proposal.vote_count))
    console.print(table)
    if winner is None:
        console.print("winner: none")
    else:
        console.print(f"winner: {winner} ({escape(proposals[winner].name)})")
    console.print(
        f"weight: {report.cast} cast, {report.unspent} unspent, {report.granted} granted"
        + ("" if report.balanced else " [bold red]UNBALANCED[/bold red]")
    )
    return 0


def _cmd_participant(path: Path, backend: str, identity: str, json_output: bool) -> int:
    ledger = _load_for_read(path, backend)
    if ledger is None:
        return 1
    try:
        participant = ledger.get_participant(identity)
    except BallotError as exc:
        print(f"rejected: {exc}", file=sys.stderr)
        return 2
    if json_output:
        print(participant.model_dump_json())
        return 0
    table = Table(title=escape(participant.identity), show_header=False)
    table.add_column("field")
    table.add_column("value")
    table.add_row("weight", str(participant.weight))
    table.add_row("has_voted", str(participant.has_voted))
    table.add_row("voted_proposal", _stringify(participant.voted_proposal))
    table.add_row("delegate", escape(_stringify(participant.delegate)))
    Console().print(table)
    return 0


def _cmd_verify(path: Path, backend: str, json_output: bool, public_key_path: Path | None) -> int:
    def _fail(exc: Exception) -> int:
        if json_output:
            print(json.dumps({"status": "failed", "error": _format_optional_dependency_error(exc)}))
        else:
            print(f"verify failed: {_format_optional_dependency_error(exc)}", file=sys.stderr)
        return 1

    public_key = None
    if public_key_path is not None:
        try:
            public_key = load_public_key(public_key_path.read_bytes())
        except (OSError, RuntimeError, ValueError) as exc:
            return _fail(exc)
    try:
        count = _journal(path, backend).verify(public_key=public_key)
    except JournalError as exc:
        return _fail(exc)
    if json_output:
        print(json.dumps({"status": "ok", "entries": count}))
    else:
        print(f"verification ok ({count} entries)")
    return 0


def _cmd_export(path: Path, backend: str, output_format: str, output_path: Path | None) -> int:
    if not path.exists():
        print("journal file not found", file=sys.stderr)
        return 1
    try:
        return _write_entries(_journal(path, backend).entries(), output_format, output_path)
    except (OSError, JournalError) as exc:
        print(f"export failed: {exc}", file=sys.stderr)
        return 1


def _cmd_keygen(
    *,
    private_key_path: Path,
    public_key_path: Path,
    overwrite: bool,
) -> int:
    if not overwrite and (private_key_path.exists() or public_key_path.exists()):
        print("key file already exists", file=sys.stderr)
        return 1
    try:
        private_key, public_key = generate_keypair()
    except RuntimeError as exc:
        print(_format_optional_dependency_error(exc), file=sys.stderr)
        return 1
    private_key_path.parent.mkdir(parents=True, exist_ok=True)
    public_key_path.parent.mkdir(parents=True, exist_ok=True)
    private_key_path.write_bytes(private_key)
    public_key_path.write_bytes(public_key)
    return 0


def main(argv: list[str] | None = None) -> int:
    try:
        defaults = LedgerConfig.from_env()
    except ValueError as exc:
        print(f"invalid environment configuration: {exc}", file=sys.stderr)
        return 2
    args = _parse_args(sys.argv[1:] if argv is None else argv, defaults)
    if args.command == "open":
        return _cmd_open(args)
    if args.command == "add-proposal":
        return _cmd_add_proposal(args)
    if args.command == "register":
        return _cmd_register(args)
    if args.command == "delegate":
        return _cmd_delegate(args)
    if args.command == "vote":
        return _cmd_vote(args)
    if args.command == "tally":
        return _cmd_tally(args.journal_path, args.backend, args.json)
    if args.command == "participant":
        return _cmd_participant(args.journal_path, args.backend, args.identity, args.json)
    if args.command == "verify":
        return _cmd_verify(args.journal_path, args.backend, args.json, args.public_key)
    if args.command == "export":
        return _cmd_export(args.journal_path, args.backend, args.format, args.output)
    if args.command == "keygen":
        return _cmd_keygen(
            private_key_path=args.private_key,
            public_key_path=args.public_key,
            overwrite=args.overwrite,
        )
    print("unknown command", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
