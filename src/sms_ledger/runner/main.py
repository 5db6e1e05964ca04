"""
CLI main entry point.
"""

import argparse
import logging
import sys
from collections.abc import Callable
from decimal import Decimal
from pathlib import Path

from ..config import Config, create_default_config, load_config
from ..extractors import TransactionType
from ..ledger_client import LedgerClient
from ..message_store import SqliteMessageStore
from ..permissions import ConsolePermissionGate, PermissionGate, StaticPermissionGate
from ..review import AnnotationError
from ..schemas.candidate import TransactionCandidate
from ..services import ConfirmOutcome, InboxOrchestrator, PipelineState
from ..state_store import JournalStatus, ReconciliationJournal

logger = logging.getLogger(__name__)

Prompt = Callable[[str], str]


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def print_alert(title: str, message: str) -> None:
    """Show a user-visible alert on the terminal."""
    print(f"⚠️  {title}: {message}")


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="sms-ledger",
        description="Extract bank transactions from SMS and reconcile them with a remote ledger",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--assume-permission",
        action="store_true",
        help="Do not ask for read access to the message store",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("init-config", help="Write a default config file")

    subparsers.add_parser("scan", help="List transaction messages found in the inbox")

    subparsers.add_parser("review", help="Tag and reconcile candidates interactively")

    reconcile_parser = subparsers.add_parser(
        "reconcile", help="Reconcile one candidate with the ledger"
    )
    reconcile_parser.add_argument(
        "--id",
        dest="message_id",
        type=str,
        required=True,
        help="Message id of the candidate",
    )
    reconcile_parser.add_argument(
        "--tag",
        type=str,
        default="",
        help="Tag to attach (sent upper-cased)",
    )
    reconcile_parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Submit without asking for confirmation",
    )

    subparsers.add_parser("status", help="Show reconciliation journal statistics")

    return parser


def build_orchestrator(
    config: Config, permission_gate: PermissionGate
) -> InboxOrchestrator:
    """Wire the pipeline components from configuration."""
    journal = ReconciliationJournal(config.state_db_path) if config.journal_enabled else None
    return InboxOrchestrator(
        message_store=SqliteMessageStore(config.message_store.db_path),
        ledger_client=LedgerClient(
            endpoint_url=config.ledger.endpoint_url,
            timeout=config.ledger.timeout_seconds,
        ),
        permission_gate=permission_gate,
        journal=journal,
        alert=print_alert,
        box=config.message_store.box,
    )


def _print_candidate(index: int, candidate: TransactionCandidate) -> None:
    print(f"  [{index}] From: {candidate.address}  (id {candidate.id})")
    print(f"      {candidate.body}")
    print(
        f"      Transaction: {candidate.transaction_type.value} | Amount: INR {candidate.amount}"
    )


def _print_outcome(outcome: ConfirmOutcome) -> None:
    if outcome.reconciled:
        print(f"     ✓ Reconciled message {outcome.candidate_id}")
        if not outcome.pruned:
            print("     ⚠ Source message could not be deleted (kept on device)")
    else:
        print(f"     ❌ Not reconciled: {outcome.error}")


def _start(orchestrator: InboxOrchestrator, prune_reconciled: bool = True) -> bool:
    state = orchestrator.start(prune_reconciled=prune_reconciled)
    if state == PipelineState.PERMISSION_DENIED:
        return False
    if orchestrator.fetch_error:
        print(f"❌ {orchestrator.fetch_error}")
        return False
    return True


def cmd_init_config(config_path: Path) -> int:
    """Write a default configuration file."""
    if config_path.exists():
        print(f"❌ {config_path} already exists")
        return 1
    create_default_config(config_path)
    print(f"✓ Wrote default config to {config_path}")
    return 0


def cmd_scan(config: Config, permission_gate: PermissionGate) -> int:
    """List transaction candidates."""
    print(f"🔍 Scanning {config.message_store.box} ({config.message_store.db_path})...")

    orchestrator = build_orchestrator(config, permission_gate)
    # Listing only: messages owed a delete stay on the device
    if not _start(orchestrator, prune_reconciled=False):
        return 1

    candidates = orchestrator.candidates()
    totals = {TransactionType.CREDIT: Decimal("0"), TransactionType.DEBIT: Decimal("0")}
    for index, candidate in enumerate(candidates, start=1):
        _print_candidate(index, candidate)
        value = candidate.extraction.amount_as_decimal()
        if value is not None:
            totals[candidate.transaction_type] += value

    print(f"\n✓ Found {len(candidates)} transaction message(s)")
    print(
        f"  Credits: INR {totals[TransactionType.CREDIT]:,}  "
        f"Debits: INR {totals[TransactionType.DEBIT]:,}"
    )
    return 0


def cmd_review(
    config: Config, permission_gate: PermissionGate, prompt: Prompt = input
) -> int:
    """Interactive review: pick a candidate, tag it, then confirm or cancel."""
    orchestrator = build_orchestrator(config, permission_gate)
    if not _start(orchestrator):
        return 1

    reconciled = 0
    failed = 0

    while True:
        candidates = orchestrator.candidates()
        if not candidates:
            print("\nNo transaction messages left")
            break

        print()
        for index, candidate in enumerate(candidates, start=1):
            _print_candidate(index, candidate)

        try:
            choice = prompt("\nSelect a message number (q to quit): ").strip()
        except EOFError:
            break
        if choice.lower() in ("", "q", "quit"):
            break

        try:
            number = int(choice)
        except ValueError:
            number = 0
        if not 1 <= number <= len(candidates):
            print(f"  ❌ No message numbered {choice!r}")
            continue
        candidate = candidates[number - 1]

        try:
            orchestrator.select(candidate.id)
        except AnnotationError as e:
            print(f"  ❌ {e}")
            continue

        print("\nTransaction Details")
        print(f"  Type:   {candidate.transaction_type.value}")
        print(f"  Amount: {candidate.amount}")

        try:
            orchestrator.update_tag(prompt("  Tags: "))
            answer = prompt("  Submit to ledger? [y/N] ").strip().lower()
        except EOFError:
            orchestrator.cancel()
            break

        if answer not in ("y", "yes"):
            orchestrator.cancel()
            print("  ↩ Cancelled, nothing submitted")
            continue

        print(f"  📤 Submitting message {candidate.id}...")
        outcome = orchestrator.confirm()
        _print_outcome(outcome)
        if outcome.reconciled:
            reconciled += 1
        else:
            failed += 1

    print(f"\n✓ Reconciled: {reconciled}, Failed: {failed}")
    return 1 if failed else 0


def cmd_reconcile(
    config: Config,
    permission_gate: PermissionGate,
    message_id: str,
    tag: str,
    assume_yes: bool = False,
    prompt: Prompt = input,
) -> int:
    """Reconcile a single candidate by message id."""
    orchestrator = build_orchestrator(config, permission_gate)
    if not _start(orchestrator):
        return 1

    try:
        candidate = orchestrator.select(message_id)
    except KeyError:
        print(f"❌ No transaction message with id {message_id}")
        return 1

    orchestrator.update_tag(tag)
    _print_candidate(1, candidate)
    print(f"      Tags: {tag.upper() or '(none)'}")
    previous = orchestrator.journal.get(message_id) if orchestrator.journal else None
    if previous is not None and previous.status == JournalStatus.FAILED:
        print(f"      Previous attempt failed: {previous.error_message}")

    if not assume_yes:
        try:
            answer = prompt("Submit to ledger? [y/N] ").strip().lower()
        except EOFError:
            answer = ""
        if answer not in ("y", "yes"):
            orchestrator.cancel()
            print("↩ Cancelled, nothing submitted")
            return 0

    outcome = orchestrator.confirm()
    _print_outcome(outcome)
    return 0 if outcome.reconciled else 1


def cmd_status(config: Config) -> int:
    """Show reconciliation journal statistics."""
    if not config.journal_enabled:
        print("Reconciliation journal is disabled")
        return 0

    journal = ReconciliationJournal(config.state_db_path)
    stats = journal.get_stats()

    print("\n📊 Reconciliation Status")
    print("=" * 40)
    print(f"  Submissions total:      {stats['submissions_total']}")
    print(f"  Reconciled:             {stats['reconciled']}")
    print(f"  Failed:                 {stats['failed']}")
    print(f"  Outcome unknown:        {stats['pending']}")
    print(f"  Awaiting prune:         {stats['awaiting_prune']}")
    for record in journal.get_unpruned():
        print(
            f"    - message {record.message_id}: {record.transaction_type} "
            f"INR {record.amount} (reconciled {record.reconciled_at})"
        )
    print()

    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    if parsed.command == "init-config":
        return cmd_init_config(parsed.config)

    # Load config
    try:
        config = load_config(parsed.config)
    except Exception as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    errors = config.validate()
    if errors:
        for error in errors:
            print(f"❌ Config error: {error}")
        return 1

    if parsed.assume_permission:
        gate: PermissionGate = StaticPermissionGate(granted=True)
    else:
        gate = ConsolePermissionGate()

    # Route to command
    if parsed.command == "scan":
        return cmd_scan(config, gate)
    elif parsed.command == "review":
        return cmd_review(config, gate)
    elif parsed.command == "reconcile":
        return cmd_reconcile(config, gate, parsed.message_id, parsed.tag, parsed.yes)
    elif parsed.command == "status":
        return cmd_status(config)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
