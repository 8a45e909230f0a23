"""CLI entry point for the SmartBudget client.

Commands:
    smartbudget transactions [--limit N]         Fetch all pages and list them
    smartbudget dashboard                        Summary, daily/monthly series, top categories
    smartbudget range SELECTOR [--from D --to D] Print the resolved report window
    smartbudget report [KIND] [--range SEL] ...  Fetch spending/products/monthly reports
    smartbudget categorize TXN_ID NAME           Reassign a transaction's category
    smartbudget add --type T --description ...   Create a transaction
    smartbudget delete TXN_ID                    Delete a transaction
    smartbudget import-csv FILE                  Bulk-import a statement file
    smartbudget scan-receipt [--file F] [--text T]  Scan a receipt
    smartbudget watch                            Upload files dropped into the watch dir
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
import time
from pathlib import Path

logger = logging.getLogger(__name__)


def _setup_logging() -> None:
    """Configure logging based on SMARTBUDGET_LOG_LEVEL env var."""
    level = os.environ.get("SMARTBUDGET_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _get_config():
    """Load application config from config directory."""
    from smartbudget.config import Config

    config_dir = os.environ.get("SMARTBUDGET_CONFIG_DIR", "config")
    return Config(config_dir=config_dir)


def _get_client(config):
    from smartbudget.api.client import ApiClient

    return ApiClient.from_config(config)


def _get_controller(client, config):
    from smartbudget.screen.transactions import TransactionsController

    return TransactionsController.from_config(client, config)


def _fmt_amount(value) -> str:
    return f"{value:.2f}"


def _print_state_error(state) -> int:
    print(f"Error: could not load transactions ({state.error})")
    return 1


# ── Command handlers ─────────────────────────────────────


async def _transactions(args: argparse.Namespace) -> int:
    config = _get_config()
    async with _get_client(config) as client:
        controller = _get_controller(client, config)
        state = await controller.refresh()
    if state.error is not None:
        return _print_state_error(state)

    names = {c.id: c.name for c in state.categories}
    rows = state.transactions[: args.limit] if args.limit else state.transactions
    for txn in rows:
        sign = "+" if txn.type == "income" else "-"
        category = txn.category_name or names.get(txn.category_id) or "-"
        print(
            f"{txn.transaction_date.isoformat()}  {sign}{_fmt_amount(txn.magnitude):>10}"
            f"  {category:<20}  {txn.description}  [{txn.id}]"
        )
    print(f"\n{len(state.transactions)} transactions")
    return 0


def cmd_transactions(args: argparse.Namespace) -> int:
    """List every transaction across all pages."""
    return asyncio.run(_transactions(args))


async def _dashboard(args: argparse.Namespace) -> int:
    config = _get_config()
    async with _get_client(config) as client:
        controller = _get_controller(client, config)
        state = await controller.refresh()
    if state.error is not None:
        return _print_state_error(state)

    summary = state.summary
    print(f"Income:   {_fmt_amount(summary.income)}")
    print(f"Expense:  {_fmt_amount(summary.expense)}")
    print(f"Balance:  {_fmt_amount(summary.balance)}")

    print(f"\nLast {len(state.daily)} days:")
    for point in state.daily:
        if point.income or point.expense:
            print(f"  {point.label}  +{_fmt_amount(point.income)}  -{_fmt_amount(point.expense)}")

    print("\nMonthly:")
    for point in state.monthly:
        print(f"  {point.label}  +{_fmt_amount(point.income)}  -{_fmt_amount(point.expense)}")

    print("\nTop categories:")
    for cat in state.top_categories:
        print(f"  {cat.name:<20} {_fmt_amount(cat.total):>10}  ({cat.percentage:.1f}%)")

    if state.recent:
        print("\nRecent:")
        for txn in state.recent:
            sign = "+" if txn.type == "income" else "-"
            print(f"  {txn.transaction_date.isoformat()}  {sign}{_fmt_amount(txn.magnitude)}  {txn.description}")
    return 0


def cmd_dashboard(args: argparse.Namespace) -> int:
    """Print summary cards and chart series."""
    return asyncio.run(_dashboard(args))


def _build_range(args: argparse.Namespace):
    from smartbudget.reports.date_range import DateRangeState

    state = DateRangeState(getattr(args, "range", None) or "all")
    if getattr(args, "date_from", None):
        state.set_date_from(args.date_from)
    if getattr(args, "date_to", None):
        state.set_date_to(args.date_to)
    return state


def cmd_range(args: argparse.Namespace) -> int:
    """Resolve a named range into from/to dates."""
    try:
        state = _build_range(args)
    except ValueError as e:
        print(f"Error: {e}")
        return 1
    date_from, date_to = state.window.serialize()
    print(f"{state.selector.value}: {date_from or '-'} .. {date_to or '-'}")
    return 0


async def _report(args: argparse.Namespace) -> int:
    from smartbudget.screen.reports import ReportsController

    config = _get_config()
    async with _get_client(config) as client:
        controller = ReportsController(client, selector=args.range)
        try:
            if args.date_from:
                controller.set_date_from(args.date_from)
            if args.date_to:
                controller.set_date_to(args.date_to)
        except ValueError as e:
            print(f"Error: {e}")
            return 1
        controller.search = args.search or ""
        snapshot = await controller.fetch()

    date_from, date_to = snapshot.window.serialize()
    print(f"Window: {date_from or '-'} .. {date_to or '-'}")
    kinds = ["spending", "products", "monthly"] if args.kind == "all" else [args.kind]
    for kind in kinds:
        data = getattr(snapshot, kind)
        print(f"\n[{kind}]")
        if data is None:
            print("No data")
        else:
            print(json.dumps(data, indent=2, ensure_ascii=False, default=str))
    return 0


def cmd_report(args: argparse.Namespace) -> int:
    """Fetch a server-computed report for the resolved window."""
    return asyncio.run(_report(args))


async def _categorize(args: argparse.Namespace) -> int:
    from smartbudget.api.client import ApiError

    config = _get_config()
    async with _get_client(config) as client:
        controller = _get_controller(client, config)
        state = await controller.refresh()
        if state.error is not None:
            return _print_state_error(state)
        try:
            result = await controller.reassign_category(
                args.transaction_id,
                args.name,
                remember_category=not args.no_remember,
                apply_to_existing=not args.no_apply_existing,
            )
        except KeyError:
            print(f"Error: transaction '{args.transaction_id}' not found.")
            return 1
        except ApiError as e:
            print(f"Error: {e}")
            return 1

    if result is None:
        print("No category given; nothing changed.")
        return 0
    created = " (new category)" if result.created_category else ""
    print(f"Transaction {result.transaction_id} -> '{result.category.name}'{created}")
    return 0


def cmd_categorize(args: argparse.Namespace) -> int:
    """Reassign a transaction's category by name."""
    return asyncio.run(_categorize(args))


async def _add(args: argparse.Namespace) -> int:
    from smartbudget.api.client import ApiError
    from smartbudget.api.models import TransactionDraft, ValidationError

    draft = TransactionDraft(
        description=args.description,
        amount=args.amount,
        category_id=args.category_id,
        type=args.type,
    )
    if args.date:
        draft.transaction_date = args.date

    config = _get_config()
    async with _get_client(config) as client:
        controller = _get_controller(client, config)
        try:
            await controller.create_transaction(draft)
        except ValidationError as e:
            print(f"Invalid transaction: {e}")
            return 1
        except ApiError as e:
            print(f"Error: {e}")
            return 1
    print("Transaction created.")
    return 0


def cmd_add(args: argparse.Namespace) -> int:
    """Create a transaction."""
    return asyncio.run(_add(args))


async def _delete(args: argparse.Namespace) -> int:
    from smartbudget.api.client import ApiError

    config = _get_config()
    async with _get_client(config) as client:
        controller = _get_controller(client, config)
        try:
            await controller.delete_transaction(args.transaction_id)
        except ApiError as e:
            print(f"Error: {e}")
            return 1
    print(f"Deleted {args.transaction_id}.")
    return 0


def cmd_delete(args: argparse.Namespace) -> int:
    """Delete a transaction."""
    return asyncio.run(_delete(args))


async def _import_csv(args: argparse.Namespace) -> int:
    from smartbudget.api.client import ApiError

    filepath = args.file.resolve()
    if not filepath.exists():
        print(f"Error: File not found: {filepath}")
        return 1

    config = _get_config()
    async with _get_client(config) as client:
        controller = _get_controller(client, config)
        try:
            report = await controller.import_csv(filepath)
        except ApiError as e:
            print(f"Import failed: {e}")
            return 1
    print(report.text)
    return 0 if report.success else 1


def cmd_import_csv(args: argparse.Namespace) -> int:
    """Bulk-import a statement file."""
    return asyncio.run(_import_csv(args))


async def _scan_receipt(args: argparse.Namespace) -> int:
    from smartbudget.api.client import ApiError
    from smartbudget.api.models import ValidationError

    filepath = args.file.resolve() if args.file else None
    if filepath is not None and not filepath.exists():
        print(f"Error: File not found: {filepath}")
        return 1

    config = _get_config()
    async with _get_client(config) as client:
        controller = _get_controller(client, config)
        try:
            report = await controller.scan_receipt(text=args.text, file_path=filepath)
        except ValidationError as e:
            print(f"Error: {e}")
            return 1
        except ApiError as e:
            print(f"Scan failed: {e}")
            return 1
    print(report.text)
    return 0 if report.success else 1


def cmd_scan_receipt(args: argparse.Namespace) -> int:
    """Scan receipt text or an image."""
    return asyncio.run(_scan_receipt(args))


def cmd_watch(args: argparse.Namespace) -> int:
    """Start the drop-folder watcher."""
    from smartbudget.watcher.observer import FileWatcher, UploadPipeline

    config = _get_config()
    pipeline = UploadPipeline(
        lambda: _get_client(config), max_errors=config.max_import_errors,
    )
    watcher = FileWatcher(
        config.watch_dir,
        pipeline,
        stability_seconds=config.stability_seconds,
        poll_interval=config.poll_interval,
    )
    watcher.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        watcher.stop()
    return 0


# ── Main entry point ─────────────────────────────────────


_COMMANDS = {
    "transactions": cmd_transactions,
    "dashboard": cmd_dashboard,
    "range": cmd_range,
    "report": cmd_report,
    "categorize": cmd_categorize,
    "add": cmd_add,
    "delete": cmd_delete,
    "import-csv": cmd_import_csv,
    "scan-receipt": cmd_scan_receipt,
    "watch": cmd_watch,
}

_RANGE_CHOICES = ["week", "month", "quarter", "year", "all", "custom"]


def _add_range_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--from", dest="date_from", help="Start date YYYY-MM-DD (switches to custom)")
    parser.add_argument("--to", dest="date_to", help="End date YYYY-MM-DD (switches to custom)")


def main(argv: list[str] | None = None):
    _setup_logging()

    parser = argparse.ArgumentParser(
        prog="smartbudget",
        description="SmartBudget personal finance client",
    )
    subparsers = parser.add_subparsers(dest="command")

    txn_p = subparsers.add_parser("transactions", help="List all transactions")
    txn_p.add_argument("--limit", type=int, default=0, help="Print at most N rows")

    subparsers.add_parser("dashboard", help="Summary cards and chart series")

    range_p = subparsers.add_parser("range", help="Resolve a report date range")
    range_p.add_argument("range", choices=_RANGE_CHOICES)
    _add_range_args(range_p)

    report_p = subparsers.add_parser("report", help="Fetch a server-computed report")
    report_p.add_argument("kind", nargs="?", default="all",
                          choices=["spending", "products", "monthly", "all"])
    report_p.add_argument("--range", choices=_RANGE_CHOICES, default="month")
    report_p.add_argument("--search", help="Search filter")
    _add_range_args(report_p)

    cat_p = subparsers.add_parser("categorize", help="Reassign a transaction's category")
    cat_p.add_argument("transaction_id", help="Transaction ID")
    cat_p.add_argument("name", help="Category name (created if missing)")
    cat_p.add_argument("--no-remember", action="store_true",
                       help="Don't save a rule for future imports")
    cat_p.add_argument("--no-apply-existing", action="store_true",
                       help="Don't reassign matching past transactions")

    add_p = subparsers.add_parser("add", help="Create a transaction")
    add_p.add_argument("--type", choices=["income", "expense"], default="expense")
    add_p.add_argument("--description", required=True)
    add_p.add_argument("--amount", required=True)
    add_p.add_argument("--category-id", type=int, required=True)
    add_p.add_argument("--date", help="Transaction date YYYY-MM-DD (default today)")

    del_p = subparsers.add_parser("delete", help="Delete a transaction")
    del_p.add_argument("transaction_id", help="Transaction ID")

    csv_p = subparsers.add_parser("import-csv", help="Bulk-import a statement file")
    csv_p.add_argument("file", type=Path, help="CSV, TXT or PDF statement")

    scan_p = subparsers.add_parser("scan-receipt", help="Scan a receipt")
    scan_p.add_argument("--file", type=Path, help="Receipt image or text file")
    scan_p.add_argument("--text", help="Receipt text")

    subparsers.add_parser("watch", help="Upload files dropped into the watch directory")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    handler = _COMMANDS.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}")
        sys.exit(1)

    sys.exit(handler(args))


if __name__ == "__main__":
    main()
