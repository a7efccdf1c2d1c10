"""CLI entry point for the ledger."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from dotenv import load_dotenv

from .backup import export_backup, import_backup
from .classifier import CategoryClassifier, Tier
from .codec import format_price
from .config import LedgerConfig, load_config
from .dates import day_range, parse_date
from .db.store import LedgerStore
from .errors import StorageFault
from .models import LineItemRecord
from .validation import validate_expense

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="kharchaji-ledger",
        description="Daily expense ledger: record, total and snapshot expenses",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to the TOML config file",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command")

    # add
    add_parser = sub.add_parser("add", help="Add an expense")
    add_parser.add_argument("name", type=str)
    add_parser.add_argument("price", type=str)
    add_parser.add_argument("--quantity", "-q", type=str, default=None)
    add_parser.add_argument(
        "--category", type=str, action="append", default=[], help="Repeatable"
    )
    add_parser.add_argument("--date", type=str, default=None, help="YYYY-MM-DD")

    # list
    list_parser = sub.add_parser("list", help="List expenses for a day")
    list_parser.add_argument("--date", type=str, default=None)
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # total
    total_parser = sub.add_parser("total", help="Total for a day")
    total_parser.add_argument("--date", type=str, default=None)

    # classify
    classify_parser = sub.add_parser("classify", help="Show category tiers")
    classify_parser.add_argument("categories", type=str, nargs="+")

    # categories
    sub.add_parser("categories", help="List used categories by tier")
    rename_parser = sub.add_parser("rename-category", help="Rename a category everywhere")
    rename_parser.add_argument("old", type=str)
    rename_parser.add_argument("new", type=str)
    delete_cat_parser = sub.add_parser("delete-category", help="Remove a category everywhere")
    delete_cat_parser.add_argument("name", type=str)

    # save
    save_parser = sub.add_parser("save", help="Save the day into its master snapshot")
    save_parser.add_argument("--date", type=str, default=None)

    # export / import
    export_parser = sub.add_parser("export", help="Write a backup archive")
    export_parser.add_argument("file", type=str, nargs="?", default=None)
    import_parser = sub.add_parser("import", help="Replace all data from a backup")
    import_parser.add_argument("file", type=str)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    load_dotenv()
    config = load_config(args.config)

    if args.command == "classify":
        _cmd_classify(config, args)
        return

    store = LedgerStore.from_config(config)
    try:
        match args.command:
            case "add":
                _cmd_add(store, args)
            case "list":
                _cmd_list(store, args)
            case "total":
                _cmd_total(store, args)
            case "save":
                _cmd_save(store, args)
            case "export":
                path = export_backup(store, args.file, directory=config.backup.directory)
                print(f"Backup written to {path}")
            case "categories":
                _cmd_categories(store)
            case "rename-category":
                items, snapshots = store.rename_category(args.old, args.new)
                print(f"Renamed on {items} expenses and {snapshots} snapshots")
            case "delete-category":
                items, snapshots = store.delete_category(args.name)
                print(f"Removed from {items} expenses and {snapshots} snapshots")
            case "import":
                try:
                    items, snapshots = import_backup(store, args.file)
                except ValueError as e:
                    print(f"Invalid backup: {e}", file=sys.stderr)
                    sys.exit(1)
                print(f"Restored {items} expenses and {snapshots} snapshots")
    except StorageFault:
        logger.exception("Storage operation failed")
        sys.exit(2)
    finally:
        store.close()


def _cmd_add(store: LedgerStore, args) -> None:
    result = validate_expense(args.name, args.price)
    if not result.is_valid:
        print(result.error_message, file=sys.stderr)
        sys.exit(1)

    day = parse_date(args.date)
    start, _ = day_range(day)
    item = LineItemRecord(
        name=args.name.strip(),
        price=float(args.price),
        quantity=args.quantity,
        categories=[c.strip() for c in args.category if c.strip()],
    )
    if args.date:
        item.timestamp_ms = start
    item_id = store.insert(item)
    print(f"#{item_id} {item.descriptor_text}")


def _cmd_list(store: LedgerStore, args) -> None:
    items = store.get_items_for_date(parse_date(args.date))
    if args.json:
        data = [
            {
                "id": i.id,
                "name": i.name,
                "quantity": i.quantity,
                "price": i.price,
                "categories": i.categories,
                "done": i.is_done,
            }
            for i in items
        ]
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return

    if not items:
        print("No expenses recorded.")
        return
    for i in items:
        mark = "x" if i.is_done else " "
        print(f"  [{mark}] #{i.id} {i.descriptor_text}")


def _cmd_total(store: LedgerStore, args) -> None:
    day = parse_date(args.date)
    items = store.get_items_for_date(day)
    total = sum(i.price for i in items)
    print(f"{day.isoformat()}: ₹{format_price(total)} ({len(items)} items)")


def _cmd_save(store: LedgerStore, args) -> None:
    day = parse_date(args.date)
    regular, master = store.save_to_master(day, store.get_items_for_date(day))
    if not (regular or master):
        print("Nothing to save.")
        return
    if regular:
        print("Saved a new snapshot.")
    print("Master snapshot updated." if master else "Master snapshot unchanged.")


def _print_tiers(primary: list[str], secondary: list[str], tertiary: list[str]) -> None:
    for label, names in (
        ("Primary", primary),
        ("Secondary", secondary),
        ("Tertiary", tertiary),
    ):
        print(f"{label}: {', '.join(names) if names else '-'}")


def _cmd_classify(config: LedgerConfig, args) -> None:
    classifier = CategoryClassifier.from_config(config.classifier)
    _print_tiers(*classifier.bucketize(args.categories))


def _cmd_categories(store: LedgerStore) -> None:
    tiers = store.get_categories_by_tier()
    _print_tiers(tiers[Tier.PRIMARY], tiers[Tier.SECONDARY], tiers[Tier.TERTIARY])
