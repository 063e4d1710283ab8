import argparse
import asyncio
import json
import os
import sys
import uuid as _uuid
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

from config.settings import get_settings
from db import schema
from db.connection import get_connection
from db.repos.store_repo import StoreRepo
from extraction.page import InMemoryPage
from models import OBJECT_TYPE_PARTITIONS
from protocol import BrowserTab, ExtractionExecutor, ExtractionOrchestrator, MessageBus
from services.export import export_csv, export_json
from services.reporting import print_summary
from utils.logging_setup import init_logging


def _open_repo(args, settings=None):
    conn = get_connection(args.db)
    schema.bootstrap(conn)
    return StoreRepo(conn, settings or get_settings())


def _load_page(args) -> InMemoryPage:
    html = Path(args.html).read_text(encoding="utf-8") if args.html else ""
    text = Path(args.text).read_text(encoding="utf-8") if args.text else None
    return InMemoryPage(url=args.url, html=html, text=text)


def _page_settings(args):
    settings = get_settings()
    if getattr(args, "settle_ms", None) is not None:
        settings = replace(settings, settle_mode="fixed", settle_delay_ms=args.settle_ms)
    return settings


def cmd_bootstrap(args):
    conn = get_connection(args.db)
    schema.bootstrap(conn)
    print("Schema ready")


def cmd_extract(args):
    if not os.getenv("RUN_ID"):
        os.environ["RUN_ID"] = _uuid.uuid4().hex
    settings = _page_settings(args)
    repo = _open_repo(args, settings)
    bus = MessageBus()
    tab = BrowserTab(tab_id=1, page=_load_page(args), bus=bus, settings=settings)
    orchestrator = ExtractionOrchestrator(repo, bus, settings)

    outcome = asyncio.run(orchestrator.request_extract(tab))
    if args.json:
        print(json.dumps(outcome.to_response(), indent=2, ensure_ascii=False))
    else:
        print_summary(outcome, repo.load().count())
    if not outcome.ok:
        sys.exit(1)


def cmd_list(args):
    repo = _open_repo(args)
    records = repo.list(args.type)
    if args.json:
        print(json.dumps([r.to_wire() for r in records], indent=2, ensure_ascii=False))
        return
    if not records:
        print("No records")
        return
    # Most recently extracted first, like the record cards
    for r in sorted(records, key=lambda x: x.last_updated, reverse=True):
        title = r.data.get("name") or r.data.get("subject") or "-"
        updated = datetime.fromtimestamp(r.last_updated / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")
        parent = f" parent={r.parent_id}" if r.parent_id else ""
        print(f"{r.object_type:<12} {r.id:<18} {title} ({updated}){parent}")


def cmd_delete(args):
    repo = _open_repo(args)
    if repo.delete_record(args.type, args.id):
        print(f"Deleted {args.type} {args.id}")
        return
    print(f"No {args.type} with id {args.id}")
    sys.exit(1)


def cmd_export(args):
    repo = _open_repo(args)
    store = repo.load()
    if store.count() == 0:
        print("No records to export")
        sys.exit(1)
    body = export_csv(store) if args.format == "csv" else export_json(store)
    if args.output:
        # newline="" keeps the CSV writer's CRLF row endings intact
        Path(args.output).write_text(body, encoding="utf-8", newline="")
        print(f"Exported {store.count()} records to {args.output}")
    else:
        sys.stdout.write(body)
        if not body.endswith("\n"):
            sys.stdout.write("\n")


def cmd_debug_lines(args):
    settings = _page_settings(args)
    executor = ExtractionExecutor(_load_page(args), MessageBus(), tab_id=0, settings=settings)
    probe = executor.debug_probe()
    if args.extract:
        result = asyncio.run(probe.run_extraction())
        print(json.dumps({
            "record": result.to_payload(),
            "relatedRecords": [r.to_wire() for r in result.related_records],
        }, indent=2, ensure_ascii=False))
        return
    if args.label:
        value = probe.find_by_label(args.label, partial=args.partial)
        print(value if value is not None else f'"{args.label}" NOT FOUND')
        return
    for i, line in enumerate(probe.page_lines()):
        print(f"{i:4d}  {line}")


def main():
    settings = get_settings()
    init_logging(settings.log_level)
    parser = argparse.ArgumentParser(description="CRM record extractor CLI")
    parser.add_argument("--db", default=settings.db_path, help="Path to SQLite DB (default from settings)")
    sub = parser.add_subparsers(dest="cmd", required=True)
    object_types = list(OBJECT_TYPE_PARTITIONS)

    p_boot = sub.add_parser("bootstrap", help="Create the store table")
    p_boot.set_defaults(func=cmd_bootstrap)

    def _page_args(p):
        p.add_argument("--url", required=True, help="Address of the record page")
        src = p.add_mutually_exclusive_group(required=True)
        src.add_argument("--html", help="Path to the saved page HTML")
        src.add_argument("--text", help="Path to the page's visible text")
        p.add_argument("--settle-ms", type=int, default=None, help="Fixed settle delay override in ms")

    p_ext = sub.add_parser("extract", help="Extract one record page and merge it into the store")
    _page_args(p_ext)
    p_ext.add_argument("--json", action="store_true", help="Print the response object as JSON")
    p_ext.set_defaults(func=cmd_extract)

    p_ls = sub.add_parser("list", help="List stored records")
    p_ls.add_argument("--type", choices=object_types, default=None, help="Only this object type")
    p_ls.add_argument("--json", action="store_true", help="Print records as JSON")
    p_ls.set_defaults(func=cmd_list)

    p_del = sub.add_parser("delete", help="Delete one stored record")
    p_del.add_argument("--type", choices=object_types, required=True)
    p_del.add_argument("--id", required=True)
    p_del.set_defaults(func=cmd_delete)

    p_exp = sub.add_parser("export", help="Export the store")
    p_exp.add_argument("--format", choices=["json", "csv"], default="json")
    p_exp.add_argument("--output", "-o", default=None, help="Write to this file instead of stdout")
    p_exp.set_defaults(func=cmd_export)

    p_dbg = sub.add_parser("debug-lines", help="Show a page's lines or resolve one label")
    _page_args(p_dbg)
    p_dbg.add_argument("--label", default=None, help="Resolve this label against the page")
    p_dbg.add_argument("--partial", action="store_true", help="Starts-with label match")
    p_dbg.add_argument("--extract", action="store_true", help="Run the page's extractor and print the record")
    p_dbg.set_defaults(func=cmd_debug_lines)

    args = parser.parse_args()
    args.func(args)


if __name__ == "__main__":
    main()
