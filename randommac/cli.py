from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import uvicorn

from randommac.config import (
    VERSION,
    apply_config,
    default_database_path,
    default_datasource_path,
    ensure_app_dir,
    load_config,
)
from randommac.datasource import DataSource, fetch_registry_source, load_datasource
from randommac.engine import Generated, MacEngine
from randommac.errors import InterfaceError, RandomMacError
from randommac.iface import apply_mac, current_mac, list_interfaces, require_root
from randommac.journal import ChangeJournal
from randommac.log import setup_logging
from randommac.oui import FORMATS, lookup_vendor
from randommac.storage import OuiStore


def _database_path(args: argparse.Namespace) -> Path:
    if args.database:
        return Path(args.database).expanduser()
    ensure_app_dir()
    return default_database_path()


def _datasource(args: argparse.Namespace) -> DataSource:
    path = Path(args.datasource).expanduser() if args.datasource else default_datasource_path()
    return load_datasource(path)


def _update(engine: MacEngine, args: argparse.Namespace) -> None:
    fmt = getattr(args, "format", None)
    file_path = getattr(args, "file", None)
    if file_path:
        # no --format: detected from the file contents
        raw = Path(file_path).expanduser().read_bytes()
        origin = str(file_path)
    else:
        source = _datasource(args)
        fmt = fmt or source.name
        raw = fetch_registry_source(source, timeout=getattr(args, "timeout", 30.0))
        origin = source.url
    summary = engine.update(raw, fmt=fmt, source=origin)
    print(f"Database updated, found {summary.records} entries ({summary.rejected} rejected)")


def _engine(args: argparse.Namespace) -> MacEngine:
    engine = MacEngine(OuiStore(_database_path(args)))
    if not engine.store.exists():
        print("Database not found, downloading...")
        _update(engine, args)
    return engine


def _require_root(args: argparse.Namespace) -> None:
    if not args.dry_run:
        require_root()


def _describe(generated: Generated) -> str:
    record = generated.record
    return f"{generated.mac} ({record.vendor_name}, {record}/{record.prefix_length})"


def _apply_each(
    args: argparse.Namespace,
    interfaces: list[str],
    generate,
) -> int:
    """Generate and apply one address per interface; returns the failure count."""
    failures = 0
    with ChangeJournal(args.jsonl) as journal:
        for iface in interfaces:
            try:
                old = current_mac(iface)
                generated = generate(old)
                apply_mac(iface, generated.mac, dry_run=args.dry_run)
            except InterfaceError as exc:
                print(f"Failed to update MAC address: {exc}", file=sys.stderr)
                failures += 1
                continue
            journal.record(iface, str(old), generated, dry_run=args.dry_run)
            prefix = "[dry-run] " if args.dry_run else ""
            print(f"{prefix}Updated MAC address of {iface} from {old} to {_describe(generated)}")
    return failures


def cmd_update(args: argparse.Namespace) -> None:
    engine = MacEngine(OuiStore(_database_path(args)))
    print("Updating database...")
    _update(engine, args)


def cmd_random_vendor(args: argparse.Namespace) -> None:
    engine = _engine(args)
    if not args.interface:
        generated = engine.generate(vendor=args.vendor)
        print(f"Random MAC address: {_describe(generated)}")
        if generated.candidates > 1:
            print(f"({generated.candidates} prefixes match {args.vendor!r})")
        return
    _require_root(args)
    failures = _apply_each(args, args.interface, lambda _old: engine.generate(vendor=args.vendor))
    if failures:
        raise SystemExit(1)


def cmd_random_prefix(args: argparse.Namespace) -> None:
    engine = _engine(args)
    if not args.interface:
        generated = engine.generate(prefix=args.prefix)
        print(f"Random MAC address: {_describe(generated)}")
        return
    _require_root(args)
    failures = _apply_each(args, args.interface, lambda _old: engine.generate(prefix=args.prefix))
    if failures:
        raise SystemExit(1)


def cmd_random_interface(args: argparse.Namespace) -> None:
    engine = _engine(args)
    if args.change:
        _require_root(args)
        failures = _apply_each(args, args.interface, lambda old: engine.generate(current_mac=old))
        if failures:
            raise SystemExit(1)
        return

    failures = 0
    with ChangeJournal(args.jsonl) as journal:
        for iface in args.interface:
            try:
                old = current_mac(iface)
            except InterfaceError as exc:
                print(f"Failed to get MAC address: {exc}", file=sys.stderr)
                failures += 1
                continue
            generated = engine.generate(current_mac=old)
            if generated.fallback:
                print(f"No registered vendor found for {iface} ({old}), using a random vendor")
            journal.record(iface, str(old), generated, dry_run=True)
            print(f"MAC address for interface {iface}: {_describe(generated)}")
    if failures:
        raise SystemExit(1)


def cmd_search(args: argparse.Namespace) -> None:
    engine = _engine(args)
    matches = engine.load().find_by_vendor_substring(args.query)
    shown = matches[: args.limit] if args.limit else matches
    for record in shown:
        print(f"{str(record):<14} /{record.prefix_length:<3} {record.block_type:<5} {record.vendor_name}")
    if len(shown) < len(matches):
        print(f"... {len(matches) - len(shown)} more")


def cmd_lookup(args: argparse.Namespace) -> None:
    engine = _engine(args)
    record = engine.lookup(args.mac)
    if record is None:
        raise SystemExit(f"No registered vendor found for {args.mac}")
    print(f"{args.mac}: {record.vendor_name} ({record}/{record.prefix_length} {record.block_type})")


def cmd_interfaces(args: argparse.Namespace) -> None:
    store = OuiStore(_database_path(args))
    database = store.load() if store.exists() else None
    for entry in list_interfaces():
        vendor = lookup_vendor(entry["mac"], database) if database else None
        print(f"{entry['iface']:>10} mac={entry['mac']:<17} vendor={vendor or '-'}")


def cmd_stats(args: argparse.Namespace) -> None:
    stats = OuiStore(_database_path(args)).stats()
    updated = datetime.fromtimestamp(stats["updated_at"]).isoformat(timespec="seconds") if stats["updated_at"] else "-"
    print(f"database: {stats['path']}")
    print(f"records:  {stats['records']}")
    for block, count in sorted(stats["blocks"].items()):
        print(f"  {block:<6} {count}")
    print(f"source:   {stats['source'] or '-'}")
    print(f"updated:  {updated}")


def cmd_web(args: argparse.Namespace) -> None:
    os.environ["RANDOM_MAC_DATABASE"] = str(_database_path(args))
    print(f"[*] Starting web API on {args.host}:{args.port}")
    uvicorn.run("randommac.web.api:app", host=args.host, port=args.port, reload=False)


def _add_apply_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--dry-run", action="store_true", help="Show the change without applying it")
    parser.add_argument("--jsonl", help="Append generated addresses to a JSONL journal")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="random-mac",
        description="Generate vendor-plausible random MAC addresses.",
    )
    parser.add_argument("--database", help="Path to the database file")
    parser.add_argument("--datasource", help="Path to the datasource file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"random-mac {VERSION}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    update_parser = subparsers.add_parser("update", help="Update the database")
    update_parser.add_argument("--format", choices=FORMATS, help="Registry format (default: from datasource)")
    update_parser.add_argument("--file", help="Read the registry from a local file instead")
    update_parser.add_argument("--timeout", type=float, default=30.0, help="Download timeout seconds")
    update_parser.set_defaults(func=cmd_update)

    random_parser = subparsers.add_parser("random", help="Generates a random MAC address")
    random_sub = random_parser.add_subparsers(dest="mode", required=True)

    vendor_parser = random_sub.add_parser("vendor", help="Generates a random MAC address from a vendor")
    vendor_parser.add_argument("vendor", help="Vendor name (case-insensitive substring)")
    vendor_parser.add_argument("interface", nargs="*", help="Change the MAC address for interface")
    _add_apply_options(vendor_parser)
    vendor_parser.set_defaults(func=cmd_random_vendor)

    prefix_parser = random_sub.add_parser("prefix", help="Generates a random MAC address from a prefix")
    prefix_parser.add_argument("prefix", help="MAC address prefix to use (e.g. AC:DE:48)")
    prefix_parser.add_argument("interface", nargs="*", help="Change the MAC address for interface")
    _add_apply_options(prefix_parser)
    prefix_parser.set_defaults(func=cmd_random_prefix)

    iface_parser = random_sub.add_parser(
        "interface", help="Generates a random MAC address matching the interfaces' current vendor"
    )
    iface_parser.add_argument("-c", "--change", action="store_true", help="Change the MAC address")
    iface_parser.add_argument("interface", nargs="+", help="Interfaces to use")
    _add_apply_options(iface_parser)
    iface_parser.set_defaults(func=cmd_random_interface)

    search_parser = subparsers.add_parser("search", help="List prefixes whose vendor matches")
    search_parser.add_argument("query", help="Vendor name (case-insensitive substring)")
    search_parser.add_argument("--limit", type=int, default=50, help="Rows shown (0 for all)")
    search_parser.set_defaults(func=cmd_search)

    lookup_parser = subparsers.add_parser("lookup", help="Show the vendor of a MAC address")
    lookup_parser.add_argument("mac", help="MAC address")
    lookup_parser.set_defaults(func=cmd_lookup)

    interfaces_parser = subparsers.add_parser("interfaces", help="List interfaces with their vendor")
    interfaces_parser.set_defaults(func=cmd_interfaces)

    stats_parser = subparsers.add_parser("stats", help="Show database statistics")
    stats_parser.set_defaults(func=cmd_stats)

    web_parser = subparsers.add_parser("web", help="Serve the REST API")
    web_parser.add_argument("--host", default="127.0.0.1", help="Bind host")
    web_parser.add_argument("--port", type=int, default=8000, help="Bind port")
    web_parser.set_defaults(func=cmd_web)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    apply_config(parser, load_config())
    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)
    try:
        args.func(args)
    except RandomMacError as exc:
        raise SystemExit(f"error: {exc}") from exc
    except OSError as exc:
        raise SystemExit(f"error: {exc}") from exc
    return 0


if __name__ == "__main__":
    sys.exit(main())
