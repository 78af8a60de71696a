"""Run the deadline notifier against an events file, or manage alert state."""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from deadline_engine.adapters import csv_adapter, json_adapter
from deadline_engine.channels import DesktopAlertChannel, NullAlertChannel
from deadline_engine.config import Settings, get_settings
from deadline_engine.dispatcher import Alert, AlertDispatcher
from deadline_engine.keys import parse_key
from deadline_engine.logger import logger, setup_logging
from deadline_engine.schema import PREFERENCE_FLAGS
from deadline_engine.service import NotificationService
from deadline_engine.stores.sqlite_store import SqliteStore


def _load_events(path: Path):
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return csv_adapter.parse(str(path))
    if suffix == ".json":
        return json_adapter.parse(str(path))
    raise ValueError("Unsupported input format, expected .csv or .json")


def _print_alert(alert: Alert) -> None:
    candidate = alert.candidate
    marker = "!!" if alert.variant == "destructive" else "--"
    print(f"{marker} {candidate.title}")
    print(f"   {candidate.body}")
    print(f"   key: {alert.key}  actions: {', '.join(alert.actions)}")


def _parse_assignments(items: list[str]) -> dict[str, bool]:
    changes = {}
    for item in items:
        name, sep, value = item.partition("=")
        if not sep or name not in PREFERENCE_FLAGS:
            raise ValueError(f"Expected one of {list(PREFERENCE_FLAGS)} as name=true|false, got '{item}'")
        changes[name] = value.strip().lower() in ("1", "true", "yes", "on", "y")
    return changes


def _dispatcher(store: SqliteStore, settings: Settings) -> AlertDispatcher:
    channel = DesktopAlertChannel() if settings.desktop_alerts else NullAlertChannel()
    return AlertDispatcher(
        store,
        settings.user_id,
        channel,
        toast=_print_alert,
        clock=settings.now,
        retries=settings.write_retries,
        retry_base_delay=settings.retry_base_delay,
    )


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    data_path = Path(args.data)
    _load_events(data_path)  # fail fast on a bad file

    async with SqliteStore(settings.db_path) as store:
        service = NotificationService(
            store,
            _dispatcher(store, settings),
            lambda: _load_events(data_path),
            user_id=settings.user_id,
            clock=settings.now,
            scan_interval=0 if args.once else settings.scan_interval_seconds,
            settle_delay=0 if args.once else settings.settle_delay_seconds,
        )

        shutdown_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, shutdown_event.set)
            except NotImplementedError:
                pass  # Windows
        await service.run(shutdown_event)
    return 0


async def _write(args: argparse.Namespace, settings: Settings) -> int:
    parse_key(args.key)
    async with SqliteStore(settings.db_path) as store:
        dispatcher = _dispatcher(store, settings)
        if args.command == "snooze":
            result = await dispatcher.snooze(args.key, args.hours)
        else:
            result = await dispatcher.dismiss(args.key)
    if not result.ok:
        print(f"Failed to save: {result.error}")
        return 1
    until = result.dismissed_until.isoformat() if result.dismissed_until else "forever"
    print(f"{args.key} suppressed until {until}")
    return 0


async def _undismiss(args: argparse.Namespace, settings: Settings) -> int:
    parse_key(args.key)
    async with SqliteStore(settings.db_path) as store:
        await store.clear_dismissal(settings.user_id, args.key)
    print(f"{args.key} may fire again")
    return 0


async def _prefs(args: argparse.Namespace, settings: Settings) -> int:
    async with SqliteStore(settings.db_path) as store:
        if args.set:
            preferences = await store.update_preferences(settings.user_id, **_parse_assignments(args.set))
        else:
            preferences = await store.get_preferences(settings.user_id)
    for name in PREFERENCE_FLAGS:
        print(f"{name}: {getattr(preferences, name)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Deadline reminder notifier")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Scan an events file and raise alerts")
    run.add_argument("--data", required=True, help="Path to CSV/JSON events file")
    run.add_argument("--once", action="store_true", help="Scan a single time and exit")

    snooze = sub.add_parser("snooze", help="Snooze a notification key")
    snooze.add_argument("key")
    snooze.add_argument("hours", type=float)

    dismiss = sub.add_parser("dismiss", help="Dismiss a notification key permanently")
    dismiss.add_argument("key")

    undismiss = sub.add_parser("undismiss", help="Let a dismissed key fire again")
    undismiss.add_argument("key")

    prefs = sub.add_parser("prefs", help="Show or change notification preferences")
    prefs.add_argument("--set", nargs="*", metavar="NAME=BOOL", help="e.g. sound_enabled=false")

    return parser


def main() -> None:
    args = build_parser().parse_args()
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)

    handlers = {"run": _run, "snooze": _write, "dismiss": _write, "undismiss": _undismiss, "prefs": _prefs}
    try:
        code = asyncio.run(handlers[args.command](args, settings))
    except ValueError as exc:
        logger.error(f"Input error: {exc}")
        code = 2
    sys.exit(code)


if __name__ == "__main__":
    main()
