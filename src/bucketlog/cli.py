"""bucketlog command-line entrypoint."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections import Counter
from typing import IO, Any

from dotenv import load_dotenv

from .config import AppConfig, default_config_path, load_config
from .errors import BucketLogError
from .log.codec import decode
from .log.writer import EventLogWriter, WriteResult
from .replay.merger import HistoryReplayer

logger = logging.getLogger(__name__)


def _add_dashboard_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--host", default=None, help="Dashboard host override")
    parser.add_argument("--port", type=int, default=None, help="Dashboard port override")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="bucketlog", description="Hour-bucketed event log")
    parser.add_argument("--config", default=None, help="Path to config YAML (default: $BUCKETLOG_CONFIG)")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only warnings and errors")

    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Append JSON-line events to the live log")
    ingest.add_argument("input", nargs="?", default="-", help="JSONL file to read (default: stdin)")
    ingest.add_argument("--avoid-duplicates", action="store_true", help="Skip events whose _history_id is already logged")
    ingest.add_argument("--dashboard", action="store_true", help="Serve the dashboard for this writer while ingesting")
    _add_dashboard_args(ingest)

    replay = sub.add_parser("replay", help="Print every logged event in chronological order")
    replay.add_argument("--count", action="store_true", help="Only print replay statistics")

    sub.add_parser("files", help="List the replay file set in replay order")

    serve = sub.add_parser("serve", help="Run the read-only status dashboard (no writer attached)")
    _add_dashboard_args(serve)

    return parser.parse_args(argv)


def _configure_logging(args: argparse.Namespace) -> None:
    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


async def _ingest(
    writer: EventLogWriter,
    stream: IO[str],
    *,
    avoid_duplicates: bool,
    verbose: bool,
) -> Counter[str]:
    """Log every event read from `stream` until it ends or the writer stops.

    Reads happen off the event loop so the dashboard stays responsive; all
    writer calls stay on the loop thread.
    """
    counts: Counter[str] = Counter()
    while writer.is_accepting():
        line = await asyncio.to_thread(stream.readline)
        if not line:
            break
        event = decode(line)
        if event is None:
            continue
        result = writer.log_event(event, avoid_duplicates=avoid_duplicates, verbose=verbose)
        counts[result.value] += 1
        if result is WriteResult.BACKPRESSURE:
            writer.drain()
    if not writer.is_accepting():
        logger.warning("Writer stopped accepting; remaining input left unread")
    return counts


def _make_server(app: Any, config: AppConfig, host: str | None, port: int | None) -> Any:
    import uvicorn

    return uvicorn.Server(
        uvicorn.Config(
            app,
            host=host or config.dashboard.host,
            port=port or config.dashboard.port,
            log_level="warning",
        )
    )


async def _ingest_with_dashboard(
    config: AppConfig,
    writer: EventLogWriter,
    stream: IO[str],
    args: argparse.Namespace,
    avoid_duplicates: bool,
) -> Counter[str]:
    from .dashboard import create_app

    server = _make_server(create_app(config, writer_provider=lambda: writer), config, args.host, args.port)

    ingest_task = asyncio.create_task(
        _ingest(writer, stream, avoid_duplicates=avoid_duplicates, verbose=config.writer.verbose)
    )
    server_task = asyncio.create_task(server.serve())

    try:
        return await ingest_task
    finally:
        server.should_exit = True
        await server_task


def _run_ingest(config: AppConfig, stream: IO[str], args: argparse.Namespace) -> Counter[str]:
    avoid_duplicates = args.avoid_duplicates or config.writer.avoid_duplicates
    with EventLogWriter(config.log_path, high_water_mark=config.writer.high_water_mark) as writer:
        if args.dashboard:
            return asyncio.run(_ingest_with_dashboard(config, writer, stream, args, avoid_duplicates))
        return asyncio.run(
            _ingest(writer, stream, avoid_duplicates=avoid_duplicates, verbose=config.writer.verbose)
        )


def _print_event(event: dict[str, Any]) -> None:
    sys.stdout.write(json.dumps(event, ensure_ascii=True) + "\n")


async def _serve(config: AppConfig, host: str | None, port: int | None) -> None:
    from .dashboard import create_app

    await _make_server(create_app(config), config, host, port).serve()


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = _parse_args(argv)
    _configure_logging(args)

    config = load_config(args.config or default_config_path())

    try:
        if args.command == "ingest":
            if args.input == "-":
                counts = _run_ingest(config, sys.stdin, args)
            else:
                with open(args.input, "r", encoding="utf-8") as f:
                    counts = _run_ingest(config, f, args)
            print(json.dumps(dict(sorted(counts.items())), sort_keys=True))
            return 0

        if args.command == "replay":
            replayer = HistoryReplayer.from_config(config)
            consumer = (lambda event: None) if args.count else _print_event
            stats = asyncio.run(replayer.replay(consumer))
            if args.count:
                print(json.dumps(stats.__dict__, sort_keys=True))
            return 0

        if args.command == "files":
            for path in HistoryReplayer.from_config(config).list_replay_files():
                print(path)
            return 0

        if args.command == "serve":
            asyncio.run(_serve(config, args.host, args.port))
            return 0
    except BucketLogError as exc:
        logger.error("%s", exc)
        return 1

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
