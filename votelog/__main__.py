"""CLI entry point for votelog."""

import argparse
import asyncio
import json
import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path

from .codec import ENCODING_VERSION, Vote
from .config import IMPORT_POLICIES, Config, load_config
from .errors import VoteLogError
from .importer import ImportPolicy, import_csv
from .log import UserLog
from .store import ListStore, create_store
from .sync import iter_pages

logger = logging.getLogger("votelog")


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = "".join(traceback.format_exception(*record.exc_info))

        try:
            return json.dumps(log_data)
        except (TypeError, ValueError):
            log_data["message"] = str(log_data["message"])
            return json.dumps(log_data)


def setup_logging(verbose: bool = False, log_level: str | None = None, json_output: bool = False) -> None:
    """Configure logging.

    Args:
        verbose: Enable debug logging (ignored if log_level is set).
        log_level: Explicit log level (warning, info, debug).
        json_output: Output logs as JSON lines for machine parsing.
    """
    if log_level:
        level_map = {
            "warning": logging.WARNING,
            "info": logging.INFO,
            "debug": logging.DEBUG,
        }
        level = level_map.get(log_level, logging.INFO)
    else:
        level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=level,
        handlers=[handler],
        force=True,
    )


def _resolve_config(args: argparse.Namespace) -> Config:
    """Load the config file and apply command line overrides."""
    config = load_config(args.config)
    if args.redis:
        config.store.backend = "redis"
        redis_url = args.redis
        if "://" not in redis_url:
            redis_url = f"redis://{redis_url}"
        config.store.redis_url = redis_url
    return config


def _open_log(config: Config) -> UserLog:
    """Connect to the store, check it answers and claim the encoding.

    Raises:
        VoteLogError: If the store is unreachable or holds another encoding.
    """
    store: ListStore = create_store(config.store)
    if not store.ping():
        store.close()
        raise VoteLogError(f"List store '{config.store.backend}' is not reachable")

    log = UserLog(store)
    try:
        log.ensure_encoding()
    except VoteLogError:
        store.close()
        raise
    return log


async def cmd_serve(args: argparse.Namespace) -> int:
    """Start the HTTP server."""
    import uvicorn

    from .api import create_app

    config = _resolve_config(args)
    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port

    log = _open_log(config)

    print("Starting votelog server")
    print(f"Store: {config.store.backend} (encoding: {ENCODING_VERSION})")
    print(f"URL: http://{config.server.host}:{config.server.port}")

    app = create_app(config, log)

    try:
        config_uvicorn = uvicorn.Config(
            app,
            host=config.server.host,
            port=config.server.port,
            log_level="info" if args.verbose else "warning",
        )
        server = uvicorn.Server(config_uvicorn)
        await server.serve()
    finally:
        log.store.close()

    return 0


def cmd_import(args: argparse.Namespace) -> int:
    """Import votes from a CSV file."""
    config = _resolve_config(args)
    policy = ImportPolicy(args.on_error or config.importer.on_error)

    log = _open_log(config)
    try:
        stats = import_csv(
            log,
            args.file,
            policy=policy,
            progress_every=config.importer.progress_every,
        )
    except FileNotFoundError as e:
        print(f"Could not open csv file: {e}", file=sys.stderr)
        return 1
    finally:
        log.store.close()

    print(f"Imported {stats.imported} votes from {stats.lines} lines", end="")
    if stats.skipped:
        print(f" ({stats.skipped} rows skipped)")
    else:
        print()
    return 0


def cmd_read(args: argparse.Namespace) -> int:
    """Read a user's votes straight from the store."""
    config = _resolve_config(args)
    log = _open_log(config)

    next_sync_id = max(args.sync_id, 0)
    try:
        for page in iter_pages(log, args.user, args.sync_id, args.page_size):
            for vote in page.votes:
                print(f"{vote.action}\t{vote.target}")
            next_sync_id = page.next_sync_id
    finally:
        log.store.close()

    print(f"nextSyncId={next_sync_id}", file=sys.stderr)
    return 0


async def cmd_follow(args: argparse.Namespace) -> int:
    """Follow a user's votes on a running server."""
    from .client import FetchStatus, VoteClient

    config = _resolve_config(args)
    url = args.url or f"http://localhost:{config.server.port}"
    client = VoteClient(url)
    client.seek(args.user, args.sync_id)

    def show(votes: list[Vote], next_sync_id: int) -> None:
        for vote in votes:
            print(f"{vote.action}\t{vote.target}")
        print(f"nextSyncId={next_sync_id}", file=sys.stderr)

    if args.once:
        result = await client.poll(args.user)
        if result.status != FetchStatus.SUCCESS:
            print(f"Error: {result.error}", file=sys.stderr)
            return 1
        show(result.votes, result.next_sync_id)
        return 0

    await client.follow(args.user, show, interval_seconds=args.interval)
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Check the configured store."""
    config = _resolve_config(args)

    store = create_store(config.store)
    try:
        reachable = store.ping()
        encoding = None
        compatible = None
        if reachable:
            log = UserLog(store)
            try:
                encoding = log.ensure_encoding()
                compatible = True
            except VoteLogError as e:
                encoding = getattr(e, "found", None)
                compatible = False
    finally:
        store.close()

    status_data = {
        "timestamp": datetime.now().isoformat(),
        "store": {
            "backend": config.store.backend,
            "location": (
                config.store.redis_url
                if config.store.backend == "redis"
                else config.store.sqlite_path
            ),
            "reachable": reachable,
        },
        "encoding": {
            "expected": ENCODING_VERSION,
            "stored": encoding,
            "compatible": compatible,
        },
    }

    if args.json:
        print(json.dumps(status_data, indent=2))
    else:
        store_status = status_data["store"]
        print("votelog Status Check")
        print("====================")
        print(f"Store ({store_status['backend']}, {store_status['location']}):")
        if reachable:
            print("  Status: Reachable")
            print(f"  Encoding: {encoding} (expected {ENCODING_VERSION})")
            if not compatible:
                print("  Encoding mismatch: refusing to read or write this store")
        else:
            print("  Status: Not reachable")

    return 0 if reachable and compatible else 1


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="votelog",
        description="Append-only per-user vote logs with incremental sync",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to config file (default: none, built-in defaults)",
    )
    parser.add_argument(
        "--redis",
        type=str,
        default=None,
        help="Address of the redis server (host:port or redis:// URL)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["warning", "info", "debug"],
        default=None,
        help="Set log level explicitly (overrides -v/--verbose)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Output logs as JSON for machine parsing",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start the HTTP server")
    serve_parser.add_argument("--host", type=str, default=None, help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=None, help="Port to bind to")
    serve_parser.set_defaults(func=cmd_serve)

    # Import command
    import_parser = subparsers.add_parser("import", help="Import votes from a CSV file")
    import_parser.add_argument(
        "file",
        type=Path,
        help="CSV file, each record with 3 fields: userId,action,target",
    )
    import_parser.add_argument(
        "--on-error",
        choices=IMPORT_POLICIES,
        default=None,
        help="Abort on the first malformed row or skip it (default: from config)",
    )
    import_parser.set_defaults(func=cmd_import)

    # Read command
    read_parser = subparsers.add_parser("read", help="Read a user's votes from the store")
    read_parser.add_argument("user", help="User id")
    read_parser.add_argument("--sync-id", type=int, default=0, help="Cursor to read from")
    read_parser.add_argument(
        "--page-size", type=int, default=None, help="Votes per page (default: all)"
    )
    read_parser.set_defaults(func=cmd_read)

    # Follow command
    follow_parser = subparsers.add_parser("follow", help="Poll a running server for new votes")
    follow_parser.add_argument("user", help="User id")
    follow_parser.add_argument("--url", default=None, help="Server URL")
    follow_parser.add_argument("--sync-id", type=int, default=0, help="Cursor to start from")
    follow_parser.add_argument(
        "--interval", type=float, default=5.0, help="Seconds between polls"
    )
    follow_parser.add_argument("--once", action="store_true", help="Poll once and exit")
    follow_parser.set_defaults(func=cmd_follow)

    # Status command
    status_parser = subparsers.add_parser("status", help="Check store connectivity")
    status_parser.add_argument(
        "--json",
        action="store_true",
        help="Output status as JSON",
    )
    status_parser.set_defaults(func=cmd_status)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = _resolve_config(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(
        args.verbose,
        args.log_level or (None if args.verbose else config.logging.level),
        args.json_logs or config.logging.json,
    )

    func = args.func
    try:
        if asyncio.iscoroutinefunction(func):
            return asyncio.run(func(args))
        return func(args)
    except KeyboardInterrupt:
        print("\nStopped")
        return 0
    except VoteLogError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
