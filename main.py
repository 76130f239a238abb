#!/usr/bin/env python3
"""feedbrief: AI summaries for Miniflux entries, delivered by webhook.

Miniflux posts new entries to the webhook server, which verifies the
signature and stages them in a durable SQLite queue. A drain cycle,
triggered on a timer, summarizes each staged entry and writes the summary
back into the entry's content through the Miniflux API.

Commands:
    serve       Run the webhook server (with the drain loop unless --no-drain)
    drain       Run a single drain cycle and print its stats
    run         Drain once, or continuously with -c (no webhook server)
    status      Show configuration and queue statistics
    pending     List entries still waiting in the queue

Examples:
    python main.py serve                  # Webhook + drain every 5 minutes
    python main.py serve --no-drain       # Webhook only; drain from cron
    python main.py drain                  # One cycle (e.g. from cron)
    python main.py run -c --interval 60   # Drain loop only
    python main.py pending --limit 50

Environment:
    MINIFLUX_URL, MINIFLUX_USERNAME, MINIFLUX_PASSWORD,
    MINIFLUX_WEBHOOK_SECRET, CF_AI_URL, CF_AI_TOKEN
    See config.py for all configuration options
"""

import argparse
import asyncio
import contextlib
import json
import logging
import sys
from dataclasses import replace
from datetime import datetime

from config import Config
from entry_queue import EntryQueue
from observability.logging import setup_logging
from observability.tracing import setup_tracing

logger = logging.getLogger(__name__)


def cmd_serve(args: argparse.Namespace, config: Config) -> int:
    """Run the webhook server, optionally with the periodic drain loop.

    Args:
        args: Parsed command line arguments
        config: Application configuration

    Returns:
        Exit code (0 for success)
    """
    from aiohttp import web
    from pipeline import run_continuous
    from webhook import create_app

    overrides = {}
    if args.host:
        overrides["host"] = args.host
    if args.port:
        overrides["port"] = args.port
    if args.interval:
        overrides["poll_interval_seconds"] = args.interval
    config = replace(config, **overrides)

    queue = EntryQueue(config.queue_path)
    app = create_app(config, queue)

    if not args.no_drain:
        async def drain_loop(app: web.Application):
            task = asyncio.create_task(run_continuous(config, queue))
            yield
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        app.cleanup_ctx.append(drain_loop)

    logger.info(
        "Webhook server starting | host=%s port=%d path=%s drain=%s",
        config.host, config.port, config.webhook_path, "off" if args.no_drain else "on",
    )
    try:
        web.run_app(app, host=config.host, port=config.port, print=None)
        return 0
    except Exception as e:
        logger.error("Server failed | error=%s type=%s", e, type(e).__name__, exc_info=True)
        return 1
    finally:
        queue.close()


def cmd_drain(args: argparse.Namespace, config: Config) -> int:
    """Run one drain cycle.

    Args:
        args: Parsed command line arguments
        config: Application configuration

    Returns:
        Exit code (0 for success)
    """
    from pipeline import run_once

    try:
        stats = asyncio.run(run_once(config))
    except KeyboardInterrupt:
        logger.info("Stopped by user (Ctrl+C)")
        return 130
    print(json.dumps(stats, indent=2))
    return 0


def cmd_run(args: argparse.Namespace, config: Config) -> int:
    """Drain once, or keep draining on the poll interval.

    Args:
        args: Parsed command line arguments
        config: Application configuration

    Returns:
        Exit code (0 for success)
    """
    from pipeline import run_once, run_continuous

    if args.interval:
        config = replace(config, poll_interval_seconds=args.interval)

    try:
        if args.continuous:
            asyncio.run(run_continuous(config))
        else:
            stats = asyncio.run(run_once(config))
            logger.info("Run complete | stats=%s", json.dumps(stats))
        return 0
    except KeyboardInterrupt:
        logger.info("Stopped by user (Ctrl+C)")
        return 130  # Standard exit code for SIGINT
    except Exception as e:
        logger.error("Drain failed | error=%s type=%s", e, type(e).__name__, exc_info=True)
        return 1


def cmd_status(args: argparse.Namespace, config: Config) -> int:
    """Display configuration and queue statistics."""
    with EntryQueue(config.queue_path) as queue:
        pending = queue.count()
        oldest = queue.oldest(limit=1)

    status = {
        "config": {
            "miniflux_url": config.miniflux_url,
            "summary_backend": config.summary_backend,
            "summary_model": config.ai_model if config.summary_backend == "workers-ai" else config.summary_model,
            "min_content_length": config.min_content_length,
            "max_concurrent": config.max_concurrent,
            "poll_interval": config.poll_interval_seconds,
            "webhook_path": config.webhook_path,
            "enable_logfire": config.enable_logfire,
        },
        "queue": {
            "path": str(config.queue_path),
            "pending": pending,
            "oldest_update": (
                datetime.fromtimestamp(oldest[0]["updated_at"]).isoformat() if oldest else None
            ),
        },
    }

    print(json.dumps(status, indent=2))
    return 0


def cmd_pending(args: argparse.Namespace, config: Config) -> int:
    """List entries still waiting in the queue, oldest first."""
    from pydantic import ValidationError
    from models.entry import Entry

    with EntryQueue(config.queue_path) as queue:
        rows = queue.oldest(limit=args.limit)

    if not rows:
        print("Queue is empty.")
        return 0

    print(f"\n=== Pending entries (showing {len(rows)}) ===\n")

    for row in rows:
        staged = datetime.fromtimestamp(row["updated_at"]).strftime("%Y-%m-%d %H:%M")
        try:
            entry = Entry.model_validate_json(row["value"])
        except ValidationError:
            print(f"⚠️  {row['key']} (unparsable value)")
            print(f"   Staged: {staged}\n")
            continue

        eligible = entry.is_eligible(config.min_content_length)
        print(f"📰 {entry.title}")
        print(f"   Key: {row['key']}  Feed: {entry.feed_id}")
        print(f"   Staged: {staged}")
        print(f"   URL: {entry.url}")
        print(f"   Content: {len(entry.content.strip())} chars{'' if eligible else ' (below summary threshold)'}")
        print()

    return 0


def main() -> int:
    """Main entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        description="feedbrief: AI summaries for Miniflux entries",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the webhook server")
    serve_parser.add_argument("--host", help="Bind address (default: config HOST)")
    serve_parser.add_argument("--port", type=int, help="Bind port (default: config PORT)")
    serve_parser.add_argument(
        "--interval",
        type=int,
        help="Drain interval in seconds (default: config POLL_INTERVAL_SECONDS)",
    )
    serve_parser.add_argument(
        "--no-drain",
        action="store_true",
        help="Only accept webhooks; do not run the drain loop in this process",
    )

    # drain command
    subparsers.add_parser("drain", help="Run one drain cycle")

    # run command
    run_parser = subparsers.add_parser("run", help="Drain once or continuously")
    run_parser.add_argument(
        "-c", "--continuous",
        action="store_true",
        help="Drain continuously with polling",
    )
    run_parser.add_argument(
        "--interval",
        type=int,
        help="Poll interval in seconds (continuous mode)",
    )

    # status command
    subparsers.add_parser("status", help="Show configuration and queue statistics")

    # pending command
    pending_parser = subparsers.add_parser("pending", help="List entries waiting in the queue")
    pending_parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Max entries to show (default: 20, 0 = all)",
    )

    args = parser.parse_args()

    config = Config.load()
    setup_logging(config, verbose=args.verbose)

    # Validate configuration for commands that talk to Miniflux or the AI backend
    if args.command in ("serve", "drain", "run"):
        error = config.validate()
        if error:
            print(f"Configuration error: {error}", file=sys.stderr)
            return 1
        setup_tracing(enabled=config.enable_logfire, service_name="feedbrief", token=config.logfire_token)

    commands = {
        "serve": cmd_serve,
        "drain": cmd_drain,
        "run": cmd_run,
        "status": cmd_status,
        "pending": cmd_pending,
    }

    if args.command in commands:
        try:
            return commands[args.command](args, config)
        except Exception as e:
            logger.error("Command failed | cmd=%s error=%s", args.command, e, exc_info=True)
            print(f"Error: {e}", file=sys.stderr)
            return 1
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
