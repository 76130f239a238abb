"""Webhook intake: authenticate Miniflux deliveries and stage their entries.

Request Handling:
    OPTIONS          -> 200 with permissive CORS headers, body ignored
    not POST         -> 405
    no signature     -> 401
    bad signature    -> 403 (body never parsed)
    unparsable body  -> 400 (nothing staged)
    otherwise        -> every entry written to the queue, 200

Staging only guarantees the entries are durably queued; summarizing them is
the drain cycle's job. Queue writes run concurrently (at most
MAX_CONCURRENT in flight) and a failed write is logged without failing the
request or the other writes.

handle_intake() is transport-agnostic (method, headers, raw body in;
IntakeResponse out). create_app() mounts it on an aiohttp application.
"""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from aiohttp import web
from pydantic import ValidationError

from config import Config, ConfigError
from entry_queue import EntryQueue
from models.entry import Entry, EntryBatch
from observability.logging import new_run_id, set_run_context, reset_run_context
from observability.tracing import trace_operation
from signature import SIGNATURE_HEADER, verify_signature

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": f"Content-Type, {SIGNATURE_HEADER}",
}

CONFIG_KEY = web.AppKey("config", Config)
QUEUE_KEY = web.AppKey("queue", EntryQueue)


@dataclass
class IntakeResponse:
    """Result of handling one webhook request."""

    status: int
    text: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    staged: int = 0


def _get_header(headers: Mapping[str, str], name: str) -> str | None:
    """Case-insensitive header lookup over any mapping."""
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


async def stage_entries(
    queue: EntryQueue,
    entries: list[Entry],
    max_concurrent: int = 5,
) -> tuple[int, int]:
    """Write entries to the queue concurrently.

    Args:
        queue: Durable entry queue
        entries: Entries to stage (same id twice: the later one wins)
        max_concurrent: Max writes in flight

    Returns:
        (staged, failed) counts
    """
    semaphore = asyncio.Semaphore(max_concurrent)

    async def stage_one(entry: Entry) -> str:
        async with semaphore:
            return await queue.put_entry(entry)

    results = await asyncio.gather(*(stage_one(e) for e in entries), return_exceptions=True)

    staged = 0
    failed = 0
    for entry, result in zip(entries, results):
        if isinstance(result, BaseException):
            logger.error("Queue write failed | key=%s error=%s", entry.queue_key, result, exc_info=result)
            failed += 1
        else:
            staged += 1
    return staged, failed


async def handle_intake(
    method: str,
    headers: Mapping[str, str],
    body: bytes,
    config: Config,
    queue: EntryQueue,
) -> IntakeResponse:
    """Handle one inbound webhook request.

    Args:
        method: HTTP method
        headers: Request headers (any case)
        body: Raw request body
        config: Application configuration (webhook secret, concurrency)
        queue: Durable entry queue

    Returns:
        IntakeResponse describing what to send back

    Raises:
        ConfigError: If the webhook secret is missing or unusable
    """
    method = method.upper()
    if method == "OPTIONS":
        return IntakeResponse(status=200, headers=dict(CORS_HEADERS))
    if method != "POST":
        return IntakeResponse(status=405, text="Method not allowed")

    signature = _get_header(headers, SIGNATURE_HEADER)
    if not signature:
        logger.warning("Webhook rejected: missing signature header")
        return IntakeResponse(status=401, text="Missing signature header in webhook request")

    if not verify_signature(config.webhook_secret, body, signature):
        logger.warning("Webhook rejected: signature mismatch | bytes=%d", len(body))
        return IntakeResponse(status=403, text="Incorrect webhook request signature")

    try:
        batch = EntryBatch.model_validate_json(body)
    except ValidationError as e:
        logger.warning("Webhook rejected: unparsable body | errors=%d", e.error_count())
        return IntakeResponse(status=400, text="Failed to parse webhook json body")

    staged, failed = await stage_entries(queue, batch.entries, config.max_concurrent)
    logger.info(
        "Webhook processed | event=%s entries=%d staged=%d failed=%d",
        batch.event_type or "-", len(batch.entries), staged, failed,
    )
    return IntakeResponse(status=200, text="Webhook request processed", staged=staged)


async def webhook_handler(request: web.Request) -> web.Response:
    """aiohttp handler that delegates to handle_intake()."""
    config = request.app[CONFIG_KEY]
    queue = request.app[QUEUE_KEY]
    token = set_run_context(new_run_id())
    try:
        body = await request.read()
        with trace_operation("webhook_intake", {"method": request.method, "bytes": len(body)}) as attrs:
            result = await handle_intake(request.method, request.headers, body, config, queue)
            attrs["status"] = result.status
            attrs["staged"] = result.staged
    except ConfigError as e:
        logger.error("Webhook failed: configuration error | error=%s", e)
        return web.Response(status=500, text="Server configuration error")
    finally:
        reset_run_context(token)

    return web.Response(status=result.status, text=result.text, headers=result.headers)


def create_app(config: Config, queue: EntryQueue) -> web.Application:
    """Build the aiohttp application serving the webhook route.

    Args:
        config: Application configuration
        queue: Durable entry queue shared with the drain loop (if any)

    Returns:
        Configured aiohttp application
    """
    app = web.Application(client_max_size=config.max_body_bytes)
    app[CONFIG_KEY] = config
    app[QUEUE_KEY] = queue
    app.router.add_route("*", config.webhook_path, webhook_handler)
    return app
