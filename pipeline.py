"""Drain cycle: summarize staged entries and commit them back to Miniflux.

Pipeline Flow (per cycle):
    1. LIST: Enumerate every "entry:" key in the durable queue
    2. FETCH: Load each entry (absent or corrupt values are skipped)
    3. FILTER: Leave short or empty content alone
    4. SUMMARIZE: Ask the summary backend for a markdown summary
    5. RENDER: Prepend the summary block as HTML ahead of the original content
    6. COMMIT: PUT the new content to Miniflux
    7. DELETE: Remove the entry from the queue, only after a successful commit

Steps 2-7 run per entry, at most MAX_CONCURRENT (default 5) at a time.
Every failure path leaves the entry in the queue, so the next cycle retries
it from scratch: the queue is the at-least-once guarantee. One entry's
failure never affects another's.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any

import markdown

from config import Config
from entry_queue import EntryQueue
from models.entry import Entry, KEY_PREFIX
from clients import create_session, MinifluxClient, WorkersAISummarizer
from observability.logging import new_run_id, set_run_context, reset_run_context
from observability.tracing import trace_operation

logger = logging.getLogger(__name__)

SUMMARY_INPUT_TEMPLATE = "Title: {title}\nURL: {url}\nContent: {content}"

SUMMARY_BLOCK_TEMPLATE = '<div class="ai-summary"><h4>✨ AI Summary</h4>{summary_html}</div>'

SUMMARY_SEPARATOR = "<hr><br />"


class EntryOutcome(str, Enum):
    """How one entry's pipeline ended in a cycle.

    Only COMMITTED removes the entry from the queue.
    """

    COMMITTED = "committed"
    INELIGIBLE = "ineligible"
    EMPTY_SUMMARY = "empty_summary"
    SUMMARY_FAILED = "summary_failed"
    COMMIT_FAILED = "commit_failed"
    MISSING = "missing"


@dataclass
class DrainStats:
    """Statistics from a single drain cycle.

    Logged at the end of each cycle; never persisted.
    """

    listed: int = 0           # Keys found under the prefix
    committed: int = 0        # Summarized, committed and removed
    ineligible: int = 0       # Content too short, left in queue
    empty_summaries: int = 0  # Backend returned blank text, left in queue
    summary_failures: int = 0 # Backend call failed, left in queue
    commit_failures: int = 0  # Miniflux update failed, left in queue
    missing: int = 0          # Key vanished or value unparsable
    errors: int = 0           # Unexpected exceptions
    duration: float = 0.0     # Run time (seconds)

    _COUNTERS = {
        EntryOutcome.COMMITTED: "committed",
        EntryOutcome.INELIGIBLE: "ineligible",
        EntryOutcome.EMPTY_SUMMARY: "empty_summaries",
        EntryOutcome.SUMMARY_FAILED: "summary_failures",
        EntryOutcome.COMMIT_FAILED: "commit_failures",
        EntryOutcome.MISSING: "missing",
    }

    def record(self, outcome: EntryOutcome) -> None:
        """Count one entry outcome."""
        name = self._COUNTERS[outcome]
        setattr(self, name, getattr(self, name) + 1)

    @property
    def retained(self) -> int:
        """Entries that are still in the queue after this cycle."""
        return (
            self.ineligible + self.empty_summaries + self.summary_failures
            + self.commit_failures + self.errors
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        d = asdict(self)
        d["duration"] = round(d["duration"], 2)
        d["retained"] = self.retained
        return d


def build_summary_input(entry: Entry) -> str:
    """Combine the fields the summarizer sees into one prompt text."""
    return SUMMARY_INPUT_TEMPLATE.format(title=entry.title, url=entry.url, content=entry.content)


def render_summarized_content(summary: str, content: str) -> str:
    """Build the new entry content: summary block, separator, original content.

    Args:
        summary: Summary text in markdown
        content: Original entry content (HTML), kept verbatim

    Returns:
        HTML content to commit to Miniflux
    """
    summary_html = markdown.markdown(summary.strip())
    block = SUMMARY_BLOCK_TEMPLATE.format(summary_html=summary_html)
    return f"{block}{SUMMARY_SEPARATOR}{content}"


def create_summarizer(config: Config, session):
    """Build the summary backend selected by SUMMARY_BACKEND.

    Both backends expose ``async summarize(text) -> SummaryResult``.
    """
    if config.summary_backend == "agent":
        from agents.summarizer import SummarizerAgent
        return SummarizerAgent(config)
    return WorkersAISummarizer(config, session)


class Drainer:
    """Bounded concurrent drain of the entry queue.

    Components are injected so the same drainer works against the real
    HTTP clients or test doubles:
        - queue: EntryQueue (list/get/delete)
        - summarizer: anything with ``async summarize(text) -> SummaryResult``
        - store: anything with ``async update_entry(id, content) -> UpdateResult``
    """

    def __init__(self, config: Config, queue: EntryQueue, summarizer, store):
        """Initialize the drainer.

        Args:
            config: Application configuration
            queue: Durable entry queue
            summarizer: Summary backend
            store: Content store client
        """
        self.config = config
        self.queue = queue
        self.summarizer = summarizer
        self.store = store

    async def process_key(self, key: str) -> EntryOutcome:
        """Run the full pipeline for one queue key.

        Args:
            key: Queue key ("entry:<id>")

        Returns:
            The outcome; the entry was deleted only for COMMITTED
        """
        entry = await self.queue.get_entry(key)
        if entry is None:
            logger.debug("Entry gone or unreadable, skipping | key=%s", key)
            return EntryOutcome.MISSING

        logger.debug("Processing entry | id=%d title=%s url=%s", entry.id, entry.title[:60], entry.url)

        if not entry.is_eligible(self.config.min_content_length):
            logger.debug("Skipping entry with empty or short content | id=%d", entry.id)
            return EntryOutcome.INELIGIBLE

        result = await self.summarizer.summarize(build_summary_input(entry))
        if not result.success:
            logger.warning("Summary failed, entry kept for retry | id=%d error=%s", entry.id, result.error)
            return EntryOutcome.SUMMARY_FAILED
        if result.is_empty:
            logger.info("Empty summary, entry left as is | id=%d", entry.id)
            return EntryOutcome.EMPTY_SUMMARY

        new_content = render_summarized_content(result.summary, entry.content)
        update = await self.store.update_entry(entry.id, new_content)
        if not update.success:
            logger.warning("Commit failed, entry kept for retry | id=%d error=%s", entry.id, update.error)
            return EntryOutcome.COMMIT_FAILED

        await self.queue.delete(key)
        logger.info("Entry summarized and removed from queue | id=%d title=%s", entry.id, entry.title[:60])
        return EntryOutcome.COMMITTED

    async def drain_once(self) -> DrainStats:
        """Execute one drain cycle over every staged entry.

        Returns:
            DrainStats with per-outcome counts
        """
        token = set_run_context(new_run_id())
        start = time.time()
        stats = DrainStats()

        try:
            with trace_operation("drain_cycle") as attrs:
                keys = await self.queue.list_keys(KEY_PREFIX)
                stats.listed = len(keys)
                logger.info("Drain started | pending=%d max_concurrent=%d", len(keys), self.config.max_concurrent)

                if keys:
                    semaphore = asyncio.Semaphore(self.config.max_concurrent)

                    async def process_one(key: str) -> EntryOutcome:
                        async with semaphore:
                            return await self.process_key(key)

                    results = await asyncio.gather(*(process_one(k) for k in keys), return_exceptions=True)

                    for key, result in zip(keys, results):
                        if isinstance(result, BaseException):
                            logger.error("Entry pipeline error | key=%s error=%s", key, result, exc_info=result)
                            stats.errors += 1
                        else:
                            stats.record(result)

                attrs.update(stats.to_dict())

        except asyncio.CancelledError:
            logger.info("Drain cycle cancelled")
            reset_run_context(token)
            raise
        except Exception as e:
            logger.error("Drain error | type=%s error=%s", type(e).__name__, e, exc_info=True)
            stats.errors += 1

        stats.duration = time.time() - start
        logger.info(
            "Drain done | duration=%.1fs committed=%d retained=%d missing=%d errors=%d",
            stats.duration, stats.committed, stats.retained, stats.missing, stats.errors,
        )
        reset_run_context(token)
        return stats


async def drain(config: Config, queue: EntryQueue) -> DrainStats:
    """Run one drain cycle with fresh HTTP clients.

    The session is scoped to the cycle; its connection pool is capped at
    the concurrency ceiling.
    """
    async with create_session(config.max_concurrent, config.request_timeout) as session:
        drainer = Drainer(
            config,
            queue,
            summarizer=create_summarizer(config, session),
            store=MinifluxClient(config, session),
        )
        return await drainer.drain_once()


async def run_once(config: Config) -> dict[str, Any]:
    """Open the queue, drain it once and return stats dict."""
    with EntryQueue(config.queue_path) as queue:
        return (await drain(config, queue)).to_dict()


async def run_continuous(config: Config, queue: EntryQueue | None = None) -> None:
    """Drain the queue every POLL_INTERVAL_SECONDS until cancelled.

    Args:
        config: Application configuration
        queue: Queue to drain; opened (and closed) here when not given
    """
    owned = queue is None
    if queue is None:
        queue = EntryQueue(config.queue_path)

    cycles = 0
    total_committed = 0
    total_errors = 0
    logger.info("Starting drain loop | interval=%ds", config.poll_interval_seconds)

    try:
        while True:
            cycles += 1
            try:
                stats = await drain(config, queue)
                total_committed += stats.committed
                total_errors += stats.errors
            except Exception as e:
                logger.error("Drain cycle failed | cycle=%d error=%s", cycles, e, exc_info=True)
                total_errors += 1

            await asyncio.sleep(config.poll_interval_seconds)

    except asyncio.CancelledError:
        logger.info("Drain loop stopped | cycles=%d committed=%d errors=%d", cycles, total_committed, total_errors)
        raise
    finally:
        if owned:
            queue.close()
