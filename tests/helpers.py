"""Shared test helpers: entry factories, signed payloads and fake clients."""

from __future__ import annotations

import asyncio
import json
from typing import Any

from models.entry import Entry
from models.summary import SummaryResult, UpdateResult
from signature import compute_signature

SECRET = "test-webhook-secret"

LONG_CONTENT = "<p>" + ("Lorem ipsum dolor sit amet, consectetur adipiscing elit. " * 12) + "</p>"


def make_entry(entry_id: int = 1, content: str = LONG_CONTENT, **overrides: Any) -> Entry:
    """Build an entry with eligible content unless overridden."""
    fields = {
        "id": entry_id,
        "title": f"Entry {entry_id}",
        "url": f"https://example.com/articles/{entry_id}",
        "content": content,
        "feed_id": 7,
    }
    fields.update(overrides)
    return Entry(**fields)


def batch_body(entries: list[Entry], **extra: Any) -> bytes:
    """Serialize entries the way Miniflux posts them."""
    payload = {"event_type": "new_entries", "entries": [e.model_dump() for e in entries]}
    payload.update(extra)
    return json.dumps(payload).encode("utf-8")


def signed_headers(body: bytes, secret: str = SECRET) -> dict[str, str]:
    """Headers for a correctly signed delivery."""
    return {
        "Content-Type": "application/json",
        "X-Miniflux-Signature": compute_signature(secret, body),
    }


class FakeSummarizer:
    """Records calls and tracks how many run at the same time."""

    def __init__(
        self,
        result: SummaryResult | None = None,
        delay: float = 0.0,
        fail_for: set[int] | None = None,
        raise_for: set[int] | None = None,
    ):
        self.result = result or SummaryResult(success=True, summary="A **short** summary.")
        self.delay = delay
        self.fail_for = fail_for or set()
        self.raise_for = raise_for or set()
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def summarize(self, text: str) -> SummaryResult:
        self.calls.append(text)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            entry_url = text.split("\n")[1]
            entry_id = int(entry_url.rsplit("/", 1)[-1])
            if entry_id in self.raise_for:
                raise RuntimeError(f"backend exploded for {entry_id}")
            if entry_id in self.fail_for:
                return SummaryResult(success=False, error="HTTP 503: overloaded")
            return self.result
        finally:
            self.in_flight -= 1


class FakeStore:
    """Records update calls; fails for selected entry ids."""

    def __init__(self, fail_for: set[int] | None = None):
        self.fail_for = fail_for or set()
        self.updates: dict[int, str] = {}

    async def update_entry(self, entry_id: int, content: str) -> UpdateResult:
        if entry_id in self.fail_for:
            return UpdateResult(success=False, status=500, error="HTTP 500: boom")
        self.updates[entry_id] = content
        return UpdateResult(success=True, status=201)
