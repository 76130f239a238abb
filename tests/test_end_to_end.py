"""
End-to-end: signed webhook delivery -> queue -> drain against fake
Miniflux and summarization servers.
"""

from __future__ import annotations

from dataclasses import replace

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from entry_queue import EntryQueue
from pipeline import drain
from webhook import create_app
from tests.helpers import batch_body, make_entry, signed_headers


@pytest.mark.asyncio
async def test_webhook_then_drain(config, queue: EntryQueue):
    updates: dict[str, dict] = {}

    async def summarize(request: web.Request) -> web.Response:
        body = await request.json()
        if "Entry 3" in body["input_text"]:
            return web.Response(status=500, text="inference failed")
        return web.json_response({"summary": "Summary for the reader."})

    async def update_entry(request: web.Request) -> web.Response:
        updates[request.match_info["entry_id"]] = await request.json()
        return web.json_response({}, status=201)

    upstream = web.Application()
    upstream.router.add_post("/ai/run/{model:.*}", summarize)
    upstream.router.add_put("/v1/entries/{entry_id}", update_entry)

    entries = [make_entry(1), make_entry(2, content="too short"), make_entry(3)]
    body = batch_body(entries)

    async with TestServer(upstream) as server:
        base = f"http://{server.host}:{server.port}"
        cfg = replace(config, miniflux_url=base, ai_url=f"{base}/ai")

        async with TestClient(TestServer(create_app(cfg, queue))) as client:
            resp = await client.post("/", data=body, headers=signed_headers(body))
            assert resp.status == 200

        assert queue.count() == 3

        stats = await drain(cfg, queue)

    assert stats.committed == 1
    assert stats.ineligible == 1
    assert stats.summary_failures == 1
    assert await queue.list_keys() == ["entry:2", "entry:3"]
    assert list(updates) == ["1"]
    assert updates["1"]["content"].startswith('<div class="ai-summary">')
    assert updates["1"]["content"].endswith(entries[0].content)
