"""
Tests for clients.workers_ai and clients.miniflux

Each client is pointed at a local aiohttp server standing in for the real
service, so the wire format (paths, auth headers, JSON bodies) is checked.
"""

from __future__ import annotations

import base64
from dataclasses import replace
from typing import Any
from unittest.mock import MagicMock

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from clients import MinifluxClient, WorkersAISummarizer
from clients.miniflux import basic_auth_header


def _base_url(server: TestServer) -> str:
    return f"http://{server.host}:{server.port}"


class TestWorkersAISummarizer:
    @pytest.mark.asyncio
    async def test_success(self, config):
        seen: dict[str, Any] = {}

        async def handler(request: web.Request) -> web.Response:
            seen["path"] = request.path
            seen["auth"] = request.headers.get("Authorization")
            seen["content_type"] = request.headers.get("Content-Type")
            seen["body"] = await request.json()
            return web.json_response({"summary": "It happened."})

        app = web.Application()
        app.router.add_post("/run/{model:.*}", handler)

        async with TestServer(app) as server:
            cfg = replace(config, ai_url=_base_url(server))
            async with aiohttp.ClientSession() as session:
                result = await WorkersAISummarizer(cfg, session).summarize("Title: x")

        assert result.success is True
        assert result.summary == "It happened."
        assert seen["path"] == "/run/@cf/facebook/bart-large-cnn"
        assert seen["auth"] == "Bearer ai-token"
        assert seen["content_type"] == "application/json"
        assert seen["body"] == {"input_text": "Title: x", "max_length": 512}

    @pytest.mark.asyncio
    async def test_error_status_keeps_diagnostic_text(self, config):
        async def handler(request: web.Request) -> web.Response:
            return web.Response(status=503, text="model overloaded")

        app = web.Application()
        app.router.add_post("/run/{model:.*}", handler)

        async with TestServer(app) as server:
            cfg = replace(config, ai_url=_base_url(server))
            async with aiohttp.ClientSession() as session:
                result = await WorkersAISummarizer(cfg, session).summarize("text")

        assert result.success is False
        assert "503" in result.error
        assert "model overloaded" in result.error

    @pytest.mark.asyncio
    async def test_malformed_success_body_is_failure(self, config):
        async def handler(request: web.Request) -> web.Response:
            return web.json_response({"result": {"text": "wrong shape"}})

        app = web.Application()
        app.router.add_post("/run/{model:.*}", handler)

        async with TestServer(app) as server:
            cfg = replace(config, ai_url=_base_url(server))
            async with aiohttp.ClientSession() as session:
                result = await WorkersAISummarizer(cfg, session).summarize("text")

        assert result.success is False
        assert "Malformed" in result.error

    @pytest.mark.asyncio
    async def test_empty_summary_is_success_but_empty(self, config):
        async def handler(request: web.Request) -> web.Response:
            return web.json_response({"summary": "   "})

        app = web.Application()
        app.router.add_post("/run/{model:.*}", handler)

        async with TestServer(app) as server:
            cfg = replace(config, ai_url=_base_url(server))
            async with aiohttp.ClientSession() as session:
                result = await WorkersAISummarizer(cfg, session).summarize("text")

        assert result.success is True
        assert result.is_empty is True

    @pytest.mark.asyncio
    async def test_connection_error_is_failure(self, config):
        session = MagicMock()
        session.post.side_effect = aiohttp.ClientConnectionError("connection refused")

        result = await WorkersAISummarizer(config, session).summarize("text")

        assert result.success is False
        assert "connection refused" in result.error


class TestMinifluxClient:
    @pytest.mark.asyncio
    async def test_update_entry(self, config):
        seen: dict[str, Any] = {}

        async def handler(request: web.Request) -> web.Response:
            seen["id"] = request.match_info["entry_id"]
            seen["auth"] = request.headers.get("Authorization")
            seen["content_type"] = request.headers.get("Content-Type")
            seen["body"] = await request.json()
            return web.json_response({"id": int(seen["id"])}, status=201)

        app = web.Application()
        app.router.add_put("/v1/entries/{entry_id}", handler)

        async with TestServer(app) as server:
            cfg = replace(config, miniflux_url=_base_url(server))
            async with aiohttp.ClientSession() as session:
                result = await MinifluxClient(cfg, session).update_entry(42, "<p>new</p>")

        expected_auth = "Basic " + base64.b64encode(b"admin:hunter2").decode()
        assert result.success is True
        assert result.status == 201
        assert seen == {
            "id": "42",
            "auth": expected_auth,
            "content_type": "application/json",
            "body": {"content": "<p>new</p>"},
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 401, 404, 500])
    async def test_non_2xx_is_failure(self, config, status):
        async def handler(request: web.Request) -> web.Response:
            return web.json_response({"error_message": "nope"}, status=status)

        app = web.Application()
        app.router.add_put("/v1/entries/{entry_id}", handler)

        async with TestServer(app) as server:
            cfg = replace(config, miniflux_url=_base_url(server))
            async with aiohttp.ClientSession() as session:
                result = await MinifluxClient(cfg, session).update_entry(1, "x")

        assert result.success is False
        assert result.status == status
        assert "nope" in result.error

    @pytest.mark.asyncio
    async def test_connection_error_is_failure(self, config):
        session = MagicMock()
        session.put.side_effect = aiohttp.ClientConnectionError("unreachable")

        result = await MinifluxClient(config, session).update_entry(1, "x")

        assert result.success is False
        assert result.status == 0

    def test_entry_url(self, config):
        client = MinifluxClient(config, session=MagicMock())

        assert client.entry_url(7) == "http://miniflux.invalid/v1/entries/7"


class TestBasicAuthHeader:
    def test_ascii_credentials(self):
        assert basic_auth_header("admin", "hunter2") == "Basic YWRtaW46aHVudGVyMg=="

    def test_colon_and_non_ascii_password(self):
        header = basic_auth_header("admin", "pä:ss")

        assert base64.b64decode(header.removeprefix("Basic ")).decode("utf-8") == "admin:pä:ss"
