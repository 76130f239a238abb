"""Miniflux API client for committing summarized content.

Only one endpoint is used: PUT /v1/entries/{id} with {"content": ...},
authenticated with HTTP Basic auth. Any non-2xx response is a failure.

Updating an entry overwrites its content, so repeating the call with the
same or a regenerated summary is safe.
"""

import asyncio
import base64
import json
import logging

import aiohttp

from config import Config
from models.summary import UpdateResult
from clients.utils import error_snippet

logger = logging.getLogger(__name__)


def basic_auth_header(username: str, password: str) -> str:
    """Build an HTTP Basic Authorization header value (UTF-8 credentials)."""
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class MinifluxClient:
    """Writes new entry content back to Miniflux."""

    def __init__(self, config: Config, session: aiohttp.ClientSession):
        """Initialize the client.

        Args:
            config: Application configuration with Miniflux URL and credentials
            session: Shared HTTP session (owned by the caller)
        """
        self.base_url = config.miniflux_url
        self._authorization = basic_auth_header(config.miniflux_username, config.miniflux_password)
        self._session = session

    def entry_url(self, entry_id: int) -> str:
        """URL of the update endpoint for one entry."""
        return f"{self.base_url}/v1/entries/{entry_id}"

    async def update_entry(self, entry_id: int, content: str) -> UpdateResult:
        """Overwrite the stored content of an entry.

        Args:
            entry_id: Miniflux entry id
            content: New HTML content

        Returns:
            UpdateResult with the HTTP status, and the error text on failure
        """
        url = self.entry_url(entry_id)
        try:
            async with self._session.put(
                url,
                data=json.dumps({"content": content}),
                headers={
                    "Authorization": self._authorization,
                    "Content-Type": "application/json",
                },
            ) as resp:
                if resp.status >= 300:
                    body = await resp.text()
                    logger.warning(
                        "Entry update failed | id=%d status=%d error=%s",
                        entry_id, resp.status, error_snippet(body),
                    )
                    return UpdateResult(success=False, status=resp.status, error=f"HTTP {resp.status}: {body}")
                logger.debug("Entry updated in Miniflux | id=%d", entry_id)
                return UpdateResult(success=True, status=resp.status)

        except asyncio.TimeoutError:
            logger.warning("Entry update timed out | id=%d", entry_id)
            return UpdateResult(success=False, error="Request timed out")
        except aiohttp.ClientError as e:
            logger.warning("Entry update error | id=%d type=%s error=%s", entry_id, type(e).__name__, e)
            return UpdateResult(success=False, error=f"{type(e).__name__}: {e}")
