"""Shared HTTP utilities for the outbound clients.

This module contains the constants and session factory used by both the
summarizer client and the Miniflux client.
"""

import ssl

import aiohttp
import certifi

USER_AGENT = "feedbrief/0.1 (+https://miniflux.app webhook summarizer)"


def create_ssl_context() -> ssl.SSLContext:
    """Create an SSL context that verifies against the certifi bundle."""
    return ssl.create_default_context(cafile=certifi.where())


def create_session(max_connections: int, timeout: int) -> aiohttp.ClientSession:
    """Create a pooled client session for one drain cycle.

    Args:
        max_connections: Connection pool limit (matches the concurrency ceiling)
        timeout: Total timeout per request in seconds

    Returns:
        A new aiohttp session; the caller closes it
    """
    connector = aiohttp.TCPConnector(limit=max_connections, ssl=create_ssl_context())
    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout),
        headers={"User-Agent": USER_AGENT},
    )


def error_snippet(text: str, limit: int = 200) -> str:
    """Shorten a response body for log lines and error messages."""
    text = " ".join(text.split())
    return text[:limit] + "..." if len(text) > limit else text
