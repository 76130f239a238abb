"""HTTP clients for the external collaborators.

WorkersAISummarizer:
    Hosted summarization endpoint (bearer token, model id in the path).

MinifluxClient:
    Miniflux entry update endpoint (Basic auth).

create_session:
    Pooled aiohttp session shared by both clients for one drain cycle.

Both clients return result objects (SummaryResult / UpdateResult) instead of
raising, and neither retries internally.

Example:
    >>> from clients import create_session, MinifluxClient
    >>> async with create_session(5, 30) as session:
    ...     result = await MinifluxClient(config, session).update_entry(42, "<p>hi</p>")
"""

from clients.utils import create_session, create_ssl_context, USER_AGENT
from clients.workers_ai import WorkersAISummarizer
from clients.miniflux import MinifluxClient

__all__ = [
    "create_session",
    "create_ssl_context",
    "USER_AGENT",
    "WorkersAISummarizer",
    "MinifluxClient",
]
