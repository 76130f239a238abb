"""Pydantic models for the feedbrief pipeline.

Entry:
    Feed entry delivered by the webhook and staged in the durable queue.
    Includes queue_key and the content eligibility check.

EntryBatch:
    Webhook body: an ordered list of entries.

SummaryRequest / SummaryResponse:
    Wire shapes for the summarization service.

SummaryResult / UpdateResult:
    Per-call outcomes returned by the summarizer and Miniflux clients.

Example:
    >>> from models import EntryBatch
    >>> batch = EntryBatch.model_validate_json(body)
    >>> [e.queue_key for e in batch.entries]
"""

from models.entry import Entry, EntryBatch, KEY_PREFIX, queue_key
from models.summary import SummaryRequest, SummaryResponse, SummaryResult, UpdateResult

__all__ = [
    "Entry",
    "EntryBatch",
    "KEY_PREFIX",
    "queue_key",
    "SummaryRequest",
    "SummaryResponse",
    "SummaryResult",
    "UpdateResult",
]
