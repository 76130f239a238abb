"""Entry data models for webhook-delivered feed items.

Miniflux posts a "new entries" webhook whose body carries a list of
entries. Each entry is staged individually in the durable queue and later
drained through the summarizer.

Only the fields the pipeline needs are modeled; anything else Miniflux
includes in the payload (user_id, hash, published_at, tags, ...) is
ignored on parse and not stored.
"""

from pydantic import BaseModel, Field

# Key namespace for staged entries in the durable queue
KEY_PREFIX = "entry:"


def queue_key(entry_id: int) -> str:
    """Build the durable queue key for an entry id."""
    return f"{KEY_PREFIX}{entry_id}"


class Entry(BaseModel):
    """A single feed entry staged for summarization.

    Attributes:
        id: Miniflux entry id (unique, assigned upstream)
        title: Entry headline
        url: Link to the original article
        content: HTML content of the entry; the text that gets summarized
        feed_id: Id of the Miniflux feed the entry belongs to

    Example:
        >>> entry = Entry(id=42, title="Hello", url="https://example.com",
        ...               content="<p>...</p>", feed_id=7)
        >>> entry.queue_key
        'entry:42'
    """

    id: int = Field(strict=True, ge=0, description="Miniflux entry id")
    title: str = Field(description="Entry headline")
    url: str = Field(description="URL of the original article")
    content: str = Field(description="Entry content (HTML)")
    feed_id: int = Field(strict=True, ge=0, description="Miniflux feed id")

    @property
    def queue_key(self) -> str:
        """Durable queue key, one slot per entry id."""
        return queue_key(self.id)

    def is_eligible(self, min_length: int = 500) -> bool:
        """Whether the content is long enough to be worth summarizing.

        Surrounding whitespace does not count towards the length.
        """
        stripped = self.content.strip()
        return bool(stripped) and len(stripped) >= min_length

    def __str__(self) -> str:
        """Human-readable representation for logging."""
        return f"Entry({self.id}, '{self.title[:50]}')"


class EntryBatch(BaseModel):
    """Body of a Miniflux "new entries" webhook delivery."""

    event_type: str = Field(default="", description="Webhook event type, e.g. new_entries")
    entries: list[Entry] = Field(description="Entries delivered in this batch")
