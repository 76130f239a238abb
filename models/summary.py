"""Summary request/response models and per-call results."""

from dataclasses import dataclass

from pydantic import BaseModel, Field


class SummaryRequest(BaseModel):
    """JSON body sent to the summarization service."""

    input_text: str = Field(description="Text to summarize")
    max_length: int = Field(default=512, description="Upper bound on summary length")


class SummaryResponse(BaseModel):
    """JSON body returned by the summarization service on success."""

    summary: str = Field(description="Generated summary (markdown)")


@dataclass
class SummaryResult:
    """Outcome of one summarization call.

    Never persisted; lives for a single drain attempt.
    """

    success: bool
    summary: str = ""
    error: str | None = None

    @property
    def is_empty(self) -> bool:
        """True when the call succeeded but produced no usable text."""
        return self.success and not self.summary.strip()


@dataclass
class UpdateResult:
    """Outcome of one content-store update call."""

    success: bool
    status: int = 0
    error: str | None = None
