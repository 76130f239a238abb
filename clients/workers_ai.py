"""Summarization client for a Workers AI style endpoint.

Calls POST {base_url}/run/{model} with a bearer token and a JSON body
{"input_text": ..., "max_length": ...}. A 2xx response carries
{"summary": "..."}; anything else is treated as a failure and the response
text is kept as the diagnostic.

The client never retries. A failed call leaves the entry in the queue and
the next drain cycle tries again.
"""

import asyncio
import logging

import aiohttp
from pydantic import ValidationError

from config import Config
from models.summary import SummaryRequest, SummaryResponse, SummaryResult
from clients.utils import error_snippet

logger = logging.getLogger(__name__)


class WorkersAISummarizer:
    """Summarizer backed by a hosted text-summarization model.

    Example:
        >>> async with create_session(5, 30) as session:
        ...     summarizer = WorkersAISummarizer(config, session)
        ...     result = await summarizer.summarize("Title: ...")
        ...     if result.success:
        ...         print(result.summary)
    """

    def __init__(self, config: Config, session: aiohttp.ClientSession):
        """Initialize the client.

        Args:
            config: Application configuration with ai_url/ai_token/ai_model
            session: Shared HTTP session (owned by the caller)
        """
        self.url = f"{config.ai_url}/run/{config.ai_model}"
        self.max_length = config.summary_max_length
        self._token = config.ai_token
        self._session = session

    async def summarize(self, text: str) -> SummaryResult:
        """Request a summary for a block of text.

        Args:
            text: Input text (title, URL and content already combined)

        Returns:
            SummaryResult with the summary on success, or the error text
        """
        request = SummaryRequest(input_text=text, max_length=self.max_length)
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }

        try:
            async with self._session.post(
                self.url,
                data=request.model_dump_json(),
                headers=headers,
            ) as resp:
                if resp.status >= 300:
                    body = await resp.text()
                    logger.warning(
                        "Summary request failed | status=%d error=%s",
                        resp.status, error_snippet(body),
                    )
                    return SummaryResult(success=False, error=f"HTTP {resp.status}: {body}")
                payload = await resp.read()

            summary = SummaryResponse.model_validate_json(payload).summary
            logger.debug("Summary received | chars=%d", len(summary))
            return SummaryResult(success=True, summary=summary)

        except ValidationError as e:
            logger.warning("Summary response malformed | errors=%d", e.error_count())
            return SummaryResult(success=False, error=f"Malformed summary response: {e}")
        except asyncio.TimeoutError:
            logger.warning("Summary request timed out | url=%s", self.url)
            return SummaryResult(success=False, error="Request timed out")
        except aiohttp.ClientError as e:
            logger.warning("Summary request error | type=%s error=%s", type(e).__name__, e)
            return SummaryResult(success=False, error=f"{type(e).__name__}: {e}")
