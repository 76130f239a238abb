"""Summarizer agent: alternate summary backend built on PydanticAI.

Selected with SUMMARY_BACKEND=agent. Instead of a dedicated summarization
endpoint it prompts a chat model, so any PydanticAI model string works
(e.g. 'openai:gpt-4o-mini', 'google-gla:gemini-2.5-flash'), as does a local
OpenAI-compatible server written as 'openai:<model>@<base_url>'.

Returns the same SummaryResult as the HTTP client, so the drainer does not
care which backend is in use.
"""

import logging

from openai import AsyncOpenAI
from pydantic_ai import Agent
from pydantic_ai.models.openai import OpenAIModel
from pydantic_ai.profiles.openai import OpenAIModelProfile
from pydantic_ai.providers.openai import OpenAIProvider

from config import Config
from models.summary import SummaryResult

logger = logging.getLogger(__name__)


SUMMARIZER_PROMPT = """You summarize feed entries for a reader who will decide whether to open the full article.

You will receive the entry title, its URL and its content (often HTML).

## Output requirements
- Markdown, 3-6 sentences or a short bullet list.
- Lead with the main point; keep names, numbers and dates exact.
- No preamble such as "This article..." and no closing remarks.

## Constraints
1. Use only what is in the content. Do not invent facts.
2. Ignore navigation, ads, and markup noise in the HTML.
3. Stay under {max_length} words."""


def _parse_local_model(model_str: str) -> tuple[str, str] | None:
    """Parse local model string into (model_name, base_url) or None if not local."""
    if model_str.startswith("openai:") and "@" in model_str:
        rest = model_str[7:]
        model_name, base_url = rest.split("@", 1)
        return model_name, base_url
    return None


def _create_model(model_str: str):
    """Create a PydanticAI model instance or pass through remote model string."""
    parsed = _parse_local_model(model_str)
    if parsed:
        model_name, base_url = parsed
        logger.info("Using local model | model=%s base_url=%s", model_name, base_url)
        client = AsyncOpenAI(base_url=base_url, api_key="local-model")
        profile = OpenAIModelProfile(supports_json_object_output=False)
        return OpenAIModel(
            model_name=model_name,
            provider=OpenAIProvider(openai_client=client),
            profile=profile,
        )
    return model_str


def _create_agent(model: str, max_length: int) -> Agent[None, str]:
    """Create the underlying PydanticAI agent for entry summaries."""
    return Agent(
        _create_model(model),
        output_type=str,
        system_prompt=SUMMARIZER_PROMPT.format(max_length=max_length),
        retries=1,
    )


class SummarizerAgent:
    """Generates entry summaries with a chat model."""

    def __init__(self, config: Config):
        """Initialize the summarizer agent.

        Args:
            config: Application configuration with summary_model settings
        """
        self.config = config
        self._agent = _create_agent(config.summary_model, config.summary_max_length)

    async def summarize(self, text: str) -> SummaryResult:
        """Summarize one entry.

        Args:
            text: Input text (title, URL and content already combined)

        Returns:
            SummaryResult with markdown summary, or the error on failure
        """
        try:
            result = await self._agent.run(text)
        except Exception as e:
            logger.warning("Agent summary failed | model=%s type=%s error=%s",
                           self.config.summary_model, type(e).__name__, e)
            return SummaryResult(success=False, error=f"{type(e).__name__}: {e}")

        summary = result.output or ""
        logger.debug("Agent summary received | model=%s chars=%d", self.config.summary_model, len(summary))
        return SummaryResult(success=True, summary=summary)
