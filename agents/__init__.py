"""PydanticAI agents for feedbrief.

SummarizerAgent:
    Chat-model summary backend (SUMMARY_BACKEND=agent), an alternative to
    the hosted summarization endpoint in clients.workers_ai.

Example:
    >>> from agents import SummarizerAgent
    >>> result = await SummarizerAgent(config).summarize("Title: ...")
"""

from agents.summarizer import SummarizerAgent

__all__ = [
    "SummarizerAgent",
]
