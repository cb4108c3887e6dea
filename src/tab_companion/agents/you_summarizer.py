"""
You.com summarizer service implementation.
"""

from typing import Optional

import httpx

from tab_companion.agents.errors import ServiceUnavailableError
from tab_companion.search.you_client import YouAPIClient
from tab_companion.config import get_logger

logger = get_logger(__name__)


class YouSummarizerService:
    """Tab summarizer using You.com Express Agent."""

    def __init__(self, you_client: YouAPIClient):
        """
        Initialize You.com summarizer.

        Args:
            you_client: You.com API client instance
        """
        self.you_client = you_client

    async def close(self):
        """Close the You.com client."""
        await self.you_client.close()

    async def summarize(self, text: str) -> Optional[str]:
        """Summarize tab content into bullet lines."""
        prompt = f"""Summarize this webpage in 3-5 short bullet points.
Respond with ONLY the bullets, one per line, each starting with "- ".

{text}"""

        try:
            response = await self.you_client.express_agent_search(prompt)
        except httpx.HTTPStatusError as e:
            if e.response.status_code in (401, 403, 429):
                raise ServiceUnavailableError(f"You.com rejected the request ({e.response.status_code})")
            raise

        answer = YouAPIClient.answer_text(response)
        if answer is None:
            logger.debug("You.com response contained no answer")
        return answer
