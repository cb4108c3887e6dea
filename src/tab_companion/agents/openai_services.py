"""
OpenAI-backed enrichment services.

Implements the classifier, summarizer and embedding service contracts with
the async OpenAI client. Transient API errors are retried briefly; the
adapters' hard timeouts bound the total time spent.
"""

from typing import Optional

import openai
from openai import AsyncOpenAI
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from tab_companion.config import get_logger
from tab_companion.agents.errors import ServiceUnavailableError

logger = get_logger(__name__)

EMBEDDING_INPUT_CHARS = 2400

# JSON Schema for tab classification (OpenAI Structured Outputs)
CLASSIFIER_SCHEMA = {
    "type": "object",
    "properties": {
        "topic": {"type": "string"},
        "keywords": {
            "type": "array",
            "items": {"type": "string"},
        },
        "entities": {
            "type": "array",
            "items": {"type": "string"},
        },
        "confidence": {"type": "number"},
    },
    "required": ["topic", "keywords", "entities", "confidence"],
    "additionalProperties": False,
}

TRANSIENT_ERRORS = (openai.APIConnectionError, openai.APITimeoutError, openai.RateLimitError)

transient_retry = retry(
    stop=stop_after_attempt(2),  # Adapter timeouts bound the total time
    wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
    retry=retry_if_exception_type(TRANSIENT_ERRORS),
    reraise=True,
)


class OpenAIService:
    """Shared client handling for the OpenAI services."""

    def __init__(self, client: AsyncOpenAI, model: str):
        """
        Initialize the service.

        Args:
            client: Async OpenAI client
            model: Model to use
        """
        self.client = client
        self.model = model

    async def close(self):
        """Close the underlying OpenAI client."""
        await self.client.close()

    @staticmethod
    def _unavailable(e: openai.APIStatusError) -> ServiceUnavailableError:
        return ServiceUnavailableError(f"OpenAI rejected the request ({e.status_code})")


class OpenAIClassifierService(OpenAIService):
    """Classifies a tab into one broad topic with keywords and entities."""

    @transient_retry
    async def classify(self, text: str) -> Optional[str]:
        """
        Classify tab content.

        Args:
            text: Tab title, description and leading content

        Returns:
            JSON string matching CLASSIFIER_SCHEMA, or None if empty
        """
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "system",
                        "content": "You classify web pages into broad topics. Use 1-3 word title-case topics."
                    },
                    {"role": "user", "content": text},
                ],
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": "tab_classification",
                        "schema": CLASSIFIER_SCHEMA,
                        "strict": True,
                    },
                },
                temperature=0.2,
                max_tokens=200,
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise self._unavailable(e)

        return response.choices[0].message.content


class OpenAISummarizerService(OpenAIService):
    """Summarizes a tab into a few short bullets."""

    @transient_retry
    async def summarize(self, text: str) -> Optional[str]:
        """
        Summarize tab content.

        Args:
            text: Tab title, description and leading content

        Returns:
            Bullet list text (one bullet per line), or None if empty
        """
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "system",
                        "content": "Summarize the page in 3-5 short bullet points, one per line, each starting with '- '."
                    },
                    {"role": "user", "content": text},
                ],
                temperature=0.3,
                max_tokens=250,
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise self._unavailable(e)

        return response.choices[0].message.content


class OpenAIEmbeddingService(OpenAIService):
    """Embeds tab content with an OpenAI embedding model."""

    @transient_retry
    async def embed(self, text: str) -> Optional[list[float]]:
        """
        Generate an embedding for tab content.

        Args:
            text: Text to embed (truncated to EMBEDDING_INPUT_CHARS)

        Returns:
            Embedding vector
        """
        try:
            response = await self.client.embeddings.create(
                model=self.model, input=text[:EMBEDDING_INPUT_CHARS]
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise self._unavailable(e)

        if not response.data:
            return None
        return response.data[0].embedding
