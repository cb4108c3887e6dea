"""
Enrichment adapters around the classifier, summarizer and embedding services.

Each adapter returns a tagged EnrichmentResult. Timeouts, unavailable
services and malformed responses are folded into Unavailable/Error results
and never halt the pipeline.
"""

import asyncio
import json
import re
from abc import ABC, abstractmethod
from typing import Any, Optional, Protocol, Union

import numpy as np
from pydantic import ValidationError

from tab_companion.config import get_logger
from tab_companion.agents.errors import MalformedResponseError, ServiceUnavailableError
from tab_companion.agents.models import CacheEntry, ClassifierSignal, EnrichmentResult, TabItem

logger = get_logger(__name__)

MIN_SUMMARY_BULLETS = 1
MAX_SUMMARY_BULLETS = 5
BULLET_PREFIX = re.compile(r"^\s*(?:[-•*·]|\d+[.)])\s*")


class ClassifierService(Protocol):
    """Topic classifier: text → {topic, keywords, entities, confidence} or None."""

    async def classify(self, text: str) -> Optional[Union[dict, str]]: ...


class SummarizerService(Protocol):
    """Summarizer: text → bullet text or list of bullets, or None."""

    async def summarize(self, text: str) -> Optional[Union[str, list[str]]]: ...


class EmbeddingService(Protocol):
    """Embedding model: text → vector or None."""

    async def embed(self, text: str) -> Optional[list[float]]: ...


def enrichment_text(item: TabItem, limit: int = 2000) -> str:
    """
    Build the text sent to enrichment services for a tab.

    Args:
        item: The tab
        limit: Maximum characters of page text to include

    Returns:
        Title, description, headings and leading page text
    """
    parts = [item.title, item.description, *item.headings, item.text[:limit]]
    return "\n".join(part.strip() for part in parts if part and part.strip())


class EnrichmentAdapter(ABC):
    """
    Timeout-bounded boundary around one enrichment service.

    Subclasses define how the service is called and how its raw response is
    validated.

    Attributes:
        name: Signal name, also the CacheEntry field holding the signal
        service: The wrapped service, or None when not available
        timeout: Hard per-call timeout in seconds
    """

    name: str = ""

    def __init__(self, service: Optional[Any], timeout: float):
        self.service = service
        self.timeout = timeout

    @property
    def available(self) -> bool:
        return self.service is not None

    async def close(self) -> None:
        """Release the wrapped service's client, if it holds one."""
        close = getattr(self.service, "close", None)
        if close is not None:
            await close()

    @abstractmethod
    async def _call(self, text: str) -> Any:
        """Call the wrapped service."""

    @abstractmethod
    def parse(self, raw: Any) -> Any:
        """Validate a raw service response.

        Raises:
            MalformedResponseError: If the response cannot be used
        """

    async def enrich(self, text: str, cached: Optional[CacheEntry] = None) -> EnrichmentResult:
        """
        Get the signal for one tab.

        A cached signal short-circuits the service call entirely.

        Args:
            text: Text to enrich
            cached: Cache entry for the tab's fingerprint, if any

        Returns:
            EnrichmentResult (ok, cached, unavailable or error)
        """
        cached_value = getattr(cached, self.name, None) if cached else None
        if cached_value is not None:
            return EnrichmentResult.cached(cached_value)

        if self.service is None:
            return EnrichmentResult.unavailable(f"{self.name} service not available")
        if not text or not text.strip():
            return EnrichmentResult.unavailable("no content to enrich")

        try:
            raw = await asyncio.wait_for(self._call(text), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.info(f"{self.name} call timed out after {self.timeout}s")
            return EnrichmentResult.unavailable(f"timed out after {self.timeout}s")
        except ServiceUnavailableError as e:
            return EnrichmentResult.unavailable(str(e) or f"{self.name} service unavailable")
        except Exception as e:
            logger.warning(f"{self.name} call failed: {e}")
            return EnrichmentResult.error(f"{type(e).__name__}: {e}")

        if raw is None:
            return EnrichmentResult.unavailable(f"{self.name} service returned no result")

        try:
            return EnrichmentResult.ok(self.parse(raw))
        except (MalformedResponseError, ValidationError, TypeError, ValueError) as e:
            logger.warning(f"Malformed {self.name} response: {e}")
            return EnrichmentResult.error(f"malformed response: {e}")


class ClassifierAdapter(EnrichmentAdapter):
    """Adapter for topic classification."""

    name = "classifier"

    def __init__(self, service: Optional[ClassifierService], timeout: float = 8.0):
        super().__init__(service, timeout)

    async def _call(self, text: str) -> Any:
        return await self.service.classify(text)

    def parse(self, raw: Any) -> ClassifierSignal:
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError as e:
                raise MalformedResponseError(f"classifier returned invalid JSON: {e}")
        if isinstance(raw, ClassifierSignal):
            return raw
        if not isinstance(raw, dict):
            raise MalformedResponseError(f"unexpected classifier payload: {type(raw).__name__}")
        return ClassifierSignal.model_validate(raw)


class SummarizerAdapter(EnrichmentAdapter):
    """Adapter for bullet summaries."""

    name = "summary"

    def __init__(self, service: Optional[SummarizerService], timeout: float = 8.0):
        super().__init__(service, timeout)

    async def _call(self, text: str) -> Any:
        return await self.service.summarize(text)

    def parse(self, raw: Any) -> list[str]:
        if isinstance(raw, str):
            lines = raw.splitlines()
        elif isinstance(raw, (list, tuple)):
            lines = [str(line) for line in raw if line is not None]
        else:
            raise MalformedResponseError(f"unexpected summary payload: {type(raw).__name__}")

        bullets = []
        for line in lines:
            bullet = BULLET_PREFIX.sub("", line).strip()
            if bullet:
                bullets.append(bullet)

        if len(bullets) < MIN_SUMMARY_BULLETS:
            raise MalformedResponseError("summary contained no bullets")
        return bullets[:MAX_SUMMARY_BULLETS]


class EmbeddingAdapter(EnrichmentAdapter):
    """Adapter for embedding vectors. Vectors are L2-normalized."""

    name = "embedding"

    def __init__(self, service: Optional[EmbeddingService], timeout: float = 4.0):
        super().__init__(service, timeout)

    async def _call(self, text: str) -> Any:
        return await self.service.embed(text)

    def parse(self, raw: Any) -> list[float]:
        try:
            vector = np.asarray(raw, dtype=float)
        except (TypeError, ValueError) as e:
            raise MalformedResponseError(f"embedding is not numeric: {e}")
        if vector.ndim != 1 or vector.size == 0:
            raise MalformedResponseError(f"embedding has shape {vector.shape}")
        if not np.all(np.isfinite(vector)):
            raise MalformedResponseError("embedding contains non-finite values")
        norm = np.linalg.norm(vector)
        if norm == 0:
            raise MalformedResponseError("embedding is all zeros")
        return (vector / norm).tolist()
