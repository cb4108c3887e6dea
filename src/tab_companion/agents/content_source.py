"""
Content collection from open tabs.

Wraps a host-provided content source (browser extension, headless browser,
test fake) with per-tab timeouts and bounded concurrency, and turns every
failure into a TabItem flagged extraction_failed.
"""

import asyncio
from typing import Optional, Protocol
from urllib.parse import urlsplit

from pydantic import BaseModel, Field

from tab_companion.config import get_logger
from tab_companion.agents.errors import ExtractionFailure
from tab_companion.agents.models import TabItem

logger = get_logger(__name__)

# Hosts whose pages cannot (or must not) be read
RESTRICTED_HOSTS = frozenset({
    "mail.google.com",
    "accounts.google.com",
    "chrome.google.com",
    "play.google.com",
    "outlook.live.com",
})


class TabRef(BaseModel):
    """An open tab as reported by the host, before extraction."""

    id: int
    url: str
    title: str = ""


class ExtractedContent(BaseModel):
    """Content read from a tab's page."""

    text: str = ""
    description: str = ""
    headings: list[str] = Field(default_factory=list)
    language: Optional[str] = None


class ContentSource(Protocol):
    """Reads page content for a tab. Raises ExtractionFailure on failure."""

    async def extract(self, ref: TabRef) -> ExtractedContent: ...


def is_extractable(url: str) -> bool:
    """Whether a tab URL may be handed to the content source."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    if parts.scheme not in ("http", "https"):
        return False
    return (parts.hostname or "") not in RESTRICTED_HOSTS


async def collect_items(
    source: ContentSource,
    refs: list[TabRef],
    timeout: float = 6.0,
    concurrency: int = 8,
) -> list[TabItem]:
    """
    Extract content for a list of tabs.

    Args:
        source: Content source to read pages with
        refs: Tabs to extract, in host order
        timeout: Per-tab extraction timeout in seconds
        concurrency: Maximum simultaneous extractions

    Returns:
        One TabItem per ref, in the same order
    """
    semaphore = asyncio.Semaphore(concurrency)

    async def extract_one(ref: TabRef) -> TabItem:
        if not is_extractable(ref.url):
            logger.debug(f"Skipping restricted tab {ref.id}: {ref.url}")
            return TabItem(id=ref.id, url=ref.url, title=ref.title, extraction_failed=True)

        async with semaphore:
            try:
                content = await asyncio.wait_for(source.extract(ref), timeout=timeout)
            except asyncio.TimeoutError:
                logger.info(f"Extraction timed out for tab {ref.id} after {timeout}s")
                return TabItem(id=ref.id, url=ref.url, title=ref.title, extraction_failed=True)
            except ExtractionFailure as e:
                logger.info(f"Extraction failed for tab {ref.id}: {e}")
                return TabItem(id=ref.id, url=ref.url, title=ref.title, extraction_failed=True)
            except Exception:
                logger.warning(f"Unexpected error extracting tab {ref.id}", exc_info=True)
                return TabItem(id=ref.id, url=ref.url, title=ref.title, extraction_failed=True)

        return TabItem(
            id=ref.id,
            url=ref.url,
            title=ref.title,
            text=content.text,
            description=content.description,
            headings=content.headings,
            language=content.language,
        )

    items = await asyncio.gather(*(extract_one(ref) for ref in refs))
    failed = sum(1 for item in items if item.extraction_failed)
    logger.info(f"Collected {len(items)} tabs ({failed} without content)")
    return list(items)
