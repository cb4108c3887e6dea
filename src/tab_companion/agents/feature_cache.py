"""
Content fingerprinting and the fingerprint-keyed feature cache.

The cache keeps batch-independent features (tokens and raw enrichment
signals) so that re-scanning unchanged tabs does not repeat enrichment calls.
"""

import hashlib
import re
import time
from typing import Callable, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from tab_companion.config import get_logger
from tab_companion.agents.models import CacheEntry, TabItem

logger = get_logger(__name__)

TEXT_PREFIX_CHARS = 2000
FIELD_PREFIX_CHARS = 500
TRACKING_PARAMS = {"fbclid", "gclid", "ref", "mc_cid", "mc_eid"}


def normalize_url(url: str) -> str:
    """
    Normalize a URL so that trivially different links compare equal.

    Lowercases scheme and host, drops "www.", the fragment, tracking
    parameters and a trailing slash, and sorts the query string.

    Examples:
        HTTPS://www.Example.com/a/?utm_source=x&b=2#top → https://example.com/a?b=2
    """
    if not url:
        return ""
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return url.strip().lower()

    host = parts.netloc.lower()
    if host.startswith("www."):
        host = host[4:]

    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if not key.lower().startswith("utm_") and key.lower() not in TRACKING_PARAMS
    ]
    path = parts.path.rstrip("/")

    return urlunsplit((parts.scheme.lower(), host, path, urlencode(sorted(query)), ""))


def normalize_text(text: str) -> str:
    """Lowercase and collapse whitespace."""
    return re.sub(r"\s+", " ", text or "").strip().lower()


def fingerprint(item: TabItem) -> str:
    """
    Compute the content fingerprint of a tab.

    The fingerprint is a sha256 over the normalized URL, title, description,
    headings and text prefix. Each field is normalized and bounded on its own,
    so long page text never pushes the other fields out of the key. Identical
    normalized content always yields the identical fingerprint.

    Args:
        item: The tab to fingerprint

    Returns:
        Hex digest string
    """
    fields = [
        normalize_url(item.url),
        normalize_text(item.title)[:FIELD_PREFIX_CHARS],
        normalize_text(item.description)[:FIELD_PREFIX_CHARS],
        normalize_text(" | ".join(item.headings))[:FIELD_PREFIX_CHARS],
        normalize_text(item.text)[:TEXT_PREFIX_CHARS],
    ]
    return hashlib.sha256("\n".join(fields).encode("utf-8")).hexdigest()


class FeatureCache:
    """
    In-memory feature cache keyed by fingerprint, with a fixed TTL.

    Expired entries are evicted on every lookup using the injected clock.
    Writes are idempotent: the first completed write of a signal wins and
    later writes only fill signals the live entry does not have yet.

    Attributes:
        ttl_seconds: Entry validity window
        clock: Callable returning the current time in seconds
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize the cache.

        Args:
            ttl_seconds: How long entries stay valid (default: 5 minutes)
            clock: Time source; defaults to time.monotonic
        """
        self.ttl_seconds = ttl_seconds
        self.clock = clock or time.monotonic
        self._entries: dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp >= self.ttl_seconds

    def evict_expired(self) -> int:
        """Drop all expired entries.

        Returns:
            Number of entries evicted
        """
        now = self.clock()
        expired = [fp for fp, entry in self._entries.items() if self._is_expired(entry, now)]
        for fp in expired:
            del self._entries[fp]
        if expired:
            self.evictions += len(expired)
            logger.debug(f"Evicted {len(expired)} expired cache entries")
        return len(expired)

    def lookup(self, fingerprint: str) -> Optional[CacheEntry]:
        """
        Look up cached features by fingerprint.

        Args:
            fingerprint: Content fingerprint

        Returns:
            The live cache entry, or None on a miss
        """
        self.evict_expired()
        entry = self._entries.get(fingerprint)
        if entry is None:
            self.misses += 1
            return None
        self.hits += 1
        return entry

    def store(self, fingerprint: str, entry: CacheEntry) -> CacheEntry:
        """
        Store features for a fingerprint.

        If a live entry already exists, only the signals it is missing are
        filled in; present values are never overwritten.

        Args:
            fingerprint: Content fingerprint
            entry: Features to store

        Returns:
            The canonical entry now held by the cache
        """
        now = self.clock()
        existing = self._entries.get(fingerprint)

        if existing is None or self._is_expired(existing, now):
            stored = entry.model_copy(update={"fingerprint": fingerprint, "timestamp": now})
            self._entries[fingerprint] = stored
            return stored

        updates = {}
        if not existing.tokens and entry.tokens:
            updates["tokens"] = entry.tokens
        if existing.classifier is None and entry.classifier is not None:
            updates["classifier"] = entry.classifier
        if existing.embedding is None and entry.embedding is not None:
            updates["embedding"] = entry.embedding
        if existing.summary is None and entry.summary is not None:
            updates["summary"] = entry.summary

        if updates:
            existing = existing.model_copy(update=updates)
            self._entries[fingerprint] = existing
        return existing

    def clear(self) -> None:
        """Remove all entries."""
        self._entries.clear()

    def stats(self) -> dict:
        """Get cache statistics.

        Returns:
            Dictionary with entry count, hits, misses and evictions
        """
        return {
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
        }

    def __len__(self) -> int:
        return len(self._entries)
