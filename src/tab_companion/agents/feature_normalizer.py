"""
Feature normalization for tab content.

Turns raw tab content into a normalized token sequence and computes TF-IDF
weights across the current batch. TF-IDF depends on the whole batch, so it is
recomputed on every run while token lists can come from the feature cache.
"""

import math
import re
from collections import Counter
from typing import Optional
from urllib.parse import urlsplit

import tldextract
from pydantic import BaseModel, Field

from tab_companion.config import get_logger
from tab_companion.agents.models import TabItem

logger = get_logger(__name__)

TEXT_TOKEN_CHARS = 2000
MAX_TOKENS = 1200
MIN_TOKEN_LENGTH = 3

STOPWORDS = frozenset({
    "the", "and", "with", "from", "that", "this", "have", "has", "will", "would", "could", "should",
    "about", "into", "onto", "after", "before", "while", "where", "which", "their", "there", "other",
    "these", "those", "than", "then", "when", "what", "your", "yours", "ours", "ourselves", "hers",
    "his", "her", "its", "they", "them", "were", "was", "been", "being", "because", "over", "under",
    "again", "further", "once", "here", "every", "most", "some", "such", "only", "own", "same", "very",
    "just", "also", "like", "more", "less", "many", "much", "any", "each", "for", "are", "not", "but",
    "you", "can", "all", "our", "how", "who", "why", "new",
    "http", "https", "www", "com", "net", "org", "html", "amp", "php", "utm", "ref", "aspx", "index",
    "home", "main", "default", "article", "video", "watch", "channel", "official",
})

BOILERPLATE_PATTERN = re.compile(
    r"(cookie|accept all|sign in|log in|sign up|subscribe|newsletter|all rights reserved|"
    r"privacy policy|terms of (service|use)|skip to (main )?content|©|copyright)",
    re.IGNORECASE,
)
BOILERPLATE_MAX_WORDS = 25

# Bundled public suffix snapshot only: never fetch the list over the network.
_domain_extractor = tldextract.TLDExtract(suffix_list_urls=(), cache_dir=None)


def strip_boilerplate(text: str) -> str:
    """
    Drop short boilerplate lines (cookie banners, sign-in prompts, legal footers).

    Args:
        text: Raw extracted page text

    Returns:
        Text with boilerplate lines removed
    """
    if not text:
        return ""
    kept = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if BOILERPLATE_PATTERN.search(stripped) and len(stripped.split()) <= BOILERPLATE_MAX_WORDS:
            continue
        kept.append(stripped)
    return "\n".join(kept)


def _stem(word: str) -> str:
    if word.endswith("ing") and len(word) > 6:
        return word[:-3]
    if word.endswith("ed") and len(word) > 5:
        return word[:-2]
    if word.endswith("s") and len(word) > 4:
        return word[:-1]
    return word


def tokenize(text: Optional[str]) -> list[str]:
    """
    Split text into normalized tokens.

    Lowercases, strips punctuation, drops short tokens, numbers and
    stopwords, and applies light suffix stemming.

    Examples:
        "Clinical Trials for Vaccines" → ["clinical", "trial", "vaccine"]
    """
    if not text:
        return []
    normalized = re.sub(r"[^\w\s]|_", " ", text.lower())
    tokens = []
    for word in normalized.split():
        if len(word) < MIN_TOKEN_LENGTH or word.isdigit() or word in STOPWORDS:
            continue
        stemmed = _stem(word)
        if stemmed not in STOPWORDS:
            tokens.append(stemmed)
    return tokens


def url_path_tokens(url: str) -> list[str]:
    """Tokens from the path segments of a URL."""
    try:
        path = urlsplit(url or "").path
    except ValueError:
        return []
    return tokenize(re.sub(r"[/\-_.]+", " ", path))


def registrable_domain(url: str) -> str:
    """
    Extract the registrable domain of a URL.

    Examples:
        https://www.nejm.org/doi/full/... → nejm.org
        https://news.bbc.co.uk/... → bbc.co.uk
        http://localhost:8000/ → localhost
    """
    if not url:
        return ""
    try:
        extracted = _domain_extractor(url)
    except Exception as e:
        logger.debug(f"Could not extract domain from {url[:80]}: {e}")
        return ""
    if extracted.domain and extracted.suffix:
        return f"{extracted.domain}.{extracted.suffix}".lower()
    return (extracted.domain or "").lower()


class NormalizedItem(BaseModel):
    """Normalized content of one tab within a batch."""

    tokens: list[str] = Field(default_factory=list)
    tfidf: dict[str, float] = Field(default_factory=dict)
    empty_content: bool = False
    domain: str = ""


class FeatureNormalizer:
    """
    Builds token sequences and batch-relative TF-IDF vectors.

    Attributes:
        top_k: Number of highest-weighted terms kept per tab
        idf_floor: Lower bound applied to IDF values
    """

    def __init__(self, top_k: int = 30, idf_floor: float = 0.1):
        """
        Initialize the normalizer.

        Args:
            top_k: Terms kept per TF-IDF vector (default: 30)
            idf_floor: Minimum IDF so that terms shared by most of a small
                batch keep a positive weight (default: 0.1)
        """
        if top_k < 1:
            raise ValueError("top_k must be at least 1")
        self.top_k = top_k
        self.idf_floor = idf_floor

    def tokens_for(self, item: TabItem) -> list[str]:
        """
        Compute the normalized token sequence of a tab.

        Returns an empty list when the tab has no usable content, even if it
        has a title: title-only tabs are treated as empty content.
        """
        if item.extraction_failed:
            return []

        content_tokens = [
            *tokenize(strip_boilerplate(item.text)[:TEXT_TOKEN_CHARS]),
            *tokenize(item.description),
            *(token for heading in item.headings for token in tokenize(heading)),
        ]
        if not content_tokens:
            return []

        tokens = [*tokenize(item.title), *url_path_tokens(item.url), *content_tokens]
        return tokens[:MAX_TOKENS]

    def normalize_batch(
        self,
        items: list[TabItem],
        cached_tokens: Optional[list[Optional[list[str]]]] = None,
    ) -> list[NormalizedItem]:
        """
        Normalize all tabs of a batch.

        Args:
            items: Tabs in batch order
            cached_tokens: Optional token lists from the feature cache, by
                position; None entries are computed

        Returns:
            One NormalizedItem per tab, in the same order
        """
        if not items:
            return []

        token_lists = []
        for index, item in enumerate(items):
            cached = cached_tokens[index] if cached_tokens else None
            token_lists.append(list(cached) if cached is not None else self.tokens_for(item))

        document_frequency: Counter = Counter()
        for tokens in token_lists:
            document_frequency.update(set(tokens))

        doc_count = len(items)
        results = []
        for item, tokens in zip(items, token_lists):
            results.append(NormalizedItem(
                tokens=tokens,
                tfidf=self._tfidf(tokens, document_frequency, doc_count),
                empty_content=not tokens,
                domain=registrable_domain(item.url),
            ))

        empty_count = sum(1 for r in results if r.empty_content)
        if empty_count:
            logger.info(f"{empty_count}/{doc_count} tabs have no usable content")
        return results

    def _tfidf(self, tokens: list[str], document_frequency: Counter, doc_count: int) -> dict[str, float]:
        if not tokens:
            return {}
        counts = Counter(tokens)
        total = len(tokens)
        weights = {}
        for token, count in counts.items():
            idf = math.log(doc_count / (1 + document_frequency[token]))
            weights[token] = (count / total) * max(idf, self.idf_floor)
        top = sorted(weights.items(), key=lambda kv: (-kv[1], kv[0]))[:self.top_k]
        return dict(top)
