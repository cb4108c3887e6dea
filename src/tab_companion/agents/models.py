"""
Data models for tab clustering.

This module defines the core data structures for representing browser tabs
(items), their derived features and enrichment signals, and the clusters
produced by a single clustering run.
"""

from datetime import datetime, UTC
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

MAX_TEXT_CHARS = 6000
MAX_HEADINGS = 6
MAX_SIGNAL_TERMS = 8
UNSORTED_LABEL = "Unsorted"


class TabItem(BaseModel):
    """A browser tab with the content extracted from it.

    Items are created by the content extractor and are read-only to the
    clustering core.

    Attributes:
        id: Host tab identifier
        url: The URL of the tab
        title: The title of the tab
        text: Extracted page text (truncated to MAX_TEXT_CHARS)
        description: Meta description of the page
        headings: Leading page headings
        language: Declared page language, if any
        extraction_failed: Whether content extraction failed for this tab
    """

    id: int
    url: str
    title: str = ""
    text: str = ""
    description: str = ""
    headings: list[str] = Field(default_factory=list)
    language: Optional[str] = None
    extraction_failed: bool = False

    model_config = ConfigDict(frozen=True)

    @field_validator('title', 'description', mode='before')
    @classmethod
    def convert_none_to_empty_string(cls, v):
        """Convert None to empty string for optional text fields."""
        return v if v is not None else ""

    @field_validator('text', mode='before')
    @classmethod
    def bound_text(cls, v):
        """Keep extracted text within MAX_TEXT_CHARS."""
        if v is None:
            return ""
        return str(v)[:MAX_TEXT_CHARS]

    @field_validator('headings', mode='before')
    @classmethod
    def bound_headings(cls, v):
        """Convert None to empty list and keep the first few headings."""
        if v is None:
            return []
        return [str(h) for h in v if h][:MAX_HEADINGS]


def _clean_terms(values) -> list[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = values.split(",")
    cleaned = []
    for value in values:
        term = str(value).strip()
        if term and term not in cleaned:
            cleaned.append(term)
    return cleaned[:MAX_SIGNAL_TERMS]


class ClassifierSignal(BaseModel):
    """Topic classification for a single tab."""

    topic: str
    keywords: list[str] = Field(default_factory=list)
    entities: list[str] = Field(default_factory=list)
    confidence: float = 0.0

    @field_validator('topic', mode='before')
    @classmethod
    def require_topic(cls, v):
        """Topics must be non-empty strings."""
        if not isinstance(v, str) or not v.strip():
            raise ValueError("topic must be a non-empty string")
        return v.strip()

    @field_validator('keywords', 'entities', mode='before')
    @classmethod
    def clean_terms(cls, v):
        return _clean_terms(v)

    @field_validator('confidence', mode='before')
    @classmethod
    def clamp_confidence(cls, v):
        """Clamp confidence into [0, 1]; missing confidence counts as 0."""
        if v is None:
            return 0.0
        return min(max(float(v), 0.0), 1.0)


class EnrichmentStatus(str, Enum):
    """Outcome of one adapter call for one tab."""
    OK = "ok"
    CACHED = "cached"
    UNAVAILABLE = "unavailable"
    ERROR = "error"
    CANCELLED = "cancelled"


class EnrichmentResult(BaseModel):
    """Tagged result of an enrichment adapter: Ok(signal), Unavailable or Error(reason)."""

    status: EnrichmentStatus
    value: Any = None
    reason: Optional[str] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def available(self) -> bool:
        return self.status in (EnrichmentStatus.OK, EnrichmentStatus.CACHED)

    @classmethod
    def ok(cls, value: Any) -> "EnrichmentResult":
        return cls(status=EnrichmentStatus.OK, value=value)

    @classmethod
    def cached(cls, value: Any) -> "EnrichmentResult":
        return cls(status=EnrichmentStatus.CACHED, value=value)

    @classmethod
    def unavailable(cls, reason: str) -> "EnrichmentResult":
        return cls(status=EnrichmentStatus.UNAVAILABLE, reason=reason)

    @classmethod
    def error(cls, reason: str) -> "EnrichmentResult":
        return cls(status=EnrichmentStatus.ERROR, reason=reason)

    @classmethod
    def cancelled(cls) -> "EnrichmentResult":
        return cls(status=EnrichmentStatus.CANCELLED, reason="deadline exceeded")


class CacheEntry(BaseModel):
    """Cached, batch-independent features for one fingerprint.

    TF-IDF weights depend on the batch corpus and are never cached; only the
    token list and the raw enrichment signals are.
    """

    fingerprint: str
    tokens: list[str] = Field(default_factory=list)
    classifier: Optional[ClassifierSignal] = None
    embedding: Optional[list[float]] = None
    summary: Optional[list[str]] = None
    timestamp: float = 0.0


class TabFeature(BaseModel):
    """Everything the clustering engine knows about one tab.

    Attributes:
        item_id: ID of the source tab
        fingerprint: Content fingerprint of the tab
        title: Tab title (used for fallback summaries)
        tokens: Normalized token sequence
        tfidf: Batch-relative TF-IDF weights (top-K terms only)
        empty_content: True when no usable content was extracted
        domain: Registrable domain of the tab URL
        classifier: Classifier signal, or None when unavailable
        embedding: L2-normalized embedding, or None when unavailable
        summary: Summarizer bullets, or None when unavailable
    """

    item_id: int
    fingerprint: str
    title: str = ""
    tokens: list[str] = Field(default_factory=list)
    tfidf: dict[str, float] = Field(default_factory=dict)
    empty_content: bool = False
    domain: str = ""
    classifier: Optional[ClassifierSignal] = None
    embedding: Optional[list[float]] = None
    summary: Optional[list[str]] = None

    @property
    def topic(self) -> Optional[str]:
        return self.classifier.topic if self.classifier else None


class ItemStatus(BaseModel):
    """Per-tab observability record reported alongside the clusters."""

    item_id: int
    fingerprint: str
    empty_content: bool = False
    cache_hit: bool = False
    classifier: EnrichmentStatus = EnrichmentStatus.UNAVAILABLE
    summarizer: EnrichmentStatus = EnrichmentStatus.UNAVAILABLE
    embedding: EnrichmentStatus = EnrichmentStatus.UNAVAILABLE
    deadline_exceeded: bool = False
    errors: list[str] = Field(default_factory=list)


class LabelSource(str, Enum):
    """Where a cluster label came from."""
    CLASSIFIER = "classifier"
    TERMS = "terms"
    DOMAIN = "domain"
    FALLBACK = "fallback"


class TabCluster(BaseModel):
    """A finalized cluster of semantically related tabs.

    Attributes:
        id: Cluster identifier, stable for a fixed input
        label: Human-readable name
        label_source: Which signal produced the label
        member_ids: Member tab IDs in batch order
        summary: Short bullet summary of the cluster
        confidence: Mean pairwise similarity of members (0-1)
        is_unsorted: Whether this is the reserved "Unsorted" cluster
    """

    id: str
    label: str = UNSORTED_LABEL
    label_source: LabelSource = LabelSource.FALLBACK
    member_ids: list[int] = Field(default_factory=list)
    summary: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    is_unsorted: bool = False

    @property
    def size(self) -> int:
        return len(self.member_ids)


class ClusterSet(BaseModel):
    """Result of a clustering run.

    Attributes:
        clusters: Finalized clusters, covering every input tab exactly once
        item_statuses: Per-tab enrichment/extraction status, in input order
        total_items: Number of tabs in the batch
        deadline_exceeded: Whether the global deadline cut enrichment short
        elapsed_seconds: Wall-clock duration of the run
        timestamp: When the run finished
    """

    clusters: list[TabCluster] = Field(default_factory=list)
    item_statuses: list[ItemStatus] = Field(default_factory=list)
    total_items: int = 0
    deadline_exceeded: bool = False
    elapsed_seconds: float = 0.0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def member_ids(self) -> list[int]:
        """All member IDs across clusters, in cluster order."""
        return [item_id for cluster in self.clusters for item_id in cluster.member_ids]

    def cluster_for(self, item_id: int) -> Optional[TabCluster]:
        """Get the cluster containing a tab, if any."""
        for cluster in self.clusters:
            if item_id in cluster.member_ids:
                return cluster
        return None

    def without_items(self, item_ids) -> "ClusterSet":
        """Return a copy with the given tabs removed (e.g. after the host closed them).

        Clusters left without members are dropped.
        """
        removed = set(item_ids)
        clusters = []
        for cluster in self.clusters:
            members = [i for i in cluster.member_ids if i not in removed]
            if members:
                clusters.append(cluster.model_copy(update={"member_ids": members}))
        statuses = [s for s in self.item_statuses if s.item_id not in removed]
        return self.model_copy(update={
            "clusters": clusters,
            "item_statuses": statuses,
            "total_items": sum(len(c.member_ids) for c in clusters),
        })

    def to_report(self, items: Optional[list[TabItem]] = None) -> dict:
        """Build a serializable report of the clusters for export."""
        by_id = {item.id: item for item in items or []}
        groups = []
        for cluster in self.clusters:
            tabs = []
            for item_id in cluster.member_ids:
                item = by_id.get(item_id)
                tabs.append({
                    "id": item_id,
                    "title": item.title if item else "",
                    "url": item.url if item else "",
                })
            groups.append({
                "id": cluster.id,
                "name": cluster.label,
                "tab_count": cluster.size,
                "confidence": round(cluster.confidence, 3),
                "summary": list(cluster.summary),
                "tabs": tabs,
            })
        return {
            "timestamp": self.timestamp.isoformat(),
            "total_tabs": self.total_items,
            "groups": groups,
        }


class ScanBatch(BaseModel):
    """All tabs submitted together for one clustering run."""

    items: list[TabItem] = Field(default_factory=list)
    deadline_seconds: float = Field(default=20.0, gt=0.0)
    concurrency: int = Field(default=6, ge=1)

    @model_validator(mode='after')
    def check_unique_ids(self):
        """A tab can only appear once per batch."""
        ids = [item.id for item in self.items]
        if len(ids) != len(set(ids)):
            raise ValueError("duplicate tab ids in batch")
        return self
