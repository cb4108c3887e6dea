"""
Clustering orchestrator.

Runs one clustering pass over a batch of tabs:
1. Fingerprint every tab and look up cached features
2. Normalize the whole batch (tokens + TF-IDF)
3. Enrich tabs concurrently (classifier, summarizer, embedding) under a
   global deadline, buffering each signal as soon as it completes
4. Cluster and label the tabs strictly in batch order

Enrichment problems never abort a run; they show up in the per-tab statuses.
"""

import asyncio
import time
from typing import Callable, Optional

from openai import AsyncOpenAI

from tab_companion.config import Settings, get_logger
from tab_companion.agents.cluster_labeler import ClusterLabeler
from tab_companion.agents.enrichment import (
    ClassifierAdapter,
    EmbeddingAdapter,
    EnrichmentAdapter,
    SummarizerAdapter,
    enrichment_text,
)
from tab_companion.agents.errors import DeadlineExceeded
from tab_companion.agents.feature_cache import FeatureCache, fingerprint
from tab_companion.agents.feature_normalizer import FeatureNormalizer, NormalizedItem
from tab_companion.agents.models import (
    CacheEntry,
    ClusterSet,
    EnrichmentResult,
    EnrichmentStatus,
    ItemStatus,
    ScanBatch,
    TabFeature,
    TabItem,
)
from tab_companion.agents.openai_services import (
    OpenAIClassifierService,
    OpenAIEmbeddingService,
    OpenAISummarizerService,
)
from tab_companion.agents.similarity import SimilarityEngine, SimilarityWeights
from tab_companion.agents.tab_clusterer import TabClusterer
from tab_companion.agents.you_summarizer import YouSummarizerService
from tab_companion.search.you_client import YouAPIClient

logger = get_logger(__name__)

# ItemStatus field for each adapter's signal
STATUS_FIELDS = {
    "classifier": "classifier",
    "summary": "summarizer",
    "embedding": "embedding",
}


class ItemSlot:
    """Per-tab buffer for enrichment results of one run."""

    def __init__(self, position: int, item: TabItem, fp: str, normalized: NormalizedItem, cached: Optional[CacheEntry]):
        self.position = position
        self.item = item
        self.fingerprint = fp
        self.normalized = normalized
        self.cached = cached
        self.results: dict[str, EnrichmentResult] = {}

    def value(self, name: str):
        result = self.results.get(name)
        if result is not None and result.available:
            return result.value
        return None


class TabOrchestrator:
    """
    Coordinates normalization, enrichment, clustering and labeling.

    Attributes:
        normalizer: Batch TF-IDF normalizer
        engine: Clustering engine
        labeler: Cluster label and summary generator
        cache: Feature cache shared across runs
        adapters: Enrichment adapters (classifier, summarizer, embedding)
        clock: Monotonic time source used for the deadline
    """

    def __init__(
        self,
        normalizer: Optional[FeatureNormalizer] = None,
        engine: Optional[TabClusterer] = None,
        labeler: Optional[ClusterLabeler] = None,
        cache: Optional[FeatureCache] = None,
        classifier: Optional[ClassifierAdapter] = None,
        summarizer: Optional[SummarizerAdapter] = None,
        embedder: Optional[EmbeddingAdapter] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.normalizer = normalizer if normalizer is not None else FeatureNormalizer()
        self.engine = engine if engine is not None else TabClusterer()
        self.labeler = labeler if labeler is not None else ClusterLabeler()
        self.cache = cache if cache is not None else FeatureCache(clock=clock)
        self.classifier = classifier if classifier is not None else ClassifierAdapter(None)
        self.summarizer = summarizer if summarizer is not None else SummarizerAdapter(None)
        self.embedder = embedder if embedder is not None else EmbeddingAdapter(None)
        self.clock = clock

    @property
    def adapters(self) -> list[EnrichmentAdapter]:
        return [self.classifier, self.summarizer, self.embedder]

    async def run(self, batch: ScanBatch) -> ClusterSet:
        """
        Cluster a batch of tabs.

        Args:
            batch: Tabs plus deadline and concurrency settings

        Returns:
            ClusterSet covering every tab exactly once
        """
        start = self.clock()
        deadline = start + batch.deadline_seconds
        items = batch.items

        if not items:
            return ClusterSet(elapsed_seconds=self.clock() - start)

        logger.info(
            f"Clustering {len(items)} tabs (deadline {batch.deadline_seconds}s, "
            f"concurrency {batch.concurrency})"
        )

        fingerprints = [fingerprint(item) for item in items]
        cached = [self.cache.lookup(fp) for fp in fingerprints]
        normalized = self.normalizer.normalize_batch(
            items,
            cached_tokens=[entry.tokens if entry and entry.tokens else None for entry in cached],
        )
        slots = [
            ItemSlot(position, item, fp, norm, entry)
            for position, (item, fp, norm, entry) in enumerate(zip(items, fingerprints, normalized, cached))
        ]

        semaphore = asyncio.Semaphore(batch.concurrency)
        tasks = [asyncio.create_task(self._enrich_item(slot, semaphore)) for slot in slots]

        deadline_exceeded = False
        try:
            await self._settle(tasks, deadline)
        except DeadlineExceeded as e:
            logger.warning(f"{e}; continuing with buffered signals")
            deadline_exceeded = True

        statuses = [self._item_status(slot, deadline_exceeded) for slot in slots]
        features = [self._feature(slot) for slot in slots]

        drafts = self.engine.cluster(features)
        clusters = self.labeler.finalize(drafts)

        elapsed = self.clock() - start
        logger.info(f"Clustered {len(items)} tabs into {len(clusters)} clusters in {elapsed:.2f}s")
        return ClusterSet(
            clusters=clusters,
            item_statuses=statuses,
            total_items=len(items),
            deadline_exceeded=deadline_exceeded,
            elapsed_seconds=elapsed,
        )

    async def _settle(self, tasks: list[asyncio.Task], deadline: float) -> None:
        """Wait for enrichment tasks until the deadline.

        Raises:
            DeadlineExceeded: If tasks were still pending at the deadline;
                they are cancelled before raising
        """
        remaining = max(deadline - self.clock(), 0.0)
        done, pending = await asyncio.wait(tasks, timeout=remaining)

        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.error("Enrichment task failed", exc_info=task.exception())

        if pending:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            raise DeadlineExceeded(f"Deadline reached with {len(pending)} tab(s) still enriching")

    async def _enrich_item(self, slot: ItemSlot, semaphore: asyncio.Semaphore) -> None:
        """Run all adapters for one tab, buffering each result as it completes."""
        text = "" if slot.normalized.empty_content else enrichment_text(slot.item)

        async def run_adapter(adapter: EnrichmentAdapter) -> None:
            slot.results[adapter.name] = await adapter.enrich(text, slot.cached)

        async with semaphore:
            try:
                await asyncio.gather(*(run_adapter(adapter) for adapter in self.adapters))
            finally:
                self._store(slot)

    def _store(self, slot: ItemSlot) -> None:
        """Write the tab's features, partial or complete, to the cache."""
        self.cache.store(slot.fingerprint, CacheEntry(
            fingerprint=slot.fingerprint,
            tokens=slot.normalized.tokens,
            classifier=slot.value("classifier"),
            embedding=slot.value("embedding"),
            summary=slot.value("summary"),
        ))

    def _item_status(self, slot: ItemSlot, deadline_exceeded: bool) -> ItemStatus:
        status = ItemStatus(
            item_id=slot.item.id,
            fingerprint=slot.fingerprint,
            empty_content=slot.normalized.empty_content,
            cache_hit=slot.cached is not None,
        )
        missing = EnrichmentStatus.CANCELLED if deadline_exceeded else EnrichmentStatus.UNAVAILABLE
        for adapter in self.adapters:
            result = slot.results.get(adapter.name)
            if result is None:
                setattr(status, STATUS_FIELDS[adapter.name], missing)
                status.deadline_exceeded = deadline_exceeded
                continue
            setattr(status, STATUS_FIELDS[adapter.name], result.status)
            if result.status == EnrichmentStatus.ERROR:
                status.errors.append(f"{adapter.name}: {result.reason}")
        return status

    def _feature(self, slot: ItemSlot) -> TabFeature:
        return TabFeature(
            item_id=slot.item.id,
            fingerprint=slot.fingerprint,
            title=slot.item.title,
            tokens=slot.normalized.tokens,
            tfidf=slot.normalized.tfidf,
            empty_content=slot.normalized.empty_content,
            domain=slot.normalized.domain,
            classifier=slot.value("classifier"),
            embedding=slot.value("embedding"),
            summary=slot.value("summary"),
        )

    def run_sync(self, batch: ScanBatch) -> ClusterSet:
        """Synchronous wrapper around run().

        Each call runs in a fresh event loop. Services holding HTTP clients
        are bound to one loop; the API server uses run() and aclose().
        """
        return asyncio.run(self.run(batch))

    async def aclose(self) -> None:
        """Close the HTTP clients held by the enrichment services.

        Adapters sharing one client close it once per adapter; the clients
        tolerate repeated closes.
        """
        for adapter in self.adapters:
            await adapter.close()
        logger.info("Closed enrichment services")


def get_summarizer_service(settings: Settings, openai_client: Optional[AsyncOpenAI] = None):
    """
    Get the configured summarizer service.

    Args:
        settings: Application settings
        openai_client: OpenAI client (required if using the OpenAI summarizer)

    Returns:
        Summarizer service, or None if its API key is missing
    """
    provider = settings.summarizer_provider.lower()

    if provider == "you":
        if not settings.you_api_key:
            logger.warning("YOU_API_KEY not set, falling back to OpenAI summarizer")
        else:
            return YouSummarizerService(YouAPIClient(settings.you_api_key))
    elif provider != "openai":
        raise ValueError(f"Unknown summarizer provider: {settings.summarizer_provider}")

    if openai_client is None:
        logger.warning("OPENAI_API_KEY not set, summaries will use tab titles")
        return None
    return OpenAISummarizerService(openai_client, settings.openai_llm_model)


def build_services(settings: Settings) -> tuple:
    """
    Choose the enrichment services from settings.

    Returns:
        (classifier, summarizer, embedder); services whose API keys are
        missing are None
    """
    openai_client = AsyncOpenAI(api_key=settings.openai_api_key) if settings.openai_api_key else None
    if openai_client is None:
        logger.warning("OPENAI_API_KEY not set, classifier and embeddings disabled")

    classifier = OpenAIClassifierService(openai_client, settings.openai_llm_model) if openai_client else None
    embedder = OpenAIEmbeddingService(openai_client, settings.openai_embedding_model) if openai_client else None
    return classifier, get_summarizer_service(settings, openai_client), embedder


def build_orchestrator(settings: Settings) -> TabOrchestrator:
    """
    Build an orchestrator from settings.

    AI services whose API keys are missing are left out; clustering then
    runs on TF-IDF and domain signals only.
    """
    classifier, summarizer, embedder = build_services(settings)

    weights = SimilarityWeights(
        tfidf=settings.weight_tfidf,
        embedding=settings.weight_embedding,
        topic=settings.weight_topic,
        domain=settings.weight_domain,
    )
    return TabOrchestrator(
        normalizer=FeatureNormalizer(top_k=settings.tfidf_top_k, idf_floor=settings.idf_floor),
        engine=TabClusterer(
            similarity=SimilarityEngine(weights),
            join_threshold=settings.join_threshold,
            merge_threshold=settings.merge_threshold,
            min_cluster_size=settings.min_cluster_size,
            max_clusters=settings.max_clusters,
        ),
        labeler=ClusterLabeler(topic_majority=settings.topic_majority),
        cache=FeatureCache(ttl_seconds=settings.cache_ttl_seconds),
        classifier=ClassifierAdapter(classifier, timeout=settings.classifier_timeout),
        summarizer=SummarizerAdapter(summarizer, timeout=settings.summarizer_timeout),
        embedder=EmbeddingAdapter(embedder, timeout=settings.embedding_timeout),
    )
