"""
Agents for tab clustering.

This package provides:
- Feature normalization and caching (FeatureNormalizer, FeatureCache)
- Timeout-bounded AI enrichment (ClassifierAdapter, SummarizerAdapter, EmbeddingAdapter)
- Deterministic tab clustering and labeling (TabClusterer, ClusterLabeler)
- Deadline-bounded orchestration of a clustering run (TabOrchestrator)
"""

from tab_companion.agents.models import (
    TabItem,
    TabFeature,
    TabCluster,
    ClusterSet,
    ScanBatch,
)
from tab_companion.agents.feature_cache import FeatureCache
from tab_companion.agents.feature_normalizer import FeatureNormalizer
from tab_companion.agents.enrichment import ClassifierAdapter, SummarizerAdapter, EmbeddingAdapter
from tab_companion.agents.tab_clusterer import TabClusterer
from tab_companion.agents.cluster_labeler import ClusterLabeler
from tab_companion.agents.orchestrator import TabOrchestrator, build_orchestrator

__all__ = [
    "TabItem",
    "TabFeature",
    "TabCluster",
    "ClusterSet",
    "ScanBatch",
    "FeatureCache",
    "FeatureNormalizer",
    "ClassifierAdapter",
    "SummarizerAdapter",
    "EmbeddingAdapter",
    "TabClusterer",
    "ClusterLabeler",
    "TabOrchestrator",
    "build_orchestrator",
]
