"""
Tab clustering service with centroid-based assignment.

This module implements deterministic tab clustering using composite
similarity (TF-IDF, embeddings, classifier topic and domain) and
centroid-based matching. Tabs are processed strictly in batch order, so the
same input and the same enrichment results always produce the same clusters.
"""

from collections import Counter
from typing import Optional

import numpy as np

from tab_companion.config import get_logger
from tab_companion.agents.models import TabFeature
from tab_companion.agents.similarity import SignalProfile, SimilarityEngine

logger = get_logger(__name__)

UNSORTED_CLUSTER_ID = "unsorted"


def _majority(values: list[str]) -> Optional[str]:
    """Most common value, ties broken by first occurrence."""
    if not values:
        return None
    return Counter(values).most_common(1)[0][0]


class ClusterDraft:
    """
    A cluster under construction.

    Tracks member features together with their batch positions and keeps the
    centroid up to date on every addition.

    Attributes:
        positions: Batch positions of the members, ascending
        features: Member features, in batch order
        centroid: Aggregate signal profile of the members
        confidence: Mean pairwise member similarity, set when finalized
        is_unsorted: Whether this is the reserved "Unsorted" cluster
    """

    def __init__(self, is_unsorted: bool = False):
        self.positions: list[int] = []
        self.features: list[TabFeature] = []
        self.centroid = SignalProfile()
        self.confidence = 1.0
        self.is_unsorted = is_unsorted
        self.id = UNSORTED_CLUSTER_ID if is_unsorted else ""

    @property
    def size(self) -> int:
        return len(self.features)

    @property
    def member_ids(self) -> list[int]:
        return [f.item_id for f in self.features]

    def add_feature(self, position: int, feature: TabFeature) -> None:
        """Add a tab and recompute the centroid."""
        self.positions.append(position)
        self.features.append(feature)
        self.update_centroid()

    def absorb(self, other: "ClusterDraft") -> None:
        """Take over all members of another cluster, keeping batch order."""
        members = sorted(
            zip(self.positions + other.positions, self.features + other.features),
            key=lambda member: member[0],
        )
        self.positions = [position for position, _ in members]
        self.features = [feature for _, feature in members]
        self.update_centroid()

    def update_centroid(self) -> None:
        """Recalculate the centroid from the current members.

        TF-IDF is the running average of member vectors. The embedding is the
        mean over members that have one (of the dominant dimension). Topic and
        domain are majority votes.
        """
        if not self.features:
            self.centroid = SignalProfile()
            return

        n = len(self.features)
        tfidf: dict[str, float] = {}
        for feature in self.features:
            for term, weight in feature.tfidf.items():
                tfidf[term] = tfidf.get(term, 0.0) + weight
        tfidf = {term: weight / n for term, weight in tfidf.items()}

        embedding = None
        embeddings = [f.embedding for f in self.features if f.embedding]
        if embeddings:
            dim = len(embeddings[0])
            same_dim = [e for e in embeddings if len(e) == dim]
            embedding = np.mean(same_dim, axis=0).tolist()

        topics = [f.topic.strip() for f in self.features if f.topic]
        topic = None
        if topics:
            lowered = _majority([t.lower() for t in topics])
            topic = next(t for t in topics if t.lower() == lowered)

        domain = _majority([f.domain for f in self.features if f.domain]) or ""

        self.centroid = SignalProfile(tfidf=tfidf, embedding=embedding, topic=topic, domain=domain)


class TabClusterer:
    """
    Assigns tabs to clusters using centroid similarity.

    This class implements the core clustering logic:
    1. Greedy single-pass assignment in batch order (join or open a cluster)
    2. Merging of undersized clusters into their nearest neighbour
    3. Folding of leftover small clusters into "Unsorted" when there are too
       many clusters
    4. Confidence scoring from pairwise member similarity

    Key Design Decisions:
    - Ties between equally similar clusters go to the earliest-created one
    - Centroids are updated eagerly on every addition
    - Every tab ends up in exactly one cluster, even with no content

    Attributes:
        similarity: Composite similarity engine
        join_threshold: Minimum similarity to join an open cluster
        merge_threshold: Relaxed threshold for merging undersized clusters
        min_cluster_size: Clusters below this size are merge candidates
        max_clusters: Cluster count above which small clusters are folded
    """

    def __init__(
        self,
        similarity: Optional[SimilarityEngine] = None,
        join_threshold: float = 0.5,
        merge_threshold: float = 0.35,
        min_cluster_size: int = 2,
        max_clusters: int = 8,
    ):
        """
        Initialize the TabClusterer.

        Args:
            similarity: Similarity engine. Default weights if not provided.
            join_threshold: Minimum similarity (0-1) for joining a cluster.
                Default: 0.5
            merge_threshold: Minimum similarity (0-1) for merging a small
                cluster into its nearest neighbour. Default: 0.35
            min_cluster_size: Clusters smaller than this are merged or
                folded. Default: 2
            max_clusters: Maximum number of clusters before small ones are
                folded into "Unsorted". Default: 8
        """
        if min_cluster_size < 1:
            raise ValueError("min_cluster_size must be at least 1")
        if max_clusters < 1:
            raise ValueError("max_clusters must be at least 1")

        self.similarity = similarity or SimilarityEngine()
        self.join_threshold = join_threshold
        self.merge_threshold = merge_threshold
        self.min_cluster_size = min_cluster_size
        self.max_clusters = max_clusters

    def _best_match(
        self, profile: SignalProfile, candidates: list[ClusterDraft]
    ) -> Optional[tuple[ClusterDraft, float]]:
        """Most similar candidate; ties go to the earliest candidate."""
        best_cluster = None
        best_similarity = -1.0
        for cluster in candidates:
            similarity = self.similarity.score(profile, cluster.centroid)
            if similarity > best_similarity:
                best_similarity = similarity
                best_cluster = cluster
        if best_cluster is None:
            return None
        return best_cluster, best_similarity

    def find_best_cluster(
        self, feature: TabFeature, clusters: list[ClusterDraft]
    ) -> Optional[tuple[ClusterDraft, float]]:
        """
        Find the best open cluster for a tab.

        Args:
            feature: The tab to place
            clusters: Open clusters in creation order

        Returns:
            Tuple of (best_cluster, similarity) or None if no cluster reaches
            the join threshold
        """
        result = self._best_match(SignalProfile.from_feature(feature), clusters)
        if result and result[1] >= self.join_threshold:
            return result
        return None

    def assign(self, features: list[TabFeature]) -> list[ClusterDraft]:
        """
        Greedy single-pass assignment of tabs in batch order.

        Args:
            features: Tab features in batch order

        Returns:
            Clusters in creation order
        """
        clusters: list[ClusterDraft] = []
        for position, feature in enumerate(features):
            result = self.find_best_cluster(feature, clusters)
            if result:
                cluster, similarity = result
                logger.debug(
                    f"Assigning tab {feature.item_id} to cluster #{clusters.index(cluster)} "
                    f"(similarity: {similarity:.2f})"
                )
                cluster.add_feature(position, feature)
            else:
                cluster = ClusterDraft()
                cluster.add_feature(position, feature)
                clusters.append(cluster)
                logger.debug(f"Created cluster #{len(clusters) - 1} for tab {feature.item_id}")
        return clusters

    def merge_small_clusters(self, clusters: list[ClusterDraft]) -> list[ClusterDraft]:
        """
        Merge undersized clusters into their nearest cluster.

        Small clusters are visited in creation order. A cluster that grew to
        the minimum size by absorbing another one is no longer merged.

        Args:
            clusters: Clusters in creation order

        Returns:
            Remaining clusters in creation order
        """
        result = list(clusters)
        for small in clusters:
            if small not in result or small.size >= self.min_cluster_size:
                continue
            candidates = [c for c in result if c is not small]
            match = self._best_match(small.centroid, candidates)
            if match and match[1] >= self.merge_threshold:
                target, similarity = match
                logger.debug(
                    f"Merging small cluster {small.member_ids} into {target.member_ids} "
                    f"(similarity: {similarity:.2f})"
                )
                target.absorb(small)
                result.remove(small)
        return result

    def fold_into_unsorted(self, clusters: list[ClusterDraft]) -> list[ClusterDraft]:
        """
        Fold small clusters into a reserved "Unsorted" cluster while there are
        more than max_clusters clusters.

        The least similar small clusters are folded first. The Unsorted
        cluster counts as one cluster and keeps its members in batch order.
        Nothing is folded unless at least two small clusters exist, since
        folding one would not lower the count.

        Args:
            clusters: Clusters in creation order

        Returns:
            Remaining clusters, with the Unsorted cluster last if created
        """
        if len(clusters) <= self.max_clusters:
            return clusters

        scored = []
        for index, cluster in enumerate(clusters):
            if cluster.size >= self.min_cluster_size:
                continue
            others = [c for c in clusters if c is not cluster]
            match = self._best_match(cluster.centroid, others)
            scored.append((match[1] if match else 0.0, index, cluster))
        scored.sort(key=lambda entry: (entry[0], entry[1]))

        folded: list[ClusterDraft] = []
        for _, _, cluster in scored:
            current_count = len(clusters) - len(folded) + (1 if folded else 0)
            if current_count <= self.max_clusters:
                break
            folded.append(cluster)

        # Folding a single cluster only renames it
        if len(folded) < 2:
            logger.warning(
                f"{len(clusters)} clusters exceed max_clusters={self.max_clusters} "
                f"but fewer than two are small enough to fold"
            )
            return clusters

        members = sorted(
            (position, feature)
            for cluster in folded
            for position, feature in zip(cluster.positions, cluster.features)
        )
        unsorted = ClusterDraft(is_unsorted=True)
        for position, feature in members:
            unsorted.positions.append(position)
            unsorted.features.append(feature)
        unsorted.update_centroid()

        logger.info(f"Folded {len(folded)} small cluster(s) into Unsorted ({unsorted.size} tabs)")
        return [c for c in clusters if not any(c is f for f in folded)] + [unsorted]

    def _score_confidence(self, clusters: list[ClusterDraft], matrix: np.ndarray) -> None:
        for cluster in clusters:
            positions = cluster.positions
            if len(positions) < 2:
                cluster.confidence = 1.0
                continue
            scores = [
                matrix[positions[i], positions[j]]
                for i in range(len(positions))
                for j in range(i + 1, len(positions))
            ]
            cluster.confidence = float(min(max(np.mean(scores), 0.0), 1.0))

    def cluster(self, features: list[TabFeature]) -> list[ClusterDraft]:
        """
        Cluster a batch of tabs.

        This is the main entry point. It runs assignment, merging and
        folding, then scores confidence and assigns stable cluster IDs.

        Args:
            features: Tab features in batch order

        Returns:
            Finalized cluster drafts covering every tab exactly once
        """
        if not features:
            return []

        clusters = self.assign(features)
        clusters = self.merge_small_clusters(clusters)
        clusters = self.fold_into_unsorted(clusters)

        matrix = self.similarity.pairwise(features)
        self._score_confidence(clusters, matrix)

        number = 0
        for cluster in clusters:
            if not cluster.is_unsorted:
                number += 1
                cluster.id = f"cluster-{number}"

        logger.info(f"Clustered {len(features)} tabs into {len(clusters)} clusters")
        return clusters

    def get_cluster_stats(self, clusters: list[ClusterDraft]) -> dict:
        """Get statistics about a set of clusters.

        Returns:
            Dictionary with cluster statistics
        """
        total_tabs = sum(cluster.size for cluster in clusters)

        return {
            "total_clusters": len(clusters),
            "total_tabs": total_tabs,
            "avg_tabs_per_cluster": (
                total_tabs / len(clusters) if clusters else 0
            ),
            "singletons": sum(1 for c in clusters if c.size == 1),
            "clusters": [
                {
                    "id": cluster.id,
                    "tab_count": cluster.size,
                    "confidence": cluster.confidence,
                    "is_unsorted": cluster.is_unsorted,
                }
                for cluster in clusters
            ],
        }
