"""
Cluster labeling and summarization.

Labels are built in two phases: a deterministic label from TF-IDF terms or
the shared domain, then an advisory override by classifier majority vote.
The override only ever changes labels, never cluster membership.
"""

from collections import Counter
from typing import Optional

from tab_companion.config import get_logger
from tab_companion.agents.models import LabelSource, TabCluster, UNSORTED_LABEL
from tab_companion.agents.tab_clusterer import ClusterDraft

logger = get_logger(__name__)


def title_case(tokens: list[str]) -> str:
    """Join tokens into a title-cased phrase."""
    return " ".join(token[:1].upper() + token[1:] for token in tokens if token)


class ClusterLabeler:
    """Service for naming and summarizing finalized clusters."""

    def __init__(
        self,
        topic_majority: float = 0.6,
        label_terms: int = 2,
        max_summary_bullets: int = 5,
        max_title_bullets: int = 3,
    ):
        """
        Initialize the labeler.

        Args:
            topic_majority: Share of members (0-1) that must agree on a
                classifier topic for it to become the label. Default: 0.6
            label_terms: Number of TF-IDF terms in a synthesized label
            max_summary_bullets: Cap on summarizer bullets per cluster
            max_title_bullets: Cap on title-based fallback bullets
        """
        self.topic_majority = topic_majority
        self.label_terms = label_terms
        self.max_summary_bullets = max_summary_bullets
        self.max_title_bullets = max_title_bullets

    def synthesize_label(self, cluster: ClusterDraft) -> tuple[str, LabelSource]:
        """
        Deterministic label from cluster content.

        Returns:
            (label, source): top TF-IDF terms, else the shared domain, else
            "Unsorted"
        """
        if cluster.is_unsorted:
            return UNSORTED_LABEL, LabelSource.FALLBACK

        terms = sorted(cluster.centroid.tfidf.items(), key=lambda kv: (-kv[1], kv[0]))
        top_terms = [term for term, weight in terms[:self.label_terms] if weight > 0]
        if top_terms:
            return title_case(top_terms), LabelSource.TERMS

        domains = {f.domain for f in cluster.features}
        if len(domains) == 1 and "" not in domains:
            return domains.pop(), LabelSource.DOMAIN

        return UNSORTED_LABEL, LabelSource.FALLBACK

    def majority_topic(self, cluster: ClusterDraft) -> Optional[str]:
        """
        Classifier topic shared by at least topic_majority of all members.

        Members without a classifier signal count against the majority.
        """
        topics = [f.topic.strip() for f in cluster.features if f.topic]
        if not topics:
            return None
        counts = Counter(t.lower() for t in topics)
        winner, count = counts.most_common(1)[0]
        if count / cluster.size < self.topic_majority:
            return None
        return next(t for t in topics if t.lower() == winner)

    def reconcile_label(
        self, cluster: ClusterDraft, label: str, source: LabelSource
    ) -> tuple[str, LabelSource]:
        """Prefer a classifier majority topic over the synthesized label."""
        if cluster.is_unsorted:
            return label, source
        topic = self.majority_topic(cluster)
        if topic and topic.lower() != label.lower():
            logger.debug(f"Relabeling cluster {cluster.id} '{label}' → '{topic}' (classifier majority)")
            return topic, LabelSource.CLASSIFIER
        if topic:
            return label, LabelSource.CLASSIFIER
        return label, source

    def summarize(self, cluster: ClusterDraft) -> list[str]:
        """
        Summary bullets for a cluster.

        Uses summarizer bullets of the members (deduplicated, in member
        order) when any member has them; otherwise builds bullets from tab
        titles.
        """
        bullets: list[str] = []
        seen: set[str] = set()
        for feature in cluster.features:
            for bullet in feature.summary or []:
                key = bullet.strip().lower()
                if key and key not in seen:
                    seen.add(key)
                    bullets.append(bullet.strip())
        if bullets:
            return bullets[:self.max_summary_bullets]

        for feature in cluster.features:
            key = feature.title.strip().lower()
            if key and key not in seen:
                seen.add(key)
                bullets.append(feature.title.strip())
        return bullets[:self.max_title_bullets]

    def finalize(self, clusters: list[ClusterDraft]) -> list[TabCluster]:
        """
        Turn cluster drafts into labeled, summarized clusters.

        Args:
            clusters: Finalized drafts from the clustering engine

        Returns:
            Clusters in the same order
        """
        finalized = []
        for cluster in clusters:
            label, source = self.synthesize_label(cluster)
            label, source = self.reconcile_label(cluster, label, source)
            finalized.append(TabCluster(
                id=cluster.id,
                label=label,
                label_source=source,
                member_ids=cluster.member_ids,
                summary=self.summarize(cluster),
                confidence=cluster.confidence,
                is_unsorted=cluster.is_unsorted,
            ))
            logger.info(f"Labeled cluster {cluster.id}: {label} ({cluster.size} tabs, source={source.value})")
        return finalized
