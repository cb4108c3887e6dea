"""
Tests for cluster labels and summaries.
"""

import pytest

from tab_companion.agents.cluster_labeler import ClusterLabeler, title_case
from tab_companion.agents.models import ClassifierSignal, LabelSource, TabFeature, UNSORTED_LABEL
from tab_companion.agents.tab_clusterer import ClusterDraft


def make_draft(*features, is_unsorted=False):
    draft = ClusterDraft(is_unsorted=is_unsorted)
    for position, feature in enumerate(features):
        draft.add_feature(position, feature)
    return draft


def feature(item_id, tfidf=None, domain="", topic=None, summary=None, title=""):
    return TabFeature(
        item_id=item_id,
        fingerprint=f"fp-{item_id}",
        title=title,
        tfidf=tfidf or {},
        domain=domain,
        classifier=ClassifierSignal(topic=topic) if topic else None,
        summary=summary,
    )


@pytest.fixture
def labeler():
    return ClusterLabeler()


class TestSynthesizeLabel:
    """Tests for the deterministic label."""

    def test_top_terms(self, labeler):
        draft = make_draft(
            feature(1, {"vaccine": 0.5, "trial": 0.4, "immune": 0.1}),
            feature(2, {"vaccine": 0.6, "trial": 0.2}),
        )
        assert labeler.synthesize_label(draft) == ("Vaccine Trial", LabelSource.TERMS)

    def test_shared_domain(self, labeler):
        draft = make_draft(feature(1, domain="youtube.com"), feature(2, domain="youtube.com"))
        assert labeler.synthesize_label(draft) == ("youtube.com", LabelSource.DOMAIN)

    def test_fallback(self, labeler):
        draft = make_draft(feature(1, domain="a.com"), feature(2, domain="b.com"))
        assert labeler.synthesize_label(draft) == (UNSORTED_LABEL, LabelSource.FALLBACK)

    def test_unsorted_cluster(self, labeler):
        draft = make_draft(feature(1, {"vaccine": 1.0}), is_unsorted=True)
        assert labeler.synthesize_label(draft) == (UNSORTED_LABEL, LabelSource.FALLBACK)

    def test_title_case(self):
        assert title_case(["graph", "neo4j"]) == "Graph Neo4j"


class TestReconcileLabel:
    """Tests for the classifier majority override."""

    def test_majority_topic_wins(self, labeler):
        draft = make_draft(
            feature(1, {"vaccine": 1.0}, topic="Health"),
            feature(2, {"vaccine": 1.0}, topic="health"),
            feature(3, {"vaccine": 1.0}, topic="Science"),
        )
        assert labeler.reconcile_label(draft, "Vaccine", LabelSource.TERMS) == ("Health", LabelSource.CLASSIFIER)

    def test_no_majority_keeps_label(self, labeler):
        draft = make_draft(
            feature(1, {"vaccine": 1.0}, topic="Health"),
            feature(2, {"vaccine": 1.0}, topic="Science"),
        )
        assert labeler.reconcile_label(draft, "Vaccine", LabelSource.TERMS) == ("Vaccine", LabelSource.TERMS)

    def test_members_without_topic_count_against_majority(self, labeler):
        draft = make_draft(
            feature(1, {"vaccine": 1.0}, topic="Health"),
            feature(2, {"vaccine": 1.0}),
        )
        assert labeler.majority_topic(draft) is None

    def test_same_topic_as_label(self, labeler):
        draft = make_draft(feature(1, {"health": 1.0}, topic="Health"))
        assert labeler.reconcile_label(draft, "Health", LabelSource.TERMS) == ("Health", LabelSource.CLASSIFIER)

    def test_unsorted_is_never_relabeled(self, labeler):
        draft = make_draft(feature(1, topic="Health"), is_unsorted=True)
        assert labeler.reconcile_label(draft, UNSORTED_LABEL, LabelSource.FALLBACK) == \
               (UNSORTED_LABEL, LabelSource.FALLBACK)


class TestSummarize:
    """Tests for cluster summaries."""

    def test_deduplicated_summarizer_bullets(self, labeler):
        draft = make_draft(
            feature(1, summary=["Trial enrolled adults", "Strong response"]),
            feature(2, summary=["strong response", "Mild side effects"]),
        )
        assert labeler.summarize(draft) == ["Trial enrolled adults", "Strong response", "Mild side effects"]

    def test_caps_at_five_bullets(self, labeler):
        draft = make_draft(feature(1, summary=[f"Point {i}" for i in range(8)]))
        assert len(labeler.summarize(draft)) == 5

    def test_falls_back_to_titles(self, labeler):
        draft = make_draft(
            feature(1, title="Banana Bread"),
            feature(2, title="banana bread"),
            feature(3, title=""),
            feature(4, title="Sourdough"),
            feature(5, title="Focaccia"),
            feature(6, title="Brioche"),
        )
        assert labeler.summarize(draft) == ["Banana Bread", "Sourdough", "Focaccia"]


class TestFinalize:
    """Tests for finalize()."""

    def test_finalize(self, labeler):
        draft = make_draft(
            feature(1, {"vaccine": 0.5, "trial": 0.4}, topic="Health"),
            feature(2, {"vaccine": 0.5, "trial": 0.4}, topic="Health"),
        )
        draft.id = "cluster-1"
        draft.confidence = 0.9

        clusters = labeler.finalize([draft])

        assert len(clusters) == 1
        assert clusters[0].id == "cluster-1"
        assert clusters[0].label == "Health"
        assert clusters[0].label_source == LabelSource.CLASSIFIER
        assert clusters[0].member_ids == [1, 2]
        assert clusters[0].confidence == 0.9
