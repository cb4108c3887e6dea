"""
Tests for composite similarity.
"""

import pytest
from pydantic import ValidationError

from tab_companion.agents.similarity import (
    SignalProfile,
    SimilarityEngine,
    SimilarityWeights,
    dense_cosine,
    sparse_cosine,
)
from tab_companion.agents.models import TabFeature


class TestCosine:
    """Tests for cosine helpers."""

    def test_sparse_cosine(self):
        assert sparse_cosine({"a": 1.0}, {"a": 2.0}) == pytest.approx(1.0)
        assert sparse_cosine({"a": 1.0}, {"b": 1.0}) == 0.0
        assert sparse_cosine({}, {"a": 1.0}) == 0.0
        assert sparse_cosine({"a": 1.0, "b": 1.0}, {"a": 1.0}) == pytest.approx(2 ** -0.5)

    def test_dense_cosine(self):
        # Identical vectors
        assert dense_cosine([1.0, 0.0, 0.0], [1.0, 0.0, 0.0]) == pytest.approx(1.0)
        # Orthogonal vectors
        assert dense_cosine([1.0, 0.0, 0.0], [0.0, 1.0, 0.0]) == pytest.approx(0.0)
        # Opposite vectors
        assert dense_cosine([1.0, 0.0, 0.0], [-1.0, 0.0, 0.0]) == pytest.approx(-1.0)
        # Zero vector
        assert dense_cosine([0.0, 0.0], [1.0, 0.0]) == 0.0


class TestSimilarityWeights:
    """Tests for weight validation."""

    def test_defaults(self):
        weights = SimilarityWeights()
        assert (weights.tfidf, weights.embedding, weights.topic, weights.domain) == (0.45, 0.30, 0.15, 0.10)

    def test_rejects_negative(self):
        with pytest.raises(ValidationError):
            SimilarityWeights(domain=-0.1)

    def test_requires_tfidf_weight(self):
        with pytest.raises(ValidationError):
            SimilarityWeights(tfidf=0.0)


class TestSimilarityEngine:
    """Tests for SimilarityEngine."""

    def test_tfidf_only(self):
        engine = SimilarityEngine()
        a = SignalProfile(tfidf={"graph": 1.0})

        assert engine.score(a, SignalProfile(tfidf={"graph": 0.5})) == pytest.approx(1.0)

    def test_renormalizes_over_present_signals(self):
        engine = SimilarityEngine()
        a = SignalProfile(tfidf={"graph": 1.0}, domain="neo4j.com")
        b = SignalProfile(tfidf={"graph": 1.0}, domain="other.com")

        assert engine.score(a, b) == pytest.approx(0.45 / 0.55)

    def test_signal_missing_on_one_side_is_ignored(self):
        engine = SimilarityEngine()
        a = SignalProfile(tfidf={"graph": 1.0}, embedding=[1.0, 0.0], topic="Databases")
        b = SignalProfile(tfidf={"graph": 1.0})

        assert engine.score(a, b) == pytest.approx(1.0)

    def test_all_signals(self):
        engine = SimilarityEngine()
        a = SignalProfile(tfidf={"graph": 1.0}, embedding=[1.0, 0.0], topic="Databases", domain="x.com")
        b = SignalProfile(tfidf={"pasta": 1.0}, embedding=[1.0, 0.0], topic=" databases ", domain="y.com")

        assert engine.score(a, b) == pytest.approx(0.30 + 0.15)

    def test_negative_embedding_cosine_counts_as_zero(self):
        engine = SimilarityEngine()
        a = SignalProfile(tfidf={"graph": 1.0}, embedding=[1.0, 0.0])
        b = SignalProfile(tfidf={"graph": 1.0}, embedding=[-1.0, 0.0])

        assert engine.score(a, b) == pytest.approx(0.45 / 0.75)

    def test_mismatched_embedding_dimensions_are_ignored(self):
        engine = SimilarityEngine()
        a = SignalProfile(tfidf={"graph": 1.0}, embedding=[1.0, 0.0])
        b = SignalProfile(tfidf={"graph": 1.0}, embedding=[0.0, 1.0, 0.0])

        assert engine.score(a, b) == pytest.approx(1.0)

    def test_empty_profiles(self):
        assert SimilarityEngine().score(SignalProfile(), SignalProfile()) == 0.0

    def test_pairwise(self):
        features = [
            TabFeature(item_id=1, fingerprint="a", tfidf={"graph": 1.0}),
            TabFeature(item_id=2, fingerprint="b", tfidf={"graph": 1.0, "query": 1.0}),
            TabFeature(item_id=3, fingerprint="c", tfidf={"pasta": 1.0}),
        ]
        matrix = SimilarityEngine().pairwise(features)

        assert matrix.shape == (3, 3)
        assert matrix[0, 0] == 1.0
        assert matrix[0, 1] == matrix[1, 0] == pytest.approx(2 ** -0.5)
        assert matrix[0, 2] == 0.0
