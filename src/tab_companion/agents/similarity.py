"""
Composite similarity between tabs and cluster centroids.

sim = w1·cos(TF-IDF) + w2·cos(embedding) + w3·topicMatch + w4·domainMatch

Signals missing on either side are dropped and the remaining weights are
renormalized, so an unavailable AI signal never penalizes a pair.
"""

import math
from typing import Optional

import numpy as np
from pydantic import BaseModel, Field, model_validator

from tab_companion.config import get_logger
from tab_companion.agents.models import TabFeature

logger = get_logger(__name__)


class SimilarityWeights(BaseModel):
    """Base weights of the composite similarity signals."""

    tfidf: float = Field(default=0.45, ge=0.0)
    embedding: float = Field(default=0.30, ge=0.0)
    topic: float = Field(default=0.15, ge=0.0)
    domain: float = Field(default=0.10, ge=0.0)

    @model_validator(mode='after')
    def require_lexical_weight(self):
        """TF-IDF is the one signal that is always present, so it must count."""
        if self.tfidf <= 0:
            raise ValueError("tfidf weight must be positive")
        return self


class SignalProfile(BaseModel):
    """The signals similarity is computed on, for a tab or a cluster centroid."""

    tfidf: dict[str, float] = Field(default_factory=dict)
    embedding: Optional[list[float]] = None
    topic: Optional[str] = None
    domain: str = ""

    @classmethod
    def from_feature(cls, feature: TabFeature) -> "SignalProfile":
        return cls(
            tfidf=feature.tfidf,
            embedding=feature.embedding,
            topic=feature.topic,
            domain=feature.domain,
        )


def sparse_cosine(vec1: dict[str, float], vec2: dict[str, float]) -> float:
    """
    Cosine similarity between two sparse term-weight vectors.

    Returns:
        Similarity score, 0.0 when either vector is empty
    """
    if not vec1 or not vec2:
        return 0.0
    shorter, longer = (vec1, vec2) if len(vec1) <= len(vec2) else (vec2, vec1)
    dot = sum(weight * longer[term] for term, weight in shorter.items() if term in longer)
    if dot == 0:
        return 0.0
    norm1 = math.sqrt(sum(w * w for w in vec1.values()))
    norm2 = math.sqrt(sum(w * w for w in vec2.values()))
    if norm1 == 0 or norm2 == 0:
        return 0.0
    return dot / (norm1 * norm2)


def dense_cosine(embedding1: list[float], embedding2: list[float]) -> float:
    """
    Calculate cosine similarity between two embeddings.

    Args:
        embedding1: First embedding vector
        embedding2: Second embedding vector

    Returns:
        Cosine similarity score (-1 to 1)
    """
    vec1 = np.asarray(embedding1, dtype=float)
    vec2 = np.asarray(embedding2, dtype=float)

    # Handle zero vectors
    norm1 = np.linalg.norm(vec1)
    norm2 = np.linalg.norm(vec2)

    if norm1 == 0 or norm2 == 0:
        return 0.0

    return float(np.dot(vec1, vec2) / (norm1 * norm2))


def _same_topic(topic1: Optional[str], topic2: Optional[str]) -> bool:
    return topic1.strip().lower() == topic2.strip().lower()


class SimilarityEngine:
    """
    Computes composite similarity scores in [0, 1].

    Attributes:
        weights: Base signal weights
    """

    def __init__(self, weights: Optional[SimilarityWeights] = None):
        self.weights = weights or SimilarityWeights()

    def score(self, a: SignalProfile, b: SignalProfile) -> float:
        """
        Composite similarity between two profiles.

        Args:
            a: First profile (tab or centroid)
            b: Second profile (tab or centroid)

        Returns:
            Similarity in [0, 1]
        """
        weighted = [(self.weights.tfidf, sparse_cosine(a.tfidf, b.tfidf))]

        if (
            a.embedding and b.embedding
            and len(a.embedding) == len(b.embedding)
            and self.weights.embedding > 0
        ):
            weighted.append((self.weights.embedding, max(dense_cosine(a.embedding, b.embedding), 0.0)))

        if a.topic and b.topic and self.weights.topic > 0:
            weighted.append((self.weights.topic, 1.0 if _same_topic(a.topic, b.topic) else 0.0))

        if a.domain and b.domain and self.weights.domain > 0:
            weighted.append((self.weights.domain, 1.0 if a.domain == b.domain else 0.0))

        total_weight = sum(weight for weight, _ in weighted)
        similarity = sum(weight * value for weight, value in weighted) / total_weight
        return min(max(similarity, 0.0), 1.0)

    def pairwise(self, features: list[TabFeature]) -> np.ndarray:
        """
        Symmetric similarity matrix for a batch of tabs.

        Args:
            features: Tab features in batch order

        Returns:
            n x n array with ones on the diagonal
        """
        profiles = [SignalProfile.from_feature(f) for f in features]
        n = len(profiles)
        matrix = np.eye(n)
        for i in range(n):
            for j in range(i + 1, n):
                matrix[i, j] = matrix[j, i] = self.score(profiles[i], profiles[j])
        return matrix
