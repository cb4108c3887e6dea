"""
Tests for timeout-bounded enrichment adapters.

Adapters must fold every failure mode into a tagged result and never raise.
"""

import asyncio

import pytest

from tab_companion.agents.enrichment import (
    ClassifierAdapter,
    EmbeddingAdapter,
    SummarizerAdapter,
    enrichment_text,
)
from tab_companion.agents.errors import ServiceUnavailableError
from tab_companion.agents.models import CacheEntry, ClassifierSignal, EnrichmentStatus, TabItem
from tests.fakes import FakeClassifier, FakeEmbedder, FakeSummarizer


def run(coro):
    return asyncio.run(coro)


class TestEnrichmentText:
    """Tests for enrichment_text()."""

    def test_joins_parts(self):
        item = TabItem(id=1, url="https://a.com", title="Title", description="Desc", headings=["H1"], text="Body")
        assert enrichment_text(item) == "Title\nDesc\nH1\nBody"

    def test_truncates_body(self):
        item = TabItem(id=1, url="https://a.com", text="x" * 3000)
        assert len(enrichment_text(item, limit=100)) == 100


class TestClassifierAdapter:
    """Tests for ClassifierAdapter."""

    def test_ok_from_dict(self):
        adapter = ClassifierAdapter(FakeClassifier())
        result = run(adapter.enrich("vaccine trial"))

        assert result.status == EnrichmentStatus.OK
        assert result.value.topic == "Research"
        assert result.available

    def test_ok_from_json_string(self):
        adapter = ClassifierAdapter(FakeClassifier('{"topic": "Health", "keywords": "vaccine, trial", "confidence": 2}'))
        result = run(adapter.enrich("vaccine trial"))

        assert result.value.topic == "Health"
        assert result.value.keywords == ["vaccine", "trial"]
        assert result.value.confidence == 1.0

    def test_invalid_json_is_error(self):
        result = run(ClassifierAdapter(FakeClassifier("not json")).enrich("text"))

        assert result.status == EnrichmentStatus.ERROR
        assert "malformed" in result.reason

    def test_missing_topic_is_error(self):
        result = run(ClassifierAdapter(FakeClassifier({"keywords": ["a"]})).enrich("text"))
        assert result.status == EnrichmentStatus.ERROR

    def test_timeout_is_unavailable(self):
        adapter = ClassifierAdapter(FakeClassifier(delay=1.0), timeout=0.05)
        result = run(adapter.enrich("text"))

        assert result.status == EnrichmentStatus.UNAVAILABLE
        assert "timed out" in result.reason

    def test_service_exception_is_error(self):
        result = run(ClassifierAdapter(FakeClassifier(error=RuntimeError("boom"))).enrich("text"))

        assert result.status == EnrichmentStatus.ERROR
        assert "boom" in result.reason

    def test_service_unavailable_error(self):
        service = FakeClassifier(error=ServiceUnavailableError("quota exceeded"))
        result = run(ClassifierAdapter(service).enrich("text"))

        assert result.status == EnrichmentStatus.UNAVAILABLE
        assert result.reason == "quota exceeded"

    def test_no_service(self):
        result = run(ClassifierAdapter(None).enrich("text"))

        assert result.status == EnrichmentStatus.UNAVAILABLE
        assert not ClassifierAdapter(None).available

    def test_empty_text_skips_service(self):
        service = FakeClassifier()
        result = run(ClassifierAdapter(service).enrich("   "))

        assert result.status == EnrichmentStatus.UNAVAILABLE
        assert service.calls == []

    def test_cached_signal_skips_service(self):
        service = FakeClassifier()
        cached = CacheEntry(fingerprint="fp", classifier=ClassifierSignal(topic="Cached"))
        result = run(ClassifierAdapter(service).enrich("text", cached))

        assert result.status == EnrichmentStatus.CACHED
        assert result.value.topic == "Cached"
        assert service.calls == []


class TestSummarizerAdapter:
    """Tests for SummarizerAdapter."""

    def test_parses_bullets(self):
        service = FakeSummarizer("- First\n\n• Second\n3. Third\n* Fourth\n- Fifth\n- Sixth")
        result = run(SummarizerAdapter(service).enrich("text"))

        assert result.status == EnrichmentStatus.OK
        assert result.value == ["First", "Second", "Third", "Fourth", "Fifth"]

    def test_accepts_list(self):
        result = run(SummarizerAdapter(FakeSummarizer(["One", None, "Two"])).enrich("text"))
        assert result.value == ["One", "Two"]

    def test_empty_summary_is_error(self):
        result = run(SummarizerAdapter(FakeSummarizer("\n - \n")).enrich("text"))
        assert result.status == EnrichmentStatus.ERROR

    def test_none_is_unavailable(self):
        result = run(SummarizerAdapter(FakeSummarizer(None)).enrich("text"))
        assert result.status == EnrichmentStatus.UNAVAILABLE


class TestEmbeddingAdapter:
    """Tests for EmbeddingAdapter."""

    def test_normalizes_vector(self):
        result = run(EmbeddingAdapter(FakeEmbedder([3.0, 4.0])).enrich("text"))

        assert result.status == EnrichmentStatus.OK
        assert result.value == pytest.approx([0.6, 0.8])

    @pytest.mark.parametrize("vector", [[0.0, 0.0], [], [[1.0], [2.0]], ["a", "b"], [float("nan"), 1.0]])
    def test_malformed_vectors(self, vector):
        result = run(EmbeddingAdapter(FakeEmbedder(lambda text: vector)).enrich("text"))
        assert result.status == EnrichmentStatus.ERROR
