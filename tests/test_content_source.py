"""
Tests for content collection from open tabs.
"""

import asyncio

import pytest

from tab_companion.agents.content_source import (
    ExtractedContent,
    TabRef,
    collect_items,
    is_extractable,
)
from tab_companion.agents.errors import ExtractionFailure


class FakeSource:
    """Content source with scripted behaviour per URL."""

    def __init__(self, slow_urls=(), failing_urls=(), crashing_urls=()):
        self.slow_urls = set(slow_urls)
        self.failing_urls = set(failing_urls)
        self.crashing_urls = set(crashing_urls)
        self.calls: list[str] = []

    async def extract(self, ref: TabRef) -> ExtractedContent:
        self.calls.append(ref.url)
        if ref.url in self.slow_urls:
            await asyncio.sleep(5.0)
        if ref.url in self.failing_urls:
            raise ExtractionFailure("script injection blocked")
        if ref.url in self.crashing_urls:
            raise ConnectionError("tab discarded")
        return ExtractedContent(text=f"Content of {ref.title}", description="Desc", headings=["Intro"], language="en")


class TestIsExtractable:
    """Tests for is_extractable()."""

    @pytest.mark.parametrize("url,expected", [
        ("https://example.com/page", True),
        ("http://example.com", True),
        ("https://mail.google.com/mail/u/0", False),
        ("https://accounts.google.com/signin", False),
        ("chrome://extensions", False),
        ("file:///tmp/report.pdf", False),
        ("http://[::1/broken", False),
    ])
    def test_urls(self, url, expected):
        assert is_extractable(url) is expected


class TestCollectItems:
    """Tests for collect_items()."""

    def test_collects_in_order(self):
        refs = [TabRef(id=i, url=f"https://example.com/{i}", title=f"Tab {i}") for i in range(3)]
        items = asyncio.run(collect_items(FakeSource(), refs))

        assert [item.id for item in items] == [0, 1, 2]
        assert items[0].text == "Content of Tab 0"
        assert items[0].headings == ["Intro"]
        assert not any(item.extraction_failed for item in items)

    def test_restricted_tabs_are_skipped(self):
        source = FakeSource()
        refs = [
            TabRef(id=1, url="https://mail.google.com/mail", title="Inbox"),
            TabRef(id=2, url="https://example.com", title="Example"),
        ]
        items = asyncio.run(collect_items(source, refs))

        assert items[0].extraction_failed is True
        assert items[0].title == "Inbox"
        assert source.calls == ["https://example.com"]

    def test_failures_and_timeouts(self):
        source = FakeSource(slow_urls={"https://slow.com"}, failing_urls={"https://broken.com"})
        refs = [
            TabRef(id=1, url="https://slow.com", title="Slow"),
            TabRef(id=2, url="https://broken.com", title="Broken"),
            TabRef(id=3, url="https://ok.com", title="Ok"),
        ]
        items = asyncio.run(collect_items(source, refs, timeout=0.1))

        assert [item.extraction_failed for item in items] == [True, True, False]

    def test_unexpected_source_errors_keep_other_tabs(self):
        source = FakeSource(crashing_urls={"https://discarded.com"})
        refs = [
            TabRef(id=1, url="https://discarded.com", title="Discarded"),
            TabRef(id=2, url="https://ok.com", title="Ok"),
        ]
        items = asyncio.run(collect_items(source, refs))

        assert [item.id for item in items] == [1, 2]
        assert items[0].extraction_failed is True
        assert items[0].title == "Discarded"
        assert items[1].text == "Content of Ok"

    def test_malformed_url_is_not_extracted(self):
        source = FakeSource()
        refs = [
            TabRef(id=1, url="http://[::1/broken", title="Broken link"),
            TabRef(id=2, url="https://ok.com", title="Ok"),
        ]
        items = asyncio.run(collect_items(source, refs))

        assert items[0].extraction_failed is True
        assert items[1].extraction_failed is False
        assert source.calls == ["https://ok.com"]
