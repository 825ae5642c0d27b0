"""
Unit tests for URL normalization and deduplication
"""

import pytest

from leadminer.scraping.dedup import Deduplicator, normalize_url
from leadminer.scraping.models import SearchCandidate


def candidate(url, source_id="google_news", title="Project news"):
    return SearchCandidate(title=title, url=url, source_id=source_id)


class TestNormalizeUrl:
    """Test dedup keys"""

    def test_tracking_params_and_trailing_slash(self):
        """Test tracking parameters, scheme and trailing slashes are ignored"""
        assert normalize_url("http://x.com/a?utm_source=y") == normalize_url("https://x.com/a/")

    def test_case_ports_and_fragments(self):
        """Test host case, default ports and fragments are ignored"""
        assert normalize_url("HTTPS://News.Example.com:443/story#comments") == "https://news.example.com/story"
        assert normalize_url("http://example.com:80/a") == "https://example.com/a"

    def test_meaningful_parts_are_kept(self):
        """Test non-default ports, paths and real query params still differ"""
        assert normalize_url("https://example.com:8080/a") != normalize_url("https://example.com/a")
        assert normalize_url("https://example.com/a?id=1") != normalize_url("https://example.com/a?id=2")
        assert normalize_url("https://example.com/a?id=1&fbclid=abc") == "https://example.com/a?id=1"

    def test_empty(self):
        """Test empty input"""
        assert normalize_url("") == ""


class TestDeduplicator:
    """Test first-seen-wins filtering"""

    def test_equivalent_urls_keep_one(self):
        """Test exactly one candidate survives per normalized URL"""
        first = candidate("http://x.com/a?utm_source=y", source_id="news_api")
        second = candidate("https://x.com/a/", source_id="bing_news")

        dedup = Deduplicator(key=lambda item: item.url)
        kept = dedup.filter([first, second])

        assert kept == [first]
        assert dedup.duplicates == 1

    def test_order_is_preserved(self):
        """Test distinct candidates keep their input order"""
        items = [candidate("https://a.com/1"), candidate("https://b.com/2"), candidate("https://a.com/1/")]
        kept = Deduplicator(key=lambda item: item.url).filter(items)

        assert [item.url for item in kept] == ["https://a.com/1", "https://b.com/2"]

    def test_state_spans_calls(self):
        """Test URLs seen in an earlier pass are rejected later"""
        dedup = Deduplicator(key=lambda item: item)
        assert dedup.add("https://example.com/a") is True
        assert dedup.seen("http://example.com/a/") is True
        assert dedup.filter(["https://example.com/a?utm_medium=email", "https://example.com/b"]) == [
            "https://example.com/b"
        ]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
