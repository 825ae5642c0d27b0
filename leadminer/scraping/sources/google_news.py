"""
Google News RSS search connector
"""

import logging
from typing import List
from urllib.parse import urlparse

from ..models import SearchCandidate
from .base import BaseSource
from .rss import parse_feed

logger = logging.getLogger(__name__)

GOOGLE_NEWS_RSS_URL = "https://news.google.com/rss/search"


class GoogleNewsSource(BaseSource):
    """Searches Google News through its public RSS search endpoint"""

    display_name = "Google News"

    @property
    def source_id(self) -> str:
        return "google_news"

    async def search(self, keywords: List[str], limit: int) -> List[SearchCandidate]:
        xml_text = await self._get(
            GOOGLE_NEWS_RSS_URL,
            params={
                "q": self.build_query(keywords),
                "hl": "en-US",
                "gl": "US",
                "ceid": "US:en",
            },
        )
        candidates = self.parse_results(xml_text)[:limit]
        logger.info(f"{self.display_name} returned {len(candidates)} candidates")
        return candidates

    def parse_results(self, xml_text: str) -> List[SearchCandidate]:
        candidates = []
        for entry in parse_feed(xml_text):
            candidate = self.make_candidate(entry["title"], entry["url"], entry["summary"])
            if candidate:
                candidates.append(candidate)
        return candidates

    def accept_url(self, url: str) -> bool:
        # Result links point at news.google.com/rss/articles/... redirects
        parsed = urlparse(url)
        if parsed.netloc.endswith("news.google.com") and "/articles/" in parsed.path:
            return True
        return super().accept_url(url)
