"""
RSS/Atom feed connector
"""

import logging
from typing import Dict, List, Optional

from bs4 import BeautifulSoup

from ..config import ScrapingSettings
from ..errors import SourceError, SourceUnavailable
from ..models import SearchCandidate
from .base import BaseSource

logger = logging.getLogger(__name__)


def _text(html: str) -> str:
    """Feed descriptions often embed markup"""
    if not html:
        return ""
    return BeautifulSoup(html, "html.parser").get_text(" ", strip=True)


def parse_feed(xml_text: str) -> List[Dict[str, str]]:
    """Parse RSS items or Atom entries into title/url/summary dicts"""
    if not xml_text:
        return []

    soup = BeautifulSoup(xml_text, "xml")
    entries = []

    for item in soup.find_all("item"):
        title = item.find("title")
        link = item.find("link")
        description = item.find("description")
        entries.append({
            "title": _text(title.get_text()) if title else "",
            "url": link.get_text(strip=True) if link else "",
            "summary": _text(description.get_text()) if description else "",
        })

    for entry in soup.find_all("entry"):
        title = entry.find("title")
        link = entry.find("link", rel="alternate") or entry.find("link")
        summary = entry.find("summary") or entry.find("content")
        url = ""
        if link:
            url = link.get("href") or link.get_text(strip=True)
        entries.append({
            "title": _text(title.get_text()) if title else "",
            "url": url,
            "summary": _text(summary.get_text()) if summary else "",
        })

    return entries


class RssFeedSource(BaseSource):
    """Reads a fixed list of industry feeds and keeps items matching the keywords"""

    display_name = "Industry RSS Feeds"

    def __init__(self, feeds: Optional[List[str]] = None, **kwargs):
        super().__init__(**kwargs)
        self.feeds = list(feeds) if feeds is not None else list(ScrapingSettings.RSS_FEEDS)

    @property
    def source_id(self) -> str:
        return "rss_feeds"

    def is_configured(self) -> bool:
        return bool(self.feeds)

    async def search(self, keywords: List[str], limit: int) -> List[SearchCandidate]:
        if not self.feeds:
            raise SourceUnavailable(self.source_id, "No feeds configured")

        candidates: List[SearchCandidate] = []
        failures = 0

        for feed_url in self.feeds:
            if len(candidates) >= limit:
                break
            try:
                xml_text = await self._get(feed_url, headers={"Accept": "application/rss+xml, application/atom+xml, application/xml"})
            except SourceError as e:
                failures += 1
                logger.warning(f"Feed {feed_url} failed: {e}")
                continue

            candidates.extend(self.filter_entries(parse_feed(xml_text), keywords))

        if failures == len(self.feeds):
            raise SourceUnavailable(self.source_id, f"All {failures} feeds failed")

        logger.info(f"{self.display_name} returned {min(len(candidates), limit)} candidates")
        return candidates[:limit]

    def filter_entries(self, entries: List[Dict[str, str]], keywords: List[str]) -> List[SearchCandidate]:
        candidates = []
        for entry in entries:
            if not self.is_relevant(f"{entry['title']} {entry['summary']}", keywords):
                continue
            candidate = self.make_candidate(entry["title"], entry["url"], entry["summary"])
            if candidate:
                candidates.append(candidate)
        return candidates
