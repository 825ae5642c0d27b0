"""
DuckDuckGo HTML search connector
"""

import logging
from typing import List, Optional
from urllib.parse import parse_qs, unquote, urlparse

from bs4 import BeautifulSoup

from ..models import SearchCandidate
from .base import BaseSource

logger = logging.getLogger(__name__)

DUCKDUCKGO_HTML_URL = "https://html.duckduckgo.com/html/"


def extract_actual_url_from_redirect(redirect_url: str) -> Optional[str]:
    """Extract the target URL from a DuckDuckGo redirect link"""
    if not redirect_url:
        return None

    if "uddg=" in redirect_url:
        parsed = parse_qs(urlparse(redirect_url).query)
        if "uddg" in parsed:
            return unquote(parsed["uddg"][0])
        return None

    if redirect_url.startswith("//"):
        return f"https:{redirect_url}"
    return redirect_url


class DuckDuckGoSource(BaseSource):
    """Keyless web search through DuckDuckGo's HTML endpoint"""

    display_name = "DuckDuckGo"

    @property
    def source_id(self) -> str:
        return "duckduckgo"

    async def search(self, keywords: List[str], limit: int) -> List[SearchCandidate]:
        query = f"{self.build_query(keywords)} project announced"
        html = await self._get(DUCKDUCKGO_HTML_URL, params={"q": query})
        candidates = self.parse_results(html)[:limit]
        logger.info(f"{self.display_name} returned {len(candidates)} candidates")
        return candidates

    def parse_results(self, html: str) -> List[SearchCandidate]:
        soup = BeautifulSoup(html or "", "html.parser")
        candidates = []
        seen = set()

        for link in soup.select('a[href*="uddg="]'):
            url = extract_actual_url_from_redirect(link.get("href"))
            if not url or url in seen:
                continue

            # Result body carries the snippet next to the title link
            snippet = ""
            container = link.find_parent(class_="result")
            if container:
                snippet_tag = container.select_one(".result__snippet")
                if snippet_tag and snippet_tag is not link:
                    snippet = snippet_tag.get_text(" ", strip=True)

            candidate = self.make_candidate(link.get_text(" ", strip=True), url, snippet)
            if candidate:
                seen.add(url)
                candidates.append(candidate)

        return candidates
