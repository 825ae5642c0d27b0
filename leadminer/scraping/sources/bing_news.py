"""
Bing News Search connector
"""

import logging
from typing import Any, Dict, List, Optional

from ..config import ScrapingSettings
from ..errors import SourceAuthError, SourceUnavailable
from ..models import SearchCandidate
from .base import BaseSource

logger = logging.getLogger(__name__)

BING_NEWS_URL = "https://api.bing.microsoft.com/v7.0/news/search"


class BingNewsSource(BaseSource):
    """Searches news through the Bing News Search API"""

    display_name = "Bing News"

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key if api_key is not None else ScrapingSettings.BING_API_KEY

    @property
    def source_id(self) -> str:
        return "bing_news"

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def search(self, keywords: List[str], limit: int) -> List[SearchCandidate]:
        if not self.api_key:
            raise SourceAuthError(self.source_id, "BING_API_KEY not configured")

        payload = await self._get(
            BING_NEWS_URL,
            params={
                "q": self.build_query(keywords),
                "count": min(max(limit, 1), 100),
                "mkt": "en-US",
                "sortBy": "Date",
            },
            headers={"Ocp-Apim-Subscription-Key": self.api_key},
            as_json=True,
        )
        candidates = self.parse_results(payload)[:limit]
        logger.info(f"{self.display_name} returned {len(candidates)} candidates")
        return candidates

    def parse_results(self, payload: Dict[str, Any]) -> List[SearchCandidate]:
        if not isinstance(payload, dict) or "value" not in payload:
            raise SourceUnavailable(self.source_id, "Response has no results list")

        candidates = []
        for item in payload.get("value") or []:
            candidate = self.make_candidate(item.get("name"), item.get("url"), item.get("description"))
            if candidate:
                candidates.append(candidate)
        return candidates
