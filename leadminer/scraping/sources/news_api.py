"""
NewsAPI.org connector
"""

import logging
from typing import Any, Dict, List, Optional

from ..config import ScrapingSettings
from ..errors import SourceAuthError, SourceRateLimited, SourceUnavailable
from ..models import SearchCandidate
from .base import BaseSource

logger = logging.getLogger(__name__)

NEWS_API_URL = "https://newsapi.org/v2/everything"


class NewsApiSource(BaseSource):
    """Searches recent articles through NewsAPI.org"""

    display_name = "NewsAPI.org"

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key if api_key is not None else ScrapingSettings.NEWS_API_KEY

    @property
    def source_id(self) -> str:
        return "news_api"

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def search(self, keywords: List[str], limit: int) -> List[SearchCandidate]:
        if not self.api_key:
            raise SourceAuthError(self.source_id, "NEWS_API_KEY not configured")

        payload = await self._get(
            NEWS_API_URL,
            params={
                "q": self.build_query(keywords),
                "language": "en",
                "sortBy": "publishedAt",
                "pageSize": min(max(limit, 1), 100),
            },
            headers={"X-Api-Key": self.api_key},
            as_json=True,
        )
        candidates = self.parse_articles(payload)[:limit]
        logger.info(f"{self.display_name} returned {len(candidates)} candidates")
        return candidates

    def parse_articles(self, payload: Dict[str, Any]) -> List[SearchCandidate]:
        """Candidates from a NewsAPI response body"""
        if not isinstance(payload, dict):
            raise SourceUnavailable(self.source_id, "Unexpected response body")

        if payload.get("status") == "error":
            code = payload.get("code", "")
            message = payload.get("message", code)
            if code == "rateLimited":
                raise SourceRateLimited(self.source_id, message)
            if code in ("apiKeyInvalid", "apiKeyDisabled", "apiKeyExhausted", "apiKeyMissing"):
                raise SourceAuthError(self.source_id, message)
            raise SourceUnavailable(self.source_id, message)

        candidates = []
        for article in payload.get("articles") or []:
            candidate = self.make_candidate(
                article.get("title"),
                article.get("url"),
                article.get("description") or article.get("content"),
            )
            if candidate:
                candidates.append(candidate)
        return candidates
