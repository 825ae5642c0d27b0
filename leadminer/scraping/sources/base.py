"""
Base class for search source connectors
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

import aiohttp

from ..config import ScrapingSettings
from ..errors import SourceAuthError, SourceRateLimited, SourceUnavailable
from ..models import SearchCandidate
from ..utils import is_valid_article_url, normalize_whitespace

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,application/json;q=0.8,*/*;q=0.7",
    "Accept-Language": "en-US,en;q=0.9",
}

MAX_SNIPPET_LENGTH = 500


class BaseSource(ABC):
    """Base class for all search source connectors.

    Connectors raise SourceAuthError, SourceRateLimited or SourceUnavailable
    when they cannot return results; the orchestrator skips that source for
    the rest of the run.
    """

    display_name = "Source"

    def __init__(self, session: Optional[aiohttp.ClientSession] = None, timeout: Optional[float] = None):
        self.session = session
        self.timeout = timeout or ScrapingSettings.SEARCH_TIMEOUT
        self._owns_session = False

    @property
    @abstractmethod
    def source_id(self) -> str:
        """Identifier used in ScrapingConfiguration.enabled_sources"""
        pass

    @abstractmethod
    async def search(self, keywords: List[str], limit: int) -> List[SearchCandidate]:
        """Return up to limit candidates for the keywords"""
        pass

    def is_configured(self) -> bool:
        """Whether the connector has the credentials it needs"""
        return True

    async def __aenter__(self):
        """Async context manager entry"""
        if self.session is None:
            self.session = aiohttp.ClientSession(connector=aiohttp.TCPConnector(limit=5))
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        if self._owns_session and self.session:
            await self.session.close()
            self.session = None
            self._owns_session = False

    async def _get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        as_json: bool = False,
    ) -> Any:
        """GET url and map failures onto the source error taxonomy"""
        if self.session is None:
            raise SourceUnavailable(self.source_id, "No HTTP session available")

        request_headers = dict(DEFAULT_HEADERS)
        if headers:
            request_headers.update(headers)

        try:
            async with self.session.get(
                url,
                params=params,
                headers=request_headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if response.status in (401, 403):
                    raise SourceAuthError(self.source_id, f"HTTP {response.status} from {url}")
                if response.status == 429:
                    raise SourceRateLimited(self.source_id, f"Rate limited by {url}")
                if response.status >= 400:
                    raise SourceUnavailable(self.source_id, f"HTTP {response.status} from {url}")

                if as_json:
                    return await response.json(content_type=None)
                return await response.text(errors="replace")

        except asyncio.TimeoutError as e:
            raise SourceUnavailable(self.source_id, f"Timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise SourceUnavailable(self.source_id, f"Request failed: {e}") from e
        except ValueError as e:
            raise SourceUnavailable(self.source_id, f"Malformed response: {e}") from e

    def accept_url(self, url: str) -> bool:
        return is_valid_article_url(url)

    def make_candidate(self, title: Optional[str], url: Optional[str], snippet: Optional[str] = None) -> Optional[SearchCandidate]:
        """Build a candidate, or None when the result is unusable"""
        title = normalize_whitespace(title)
        url = (url or "").strip()
        if not title or not url or not self.accept_url(url):
            return None

        return SearchCandidate(
            title=title,
            url=url,
            snippet=normalize_whitespace(snippet)[:MAX_SNIPPET_LENGTH] or title,
            source_id=self.source_id,
            discovered_at=datetime.now(),
        )

    @staticmethod
    def build_query(keywords: List[str], operator: str = " OR ") -> str:
        terms = [f'"{keyword}"' if " " in keyword else keyword for keyword in keywords]
        return operator.join(terms)

    @staticmethod
    def is_relevant(text: str, keywords: List[str]) -> bool:
        """True when any keyword term appears in text"""
        lowered = (text or "").lower()
        for keyword in keywords:
            keyword = keyword.lower()
            if keyword in lowered or any(term in lowered for term in keyword.split() if len(term) > 3):
                return True
        return False
