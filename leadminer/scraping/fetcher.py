"""
Content fetcher: retrieves article pages through the request shaper
"""

import asyncio
import logging
from typing import Optional, Tuple

import aiohttp
from bs4 import BeautifulSoup

from .anti_detection import RequestShaper
from .config import ScrapingSettings
from .errors import FetchFailed
from .models import FetchedContent, SearchCandidate, ShapedRequest
from .utils import normalize_whitespace

logger = logging.getLogger(__name__)

# Nodes that never carry article text
STRIPPED_TAGS = ['script', 'style', 'noscript', 'iframe', 'frame', 'frameset', 'embed', 'object', 'template', 'svg']

# Primary content containers, most specific first
MAIN_CONTENT_SELECTORS = [
    'article',
    'main',
    '[role="main"]',
    '.article-content',
    '.article-body',
    '.post-content',
    '.entry-content',
    '.story-body',
    '.content-body',
    '#content',
]

MIN_MAIN_CONTENT_LENGTH = 200


def parse_page(html: str) -> Tuple[str, Optional[str], Optional[str]]:
    """Visible text, title and meta description of an HTML document"""
    soup = BeautifulSoup(html, 'html.parser')

    for tag in soup(STRIPPED_TAGS):
        tag.decompose()

    title = None
    if soup.title and soup.title.string:
        title = normalize_whitespace(soup.title.string)

    meta_description = None
    meta = soup.find('meta', attrs={'name': 'description'}) or soup.find('meta', attrs={'property': 'og:description'})
    if meta and meta.get('content'):
        meta_description = normalize_whitespace(meta['content'])

    region = None
    for selector in MAIN_CONTENT_SELECTORS:
        candidate = soup.select_one(selector)
        if candidate and len(candidate.get_text(' ', strip=True)) >= MIN_MAIN_CONTENT_LENGTH:
            region = candidate
            break

    if region is None:
        region = soup.body or soup

    text = normalize_whitespace(region.get_text(' ', strip=True))
    return text, title, meta_description


class ContentFetcher:
    """Fetches full page content for search candidates.

    Never raises for network or HTTP problems: failures come back as a
    FetchedContent with fetch_succeeded=False and a retryable flag that
    the orchestrator uses for its retry policy.
    """

    def __init__(
        self,
        shaper: RequestShaper,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: Optional[float] = None,
        max_redirects: Optional[int] = None,
        keep_html: bool = False,
    ):
        self.shaper = shaper
        self.session = session
        self.timeout = timeout or ScrapingSettings.REQUEST_TIMEOUT
        self.max_redirects = max_redirects or ScrapingSettings.MAX_REDIRECTS
        self.keep_html = keep_html
        self._owns_session = False

    async def __aenter__(self):
        """Async context manager entry"""
        if self.session is None:
            self.session = aiohttp.ClientSession(connector=aiohttp.TCPConnector(limit=10))
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        if self._owns_session and self.session:
            await self.session.close()
            self.session = None
            self._owns_session = False

    def _failure(self, candidate: SearchCandidate, error: FetchFailed) -> FetchedContent:
        return FetchedContent(
            candidate=candidate,
            fetch_succeeded=False,
            http_status=error.status,
            error=str(error),
            retryable=error.retryable,
        )

    async def _download(self, url: str, shaped: ShapedRequest) -> Tuple[str, int]:
        """HTML and status of a page; raises FetchFailed on any network or HTTP failure"""
        proxy_address = shaped.proxy.address if shaped.proxy else None

        try:
            async with self.session.get(
                url,
                headers=shaped.headers,
                proxy=shaped.proxy.url if shaped.proxy else None,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                allow_redirects=True,
                max_redirects=self.max_redirects,
            ) as response:
                status = response.status
                if status >= 400:
                    self.shaper.record_result(url, success=False, status=status, proxy_address=proxy_address)
                    raise FetchFailed(url, f"HTTP {status}", status=status, retryable=status >= 500)

                html = await response.text(errors='replace')

        except aiohttp.TooManyRedirects as e:
            self.shaper.record_result(url, success=False, proxy_address=proxy_address)
            raise FetchFailed(url, f"More than {self.max_redirects} redirects") from e
        except asyncio.TimeoutError as e:
            self.shaper.record_result(url, success=False, proxy_address=proxy_address)
            raise FetchFailed(url, f"Timed out after {self.timeout}s", retryable=True) from e
        except aiohttp.ClientError as e:
            self.shaper.record_result(url, success=False, proxy_address=proxy_address)
            raise FetchFailed(url, f"Connection error: {e}", retryable=True) from e

        self.shaper.record_result(url, success=True, status=status, proxy_address=proxy_address)
        return html, status

    async def fetch(self, candidate: SearchCandidate, shaped: Optional[ShapedRequest] = None) -> FetchedContent:
        """Fetch and parse the page behind a candidate"""
        if self.session is None:
            raise RuntimeError("ContentFetcher must be used as an async context manager or given a session")

        url = candidate.url
        if shaped is None:
            await self.shaper.throttle(url)
            shaped = self.shaper.prepare_request(url)
            await self.shaper.simulate_human_behavior()

        try:
            html, status = await self._download(url, shaped)
        except FetchFailed as e:
            logger.warning(f"Fetch of {url} failed: {e}")
            return self._failure(candidate, e)

        text, title, meta_description = parse_page(html)

        return FetchedContent(
            candidate=candidate,
            raw_text=text,
            raw_html=html if self.keep_html else None,
            title=title or candidate.title,
            meta_description=meta_description,
            fetch_succeeded=True,
            http_status=status,
        )
