"""
Search source connectors
"""

from typing import Dict, Iterable, Optional

import aiohttp

from ..config import ScrapingSettings
from .base import BaseSource
from .bing_news import BingNewsSource
from .duckduckgo import DuckDuckGoSource
from .google_news import GoogleNewsSource
from .news_api import NewsApiSource
from .rss import RssFeedSource

SOURCE_REGISTRY = {
    "news_api": NewsApiSource,
    "bing_news": BingNewsSource,
    "google_news": GoogleNewsSource,
    "rss_feeds": RssFeedSource,
    "duckduckgo": DuckDuckGoSource,
}


def build_sources(
    session: Optional[aiohttp.ClientSession] = None,
    source_ids: Optional[Iterable[str]] = None,
) -> Dict[str, BaseSource]:
    """Instantiate connectors by id, sharing one HTTP session"""
    ids = list(source_ids) if source_ids is not None else list(SOURCE_REGISTRY)
    return {
        source_id: SOURCE_REGISTRY[source_id](session=session, **ScrapingSettings.get_source_config(source_id))
        for source_id in ids
        if source_id in SOURCE_REGISTRY
    }


__all__ = [
    "BaseSource",
    "BingNewsSource",
    "DuckDuckGoSource",
    "GoogleNewsSource",
    "NewsApiSource",
    "RssFeedSource",
    "SOURCE_REGISTRY",
    "build_sources",
]
