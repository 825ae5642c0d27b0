"""
Scraping system configuration
"""
import os
from typing import Dict, List, Any


def _split_env(name: str, default: str = "") -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


DEFAULT_RSS_FEEDS = ",".join([
    "https://www.constructiondive.com/feeds/news/",
    "https://www.hotelnewsresource.com/rss/news.xml",
    "https://www.globest.com/feed/",
    "https://therealdeal.com/feed/",
])


class ScrapingSettings:
    """Configuration for the scraping pipeline"""

    # Rate limiting settings
    RATE_LIMIT_PER_MINUTE = int(os.getenv("SCRAPING_RATE_LIMIT", "30"))
    SAME_DOMAIN_WINDOW = float(os.getenv("SCRAPING_SAME_DOMAIN_WINDOW", "5"))
    RATE_LIMIT_PENALTY = float(os.getenv("SCRAPING_RATE_LIMIT_PENALTY", "30"))

    # Request settings
    REQUEST_TIMEOUT = float(os.getenv("SCRAPING_REQUEST_TIMEOUT", "10"))
    SEARCH_TIMEOUT = float(os.getenv("SCRAPING_SEARCH_TIMEOUT", "15"))
    MAX_REDIRECTS = int(os.getenv("SCRAPING_MAX_REDIRECTS", "5"))
    MAX_RETRIES = int(os.getenv("SCRAPING_MAX_RETRIES", "2"))
    RETRY_BACKOFF = float(os.getenv("SCRAPING_RETRY_BACKOFF", "1.0"))

    # Concurrency
    MAX_CONCURRENT_FETCHES = int(os.getenv("SCRAPING_MAX_CONCURRENT_FETCHES", "5"))
    MAX_CONCURRENT_SEARCHES = int(os.getenv("SCRAPING_MAX_CONCURRENT_SEARCHES", "6"))
    MAX_CONCURRENT_JOBS = int(os.getenv("SCRAPING_MAX_CONCURRENT_JOBS", "3"))

    # Sessions
    SESSION_MAX_REQUESTS = int(os.getenv("SCRAPING_SESSION_MAX_REQUESTS", "10"))
    SESSION_MAX_AGE = float(os.getenv("SCRAPING_SESSION_MAX_AGE", "1800"))  # 30 minutes

    # Proxy settings (optional)
    PROXIES = _split_env("SCRAPING_PROXIES")
    PROXY_CHECK_URL = os.getenv("SCRAPING_PROXY_CHECK_URL", "https://httpbin.org/ip")
    PROXY_CHECK_TIMEOUT = float(os.getenv("SCRAPING_PROXY_CHECK_TIMEOUT", "5"))

    # Sources
    NEWS_API_KEY = os.getenv("NEWS_API_KEY")
    BING_API_KEY = os.getenv("BING_API_KEY")
    RSS_FEEDS = _split_env("SCRAPING_RSS_FEEDS", DEFAULT_RSS_FEEDS)

    # AI extraction
    AI_API_KEY = os.getenv("DEEPSEEK_API_KEY")
    AI_BASE_URL = os.getenv("AI_BASE_URL", "https://api.deepseek.com/v1")
    AI_MODEL = os.getenv("AI_MODEL", "deepseek-chat")
    AI_TIMEOUT = float(os.getenv("AI_TIMEOUT", "8"))
    AI_MAX_TOKENS = int(os.getenv("AI_MAX_TOKENS", "100"))
    AI_TEMPERATURE = float(os.getenv("AI_TEMPERATURE", "0.1"))

    @classmethod
    def get_source_config(cls, source: str) -> Dict[str, Any]:
        """Get configuration for a specific source connector"""
        configs = {
            "news_api": {
                "api_key": cls.NEWS_API_KEY,
                "timeout": cls.SEARCH_TIMEOUT,
            },
            "bing_news": {
                "api_key": cls.BING_API_KEY,
                "timeout": cls.SEARCH_TIMEOUT,
            },
            "google_news": {
                "timeout": cls.SEARCH_TIMEOUT,
            },
            "rss_feeds": {
                "feeds": list(cls.RSS_FEEDS),
                "timeout": cls.SEARCH_TIMEOUT,
            },
            "duckduckgo": {
                "timeout": cls.SEARCH_TIMEOUT,
            },
        }
        return configs.get(source, {})
