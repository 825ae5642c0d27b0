"""
Request shaping for scraping: browser-like headers, browsing sessions,
proxy rotation and per-domain throttling
"""

import asyncio
import logging
import random
import threading
import time
from typing import Awaitable, Callable, Dict, List, Optional
from urllib.parse import urlparse

import aiohttp

from .config import ScrapingSettings
from .models import BrowsingSession, ProxyRecord, ShapedRequest

logger = logging.getLogger(__name__)

USER_AGENTS = {
    "desktop": [
        # Chrome
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
        # Firefox
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:121.0) Gecko/20100101 Firefox/121.0",
        "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:120.0) Gecko/20100101 Firefox/120.0",
        # Safari
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_14_6) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/16.6 Safari/605.1.15",
        # Edge
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0",
    ],
    "mobile": [
        "Mozilla/5.0 (iPhone; CPU iPhone OS 17_1 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Mobile/15E148 Safari/604.1",
        "Mozilla/5.0 (Linux; Android 10; SM-G973F) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36",
    ],
    "tablet": [
        "Mozilla/5.0 (iPad; CPU OS 17_1 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Mobile/15E148 Safari/604.1",
    ],
}

ALL_USER_AGENTS = [agent for agents in USER_AGENTS.values() for agent in agents]

ACCEPT_LANGUAGES = [
    "en-US,en;q=0.9",
    "en-US,en;q=0.9,es;q=0.8",
    "en-US,en;q=0.9,fr;q=0.8,de;q=0.7",
    "en-GB,en;q=0.9,en-US;q=0.8",
    "en-CA,en;q=0.9,en-US;q=0.8,fr-CA;q=0.7",
]

DEFAULT_REFERER = "https://www.google.com/"

# Proxy health bookkeeping
PROXY_HEALTH_MAX = 100
PROXY_HEALTH_MIN = 0
PROXY_HEALTH_THRESHOLD = 50
PROXY_SUCCESS_BONUS = 5
PROXY_FAILURE_PENALTY = 10
PROXY_CHECK_BONUS = 10
PROXY_CHECK_PENALTY = 20


def get_domain(url: str) -> str:
    """Lowercased host of a URL, empty when it cannot be parsed"""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def detect_platform(user_agent: str) -> str:
    """Client-hint platform name for a user agent"""
    # Mobile agents also mention Linux/Mac OS X, so check them first
    if "iPhone" in user_agent or "iPad" in user_agent:
        return "iOS"
    if "Android" in user_agent:
        return "Android"
    if "Windows" in user_agent:
        return "Windows"
    if "Macintosh" in user_agent:
        return "macOS"
    if "Linux" in user_agent:
        return "Linux"
    return "Unknown"


def is_mobile_agent(user_agent: str) -> bool:
    return any(token in user_agent for token in ("Mobile", "Android", "iPhone"))


class RequestShaper:
    """Owns proxies, sessions and throttling state for outgoing requests.

    All shared state is guarded by one lock which is never held across a
    network call or a sleep. Randomness, time and sleeping are injectable
    so behaviour is reproducible in tests.
    """

    def __init__(
        self,
        proxies: Optional[List[str]] = None,
        requests_per_minute: Optional[int] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        same_domain_window: Optional[float] = None,
        rate_limit_penalty: Optional[float] = None,
        session_max_requests: Optional[int] = None,
        session_max_age: Optional[float] = None,
    ):
        rpm = requests_per_minute or ScrapingSettings.RATE_LIMIT_PER_MINUTE
        self.base_delay = 60.0 / max(rpm, 1)
        self.same_domain_window = same_domain_window if same_domain_window is not None else ScrapingSettings.SAME_DOMAIN_WINDOW
        self.rate_limit_penalty = rate_limit_penalty if rate_limit_penalty is not None else ScrapingSettings.RATE_LIMIT_PENALTY
        self.session_max_requests = session_max_requests or ScrapingSettings.SESSION_MAX_REQUESTS
        self.session_max_age = session_max_age or ScrapingSettings.SESSION_MAX_AGE

        self._rng = rng or random.Random()
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()

        addresses = ScrapingSettings.PROXIES if proxies is None else proxies
        self._proxies: Dict[str, ProxyRecord] = {
            address: ProxyRecord(address=address) for address in addresses
        }
        self._sessions: Dict[str, BrowsingSession] = {}
        self._last_request_at: Optional[float] = None
        self._domain_last_request: Dict[str, float] = {}
        self._domain_blocked_until: Dict[str, float] = {}

        self._stats = {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
            "blocked_requests": 0,
            "rate_limited_requests": 0,
            "total_delay": 0.0,
        }

    # Throttling

    def reserve_slot(self, url: str) -> float:
        """Compute the wait before a request to url and reserve its slot.

        The reservation is written while the lock is held, so concurrent
        workers targeting the same domain queue behind each other instead
        of computing the same stale delay.
        """
        domain = get_domain(url)
        with self._lock:
            now = self._clock()
            waits = [0.0]

            if self._last_request_at is not None:
                global_delay = self.base_delay * self._rng.uniform(0.5, 1.5)
                waits.append(global_delay - (now - self._last_request_at))

            last_seen = self._domain_last_request.get(domain)
            if last_seen is not None:
                elapsed = now - last_seen
                if elapsed < self.same_domain_window:
                    factor = self._rng.uniform(2.0, 3.0)
                else:
                    factor = self._rng.uniform(0.5, 1.5)
                waits.append(self.base_delay * factor - elapsed)

            blocked_until = self._domain_blocked_until.get(domain)
            if blocked_until is not None:
                if blocked_until > now:
                    waits.append(blocked_until - now)
                else:
                    del self._domain_blocked_until[domain]

            wait = max(waits)
            scheduled_at = now + wait
            if self._last_request_at is None or scheduled_at > self._last_request_at:
                self._last_request_at = scheduled_at
            self._domain_last_request[domain] = scheduled_at
            self._stats["total_delay"] += wait

        return wait

    async def throttle(self, url: str) -> float:
        """Wait until a request to url is allowed; returns seconds waited"""
        wait = self.reserve_slot(url)
        if wait > 0:
            logger.debug(f"Throttling {get_domain(url)} for {wait:.2f}s")
            await self._sleep(wait)
        return wait

    # Sessions

    def _session_expired(self, session: BrowsingSession, now: float) -> bool:
        return (
            session.request_count >= self.session_max_requests
            or now - session.started_at >= self.session_max_age
        )

    def _cleanup_sessions(self, now: float):
        expired = [sid for sid, session in self._sessions.items() if self._session_expired(session, now)]
        for sid in expired:
            del self._sessions[sid]

    def _get_or_create_session(self, domain: str) -> BrowsingSession:
        now = self._clock()
        self._cleanup_sessions(now)

        for session in self._sessions.values():
            if session.domain == domain:
                return session

        session = BrowsingSession(
            id=f"{domain}_{int(now * 1000)}_{self._rng.getrandbits(32):08x}",
            domain=domain,
            started_at=now,
            user_agent=self._rng.choice(ALL_USER_AGENTS),
        )
        self._sessions[session.id] = session
        logger.debug(f"Created browsing session {session.id}")
        return session

    def get_or_create_session(self, domain: str) -> BrowsingSession:
        """Snapshot of the live session for domain, creating one when needed"""
        with self._lock:
            return self._get_or_create_session(domain).model_copy()

    # Proxies

    def _select_proxy(self, now: float) -> Optional[ProxyRecord]:
        healthy = [proxy for proxy in self._proxies.values() if proxy.health > PROXY_HEALTH_THRESHOLD]
        if not healthy:
            return None

        proxy = min(
            healthy,
            key=lambda p: (-p.health, p.last_used_at if p.last_used_at is not None else float("-inf")),
        )
        proxy.last_used_at = now
        return proxy

    def get_proxies(self) -> List[ProxyRecord]:
        """Snapshot of the proxy pool"""
        with self._lock:
            return [proxy.model_copy() for proxy in self._proxies.values()]

    # Request preparation

    def _build_headers(self, user_agent: str, referer: str) -> Dict[str, str]:
        headers = {
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
            "Accept-Language": self._rng.choice(ACCEPT_LANGUAGES),
            "Accept-Encoding": "gzip, deflate",
            "Connection": "keep-alive",
            "Cache-Control": "max-age=0",
            "Upgrade-Insecure-Requests": "1",
            "Referer": referer,
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "cross-site",
            "Sec-Fetch-User": "?1",
            "Sec-Ch-Ua-Mobile": "?1" if is_mobile_agent(user_agent) else "?0",
            "Sec-Ch-Ua-Platform": f'"{detect_platform(user_agent)}"',
        }
        if self._rng.random() > 0.5:
            headers["DNT"] = "1"
        return headers

    def prepare_request(self, url: str) -> ShapedRequest:
        """Headers, proxy and session for one request to url. Never raises."""
        domain = get_domain(url)
        with self._lock:
            now = self._clock()
            session = self._get_or_create_session(domain)
            referer = session.last_referer or DEFAULT_REFERER
            headers = self._build_headers(session.user_agent, referer)
            proxy = self._select_proxy(now)

            session.request_count += 1
            session.last_referer = url
            self._stats["total_requests"] += 1

            return ShapedRequest(
                headers=headers,
                proxy=proxy.model_copy() if proxy else None,
                session=session.model_copy(),
            )

    async def simulate_human_behavior(self) -> float:
        """Occasional reading pause between page loads"""
        pause = 0.0
        with self._lock:
            if self._rng.random() > 0.7:
                pause += self._rng.random() * 1.0  # mouse movement
            if self._rng.random() > 0.8:
                pause += self._rng.random() * 2.0  # scrolling
        if pause > 0:
            await self._sleep(pause)
        return pause

    # Feedback

    def record_result(self, url: str, success: bool, status: Optional[int] = None, proxy_address: Optional[str] = None):
        """Update counters, proxy health and domain penalties after a request"""
        domain = get_domain(url)
        with self._lock:
            if success:
                self._stats["successful_requests"] += 1
            else:
                self._stats["failed_requests"] += 1

            if status == 429:
                self._stats["rate_limited_requests"] += 1
                self._domain_blocked_until[domain] = self._clock() + self.rate_limit_penalty
                logger.warning(f"Rate limited by {domain}, backing off {self.rate_limit_penalty:.0f}s")
            elif status == 403:
                self._stats["blocked_requests"] += 1
                logger.warning(f"Request blocked by {domain} (403)")

            proxy = self._proxies.get(proxy_address) if proxy_address else None
            if proxy is not None:
                if success:
                    proxy.success_count += 1
                    proxy.health = min(PROXY_HEALTH_MAX, proxy.health + PROXY_SUCCESS_BONUS)
                else:
                    proxy.failure_count += 1
                    proxy.health = max(PROXY_HEALTH_MIN, proxy.health - PROXY_FAILURE_PENALTY)

    async def health_check_proxies(self, session: aiohttp.ClientSession) -> Dict[str, int]:
        """Probe every proxy and adjust its health; returns address -> health"""
        for proxy in self.get_proxies():
            started = self._clock()
            try:
                async with session.get(
                    ScrapingSettings.PROXY_CHECK_URL,
                    proxy=proxy.url,
                    timeout=aiohttp.ClientTimeout(total=ScrapingSettings.PROXY_CHECK_TIMEOUT),
                ) as response:
                    healthy = response.status == 200
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.warning(f"Proxy {proxy.address} health check failed: {e}")
                healthy = False

            elapsed = self._clock() - started
            with self._lock:
                record = self._proxies.get(proxy.address)
                if record is None:
                    continue
                if healthy:
                    record.health = min(PROXY_HEALTH_MAX, record.health + PROXY_CHECK_BONUS)
                    record.response_time = elapsed
                else:
                    record.health = max(PROXY_HEALTH_MIN, record.health - PROXY_CHECK_PENALTY)

        return {proxy.address: proxy.health for proxy in self.get_proxies()}

    def get_stats(self) -> Dict[str, float]:
        """Request, block and pool statistics"""
        with self._lock:
            stats = dict(self._stats)
            total = stats["total_requests"]
            stats["success_rate"] = round(stats["successful_requests"] / total * 100, 2) if total else 0.0
            stats["block_rate"] = round(stats["blocked_requests"] / total * 100, 2) if total else 0.0
            stats["active_sessions"] = len(self._sessions)
            stats["healthy_proxies"] = sum(
                1 for proxy in self._proxies.values() if proxy.health > PROXY_HEALTH_THRESHOLD
            )
            stats["total_proxies"] = len(self._proxies)
            return stats
