"""
URL normalization and first-seen-wins deduplication
"""

import logging
from typing import Callable, Generic, Iterable, List, Set, TypeVar
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRACKING_PARAMS = {
    "fbclid", "gclid", "dclid", "msclkid", "yclid", "igshid", "mc_cid", "mc_eid",
    "ref", "ref_src", "cmpid", "spm", "_ga", "_gl", "ocid", "smid",
}
TRACKING_PREFIXES = ("utm_", "pk_", "hsa_")

DEFAULT_PORTS = {"http": 80, "https": 443}


def _is_tracking_param(name: str) -> bool:
    lowered = name.lower()
    return lowered in TRACKING_PARAMS or lowered.startswith(TRACKING_PREFIXES)


def normalize_url(url: str) -> str:
    """Dedup key for a URL.

    Lowercases scheme and host, drops default ports, fragments, trailing
    slashes and tracking parameters. http and https are treated as the
    same resource.
    """
    if not url:
        return ""

    url = url.strip()
    try:
        parsed = urlparse(url)
        port = parsed.port
    except ValueError:
        return url.lower()

    scheme = (parsed.scheme or "http").lower()
    host = (parsed.hostname or "").lower()
    if not host:
        return url.lower()

    netloc = host
    if port and port != DEFAULT_PORTS.get(scheme):
        netloc = f"{host}:{port}"

    path = parsed.path.rstrip("/")
    query = urlencode([
        (name, value) for name, value in parse_qsl(parsed.query, keep_blank_values=True)
        if not _is_tracking_param(name)
    ])

    if scheme == "http":
        scheme = "https"

    return urlunparse((scheme, netloc, path, "", query, ""))


class Deduplicator(Generic[T]):
    """Keeps the first item seen for each normalized URL"""

    def __init__(self, key: Callable[[T], str]):
        self.key = key
        self._seen: Set[str] = set()
        self.duplicates = 0

    def add(self, item: T) -> bool:
        """Record item; False when an equivalent URL was already seen"""
        normalized = normalize_url(self.key(item))
        if normalized in self._seen:
            self.duplicates += 1
            return False
        self._seen.add(normalized)
        return True

    def seen(self, url: str) -> bool:
        return normalize_url(url) in self._seen

    def filter(self, items: Iterable[T]) -> List[T]:
        """Items whose normalized URL was not seen before, in input order"""
        kept = [item for item in items if self.add(item)]
        if self.duplicates:
            logger.debug(f"Dropped {self.duplicates} duplicate URLs so far")
        return kept
