"""
Utility functions for scraping system
"""
import re
import logging
from typing import Optional, List
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b')
EMAIL_FORMAT = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PHONE_PATTERN = re.compile(
    r'(?<![\d-])(?:\+?1[\s.-]?)?(?:\(\d{3}\)|\d{3})[\s.-]?\d{3}[\s.-]?\d{4}(?![\d-])'
)
NUMBER_PATTERN = re.compile(r'\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?')

SKIPPED_EMAIL_PATTERNS = ['noreply', 'no-reply', 'donotreply', 'do-not-reply', '@example.', '@test.']

BLOCKED_URL_PATTERNS = [
    re.compile(pattern) for pattern in [
        r'/search', r'/tag/', r'/tags/', r'/category/', r'/author/', r'/page/',
        r'/feed', r'/rss', r'/comments', r'/login', r'/register',
    ]
]
BLOCKED_URL_EXTENSIONS = re.compile(r'\.(jpg|jpeg|png|gif|webp|svg|pdf|doc|docx|xls|xlsx|zip)$', re.IGNORECASE)


def normalize_whitespace(text: Optional[str]) -> str:
    """Collapse runs of whitespace into single spaces"""
    if not text:
        return ""
    return re.sub(r'\s+', ' ', text).strip()


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and EMAIL_FORMAT.match(email) is not None


def phone_digits(phone: Optional[str]) -> str:
    return re.sub(r'\D', '', phone or "")


def is_valid_phone(phone: Optional[str]) -> bool:
    """North American numbers: 10 digits, or 11 with a leading country code"""
    return 10 <= len(phone_digits(phone)) <= 11


def format_phone(phone: str) -> str:
    """Format a North American number as (555) 123-4567"""
    digits = phone_digits(phone)
    if len(digits) == 11 and digits.startswith('1'):
        digits = digits[1:]
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    return normalize_whitespace(phone)


def parse_number(token: str) -> Optional[float]:
    """Parse the first numeric token of a string, ignoring thousands separators"""
    if not token:
        return None
    match = NUMBER_PATTERN.search(token)
    if not match:
        return None
    try:
        return float(match.group(0).replace(',', ''))
    except ValueError:
        return None


def validate_url(url: str) -> bool:
    """Validate if URL is properly formatted"""
    try:
        result = urlparse(url)
        return all([result.scheme in ('http', 'https'), result.netloc])
    except ValueError:
        return False


def is_valid_article_url(url: str) -> bool:
    """Reject listing, navigation and binary URLs returned by search providers"""
    if not url or not validate_url(url):
        return False

    parsed = urlparse(url)
    if not parsed.hostname or len(parsed.hostname) < 4:
        return False

    path = parsed.path.lower()
    if any(pattern.search(path) for pattern in BLOCKED_URL_PATTERNS):
        return False
    return not BLOCKED_URL_EXTENSIONS.search(path)


def normalize_company_name(name: Optional[str]) -> str:
    """Normalize company name for comparison"""
    if not name:
        return ""

    name = name.lower()
    suffixes = ['inc', 'llc', 'ltd', 'corp', 'corporation', 'co', 'company', 'limited', 'plc']
    for suffix in suffixes:
        name = re.sub(rf'\b{suffix}\b\.?', '', name)

    name = re.sub(r'[^\w\s&]', ' ', name)
    return normalize_whitespace(name)


def split_sentences(text: Optional[str]) -> List[str]:
    """Split text into trimmed sentences"""
    if not text:
        return []
    return [sentence.strip() for sentence in re.split(r'(?<=[.!?])\s+', text) if sentence.strip()]


def truncate_text(text: str, limit: int) -> str:
    """Cut text to limit characters, preferring a sentence boundary"""
    text = normalize_whitespace(text)
    if len(text) <= limit:
        return text

    cut = text[:limit]
    last_stop = cut.rfind('. ')
    if last_stop > limit * 0.8:
        return cut[:last_stop + 1]
    return cut.rstrip() + "..."
