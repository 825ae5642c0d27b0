"""
AI-assisted extraction of user-defined custom fields
"""

import asyncio
import hashlib
import logging
import re
import threading
from datetime import date, datetime
from typing import Any, Dict, Optional, Protocol

import openai
from openai import AsyncOpenAI

from ...cache.config import CacheConfig
from ...cache.manager import CacheManager
from ..config import ScrapingSettings
from ..errors import CompletionAuthError, CompletionError, CompletionTimeout, MalformedCompletion
from ..models import CustomFieldSpec, DataType
from ..utils import (
    EMAIL_PATTERN, PHONE_PATTERN, format_phone, normalize_whitespace, parse_number, truncate_text
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a precise data extraction assistant. "
    "Return only the extracted value without any additional text or explanation."
)

CATEGORY_PROMPTS = {
    "contact": "Extract contact information from the following article. Look for: names, titles, companies, email addresses, phone numbers, or any contact details.",
    "project": "Extract project-related information from the article including: size, capacity, features, specifications, or project details.",
    "company": "Extract company/organization information from the article including: company names, ownership, partnerships, or corporate details.",
    "location": "Extract location information from the article including: addresses, cities, regions, landmarks, or geographic details.",
    "financial": "Extract financial information from the article including: costs, budgets, investments, funding, pricing, or monetary figures.",
    "timeline": "Extract time-related information from the article including: dates, deadlines, schedules, timelines, or temporal information.",
}
DEFAULT_CATEGORY_PROMPT = "Extract information from the article."

MAX_PROMPT_CONTENT = 2000
MAX_TEXT_VALUE = 500

UNKNOWN_ANSWERS = {"", "unknown", "n/a", "na", "none", "null", "not found", "not specified", "not available", "-"}
TRUE_WORDS = {"yes", "true", "y", "1"}
FALSE_WORDS = {"no", "false", "n", "0"}

DATE_FORMATS = [
    "%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y", "%d.%m.%Y",
    "%B %d, %Y", "%B %d %Y", "%b %d, %Y", "%b %d %Y", "%d %B %Y", "%d %b %Y",
    "%B %Y", "%b %Y",
]
DATE_TOKEN = re.compile(
    r"\d{4}-\d{2}-\d{2}|\d{1,2}/\d{1,2}/\d{2,4}|\d{1,2}\.\d{1,2}\.\d{4}|"
    r"(?:\d{1,2}\s+)?[A-Z][a-z]{2,8}\.?(?:\s+\d{1,2},?)?\s+\d{4}"
)
URL_TOKEN = re.compile(r"https?://[^\s\"'<>]+")
CURRENCY_UNITS = re.compile(r"(?P<amount>\d[\d,]*(?:\.\d+)?)\s*(?P<unit>thousand|million|billion|k|m|b|bn)\b", re.IGNORECASE)
CURRENCY_MULTIPLIERS = {
    "k": 1_000, "thousand": 1_000, "m": 1_000_000, "million": 1_000_000,
    "b": 1_000_000_000, "bn": 1_000_000_000, "billion": 1_000_000_000,
}


class TextCompletionProvider(Protocol):
    """External text generation capability"""

    async def complete(self, prompt: str) -> str:
        """Return completion text or raise a CompletionError subclass"""
        ...


class OpenAICompletionProvider:
    """Chat-completions provider for DeepSeek or any OpenAI-compatible endpoint"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.api_key = api_key if api_key is not None else ScrapingSettings.AI_API_KEY
        self.base_url = base_url or ScrapingSettings.AI_BASE_URL
        self.model = model or ScrapingSettings.AI_MODEL
        self.timeout = timeout or ScrapingSettings.AI_TIMEOUT
        self.max_tokens = max_tokens or ScrapingSettings.AI_MAX_TOKENS
        self.temperature = ScrapingSettings.AI_TEMPERATURE if temperature is None else temperature
        self._client = client

    def enabled(self) -> bool:
        return bool((self.api_key or "").strip()) or self._client is not None

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    async def complete(self, prompt: str) -> str:
        if not self.enabled():
            raise CompletionAuthError("AI API key not configured")

        try:
            response = await self._get_client().chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except openai.APITimeoutError as e:
            raise CompletionTimeout(f"Completion timed out: {e}") from e
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise CompletionAuthError(f"Completion rejected credentials: {e}") from e
        except openai.APIError as e:
            raise CompletionError(f"Completion request failed: {e}") from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise MalformedCompletion(f"Unexpected completion shape: {e}") from e

        if not isinstance(content, str) or not content.strip():
            raise MalformedCompletion("Completion returned no text")
        return content.strip()


class AIExtractionCache:
    """Prompt-hash keyed answers, in memory and optionally shared through redis"""

    def __init__(self, cache_manager: Optional[CacheManager] = None, ttl: Optional[int] = None):
        self.cache_manager = cache_manager
        self.ttl = ttl or CacheConfig.get_ttl_for_key_type("ai_extraction")
        self._entries: Dict[str, str] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key_for(prompt: str) -> str:
        return hashlib.md5(prompt.encode("utf-8")).hexdigest()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._entries.get(key)
        if value is not None:
            return value

        if self.cache_manager and self.cache_manager.enabled:
            value = self.cache_manager.get_ai_extraction(key)
            if value is not None:
                with self._lock:
                    self._entries[key] = value
        return value

    def set(self, key: str, value: str):
        with self._lock:
            self._entries[key] = value
        if self.cache_manager and self.cache_manager.enabled:
            self.cache_manager.set_ai_extraction(key, value, self.ttl)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def build_field_prompt(field: CustomFieldSpec, text: str) -> str:
    """Natural-language extraction prompt for one custom field"""
    base_prompt = CATEGORY_PROMPTS.get((field.category or "").lower(), DEFAULT_CATEGORY_PROMPT)
    description = field.description or field.display_name
    specific = f'Based on this description: "{description}", extract the most relevant {field.data_type.value} value.'
    content = truncate_text(text, MAX_PROMPT_CONTENT)

    return (
        f"{base_prompt} {specific}\n\n"
        f"Article content:\n{content}\n\n"
        'Return only the extracted value, or "Unknown" if not found. '
        "Be precise and return only the actual value without additional text."
    )


def _coerce_currency(raw: str) -> Optional[float]:
    match = CURRENCY_UNITS.search(raw)
    if match:
        amount = parse_number(match.group("amount"))
        if amount is not None:
            return amount * CURRENCY_MULTIPLIERS[match.group("unit").lower()]
    return parse_number(raw)


def _coerce_date(raw: str) -> Optional[date]:
    for match in DATE_TOKEN.finditer(raw):
        token = match.group(0)
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(token, fmt).date()
            except ValueError:
                continue
    return None


def coerce_value(raw: Optional[str], data_type: DataType) -> Any:
    """Convert an answer to the field's declared type; None when it does not fit"""
    if raw is None:
        return None

    value = normalize_whitespace(str(raw)).strip(" \"'`")
    if value.lower().rstrip(".") in UNKNOWN_ANSWERS:
        return None

    if data_type == DataType.CURRENCY:
        return _coerce_currency(value)
    if data_type == DataType.NUMBER:
        return parse_number(value)
    if data_type == DataType.DATE:
        return _coerce_date(value)
    if data_type == DataType.BOOLEAN:
        word = value.lower().rstrip(".!")
        if word in TRUE_WORDS:
            return True
        if word in FALSE_WORDS:
            return False
        return None
    if data_type == DataType.EMAIL:
        match = EMAIL_PATTERN.search(value)
        return match.group(0).lower() if match else None
    if data_type == DataType.PHONE:
        match = PHONE_PATTERN.search(value)
        return format_phone(match.group(0)) if match else None
    if data_type == DataType.URL:
        match = URL_TOKEN.search(value)
        return match.group(0).rstrip(".,;)") if match else None

    return value[:MAX_TEXT_VALUE]


class AIFieldExtractor:
    """Asks a completion provider for custom field values, with caching and a timeout"""

    def __init__(
        self,
        provider: TextCompletionProvider,
        cache: Optional[AIExtractionCache] = None,
        timeout: Optional[float] = None,
    ):
        self.provider = provider
        self.cache = cache if cache is not None else AIExtractionCache()
        self.timeout = timeout or ScrapingSettings.AI_TIMEOUT
        self.api_calls = 0
        self.cache_hits = 0

    async def extract_field(self, field: CustomFieldSpec, text: str) -> Optional[str]:
        """Raw answer for one field; raises CompletionError on provider failure"""
        prompt = build_field_prompt(field, text)
        key = AIExtractionCache.key_for(prompt)

        # redis round-trips run off the event loop
        cached = await asyncio.to_thread(self.cache.get, key)
        if cached is not None:
            self.cache_hits += 1
            return cached

        self.api_calls += 1
        try:
            answer = await asyncio.wait_for(self.provider.complete(prompt), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise CompletionTimeout(f"No completion within {self.timeout}s") from e
        except CompletionError:
            raise
        except Exception as e:
            raise CompletionError(f"Completion provider failed: {type(e).__name__}: {e}") from e

        if not isinstance(answer, str):
            raise MalformedCompletion(f"Expected text completion, got {type(answer).__name__}")

        await asyncio.to_thread(self.cache.set, key, answer)
        return answer
