"""
Error taxonomy for the scraping pipeline
"""

from typing import Optional


class ScrapingError(Exception):
    """Base class for scraping pipeline errors"""


class ConfigurationError(ScrapingError):
    """Scraping configuration failed validation before the run started"""


class SourceError(ScrapingError):
    """A source connector could not return candidates"""

    def __init__(self, source_id: str, message: str):
        super().__init__(f"{source_id}: {message}")
        self.source_id = source_id
        self.message = message


class SourceRateLimited(SourceError):
    """Source rejected the query with a rate limit"""


class SourceAuthError(SourceError):
    """Source credential missing or rejected"""


class SourceUnavailable(SourceError):
    """Source errored, timed out or returned an unusable payload"""


class FetchFailed(ScrapingError):
    """Content could not be retrieved for a candidate"""

    def __init__(self, url: str, message: str, status: Optional[int] = None, retryable: bool = False):
        super().__init__(message)
        self.url = url
        self.status = status
        self.retryable = retryable


class CompletionError(ScrapingError):
    """External text completion failed"""


class CompletionTimeout(CompletionError):
    """Completion did not return within its timeout"""


class CompletionAuthError(CompletionError):
    """Completion credential missing or rejected"""


class MalformedCompletion(CompletionError):
    """Completion returned no usable text"""


class ExtractionDegraded(ScrapingError):
    """AI-assisted extraction failed and pattern-only fields were kept"""

    def __init__(self, field_key: str, cause: Exception):
        super().__init__(f"AI extraction for '{field_key}' degraded: {cause}")
        self.field_key = field_key
        self.cause = cause
