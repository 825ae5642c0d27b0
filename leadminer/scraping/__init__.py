"""
Lead Scraping Module
Multi-source lead discovery: search, fetch, extract, verify and deduplicate
"""

from .anti_detection import RequestShaper
from .data_validator import LeadVerificationEngine
from .dedup import Deduplicator, normalize_url
from .errors import ConfigurationError, ScrapingError
from .extraction import ExtractionEngine
from .fetcher import ContentFetcher
from .manager import ScrapingManager, build_scraping_manager
from .models import (
    ScrapingConfiguration, CustomFieldSpec, SearchCandidate, FetchedContent,
    ExtractedFields, ContactCandidate, VerifiedLead, ScrapingRun, ScrapingJob
)

__all__ = [
    "RequestShaper",
    "ContentFetcher",
    "ExtractionEngine",
    "LeadVerificationEngine",
    "Deduplicator",
    "normalize_url",
    "ScrapingManager",
    "build_scraping_manager",
    "ScrapingError",
    "ConfigurationError",
    "ScrapingConfiguration",
    "CustomFieldSpec",
    "SearchCandidate",
    "FetchedContent",
    "ExtractedFields",
    "ContactCandidate",
    "VerifiedLead",
    "ScrapingRun",
    "ScrapingJob",
]
