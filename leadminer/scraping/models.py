"""
Models for the lead scraping pipeline
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Dict, Optional, Any
from datetime import datetime
from enum import Enum


class DataType(str, Enum):
    """Declared type of a custom field value"""
    TEXT = "text"
    NUMBER = "number"
    CURRENCY = "currency"
    DATE = "date"
    BOOLEAN = "boolean"
    EMAIL = "email"
    PHONE = "phone"
    URL = "url"


class BudgetRange(str, Enum):
    """Fixed budget buckets, lower bound inclusive"""
    UNDER_10K = "under_10k"
    FROM_10K_TO_50K = "10k_50k"
    FROM_50K_TO_100K = "50k_100k"
    FROM_100K_TO_500K = "100k_500k"
    FROM_500K_TO_1M = "500k_1m"
    FROM_1M_TO_5M = "1m_5m"
    FROM_5M_TO_10M = "5m_10m"
    OVER_10M = "over_10m"
    NOT_SPECIFIED = "not_specified"


class RunState(str, Enum):
    """Pipeline stage of a scraping run"""
    IDLE = "idle"
    SEARCHING = "searching"
    ENRICHING = "enriching"
    EXTRACTING = "extracting"
    VERIFYING = "verifying"
    DEDUPLICATING = "deduplicating"
    COMPLETED = "completed"
    FAILED = "failed"


class ScrapingStatus(str, Enum):
    """Scraping job status"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CustomFieldSpec(BaseModel):
    """User-defined extraction target described in natural language"""
    model_config = ConfigDict(frozen=True)

    key: str
    display_name: str
    description: str = ""
    data_type: DataType = DataType.TEXT
    category: str = "general"
    visible: bool = True


class ScrapingConfiguration(BaseModel):
    """Configuration of one scraping run; immutable while the run executes"""
    model_config = ConfigDict(frozen=True)

    keywords: List[str] = []
    enabled_sources: List[str] = []
    max_results_per_run: int = Field(default=50, gt=0)
    use_ai_extraction: bool = False
    custom_fields: List[CustomFieldSpec] = []
    expand_keywords: bool = False

    @field_validator('keywords')
    @classmethod
    def normalize_keywords(cls, v):
        # Ordered set: strip, drop blanks and repeated terms
        seen = set()
        keywords = []
        for keyword in v:
            term = keyword.strip()
            if term and term.lower() not in seen:
                seen.add(term.lower())
                keywords.append(term)
        return keywords

    @field_validator('enabled_sources')
    @classmethod
    def normalize_sources(cls, v):
        return list(dict.fromkeys(source.strip().lower() for source in v if source.strip()))

    @field_validator('custom_fields')
    @classmethod
    def validate_custom_field_keys(cls, v):
        keys = [field.key for field in v]
        if len(keys) != len(set(keys)):
            raise ValueError('Custom field keys must be unique')
        return v


class SearchCandidate(BaseModel):
    """A result returned by a source connector"""
    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    snippet: str = ""
    source_id: str
    discovered_at: datetime = Field(default_factory=datetime.now)


class FetchedContent(BaseModel):
    """Page content retrieved for a candidate"""
    model_config = ConfigDict(frozen=True)

    candidate: SearchCandidate
    raw_text: str = ""
    raw_html: Optional[str] = None
    title: Optional[str] = None
    meta_description: Optional[str] = None
    fetched_at: datetime = Field(default_factory=datetime.now)
    fetch_succeeded: bool = False
    http_status: Optional[int] = None
    error: Optional[str] = None
    retryable: bool = False


class ContactCandidate(BaseModel):
    """A person or contact channel found in lead content"""
    name: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    confidence: int = Field(default=0, ge=0, le=100)

    def has_channel(self) -> bool:
        """A contact needs at least a name, an email or a phone"""
        return bool(self.name or self.email or self.phone)


class ExtractedFields(BaseModel):
    """Structured fields derived from one candidate; None means unknown"""
    model_config = ConfigDict(frozen=True)

    company: Optional[str] = None
    location: Optional[str] = None
    project_type: Optional[str] = None
    industry_type: Optional[str] = None
    budget_amount: Optional[float] = None
    budget_range: BudgetRange = BudgetRange.NOT_SPECIFIED
    timeline_year: Optional[int] = None
    room_count: Optional[int] = None
    square_footage: Optional[int] = None
    employee_count: Optional[int] = None
    contacts: List[ContactCandidate] = []
    description: Optional[str] = None
    keywords: List[str] = []
    custom_values: Dict[str, Any] = {}
    pattern_confidence: int = Field(default=0, ge=0, le=100)

    # Source metadata carried for cross-reference checks
    source_url: Optional[str] = None
    source_title: Optional[str] = None
    source_snippet: Optional[str] = None
    fetch_succeeded: bool = True

    @classmethod
    def unknown(cls, **source) -> "ExtractedFields":
        """All-unknown result, optionally tagged with source metadata"""
        return cls(**source)


class VerifiedLead(BaseModel):
    """A verified lead handed across the persistence boundary"""
    model_config = ConfigDict(frozen=True)

    extracted: ExtractedFields
    source_url: str
    final_confidence: int = Field(ge=0, le=100)
    verified: bool
    issues: List[str] = []
    recommendations: List[str] = []
    details: Dict[str, Any] = {}


class ProxyRecord(BaseModel):
    """Proxy state owned by the request shaper"""
    address: str
    health: int = 100
    last_used_at: Optional[float] = None
    success_count: int = 0
    failure_count: int = 0
    response_time: Optional[float] = None

    @property
    def url(self) -> str:
        if "://" in self.address:
            return self.address
        return f"http://{self.address}"


class BrowsingSession(BaseModel):
    """Per-domain browsing session owned by the request shaper"""
    id: str
    domain: str
    started_at: float
    request_count: int = 0
    user_agent: str
    last_referer: Optional[str] = None


class ShapedRequest(BaseModel):
    """Request parameters produced by the shaper for one fetch"""
    headers: Dict[str, str]
    proxy: Optional[ProxyRecord] = None
    session: BrowsingSession


class RunError(BaseModel):
    """A recoverable problem recorded during a run"""
    source: str
    message: str


class RunSummary(BaseModel):
    """Per-run counters handed back to the caller"""
    total_candidates: int = 0
    unique_candidates: int = 0
    fetched: int = 0
    extracted: int = 0
    verified: int = 0
    saved: int = 0
    duplicates_removed: int = 0
    sources_queried: int = 0
    sources_failed: int = 0
    cancelled: bool = False
    execution_time: float = 0.0
    errors: List[RunError] = []


class ScrapingRun(BaseModel):
    """Outcome of one pipeline run"""
    state: RunState
    leads: List[VerifiedLead] = []
    summary: RunSummary = Field(default_factory=RunSummary)


class ScrapingJob(BaseModel):
    """Tracked background run"""
    id: str
    user_id: Optional[int] = None
    config_id: Optional[int] = None
    config: ScrapingConfiguration
    status: ScrapingStatus = ScrapingStatus.PENDING
    state: RunState = RunState.IDLE

    # Timing
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Results and errors
    summary: Optional[RunSummary] = None
    leads: List[VerifiedLead] = []
    errors: List[str] = []

    # Metadata
    created_at: datetime
    updated_at: datetime
