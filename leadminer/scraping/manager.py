"""
Scraping Manager - Orchestrates lead discovery across multiple sources
"""

import asyncio
import logging
import time
import uuid
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Protocol

import aiohttp
from sqlalchemy.exc import SQLAlchemyError

from ..cache.manager import CacheManager
from .anti_detection import RequestShaper
from .config import ScrapingSettings
from .data_validator import LeadVerificationEngine
from .dedup import Deduplicator
from .errors import ConfigurationError, SourceError
from .extraction import AIExtractionCache, AIFieldExtractor, ExtractionEngine, OpenAICompletionProvider
from .fetcher import ContentFetcher
from .keywords import expand_keywords
from .models import (
    ExtractedFields, FetchedContent, RunError, RunState, RunSummary,
    ScrapingConfiguration, ScrapingJob, ScrapingRun, ScrapingStatus,
    SearchCandidate, VerifiedLead
)
from .sources import SOURCE_REGISTRY, BaseSource, build_sources

logger = logging.getLogger(__name__)

FINISHED_STATUSES = (ScrapingStatus.COMPLETED, ScrapingStatus.FAILED, ScrapingStatus.CANCELLED)


class LeadStore(Protocol):
    """Persistence collaborator for verified leads"""

    def save(self, lead: VerifiedLead, config_id: Optional[int], user_id: Optional[int]) -> int:
        ...

    def exists_by_url(self, url: str, user_id: Optional[int]) -> bool:
        ...


class ScrapingManager:
    """Runs the search → fetch → extract → verify → dedup pipeline and tracks background jobs"""

    def __init__(
        self,
        sources: Dict[str, BaseSource],
        fetcher: ContentFetcher,
        extraction: Optional[ExtractionEngine] = None,
        verification: Optional[LeadVerificationEngine] = None,
        repository: Optional[LeadStore] = None,
        cache_manager: Optional[CacheManager] = None,
        max_concurrent_fetches: Optional[int] = None,
        max_concurrent_searches: Optional[int] = None,
        max_concurrent_jobs: Optional[int] = None,
        max_retries: Optional[int] = None,
        retry_backoff: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        http_session: Optional[aiohttp.ClientSession] = None,
    ):
        self.sources = sources
        self.fetcher = fetcher
        self.extraction = extraction or ExtractionEngine()
        self.verification = verification or LeadVerificationEngine()
        self.repository = repository
        self.cache = cache_manager

        self.max_concurrent_fetches = max_concurrent_fetches or ScrapingSettings.MAX_CONCURRENT_FETCHES
        self.max_concurrent_searches = max_concurrent_searches or ScrapingSettings.MAX_CONCURRENT_SEARCHES
        self.max_retries = ScrapingSettings.MAX_RETRIES if max_retries is None else max_retries
        self.retry_backoff = ScrapingSettings.RETRY_BACKOFF if retry_backoff is None else retry_backoff
        self._sleep = sleep

        # Active jobs tracking
        self.active_jobs: Dict[str, ScrapingJob] = {}
        self._cancel_events: Dict[str, asyncio.Event] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._job_slots = asyncio.Semaphore(max_concurrent_jobs or ScrapingSettings.MAX_CONCURRENT_JOBS)
        self._http_session = http_session

    @property
    def shaper(self) -> RequestShaper:
        return self.fetcher.shaper

    def validate_configuration(self, config: ScrapingConfiguration):
        """Raise ConfigurationError for a configuration that cannot run"""
        if not config.keywords:
            raise ConfigurationError("At least one keyword is required")
        if not config.enabled_sources:
            raise ConfigurationError("At least one source must be enabled")

        unknown = [source_id for source_id in config.enabled_sources if source_id not in self.sources]
        if unknown:
            raise ConfigurationError(f"Unknown source(s): {', '.join(unknown)}")

    # Pipeline

    async def run(
        self,
        config: ScrapingConfiguration,
        user_id: Optional[int] = None,
        config_id: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
        on_state: Optional[Callable[[RunState], None]] = None,
    ) -> ScrapingRun:
        """Execute one run; only configuration problems raise"""
        self.validate_configuration(config)

        started = time.monotonic()
        cancel_event = cancel_event or asyncio.Event()
        summary = RunSummary()
        errors: List[RunError] = []

        def enter(state: RunState):
            logger.info(f"Run stage: {state.value}")
            if on_state:
                on_state(state)

        def finish(state: RunState, leads: List[VerifiedLead]) -> ScrapingRun:
            summary.errors = errors
            summary.cancelled = cancel_event.is_set()
            summary.execution_time = time.monotonic() - started
            enter(state)
            return ScrapingRun(state=state, leads=leads, summary=summary)

        # Searching
        enter(RunState.SEARCHING)
        keywords = expand_keywords(config.keywords) if config.expand_keywords else list(config.keywords)
        candidates = await self._search_all(config.enabled_sources, keywords, config.max_results_per_run, summary, errors)
        summary.total_candidates = len(candidates)

        if summary.sources_failed == summary.sources_queried:
            logger.error(f"All {summary.sources_queried} sources failed; run aborted")
            return finish(RunState.FAILED, [])

        # Pre-pass dedup, earliest-discovered first
        candidates.sort(key=lambda candidate: candidate.discovered_at)
        pre_pass = Deduplicator(key=lambda candidate: candidate.url)
        unique = pre_pass.filter(candidates)
        unique = self._skip_persisted(unique, user_id, errors)
        selected = unique[:config.max_results_per_run]
        summary.unique_candidates = len(selected)
        if len(unique) > len(selected):
            logger.info(f"Truncated {len(unique)} candidates to {len(selected)}")

        # Enriching
        enter(RunState.ENRICHING)
        contents = await self._fetch_all(selected, cancel_event, errors)
        summary.fetched = sum(1 for content in contents if content.fetch_succeeded)

        # Extracting
        enter(RunState.EXTRACTING)
        extracted = await self._extract_all(contents, config, cancel_event, errors)
        summary.extracted = len(extracted)

        # Verifying
        enter(RunState.VERIFYING)
        verified_leads = [self.verification.verify(fields) for fields in extracted]
        summary.verified = sum(1 for lead in verified_leads if lead.verified)

        # Deduplicating
        enter(RunState.DEDUPLICATING)
        final_pass = Deduplicator(key=lambda lead: lead.source_url)
        leads = final_pass.filter(verified_leads)
        summary.duplicates_removed = pre_pass.duplicates + final_pass.duplicates
        summary.saved = self._persist(leads, config_id, user_id, errors)

        logger.info(
            f"Run completed: {summary.total_candidates} candidates, {summary.fetched} fetched, "
            f"{len(leads)} leads ({summary.verified} verified), {len(errors)} errors"
        )
        return finish(RunState.COMPLETED, leads)

    async def _search_source(self, source_id: str, keywords: List[str], limit: int, slots: asyncio.Semaphore) -> List[SearchCandidate]:
        async with slots:
            logger.info(f"Querying {source_id} for {len(keywords)} keywords")
            return await self.sources[source_id].search(keywords, limit)

    async def _search_all(
        self,
        source_ids: List[str],
        keywords: List[str],
        limit: int,
        summary: RunSummary,
        errors: List[RunError],
    ) -> List[SearchCandidate]:
        slots = asyncio.Semaphore(self.max_concurrent_searches)
        results = await asyncio.gather(
            *(self._search_source(source_id, keywords, limit, slots) for source_id in source_ids),
            return_exceptions=True,
        )

        candidates: List[SearchCandidate] = []
        summary.sources_queried = len(source_ids)
        for source_id, result in zip(source_ids, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, SourceError):
                summary.sources_failed += 1
                errors.append(RunError(source=source_id, message=result.message))
                logger.warning(f"Source {source_id} skipped: {result.message}")
            elif isinstance(result, Exception):
                summary.sources_failed += 1
                errors.append(RunError(source=source_id, message=f"Unexpected error: {result}"))
                logger.error(f"Source {source_id} failed unexpectedly: {result}")
            else:
                logger.info(f"Source {source_id} returned {len(result)} candidates")
                candidates.extend(result)
        return candidates

    def _skip_persisted(self, candidates: List[SearchCandidate], user_id: Optional[int], errors: List[RunError]) -> List[SearchCandidate]:
        if self.repository is None:
            return candidates

        fresh = []
        for candidate in candidates:
            try:
                if self.repository.exists_by_url(candidate.url, user_id):
                    logger.debug(f"Skipping already stored {candidate.url}")
                    continue
            except SQLAlchemyError as e:
                errors.append(RunError(source="persistence", message=f"Lookup failed for {candidate.url}: {e}"))
                logger.warning(f"Persisted-URL lookup failed for {candidate.url}: {e}")
            fresh.append(candidate)
        return fresh

    async def _fetch_with_retry(self, candidate: SearchCandidate) -> FetchedContent:
        """Fetch a candidate, retrying retryable failures with exponential backoff"""
        content = await self.fetcher.fetch(candidate)
        attempt = 0
        while not content.fetch_succeeded and content.retryable and attempt < self.max_retries:
            delay = self.retry_backoff * (2 ** attempt)
            attempt += 1
            logger.info(f"Retrying {candidate.url} in {delay:.1f}s (attempt {attempt}/{self.max_retries}): {content.error}")
            await self._sleep(delay)
            content = await self.fetcher.fetch(candidate)
        return content

    async def _fetch_all(
        self,
        candidates: List[SearchCandidate],
        cancel_event: asyncio.Event,
        errors: List[RunError],
    ) -> List[FetchedContent]:
        slots = asyncio.Semaphore(self.max_concurrent_fetches)

        async def worker(candidate: SearchCandidate) -> Optional[FetchedContent]:
            async with slots:
                if cancel_event.is_set():
                    return None
                content = await self._fetch_with_retry(candidate)
                if not content.fetch_succeeded:
                    errors.append(RunError(source=candidate.source_id, message=f"Fetch failed for {candidate.url}: {content.error}"))
                return content

        results = await asyncio.gather(*(worker(candidate) for candidate in candidates))
        return [content for content in results if content is not None]

    async def _extract_all(
        self,
        contents: List[FetchedContent],
        config: ScrapingConfiguration,
        cancel_event: asyncio.Event,
        errors: List[RunError],
    ) -> List[ExtractedFields]:

        async def extract_one(content: FetchedContent) -> Optional[ExtractedFields]:
            if cancel_event.is_set():
                return None
            return await self.extraction.extract(content, config.custom_fields, use_ai=config.use_ai_extraction)

        results = await asyncio.gather(*(extract_one(content) for content in contents), return_exceptions=True)

        extracted = []
        for content, result in zip(contents, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                candidate = content.candidate
                errors.append(RunError(source=candidate.source_id, message=f"Extraction failed for {candidate.url}: {result}"))
                logger.error(f"Extraction failed for {candidate.url}: {result}")
            elif result is not None:
                extracted.append(result)
        return extracted

    def _persist(self, leads: List[VerifiedLead], config_id: Optional[int], user_id: Optional[int], errors: List[RunError]) -> int:
        if self.repository is None:
            return 0

        saved = 0
        for lead in leads:
            try:
                self.repository.save(lead, config_id, user_id)
                saved += 1
            except SQLAlchemyError as e:
                errors.append(RunError(source="persistence", message=f"Could not save {lead.source_url}: {e}"))
        return saved

    # Job management

    def start_run(
        self,
        config: ScrapingConfiguration,
        user_id: Optional[int] = None,
        config_id: Optional[int] = None,
    ) -> ScrapingJob:
        """Validate config and schedule a run in the background"""
        self.validate_configuration(config)

        now = datetime.now()
        job = ScrapingJob(
            id=str(uuid.uuid4()),
            user_id=user_id,
            config_id=config_id,
            config=config,
            status=ScrapingStatus.PENDING,
            created_at=now,
            updated_at=now,
        )

        self.active_jobs[job.id] = job
        self._cancel_events[job.id] = asyncio.Event()
        self._tasks[job.id] = asyncio.create_task(self._execute_job(job))

        logger.info(f"Started scraping job {job.id} for user {user_id}")
        return job

    def _set_state(self, job: ScrapingJob, state: RunState):
        job.state = state
        job.updated_at = datetime.now()

    async def _execute_job(self, job: ScrapingJob):
        """Execute a scraping job"""
        cancel_event = self._cancel_events[job.id]

        try:
            async with self._job_slots:
                if cancel_event.is_set():
                    job.status = ScrapingStatus.CANCELLED
                    return

                job.status = ScrapingStatus.RUNNING
                job.started_at = datetime.now()
                job.updated_at = datetime.now()
                logger.info(f"Executing scraping job {job.id}")

                run = await self.run(
                    job.config,
                    user_id=job.user_id,
                    config_id=job.config_id,
                    cancel_event=cancel_event,
                    on_state=lambda state: self._set_state(job, state),
                )

                job.summary = run.summary
                job.leads = run.leads
                job.errors = [f"{error.source}: {error.message}" for error in run.summary.errors]
                if run.state == RunState.FAILED:
                    job.status = ScrapingStatus.FAILED
                elif run.summary.cancelled:
                    job.status = ScrapingStatus.CANCELLED
                else:
                    job.status = ScrapingStatus.COMPLETED

                logger.info(f"Scraping job {job.id} finished as {job.status.value}: {len(run.leads)} leads")

        except ConfigurationError as e:
            job.status = ScrapingStatus.FAILED
            job.state = RunState.FAILED
            job.errors.append(str(e))
            logger.error(f"Scraping job {job.id} rejected: {e}")

        except Exception as e:
            job.status = ScrapingStatus.FAILED
            job.state = RunState.FAILED
            job.errors.append(f"Job execution failed: {e}")
            logger.error(f"Scraping job {job.id} failed: {e}")

        finally:
            job.completed_at = datetime.now()
            job.updated_at = job.completed_at
            self._tasks.pop(job.id, None)
            if self.cache:
                self.cache.cache_scraping_run(job.id, job.model_dump(mode="json", exclude={"leads"}))

    async def wait_for_job(self, job_id: str):
        """Wait until a background job has finished"""
        task = self._tasks.get(job_id)
        if task:
            await asyncio.shield(task)

    def get_job(self, job_id: str) -> Optional[ScrapingJob]:
        """Get a tracked job, falling back to its cached snapshot"""
        job = self.active_jobs.get(job_id)
        if job or not self.cache:
            return job

        snapshot = self.cache.get_cached_scraping_run(job_id)
        return ScrapingJob.model_validate(snapshot) if snapshot else None

    def list_jobs(self, user_id: Optional[int] = None) -> List[ScrapingJob]:
        """Tracked jobs, newest first, optionally filtered by user"""
        jobs = list(self.active_jobs.values())
        if user_id is not None:
            jobs = [job for job in jobs if job.user_id == user_id]
        return sorted(jobs, key=lambda job: job.created_at, reverse=True)

    def cancel_job(self, job_id: str) -> bool:
        """Stop issuing new work for a job; in-flight fetches finish normally"""
        job = self.active_jobs.get(job_id)
        if not job or job.status in FINISHED_STATUSES:
            return False

        self._cancel_events[job_id].set()
        job.updated_at = datetime.now()
        logger.info(f"Cancellation requested for scraping job {job_id}")
        return True

    def get_stats(self) -> Dict[str, object]:
        """Get overall scraping statistics"""
        jobs = list(self.active_jobs.values())
        stats = {
            "active_jobs": sum(1 for job in jobs if job.status not in FINISHED_STATUSES),
            "jobs_by_status": {},
            "total_leads_found": 0,
            "total_leads_verified": 0,
            "sources": sorted(self.sources),
            "request_shaper": self.shaper.get_stats(),
            "extraction": self.extraction.get_stats(),
            "verification": self.verification.get_stats(),
        }

        for job in jobs:
            status = job.status.value
            stats["jobs_by_status"][status] = stats["jobs_by_status"].get(status, 0) + 1
            stats["total_leads_found"] += len(job.leads)
            if job.summary:
                stats["total_leads_verified"] += job.summary.verified

        return stats

    def describe_sources(self) -> List[Dict[str, object]]:
        return [
            {
                "id": source_id,
                "name": source.display_name,
                "configured": source.is_configured(),
            }
            for source_id, source in self.sources.items()
        ]

    async def close(self):
        """Cancel running jobs and release the shared HTTP session"""
        for event in self._cancel_events.values():
            event.set()
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        if self._http_session:
            await self._http_session.close()
            self._http_session = None


def build_scraping_manager(
    repository: Optional[LeadStore] = None,
    cache_manager: Optional[CacheManager] = None,
) -> ScrapingManager:
    """Wire a manager from settings; call from inside a running event loop"""
    session = aiohttp.ClientSession(connector=aiohttp.TCPConnector(limit=20, limit_per_host=5))
    shaper = RequestShaper()
    fetcher = ContentFetcher(shaper, session=session)

    ai_extractor = None
    provider = OpenAICompletionProvider()
    if provider.enabled():
        ai_extractor = AIFieldExtractor(provider, cache=AIExtractionCache(cache_manager))
    else:
        logger.info("AI extraction disabled: no completion API key configured")

    manager = ScrapingManager(
        sources=build_sources(session, SOURCE_REGISTRY),
        fetcher=fetcher,
        extraction=ExtractionEngine(ai_extractor),
        verification=LeadVerificationEngine(),
        repository=repository,
        cache_manager=cache_manager,
        http_session=session,
    )

    logger.info(f"Scraping manager ready with sources: {', '.join(manager.sources)}")
    return manager
