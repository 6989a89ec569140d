# hugin/crawler/crawler.py
"""
Crawl orchestrator: breadth-first traversal of one site, bounded by depth and
a page ceiling, with robots compliance, domain admission and job lifecycle
bookkeeping.

Only the persisted crawl job reports progress; :meth:`CrawlOrchestrator.crawl`
never raises to its caller.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterable, Optional
from urllib.parse import urljoin

from hugin.crawler.domains import DomainPolicy
from hugin.crawler.extractor import PageExtractor
from hugin.crawler.frontier import Frontier, VisitedSet
from hugin.crawler.link_extractor import hostname_of, is_http_url, normalize_url, origin_of
from hugin.crawler.models import InvalidTransition, JobStatus, PageExtract, utcnow_iso
from hugin.crawler.robots import ComplianceEngine
from hugin.logger import get_logger
from hugin.storage.base import StorageError
from hugin.storage.repository import JobRepository, PageRepository

__all__ = ("CrawlOrchestrator",)

logger = get_logger("crawler")

SleepFn = Callable[[float], Awaitable[None]]


class CrawlOrchestrator:
    """Runs crawl jobs. One instance serves many concurrent crawls.

    The visited-set and the compliance engine are shared by every crawl of
    this instance; each crawl owns its own frontier.
    """

    def __init__(
        self,
        extractor: PageExtractor,
        compliance: ComplianceEngine,
        pages: PageRepository,
        jobs: JobRepository,
        *,
        visited: Optional[VisitedSet] = None,
        domain_policy: Optional[DomainPolicy] = None,
        max_pages: int = 100,
        default_delay: float = 1.0,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.extractor = extractor
        self.compliance = compliance
        self.pages = pages
        self.jobs = jobs
        self.visited = visited if visited is not None else VisitedSet()
        self.domain_policy = domain_policy or DomainPolicy()
        self.max_pages = max_pages
        self.default_delay = default_delay
        self._sleep = sleep

    async def crawl(self, seed_url: str, max_depth: int, job_id: str) -> None:
        """Crawl from *seed_url* down to *max_depth* and record the outcome on job *job_id*."""
        try:
            seed = normalize_url(seed_url)
            base_host = hostname_of(seed)
            # running first: a renderer that cannot start fails the job
            await self._update_job(job_id, JobStatus.RUNNING, started_at=utcnow_iso())
            await self.extractor.start()
            logger.info("Crawl %s started: %s (max depth %d)", job_id, seed, max_depth)

            frontier = Frontier()
            frontier.push(seed, 0)
            await self._seed_from_sitemaps(seed, base_host, frontier)

            delay = max(self.default_delay, await self.compliance.crawl_delay(seed))
            processed = 0

            while frontier and processed < self.max_pages:
                entry = frontier.pop()
                if entry.url in self.visited or entry.depth > max_depth:
                    continue
                if not await self.compliance.is_allowed(entry.url):
                    logger.debug("Skipping %s (disallowed by robots.txt)", entry.url)
                    continue
                try:
                    extract = await self.extractor.fetch_and_parse(entry.url)
                    if extract is None:
                        logger.debug("No indexable page at %s", entry.url)
                    elif await self._persist(extract, entry.url, job_id):
                        self.visited.add(entry.url)
                        processed += 1
                        logger.debug("Crawled: %s (depth: %d, pages: %d)", entry.url, entry.depth, processed)
                        if entry.depth < max_depth and not extract.nofollow:
                            self._enqueue_links(extract.links, entry.url, entry.depth + 1, base_host, frontier)
                except Exception as e:
                    logger.error("Error crawling %s: %s", entry.url, e)
                finally:
                    await self._sleep(delay)

            await self._update_job(
                job_id,
                JobStatus.COMPLETED,
                completed_at=utcnow_iso(),
                pages_processed=processed,
            )
            logger.info("Crawl %s completed: %d pages", job_id, processed)
        except asyncio.CancelledError:
            logger.warning("Crawl job %s cancelled", job_id)
            await self._update_job(job_id, JobStatus.FAILED, error="cancelled", failed_at=utcnow_iso())
            raise
        except Exception as e:
            logger.error("Crawl job %s error: %s", job_id, e)
            await self._update_job(job_id, JobStatus.FAILED, error=str(e) or type(e).__name__, failed_at=utcnow_iso())

    # ------------------------------------------------------------------ #
    # Admission                                                          #
    # ------------------------------------------------------------------ #

    def admit(self, url: str, base_host: Optional[str]) -> Optional[str]:
        """Normalized *url* if it may join this crawl's frontier, else ``None``."""
        try:
            normalized = normalize_url(url)
            host = hostname_of(normalized)
        except ValueError:
            return None
        if not is_http_url(normalized) or host != base_host:
            return None
        if not self.domain_policy.is_allowed(host):
            return None
        if normalized in self.visited:
            return None
        return normalized

    def _enqueue_links(
        self,
        links: Iterable[str],
        page_url: str,
        depth: int,
        base_host: Optional[str],
        frontier: Frontier,
    ) -> None:
        for link in links:
            try:
                absolute = urljoin(page_url, link)
            except ValueError:
                logger.debug("Skipping invalid URL: %s", link)
                continue
            admitted = self.admit(absolute, base_host)
            if admitted is not None:
                frontier.push(admitted, depth)

    async def _seed_from_sitemaps(self, seed: str, base_host: Optional[str], frontier: Frontier) -> None:
        try:
            sitemap_urls = await self.compliance.sitemap_urls(origin_of(seed))
        except Exception as e:
            logger.debug("Sitemap not available for %s: %s", seed, e)
            return
        if sitemap_urls:
            logger.debug("Found %d URLs in sitemap of %s", len(sitemap_urls), seed)
        for url in sitemap_urls:
            admitted = self.admit(url, base_host)
            if admitted is not None:
                frontier.push(admitted, 1)

    # ------------------------------------------------------------------ #
    # Persistence                                                        #
    # ------------------------------------------------------------------ #

    async def _persist(self, extract: PageExtract, url: str, job_id: str) -> bool:
        extract.url = url
        try:
            await self.pages.save(extract, job_id)
        except StorageError as e:
            logger.error("Error saving page %s: %s", url, e)
            return False
        return True

    async def _update_job(self, job_id: str, status: JobStatus, **updates) -> None:
        try:
            await self.jobs.transition(job_id, status, **updates)
        except (StorageError, InvalidTransition) as e:
            logger.error("Error updating crawl job %s: %s", job_id, e)
