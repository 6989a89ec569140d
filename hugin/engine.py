# File: hugin/engine.py
"""hugin.engine: фасад, связывающий хранилище, краулер и поиск.

One :class:`Engine` per process: it owns the shared visited-set, the shared
robots cache and the shared renderer, and hands them to every crawl it
starts.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import List, Optional, Set

from hugin.config import HuginConfig, StorageConfig, load_config
from hugin.crawler.browser import PlaywrightRenderer
from hugin.crawler.crawler import CrawlOrchestrator
from hugin.crawler.domains import DomainPolicy
from hugin.crawler.extractor import PageExtractor
from hugin.crawler.fetcher import HttpRenderer, Renderer
from hugin.crawler.frontier import VisitedSet
from hugin.crawler.link_extractor import hostname_of, is_http_url
from hugin.crawler.models import CrawlJob, Page
from hugin.crawler.robots import ComplianceEngine
from hugin.logger import get_logger
from hugin.search.engine import SearchEngine, SearchResponse
from hugin.storage.base import DocumentStore
from hugin.storage.couchdb import CouchDBStore
from hugin.storage.memory import MemoryDocumentStore
from hugin.storage.repository import JobRepository, PageRepository

__all__ = ["Engine", "build_store", "build_renderer", "new_crawl_id"]

logger = get_logger("engine")


def build_store(storage: StorageConfig) -> DocumentStore:
    """Создаёт хранилище по конфигурации."""
    if storage.backend == "memory":
        return MemoryDocumentStore()
    return CouchDBStore.from_config(storage)


def build_renderer(config: HuginConfig) -> Renderer:
    """Создаёт рендерер страниц по конфигурации."""
    if config.renderer == "http":
        return HttpRenderer.from_config(config)
    return PlaywrightRenderer.from_config(config)


def new_crawl_id(prefix: Optional[str] = None) -> str:
    stamp = int(time.time() * 1000)
    suffix = uuid.uuid4().hex[:9]
    return f"{prefix}_{stamp}_{suffix}" if prefix else f"{stamp}_{suffix}"


class Engine:
    """Фасад для CLI и тестов: запуск обходов, статус задач и поиск."""

    @staticmethod
    def load_config(path: Optional[str]) -> HuginConfig:
        """Загружает конфиг из YAML/JSON."""
        return load_config(path)

    def __init__(
        self,
        config: HuginConfig,
        *,
        store: Optional[DocumentStore] = None,
        renderer: Optional[Renderer] = None,
        compliance: Optional[ComplianceEngine] = None,
        visited: Optional[VisitedSet] = None,
        sleep=asyncio.sleep,
    ) -> None:
        """Инициализирует Engine и общие для всех обходов компоненты."""
        self.config = config
        self.store = store if store is not None else build_store(config.storage)
        self.renderer = renderer if renderer is not None else build_renderer(config)
        self.compliance = compliance if compliance is not None else ComplianceEngine.from_config(config)
        self.visited = visited if visited is not None else VisitedSet(config.visited_limit)
        self.domain_policy = DomainPolicy.from_config(config)
        self.pages = PageRepository(self.store)
        self.jobs = JobRepository(self.store)
        self.orchestrator = CrawlOrchestrator(
            PageExtractor(self.renderer, config.robots_agent),
            self.compliance,
            self.pages,
            self.jobs,
            visited=self.visited,
            domain_policy=self.domain_policy,
            max_pages=config.max_pages,
            default_delay=config.default_delay,
            sleep=sleep,
        )
        self.search_engine = SearchEngine(self.store, config.search_candidate_limit)
        self._tasks: Set[asyncio.Task] = set()
        self._sleep = sleep

    async def __aenter__(self) -> Engine:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def start(self) -> None:
        await self.store.ensure_indexes()

    async def close(self) -> None:
        """Останавливает незавершённые обходы и освобождает ресурсы.

        Отменённые обходы записываются как ``failed`` с ошибкой ``cancelled``.
        """
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self.renderer.close()
        await self.compliance.close()
        await self.store.close()

    # ------------------------------------------------------------------ #
    # Crawling                                                           #
    # ------------------------------------------------------------------ #

    async def submit(
        self,
        url: str,
        max_depth: Optional[int] = None,
        submitted_by: str = "anonymous",
        *,
        crawl_id: Optional[str] = None,
    ) -> str:
        """Создаёт задачу в статусе pending и запускает обход в фоне.

        Returns the crawl id; the caller never waits for the crawl itself.
        """
        if not url or not is_http_url(url):
            raise ValueError(f"Invalid URL format: {url!r}")
        if not self.domain_policy.is_allowed(hostname_of(url)):
            raise ValueError(f"Domain not allowed for crawling: {hostname_of(url)}")
        depth = self.config.default_max_depth if max_depth is None else max_depth
        if depth < 0:
            raise ValueError("max_depth must be >= 0")

        job = CrawlJob(
            crawl_id=crawl_id or new_crawl_id(),
            url=url,
            max_depth=depth,
            submitted_by=submitted_by,
        )
        await self.jobs.create(job)

        task = asyncio.create_task(self.orchestrator.crawl(url, depth, job.crawl_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("Crawl job %s submitted for %s (max depth %d)", job.crawl_id, url, depth)
        return job.crawl_id

    async def wait_for_jobs(self) -> None:
        """Ждёт завершения всех запущенных этим Engine обходов."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def running_jobs(self) -> int:
        return len(self._tasks)

    async def job_status(self, crawl_id: str) -> CrawlJob:
        return await self.jobs.get(crawl_id)

    async def list_jobs(self, submitted_by: str, limit: int = 50) -> List[CrawlJob]:
        return await self.jobs.list_for_user(submitted_by, limit=limit)

    async def get_page(self, url: str) -> Optional[Page]:
        return await self.pages.find_by_url(url)

    async def recrawl_known_sites(self, submitted_by: str = "scheduler") -> List[str]:
        """Запускает повторный обход каждого известного сайта (один проход)."""
        origins = await self.pages.known_origins()
        logger.info("Starting scheduled recrawl of %d sites", len(origins))
        crawl_ids: List[str] = []
        for index, origin in enumerate(origins):
            if index and self.config.recrawl_stagger:
                await self._sleep(self.config.recrawl_stagger)
            try:
                crawl_ids.append(
                    await self.submit(origin, submitted_by=submitted_by, crawl_id=new_crawl_id("scheduled"))
                )
            except ValueError as e:
                logger.warning("Scheduled recrawl skipped for %s: %s", origin, e)
        logger.info("Scheduled recrawls initiated")
        return crawl_ids

    # ------------------------------------------------------------------ #
    # Search                                                             #
    # ------------------------------------------------------------------ #

    async def search(
        self,
        query: str,
        domain: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> SearchResponse:
        if not query or not query.strip():
            raise ValueError("Search query is required")
        if limit < 0 or offset < 0:
            raise ValueError("limit and offset must be >= 0")
        return await self.search_engine.search(query, domain=domain, limit=limit, offset=offset)
