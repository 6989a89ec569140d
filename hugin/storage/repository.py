# hugin/storage/repository.py
"""Typed access to page and crawl-job documents."""
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from hugin.crawler.link_extractor import normalize_url, origin_of
from hugin.crawler.models import (
    JOB_TYPE,
    PAGE_TYPE,
    CrawlJob,
    InvalidTransition,
    JobStatus,
    Page,
    PageExtract,
    job_doc_id,
)
from hugin.logger import get_logger
from hugin.storage.base import DocumentStore

__all__ = ["PageRepository", "JobRepository"]

logger = get_logger("storage")


class PageRepository:
    """Pages are addressed by a generated id and looked up by normalized URL."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def find_by_url(self, url: str) -> Optional[Page]:
        docs = await self.store.find({"type": PAGE_TYPE, "url": normalize_url(url)}, limit=1)
        return Page.from_doc(docs[0]) if docs else None

    async def save(self, extract: PageExtract, crawl_id: Optional[str]) -> Page:
        """Insert *extract* or update the page already stored under its URL.

        The previous ``_id`` and ``_rev`` are kept on update, so a URL never
        ends up with two documents.
        """
        page = Page.from_extract(extract, crawl_id)
        page.url = normalize_url(page.url)
        existing = await self.find_by_url(page.url)
        if existing is not None:
            page.doc_id = existing.doc_id
            page.rev = existing.rev
        else:
            page.doc_id = f"page:{uuid.uuid4()}"
        result = await self.store.insert(page.to_doc())
        page.rev = result.get("rev", page.rev)
        return page

    async def known_origins(self, limit: int = 10_000) -> List[str]:
        """Distinct ``scheme://host`` origins of stored pages, in storage order."""
        docs = await self.store.find({"type": PAGE_TYPE}, fields=["url"], limit=limit)
        origins: Dict[str, None] = {}
        for doc in docs:
            url = doc.get("url")
            if not url:
                continue
            try:
                origins.setdefault(origin_of(url), None)
            except ValueError:
                continue
        return list(origins)


class JobRepository:
    """Crawl jobs live under ``crawl_<crawl_id>``."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def create(self, job: CrawlJob) -> CrawlJob:
        result = await self.store.insert(job.to_doc())
        job.rev = result.get("rev")
        return job

    async def get(self, crawl_id: str) -> CrawlJob:
        return CrawlJob.from_doc(await self.store.get(job_doc_id(crawl_id)))

    async def transition(self, crawl_id: str, status: JobStatus, **updates: Any) -> CrawlJob:
        """Move a job to *status* and apply *updates* (snake_case job fields).

        Raises :class:`InvalidTransition` when the lifecycle would skip or
        reverse a step.
        """
        job = await self.get(crawl_id)
        if not job.can_transition(status):
            raise InvalidTransition(crawl_id, job.status, status)
        job.status = status
        for name, value in updates.items():
            setattr(job, name, value)
        result = await self.store.insert(job.to_doc())
        job.rev = result.get("rev")
        return job

    async def list_for_user(self, submitted_by: str, limit: int = 50) -> List[CrawlJob]:
        docs = await self.store.find(
            {"type": JOB_TYPE, "submittedBy": submitted_by},
            sort=[{"submittedAt": "desc"}],
            limit=limit,
        )
        return [CrawlJob.from_doc(doc) for doc in docs]
