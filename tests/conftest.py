# File: tests/conftest.py
from __future__ import annotations

import contextlib
from typing import AsyncIterator, Dict, Iterable, List, Optional, Union
from urllib.parse import urljoin

import pytest
from aiohttp import web

from hugin.config import ENV_OVERRIDES, HuginConfig, StorageConfig
from hugin.crawler.domains import DomainPolicy
from hugin.crawler.extractor import PageExtractor
from hugin.crawler.crawler import CrawlOrchestrator
from hugin.crawler.fetcher import RenderError
from hugin.crawler.frontier import VisitedSet
from hugin.crawler.models import RenderedPage
from hugin.storage.memory import MemoryDocumentStore
from hugin.storage.repository import JobRepository, PageRepository

SITE = "http://site.ygg"


def html_page(title: str = "", body: str = "", links: Iterable[str] = (), head: str = "") -> str:
    """Small HTML document with the body text inside <main>."""
    anchors = "".join(f'<a href="{href}">{href}</a>' for href in links)
    return (
        f"<html><head><title>{title}</title>{head}</head>"
        f"<body><main><p>{body}</p>{anchors}</main></body></html>"
    )


def rendered(
    url: str,
    title: str = "",
    body: str = "",
    links: Iterable[str] = (),
    head: str = "",
    headers: Optional[Dict[str, str]] = None,
    status: int = 200,
) -> RenderedPage:
    """RenderedPage as a browser would return it: links already absolute."""
    links = list(links)
    return RenderedPage(
        url=url,
        html=html_page(title, body, links, head),
        links=[urljoin(url, href) for href in links],
        headers=headers or {},
        status=status,
    )


class FakeRenderer:
    """Serves canned pages keyed by URL; unknown URLs fail to render."""

    def __init__(self, pages: Optional[Dict[str, Union[RenderedPage, Exception]]] = None, fail_start: bool = False):
        self.pages = dict(pages or {})
        self.fail_start = fail_start
        self.rendered: List[str] = []
        self.started = 0
        self.closed = False

    def add(self, page: RenderedPage) -> None:
        self.pages[page.url] = page

    async def start(self) -> None:
        if self.fail_start:
            raise RenderError("browser unavailable")
        self.started += 1

    async def render(self, url: str) -> RenderedPage:
        self.rendered.append(url)
        page = self.pages.get(url)
        if page is None:
            raise RenderError(f"no such page: {url}")
        if isinstance(page, Exception):
            raise page
        return page

    async def close(self) -> None:
        self.closed = True


class FakeCompliance:
    """Compliance stand-in: explicit disallow list, fixed delay and sitemap."""

    def __init__(self, disallowed: Iterable[str] = (), sitemap: Iterable[str] = (), delay: float = 0.0):
        self.disallowed = set(disallowed)
        self.sitemap = list(sitemap)
        self.delay = delay
        self.sitemap_requests: List[str] = []
        self.closed = False

    async def is_allowed(self, url: str) -> bool:
        return url not in self.disallowed

    async def crawl_delay(self, url: str) -> float:
        return self.delay

    async def sitemap_urls(self, origin: str) -> List[str]:
        self.sitemap_requests.append(origin)
        return list(self.sitemap)

    async def close(self) -> None:
        self.closed = True


class SleepRecorder:
    """Replaces asyncio.sleep; records requested delays without waiting."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Deployment variables of the host must not leak into loaded configs."""
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture()
def pages(store) -> PageRepository:
    return PageRepository(store)


@pytest.fixture()
def jobs(store) -> JobRepository:
    return JobRepository(store)


@pytest.fixture()
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture()
def config() -> HuginConfig:
    """Config for in-process runs: no delays, memory store, local hosts allowed."""
    return HuginConfig(
        default_delay=0,
        renderer="http",
        allow_local_hosts=True,
        recrawl_stagger=0,
        settle_delay=0,
        storage=StorageConfig(backend="memory"),
    )


@pytest.fixture()
def make_orchestrator(pages, jobs, sleeper):
    """Factory: orchestrator over the shared memory store with fakes injected."""

    def factory(renderer, compliance=None, *, visited=None, **kwargs) -> CrawlOrchestrator:
        kwargs.setdefault("default_delay", 0.0)
        return CrawlOrchestrator(
            PageExtractor(renderer),
            compliance if compliance is not None else FakeCompliance(),
            pages,
            jobs,
            visited=visited if visited is not None else VisitedSet(),
            domain_policy=DomainPolicy(),
            sleep=sleeper,
            **kwargs,
        )

    return factory


@contextlib.asynccontextmanager
async def serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        await runner.cleanup()


def urlset(*urls: str) -> str:
    entries = "".join(f"<url><loc>{u}</loc></url>" for u in urls)
    return f'<?xml version="1.0"?><urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</urlset>'
