# hugin/crawler/robots.py
"""
Compliance engine: cached robots.txt rules, crawl delays and sitemap URLs
per origin.

A robots.txt that cannot be fetched (404, any other status, network error,
timeout) resolves to the permissive default: everything allowed, no delay,
no declared sitemaps.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from aiohttp import ClientSession, ClientTimeout

from hugin.crawler.link_extractor import origin_of
from hugin.logger import get_logger
from hugin.parser.robots_parser import RobotsTxtRules
from hugin.parser.sitemap_parser import parse_sitemap

__all__ = ("RobotsRecord", "RobotsCache", "ComplianceEngine")

logger = get_logger("compliance")


@dataclass(slots=True)
class RobotsRecord:
    """Parsed robots.txt of one origin and the moment it was fetched."""

    origin: str
    rules: RobotsTxtRules
    fetched_at: float
    found: bool = False

    @property
    def sitemaps(self) -> List[str]:
        return list(self.rules.sitemaps)


@dataclass
class RobotsCache:
    """Read-through cache of :class:`RobotsRecord` keyed by origin.

    Entries older than *ttl* seconds are ignored on lookup. Once the cache
    holds more than *max_size* origins, expired entries are swept.
    """

    ttl: float = 24 * 60 * 60
    max_size: int = 10_000
    clock: Callable[[], float] = time.monotonic
    _records: Dict[str, RobotsRecord] = field(default_factory=dict)

    def get(self, origin: str) -> Optional[RobotsRecord]:
        record = self._records.get(origin)
        if record is None:
            return None
        if self.clock() - record.fetched_at >= self.ttl:
            return None
        return record

    def put(self, record: RobotsRecord) -> None:
        self._records[record.origin] = record
        if len(self._records) > self.max_size:
            self.sweep()

    def sweep(self) -> int:
        now = self.clock()
        expired = [o for o, r in self._records.items() if now - r.fetched_at >= self.ttl]
        for origin in expired:
            del self._records[origin]
        return len(expired)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, origin: str) -> bool:
        return self.get(origin) is not None


class ComplianceEngine:
    """Answers admission, delay and sitemap questions for any URL.

    One instance is shared by all crawls of a process so that robots.txt of
    an origin is fetched once per TTL. Concurrent first lookups of the same
    origin may fetch it more than once; the last result wins.
    """

    def __init__(
        self,
        user_agent: str = "Hugin-Webcrawler",
        *,
        http_user_agent: Optional[str] = None,
        robots_timeout: float = 5.0,
        sitemap_timeout: float = 10.0,
        cache: Optional[RobotsCache] = None,
        session: Optional[ClientSession] = None,
    ) -> None:
        self.user_agent = user_agent
        self.http_user_agent = http_user_agent or user_agent
        self.robots_timeout = robots_timeout
        self.sitemap_timeout = sitemap_timeout
        self.cache = cache if cache is not None else RobotsCache()
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, config, session: Optional[ClientSession] = None) -> ComplianceEngine:
        cache = RobotsCache(ttl=config.robots_cache_ttl, max_size=config.robots_cache_size)
        return cls(
            config.robots_agent,
            http_user_agent=config.user_agent,
            robots_timeout=config.robots_timeout,
            sitemap_timeout=config.sitemap_timeout,
            cache=cache,
            session=session,
        )

    async def __aenter__(self) -> ComplianceEngine:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> ClientSession:
        if self._session is None or self._session.closed:
            self._session = ClientSession(headers={"User-Agent": self.http_user_agent})
            self._owns_session = True
        return self._session

    # ------------------------------------------------------------------ #
    # Public queries                                                     #
    # ------------------------------------------------------------------ #

    async def is_allowed(self, url: str) -> bool:
        try:
            record = await self.record_for(origin_of(url))
        except ValueError:
            return True
        return record.rules.can_fetch(self.user_agent, url)

    async def crawl_delay(self, url: str) -> float:
        try:
            record = await self.record_for(origin_of(url))
        except ValueError:
            return 0.0
        return float(record.rules.crawl_delay(self.user_agent) or 0.0)

    async def sitemap_urls(self, origin: str) -> List[str]:
        """URLs listed by the origin's sitemaps; ``[]`` on any failure."""
        record = await self.record_for(origin)
        sitemaps = record.sitemaps or [f"{origin}/sitemap.xml"]
        urls: List[str] = []
        for sitemap_url in sitemaps:
            urls.extend(await self._fetch_sitemap(sitemap_url))
        return urls

    # ------------------------------------------------------------------ #
    # Fetching                                                           #
    # ------------------------------------------------------------------ #

    async def record_for(self, origin: str) -> RobotsRecord:
        record = self.cache.get(origin)
        if record is None:
            record = await self._fetch_record(origin)
            self.cache.put(record)
        return record

    async def _fetch_record(self, origin: str) -> RobotsRecord:
        robots_url = f"{origin}/robots.txt"
        rules = RobotsTxtRules.allow_all()
        found = False
        try:
            session = self._get_session()
            async with session.get(robots_url, timeout=ClientTimeout(total=self.robots_timeout)) as resp:
                if resp.status == 200:
                    rules = RobotsTxtRules(await resp.text(errors="replace"))
                    found = True
                else:
                    logger.debug("robots.txt %s -> HTTP %s", robots_url, resp.status)
        except Exception as e:
            logger.debug("Could not fetch robots.txt for %s: %s", origin, e)
        return RobotsRecord(origin=origin, rules=rules, fetched_at=self.cache.clock(), found=found)

    async def _fetch_sitemap(self, sitemap_url: str) -> List[str]:
        try:
            session = self._get_session()
            async with session.get(sitemap_url, timeout=ClientTimeout(total=self.sitemap_timeout)) as resp:
                if resp.status != 200:
                    return []
                body = await resp.read()
        except Exception as e:
            logger.debug("Could not fetch sitemap %s: %s", sitemap_url, e)
            return []
        return parse_sitemap(body)
