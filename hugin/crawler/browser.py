# hugin/crawler/browser.py
"""
Headless-browser renderer built on Playwright.

The browser is a shared, lazily started resource: the first render in the
process launches Chromium and later renders reuse it. Every render opens its
own page (tab) and closes it in ``finally``, whatever happens during
navigation or extraction.
"""
from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, List, Optional, Sequence

from hugin.crawler.fetcher import RenderError
from hugin.crawler.models import RenderedPage, merge_headers
from hugin.logger import get_logger

if TYPE_CHECKING:
    from playwright.async_api import Browser, Playwright

logger = get_logger("renderer")

LAUNCH_ARGS: Sequence[str] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
)

_COLLECT_LINKS_JS = """
(anchors) => anchors
    .map(a => a.href)
    .filter(href => href && !href.startsWith('#') && !href.startsWith('javascript:'))
"""


class PlaywrightRenderer:
    """Renders pages in headless Chromium and waits for client-side content."""

    def __init__(
        self,
        user_agent: str = "Hugin-Webcrawler/0.0.1",
        *,
        navigation_timeout: float = 30.0,
        settle_delay: float = 3.0,
        headless: bool = True,
    ) -> None:
        self.user_agent = user_agent
        self.navigation_timeout = navigation_timeout
        self.settle_delay = settle_delay
        self.headless = headless
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._start_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config) -> PlaywrightRenderer:
        return cls(
            config.user_agent,
            navigation_timeout=config.navigation_timeout,
            settle_delay=config.settle_delay,
        )

    @property
    def started(self) -> bool:
        return self._browser is not None

    async def start(self) -> None:
        """Launch the shared browser once; concurrent callers wait for the same launch."""
        if self._browser is not None:
            return
        async with self._start_lock:
            if self._browser is not None:
                return
            from playwright.async_api import async_playwright

            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless, args=list(LAUNCH_ARGS)
            )
            logger.info("Headless browser started")

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def render(self, url: str) -> RenderedPage:
        await self.start()
        assert self._browser is not None
        page = await self._browser.new_page(user_agent=self.user_agent)
        try:
            response = await page.goto(
                url, wait_until="networkidle", timeout=self.navigation_timeout * 1000
            )
            raw = await response.headers_array() if response is not None else []
            headers = merge_headers((h["name"], h["value"]) for h in raw)
            status = response.status if response is not None else None
            if self.settle_delay:
                await page.wait_for_timeout(self.settle_delay * 1000)
            links: List[str] = await page.eval_on_selector_all("a[href]", _COLLECT_LINKS_JS)
            html = await page.content()
        except Exception as e:
            raise RenderError(f"Failed to render {url}: {e}") from e
        finally:
            await page.close()
        return RenderedPage(url=url, html=html, links=links, headers=headers, status=status)


__all__ = ["PlaywrightRenderer", "LAUNCH_ARGS"]
