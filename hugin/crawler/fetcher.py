# hugin/crawler/fetcher.py
"""
Fetcher module: the rendering contract and its plain-HTTP implementation.

:class:`HttpRenderer` does not execute page scripts; it returns the markup as
served plus the anchors found in it. It is used for local runs and for
integration tests against simple servers. Production crawls use
:class:`hugin.crawler.browser.PlaywrightRenderer`.
"""
from __future__ import annotations

import asyncio
from typing import Optional, Protocol, Sequence, runtime_checkable

from aiohttp import ClientError, ClientSession, ClientTimeout

from hugin.crawler.link_extractor import extract_links
from hugin.crawler.models import RenderedPage, merge_headers
from hugin.logger import get_logger

logger = get_logger("renderer")

RETRY_STATUS: Sequence[int] = tuple(range(500, 600)) + (429,)


class RenderError(Exception):
    """A URL could not be rendered."""


@runtime_checkable
class Renderer(Protocol):
    """Anything that can turn a URL into a :class:`RenderedPage`."""

    async def start(self) -> None: ...

    async def render(self, url: str) -> RenderedPage: ...

    async def close(self) -> None: ...


class HttpRenderer:
    """Renders pages with a single HTTP GET, with retry/backoff on 5xx and 429."""

    def __init__(
        self,
        user_agent: str = "Hugin-Webcrawler/0.0.1",
        *,
        timeout: float = 30.0,
        retry_times: int = 2,
        retry_status: Sequence[int] = RETRY_STATUS,
        session: Optional[ClientSession] = None,
    ) -> None:
        self.user_agent = user_agent
        self.timeout = timeout
        self.retry_times = retry_times
        self._retry_status = retry_status
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, config) -> HttpRenderer:
        return cls(config.user_agent, timeout=config.navigation_timeout, retry_times=config.retry_times)

    async def start(self) -> None:
        if self._session is None or self._session.closed:
            self._session = ClientSession(
                timeout=ClientTimeout(total=self.timeout),
                headers={"User-Agent": self.user_agent},
                raise_for_status=False,
            )
            self._owns_session = True

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def render(self, url: str) -> RenderedPage:
        """
        Fetch *url* and return its markup and links.

        Raises :class:`RenderError` when the page cannot be obtained.
        """
        await self.start()
        assert self._session is not None
        attempts = 0
        while True:
            try:
                async with self._session.get(url) as resp:
                    if resp.status in self._retry_status:
                        raise ClientError(f"Retryable status {resp.status}")
                    mime = resp.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
                    if mime and "html" not in mime:
                        raise RenderError(f"Not an HTML document: {mime}")
                    html = await resp.text(errors="replace")
                    final_url = str(resp.url)
                    return RenderedPage(
                        url=url,
                        html=html,
                        links=extract_links(html, final_url),
                        headers=merge_headers(resp.headers.items()),
                        status=resp.status,
                    )
            except asyncio.TimeoutError as e:
                # no retry on timeout
                raise RenderError(f"Timeout fetching {url}") from e
            except ClientError as e:
                attempts += 1
                if attempts > self.retry_times:
                    raise RenderError(f"Failed {url}: {e}") from e
                backoff = min(2**attempts, 60)
                logger.debug("Retry %d/%d for %s after %.2f s", attempts, self.retry_times, url, backoff)
                await asyncio.sleep(backoff)


__all__ = ["Renderer", "RenderError", "HttpRenderer", "RETRY_STATUS"]
