# hugin/crawler/extractor.py
"""Page renderer/extractor: one URL in, one :class:`PageExtract` (or ``None``) out."""
from __future__ import annotations

from typing import Optional

from hugin.crawler.fetcher import Renderer
from hugin.crawler.models import PageExtract
from hugin.logger import get_logger
from hugin.parser.directives import DEFAULT_AGENT
from hugin.parser.html_parser import extract_page

logger = get_logger("extractor")


class PageExtractor:
    """Drives a :class:`Renderer` and the HTML extraction for single URLs."""

    def __init__(self, renderer: Renderer, agent: str = DEFAULT_AGENT) -> None:
        self.renderer = renderer
        self.agent = agent

    async def start(self) -> None:
        await self.renderer.start()

    async def close(self) -> None:
        await self.renderer.close()

    async def fetch_and_parse(self, url: str) -> Optional[PageExtract]:
        """
        Render *url* and extract its indexable data.

        Returns ``None`` when the page cannot be rendered, answers with an
        error status, or asserts ``noindex``.
        """
        try:
            rendered = await self.renderer.render(url)
            if rendered.status is not None and rendered.status >= 400:
                logger.debug("Skipping %s (HTTP %s)", url, rendered.status)
                return None
            return extract_page(rendered, self.agent)
        except Exception as e:
            logger.warning("Failed to fetch %s: %s", url, e)
            return None


__all__ = ["PageExtractor"]
