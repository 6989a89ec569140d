# === FILE: hugin/parser/html_parser.py ===
"""HTML extraction for Hugin.

Turns a :class:`~hugin.crawler.models.RenderedPage` into the indexable
:class:`~hugin.crawler.models.PageExtract`.

Order matters here:

* metadata (title, description, keywords, author, copyright, content type)
  and the meta-robots value are read from the untouched markup;
* only then is page chrome (navigation, headers and footers, scripts, menus,
  spinners, hidden and ``data-nosnippet`` elements) removed;
* the indexable text is taken from the best main-content container, falling
  back to ``<body>``.

Robots directives from the ``X-Robots-Tag`` header and the meta tag are
combined with a logical OR.
"""
from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

from hugin.crawler.link_extractor import hostname_of
from hugin.crawler.models import PageExtract, RenderedPage
from hugin.logger import get_logger
from hugin.parser.directives import DEFAULT_AGENT, parse_meta_robots, parse_robots_header

__all__: Sequence[str] = ("extract_page", "read_meta", "main_text")

logger = get_logger("extractor")

_WHITESPACE_RE = re.compile(r"\s+")

#: elements that never carry indexable text
_CHROME_SELECTORS: Sequence[str] = (
    "script, style, noscript",
    "nav, header, footer, aside",
    '[role="navigation"], [role="banner"], [role="contentinfo"]',
    '[class*="nav"], [class*="menu"], [class*="sidebar"]',
    '[class*="header"], [class*="footer"]',
    'button, [type="button"], [type="submit"]',
    '.loading, .spinner, [class*="loading"]',
    '[aria-hidden="true"]',
    "[data-nosnippet]",
)

_MAIN_SELECTOR = 'main, article, [role="main"], .content, .post, .article'


def read_meta(soup: BeautifulSoup, name: str, attr: str = "name") -> str:
    """Value of the first ``<meta {attr}="{name}">`` (case-insensitive), or ``""``."""
    tag = soup.find("meta", attrs={attr: re.compile(f"^{re.escape(name)}$", re.IGNORECASE)})
    if isinstance(tag, Tag):
        value = tag.get("content")
        if isinstance(value, str):
            return value.strip()
    return ""


def _strip_chrome(soup: BeautifulSoup) -> None:
    for selector in _CHROME_SELECTORS:
        for element in soup.select(selector):
            if not element.decomposed:
                element.decompose()


def _normalize_ws(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def main_text(soup: BeautifulSoup) -> str:
    """Whitespace-normalized text of the main content container."""
    container: Optional[Tag] = soup.select_one(_MAIN_SELECTOR)
    if container is None:
        container = soup.body if soup.body is not None else soup
    return _normalize_ws(container.get_text(" "))


def extract_page(rendered: RenderedPage, agent: str = DEFAULT_AGENT) -> Optional[PageExtract]:
    """Extract indexable data from *rendered*.

    Returns ``None`` when either directive source asserts ``noindex``;
    agent-scoped ``X-Robots-Tag`` entries count only when they name *agent*.
    """
    header_directives = parse_robots_header(rendered.header("X-Robots-Tag"), agent)
    if header_directives.noindex:
        logger.debug("Skipping %s (X-Robots-Tag: noindex)", rendered.url)
        return None

    soup = BeautifulSoup(rendered.html, "html.parser")

    title_tag = soup.find("title")
    title = _normalize_ws(title_tag.get_text()) if title_tag else ""
    description = read_meta(soup, "description")
    keywords = read_meta(soup, "keywords")
    author = read_meta(soup, "author")
    copyright_ = read_meta(soup, "copyright")
    content_type = read_meta(soup, "Content-Type", attr="http-equiv") or read_meta(soup, "content-type")

    directives = parse_meta_robots(read_meta(soup, "robots")) | header_directives
    if directives.noindex:
        logger.debug("Skipping %s (meta robots noindex)", rendered.url)
        return None

    _strip_chrome(soup)
    content = main_text(soup)

    return PageExtract(
        url=rendered.url,
        domain=hostname_of(rendered.url) or "",
        title=title,
        meta_description="" if directives.nosnippet else description,
        meta_keywords=keywords,
        meta_author=author,
        meta_copyright=copyright_,
        meta_content_type=content_type,
        content=content,
        links=[] if directives.nofollow else list(rendered.links),
        nofollow=directives.nofollow,
        nosnippet=directives.nosnippet,
    )
