# hugin/crawler/link_extractor.py
"""
Link extraction and URL normalization utilities for Hugin.
"""
from __future__ import annotations

from typing import List, Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup
from bs4.element import Tag


def normalize_url(url: str) -> str:
    """
    Canonical form used for dedup, the visited-set and persistence.

    Strips trailing slashes from the path (the root path is forced to ``/``)
    and drops the fragment. Scheme, host and query are kept as given.
    """
    parts = urlsplit(url.strip())
    path = parts.path.rstrip("/") or "/"
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, ""))


def hostname_of(url: str) -> Optional[str]:
    """Lower-cased hostname of *url* or ``None`` when it has none."""
    try:
        return urlsplit(url).hostname
    except ValueError:
        return None


def origin_of(url: str) -> str:
    """``scheme://netloc`` part of *url*."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, "", "", ""))


def is_http_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)


def extract_links(html: str, base_url: str) -> List[str]:
    """
    Extract absolute anchor targets from static markup.

    Mirrors what a browser reports as ``a.href``: relative references are
    resolved against *base_url*; fragment-only, ``javascript:`` and
    ``mailto:`` targets are ignored. Order is document order, duplicates kept.
    """
    soup = BeautifulSoup(html, "html.parser")
    links: List[str] = []
    for tag in soup.find_all("a", href=True):
        if not isinstance(tag, Tag):
            continue
        href_val = tag.get("href")
        if not isinstance(href_val, str):
            continue
        raw = href_val.strip()
        if not raw or raw.startswith(("#", "mailto:", "javascript:")):
            continue
        absolute = urljoin(base_url, raw)
        if is_http_url(absolute):
            links.append(absolute)
    return links


__all__ = ["normalize_url", "hostname_of", "origin_of", "is_http_url", "extract_links"]
