# File: hugin/parser/directives.py
"""Page-level robots directives (meta robots tag and X-Robots-Tag header)."""

from __future__ import annotations

from typing import Iterable, Set

from hugin.crawler.models import RobotsDirectives

DEFAULT_AGENT = "hugin-webcrawler"

# директивы со значением через двоеточие, а не префиксы агентов
_VALUED = {"max-snippet", "max-image-preview", "max-video-preview", "unavailable_after"}


def _split(value: str) -> Iterable[str]:
    return (part.strip() for part in value.lower().split(","))


def _tokens(value: str) -> Set[str]:
    return {part for part in _split(value) if part}


def _from_tokens(tokens: Set[str]) -> RobotsDirectives:
    none = "none" in tokens
    return RobotsDirectives(
        noindex=none or "noindex" in tokens,
        nofollow=none or "nofollow" in tokens,
        nosnippet="nosnippet" in tokens,
    )


def parse_meta_robots(content: str) -> RobotsDirectives:
    """Flags of a ``<meta name="robots" content="...">`` value."""
    return _from_tokens(_tokens(content or ""))


def parse_robots_header(value: str, agent: str = DEFAULT_AGENT) -> RobotsDirectives:
    """Flags of an ``X-Robots-Tag`` header addressed to *agent*.

    An ``otherbot: noindex, nofollow`` prefix scopes the rest of that header
    line to ``otherbot``; such entries are dropped unless the prefix names
    *agent*. Repeated headers arrive one per line and each line starts
    unscoped.
    """
    agent = agent.lower()
    tokens: Set[str] = set()
    for line in (value or "").splitlines():
        scope = None
        for part in _split(line):
            name, sep, rest = part.partition(":")
            if sep and name.strip() not in _VALUED:
                scope = name.strip()
                part = rest.strip()
            if part and scope in (None, agent):
                tokens.add(part)
    return _from_tokens(tokens)


__all__ = ["parse_meta_robots", "parse_robots_header", "DEFAULT_AGENT"]
