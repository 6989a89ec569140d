# hugin/search/scoring.py
"""
Relevance scoring and snippet generation over stored page fields.

All signals are additive; the total is rounded to two decimals:

========================  ==================================================
homepage                  +100 if the query names the site, else +20
path depth                -2 per non-empty path segment
title                     +50 exact, else +15 per query word in the title
keywords                  +30 exact keyword, else +10 if one contains query
meta description          +5 per query word found in it
author                    +5 if it contains the query
content                   min(m, 10) + 2·ln(m + 1), m = query occurrences
========================  ==================================================
"""
from __future__ import annotations

import math
import re
from typing import Any, List, Mapping
from urllib.parse import urlsplit

__all__ = ["calculate_relevance", "generate_snippet", "escape_regex", "count_occurrences"]

_REGEX_SPECIALS = re.compile(r"[.*+?^${}()|\[\]\\]")


def escape_regex(text: str) -> str:
    """Escape the characters that are special in both Python and PCRE regexes."""
    return _REGEX_SPECIALS.sub(lambda m: "\\" + m.group(0), text)


def count_occurrences(text: str, query: str) -> int:
    """Non-overlapping, case-insensitive, literal occurrences of *query* in *text*."""
    if not text or not query:
        return 0
    return len(re.findall(escape_regex(query), text, flags=re.IGNORECASE))


def _has_word(text: str, word: str) -> bool:
    return re.search(rf"(?<!\w){re.escape(word)}(?!\w)", text) is not None


def _path_of(url: str) -> str:
    try:
        return urlsplit(url).path
    except ValueError:
        return ""


def calculate_relevance(doc: Mapping[str, Any], query: str) -> float:
    """Score one stored page document against *query*."""
    score = 0.0
    query_lower = query.lower().strip()
    query_words: List[str] = query_lower.split()

    path = _path_of(doc.get("url") or "")
    if path in ("/", ""):
        domain_name = (doc.get("domain") or "").split(".")[0].lower()
        if domain_name and (query_lower == domain_name or domain_name in query_words):
            score += 100
        else:
            score += 20

    score -= 2 * len([segment for segment in path.split("/") if segment])

    title = (doc.get("title") or "").lower()
    if title:
        if title.strip() == query_lower:
            score += 50
        else:
            score += 15 * sum(1 for word in query_words if _has_word(title, word))

    keywords_raw = doc.get("metaKeywords") or ""
    if keywords_raw:
        keywords = [k.strip() for k in keywords_raw.lower().split(",")]
        if any(k == query_lower for k in keywords):
            score += 30
        elif any(query_lower in k for k in keywords if k):
            score += 10

    description = (doc.get("metaDescription") or "").lower()
    if description:
        score += 5 * sum(1 for word in query_words if word in description)

    author = (doc.get("metaAuthor") or "").lower()
    if author and query_lower and query_lower in author:
        score += 5

    content = doc.get("content") or ""
    if content:
        matches = count_occurrences(content, query_lower)
        # linear up to 10 hits, logarithmic beyond
        score += min(matches, 10) + math.log(matches + 1) * 2

    return round(score, 2)


def generate_snippet(content: str, query: str, snippet_length: int = 200) -> str:
    """Window of *content* around the first occurrence of *query*.

    Falls back to the beginning of the content when the query is absent.
    """
    if not content:
        return ""
    index = content.lower().find(query.lower()) if query else -1
    if index == -1:
        return content[:snippet_length] + "..."

    half = snippet_length // 2
    start = max(0, index - half)
    end = min(len(content), index + len(query) + half)
    snippet = content[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(content):
        snippet = snippet + "..."
    return snippet
