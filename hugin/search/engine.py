# hugin/search/engine.py
"""Relevance search over stored pages."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from hugin.crawler.models import PAGE_TYPE
from hugin.logger import get_logger
from hugin.search.scoring import calculate_relevance, escape_regex, generate_snippet
from hugin.storage.base import DocumentStore

__all__ = ["SearchEngine", "SearchResult", "SearchResponse", "build_selector"]

logger = get_logger("search")


@dataclass(slots=True)
class SearchResult:
    url: str
    title: str
    domain: str
    snippet: str
    meta_description: str
    meta_keywords: str
    meta_author: str
    crawled_at: Optional[str]
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "domain": self.domain,
            "snippet": self.snippet,
            "metaDescription": self.meta_description,
            "metaKeywords": self.meta_keywords,
            "metaAuthor": self.meta_author,
            "crawledAt": self.crawled_at,
            "score": self.score,
        }


@dataclass(slots=True)
class SearchResponse:
    query: str
    total: int
    limit: int
    offset: int
    results: List[SearchResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["results"] = [r.to_dict() for r in self.results]
        return data


def build_selector(query: str, domain: Optional[str] = None) -> Dict[str, Any]:
    """Candidate filter: title, content or description contains *query*, any case."""
    pattern = f"(?i){escape_regex(query)}"
    selector: Dict[str, Any] = {
        "type": PAGE_TYPE,
        "$or": [
            {"title": {"$regex": pattern}},
            {"content": {"$regex": pattern}},
            {"metaDescription": {"$regex": pattern}},
        ],
    }
    if domain:
        selector["domain"] = domain
    return selector


class SearchEngine:
    """Scores and ranks the candidate set of a query.

    At most *candidate_limit* matching pages are ranked; matches beyond that
    are not visible to the query.
    """

    def __init__(self, store: DocumentStore, candidate_limit: int = 1000) -> None:
        self.store = store
        self.candidate_limit = candidate_limit

    async def search(
        self,
        query: str,
        domain: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> SearchResponse:
        docs = await self.store.find(build_selector(query, domain), limit=self.candidate_limit)

        results = [self._to_result(doc, query) for doc in docs]
        # stable: equal scores keep retrieval order
        results.sort(key=lambda r: r.score, reverse=True)
        page = results[offset:offset + limit]

        logger.debug("Search %r: %d candidates, returning %d", query, len(results), len(page))
        return SearchResponse(query=query, total=len(results), limit=limit, offset=offset, results=page)

    @staticmethod
    def _to_result(doc: Dict[str, Any], query: str) -> SearchResult:
        nosnippet = bool(doc.get("nosnippet"))
        return SearchResult(
            url=doc.get("url", ""),
            title=doc.get("title", ""),
            domain=doc.get("domain", ""),
            snippet="" if nosnippet else generate_snippet(doc.get("content") or "", query),
            meta_description="" if nosnippet else (doc.get("metaDescription") or ""),
            meta_keywords=doc.get("metaKeywords") or "",
            meta_author=doc.get("metaAuthor") or "",
            crawled_at=doc.get("crawledAt"),
            score=calculate_relevance(doc, query),
        )
