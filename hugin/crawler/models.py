# hugin/crawler/models.py
"""
Data models for the Hugin crawler.

Python objects use snake_case attributes; the documents written to the store
use the camelCase names other consumers of the database already rely on.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

PAGE_TYPE = "page"
JOB_TYPE = "crawl_job"


def utcnow_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def merge_headers(pairs: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    """Fold raw header pairs into one value per name.

    Repeated headers are kept one per line (header values cannot contain
    newlines), so ``X-Robots-Tag`` sent twice keeps both directives.
    """
    merged: Dict[str, str] = {}
    names: Dict[str, str] = {}
    for name, value in pairs:
        key = names.setdefault(name.lower(), name)
        merged[key] = f"{merged[key]}\n{value}" if key in merged else value
    return merged


@dataclass(slots=True)
class FrontierEntry:
    """One not-yet-fetched URL of a crawl invocation."""

    url: str
    depth: int


@dataclass(slots=True)
class RobotsDirectives:
    """Page-level robots flags from a meta tag or an ``X-Robots-Tag`` header."""

    noindex: bool = False
    nofollow: bool = False
    nosnippet: bool = False

    def __or__(self, other: "RobotsDirectives") -> "RobotsDirectives":
        return RobotsDirectives(
            noindex=self.noindex or other.noindex,
            nofollow=self.nofollow or other.nofollow,
            nosnippet=self.nosnippet or other.nosnippet,
        )


@dataclass(slots=True)
class RenderedPage:
    """What the rendering capability hands back for one URL."""

    url: str
    html: str
    links: List[str] = field(default_factory=list)
    headers: Dict[str, str] = field(default_factory=dict)
    status: Optional[int] = None

    def header(self, name: str) -> str:
        """Case-insensitive header lookup, ``""`` when absent."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return ""


@dataclass(slots=True)
class PageExtract:
    """Indexable data extracted from one rendered page."""

    url: str
    domain: str
    title: str = ""
    meta_description: str = ""
    meta_keywords: str = ""
    meta_author: str = ""
    meta_copyright: str = ""
    meta_content_type: str = ""
    content: str = ""
    links: List[str] = field(default_factory=list)
    nofollow: bool = False
    nosnippet: bool = False
    crawled_at: str = field(default_factory=utcnow_iso)


@dataclass(slots=True)
class Page(PageExtract):
    """A persisted page document."""

    crawl_id: Optional[str] = None
    updated_at: Optional[str] = None
    doc_id: Optional[str] = None
    rev: Optional[str] = None

    @classmethod
    def from_extract(cls, extract: PageExtract, crawl_id: Optional[str]) -> Page:
        values = {f.name: getattr(extract, f.name) for f in fields(PageExtract)}
        return cls(**values, crawl_id=crawl_id, updated_at=utcnow_iso())

    def to_doc(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {"type": PAGE_TYPE}
        for f in fields(self):
            if f.name in ("doc_id", "rev"):
                continue
            doc[_camel(f.name)] = getattr(self, f.name)
        if self.doc_id:
            doc["_id"] = self.doc_id
        if self.rev:
            doc["_rev"] = self.rev
        return doc

    @classmethod
    def from_doc(cls, doc: Mapping[str, Any]) -> Page:
        values: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name in ("doc_id", "rev"):
                continue
            key = _camel(f.name)
            if key in doc and doc[key] is not None:
                values[f.name] = doc[key]
        values.setdefault("url", "")
        values.setdefault("domain", "")
        return cls(**values, doc_id=doc.get("_id"), rev=doc.get("_rev"))


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


# pending -> running -> (completed | failed)
ALLOWED_TRANSITIONS: Mapping[JobStatus, frozenset] = {
    JobStatus.PENDING: frozenset({JobStatus.RUNNING}),
    JobStatus.RUNNING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


class InvalidTransition(Exception):
    """A job status change that would skip or reverse a lifecycle step."""

    def __init__(self, crawl_id: str, current: JobStatus, requested: JobStatus) -> None:
        super().__init__(f"crawl {crawl_id}: {current.value} -> {requested.value} is not allowed")
        self.crawl_id = crawl_id
        self.current = current
        self.requested = requested


def job_doc_id(crawl_id: str) -> str:
    return f"crawl_{crawl_id}"


@dataclass(slots=True)
class CrawlJob:
    """One crawl invocation as it is stored."""

    crawl_id: str
    url: str
    max_depth: int
    status: JobStatus = JobStatus.PENDING
    submitted_by: Optional[str] = None
    submitted_at: str = field(default_factory=utcnow_iso)
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    failed_at: Optional[str] = None
    pages_processed: int = 0
    error: Optional[str] = None
    rev: Optional[str] = None

    @property
    def doc_id(self) -> str:
        return job_doc_id(self.crawl_id)

    def can_transition(self, new_status: JobStatus) -> bool:
        return new_status in ALLOWED_TRANSITIONS[self.status]

    def to_doc(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {"_id": self.doc_id, "type": JOB_TYPE, "crawlId": self.crawl_id}
        for f in fields(self):
            if f.name in ("crawl_id", "rev"):
                continue
            value = getattr(self, f.name)
            if value is None:
                continue
            doc[_camel(f.name)] = value.value if isinstance(value, JobStatus) else value
        if self.rev:
            doc["_rev"] = self.rev
        return doc

    @classmethod
    def from_doc(cls, doc: Mapping[str, Any]) -> CrawlJob:
        doc_id = str(doc.get("_id", ""))
        crawl_id = doc.get("crawlId") or doc_id.removeprefix("crawl_")
        values: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name in ("crawl_id", "rev"):
                continue
            key = _camel(f.name)
            if doc.get(key) is not None:
                values[f.name] = doc[key]
        values["status"] = JobStatus(values.get("status", JobStatus.PENDING))
        return cls(crawl_id=crawl_id, rev=doc.get("_rev"), **values)

    def as_dict(self) -> Dict[str, Any]:
        """Document without store bookkeeping, for display."""
        return {k: v for k, v in self.to_doc().items() if not k.startswith("_")}


__all__ = (
    "FrontierEntry",
    "RobotsDirectives",
    "RenderedPage",
    "merge_headers",
    "PageExtract",
    "Page",
    "JobStatus",
    "CrawlJob",
    "InvalidTransition",
    "job_doc_id",
    "utcnow_iso",
    "PAGE_TYPE",
    "JOB_TYPE",
)
