# hugin/storage/base.py
"""
Document store interface used by the crawler and the search engine.

The store is schemaless: documents are JSON objects addressed by ``_id`` and
carrying a ``_rev`` revision token. Queries use a Mango-style selector
language (equality, ``$or``, ``$and``, ``$regex``, ``$eq``, ``$ne``, ``$in``,
``$exists`` and the ordering operators).
"""
from __future__ import annotations

import abc
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

__all__ = (
    "StorageError",
    "DocumentNotFound",
    "DocumentConflict",
    "DocumentStore",
    "INDEXES",
    "SortSpec",
    "matches_selector",
)

SortSpec = Sequence[Union[str, Mapping[str, str]]]

#: the only secondary indexes the core relies on
INDEXES: Sequence[Dict[str, Any]] = (
    {"index": {"fields": ["type", "submittedBy", "submittedAt"]}, "name": "crawl-jobs-index", "ddoc": "crawl-jobs"},
    {"index": {"fields": ["type", "url"]}, "name": "pages-by-url-index", "ddoc": "pages-url"},
    {"index": {"fields": ["type", "domain"]}, "name": "pages-by-domain-index", "ddoc": "pages-domain"},
)


class StorageError(Exception):
    """The document store could not complete an operation."""


class DocumentNotFound(StorageError):
    """No document with the requested id."""


class DocumentConflict(StorageError):
    """The written ``_rev`` does not match the stored revision."""


class DocumentStore(abc.ABC):
    """Async document store."""

    @abc.abstractmethod
    async def insert(self, doc: Mapping[str, Any]) -> Dict[str, Any]:
        """Create or update *doc*; returns ``{"ok", "id", "rev"}``.

        Updating an existing document requires its current ``_rev``.
        """

    @abc.abstractmethod
    async def get(self, doc_id: str) -> Dict[str, Any]:
        """Fetch one document; raises :class:`DocumentNotFound`."""

    @abc.abstractmethod
    async def find(
        self,
        selector: Mapping[str, Any],
        *,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
        skip: Optional[int] = None,
        fields: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Documents matching *selector*."""

    async def ensure_indexes(self) -> None:
        """Create the secondary indexes the core queries rely on."""

    async def close(self) -> None:
        """Release connections held by the store."""


# --------------------------------------------------------------------------- #
# Selector evaluation (used by stores that evaluate queries in-process)       #
# --------------------------------------------------------------------------- #

_MISSING = object()


def _compare(value: Any, op: str, operand: Any) -> bool:
    if op == "$eq":
        return value is not _MISSING and value == operand
    if op == "$ne":
        return value is _MISSING or value != operand
    if op == "$exists":
        return (value is not _MISSING) == bool(operand)
    if op == "$in":
        return value is not _MISSING and value in operand
    if op == "$nin":
        return value is _MISSING or value not in operand
    if op == "$regex":
        return isinstance(value, str) and re.search(operand, value) is not None
    if value is _MISSING or value is None:
        return False
    try:
        if op == "$gt":
            return value > operand
        if op == "$gte":
            return value >= operand
        if op == "$lt":
            return value < operand
        if op == "$lte":
            return value <= operand
    except TypeError:
        return False
    raise StorageError(f"Unsupported selector operator: {op}")


def matches_selector(doc: Mapping[str, Any], selector: Mapping[str, Any]) -> bool:
    """True when *doc* satisfies the Mango-style *selector*."""
    for key, condition in selector.items():
        if key == "$or":
            if not any(matches_selector(doc, sub) for sub in condition):
                return False
        elif key == "$and":
            if not all(matches_selector(doc, sub) for sub in condition):
                return False
        elif key == "$not":
            if matches_selector(doc, condition):
                return False
        else:
            value = doc.get(key, _MISSING)
            if isinstance(condition, Mapping) and condition and all(k.startswith("$") for k in condition):
                if not all(_compare(value, op, operand) for op, operand in condition.items()):
                    return False
            elif value is _MISSING or value != condition:
                return False
    return True
