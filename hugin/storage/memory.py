# hugin/storage/memory.py
"""In-process document store with CouchDB-like revision semantics."""
from __future__ import annotations

import copy
import uuid
from typing import Any, Dict, List, Mapping, Optional, Sequence

from hugin.storage.base import (
    DocumentConflict,
    DocumentNotFound,
    DocumentStore,
    SortSpec,
    matches_selector,
)

__all__ = ["MemoryDocumentStore"]


def _sort_key(field: str):
    def key(doc: Mapping[str, Any]):
        value = doc.get(field)
        return (value is None, value if value is not None else "")

    return key


class MemoryDocumentStore(DocumentStore):
    """Keeps documents in a dict; used for tests and throwaway local runs.

    Documents are stored and returned as deep copies, so callers can never
    mutate stored state by accident. Insertion order is kept and is the order
    of unsorted ``find`` results.
    """

    def __init__(self) -> None:
        self._docs: Dict[str, Dict[str, Any]] = {}
        self.inserts = 0

    async def insert(self, doc: Mapping[str, Any]) -> Dict[str, Any]:
        new = copy.deepcopy(dict(doc))
        doc_id = new.get("_id") or uuid.uuid4().hex
        current = self._docs.get(doc_id)
        given_rev = new.get("_rev")
        if current is None:
            if given_rev:
                raise DocumentConflict(f"Document update conflict: {doc_id}")
            generation = 1
        else:
            if given_rev != current["_rev"]:
                raise DocumentConflict(f"Document update conflict: {doc_id}")
            generation = int(current["_rev"].split("-", 1)[0]) + 1
        new["_id"] = doc_id
        new["_rev"] = f"{generation}-{uuid.uuid4().hex}"
        self._docs[doc_id] = new
        self.inserts += 1
        return {"ok": True, "id": doc_id, "rev": new["_rev"]}

    async def get(self, doc_id: str) -> Dict[str, Any]:
        try:
            return copy.deepcopy(self._docs[doc_id])
        except KeyError:
            raise DocumentNotFound(f"not_found: {doc_id}") from None

    async def find(
        self,
        selector: Mapping[str, Any],
        *,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
        skip: Optional[int] = None,
        fields: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        found = [d for d in self._docs.values() if matches_selector(d, selector)]
        for spec in reversed(list(sort or [])):
            if isinstance(spec, str):
                field, direction = spec, "asc"
            else:
                field, direction = next(iter(spec.items()))
            found.sort(key=_sort_key(field), reverse=direction == "desc")
        start = skip or 0
        found = found[start:] if limit is None else found[start:start + limit]
        if fields:
            found = [{f: d[f] for f in fields if f in d} for d in found]
        return copy.deepcopy(found)

    def __len__(self) -> int:
        return len(self._docs)
