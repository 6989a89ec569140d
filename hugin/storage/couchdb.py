# hugin/storage/couchdb.py
"""
CouchDB document store over its HTTP API (aiohttp).

The database is expected to exist; :meth:`CouchDBStore.ensure_indexes`
creates the Mango indexes the crawler and search engine query through.
"""
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Mapping, Optional, Sequence
from urllib.parse import quote

from aiohttp import BasicAuth, ClientError, ClientResponse, ClientSession, ClientTimeout

from hugin.logger import get_logger
from hugin.storage.base import (
    INDEXES,
    DocumentConflict,
    DocumentNotFound,
    DocumentStore,
    SortSpec,
    StorageError,
)

__all__ = ["CouchDBStore"]

logger = get_logger("storage")


class CouchDBStore(DocumentStore):
    """Async CouchDB client for one database."""

    def __init__(
        self,
        url: str,
        database: str,
        *,
        user: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[ClientSession] = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.database = database
        self.timeout = timeout
        self._auth = BasicAuth(user, password) if user and password else None
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, storage_config) -> CouchDBStore:
        return cls(
            storage_config.url,
            storage_config.database,
            user=storage_config.user,
            password=storage_config.password,
            timeout=storage_config.timeout,
        )

    @property
    def db_url(self) -> str:
        return f"{self.url}/{quote(self.database, safe='')}"

    def _doc_url(self, doc_id: str) -> str:
        return f"{self.db_url}/{quote(doc_id, safe='')}"

    def _get_session(self) -> ClientSession:
        if self._session is None or self._session.closed:
            self._session = ClientSession(
                timeout=ClientTimeout(total=self.timeout),
                auth=self._auth,
                headers={"Accept": "application/json"},
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    @staticmethod
    async def _error_reason(resp: ClientResponse) -> str:
        try:
            body = await resp.json(content_type=None)
        except (ClientError, ValueError):
            return f"HTTP {resp.status}"
        if isinstance(body, dict):
            return f"HTTP {resp.status}: {body.get('error', '')} {body.get('reason', '')}".strip()
        return f"HTTP {resp.status}"

    async def _request(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        session = self._get_session()
        try:
            async with session.request(method, url, **kwargs) as resp:
                if resp.status == 404:
                    raise DocumentNotFound(await self._error_reason(resp))
                if resp.status == 409:
                    raise DocumentConflict(await self._error_reason(resp))
                if resp.status >= 400:
                    raise StorageError(await self._error_reason(resp))
                return await resp.json(content_type=None)
        except StorageError:
            raise
        except (ClientError, TimeoutError, ValueError) as e:
            raise StorageError(f"{method} {url} failed: {e}") from e

    async def insert(self, doc: Mapping[str, Any]) -> Dict[str, Any]:
        body = dict(doc)
        doc_id = body.setdefault("_id", uuid.uuid4().hex)
        return await self._request("PUT", self._doc_url(doc_id), json=body)

    async def get(self, doc_id: str) -> Dict[str, Any]:
        return await self._request("GET", self._doc_url(doc_id))

    async def find(
        self,
        selector: Mapping[str, Any],
        *,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
        skip: Optional[int] = None,
        fields: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {"selector": dict(selector)}
        if sort:
            query["sort"] = list(sort)
        if limit is not None:
            query["limit"] = limit
        if skip:
            query["skip"] = skip
        if fields:
            query["fields"] = list(fields)
        result = await self._request("POST", f"{self.db_url}/_find", json=query)
        if result.get("warning"):
            logger.debug("CouchDB _find warning: %s", result["warning"])
        return list(result.get("docs", []))

    async def ensure_indexes(self) -> None:
        for index in INDEXES:
            try:
                await self._request("POST", f"{self.db_url}/_index", json=index)
                logger.debug("Ensured index %s", index["name"])
            except StorageError as e:
                logger.warning("Could not create index %s: %s", index["name"], e)
