# File: tests/test_couchdb.py
"""CouchDBStore against a minimal in-process imitation of the CouchDB HTTP API."""
from __future__ import annotations

import uuid

import pytest
from aiohttp import web

from hugin.config import StorageConfig
from hugin.storage.base import INDEXES, DocumentConflict, DocumentNotFound, StorageError, matches_selector
from hugin.storage.couchdb import CouchDBStore
from hugin.storage.repository import PageRepository
from hugin.crawler.models import PageExtract

from tests.conftest import serve_app


def couch_app(db: str = "hugin"):
    docs: dict = {}
    indexes: list = []
    app = web.Application()

    async def handle_find(request):
        query = await request.json()
        found = [d for d in docs.values() if matches_selector(d, query["selector"])]
        found = found[query.get("skip", 0):]
        if "limit" in query:
            found = found[: query["limit"]]
        if "fields" in query:
            found = [{f: d[f] for f in query["fields"] if f in d} for d in found]
        return web.json_response({"docs": found})

    async def handle_index(request):
        indexes.append(await request.json())
        return web.json_response({"result": "created"})

    async def handle_put(request):
        doc_id = request.match_info["doc_id"]
        body = await request.json()
        current = docs.get(doc_id)
        if (current or {}).get("_rev") != body.get("_rev"):
            return web.json_response({"error": "conflict", "reason": "Document update conflict."}, status=409)
        generation = int(current["_rev"].split("-")[0]) + 1 if current else 1
        body["_id"] = doc_id
        body["_rev"] = f"{generation}-{uuid.uuid4().hex}"
        docs[doc_id] = body
        return web.json_response({"ok": True, "id": doc_id, "rev": body["_rev"]}, status=201)

    async def handle_get(request):
        doc_id = request.match_info["doc_id"]
        if doc_id not in docs:
            return web.json_response({"error": "not_found", "reason": "missing"}, status=404)
        return web.json_response(docs[doc_id])

    async def handle_broken(_):
        return web.json_response({"error": "internal", "reason": "boom"}, status=500)

    app.router.add_post(f"/{db}/_find", handle_find)
    app.router.add_post(f"/{db}/_index", handle_index)
    app.router.add_put(f"/{db}/{{doc_id}}", handle_put)
    app.router.add_get(f"/{db}/{{doc_id}}", handle_get)
    app.router.add_post("/broken/_find", handle_broken)
    return app, docs, indexes


@pytest.mark.asyncio()
async def test_insert_get_and_conflict(unused_tcp_port):
    app, docs, _ = couch_app()
    async with serve_app(app, unused_tcp_port) as base:
        store = CouchDBStore(base + "/", "hugin")
        try:
            created = await store.insert({"_id": "page:1", "type": "page", "url": "http://site.ygg/"})
            assert created["rev"].startswith("1-")
            doc = await store.get("page:1")
            assert doc["url"] == "http://site.ygg/"

            with pytest.raises(DocumentConflict):
                await store.insert({"_id": "page:1", "type": "page"})
            with pytest.raises(DocumentNotFound):
                await store.get("page:missing")
        finally:
            await store.close()

    assert set(docs) == {"page:1"}


@pytest.mark.asyncio()
async def test_find_and_indexes(unused_tcp_port):
    app, _, indexes = couch_app()
    async with serve_app(app, unused_tcp_port) as base:
        store = CouchDBStore.from_config(StorageConfig(url=base, database="hugin"))
        try:
            await store.ensure_indexes()
            pages = PageRepository(store)
            await pages.save(PageExtract(url="http://site.ygg/a/", domain="site.ygg", title="A"), "c1")
            await pages.save(PageExtract(url="http://site.ygg/a", domain="site.ygg", title="A2"), "c2")
            await pages.save(PageExtract(url="http://blog.ygg/", domain="blog.ygg"), "c2")

            found = await store.find({"type": "page", "domain": "site.ygg"}, limit=10)
            assert [d["title"] for d in found] == ["A2"]
            assert await pages.known_origins() == ["http://site.ygg", "http://blog.ygg"]
        finally:
            await store.close()

    assert [i["name"] for i in indexes] == [i["name"] for i in INDEXES]


@pytest.mark.asyncio()
async def test_server_and_network_errors(unused_tcp_port, unused_tcp_port_factory):
    app, _, _ = couch_app()
    async with serve_app(app, unused_tcp_port) as base:
        store = CouchDBStore(base, "broken")
        try:
            with pytest.raises(StorageError):
                await store.find({"type": "page"})
        finally:
            await store.close()

    offline = CouchDBStore(f"http://127.0.0.1:{unused_tcp_port_factory()}", "hugin", timeout=2)
    try:
        with pytest.raises(StorageError):
            await offline.get("anything")
        # index creation failures are logged, not raised
        await offline.ensure_indexes()
    finally:
        await offline.close()
