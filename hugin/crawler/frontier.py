# hugin/crawler/frontier.py
"""
Frontier bookkeeping: the per-crawl FIFO queue and the shared visited-set.
"""
from __future__ import annotations

from collections import OrderedDict, deque
from typing import Deque, Iterator, Optional, Set

from hugin.crawler.models import FrontierEntry

__all__ = ("VisitedSet", "Frontier")


class VisitedSet:
    """URLs already persisted, shared by every crawl that holds this instance.

    Keys are normalized URLs. With *limit* set, the oldest entries are
    forgotten once the set grows beyond it; forgotten URLs may be crawled
    again, which is harmless because pages are upserted by URL.
    """

    def __init__(self, limit: Optional[int] = None) -> None:
        self.limit = limit
        self._urls: "OrderedDict[str, None]" = OrderedDict()

    def add(self, url: str) -> None:
        self._urls[url] = None
        if self.limit is not None:
            while len(self._urls) > self.limit:
                self._urls.popitem(last=False)

    def discard(self, url: str) -> None:
        self._urls.pop(url, None)

    def clear(self) -> None:
        self._urls.clear()

    def __contains__(self, url: object) -> bool:
        return url in self._urls

    def __len__(self) -> int:
        return len(self._urls)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._urls))


class Frontier:
    """Plain FIFO queue of :class:`FrontierEntry` for one crawl invocation.

    A URL is queued at most once per crawl; later discoveries of the same
    URL are ignored.
    """

    def __init__(self) -> None:
        self._queue: Deque[FrontierEntry] = deque()
        self._queued: Set[str] = set()

    def push(self, url: str, depth: int) -> bool:
        if url in self._queued:
            return False
        self._queued.add(url)
        self._queue.append(FrontierEntry(url, depth))
        return True

    def pop(self) -> FrontierEntry:
        return self._queue.popleft()

    def __len__(self) -> int:
        return len(self._queue)

    def __bool__(self) -> bool:
        return bool(self._queue)
