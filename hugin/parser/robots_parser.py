# File: hugin/parser/robots_parser.py
"""hugin.parser.robots_parser: robots.txt parsing and rule matching.

Follows RFC 9309: rules are grouped per user-agent, the longest matching
pattern wins, ``Allow`` wins a tie, ``*`` and ``$`` wildcards are honored and
an empty ``Disallow`` allows everything. ``Crawl-delay`` is read per group;
``Sitemap`` lines are global.
"""
from __future__ import annotations

import math
import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlsplit

__all__ = ("RobotsTxtRules",)


def _parse_delay(value: str) -> Optional[float]:
    """Crawl-delay in seconds; non-numeric, negative and non-finite values are ignored."""
    try:
        delay = float(value)
    except ValueError:
        return None
    return delay if math.isfinite(delay) and delay >= 0 else None


class RobotsTxtRules:
    """Parsed robots.txt document."""

    _Directive = Tuple[str, str]
    _WILDCARD_RE = re.compile(r"(\*|\$)")

    def __init__(self, text: str = "") -> None:
        self._groups: List[Dict[str, object]] = []
        self._regex_cache: Dict[str, re.Pattern[str]] = {}
        self.sitemaps: List[str] = []
        self._parse(text)

    @classmethod
    def allow_all(cls) -> RobotsTxtRules:
        return cls("")

    def can_fetch(self, user_agent: str, url_or_path: str) -> bool:
        group = self._match_group(user_agent)
        if group is None:
            return True
        path = self._path_of(url_or_path)
        best_len = -1
        allow: Optional[bool] = None
        for directive, pattern in group["directives"]:  # type: ignore[index]
            if not self._match_path(path, pattern):
                continue
            length = self._rule_len(pattern)
            if length > best_len or (length == best_len and directive == "allow" and allow is False):
                best_len = length
                allow = (directive == "allow")
        return True if allow is None else allow

    def crawl_delay(self, user_agent: str) -> Optional[float]:
        group = self._match_group(user_agent)
        return None if group is None else group.get("crawl_delay")  # type: ignore[return-value]

    def _parse(self, text: str) -> None:
        current: Optional[Dict[str, object]] = None
        # a user-agent line after any rule line opens a new group
        in_rules = False
        for raw in text.splitlines():
            line = raw.split("#", 1)[0].strip()
            if not line:
                continue
            key, _, val = line.partition(":")
            key = key.lower().strip()
            val = val.strip()
            if key == "sitemap":
                if val:
                    self.sitemaps.append(val)
            elif key == "user-agent":
                if current is None or in_rules:
                    current = self._new_group([])
                    in_rules = False
                # пустое имя агента не адресует никого
                if val:
                    current["agents"].append(val.lower())  # type: ignore[attr-defined]
            elif key in ("allow", "disallow", "crawl-delay"):
                if current is None:
                    current = self._new_group(["*"])
                in_rules = True
                if key == "crawl-delay":
                    delay = _parse_delay(val)
                    if delay is not None:
                        current["crawl_delay"] = delay
                # пустой Disallow разрешает все, пропускаем
                elif val or key == "allow":
                    current["directives"].append((key, val))  # type: ignore[attr-defined]

    def _new_group(self, agents: List[str]) -> Dict[str, object]:
        group: Dict[str, object] = {"agents": agents, "directives": [], "crawl_delay": None}
        self._groups.append(group)
        return group

    def _match_group(self, user_agent: str) -> Optional[Dict[str, object]]:
        ua = user_agent.lower()
        for group in self._groups:
            if any(a != "*" and ua.startswith(a) for a in group["agents"]):  # type: ignore[attr-defined]
                return group
        for group in self._groups:
            if "*" in group["agents"]:  # type: ignore[operator]
                return group
        return None

    @staticmethod
    def _path_of(url_or_path: str) -> str:
        if url_or_path.startswith("/"):
            return url_or_path
        parts = urlsplit(url_or_path)
        path = parts.path or "/"
        return f"{path}?{parts.query}" if parts.query else path

    def _match_path(self, path: str, pattern: str) -> bool:
        if pattern not in self._regex_cache:
            esc = re.escape(pattern).replace(r"\*", ".*")
            if pattern.endswith("$"):
                esc = esc[:-2] + "$"
            self._regex_cache[pattern] = re.compile(f"^{esc}")
        return bool(self._regex_cache[pattern].match(path))

    @classmethod
    def _rule_len(cls, pattern: str) -> int:
        return len(cls._WILDCARD_RE.sub("", pattern))
