# hugin/crawler/domains.py
"""
Domain admission policy: which hostnames the crawler may visit at all.
"""
from __future__ import annotations

import ipaddress
from typing import Iterable, Tuple

_LOCAL_NAMES = frozenset({"localhost", "host.docker.internal"})


def is_local_host(hostname: str) -> bool:
    """True for localhost, loopback and private-network addresses."""
    host = hostname.strip("[]").lower()
    if host in _LOCAL_NAMES:
        return True
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    return address.is_loopback or address.is_private


class DomainPolicy:
    """Allow-list of hostname suffixes plus an operator switch for local hosts."""

    def __init__(self, allowed_suffixes: Iterable[str] = (".ygg", ".anon"), allow_local: bool = False) -> None:
        self.allowed_suffixes: Tuple[str, ...] = tuple(s.lower() for s in allowed_suffixes)
        self.allow_local = allow_local

    @classmethod
    def from_config(cls, config) -> DomainPolicy:
        return cls(config.allowed_suffixes, config.allow_local_hosts)

    def is_allowed(self, hostname: str | None) -> bool:
        if not hostname:
            return False
        host = hostname.lower()
        if self.allow_local and is_local_host(host):
            return True
        return host.endswith(self.allowed_suffixes)

    def __repr__(self) -> str:
        return f"<DomainPolicy suffixes={self.allowed_suffixes} allow_local={self.allow_local}>"


__all__ = ["DomainPolicy", "is_local_host"]
