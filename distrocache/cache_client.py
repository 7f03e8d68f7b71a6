"""HTTP client for the cache server's REST API."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Optional

import requests


class CacheMiss(LookupError):
    """The cache server does not hold the requested key."""


class CacheClient:
    """Talks to a cache server at ``base_url``."""

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = 5.0,
    ) -> None:
        self.base_url = base_url
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def get(self, key: str) -> Any:
        """Return the value stored under ``key``.

        Raises CacheMiss when the server answers 404, ValueError when the body
        is not a cache item, and requests exceptions on transport failure.
        """
        url = f"{self.base_url}/api/v1/cache/{key}"
        with self.session.get(url, timeout=self.timeout) as response:
            if response.status_code == 404:
                raise CacheMiss(key)
            payload = response.json()
        if payload is None:
            return None
        if not isinstance(payload, dict):
            raise ValueError("cache response is not an object")
        return payload.get("value")

    def set(
        self,
        key: str,
        value: Any,
        ttl: int,
        tags: Optional[Iterable[str]] = None,
    ) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds with ``tags``."""
        payload = {
            "value": value,
            "ttl": ttl,
            "tags": list(tags) if tags is not None else None,
        }
        url = f"{self.base_url}/api/v1/cache/{key}"
        with self.session.post(url, json=payload, timeout=self.timeout):
            pass

    def invalidate_tag(self, tag: str) -> None:
        """Ask the server to drop every item carrying ``tag``."""
        url = f"{self.base_url}/api/v1/invalidate/tag/{tag}"
        with self.session.post(url, timeout=self.timeout):
            pass