"""
OIDC discovery metadata fetch and cache with TTL.

Background for newcomers:
    Every OpenID Connect provider publishes a JSON "discovery document" at
    ``{issuer}/.well-known/openid-configuration``. Among other endpoints it
    names ``jwks_uri``, the URL of the provider's public signing keys. We only
    need that one field, but we cache the whole document so each token does
    not cost a round trip to the provider.

    Failed fetches are never cached; the next verification simply retries.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import partial
from typing import Any

import requests

from .cache import TTLCache
from .errors import MetadataFetchError

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Any]


def fetch_json(url: str, timeout: float = 10.0) -> Any:
    """
    GET ``url`` and return the parsed JSON body.

    Raises ``requests.RequestException`` on transport errors or a non-2xx
    status, and ``ValueError`` when the body is not JSON.
    """
    resp = requests.get(url, headers={"Accept": "application/json"}, timeout=timeout)
    if not 200 <= resp.status_code < 300:
        raise requests.HTTPError(f"GET {url} returned status={resp.status_code}", response=resp)
    return resp.json()


class MetadataCache:
    """
    In-memory cache of discovery documents keyed by the full discovery URL.
    """

    def __init__(
        self,
        ttl_seconds: float,
        fetch: Fetcher | None = None,
        timeout_seconds: float = 10.0,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._cache: TTLCache[str, dict[str, Any]] = TTLCache(ttl_seconds, clock=clock)
        self._fetch = fetch or partial(fetch_json, timeout=timeout_seconds)

    def _load(self, url: str) -> dict[str, Any]:
        try:
            document = self._fetch(url)
        except (requests.RequestException, ValueError) as e:
            logger.info("Metadata fetch failed url=%s error=%s", url, type(e).__name__)
            raise MetadataFetchError(f"Request for metadata {url} failed") from e
        if not isinstance(document, dict):
            logger.info("Metadata at url=%s is not a JSON object", url)
            raise MetadataFetchError(f"Metadata at {url} is not a JSON object")
        logger.debug("Metadata fetched url=%s", url)
        return document

    def get_metadata(self, discovery_url: str) -> dict[str, Any]:
        """Return the discovery document, fetching it on a miss or after expiry."""
        return self._cache.get_or_compute(discovery_url, lambda: self._load(discovery_url))

    def invalidate(self, discovery_url: str) -> None:
        self._cache.invalidate(discovery_url)

    def sweep(self) -> int:
        return self._cache.sweep()

    def __contains__(self, discovery_url: object) -> bool:
        return discovery_url in self._cache
