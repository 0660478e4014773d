"""
JWKS fetch and cache with TTL. No per-request fetches.

Background for newcomers:
    The identity provider signs every token with a private RSA key and
    publishes the matching **public** keys at its ``jwks_uri``. This module
    fetches that key set and caches it per URI so we don't call the provider
    on every single request.

    Providers periodically **rotate** signing keys. A cached key set is only
    replaced when its entry expires, so a token signed with a brand-new key
    may name a ``kid`` we have not seen yet. ``KeySetCache.refresh`` lets the
    caller force one refetch in that case before rejecting the token.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import partial
from typing import Any

import requests
from jwt import PyJWK, PyJWKSet
from jwt.exceptions import PyJWKError, PyJWKSetError

from .cache import TTLCache
from .errors import KeySetFetchError
from .metadata import Fetcher, fetch_json

logger = logging.getLogger(__name__)


class KeySet:
    """
    The signing keys published at one JWKS URI.

    Created empty; ``refresh()`` fetches and parses the document.
    """

    def __init__(self, jwks_uri: str, fetch: Fetcher) -> None:
        self.jwks_uri = jwks_uri
        self._fetch = fetch
        self._keys: list[PyJWK] = []

    @property
    def keys(self) -> list[PyJWK]:
        return list(self._keys)

    def refresh(self) -> KeySet:
        """Fetch the JWKS document and replace the parsed keys."""
        try:
            data = self._fetch(self.jwks_uri)
            key_set = PyJWKSet.from_dict(data)
        except (requests.RequestException, ValueError) as e:
            logger.info("JWKS fetch failed uri=%s error=%s", self.jwks_uri, type(e).__name__)
            raise KeySetFetchError(f"Unable to fetch signing keys from {self.jwks_uri}") from e
        except (PyJWKSetError, PyJWKError, AttributeError, TypeError) as e:
            logger.info("JWKS parse failed uri=%s error=%s", self.jwks_uri, type(e).__name__)
            raise KeySetFetchError(f"Invalid signing key set at {self.jwks_uri}") from e
        self._keys = list(key_set.keys)
        logger.debug("JWKS refreshed uri=%s keys=%d", self.jwks_uri, len(self._keys))
        return self

    def find(self, kid: str) -> PyJWK | None:
        """Look up an RSA key by kid. Keys of other types are never returned."""
        for key in self._keys:
            if key.key_id == kid and key.key_type == "RSA":
                return key
        return None

    def __contains__(self, kid: object) -> bool:
        return isinstance(kid, str) and self.find(kid) is not None

    def __len__(self) -> int:
        return len(self._keys)


class KeySetCache:
    """
    In-memory cache of refreshed ``KeySet`` objects keyed by JWKS URI.

    Within the TTL a cached key set is reused without refetching, even if the
    provider has rotated keys meanwhile; staleness is bounded by the TTL.
    """

    def __init__(
        self,
        ttl_seconds: float,
        fetch: Fetcher | None = None,
        timeout_seconds: float = 10.0,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._cache: TTLCache[str, KeySet] = TTLCache(ttl_seconds, clock=clock)
        self._fetch = fetch or partial(fetch_json, timeout=timeout_seconds)

    def _load(self, jwks_uri: str) -> KeySet:
        return KeySet(jwks_uri, self._fetch).refresh()

    def get_key_set(self, jwks_uri: str) -> KeySet:
        """Return the cached key set, fetching it on a miss or after expiry."""
        return self._cache.get_or_compute(jwks_uri, lambda: self._load(jwks_uri))

    def refresh(self, jwks_uri: str, stale: KeySet | None = None) -> KeySet:
        """
        Force-refresh the key set regardless of TTL.

        Pass the ``stale`` key set that prompted the refresh so that concurrent
        callers reuse one fetch instead of each refetching in turn.
        """
        return self._cache.refresh(jwks_uri, lambda: self._load(jwks_uri), stale=stale)

    def invalidate(self, jwks_uri: str) -> None:
        self._cache.invalidate(jwks_uri)

    def sweep(self) -> int:
        return self._cache.sweep()

    def __contains__(self, jwks_uri: Any) -> bool:
        return jwks_uri in self._cache
