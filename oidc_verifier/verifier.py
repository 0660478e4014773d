"""
Verify OIDC access tokens and ID tokens issued by one configured issuer.

Background for newcomers:
    A bearer token is a JWT signed by the identity provider. Before we trust
    **anything** in it we:

    1. Check its **structure** (three segments, RS256 header with a ``kid``)
       without touching the network.
    2. Look up the provider's signing keys (discovery document, then JWKS;
       both cached) and verify the **signature**.
    3. Run the ordered **claim** checks for the token kind; the first failing
       check is raised.

    Only then is a ``VerifiedToken`` returned.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from .cache import CacheSweeper
from .claims import ACCESS_TOKEN_CHECKS, ID_TOKEN_CHECKS, Check, CheckContext, run_checks
from .config import DEFAULT_DISCOVERY_PATH, ExpectedValue, VerifierConfig
from .decode import DecodePipeline
from .jwks_cache import KeySetCache
from .logging_config import configure_logging
from .metadata import MetadataCache
from .result import VerifiedToken
from .settings import get_settings
from .structure import check_structure

logger = logging.getLogger(__name__)


class Verifier:
    """
    Verifies tokens for one issuer and owns the metadata and key-set caches.

    Build one instance and share it across threads; the caches are the only
    mutable state. Pass your own caches (e.g. with a recording fetch function)
    to control network access in tests.
    """

    def __init__(
        self,
        config: VerifierConfig,
        *,
        metadata_cache: MetadataCache | None = None,
        key_set_cache: KeySetCache | None = None,
        clock: Callable[[], float] | None = None,
        background_cleanup: bool = True,
    ) -> None:
        self._config = config
        self._metadata = metadata_cache or MetadataCache(
            config.cache_ttl_seconds, timeout_seconds=config.http_timeout_seconds
        )
        self._key_sets = key_set_cache or KeySetCache(
            config.cache_ttl_seconds, timeout_seconds=config.http_timeout_seconds
        )
        self._decoder = DecodePipeline(config.discovery_url, self._metadata, self._key_sets)
        self._clock = clock or time.time
        self._sweeper: CacheSweeper | None = None
        if background_cleanup and config.cleanup_interval_seconds > 0:
            self._sweeper = CacheSweeper(
                [self._metadata, self._key_sets], config.cleanup_interval_seconds
            )
            self._sweeper.start()

    @classmethod
    def from_environ(cls, **kwargs: Any) -> Verifier:
        """Build a verifier from ``OIDC_*`` environment variables and apply the log level."""
        settings = get_settings()
        configure_logging(settings.log_level, stream_handler=settings.log_to_stderr)
        return cls(VerifierConfig.from_settings(settings), **kwargs)

    @property
    def config(self) -> VerifierConfig:
        return self._config

    @property
    def issuer(self) -> str:
        return self._config.issuer

    @property
    def metadata_cache(self) -> MetadataCache:
        return self._metadata

    @property
    def key_set_cache(self) -> KeySetCache:
        return self._key_sets

    def _verify(self, token: str, checks: Sequence[Check]) -> VerifiedToken:
        header = check_structure(token)
        claims = self._decoder.decode(token, header)
        error = run_checks(checks, claims, CheckContext(config=self._config, now=self._clock()))
        if error is not None:
            raise error
        logger.debug("Token verified kid=%s", header["kid"])
        return VerifiedToken(claims)

    def verify_access_token(self, token: str) -> VerifiedToken:
        """
        Verify an access token and return its claims.

        Checks, in order: issuer, audience, client id (only when the token has
        ``cid`` and an expected ``cid`` is configured), expiry, issued-at.
        Raises a ``VerifierError`` subclass on the first failure.
        """
        return self._verify(token, ACCESS_TOKEN_CHECKS)

    def verify_id_token(self, token: str) -> VerifiedToken:
        """
        Verify an ID token and return its claims.

        Same as ``verify_access_token`` except that ``cid`` is required and the
        ``nonce`` is compared last.
        """
        return self._verify(token, ID_TOKEN_CHECKS)

    def close(self) -> None:
        """Stop the background cache sweeper, if one is running."""
        if self._sweeper is not None:
            self._sweeper.stop()
            self._sweeper = None

    def __enter__(self) -> Verifier:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def new_verifier(
    issuer: str,
    expected_claims: Mapping[str, ExpectedValue] | None = None,
    leeway_seconds: int = 120,
    cache_ttl_seconds: float = 300,
    cleanup_interval_seconds: float = 300,
    discovery_path: str = DEFAULT_DISCOVERY_PATH,
    http_timeout_seconds: float = 10.0,
    **kwargs: Any,
) -> Verifier:
    """
    Convenience constructor: build a ``VerifierConfig`` and a ``Verifier``.

    Extra keyword arguments (``metadata_cache``, ``key_set_cache``, ``clock``,
    ``background_cleanup``) are passed to ``Verifier``.
    """
    config = VerifierConfig(
        issuer=issuer,
        expected_claims=expected_claims or {},
        leeway_seconds=leeway_seconds,
        cache_ttl_seconds=cache_ttl_seconds,
        cleanup_interval_seconds=cleanup_interval_seconds,
        discovery_path=discovery_path,
        http_timeout_seconds=http_timeout_seconds,
    )
    return Verifier(config, **kwargs)


def verify_access_token(verifier: Verifier, token: str) -> VerifiedToken:
    return verifier.verify_access_token(token)


def verify_id_token(verifier: Verifier, token: str) -> VerifiedToken:
    return verifier.verify_id_token(token)
