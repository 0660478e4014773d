"""Immutable verifier configuration."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Union

from .settings import Settings, get_settings

DEFAULT_DISCOVERY_PATH = ".well-known/openid-configuration"

ExpectedValue = Union[str, Sequence[str]]


def discovery_url(issuer: str, discovery_path: str) -> str:
    """Join issuer and discovery suffix with exactly one slash between them."""
    return f"{issuer.rstrip('/')}/{discovery_path.lstrip('/')}"


@dataclass(frozen=True)
class VerifierConfig:
    """
    Everything a ``Verifier`` needs, fixed at construction.

    Fields:
        issuer: Canonical issuer URL; compared to ``iss`` by exact equality.
        expected_claims: Expected ``aud``, ``cid`` (string or list) and ``nonce``.
        leeway_seconds: Symmetric clock-skew tolerance for ``exp`` and ``iat``.
        cache_ttl_seconds: Lifetime of cached discovery documents and key sets.
        cleanup_interval_seconds: Period of the expired-entry sweep; 0 disables it.
        discovery_path: Suffix appended to the issuer to locate the discovery document.
        http_timeout_seconds: Timeout for each metadata or JWKS request.
    """

    issuer: str
    expected_claims: Mapping[str, ExpectedValue] = field(default_factory=dict)
    leeway_seconds: int = 120
    cache_ttl_seconds: float = 300
    cleanup_interval_seconds: float = 300
    discovery_path: str = DEFAULT_DISCOVERY_PATH
    http_timeout_seconds: float = 10.0

    def __post_init__(self) -> None:
        if not self.issuer or not self.issuer.strip():
            raise _config_error("issuer must be set")
        if self.leeway_seconds < 0:
            raise _config_error("leeway_seconds must not be negative")
        if self.cache_ttl_seconds <= 0:
            raise _config_error("cache_ttl_seconds must be positive")
        if self.cleanup_interval_seconds < 0:
            raise _config_error("cleanup_interval_seconds must not be negative")
        if self.http_timeout_seconds <= 0:
            raise _config_error("http_timeout_seconds must be positive")
        # Callers keep their own dict; later edits to it must not leak in.
        object.__setattr__(self, "expected_claims", MappingProxyType(dict(self.expected_claims)))

    @property
    def discovery_url(self) -> str:
        return discovery_url(self.issuer, self.discovery_path)

    @property
    def expected_audience(self) -> str | None:
        aud = self.expected_claims.get("aud")
        return aud if isinstance(aud, str) else None

    @property
    def expected_client_id(self) -> ExpectedValue | None:
        return self.expected_claims.get("cid")

    @property
    def expected_nonce(self) -> str:
        """Configured nonce, or the empty string when none is configured."""
        nonce = self.expected_claims.get("nonce")
        return nonce if isinstance(nonce, str) else ""

    @classmethod
    def from_settings(cls, settings: Settings) -> VerifierConfig:
        if not settings.issuer:
            raise _config_error("OIDC_ISSUER must be set")
        expected: dict[str, ExpectedValue] = {}
        if settings.audience:
            expected["aud"] = settings.audience.strip()
        client_ids = settings.client_ids()
        if len(client_ids) == 1:
            expected["cid"] = client_ids[0]
        elif client_ids:
            expected["cid"] = tuple(client_ids)
        if settings.nonce:
            expected["nonce"] = settings.nonce
        return cls(
            issuer=settings.issuer.strip(),
            expected_claims=expected,
            leeway_seconds=settings.leeway_seconds,
            cache_ttl_seconds=settings.cache_ttl_seconds,
            cleanup_interval_seconds=settings.cleanup_interval_seconds,
            discovery_path=settings.discovery_path,
            http_timeout_seconds=settings.http_timeout_seconds,
        )

    @classmethod
    def from_environ(cls) -> VerifierConfig:
        return cls.from_settings(get_settings())


def _config_error(msg: str) -> Exception:
    return ValueError(msg)
