"""
Pytest fixtures for the test suite.

Tokens are real RS256 JWTs signed with throwaway RSA keys. Network access is
replaced by ``RecordingFetcher``, which serves canned JSON documents by URL
and records every call so tests can assert how many fetches happened.
"""
from __future__ import annotations

import time
from typing import Any

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from jwt.algorithms import ECAlgorithm, RSAAlgorithm

from oidc_verifier import new_verifier
from oidc_verifier.jwks_cache import KeySetCache
from oidc_verifier.metadata import MetadataCache

ISSUER = "https://id.example.com/oauth2/default"
DISCOVERY_URL = f"{ISSUER}/.well-known/openid-configuration"
JWKS_URI = f"{ISSUER}/v1/keys"
AUDIENCE = "api://default"
KID = "test-key-1"
NOW = 1_700_000_000


class RecordingFetcher:
    """Stand-in for the HTTP fetch: url -> document, or an exception to raise."""

    def __init__(self, documents: dict[str, Any], delay: float = 0.0) -> None:
        self.documents = dict(documents)
        self.calls: list[str] = []
        self.delay = delay

    def __call__(self, url: str) -> Any:
        self.calls.append(url)
        if self.delay:
            time.sleep(self.delay)
        doc = self.documents[url]
        if isinstance(doc, Exception):
            raise doc
        return doc

    def count(self, url: str) -> int:
        return self.calls.count(url)


def public_jwk(private_key: rsa.RSAPrivateKey, kid: str) -> dict[str, Any]:
    jwk = RSAAlgorithm.to_jwk(private_key.public_key(), as_dict=True)
    jwk["kid"] = kid
    jwk["use"] = "sig"
    return jwk


def ec_public_jwk(kid: str) -> dict[str, Any]:
    private_key = ec.generate_private_key(ec.SECP256R1())
    jwk = ECAlgorithm.to_jwk(private_key.public_key(), as_dict=True)
    jwk["kid"] = kid
    return jwk


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def fetcher(rsa_key) -> RecordingFetcher:
    return RecordingFetcher(
        {
            DISCOVERY_URL: {"issuer": ISSUER, "jwks_uri": JWKS_URI},
            JWKS_URI: {"keys": [public_jwk(rsa_key, KID)]},
        }
    )


@pytest.fixture
def make_claims():
    """Build a claims dict that passes every check for the default verifier."""

    def _make(drop: tuple[str, ...] = (), **overrides: Any) -> dict[str, Any]:
        claims: dict[str, Any] = {
            "iss": ISSUER,
            "aud": AUDIENCE,
            "sub": "user-1",
            "cid": "client-1",
            "exp": NOW + 3600,
            "iat": NOW - 10,
        }
        claims.update(overrides)
        for name in drop:
            claims.pop(name, None)
        return claims

    return _make


@pytest.fixture
def make_token(rsa_key, make_claims):
    """Sign claims as an RS256 JWT with ``kid`` in the header."""

    def _make(
        *,
        key: rsa.RSAPrivateKey | None = None,
        kid: str = KID,
        drop: tuple[str, ...] = (),
        **overrides: Any,
    ) -> str:
        return jwt.encode(
            make_claims(drop=drop, **overrides),
            key or rsa_key,
            algorithm="RS256",
            headers={"kid": kid},
        )

    return _make


@pytest.fixture
def make_verifier(fetcher):
    """Build a verifier wired to ``fetcher`` with a frozen clock and no sweeper thread."""

    def _make(expected_claims: dict[str, Any] | None = None, **kwargs: Any):
        if expected_claims is None:
            expected_claims = {"aud": AUDIENCE}
        kwargs.setdefault("metadata_cache", MetadataCache(300, fetch=fetcher))
        kwargs.setdefault("key_set_cache", KeySetCache(300, fetch=fetcher))
        kwargs.setdefault("clock", lambda: NOW)
        kwargs.setdefault("background_cleanup", False)
        return new_verifier(ISSUER, expected_claims, **kwargs)

    return _make
