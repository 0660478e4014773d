"""
Turn a structurally valid token into a signature-verified claims dict.

Steps: discovery document -> ``jwks_uri`` -> key set -> key for the header
``kid`` -> RS256 signature check. Claim semantics (issuer, audience, expiry
and so on) are deliberately left to ``claims.py``; PyJWT only checks the
signature here.
"""

from __future__ import annotations

import logging
from typing import Any

import jwt

from .errors import MetadataShapeError, SignatureError
from .jwks_cache import KeySetCache
from .metadata import MetadataCache
from .structure import ALLOWED_ALGORITHM

logger = logging.getLogger(__name__)

# Signature only; every claim check is ours.
_SIGNATURE_ONLY = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
    "verify_sub": False,
    "verify_jti": False,
}


class DecodePipeline:
    """Resolve signing keys through the caches and verify a token's signature."""

    def __init__(self, discovery_url: str, metadata: MetadataCache, key_sets: KeySetCache) -> None:
        self.discovery_url = discovery_url
        self._metadata = metadata
        self._key_sets = key_sets

    def jwks_uri(self) -> str:
        metadata = self._metadata.get_metadata(self.discovery_url)
        uri = metadata.get("jwks_uri")
        if not isinstance(uri, str) or not uri:
            raise MetadataShapeError("Failed to decode token: missing 'jwks_uri' from metadata")
        return uri

    def signing_key(self, jwks_uri: str, kid: str) -> jwt.PyJWK:
        """
        Return the key for ``kid``.

        If ``kid`` is not in the cached key set, the set is refreshed once (to
        handle key rotation inside the TTL window) before giving up.
        """
        cached = self._key_sets.get_key_set(jwks_uri)
        key = cached.find(kid)
        if key is not None:
            return key

        logger.info("kid not in cached JWKS; refreshing for possible key rotation")
        key = self._key_sets.refresh(jwks_uri, stale=cached).find(kid)
        if key is None:
            raise SignatureError("Invalid token: unknown signing key")
        return key

    def decode(self, token: str, header: dict[str, Any]) -> dict[str, Any]:
        """Return the verified claims of ``token``; ``header`` comes from ``check_structure``."""
        key = self.signing_key(self.jwks_uri(), str(header["kid"]))
        try:
            claims = jwt.decode(
                token,
                key.key,
                algorithms=[ALLOWED_ALGORITHM],
                options=_SIGNATURE_ONLY,
            )
        except jwt.InvalidSignatureError as e:
            logger.info("Token signature verification failed")
            raise SignatureError("Invalid token: signature verification failed") from e
        except (jwt.PyJWTError, TypeError, ValueError) as e:
            logger.info("Token invalid: %s", type(e).__name__)
            raise SignatureError("Invalid token") from e
        return claims
