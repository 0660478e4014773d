"""
Verify OIDC access tokens and ID tokens from a single issuer.

Signing keys are found through the issuer's discovery document and cached
with a TTL. Use ``new_verifier()`` (or ``Verifier.from_environ()``) once and
share the result; call ``verify_access_token`` / ``verify_id_token`` per token.
"""

from .config import VerifierConfig
from .errors import (
    ClaimError,
    KeySetFetchError,
    MetadataFetchError,
    MetadataShapeError,
    SignatureError,
    StructuralError,
    VerifierError,
)
from .result import VerifiedToken
from .verifier import Verifier, new_verifier, verify_access_token, verify_id_token

__all__ = [
    "VerifierConfig",
    "Verifier",
    "VerifiedToken",
    "new_verifier",
    "verify_access_token",
    "verify_id_token",
    "VerifierError",
    "StructuralError",
    "MetadataFetchError",
    "MetadataShapeError",
    "KeySetFetchError",
    "SignatureError",
    "ClaimError",
]
