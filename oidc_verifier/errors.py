"""Error taxonomy for token verification. Messages never include the token."""

from __future__ import annotations


class VerifierError(Exception):
    """Base class for every verification failure."""

    code = "verification_failed"

    def __init__(self, detail: str = "Token verification failed") -> None:
        super().__init__(detail)
        self.detail = detail


class StructuralError(VerifierError):
    """Malformed token, unreadable header, or a header we refuse to process."""

    code = "token_malformed"


class MetadataFetchError(VerifierError):
    """The discovery document could not be fetched or parsed."""

    code = "metadata_fetch_failed"


class MetadataShapeError(VerifierError):
    """The discovery document has no usable ``jwks_uri``."""

    code = "metadata_invalid"


class KeySetFetchError(VerifierError):
    """The signing key set could not be fetched or parsed."""

    code = "jwks_fetch_failed"


class SignatureError(VerifierError):
    code = "signature_invalid"


class ClaimError(VerifierError):
    """A claim check failed. ``claim`` names the offending claim."""

    code = "claim_invalid"

    def __init__(self, claim: str, reason: str) -> None:
        super().__init__(f"Invalid '{claim}' claim: {reason}")
        self.claim = claim
        self.reason = reason
