"""
Ordered, fail-fast claim checks for access and ID tokens.

Background for newcomers:
    A valid signature only proves the provider issued the token. Before we
    trust it we must also check the claims inside:

    1. ``iss`` is exactly our issuer.
    2. ``aud`` contains our expected audience.
    3. ``cid`` (client id) is one we accept.
    4. ``exp`` has not passed and ``iat`` is not in the future, both with
       ``leeway`` seconds of clock-skew tolerance.
    5. For ID tokens, ``nonce`` matches the one we sent to the provider.

    Each check returns ``None`` on success or a ``ClaimError`` naming the
    claim. ``run_checks`` stops at the first error and returns it; it never
    collects more than one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

from .config import VerifierConfig
from .errors import ClaimError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StringValue:
    value: str

    def contains(self, expected: str) -> bool:
        return self.value == expected


@dataclass(frozen=True)
class StringList:
    values: tuple[str, ...]

    def contains(self, expected: str) -> bool:
        return expected in self.values


@dataclass(frozen=True)
class StringMap:
    entries: tuple[tuple[str, str], ...]

    def contains(self, expected: str) -> bool:
        return any(v == expected for _, v in self.entries)


ClaimValue = Union[StringValue, StringList, StringMap]


def classify(claim: str, raw: Any) -> ClaimValue | ClaimError:
    """Map a raw JSON value onto the string / list / map variants, or an error."""
    if isinstance(raw, str):
        return StringValue(raw)
    if isinstance(raw, (list, tuple)) and all(isinstance(v, str) for v in raw):
        return StringList(tuple(raw))
    if isinstance(raw, Mapping) and all(
        isinstance(k, str) and isinstance(v, str) for k, v in raw.items()
    ):
        return StringMap(tuple(raw.items()))
    return ClaimError(claim, f"unsupported type {type(raw).__name__}")


@dataclass(frozen=True)
class CheckContext:
    """Inputs every check may read: the configuration and the current UTC time."""

    config: VerifierConfig
    now: float


Check = Callable[[Mapping[str, Any], CheckContext], Union[ClaimError, None]]


def _numeric(claims: Mapping[str, Any], claim: str) -> float | ClaimError:
    if claim not in claims:
        return ClaimError(claim, "missing")
    value = claims[claim]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return ClaimError(claim, f"unsupported type {type(value).__name__}")
    return value


def check_issuer(claims: Mapping[str, Any], ctx: CheckContext) -> ClaimError | None:
    if "iss" not in claims:
        return ClaimError("iss", "missing")
    iss = claims["iss"]
    if not isinstance(iss, str):
        return ClaimError("iss", f"unsupported type {type(iss).__name__}")
    if iss != ctx.config.issuer:
        return ClaimError("iss", "issuer does not match")
    return None


def check_audience(claims: Mapping[str, Any], ctx: CheckContext) -> ClaimError | None:
    expected = ctx.config.expected_audience
    if expected is None:
        return ClaimError("aud", "no expected audience configured")
    if "aud" not in claims:
        return ClaimError("aud", "missing")
    value = classify("aud", claims["aud"])
    if isinstance(value, ClaimError):
        return value
    if not value.contains(expected):
        return ClaimError("aud", "audience does not match")
    return None


def _match_client_id(cid: Any, expected: Any) -> ClaimError | None:
    if not isinstance(cid, str):
        return ClaimError("cid", f"unsupported type {type(cid).__name__}")
    accepted: ClaimValue
    if isinstance(expected, str):
        accepted = StringValue(expected)
    elif isinstance(expected, Sequence) and all(isinstance(e, str) for e in expected):
        accepted = StringList(tuple(expected))
    else:
        return ClaimError("cid", "unsupported expected client id type")
    if not accepted.contains(cid):
        return ClaimError("cid", "client id does not match")
    return None


def check_optional_client_id(claims: Mapping[str, Any], ctx: CheckContext) -> ClaimError | None:
    """Access tokens: compare ``cid`` only when both the claim and an expectation exist."""
    expected = ctx.config.expected_client_id
    if "cid" not in claims or expected is None:
        return None
    return _match_client_id(claims["cid"], expected)


def check_required_client_id(claims: Mapping[str, Any], ctx: CheckContext) -> ClaimError | None:
    """ID tokens: ``cid`` must be present, and must match when an expectation exists."""
    if "cid" not in claims:
        return ClaimError("cid", "missing")
    expected = ctx.config.expected_client_id
    if expected is None:
        if not isinstance(claims["cid"], str):
            return ClaimError("cid", f"unsupported type {type(claims['cid']).__name__}")
        return None
    return _match_client_id(claims["cid"], expected)


def check_expiry(claims: Mapping[str, Any], ctx: CheckContext) -> ClaimError | None:
    exp = _numeric(claims, "exp")
    if isinstance(exp, ClaimError):
        return exp
    # Expired only once exp is more than [leeway] seconds in the past.
    if exp < ctx.now - ctx.config.leeway_seconds:
        return ClaimError("exp", "token is expired")
    return None


def check_issued_at(claims: Mapping[str, Any], ctx: CheckContext) -> ClaimError | None:
    iat = _numeric(claims, "iat")
    if isinstance(iat, ClaimError):
        return iat
    # Invalid only once iat is more than [leeway] seconds in the future.
    if ctx.now + ctx.config.leeway_seconds < iat:
        return ClaimError("iat", "token issued in the future")
    return None


def check_nonce(claims: Mapping[str, Any], ctx: CheckContext) -> ClaimError | None:
    """
    Compare ``nonce`` with the configured one.

    An unconfigured nonce means the empty string, and an absent claim counts
    as the empty string too. With no nonce configured, a token carrying a
    non-empty nonce fails and a token carrying none passes.
    """
    nonce = claims.get("nonce", "")
    if not isinstance(nonce, str):
        return ClaimError("nonce", f"unsupported type {type(nonce).__name__}")
    if nonce != ctx.config.expected_nonce:
        return ClaimError("nonce", "nonce does not match")
    return None


ACCESS_TOKEN_CHECKS: tuple[Check, ...] = (
    check_issuer,
    check_audience,
    check_optional_client_id,
    check_expiry,
    check_issued_at,
)

ID_TOKEN_CHECKS: tuple[Check, ...] = (
    check_issuer,
    check_audience,
    check_required_client_id,
    check_expiry,
    check_issued_at,
    check_nonce,
)


def run_checks(
    checks: Sequence[Check], claims: Mapping[str, Any], ctx: CheckContext
) -> ClaimError | None:
    """Run ``checks`` in order and return the first error, or None if all pass."""
    for check in checks:
        error = check(claims, ctx)
        if error is not None:
            logger.info("Claim check failed claim=%s reason=%s", error.claim, error.reason)
            return error
    return None
