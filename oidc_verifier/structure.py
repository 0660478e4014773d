"""
Network-free sanity checks on a raw token string.

These run before any discovery or JWKS fetch so that garbage input can never
trigger network traffic.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
from typing import Any

from .errors import StructuralError

logger = logging.getLogger(__name__)

ALLOWED_ALGORITHM = "RS256"

# header.payload.signature, each a non-empty run of base64url characters.
_JWT_SHAPE = re.compile(r"[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+")


def pad_segment(segment: str) -> str:
    """Pad a base64url segment with ``=`` to a multiple of 4 characters."""
    return segment + "=" * (-len(segment) % 4)


def _decode_header(segment: str) -> Any:
    try:
        raw = base64.urlsafe_b64decode(pad_segment(segment))
        return json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise StructuralError("Invalid token: header is not valid JSON") from e


def check_structure(token: str) -> dict[str, Any]:
    """
    Validate the token's shape and header and return the decoded header.

    Raises StructuralError on the first failing check: empty token, wrong
    shape, undecodable header, missing ``alg`` or ``kid``, or an algorithm
    other than RS256.
    """
    if not isinstance(token, str):
        raise StructuralError("Invalid token: token must be a string")
    if not token:
        raise StructuralError("Invalid token: token is empty")
    if not _JWT_SHAPE.fullmatch(token):
        raise StructuralError("Invalid token: not a three-segment JWT")

    header = _decode_header(token.split(".", 1)[0])
    if not isinstance(header, dict):
        raise StructuralError("Invalid token: header is not a JSON object")
    if "alg" not in header:
        raise StructuralError("Invalid token: header must contain an 'alg'")
    if "kid" not in header:
        raise StructuralError("Invalid token: header must contain a 'kid'")
    if header["alg"] != ALLOWED_ALGORITHM:
        logger.info("Rejected token with alg=%r", header["alg"])
        raise StructuralError(f"Invalid token: alg must be '{ALLOWED_ALGORITHM}'")
    return header
