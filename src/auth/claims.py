"""
Claim extraction from compact JWTs for display purposes.

The payload segment is decoded without verifying the signature, issuer,
audience or expiry. Claims produced here are only echoed back to the caller
and must never be used for authorization decisions.
"""

import binascii
import json
import logging
import re
from typing import Any, Mapping, Optional

from jwt.utils import base64url_decode as _jwt_base64url_decode
from multidict import CIMultiDict, CIMultiDictProxy

from core.exceptions import ClaimsFormatError

logger = logging.getLogger(__name__)

# Claims echoed in the greeting response, keyed by their output name
SUMMARY_CLAIMS = ("name", "preferred_username", "oid", "tid")

# Both the URL-safe and the standard alphabet, optional trailing padding
_BASE64_SEGMENT = re.compile(r"[A-Za-z0-9+/_-]*={0,2}")


class JsonFloat(float):
    """Float that remembers the exact text it was parsed from."""

    def __new__(cls, text: str) -> "JsonFloat":
        number = super().__new__(cls, text)
        number.text = text
        return number


def base64url_decode(segment: str) -> bytes:
    """Decode a base64url segment, restoring any stripped ``=`` padding.

    Raises:
        ClaimsFormatError: If the segment has characters outside the base64
            alphabet or is one character more than a multiple of four long.
    """
    if not _BASE64_SEGMENT.fullmatch(segment):
        raise ClaimsFormatError("Invalid base64url segment: unexpected characters")
    try:
        return _jwt_base64url_decode(segment)
    except (binascii.Error, ValueError) as e:
        raise ClaimsFormatError(f"Invalid base64url segment: {e}") from e


def _render_claim(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, JsonFloat):
        return value.text
    # Integers, booleans, null, arrays and objects keep their JSON text form
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def decode_claims(token: str) -> Mapping[str, str]:
    """Decode the payload of a ``header.payload.signature`` token.

    Args:
        token: Compact token string. Only the second segment is read.

    Returns:
        Read-only, case-insensitive mapping of claim name to string value.

    Raises:
        ClaimsFormatError: If the token has fewer than two segments or the
            payload is not a base64url-encoded UTF-8 JSON object.
    """
    parts = token.split(".")
    if len(parts) < 2:
        raise ClaimsFormatError("Invalid JWT format: expected header.payload.signature")

    raw = base64url_decode(parts[1])
    try:
        payload = json.loads(raw.decode("utf-8"), parse_float=JsonFloat)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ClaimsFormatError(f"Invalid JWT payload: {e}") from e

    if not isinstance(payload, dict):
        raise ClaimsFormatError("Invalid JWT payload: expected a JSON object")

    claims: CIMultiDict[str] = CIMultiDict()
    for key, value in payload.items():
        # Assignment replaces keys that differ only by case
        claims[key] = _render_claim(value)

    return CIMultiDictProxy(claims)


def summarize_claims(claims: Mapping[str, str]) -> dict[str, Optional[str]]:
    """Select the claims of interest for the greeting response.

    ``scopes_or_roles`` carries the delegated ``scp`` claim when present,
    otherwise the application ``roles`` claim.
    """
    summary: dict[str, Optional[str]] = {
        claim: claims.get(claim) for claim in SUMMARY_CLAIMS
    }
    if "scp" in claims:
        summary["scopes_or_roles"] = claims["scp"]
    else:
        summary["scopes_or_roles"] = claims.get("roles")
    return summary
