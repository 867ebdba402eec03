"""
Authentication module for claim extraction and the OBO flow.
"""

from .claims import base64url_decode, decode_claims, summarize_claims
from .obo import OnBehalfOfTokenClient

__all__ = [
    "OnBehalfOfTokenClient",
    "base64url_decode",
    "decode_claims",
    "summarize_claims",
]
