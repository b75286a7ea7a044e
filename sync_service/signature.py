"""
signature.py — Webhook signature verification

Shopify signs every webhook with a base64-encoded HMAC-SHA256 of the raw request
body, keyed with the app's shared secret, and sends it in `X-Shopify-Hmac-Sha256`.
The digest must be computed over the exact bytes received, before any JSON parsing.
"""

import base64
import hashlib
import hmac
from typing import Optional

SIGNATURE_HEADER = "X-Shopify-Hmac-Sha256"


def compute_signature(raw_body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_webhook_signature(raw_body: bytes, signature: Optional[str], secret: str) -> bool:
    """
    Checks the signature header against the raw body in constant time.

    Args:
        raw_body (bytes): The unparsed request body.
        signature (str | None): Value of the signature header.
        secret (str): The shared webhook secret.

    Returns:
        bool: True only if the computed digest matches byte for byte.
    """
    if not signature:
        return False
    expected = compute_signature(raw_body, secret)
    return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))
