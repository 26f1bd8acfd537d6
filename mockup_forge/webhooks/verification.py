"""Webhook signature verification, constant-time HMAC.

Security contract:
- Comparison uses hmac.compare_digest() (constant-time, no timing attacks)
- Verification failure -> 401 immediately, no payload processing
- Empty secret -> verification always fails (fail-closed)
- Pure function of (body, header, secret): no environment reads
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-shopify-hmac-sha256"


def compute_signature(body: bytes, secret: str) -> str:
    """Base64 HMAC-SHA256 of ``body``, the format the store sends."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_shopify(body: bytes, signature_header: str | None, secret: str) -> bool:
    """Verify a webhook HMAC-SHA256 signature.

    Args:
        body: Raw request body bytes, exactly as received
        signature_header: Value of the X-Shopify-Hmac-SHA256 header
        secret: Shared webhook secret

    Returns:
        True if the signature matches the body
    """
    if not secret:
        logger.warning("Webhook secret is empty, rejecting webhook")
        return False
    if not signature_header:
        return False
    return hmac.compare_digest(compute_signature(body, secret), signature_header)
