"""
Webhook signature verification for the payment gateway.

- Constant-time signature comparison
- Timestamp tolerance check against replayed deliveries
- Raw body is read once and returned so the caller parses exactly what was signed
"""

import hashlib
import hmac
import logging
import time
from typing import Optional

from fastapi import Request

from .exceptions import UnauthorizedError

logger = logging.getLogger(__name__)

# Maximum age of webhook in seconds (5 minutes)
MAX_WEBHOOK_AGE_SECONDS = 300


def constant_time_compare(a: str, b: str) -> bool:
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_timestamp(
    timestamp: Optional[str], max_age: int = MAX_WEBHOOK_AGE_SECONDS, now: Optional[float] = None
) -> bool:
    """
    Reject deliveries signed more than ``max_age`` seconds away from ``now``.

    Args:
        timestamp: Unix timestamp as string
        max_age: Maximum age in seconds
        now: Current unix time (defaults to time.time())
    """
    try:
        webhook_time = int(timestamp)
    except (ValueError, TypeError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False

    current_time = int(now if now is not None else time.time())
    age = abs(current_time - webhook_time)
    if age > max_age:
        logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
        return False
    return True


def parse_stripe_signature_header(header: str) -> tuple[Optional[str], list[str]]:
    """Split 't=<timestamp>,v1=<sig>[,v1=<sig>...]' into the timestamp and its v1 signatures"""
    timestamp = None
    signatures = []
    for item in header.split(","):
        key, _, value = item.strip().partition("=")
        if key == "t":
            timestamp = value
        elif key == "v1" and value:
            signatures.append(value)
    return timestamp, signatures


async def verify_stripe_webhook(request: Request, secret: str) -> bytes:
    """
    Verify a Stripe webhook delivery and return its raw body.

    Stripe signs ``"<timestamp>.<raw body>"`` with HMAC-SHA256 and sends
    ``Stripe-Signature: t=<timestamp>,v1=<signature>``.

    Raises:
        UnauthorizedError: missing, malformed, stale or mismatched signature
    """
    raw_body = await request.body()
    signature_header = request.headers.get("Stripe-Signature", "")

    if not signature_header:
        logger.warning("🚫 Stripe webhook missing signature header")
        raise UnauthorizedError("Missing webhook signature")

    timestamp, signatures = parse_stripe_signature_header(signature_header)
    if not timestamp or not signatures:
        logger.warning("🚫 Stripe webhook invalid signature format")
        raise UnauthorizedError("Invalid signature format")

    if not verify_timestamp(timestamp):
        raise UnauthorizedError("Webhook timestamp expired")

    signed_payload = f"{timestamp}.".encode("utf-8") + raw_body
    expected_signature = compute_hmac_sha256(secret, signed_payload)

    if not any(constant_time_compare(expected_signature, sig) for sig in signatures):
        logger.warning("🚫 Stripe webhook signature mismatch")
        raise UnauthorizedError("Invalid webhook signature")

    logger.debug("✅ Stripe webhook signature verified")
    return raw_body
