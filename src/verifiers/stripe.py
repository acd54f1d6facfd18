"""Stripe webhook signature verifier.

Stripe sends ``Stripe-Signature: t=<unix ts>,v1=<hex>[,v1=<hex>...]`` where
each v1 value is HMAC-SHA256 over ``"<t>.<raw body>"`` keyed with the
endpoint secret.
"""

import hashlib
import hmac
import json
import logging
import time
from typing import Optional, Union

from src.events.exceptions import VerificationError
from src.events.models import VerifyResult, parse_event
from src.verifiers.base import Headers, normalize_headers, to_bytes

logger = logging.getLogger(__name__)

STRIPE_SIGNATURE_HEADER = "stripe-signature"
DEFAULT_TOLERANCE = 300  # seconds


def _parse_header(header: str) -> tuple[int, list[str]]:
    timestamp: Optional[int] = None
    signatures: list[str] = []
    for item in header.split(","):
        key, sep, value = item.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise VerificationError("Malformed Stripe-Signature header") from None
        elif key == "v1":
            signatures.append(value)

    if timestamp is None or not signatures:
        raise VerificationError("Malformed Stripe-Signature header")
    return timestamp, signatures


class StripeVerifier:
    """Verifier for Stripe's timestamped signature scheme."""

    def __init__(self, secret: str, tolerance: int = DEFAULT_TOLERANCE):
        if not secret:
            raise ValueError("Stripe verifier requires a webhook secret")
        self.secret = secret.encode("utf-8")
        self.tolerance = tolerance

    def _digest(self, timestamp: int, payload: bytes) -> str:
        signed = f"{timestamp}.".encode("utf-8") + payload
        return hmac.new(self.secret, signed, hashlib.sha256).hexdigest()

    def sign(self, payload: Union[bytes, str], timestamp: Optional[int] = None) -> str:
        """Build a Stripe-Signature header value, mainly for tests."""
        ts = int(time.time()) if timestamp is None else timestamp
        return f"t={ts},v1={self._digest(ts, to_bytes(payload))}"

    def __call__(self, raw_body: Union[bytes, str], headers: Headers) -> VerifyResult:
        header = normalize_headers(headers).get(STRIPE_SIGNATURE_HEADER)
        if not header:
            raise VerificationError("Missing stripe-signature header")

        timestamp, signatures = _parse_header(header)
        payload = to_bytes(raw_body)
        expected = self._digest(timestamp, payload)
        if not any(hmac.compare_digest(expected.encode(), sig.encode()) for sig in signatures):
            raise VerificationError("No signatures found matching the expected signature for payload")

        if self.tolerance > 0:
            age = abs(time.time() - timestamp)
            if age > self.tolerance:
                logger.warning(f"Stripe timestamp outside tolerance: {age:.0f}s > {self.tolerance}s")
                raise VerificationError("Timestamp outside the tolerance zone")

        event = parse_event(payload)
        return VerifyResult(event=event, raw=json.loads(payload))


def create_stripe_verifier(secret: str, tolerance: int = DEFAULT_TOLERANCE) -> StripeVerifier:
    """Create a verifier for a Stripe endpoint secret."""
    return StripeVerifier(secret, tolerance=tolerance)
