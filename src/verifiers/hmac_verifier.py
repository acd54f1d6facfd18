"""HMAC-SHA256 signature verifier."""

import hashlib
import hmac
import json
import logging
from typing import Optional, Union

from src.events.exceptions import VerificationError
from src.events.models import VerifyResult, parse_event
from src.verifiers.base import Headers, normalize_headers, to_bytes

logger = logging.getLogger(__name__)

DEFAULT_SIGNATURE_HEADER = "x-webhook-signature"


class HMACVerifier:
    """Verifies a hex HMAC-SHA256 digest of the raw body sent in a header.

    ``prefix`` covers senders that tag the digest, e.g. GitHub's
    ``sha256=<hex>`` in ``X-Hub-Signature-256``.
    """

    def __init__(
        self,
        secret: Union[str, bytes],
        header: str = DEFAULT_SIGNATURE_HEADER,
        prefix: str = "",
    ):
        if not secret:
            raise ValueError("HMAC verifier requires a non-empty secret")
        self.secret = secret.encode() if isinstance(secret, str) else secret
        self.header = header.lower()
        self.prefix = prefix

    def sign_payload(self, payload: Union[bytes, str]) -> str:
        """Generate the header value for a payload.

        Args:
            payload: Raw request body

        Returns:
            Prefixed hex-encoded signature
        """
        digest = hmac.new(self.secret, to_bytes(payload), hashlib.sha256).hexdigest()
        return f"{self.prefix}{digest}"

    def verify_signature(self, payload: Union[bytes, str], signature: Optional[str]) -> bool:
        """Check a signature against the payload in constant time."""
        if not signature:
            return False
        expected = self.sign_payload(payload)
        return hmac.compare_digest(expected.encode(), signature.strip().encode())

    def __call__(self, raw_body: Union[bytes, str], headers: Headers) -> VerifyResult:
        signature = normalize_headers(headers).get(self.header)
        if not signature:
            logger.warning(f"No signature provided in {self.header}")
            raise VerificationError(f"Missing {self.header} header")

        if not self.verify_signature(raw_body, signature):
            raise VerificationError("Invalid webhook signature")

        event = parse_event(raw_body)
        return VerifyResult(event=event, raw=json.loads(to_bytes(raw_body)))
