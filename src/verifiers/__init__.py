"""Verifiers that turn raw webhook bodies into trusted events."""

from src.verifiers.base import Verifier, normalize_headers, run_verifier
from src.verifiers.hmac_verifier import HMACVerifier
from src.verifiers.stripe import StripeVerifier, create_stripe_verifier
from src.verifiers.validating import ValidatingVerifier, create_validating_verifier

__all__ = [
    "Verifier",
    "HMACVerifier",
    "StripeVerifier",
    "create_stripe_verifier",
    "ValidatingVerifier",
    "create_validating_verifier",
    "normalize_headers",
    "run_verifier",
]
