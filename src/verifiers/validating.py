"""Verifier wrapper that validates event data after the signature check."""

import logging
from typing import Union

from src.events.models import VerifyResult
from src.router.validation import SchemaRegistry, check_known
from src.verifiers.base import Headers, Verifier, run_verifier

logger = logging.getLogger(__name__)


class ValidatingVerifier:
    """Runs another verifier, then validates the event against a SchemaRegistry.

    Schema mismatches raise WebhookValidationError and unregistered types
    (when ``allow_unknown_events`` is False) raise UnknownEventTypeError.
    Both are PayloadErrors, so adapters answer 400 and stream consumers
    discard the entry.
    """

    def __init__(
        self,
        verifier: Verifier,
        registry: SchemaRegistry,
        allow_unknown_events: bool = True,
    ):
        self.verifier = verifier
        self.registry = registry
        self.allow_unknown_events = allow_unknown_events

    async def __call__(self, raw_body: Union[bytes, str], headers: Headers) -> VerifyResult:
        result = await run_verifier(self.verifier, raw_body, headers)
        if not check_known(self.registry, result.event, self.allow_unknown_events):
            logger.debug(f"No schema for {result.event.type}, passing through")
            return result
        event = self.registry.validate(result.event)
        return VerifyResult(event=event, raw=result.raw)


def create_validating_verifier(
    verifier: Verifier,
    registry: SchemaRegistry,
    allow_unknown_events: bool = True,
) -> ValidatingVerifier:
    """Wrap a verifier so verified events are also checked against their schemas.

    Example:
        verifier = create_validating_verifier(StripeVerifier(secret), registry)
    """
    return ValidatingVerifier(verifier, registry, allow_unknown_events=allow_unknown_events)
