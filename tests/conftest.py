"""Pytest configuration and shared fixtures."""

import json

import pytest

from src.events.models import WebhookEvent
from src.router.router import WebhookRouter
from src.verifiers.hmac_verifier import HMACVerifier


TEST_SECRET = "test-webhook-secret"


@pytest.fixture
def secret():
    """Shared signing secret."""
    return TEST_SECRET


@pytest.fixture
def verifier(secret):
    """HMAC verifier using the test secret."""
    return HMACVerifier(secret)


@pytest.fixture
def router():
    """Empty router."""
    return WebhookRouter()


@pytest.fixture
def make_event():
    """Factory for webhook events."""
    def _make(event_type="x.done", event_id="evt_1", data=None):
        return WebhookEvent(id=event_id, type=event_type, data=data if data is not None else {"k": 1})
    return _make


@pytest.fixture
def sample_body():
    """Raw body of a valid webhook."""
    return json.dumps({"id": "evt_1", "type": "x.done", "data": {"k": 1}}).encode()
