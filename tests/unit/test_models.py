"""Unit tests for the webhook event model."""

import dataclasses
import json

import pytest

from src.events.exceptions import PayloadError
from src.events.models import VerifyResult, WebhookEvent, parse_event


class TestParseEvent:
    """Tests for parse_event."""

    def test_parses_bytes(self):
        """Test that id/type/data match the parsed payload exactly."""
        body = b'{"id": "evt_1", "type": "x.done", "data": {"k": 1}}'

        event = parse_event(body)

        assert event == WebhookEvent(id="evt_1", type="x.done", data={"k": 1})

    def test_parses_str_and_dict(self):
        """Test that strings and decoded mappings are accepted."""
        payload = {"id": "evt_2", "type": "a.b", "data": {}}

        assert parse_event(json.dumps(payload)) == parse_event(payload)

    def test_extra_fields_are_ignored(self):
        """Test that provider-specific fields do not break parsing."""
        event = parse_event({"id": "evt_1", "type": "a", "data": {}, "livemode": False})

        assert event.type == "a"

    def test_invalid_json(self):
        """Test that a non-JSON body raises PayloadError."""
        with pytest.raises(PayloadError, match="not valid JSON"):
            parse_event(b"not-json")

    def test_non_object_json(self):
        """Test that a JSON array is rejected."""
        with pytest.raises(PayloadError):
            parse_event(b"[1, 2, 3]")

    @pytest.mark.parametrize("missing", ["id", "type", "data"])
    def test_missing_field(self, missing):
        """Test that each required field is enforced and named."""
        payload = {"id": "evt_1", "type": "x.done", "data": {"k": 1}}
        del payload[missing]

        with pytest.raises(PayloadError) as exc_info:
            parse_event(payload)

        assert exc_info.value.field == missing
        assert missing in str(exc_info.value)

    @pytest.mark.parametrize(
        "field,value",
        [("id", 123), ("id", ""), ("type", None), ("type", ["a"]), ("data", "text"), ("data", None)],
    )
    def test_wrong_type(self, field, value):
        """Test that fields of the wrong type are rejected."""
        payload = {"id": "evt_1", "type": "x.done", "data": {}}
        payload[field] = value

        with pytest.raises(PayloadError) as exc_info:
            parse_event(payload)

        assert exc_info.value.field == field

    def test_invalid_utf8(self):
        """Test that undecodable bytes raise PayloadError."""
        with pytest.raises(PayloadError):
            parse_event(b"\xff\xfe\xfa")


class TestWebhookEvent:
    """Tests for WebhookEvent immutability."""

    def test_type_cannot_be_changed(self):
        """Test that the routing discriminator is frozen."""
        event = WebhookEvent(id="evt_1", type="a", data={})

        with pytest.raises(dataclasses.FrozenInstanceError):
            event.type = "b"

    def test_replace_returns_new_event(self):
        """Test that replace leaves the original untouched."""
        event = WebhookEvent(id="evt_1", type="a", data={"k": 1})

        enriched = event.replace(data={"k": 1, "tenant": "acme"})

        assert enriched is not event
        assert event.data == {"k": 1}
        assert enriched.data["tenant"] == "acme"
        assert enriched.type == "a"

    def test_to_dict(self):
        event = WebhookEvent(id="evt_1", type="a", data={"k": 1})

        assert event.to_dict() == {"id": "evt_1", "type": "a", "data": {"k": 1}}

    def test_verify_result_raw_defaults_to_none(self):
        result = VerifyResult(event=WebhookEvent(id="e", type="t", data={}))

        assert result.raw is None
