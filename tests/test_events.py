from datetime import datetime, timezone

import pytest

from app.core.exceptions import MalformedPayloadError
from app.services.events import EventType, classify, parse_event, to_iso_millis
from conftest import charge_event, encode, payment_failed_event


def test_classify_known_and_unknown_types():
    assert classify("charge.succeeded") is EventType.CHARGE_SUCCEEDED
    assert classify("payment_intent.payment_failed") is EventType.PAYMENT_FAILED
    assert classify("customer.created") is EventType.OTHER
    assert classify("") is EventType.OTHER


def test_parse_charge_succeeded():
    event = parse_event(encode(charge_event(event_id="evt_9", amount=3500, email=" b@y.com ")))
    assert event.id == "evt_9"
    assert event.type is EventType.CHARGE_SUCCEEDED
    assert event.raw_type == "charge.succeeded"
    assert event.amount_minor_units == 3500
    assert event.billing_email == "b@y.com"
    assert event.status_label == "succeeded"
    assert event.occurred_at == datetime(2023, 7, 22, 4, 26, 40, tzinfo=timezone.utc)


def test_parse_charge_without_email():
    event = parse_event(encode(charge_event(email=None)))
    assert event.billing_email is None


def test_parse_payment_failed_keeps_reason():
    event = parse_event(encode(payment_failed_event(message="Insufficient funds")))
    assert event.type is EventType.PAYMENT_FAILED
    assert event.failure_message == "Insufficient funds"
    assert event.billing_email is None


def test_parse_other_type_ignores_object_shape():
    raw = {
        "id": "evt_other",
        "type": "customer.updated",
        "created": 1690000000,
        "data": {"object": {"amount": "not-a-number", "created": "yesterday"}},
    }
    event = parse_event(encode(raw))
    assert event.type is EventType.OTHER
    assert event.raw_type == "customer.updated"
    assert event.amount_minor_units == 0


def test_event_is_immutable():
    event = parse_event(encode(charge_event()))
    with pytest.raises(Exception):
        event.amount_minor_units = 8000  # type: ignore[misc]


@pytest.mark.parametrize(
    "payload",
    [
        b"not json",
        b"[1, 2, 3]",
        b'{"type": "charge.succeeded", "data": {"object": {}}}',
        b'{"id": "evt_1", "data": {"object": {}}}',
        b'{"id": "evt_1", "type": "charge.succeeded"}',
        b'{"id": "evt_1", "type": "charge.succeeded", "data": {"object": []}}',
    ],
)
def test_structurally_invalid_payloads(payload):
    with pytest.raises(MalformedPayloadError):
        parse_event(payload)


def test_charge_requires_integer_amount():
    raw = charge_event()
    raw["data"]["object"]["amount"] = "2000"
    with pytest.raises(MalformedPayloadError):
        parse_event(encode(raw))
    del raw["data"]["object"]["amount"]
    with pytest.raises(MalformedPayloadError):
        parse_event(encode(raw))


def test_charge_requires_created():
    raw = charge_event()
    del raw["data"]["object"]["created"]
    with pytest.raises(MalformedPayloadError):
        parse_event(encode(raw))


def test_negative_amount_is_malformed():
    with pytest.raises(MalformedPayloadError):
        parse_event(encode(charge_event(amount=-500)))


def test_to_iso_millis():
    assert to_iso_millis(datetime(2023, 7, 22, 4, 26, 40, tzinfo=timezone.utc)) == "2023-07-22T04:26:40.000Z"
    assert to_iso_millis(datetime(2024, 1, 1, 0, 0, 0, 123456, tzinfo=timezone.utc)) == "2024-01-01T00:00:00.123Z"
