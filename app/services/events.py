"""Stripe event payloads: parse verified bytes into a PaymentEvent and classify it."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any

import orjson
from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError

from app.core.exceptions import MalformedPayloadError


class EventType(str, Enum):
    PAYMENT_FAILED = "payment_failed"
    CHARGE_SUCCEEDED = "charge_succeeded"
    OTHER = "other"


STRIPE_EVENT_TYPES = {
    "payment_intent.payment_failed": EventType.PAYMENT_FAILED,
    "charge.succeeded": EventType.CHARGE_SUCCEEDED,
}


class PaymentEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: EventType
    raw_type: str
    amount_minor_units: int = 0
    billing_email: str | None = None
    occurred_at: datetime
    status_label: str = ""
    failure_message: str | None = None


# Subset of the Stripe envelope and charge / payment_intent objects we read.
class _BillingDetails(BaseModel):
    email: str | None = None


class _PaymentError(BaseModel):
    message: str | None = None


class _PaymentObject(BaseModel):
    amount: Annotated[StrictInt, Field(ge=0)] | None = None
    billing_details: _BillingDetails | None = None
    created: StrictInt | None = None
    status: str | None = None
    last_payment_error: _PaymentError | None = None


class _EventData(BaseModel):
    object: dict[str, Any]


class _EventEnvelope(BaseModel):
    id: str = Field(min_length=1)
    type: str = Field(min_length=1)
    created: StrictInt | None = None
    data: _EventData


def classify(type_tag: str) -> EventType:
    return STRIPE_EVENT_TYPES.get(type_tag, EventType.OTHER)


def from_unix_seconds(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def to_iso_millis(value: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and Z suffix, e.g. 2023-07-22T04:26:40.000Z."""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_event(payload: bytes) -> PaymentEvent:
    """Build a PaymentEvent from an already verified request body."""
    try:
        raw = orjson.loads(payload)
    except orjson.JSONDecodeError as e:
        raise MalformedPayloadError("Body is not valid JSON") from e
    if not isinstance(raw, dict):
        raise MalformedPayloadError("Body must be a JSON object")
    try:
        envelope = _EventEnvelope.model_validate(raw)
    except ValidationError as e:
        raise MalformedPayloadError("Invalid event envelope", details={"errors": _errors(e)}) from e

    event_type = classify(envelope.type)
    if event_type is EventType.OTHER:
        if envelope.created is None:
            raise MalformedPayloadError("Event is missing created timestamp")
        return PaymentEvent(
            id=envelope.id,
            type=event_type,
            raw_type=envelope.type,
            occurred_at=from_unix_seconds(envelope.created),
        )

    try:
        obj = _PaymentObject.model_validate(envelope.data.object)
    except ValidationError as e:
        raise MalformedPayloadError("Invalid event object", details={"errors": _errors(e)}) from e

    if event_type is EventType.CHARGE_SUCCEEDED:
        if obj.amount is None:
            raise MalformedPayloadError("Charge is missing amount")
        if obj.created is None:
            raise MalformedPayloadError("Charge is missing created timestamp")
    created = obj.created if obj.created is not None else envelope.created
    if created is None:
        raise MalformedPayloadError("Event is missing created timestamp")

    email = obj.billing_details.email if obj.billing_details else None
    return PaymentEvent(
        id=envelope.id,
        type=event_type,
        raw_type=envelope.type,
        amount_minor_units=obj.amount or 0,
        billing_email=(email or "").strip() or None,
        occurred_at=from_unix_seconds(created),
        status_label=obj.status or "",
        failure_message=obj.last_payment_error.message if obj.last_payment_error else None,
    )


def _errors(exc: ValidationError) -> list[dict[str, Any]]:
    return [{"loc": list(err["loc"]), "msg": err["msg"]} for err in exc.errors()]
