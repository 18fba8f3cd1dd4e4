"""Stripe webhook pipeline: verify, classify, grant credits idempotently."""

from typing import Awaitable, Callable

from app.core.config import Settings
from app.core.exceptions import (
    InvalidSignatureError,
    MalformedPayloadError,
    TransientStorageError,
    UserNotFoundError,
    WebhookInternalError,
    WebhookNotConfiguredError,
)
from app.core.logging import bind_event_id, get_logger
from app.core.security import verify_stripe_signature
from app.services import credits as credits_service
from app.services.events import EventType, PaymentEvent, parse_event
from app.services.pricing import grant_for_amount
from app.services.users import resolve_user_id
from app.storage.base import LedgerStore

log = get_logger(__name__)

ACK = {"received": True}

Handler = Callable[[PaymentEvent, LedgerStore, Settings], Awaitable[None]]


async def _handle_payment_failed(event: PaymentEvent, store: LedgerStore, settings: Settings) -> None:
    log.warning(
        "payment_failed",
        event_id=event.id,
        reason=event.failure_message or "unknown",
        status=event.status_label,
        amount_minor_units=event.amount_minor_units,
    )


async def _handle_charge_succeeded(event: PaymentEvent, store: LedgerStore, settings: Settings) -> None:
    grant = grant_for_amount(event.amount_minor_units)
    if grant.credits == 0:
        log.warning("charge_amount_unmapped", event_id=event.id, amount_minor_units=event.amount_minor_units)
    user_id = await resolve_user_id(store, event.billing_email, timeout=settings.storage_timeout_seconds)
    await credits_service.apply_purchase(
        store,
        user_id,
        grant,
        event,
        timeout=settings.storage_timeout_seconds,
    )


async def _handle_unhandled(event: PaymentEvent, store: LedgerStore, settings: Settings) -> None:
    log.info("webhook_event_unhandled", event_id=event.id, event_type=event.raw_type)


HANDLERS: dict[EventType, Handler] = {
    EventType.PAYMENT_FAILED: _handle_payment_failed,
    EventType.CHARGE_SUCCEEDED: _handle_charge_succeeded,
    EventType.OTHER: _handle_unhandled,
}


async def handle_webhook(
    payload: bytes,
    signature: str | None,
    store: LedgerStore,
    settings: Settings,
) -> dict:
    """
    Verify and apply one Stripe delivery. Returns the acknowledgment body.

    Raises WebhookError subclasses for the cases the processor must see:
    bad signature or payload (400), transient storage failure (503, retried by Stripe),
    anything unexpected (500). Unknown users and ignored event types are acknowledged.
    """
    try:
        verify_stripe_signature(
            payload,
            signature,
            settings.stripe_webhook_secret,
            tolerance=settings.stripe_webhook_tolerance_seconds,
        )
    except WebhookNotConfiguredError:
        log.error("webhook_not_configured")
        raise
    except InvalidSignatureError as e:
        log.warning("webhook_invalid_signature", reason=e.message)
        raise

    try:
        event = parse_event(payload)
    except MalformedPayloadError as e:
        log.warning("webhook_malformed_payload", reason=e.message, **e.details)
        raise

    bind_event_id(event.id)
    log.info("webhook_received", event_id=event.id, event_type=event.raw_type)

    try:
        await HANDLERS[event.type](event, store, settings)
    except UserNotFoundError as e:
        log.warning(
            "webhook_user_not_found",
            event_id=event.id,
            billing_email=event.billing_email,
            reason=e.message,
        )
    except TransientStorageError as e:
        log.error("webhook_transient_storage_failure", event_id=event.id, reason=e.message)
        raise
    except Exception as e:
        log.exception("webhook_internal_error", event_id=event.id, event_type=event.raw_type)
        raise WebhookInternalError() from e
    return ACK
