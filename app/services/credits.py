"""Credit ledger: balance grant plus purchase row, applied once per Stripe event."""

import asyncio
import uuid
from enum import Enum

from app.core.exceptions import TransientStorageError
from app.core.logging import get_logger
from app.services.events import PaymentEvent, to_iso_millis
from app.services.pricing import CreditGrant
from app.storage.base import LedgerStore, PurchaseRecord, bounded

log = get_logger(__name__)


class LedgerResult(str, Enum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    REPAIRED = "repaired"


def build_purchase_record(user_id: str, grant: CreditGrant, event: PaymentEvent) -> PurchaseRecord:
    """Fresh row for an insert attempt; the id is never reused across retries."""
    return PurchaseRecord(
        id=str(uuid.uuid4()),
        event_id=event.id,
        user_id=user_id,
        credit_amount=grant.credits,
        amount_minor_units=grant.amount_minor_units,
        status=event.status_label,
        created_at=event.occurred_at,
    )


async def apply_purchase(
    store: LedgerStore,
    user_id: str,
    grant: CreditGrant,
    event: PaymentEvent,
    timeout: float = 5.0,
) -> LedgerResult:
    """
    Grant credits and append the purchase row for one charge event.

    An existing purchase row means the event was fully applied before. Otherwise the
    grant goes first: it is atomic in storage and keyed by event id, so a redelivery
    never increments twice. The purchase row is unique per event id, so a redelivery
    after a failed insert only fills in the missing row.
    Once started, the write runs to completion even if the caller is cancelled.
    """
    return await asyncio.shield(_write(store, user_id, grant, event, timeout))


async def _write(
    store: LedgerStore,
    user_id: str,
    grant: CreditGrant,
    event: PaymentEvent,
    timeout: float,
) -> LedgerResult:
    existing = await bounded(store.get_purchase(event.id), timeout, "get_purchase")
    if existing is not None:
        log.info("webhook_event_duplicate", event_id=event.id, user_id=user_id, purchase_id=existing.id)
        return LedgerResult.DUPLICATE

    granted = await bounded(store.apply_grant(user_id, event.id, grant.credits), timeout, "apply_grant")
    record = build_purchase_record(user_id, grant, event)
    try:
        inserted = await bounded(store.insert_purchase(record), timeout, "insert_purchase")
    except TransientStorageError:
        if granted:
            log.error(
                "ledger_discrepancy",
                event_id=event.id,
                user_id=user_id,
                credits=grant.credits,
                amount_minor_units=grant.amount_minor_units,
                detail="balance granted, purchase row missing",
            )
        raise

    if granted and inserted:
        log.info(
            "credits_granted",
            event_id=event.id,
            user_id=user_id,
            credits=grant.credits,
            amount_minor_units=grant.amount_minor_units,
            purchase_id=record.id,
            created_at=to_iso_millis(record.created_at),
        )
        return LedgerResult.APPLIED
    if inserted:
        log.warning(
            "ledger_repaired",
            event_id=event.id,
            user_id=user_id,
            credits=grant.credits,
            purchase_id=record.id,
        )
        return LedgerResult.REPAIRED
    if granted:
        # Concurrent redelivery raced past the row check after the event id aged out of the window.
        log.error(
            "ledger_discrepancy",
            event_id=event.id,
            user_id=user_id,
            credits=grant.credits,
            amount_minor_units=grant.amount_minor_units,
            detail="purchase row already present, balance granted again",
        )
        return LedgerResult.APPLIED
    log.info("webhook_event_duplicate", event_id=event.id, user_id=user_id)
    return LedgerResult.DUPLICATE
