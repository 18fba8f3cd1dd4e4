import hashlib
import hmac
import os
import time
from typing import Any, AsyncGenerator

import orjson
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Never reach for a real database in tests
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")

WEBHOOK_SECRET = "whsec_test_secret"
USER_EMAIL = "a@x.com"
USER_ID = "42"


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Stripe-Signature header value for payload."""
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.".encode() + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def charge_event(
    event_id: str = "evt_charge_1",
    amount: int = 2000,
    email: str | None = USER_EMAIL,
    created: int = 1690000000,
    status: str = "succeeded",
) -> dict[str, Any]:
    return {
        "id": event_id,
        "object": "event",
        "type": "charge.succeeded",
        "created": created + 1,
        "data": {
            "object": {
                "id": "ch_123",
                "object": "charge",
                "amount": amount,
                "billing_details": {"email": email},
                "created": created,
                "status": status,
            }
        },
    }


def payment_failed_event(event_id: str = "evt_failed_1", message: str = "Your card was declined.") -> dict[str, Any]:
    return {
        "id": event_id,
        "object": "event",
        "type": "payment_intent.payment_failed",
        "created": 1690000100,
        "data": {
            "object": {
                "id": "pi_123",
                "object": "payment_intent",
                "amount": 2000,
                "created": 1690000000,
                "status": "requires_payment_method",
                "last_payment_error": {"message": message},
            }
        },
    }


def encode(event: dict[str, Any]) -> bytes:
    return orjson.dumps(event)


@pytest.fixture
def settings():
    from app.core.config import Settings
    return Settings(
        STORAGE_BACKEND="memory",
        STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET,
        STORAGE_TIMEOUT_SECONDS=0.5,
    )


@pytest.fixture
def store():
    from app.storage.memory import MemoryLedgerStore
    s = MemoryLedgerStore()
    s.add_user(USER_ID, USER_EMAIL)
    return s


@pytest_asyncio.fixture
async def client(settings, store) -> AsyncGenerator[AsyncClient, None]:
    from app.main import create_app
    app = create_app(settings=settings, ledger_store=store)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
