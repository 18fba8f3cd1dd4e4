import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Awaitable, TypeVar

from pydantic import BaseModel, ConfigDict

from app.core.config import Settings, get_settings
from app.core.exceptions import TransientStorageError

T = TypeVar("T")


class PurchaseRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    event_id: str
    user_id: str
    credit_amount: int
    amount_minor_units: int
    status: str
    created_at: datetime


class LedgerStore(ABC):
    """Account/storage capabilities the webhook pipeline depends on."""

    @abstractmethod
    async def find_user_id_by_email(self, email: str) -> str | None:
        """Return the id of the account with this billing email, or None."""
        ...

    @abstractmethod
    async def apply_grant(self, user_id: str, event_id: str, credits: int) -> bool:
        """
        Atomically add credits to the user's balance and remember event_id.
        Returns False (and changes nothing) if event_id was already applied.
        Raises UserNotFoundError if no account has this id.
        """
        ...

    @abstractmethod
    async def insert_purchase(self, record: PurchaseRecord) -> bool:
        """Insert a purchase row; False if a row for record.event_id already exists."""
        ...

    @abstractmethod
    async def get_balance(self, user_id: str) -> int | None:
        ...

    @abstractmethod
    async def get_purchase(self, event_id: str) -> PurchaseRecord | None:
        ...

    async def close(self) -> None:
        return None


async def create_ledger_store(settings: Settings | None = None) -> LedgerStore:
    settings = settings or get_settings()
    if settings.storage_backend == "memory":
        from app.storage.memory import MemoryLedgerStore
        return MemoryLedgerStore(applied_event_window=settings.applied_event_window)
    from app.storage.mongo import MongoLedgerStore
    return await MongoLedgerStore.connect(settings)


async def bounded(awaitable: Awaitable[T], timeout: float, operation: str) -> T:
    """Await a storage call, turning a timeout into TransientStorageError."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise TransientStorageError(f"{operation} timed out after {timeout}s") from e
