"""MongoDB ledger store (Beanie documents on a Motor client)."""

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

from beanie import PydanticObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.core.config import Settings
from app.core.exceptions import TransientStorageError, UserNotFoundError
from app.db.init import init_db
from app.models.purchase import Purchase
from app.models.user import User
from app.storage.base import LedgerStore, PurchaseRecord


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except DuplicateKeyError:
        raise
    except PyMongoError as e:
        raise TransientStorageError(f"{operation} failed: {e.__class__.__name__}") from e


def _object_id(user_id: str) -> PydanticObjectId | None:
    try:
        return PydanticObjectId(user_id)
    except (InvalidId, TypeError):
        return None


class MongoLedgerStore(LedgerStore):
    def __init__(self, client: AsyncIOMotorClient, applied_event_window: int = 1000) -> None:
        self._client = client
        self._window = applied_event_window

    @classmethod
    async def connect(cls, settings: Settings) -> "MongoLedgerStore":
        client = await init_db(settings)
        return cls(client, applied_event_window=settings.applied_event_window)

    async def find_user_id_by_email(self, email: str) -> str | None:
        with _storage_errors("find_user"):
            user = await User.find_one(User.email == email)
        return str(user.id) if user else None

    async def apply_grant(self, user_id: str, event_id: str, credits: int) -> bool:
        oid = _object_id(user_id)
        if oid is None:
            raise UserNotFoundError("Invalid user id", details={"user_id": user_id})
        # Single-document update: the increment and the applied-event marker land together or not at all.
        with _storage_errors("apply_grant"):
            result = await User.find_one(
                {"_id": oid, "applied_event_ids": {"$ne": event_id}}
            ).update(
                {
                    "$inc": {"credits": credits},
                    "$push": {"applied_event_ids": {"$each": [event_id], "$slice": -self._window}},
                    "$set": {"updated_at": datetime.utcnow()},
                }
            )
        if result.modified_count == 1:
            return True
        # No match: either the event was already applied or the user is gone.
        with _storage_errors("apply_grant"):
            exists = await User.find({"_id": oid}).count()
        if not exists:
            raise UserNotFoundError("No account for user id", details={"user_id": user_id})
        return False

    async def insert_purchase(self, record: PurchaseRecord) -> bool:
        doc = Purchase(
            purchase_id=record.id,
            event_id=record.event_id,
            user_id=record.user_id,
            credit_amount=record.credit_amount,
            amount_minor_units=record.amount_minor_units,
            status=record.status,
            created_at=record.created_at,
        )
        try:
            with _storage_errors("insert_purchase"):
                await doc.insert()
        except DuplicateKeyError:
            return False
        return True

    async def get_balance(self, user_id: str) -> int | None:
        oid = _object_id(user_id)
        if oid is None:
            return None
        with _storage_errors("get_balance"):
            user = await User.get(oid)
        return user.credits if user else None

    async def get_purchase(self, event_id: str) -> PurchaseRecord | None:
        with _storage_errors("get_purchase"):
            doc = await Purchase.find_one(Purchase.event_id == event_id)
        if not doc:
            return None
        return PurchaseRecord(
            id=doc.purchase_id,
            event_id=doc.event_id,
            user_id=doc.user_id,
            credit_amount=doc.credit_amount,
            amount_minor_units=doc.amount_minor_units,
            status=doc.status,
            created_at=doc.created_at,
        )

    async def close(self) -> None:
        self._client.close()
