"""Process-local ledger store for development and tests. Not shared across workers."""

from collections import deque

from app.core.exceptions import UserNotFoundError
from app.storage.base import LedgerStore, PurchaseRecord


class MemoryLedgerStore(LedgerStore):
    def __init__(self, applied_event_window: int = 1000) -> None:
        self._window = applied_event_window
        self._user_ids_by_email: dict[str, str] = {}
        self._balances: dict[str, int] = {}
        self._applied: dict[str, deque[str]] = {}
        self._purchases: dict[str, PurchaseRecord] = {}

    def add_user(self, user_id: str, email: str, credits: int = 0) -> None:
        self._user_ids_by_email[email] = user_id
        self._balances[user_id] = credits
        self._applied[user_id] = deque(maxlen=self._window)

    def purchases(self) -> list[PurchaseRecord]:
        return list(self._purchases.values())

    async def find_user_id_by_email(self, email: str) -> str | None:
        return self._user_ids_by_email.get(email)

    async def apply_grant(self, user_id: str, event_id: str, credits: int) -> bool:
        if user_id not in self._balances:
            raise UserNotFoundError("No account for user id", details={"user_id": user_id})
        applied = self._applied[user_id]
        if event_id in applied:
            return False
        self._balances[user_id] += credits
        applied.append(event_id)
        return True

    async def insert_purchase(self, record: PurchaseRecord) -> bool:
        if record.event_id in self._purchases:
            return False
        self._purchases[record.event_id] = record
        return True

    async def get_balance(self, user_id: str) -> int | None:
        return self._balances.get(user_id)

    async def get_purchase(self, event_id: str) -> PurchaseRecord | None:
        return self._purchases.get(event_id)
