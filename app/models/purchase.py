from datetime import datetime

from beanie import Document, Indexed
from pydantic import Field


class Purchase(Document):
    """Append-only purchase row; one per processed charge event."""
    purchase_id: Indexed(str, unique=True)
    event_id: Indexed(str, unique=True)
    user_id: str
    credit_amount: int
    amount_minor_units: int
    status: str
    created_at: datetime  # charge time reported by Stripe
    recorded_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "purchases"
        indexes = [[("user_id", 1), ("created_at", -1)]]
