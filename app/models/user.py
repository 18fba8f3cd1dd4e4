from datetime import datetime

from beanie import Document, Indexed
from pydantic import Field


class User(Document):
    """Account record owned by the account system; this service reads email and mutates credits."""
    email: Indexed(str)
    name: str = ""
    credits: int = 0
    # Recent Stripe event ids already granted; guards the $inc against redelivery
    applied_event_ids: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "users"
