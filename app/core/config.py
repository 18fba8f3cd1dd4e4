from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    env: str = Field(default="development", alias="ENV")
    debug: bool = Field(default=False, alias="DEBUG")

    # Storage
    storage_backend: Literal["mongo", "memory"] = Field(default="mongo", alias="STORAGE_BACKEND")
    mongodb_uri: str = Field(default="mongodb://localhost:27017", alias="MONGODB_URI")
    mongodb_db_name: str = Field(default="chartcredits", alias="MONGODB_DB_NAME")
    storage_timeout_seconds: float = Field(default=5.0, gt=0, alias="STORAGE_TIMEOUT_SECONDS")
    # Most recent event ids remembered per user for redelivery detection. A grant whose
    # purchase insert failed is protected only while its id is in this window: if more
    # grants for the same user push it out before Stripe retries, the retry grants again.
    applied_event_window: int = Field(default=1000, ge=1, alias="APPLIED_EVENT_WINDOW")

    # Stripe
    stripe_webhook_secret: str = Field(default="", alias="STRIPE_WEBHOOK_SECRET")
    stripe_webhook_tolerance_seconds: int = Field(default=300, ge=0, alias="STRIPE_WEBHOOK_TOLERANCE_SECONDS")
    body_read_timeout_seconds: float = Field(default=10.0, gt=0, alias="BODY_READ_TIMEOUT_SECONDS")

    # Sentry
    sentry_dsn: str | None = Field(default=None, alias="SENTRY_DSN")


@lru_cache
def get_settings() -> Settings:
    return Settings()
