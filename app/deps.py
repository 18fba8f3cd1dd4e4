"""Shared FastAPI dependencies."""

from fastapi import Request

from app.core.config import Settings
from app.storage.base import LedgerStore


def get_app_settings(request: Request) -> Settings:
    """Dependency: settings the application was built with."""
    return request.app.state.settings


def get_ledger_store(request: Request) -> LedgerStore:
    """Dependency: process-wide ledger store created at startup."""
    store = getattr(request.app.state, "ledger_store", None)
    if store is None:
        raise RuntimeError("Ledger store not initialised")
    return store
