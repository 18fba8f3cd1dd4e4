import asyncio

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import PlainTextResponse

from app.core.config import Settings
from app.core.exceptions import MalformedPayloadError
from app.core.security import SIGNATURE_HEADER
from app.deps import get_app_settings, get_ledger_store
from app.services import payments as payments_service
from app.storage.base import LedgerStore

router = APIRouter()


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(None, alias=SIGNATURE_HEADER),
    settings: Settings = Depends(get_app_settings),
    store: LedgerStore = Depends(get_ledger_store),
):
    """Stripe webhook: charge.succeeded -> grant credits and record purchase (idempotent per event id)."""
    try:
        body = await asyncio.wait_for(request.body(), timeout=settings.body_read_timeout_seconds)
    except asyncio.TimeoutError as e:
        raise MalformedPayloadError("Timed out reading request body") from e
    return await payments_service.handle_webhook(body, stripe_signature, store, settings)


@router.api_route(
    "/webhook",
    methods=["GET", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"],
    include_in_schema=False,
)
async def stripe_webhook_method_not_allowed():
    return PlainTextResponse("Method Not Allowed", status_code=405, headers={"Allow": "POST"})
