import time
import uuid

from fastapi import FastAPI

from app.core.config import Settings, get_settings
from app.core.exceptions import (
    WebhookError,
    generic_exception_handler,
    webhook_exception_handler,
)
from app.core.logging import bind_request_id, configure_logging, get_logger
from app.routers import webhooks
from app.storage.base import LedgerStore, create_ledger_store

log = get_logger(__name__)


def create_app(settings: Settings | None = None, ledger_store: LedgerStore | None = None) -> FastAPI:
    """Build the API. A ledger_store passed in is used as-is and not closed on shutdown."""
    settings = settings or get_settings()
    configure_logging(debug=settings.debug)

    app = FastAPI(
        title="Chart Credits Billing API",
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.ledger_store = ledger_store
    app.state.owns_ledger_store = ledger_store is None

    @app.middleware("http")
    async def request_id_middleware(request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        bind_request_id(request_id)
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        log.info(
            "request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )
        response.headers["X-Request-ID"] = request_id
        return response

    app.add_exception_handler(WebhookError, webhook_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # Routers
    app.include_router(webhooks.router, prefix="/api", tags=["webhooks"])

    @app.on_event("startup")
    async def startup():
        if settings.sentry_dsn:
            import sentry_sdk
            sentry_sdk.init(dsn=settings.sentry_dsn, environment=settings.env, traces_sample_rate=0.1)
            log.info("startup", msg="Sentry enabled")
        if app.state.ledger_store is None:
            app.state.ledger_store = await create_ledger_store(settings)
            log.info("startup", msg="Ledger store ready", backend=settings.storage_backend)

    @app.on_event("shutdown")
    async def shutdown():
        if app.state.owns_ledger_store and app.state.ledger_store is not None:
            await app.state.ledger_store.close()
            app.state.ledger_store = None
            log.info("shutdown", msg="Ledger store closed")

    @app.get("/health")
    async def health():
        """Health check for load balancers and monitoring."""
        return {"status": "ok"}

    return app


app = create_app()
