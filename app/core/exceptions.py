from typing import Any

from fastapi import Request, status
from fastapi.responses import ORJSONResponse, PlainTextResponse


class AppError(Exception):
    """Base application error with consistent schema."""

    def __init__(
        self,
        message: str,
        code: str = "ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class UserNotFoundError(AppError):
    def __init__(self, message: str = "User not found", details: dict[str, Any] | None = None):
        super().__init__(message, code="USER_NOT_FOUND", status_code=status.HTTP_404_NOT_FOUND, details=details)


class WebhookError(AppError):
    """Errors answered to the payment processor as plain text."""


class TransientStorageError(WebhookError):
    """Storage timed out or lost its connection; safe for the caller to retry."""

    def __init__(self, message: str = "Storage temporarily unavailable", details: dict[str, Any] | None = None):
        super().__init__(
            message,
            code="STORAGE_UNAVAILABLE",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=details,
        )


class InvalidSignatureError(WebhookError):
    def __init__(self, message: str = "Invalid webhook signature"):
        super().__init__(message, code="INVALID_SIGNATURE", status_code=status.HTTP_400_BAD_REQUEST)


class MalformedPayloadError(WebhookError):
    def __init__(self, message: str = "Malformed webhook payload", details: dict[str, Any] | None = None):
        super().__init__(message, code="MALFORMED_PAYLOAD", status_code=status.HTTP_400_BAD_REQUEST, details=details)


class WebhookNotConfiguredError(WebhookError):
    def __init__(self, message: str = "Webhook secret not configured"):
        super().__init__(message, code="WEBHOOK_NOT_CONFIGURED", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


class WebhookInternalError(WebhookError):
    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, code="INTERNAL_ERROR", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


async def webhook_exception_handler(request: Request, exc: WebhookError) -> PlainTextResponse:
    return PlainTextResponse(f"Webhook Error: {exc.message}", status_code=exc.status_code)


async def generic_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    from app.core.logging import get_logger
    get_logger(__name__).exception("unhandled_exception", exc_info=exc)
    body = {
        "error": {
            "message": "Internal server error",
            "code": "INTERNAL_ERROR",
            "details": {},
        }
    }
    if hasattr(request.state, "request_id"):
        body["request_id"] = request.state.request_id
    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body,
    )
