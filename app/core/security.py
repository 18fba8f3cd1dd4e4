import stripe

from app.core.exceptions import InvalidSignatureError, WebhookNotConfiguredError

SIGNATURE_HEADER = "Stripe-Signature"


def verify_stripe_signature(payload: bytes, signature: str | None, secret: str, tolerance: int = 300) -> None:
    """
    Check the Stripe-Signature header against the raw request bytes.

    The bytes must be exactly what was received: Stripe signs "<timestamp>.<body>",
    so any parse/re-serialize step before this call breaks verification.
    """
    if not secret:
        raise WebhookNotConfiguredError()
    if not signature or not signature.strip():
        raise InvalidSignatureError(f"Missing {SIGNATURE_HEADER} header")
    try:
        body = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidSignatureError("Payload is not valid UTF-8") from e
    try:
        stripe.WebhookSignature.verify_header(body, signature, secret, tolerance)
    except stripe.SignatureVerificationError as e:
        raise InvalidSignatureError(str(e.user_message or e)) from e
