from app.core.exceptions import UserNotFoundError
from app.storage.base import LedgerStore, bounded


async def resolve_user_id(store: LedgerStore, billing_email: str | None, timeout: float = 5.0) -> str:
    """Map a Stripe billing email to an account id; UserNotFoundError if absent or unknown."""
    email = (billing_email or "").strip()
    if not email:
        raise UserNotFoundError("Charge has no billing email")
    user_id = await bounded(store.find_user_id_by_email(email), timeout, "find_user")
    if not user_id:
        raise UserNotFoundError("No account for billing email", details={"billing_email": email})
    return user_id
