from app.models.purchase import Purchase
from app.models.user import User

__all__ = [
    "Purchase",
    "User",
]
