"""Credit packs: charged amount (minor units) -> credits granted."""

from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

# One entry per pack; amounts are in cents.
PRICE_TABLE = MappingProxyType(
    {
        500: 20,
        2000: 100,
        3500: 250,
        8000: 750,
    }
)


class CreditGrant(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount_minor_units: int
    credits: int


def credits_for_amount(amount_minor_units: int) -> int:
    """Credits for a charged amount; unknown amounts grant nothing."""
    return PRICE_TABLE.get(amount_minor_units, 0)


def grant_for_amount(amount_minor_units: int) -> CreditGrant:
    return CreditGrant(amount_minor_units=amount_minor_units, credits=credits_for_amount(amount_minor_units))
