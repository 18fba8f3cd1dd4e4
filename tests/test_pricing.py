import pytest

from app.services.pricing import PRICE_TABLE, credits_for_amount, grant_for_amount


@pytest.mark.parametrize(
    "amount,credits",
    [(500, 20), (2000, 100), (3500, 250), (8000, 750)],
)
def test_price_table_packs(amount, credits):
    assert credits_for_amount(amount) == credits


@pytest.mark.parametrize("amount", [0, 1, 499, 501, 1000, 1999, 2001, 7999, 8001, 100000])
def test_unlisted_amounts_grant_nothing(amount):
    assert credits_for_amount(amount) == 0


def test_every_non_pack_amount_up_to_ten_thousand_is_zero():
    for amount in range(0, 10001):
        if amount in PRICE_TABLE:
            continue
        assert credits_for_amount(amount) == 0


def test_price_table_is_read_only():
    with pytest.raises(TypeError):
        PRICE_TABLE[100] = 1  # type: ignore[index]


def test_grant_for_amount():
    grant = grant_for_amount(3500)
    assert grant.amount_minor_units == 3500
    assert grant.credits == 250
    assert grant_for_amount(42).credits == 0
