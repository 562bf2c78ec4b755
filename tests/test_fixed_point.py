from decimal import Decimal

from superorder.core.fixed_point import (
    BPS,
    PRICE_SCALE,
    apply_bps_discount,
    denormalize_amount,
    deviation_bps,
    from_fixed,
    normalize_amount,
    relative_price,
    share_bps,
    to_fixed,
)


def test_to_fixed_and_back():
    assert to_fixed("4000", 8) == 400_000_000_000
    assert to_fixed(Decimal("0.1")) == 10 ** 17
    assert from_fixed(to_fixed("1.5")) == Decimal("1.5")


def test_to_fixed_rounds_down():
    assert to_fixed("0.123456789", 8) == 12_345_678


def test_normalize_round_trip_for_usdc_amounts():
    assert normalize_amount(1_000_000, 6) == 10 ** 18
    assert denormalize_amount(10 ** 18, 6) == 1_000_000
    assert denormalize_amount(10 ** 12 - 1, 6) == 0


def test_relative_price_with_mixed_precisions():
    # ETH/USD 4000 at 8 decimals over USDC/USD 1 at 6 decimals
    price = relative_price(4000 * 10 ** 8, 8, 10 ** 6, 6)
    assert price == 4000 * PRICE_SCALE


def test_bps_helpers():
    assert apply_bps_discount(10_000, 100) == 9_900
    assert deviation_bps(110, 100) == 1000
    assert deviation_bps(90, 100) == 1000
    assert share_bps(1, 4) == 2500
    assert share_bps(5, 0) == 0
    assert BPS == 10_000
