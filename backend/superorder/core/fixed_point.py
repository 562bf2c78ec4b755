"""
Fixed-point helpers.

Amounts are integers in asset base units, prices are integers scaled by
PRICE_SCALE (18 decimals). Divisions round down, matching what a settlement
engine would compute.
"""
from decimal import Decimal, ROUND_DOWN

PRICE_DECIMALS = 18
PRICE_SCALE = 10 ** PRICE_DECIMALS
BPS = 10_000
MAX_ASSET_DECIMALS = 18


def to_fixed(value, decimals: int = PRICE_DECIMALS) -> int:
    """
    Converts a human value (str, int, Decimal or float) into base units.
    """
    scaled = Decimal(str(value)) * (Decimal(10) ** decimals)
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_DOWN))


def from_fixed(value: int, decimals: int = PRICE_DECIMALS) -> Decimal:
    return Decimal(value) / (Decimal(10) ** decimals)


def normalize_amount(amount: int, decimals: int) -> int:
    """Rescales an amount with `decimals` places to 18 places."""
    return amount * 10 ** (PRICE_DECIMALS - decimals)


def denormalize_amount(amount: int, decimals: int) -> int:
    """Rescales an 18-place amount back to `decimals` places, rounding down."""
    return amount // 10 ** (PRICE_DECIMALS - decimals)


def relative_price(answer_a: int, decimals_a: int, answer_b: int, decimals_b: int) -> int:
    """
    Price of asset A in units of asset B at PRICE_SCALE, given two feed answers
    quoted against a common reference with their own precisions.
    """
    return answer_a * PRICE_SCALE * 10 ** decimals_b // (answer_b * 10 ** decimals_a)


def apply_bps_discount(amount: int, bps: int) -> int:
    return amount * (BPS - bps) // BPS


def deviation_bps(new_value: int, reference: int) -> int:
    return abs(new_value - reference) * BPS // reference


def share_bps(part: int, whole: int) -> int:
    if whole == 0:
        return 0
    return part * BPS // whole
