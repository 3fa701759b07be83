"""
Discount Calculator - turns a resolved rule and a cart line into an amount.

All arithmetic is done on Decimal at full precision; only the final
amount is quantized to the currency minor unit, using banker's rounding
(ROUND_HALF_EVEN) so that half-cent ties do not drift in one direction
across many lines.
"""
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_EVEN
from typing import Optional

from ..exceptions import CalculationError
from .models import CartLine, DiscountType, PricingRule

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# ISO 4217 currencies whose minor unit is not 2 decimals
ZERO_DECIMAL_CURRENCIES = frozenset({
    'BIF', 'CLP', 'DJF', 'GNF', 'ISK', 'JPY', 'KMF', 'KRW', 'PYG',
    'RWF', 'UGX', 'VND', 'VUV', 'XAF', 'XOF', 'XPF',
})
THREE_DECIMAL_CURRENCIES = frozenset({'BHD', 'IQD', 'JOD', 'KWD', 'LYD', 'OMR', 'TND'})


def minor_units(currency_code: Optional[str], default: int = 2) -> int:
    """Number of decimals in the smallest unit of a currency."""
    if not currency_code:
        return default
    code = currency_code.upper()
    if code in ZERO_DECIMAL_CURRENCIES:
        return 0
    if code in THREE_DECIMAL_CURRENCIES:
        return 3
    return default


def round_amount(amount: Decimal, decimals: int = 2, rounding: str = ROUND_HALF_EVEN) -> Decimal:
    """Quantize to the given number of decimals (half-to-even by default)."""
    return amount.quantize(Decimal(1).scaleb(-decimals), rounding=rounding)


def compute_amount(
    rule: PricingRule,
    line: CartLine,
    unit_price: Optional[Decimal] = None,
    remaining: Optional[Decimal] = None,
    decimals: Optional[int] = None,
    rounding: str = ROUND_HALF_EVEN,
) -> Decimal:
    """
    Compute the discount a rule grants on a line.

    Percentage: unit_price * quantity * value / 100, clamped to the line price.
    Fixed: value per item, capped at the line price.

    `remaining` further caps the amount to what is left of the line after
    earlier discounts (used when several discounts stack on one line).

    Raises CalculationError on negative price or quantity.
    """
    if unit_price is None:
        unit_price = line.unit_price
    quantity = line.quantity

    if unit_price < 0:
        raise CalculationError(f"Negative unit price {unit_price} on line {line.id}")
    if quantity < 0:
        raise CalculationError(f"Negative quantity {quantity} on line {line.id}")

    line_price = unit_price * quantity

    if rule.discount_type is DiscountType.PERCENTAGE:
        amount = line_price * rule.discount_value / HUNDRED
    elif rule.discount_type is DiscountType.FIXED:
        amount = rule.discount_value * quantity
    else:
        raise CalculationError(f"Unknown discount type {rule.discount_type!r} on rule {rule.id}")

    cap = line_price
    if remaining is not None:
        cap = min(cap, max(remaining, ZERO))
    amount = max(ZERO, min(amount, cap))

    if decimals is None:
        decimals = minor_units(line.currency_code)
    rounded = round_amount(amount, decimals, rounding)
    # Rounding must never push the amount over the cap
    if rounded > cap:
        rounded = round_amount(cap, decimals, rounding=ROUND_DOWN)
    return rounded
