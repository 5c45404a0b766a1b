"""Decimal rounding helpers shared by the interest and dividend math."""
from decimal import Decimal, ROUND_HALF_UP

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def to_decimal(amount) -> Decimal:
    """Coerce int/float/str/Decimal/None to Decimal via str to avoid float artefacts."""
    if amount is None:
        return ZERO
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))


def round_money(amount) -> Decimal:
    """Round to 2 decimal places using round-half-up."""
    return to_decimal(amount).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def percentage_of(amount, rate_percent) -> Decimal:
    """``amount * rate_percent / 100`` rounded half-up to 2dp."""
    return round_money(to_decimal(amount) * to_decimal(rate_percent) / HUNDRED)
