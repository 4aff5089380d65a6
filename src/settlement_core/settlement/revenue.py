"""Channel revenue calculation and currency rounding.

All currency amounts are integers in the smallest whole currency unit.
Fractional intermediate values are carried as ``Decimal`` and rounded once,
half-up, through ``round_half_up``.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from settlement_core.exceptions import DataQualityError
from settlement_core.settlement.types import ChannelRevenue

_ONE = Decimal("1")
_HUNDRED = Decimal("100")


def to_decimal(value: int | float | Decimal) -> Decimal:
    """Convert a number to Decimal through its string form (no binary float noise)."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_half_up(value: int | float | Decimal) -> int:
    """Round to the nearest integer, halves away from zero.

    Examples:
        >>> round_half_up(Decimal("2.5"))
        3
        >>> round_half_up(0.5)
        1

    """
    return int(to_decimal(value).quantize(_ONE, rounding=ROUND_HALF_UP))


def round_rate(value: Decimal) -> float:
    """Round a percentage half-up to two decimals."""
    return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def fee_multiplier(fee_rate: int | float | Decimal) -> Decimal:
    """Share of revenue left after a channel fee: ``1 - fee_rate/100``."""
    return _ONE - to_decimal(fee_rate) / _HUNDRED


def profit_rate(profit: int, income: int) -> float:
    """``profit / income`` as a percentage with two decimals; 0 when income is 0."""
    if income <= 0:
        return 0.0
    return round_rate(Decimal(profit) * _HUNDRED / Decimal(income))


def compute_channel_revenue(unit_price: int, fee_rate: int | float, count: int) -> ChannelRevenue:
    """Compute gross revenue, fee and net revenue for one channel.

    Args:
        unit_price: Price per visitor.
        fee_rate: Channel commission in percent.
        count: Number of visitors.

    Returns:
        ChannelRevenue with ``fee == round_half_up(gross * fee_rate / 100)`` and
        ``net_revenue == gross_revenue - fee``.

    Raises:
        DataQualityError: If ``count`` is negative.

    Examples:
        >>> compute_channel_revenue(3000, 10, 459)
        ChannelRevenue(gross_revenue=1377000, fee=137700, net_revenue=1239300)

    """
    if count < 0:
        raise DataQualityError(f"Visitor count must be non-negative, got {count}")

    gross_revenue = unit_price * count
    fee = round_half_up(Decimal(gross_revenue) * to_decimal(fee_rate) / _HUNDRED)
    return ChannelRevenue(gross_revenue=gross_revenue, fee=fee, net_revenue=gross_revenue - fee)
