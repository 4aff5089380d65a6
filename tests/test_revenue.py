"""Tests for channel revenue calculation and rounding."""

from decimal import Decimal

import pytest

from settlement_core.exceptions import DataQualityError
from settlement_core.settlement import ChannelRevenue, compute_channel_revenue, round_half_up
from settlement_core.settlement.revenue import fee_multiplier, profit_rate


def test_single_channel_seed_values() -> None:
    """459 visitors at 10% and 3,000 per visitor."""
    revenue = compute_channel_revenue(3000, 10, 459)

    assert revenue == ChannelRevenue(gross_revenue=1_377_000, fee=137_700, net_revenue=1_239_300)


def test_zero_count_is_all_zero() -> None:
    assert compute_channel_revenue(3000, 15, 0) == ChannelRevenue(0, 0, 0)


@pytest.mark.parametrize(
    "unit_price,fee_rate,count",
    [(3000, 10, 1), (3000, 12, 7), (3000, 15, 47), (1, 33, 3), (5, 10, 1), (3000, 0, 10)],
)
def test_net_is_gross_minus_fee(unit_price: int, fee_rate: float, count: int) -> None:
    revenue = compute_channel_revenue(unit_price, fee_rate, count)

    assert revenue.gross_revenue == unit_price * count
    assert revenue.net_revenue == revenue.gross_revenue - revenue.fee
    assert revenue.fee >= 0
    assert revenue.net_revenue >= 0


def test_fee_rounds_half_up() -> None:
    """5 x 10% = 0.5 rounds up to 1, not to the even 0."""
    assert compute_channel_revenue(5, 10, 1).fee == 1
    assert compute_channel_revenue(15, 10, 1).fee == 2


def test_negative_count_rejected() -> None:
    with pytest.raises(DataQualityError, match="non-negative"):
        compute_channel_revenue(3000, 10, -1)


class TestRounding:
    def test_round_half_up(self) -> None:
        assert round_half_up(Decimal("2.5")) == 3
        assert round_half_up(Decimal("3.5")) == 4
        assert round_half_up(Decimal("2.4999")) == 2
        assert round_half_up(0.5) == 1
        assert round_half_up(7) == 7

    def test_negative_halves_round_away_from_zero(self) -> None:
        assert round_half_up(Decimal("-2.5")) == -3

    def test_fee_multiplier_is_exact(self) -> None:
        assert fee_multiplier(12) == Decimal("0.88")
        assert fee_multiplier(0) == Decimal("1")

    def test_profit_rate(self) -> None:
        assert profit_rate(50, 100) == 50.0
        assert profit_rate(1, 3) == 33.33
        assert profit_rate(2, 3) == 66.67
        assert profit_rate(0, 0) == 0.0
        assert profit_rate(-10, 0) == 0.0
