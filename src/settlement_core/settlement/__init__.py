"""Settlement module.

This module computes how one period's ticket sales are split between the
four parties:

- **compute_channel_revenue**: gross / fee / net revenue of a single channel.
- **calculate_settlement**: the full cascade (SKP, MAZE, CULTURE, AGENCY).

Example:
    >>> from settlement_core.settlement import calculate_settlement, create_sales_input
    >>>
    >>> sales = create_sales_input({"NAVER_MAZE_25": 459, "MAZE_TICKET": 200}, offline_count=1457)
    >>> result = calculate_settlement(sales, period_start="2025-01-01", period_end="2025-01-31")
    >>> result.total_count
    2116
    >>> result.party_frame()[["income", "cost", "profit"]]
"""

from settlement_core.settlement.cascade import (
    calculate_settlement,
    create_sales_input,
    get_settlement_by_party,
    mask_settlement_for_party,
)
from settlement_core.settlement.revenue import compute_channel_revenue, round_half_up
from settlement_core.settlement.types import (
    PARTY_CODES,
    ChannelBreakdown,
    ChannelRevenue,
    ChannelSales,
    PartySettlement,
    SalesInput,
    SettlementResult,
)

__all__ = [
    "PARTY_CODES",
    "ChannelBreakdown",
    "ChannelRevenue",
    "ChannelSales",
    "PartySettlement",
    "SalesInput",
    "SettlementResult",
    "calculate_settlement",
    "compute_channel_revenue",
    "create_sales_input",
    "get_settlement_by_party",
    "mask_settlement_for_party",
    "round_half_up",
]
