"""Multi-party settlement cascade.

This module splits one period's ticket sales between the four parties:

- **SKP** (ticketing operator) sells the ticket and receives the platform fee.
- **MAZE** (venue owner) is paid per visitor by SKP and pays CULTURE.
- **CULTURE** (facility partner) is paid by SKP and MAZE and pays SKP a
  platform fee.
- **AGENCY** (FMC, operating agency) receives a share of SKP's ticket profit.

Every per-visitor unit is scaled by the channel multiplier ``m = 1 - f/100``
(offline sales use ``m = 1``) and rounded per channel before summing. The
agency fee is computed once on the totals.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from decimal import Decimal

from settlement_core.config import DEFAULT_SETTLEMENT_CONFIG, SettlementConfig
from settlement_core.registry import ChannelRegistry
from settlement_core.settlement.revenue import (
    compute_channel_revenue,
    fee_multiplier,
    profit_rate,
    round_half_up,
    to_decimal,
)
from settlement_core.settlement.types import (
    PARTY_CODES,
    PARTY_NAMES,
    ChannelBreakdown,
    ChannelSales,
    PartySettlement,
    SalesInput,
    SettlementResult,
)

logger = logging.getLogger(__name__)


@dataclass
class _Legs:
    """Running totals of the five cascade legs."""

    operator_revenue: int = 0
    operator_to_venue: int = 0
    operator_to_facility: int = 0
    venue_to_facility: int = 0
    platform_fee: int = 0

    def add(self, other: _Legs) -> None:
        self.operator_revenue += other.operator_revenue
        self.operator_to_venue += other.operator_to_venue
        self.operator_to_facility += other.operator_to_facility
        self.venue_to_facility += other.venue_to_facility
        self.platform_fee += other.platform_fee


def _scaled_legs(config: SettlementConfig, multiplier: Decimal, count: int) -> _Legs:
    company = config.company
    return _Legs(
        operator_revenue=round_half_up(config.base_price * multiplier * count),
        operator_to_venue=round_half_up(company.maze_payment_per_person * multiplier * count),
        operator_to_facility=round_half_up(company.culture_payment_from_skp * multiplier * count),
        venue_to_facility=round_half_up(company.culture_payment_from_maze * multiplier * count),
        platform_fee=round_half_up(company.platform_fee_to_skp * multiplier * count),
    )


def _channel_fee_rate(
    sale: ChannelSales,
    config: SettlementConfig,
    fee_rates: Mapping[str, float] | None,
) -> float:
    if sale.fee_rate is not None:
        return sale.fee_rate
    if fee_rates is not None and sale.channel_code in fee_rates:
        return fee_rates[sale.channel_code]
    return config.fee_rate_for(sale.channel_code)


def _agency_base(config: SettlementConfig, totals: _Legs) -> int:
    ticket_profit = totals.operator_revenue - totals.operator_to_venue - totals.operator_to_facility
    base_type = config.company.agency_fee_base
    if base_type == "SKP_REVENUE":
        return totals.operator_revenue
    if base_type == "SKP_TOTAL_PROFIT":
        return ticket_profit + totals.platform_fee
    return ticket_profit


def _agency_formula(base_type: str, totals: _Legs) -> str:
    ticket_profit = f"{totals.operator_revenue} - {totals.operator_to_venue} - {totals.operator_to_facility}"
    if base_type == "SKP_REVENUE":
        return str(totals.operator_revenue)
    if base_type == "SKP_TOTAL_PROFIT":
        return f"({ticket_profit} + {totals.platform_fee})"
    return f"({ticket_profit})"


def _party(code: str, revenue: int, income: int, cost: int, details: dict) -> PartySettlement:
    profit = income - cost
    return PartySettlement(
        code=code,
        name=PARTY_NAMES[code],
        revenue=revenue,
        income=income,
        cost=cost,
        profit=profit,
        profit_rate=profit_rate(profit, income),
        details=details,
    )


def calculate_settlement(
    sales_input: SalesInput,
    config: SettlementConfig = DEFAULT_SETTLEMENT_CONFIG,
    period_start: str | None = None,
    period_end: str | None = None,
    fee_rates: Mapping[str, float] | None = None,
) -> SettlementResult:
    """Split one period's sales between the four parties.

    The fee rate of each online channel is taken, in order, from the rate
    captured on the ChannelSales row, from ``fee_rates`` (typically resolved
    from MonthlyFeeSettings), and finally from ``config.channel_fee_rates``
    (OTHER bucket for unknown codes).

    Args:
        sales_input: Online visitor counts per channel and the offline count.
        config: Units and fallback rates.
        period_start: First day of the period (YYYY-MM-DD), informational.
        period_end: Last day of the period (YYYY-MM-DD), informational.
        fee_rates: Optional fee rate per channel code, in percent.

    Returns:
        SettlementResult with the four parties in SKP, MAZE, CULTURE, AGENCY order.

    Examples:
        >>> result = calculate_settlement(SalesInput(offline_count=100))
        >>> result.party("MAZE").profit
        50000

    """
    company = config.company
    registry = ChannelRegistry()

    online_totals = _Legs()
    breakdown: list[ChannelBreakdown] = []
    channel_fees = 0

    for sale in sales_input.online_sales:
        fee_rate = _channel_fee_rate(sale, config, fee_rates)
        legs = _scaled_legs(config, fee_multiplier(fee_rate), sale.count)
        revenue = compute_channel_revenue(config.base_price, fee_rate, sale.count)
        online_totals.add(legs)
        channel_fees += revenue.fee

        breakdown.append(
            ChannelBreakdown(
                channel_code=sale.channel_code,
                channel_name=sale.channel_name or registry.name(sale.channel_code),
                count=sale.count,
                fee_rate=fee_rate,
                revenue=revenue.gross_revenue,
                fee=revenue.fee,
                net_revenue=revenue.net_revenue,
                operator_revenue=legs.operator_revenue,
                operator_to_venue=legs.operator_to_venue,
                operator_to_facility=legs.operator_to_facility,
                venue_to_facility=legs.venue_to_facility,
                platform_fee=legs.platform_fee,
            )
        )
        logger.debug(
            "Channel %s: %d visitors at %s%% -> SKP revenue %d",
            sale.channel_code,
            sale.count,
            fee_rate,
            legs.operator_revenue,
        )

    offline_count = sales_input.offline_count
    offline_totals = _scaled_legs(config, Decimal(1), offline_count)

    totals = _Legs()
    totals.add(online_totals)
    totals.add(offline_totals)

    agency_base = _agency_base(config, totals)
    agency_fee = round_half_up(agency_base * to_decimal(company.agency_fee_rate) / 100)
    ticket_profit = totals.operator_revenue - totals.operator_to_venue - totals.operator_to_facility

    skp = _party(
        "SKP",
        revenue=totals.operator_revenue,
        income=totals.operator_revenue + totals.platform_fee,
        cost=totals.operator_to_venue + totals.operator_to_facility + agency_fee,
        details={
            "ticketRevenue": totals.operator_revenue,
            "onlineRevenue": online_totals.operator_revenue,
            "offlineRevenue": offline_totals.operator_revenue,
            "channelFees": channel_fees,
            "mazePayment": totals.operator_to_venue,
            "culturePayment": totals.operator_to_facility,
            "platformFeeIncome": totals.platform_fee,
            "ticketProfit": ticket_profit,
            "agencyPayment": agency_fee,
        },
    )
    maze = _party(
        "MAZE",
        revenue=totals.operator_to_venue,
        income=totals.operator_to_venue,
        cost=totals.venue_to_facility,
        details={
            "fromSkp": totals.operator_to_venue,
            "toCulture": totals.venue_to_facility,
            "onlineFromSkp": online_totals.operator_to_venue,
            "offlineFromSkp": offline_totals.operator_to_venue,
        },
    )
    culture_income = totals.operator_to_facility + totals.venue_to_facility
    culture = _party(
        "CULTURE",
        revenue=culture_income,
        income=culture_income,
        cost=totals.platform_fee,
        details={
            "fromSkp": totals.operator_to_facility,
            "fromMaze": totals.venue_to_facility,
            "platformFeeCost": totals.platform_fee,
            "onlineFromSkp": online_totals.operator_to_facility,
            "offlineFromSkp": offline_totals.operator_to_facility,
            "onlineFromMaze": online_totals.venue_to_facility,
            "offlineFromMaze": offline_totals.venue_to_facility,
        },
    )
    agency = _party(
        "AGENCY",
        revenue=agency_fee,
        income=agency_fee,
        cost=0,
        details={
            "feeRate": company.agency_fee_rate,
            "basedOn": agency_base,
            "baseType": company.agency_fee_base,
            "calculation": f"{_agency_formula(company.agency_fee_base, totals)} x {company.agency_fee_rate}%",
        },
    )

    online_count = sales_input.online_count
    result = SettlementResult(
        period_start=period_start,
        period_end=period_end,
        total_count=online_count + offline_count,
        online_count=online_count,
        offline_count=offline_count,
        settlements=(skp, maze, culture, agency),
        channel_breakdown=tuple(breakdown),
    )

    logger.info(
        "Settled %s..%s: %d visitors (online %d / offline %d), SKP profit %d, "
        "MAZE profit %d, CULTURE profit %d, FMC fee %d",
        period_start,
        period_end,
        result.total_count,
        online_count,
        offline_count,
        skp.profit,
        maze.profit,
        culture.profit,
        agency_fee,
    )
    return result


def create_sales_input(
    channel_counts: Mapping[str, int] | list[tuple[str, int]],
    offline_count: int,
    registry: ChannelRegistry | None = None,
) -> SalesInput:
    """Build a SalesInput from channel counts, filling names from the registry.

    Args:
        channel_counts: ``{channel_code: count}`` or a list of ``(code, count)`` pairs.
        offline_count: On-site visitors.
        registry: Channel master data for display names.

    """
    if registry is None:
        registry = ChannelRegistry()
    items = channel_counts.items() if isinstance(channel_counts, Mapping) else channel_counts
    online = tuple(
        ChannelSales(channel_code=code, count=count, channel_name=registry.name(code))
        for code, count in items
    )
    return SalesInput(online_sales=online, offline_count=offline_count)


def get_settlement_by_party(result: SettlementResult, code: str) -> PartySettlement | None:
    """Return the settlement of one party, or None for an unknown code."""
    return result.party(code)


def mask_settlement_for_party(result: SettlementResult, viewer: str) -> SettlementResult:
    """Hide other parties' margins from a viewer.

    SKP sees every party in full. Any other viewer sees its own row in full;
    the other rows keep revenue, income and cost but report ``profit = -1``,
    ``profit_rate = -1`` and no details.

    Raises:
        ValueError: If ``viewer`` is not a party code.

    """
    if viewer not in PARTY_CODES:
        raise ValueError(f"Unknown party '{viewer}'. Must be one of {PARTY_CODES}.")
    if viewer == "SKP":
        return result

    masked = tuple(
        s if s.code == viewer else replace(s, profit=-1, profit_rate=-1, details=None)
        for s in result.settlements
    )
    return replace(result, settlements=masked)
