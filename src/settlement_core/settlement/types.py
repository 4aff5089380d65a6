"""Shared types for the settlement cascade."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

import pandas as pd

from settlement_core.exceptions import DataQualityError

PARTY_CODES = ("SKP", "MAZE", "CULTURE", "AGENCY")

PARTY_NAMES = {
    "SKP": "SKP",
    "MAZE": "메이즈랜드",
    "CULTURE": "컬처커넥션",
    "AGENCY": "FMC",
}


@dataclass(frozen=True)
class ChannelSales:
    """Visitors sold through one online channel during the period.

    Attributes:
        channel_code: Channel code.
        count: Number of visitors.
        channel_name: Display name (optional).
        fee_rate: Fee rate captured with the sales record, in percent. When set
            it takes priority over any rate looked up at settlement time.
    """

    channel_code: str
    count: int
    channel_name: str = ""
    fee_rate: float | None = None


@dataclass(frozen=True)
class SalesInput:
    """Input of one settlement run.

    Attributes:
        online_sales: Visitor counts per online channel.
        offline_count: Visitors sold on site (no channel fee).
    """

    online_sales: tuple[ChannelSales, ...] = ()
    offline_count: int = 0

    def __post_init__(self) -> None:
        negative = [s.channel_code for s in self.online_sales if s.count < 0]
        if negative:
            raise DataQualityError(f"Negative visitor counts for channels: {negative}")
        if self.offline_count < 0:
            raise DataQualityError(f"Negative offline count: {self.offline_count}")

    @property
    def online_count(self) -> int:
        return sum(s.count for s in self.online_sales)

    @property
    def total_count(self) -> int:
        return self.online_count + self.offline_count

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SalesInput:
        """Build from ``{onlineSales: [{channelCode, channelName, count}], offlineCount}``."""
        online = tuple(
            ChannelSales(
                channel_code=row["channelCode"],
                count=int(row.get("count", 0)),
                channel_name=row.get("channelName", ""),
                fee_rate=row.get("feeRate"),
            )
            for row in data.get("onlineSales", [])
        )
        return cls(online_sales=online, offline_count=int(data.get("offlineCount", 0)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "onlineSales": [
                {"channelCode": s.channel_code, "channelName": s.channel_name, "count": s.count}
                for s in self.online_sales
            ],
            "offlineCount": self.offline_count,
        }


@dataclass(frozen=True)
class ChannelRevenue:
    """Gross, fee and net revenue of one channel at one unit price."""

    gross_revenue: int
    fee: int
    net_revenue: int


@dataclass(frozen=True)
class ChannelBreakdown:
    """Per-channel line of a settlement.

    ``revenue``, ``fee`` and ``net_revenue`` are the ticket revenue at the base
    price. The remaining amounts are the channel's contribution to each leg of
    the cascade, already scaled by ``1 - fee_rate/100``.
    """

    channel_code: str
    channel_name: str
    count: int
    fee_rate: float
    revenue: int
    fee: int
    net_revenue: int
    operator_revenue: int = 0
    operator_to_venue: int = 0
    operator_to_facility: int = 0
    venue_to_facility: int = 0
    platform_fee: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "channelCode": self.channel_code,
            "channelName": self.channel_name,
            "count": self.count,
            "feeRate": self.fee_rate,
            "revenue": self.revenue,
            "fee": self.fee,
            "netRevenue": self.net_revenue,
        }


@dataclass(frozen=True)
class PartySettlement:
    """Settlement of one party for one period.

    Attributes:
        code: "SKP", "MAZE", "CULTURE" or "AGENCY".
        name: Display name.
        revenue: Party revenue.
        income: Everything the party receives.
        cost: Everything the party pays out.
        profit: ``income - cost``.
        profit_rate: ``profit / income`` in percent, two decimals, 0 when income is 0.
        details: Components of income and cost, keyed by name.
    """

    code: str
    name: str
    revenue: int
    income: int
    cost: int
    profit: int
    profit_rate: float
    details: dict[str, Any] | None = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "companyCode": self.code,
            "companyName": self.name,
            "revenue": self.revenue,
            "income": self.income,
            "cost": self.cost,
            "profit": self.profit,
            "profitRate": self.profit_rate,
            "details": dict(self.details) if self.details is not None else None,
        }


@dataclass(frozen=True)
class SettlementResult:
    """Result of one settlement run.

    Attributes:
        period_start: First day of the settled period (YYYY-MM-DD), if known.
        period_end: Last day of the settled period (YYYY-MM-DD), if known.
        total_count: ``online_count + offline_count``.
        online_count: Visitors across all online channels.
        offline_count: On-site visitors.
        settlements: The four party settlements, in PARTY_CODES order.
        channel_breakdown: One line per online channel.
        calculated_at: ISO timestamp of the run.
    """

    period_start: str | None
    period_end: str | None
    total_count: int
    online_count: int
    offline_count: int
    settlements: tuple[PartySettlement, ...]
    channel_breakdown: tuple[ChannelBreakdown, ...]
    calculated_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def party(self, code: str) -> PartySettlement | None:
        for settlement in self.settlements:
            if settlement.code == code:
                return settlement
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the field names existing consumers read."""
        return {
            "periodStart": self.period_start,
            "periodEnd": self.period_end,
            "totalCount": self.total_count,
            "onlineCount": self.online_count,
            "offlineCount": self.offline_count,
            "settlements": [s.to_dict() for s in self.settlements],
            "channelBreakdown": [c.to_dict() for c in self.channel_breakdown],
            "calculatedAt": self.calculated_at,
        }

    def channel_frame(self) -> pd.DataFrame:
        """Channel breakdown as a DataFrame, one row per channel."""
        columns = list(ChannelBreakdown.__dataclass_fields__)
        return pd.DataFrame([asdict(c) for c in self.channel_breakdown], columns=columns)

    def party_frame(self) -> pd.DataFrame:
        """Party settlements as a DataFrame indexed by party code (details dropped)."""
        columns = ["code", "name", "revenue", "income", "cost", "profit", "profit_rate"]
        rows = [{col: getattr(s, col) for col in columns} for s in self.settlements]
        return pd.DataFrame(rows, columns=columns).set_index("code")
