"""Sales record types: daily records, month uploads and month aggregates.

Daily records on the dict boundary use the shape::

    {date: "YYYY-MM-DD",
     channelSales: [{channelCode, count, feeRate}],
     categorySales: [{categoryCode, count}]}
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

import pandas as pd

from settlement_core.exceptions import DataQualityError
from settlement_core.utils import parse_date

DATA_SOURCES = ("file", "manual", "mixed")


def _check_source(source: str) -> None:
    if source not in DATA_SOURCES:
        raise DataQualityError(f"Unknown data source '{source}'. Must be one of {DATA_SOURCES}.")


@dataclass(frozen=True)
class ChannelSale:
    """Visitors sold through one online channel (one day, or a month total row).

    Attributes:
        channel_code: Channel code.
        count: Number of visitors.
        fee_rate: Fee rate in percent captured with the record. None on month
            total rows that did not report a rate.
        channel_name: Display name (optional).
    """

    channel_code: str
    count: int
    fee_rate: float | None = None
    channel_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"channelCode": self.channel_code, "count": self.count}
        if self.fee_rate is not None:
            data["feeRate"] = self.fee_rate
        if self.channel_name:
            data["channelName"] = self.channel_name
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChannelSale:
        return cls(
            channel_code=data["channelCode"],
            count=int(data.get("count", 0)),
            fee_rate=data.get("feeRate"),
            channel_name=data.get("channelName", ""),
        )


@dataclass(frozen=True)
class CategorySale:
    """Visitors sold on site under one category (one day, or a month total row)."""

    category_code: str
    count: int
    category_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"categoryCode": self.category_code, "count": self.count}
        if self.category_name:
            data["categoryName"] = self.category_name
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CategorySale:
        return cls(
            category_code=data["categoryCode"],
            count=int(data.get("count", 0)),
            category_name=data.get("categoryName", ""),
        )


@dataclass(frozen=True)
class DailySaleRecord:
    """All sales of one calendar day.

    Attributes:
        date: Day in YYYY-MM-DD format.
        channel_sales: Online rows, each with the fee rate in force that day.
        category_sales: Offline rows.
        source: "file", "manual" or "mixed".
        online_count: Day summary as reported by the source. None means "equal to
            the channel rows".
        offline_count: Day summary as reported by the source. None means "equal
            to the category rows".
    """

    date: str
    channel_sales: tuple[ChannelSale, ...] = ()
    category_sales: tuple[CategorySale, ...] = ()
    source: str = "file"
    online_count: int | None = None
    offline_count: int | None = None

    def __post_init__(self) -> None:
        parse_date(self.date)
        _check_source(self.source)

    @property
    def channel_total(self) -> int:
        return sum(s.count for s in self.channel_sales)

    @property
    def category_total(self) -> int:
        return sum(s.count for s in self.category_sales)

    @property
    def reported_online(self) -> int:
        return self.channel_total if self.online_count is None else self.online_count

    @property
    def reported_offline(self) -> int:
        return self.category_total if self.offline_count is None else self.offline_count

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "date": self.date,
            "channelSales": [s.to_dict() for s in self.channel_sales],
            "categorySales": [s.to_dict() for s in self.category_sales],
            "source": self.source,
        }
        if self.online_count is not None:
            data["online"] = self.online_count
        if self.offline_count is not None:
            data["offline"] = self.offline_count
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DailySaleRecord:
        return cls(
            date=data["date"],
            channel_sales=tuple(ChannelSale.from_dict(s) for s in data.get("channelSales", [])),
            category_sales=tuple(CategorySale.from_dict(s) for s in data.get("categorySales", [])),
            source=data.get("source", "file"),
            online_count=data.get("online"),
            offline_count=data.get("offline"),
        )


@dataclass(frozen=True)
class MonthUpload:
    """One month as submitted by ingestion (or as stored after a merge).

    Attributes:
        year: Calendar year.
        month: Month number, 1-12.
        days: Daily records covered by the upload.
        channel_totals: Month-to-date total per channel from the source. These are
            cumulative snapshots, never deltas.
        category_totals: Month-to-date total per category from the source.
        source: "file", "manual" or "mixed".
        reported_online_total: Online grand-total row of the source, 0 if absent.
        reported_offline_total: Offline grand-total row of the source, 0 if absent.
    """

    year: int
    month: int
    days: tuple[DailySaleRecord, ...] = ()
    channel_totals: tuple[ChannelSale, ...] = ()
    category_totals: tuple[CategorySale, ...] = ()
    source: str = "file"
    reported_online_total: int = 0
    reported_offline_total: int = 0

    def __post_init__(self) -> None:
        _check_source(self.source)

    @property
    def channel_sum(self) -> int:
        return sum(t.count for t in self.channel_totals)

    @property
    def category_sum(self) -> int:
        return sum(t.count for t in self.category_totals)

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "source": self.source,
            "dailyData": [d.to_dict() for d in self.days],
            "channels": [t.to_dict() for t in self.channel_totals],
            "categories": [t.to_dict() for t in self.category_totals],
            "reportedOnlineTotal": self.reported_online_total,
            "reportedOfflineTotal": self.reported_offline_total,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MonthUpload:
        return cls(
            year=int(data["year"]),
            month=int(data["month"]),
            days=tuple(DailySaleRecord.from_dict(d) for d in data.get("dailyData", [])),
            channel_totals=tuple(ChannelSale.from_dict(t) for t in data.get("channels", [])),
            category_totals=tuple(CategorySale.from_dict(t) for t in data.get("categories", [])),
            source=data.get("source", "file"),
            reported_online_total=int(data.get("reportedOnlineTotal", 0)),
            reported_offline_total=int(data.get("reportedOfflineTotal", 0)),
        )


@dataclass(frozen=True)
class ChannelTotal:
    """Month total of one channel."""

    channel_code: str
    channel_name: str
    count: int
    gross_revenue: int
    fee: int
    net_revenue: int
    avg_fee_rate: float


@dataclass(frozen=True)
class CategoryTotal:
    """Month total of one offline category."""

    category_code: str
    category_name: str
    count: int
    revenue: int


@dataclass(frozen=True)
class MonthlySummary:
    """Headline figures of a month aggregate."""

    total_days: int = 0
    online_count: int = 0
    offline_count: int = 0
    total_count: int = 0
    online_gross_revenue: int = 0
    online_fee: int = 0
    online_net_revenue: int = 0
    offline_revenue: int = 0
    total_gross_revenue: int = 0
    total_net_revenue: int = 0


@dataclass(frozen=True)
class MonthlyAggregate:
    """Month totals derived from daily records.

    Recomputable at any time from the month's DailySaleRecords plus its fee
    settings; never edited on its own.
    """

    year: int
    month: int
    channel_totals: tuple[ChannelTotal, ...]
    category_totals: tuple[CategoryTotal, ...]
    summary: MonthlySummary
    source: str = "manual"
    days: tuple[DailySaleRecord, ...] = field(default_factory=tuple)

    def channel_frame(self) -> pd.DataFrame:
        columns = list(ChannelTotal.__dataclass_fields__)
        return pd.DataFrame([asdict(t) for t in self.channel_totals], columns=columns)

    def category_frame(self) -> pd.DataFrame:
        columns = list(CategoryTotal.__dataclass_fields__)
        return pd.DataFrame([asdict(t) for t in self.category_totals], columns=columns)

    def to_dict(self) -> dict[str, Any]:
        s = self.summary
        return {
            "year": self.year,
            "month": self.month,
            "source": self.source,
            "channelTotals": [
                {
                    "channelCode": t.channel_code,
                    "channelName": t.channel_name,
                    "avgFeeRate": t.avg_fee_rate,
                    "totalCount": t.count,
                    "grossRevenue": t.gross_revenue,
                    "totalFee": t.fee,
                    "netRevenue": t.net_revenue,
                }
                for t in self.channel_totals
            ],
            "categoryTotals": [
                {
                    "categoryCode": t.category_code,
                    "categoryName": t.category_name,
                    "totalCount": t.count,
                    "revenue": t.revenue,
                }
                for t in self.category_totals
            ],
            "summary": {
                "totalDays": s.total_days,
                "onlineCount": s.online_count,
                "offlineCount": s.offline_count,
                "totalCount": s.total_count,
                "onlineGrossRevenue": s.online_gross_revenue,
                "onlineFee": s.online_fee,
                "onlineNetRevenue": s.online_net_revenue,
                "offlineRevenue": s.offline_revenue,
                "totalGrossRevenue": s.total_gross_revenue,
                "totalNetRevenue": s.total_net_revenue,
            },
        }
