"""Fee settings types.

Field names on the dict boundary follow the stored fee settings shape::

    {year, month, channels: [{channelCode, feeRate, source}],
     overrides: [{id, channelCode, startDate, endDate, feeRate, reason}]}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from settlement_core.utils import date_in_window

FEE_SOURCES = ("default", "excel", "manual")


@dataclass(frozen=True)
class ChannelMonthlyFee:
    """A channel's default fee rate for one month.

    Attributes:
        channel_code: Channel code.
        fee_rate: Fee rate in percent for the month.
        source: Where the rate came from: "default", "excel" or "manual".
        channel_name: Display name, informational only.
    """

    channel_code: str
    fee_rate: float
    source: str = "default"
    channel_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "channelCode": self.channel_code,
            "channelName": self.channel_name,
            "feeRate": self.fee_rate,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChannelMonthlyFee:
        return cls(
            channel_code=data["channelCode"],
            fee_rate=data["feeRate"],
            source=data.get("source", "default"),
            channel_name=data.get("channelName", ""),
        )


@dataclass(frozen=True)
class FeeOverride:
    """A closed date window during which a channel's fee rate is overridden.

    Attributes:
        channel_code: Channel code.
        start_date: First day of the window, YYYY-MM-DD (inclusive).
        end_date: Last day of the window, YYYY-MM-DD (inclusive).
        fee_rate: Fee rate in percent inside the window.
        reason: Optional free-text reason.
        id: Stable identifier, used to remove the override later.
    """

    channel_code: str
    start_date: str
    end_date: str
    fee_rate: float
    reason: str | None = None
    id: str | None = None

    def covers(self, channel_code: str, date: str) -> bool:
        return self.channel_code == channel_code and date_in_window(date, self.start_date, self.end_date)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "channelCode": self.channel_code,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "feeRate": self.fee_rate,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FeeOverride:
        return cls(
            channel_code=data["channelCode"],
            start_date=data["startDate"],
            end_date=data["endDate"],
            fee_rate=data["feeRate"],
            reason=data.get("reason"),
            id=data.get("id"),
        )


@dataclass(frozen=True)
class MonthlyFeeSettings:
    """Fee configuration for one (year, month).

    Overrides are kept in insertion order; the resolver takes the first
    override that matches.
    """

    year: int
    month: int
    channels: tuple[ChannelMonthlyFee, ...] = field(default_factory=tuple)
    overrides: tuple[FeeOverride, ...] = field(default_factory=tuple)
    updated_at: str | None = None

    def channel_fee(self, channel_code: str) -> ChannelMonthlyFee | None:
        for channel in self.channels:
            if channel.channel_code == channel_code:
                return channel
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "channels": [c.to_dict() for c in self.channels],
            "overrides": [o.to_dict() for o in self.overrides],
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MonthlyFeeSettings:
        return cls(
            year=int(data["year"]),
            month=int(data["month"]),
            channels=tuple(ChannelMonthlyFee.from_dict(c) for c in data.get("channels", [])),
            overrides=tuple(FeeOverride.from_dict(o) for o in data.get("overrides", [])),
            updated_at=data.get("updatedAt"),
        )
