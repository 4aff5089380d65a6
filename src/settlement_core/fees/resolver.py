"""Fee rate resolution.

This module resolves the commission rate that applies to a channel on a given
day. Precedence, highest first:

1. The first override in ``settings.overrides`` whose channel matches and whose
   closed window contains the date.
2. The channel's monthly default in ``settings.channels``.
3. The channel master default from the registry (OTHER bucket rate for codes
   the registry does not know).

Everything here is a pure function of the settings passed in. Functions that
change settings return a new MonthlyFeeSettings and leave the input untouched.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from itertools import combinations

from settlement_core.exceptions import ConfigError
from settlement_core.fees.types import (
    FEE_SOURCES,
    ChannelMonthlyFee,
    FeeOverride,
    MonthlyFeeSettings,
)
from settlement_core.registry import ChannelRegistry
from settlement_core.utils import month_dates, validate_period, windows_overlap

logger = logging.getLogger(__name__)


def resolve_fee_rate(
    channel_code: str,
    date: str,
    settings: MonthlyFeeSettings,
    registry: ChannelRegistry | None = None,
) -> float:
    """Return the fee rate (percent) for a channel on a given date.

    Args:
        channel_code: Channel code.
        date: Date string in YYYY-MM-DD format.
        settings: Fee settings of the month containing ``date``.
        registry: Channel master data. Defaults to the shipped master list.

    Returns:
        Fee rate in percent. Never raises for unknown channels.

    Examples:
        >>> settings = MonthlyFeeSettings(
        ...     2025, 1,
        ...     overrides=(FeeOverride("NAVER_MAZE_25", "2025-01-10", "2025-01-20", 5),),
        ... )
        >>> resolve_fee_rate("NAVER_MAZE_25", "2025-01-15", settings)
        5
        >>> resolve_fee_rate("NAVER_MAZE_25", "2025-01-21", settings)
        10

    """
    for override in settings.overrides:
        if override.covers(channel_code, date):
            return override.fee_rate

    channel_fee = settings.channel_fee(channel_code)
    if channel_fee is not None:
        return channel_fee.fee_rate

    if registry is None:
        registry = ChannelRegistry()
    return registry.fee_rate(channel_code)


class FeeRateResolver:
    """Fee rate lookups bound to one month's settings.

    Example:
        >>> resolver = FeeRateResolver(default_fee_settings(2025, 1))
        >>> resolver.resolve("MAZE_TICKET", "2025-01-03")
        12

    """

    def __init__(
        self,
        settings: MonthlyFeeSettings,
        registry: ChannelRegistry | None = None,
    ) -> None:
        self.settings = settings
        self.registry = registry or ChannelRegistry()

        overlaps = find_overlapping_overrides(settings)
        for first, second in overlaps:
            logger.warning(
                "Overlapping fee overrides for %s: %s..%s (%s%%) and %s..%s (%s%%); "
                "the first one listed wins",
                first.channel_code,
                first.start_date,
                first.end_date,
                first.fee_rate,
                second.start_date,
                second.end_date,
                second.fee_rate,
            )

    def resolve(self, channel_code: str, date: str) -> float:
        return resolve_fee_rate(channel_code, date, self.settings, self.registry)

    def rates_for_date(self, date: str) -> dict[str, float]:
        """Resolve every known channel (registry and monthly settings) for one date."""
        codes = list(self.registry.codes())
        for channel in self.settings.channels:
            if channel.channel_code not in codes:
                codes.append(channel.channel_code)
        return {code: self.resolve(code, date) for code in codes}


def average_fee_rate(
    settings: MonthlyFeeSettings,
    channel_code: str,
    registry: ChannelRegistry | None = None,
) -> float:
    """Day-weighted mean fee rate of a channel over the settings' calendar month.

    Without overrides for the channel this is simply its monthly default.

    Returns:
        Mean fee rate in percent, rounded half-up to two decimals.

    """
    channel_overrides = [o for o in settings.overrides if o.channel_code == channel_code]
    if not channel_overrides:
        return resolve_fee_rate(channel_code, "", settings, registry)

    dates = month_dates(settings.year, settings.month)
    total = sum(
        Decimal(str(resolve_fee_rate(channel_code, d, settings, registry))) for d in dates
    )
    mean = (total / len(dates)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return float(mean)


def default_fee_settings(
    year: int,
    month: int,
    registry: ChannelRegistry | None = None,
) -> MonthlyFeeSettings:
    """Build the settings a month gets when none were stored.

    Every active registry channel receives its master rate with source "default".
    """
    validate_period(year, month)
    if registry is None:
        registry = ChannelRegistry()

    channels = tuple(
        ChannelMonthlyFee(
            channel_code=c.code,
            fee_rate=c.default_fee_rate,
            source="default",
            channel_name=c.name,
        )
        for c in registry.list_channels()
    )
    return MonthlyFeeSettings(year=year, month=month, channels=channels, overrides=(), updated_at=_now())


def find_overlapping_overrides(
    settings: MonthlyFeeSettings,
) -> list[tuple[FeeOverride, FeeOverride]]:
    """List pairs of same-channel overrides whose windows share a day.

    Pairs are returned in list order, so the first element of each pair is the
    override the resolver will pick on the shared days.
    """
    overlaps: list[tuple[FeeOverride, FeeOverride]] = []
    for first, second in combinations(settings.overrides, 2):
        if first.channel_code != second.channel_code:
            continue
        if windows_overlap(first.start_date, first.end_date, second.start_date, second.end_date):
            overlaps.append((first, second))
    return overlaps


def add_override(
    settings: MonthlyFeeSettings,
    channel_code: str,
    start_date: str,
    end_date: str,
    fee_rate: float,
    reason: str | None = None,
) -> MonthlyFeeSettings:
    """Append an override window and return the new settings.

    Raises:
        ConfigError: If the window is inverted or the rate is outside 0-100.

    """
    if start_date > end_date:
        raise ConfigError(f"Override window is inverted: {start_date} > {end_date}")
    _check_rate(fee_rate)

    override = FeeOverride(
        channel_code=channel_code,
        start_date=start_date,
        end_date=end_date,
        fee_rate=fee_rate,
        reason=reason,
        id=f"{channel_code}-{start_date}-{len(settings.overrides) + 1}",
    )
    return replace(settings, overrides=settings.overrides + (override,), updated_at=_now())


def remove_override(settings: MonthlyFeeSettings, override_id: str) -> MonthlyFeeSettings:
    """Drop the override with ``override_id``; unknown ids leave the list unchanged."""
    overrides = tuple(o for o in settings.overrides if o.id != override_id)
    return replace(settings, overrides=overrides, updated_at=_now())


def update_channel_fee(
    settings: MonthlyFeeSettings,
    channel_code: str,
    fee_rate: float,
    source: str = "manual",
) -> MonthlyFeeSettings:
    """Set a channel's monthly default rate, adding the channel if it is missing.

    Raises:
        ConfigError: If the rate is outside 0-100 or the source is unknown.

    """
    _check_rate(fee_rate)
    if source not in FEE_SOURCES:
        raise ConfigError(f"Unknown fee source '{source}'. Must be one of {FEE_SOURCES}.")

    found = False
    channels = []
    for channel in settings.channels:
        if channel.channel_code == channel_code:
            channel = replace(channel, fee_rate=fee_rate, source=source)
            found = True
        channels.append(channel)
    if not found:
        channels.append(ChannelMonthlyFee(channel_code=channel_code, fee_rate=fee_rate, source=source))

    return replace(settings, channels=tuple(channels), updated_at=_now())


def _check_rate(fee_rate: float) -> None:
    if not 0 <= fee_rate <= 100:
        raise ConfigError(f"Fee rate must be between 0 and 100, got {fee_rate}")


def _now() -> str:
    return datetime.now().isoformat()
