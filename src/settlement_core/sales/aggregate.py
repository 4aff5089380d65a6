"""Daily to monthly aggregation and month-to-day redistribution.

This module rolls daily sales records up into month totals and pushes month
totals back down onto days:

- ``accumulate`` sums channel and category rows of a month into a
  MonthlyAggregate (pandas groupby over the long-format day rows).
- ``distribute`` / ``distribute_by_day`` split a month target across days in
  proportion to per-day weights. Every day but the last gets the floored share;
  the last chronological day absorbs the rounding remainder so the split always
  sums back to the target.
- ``distribute_month_evenly`` spreads month totals evenly over every calendar
  day, for months that were entered as totals only.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Hashable, Iterable, Mapping, Sequence
from decimal import Decimal
from fractions import Fraction

import pandas as pd

from settlement_core.config import BASE_PRICE, OTHER_CHANNEL
from settlement_core.exceptions import DataQualityError
from settlement_core.fees.resolver import FeeRateResolver, default_fee_settings
from settlement_core.fees.types import MonthlyFeeSettings
from settlement_core.registry import CategoryRegistry, ChannelRegistry
from settlement_core.sales.types import (
    CategorySale,
    CategoryTotal,
    ChannelSale,
    ChannelTotal,
    DailySaleRecord,
    MonthlyAggregate,
    MonthlySummary,
)
from settlement_core.settlement.revenue import compute_channel_revenue, round_rate
from settlement_core.utils import month_dates, period_key

logger = logging.getLogger(__name__)

_CHANNEL_COLUMNS = ["date", "channel_code", "count", "fee_rate", "gross_revenue", "fee", "net_revenue"]
_CATEGORY_COLUMNS = ["date", "category_code", "count"]
_SUM_COLUMNS = ["count", "gross_revenue", "fee", "net_revenue"]


def accumulate(
    year: int,
    month: int,
    records: Sequence[DailySaleRecord],
    unit_price: int = BASE_PRICE,
    registry: ChannelRegistry | None = None,
    category_registry: CategoryRegistry | None = None,
    channel_totals: Sequence[ChannelSale] | None = None,
    category_totals: Sequence[CategorySale] | None = None,
) -> MonthlyAggregate:
    """Roll one month of daily records up into month totals.

    Every channel and category known to the registries gets a row (zero when
    unsold), followed by any codes that only appear in the data.

    Online and offline counts come from the channel and category rows. When the
    rows disagree with the daily summary counts reported by the source, the rows
    win and the disagreement is logged. Only when no row carries any visitors do
    the daily summary counts stand in; unclassified online visitors are then
    valued at the OTHER channel rate.

    Args:
        year: Calendar year of the month.
        month: Month number, 1-12.
        records: Daily records. Records dated outside the month are skipped.
        unit_price: Ticket price per visitor.
        registry: Channel master data (names, fallback fee rates).
        category_registry: Category master data (names).
        channel_totals: Authoritative month total per channel. When given with a
            non-zero sum they replace the sums of the daily channel rows.
        category_totals: Authoritative month total per category, same rule.

    Returns:
        MonthlyAggregate for the month.

    Raises:
        DataQualityError: If any count is negative.

    Examples:
        >>> day = DailySaleRecord(
        ...     "2025-01-01",
        ...     channel_sales=(ChannelSale("NAVER_MAZE_25", 10, 10),),
        ...     category_sales=(CategorySale("INDIVIDUAL", 5),),
        ... )
        >>> agg = accumulate(2025, 1, [day])
        >>> agg.summary.total_count
        15

    """
    if registry is None:
        registry = ChannelRegistry()
    if category_registry is None:
        category_registry = CategoryRegistry()

    prefix = period_key(year, month)
    days = sorted((r for r in records if r.date.startswith(prefix)), key=lambda r: r.date)
    skipped = len(records) - len(days)
    if skipped:
        logger.warning("Skipped %d daily records outside %s", skipped, prefix)

    channel_names = {s.channel_code: s.channel_name for d in days for s in d.channel_sales if s.channel_name}
    category_names = {
        s.category_code: s.category_name for d in days for s in d.category_sales if s.category_name
    }

    channel_sums = _sum_channel_rows(days, unit_price, registry)
    if channel_totals is not None and sum(t.count for t in channel_totals) > 0:
        daily_sum = int(channel_sums["count"].sum())
        channel_sums = _channel_totals_frame(channel_totals, unit_price, registry)
        month_sum = int(channel_sums["count"].sum())
        if daily_sum and daily_sum != month_sum:
            logger.warning(
                "%s: channel month totals (%d) differ from daily channel rows (%d); using month totals",
                prefix,
                month_sum,
                daily_sum,
            )
        channel_names.update({t.channel_code: t.channel_name for t in channel_totals if t.channel_name})

    category_sums = _sum_category_rows((d.date, s) for d in days for s in d.category_sales)
    if category_totals is not None and sum(t.count for t in category_totals) > 0:
        category_sums = _sum_category_rows((prefix, t) for t in category_totals)
        category_names.update(
            {t.category_code: t.category_name for t in category_totals if t.category_name}
        )

    channel_rows = _channel_total_rows(channel_sums, registry, channel_names)
    category_rows = _category_total_rows(category_sums, unit_price, category_registry, category_names)

    online_count = sum(t.count for t in channel_rows)
    offline_count = sum(t.count for t in category_rows)
    online_gross = sum(t.gross_revenue for t in channel_rows)
    online_fee = sum(t.fee for t in channel_rows)

    reported_online = sum(d.reported_online for d in days)
    reported_offline = sum(d.reported_offline for d in days)

    if online_count > 0:
        if reported_online != online_count:
            logger.warning(
                "%s: daily online summaries (%d) differ from channel totals (%d); using channel totals",
                prefix,
                reported_online,
                online_count,
            )
    elif reported_online > 0:
        unclassified = compute_channel_revenue(unit_price, registry.fee_rate(OTHER_CHANNEL), reported_online)
        logger.warning("%s: %d online visitors have no channel breakdown", prefix, reported_online)
        online_count = reported_online
        online_gross = unclassified.gross_revenue
        online_fee = unclassified.fee

    if offline_count > 0:
        if reported_offline != offline_count:
            logger.warning(
                "%s: daily offline summaries (%d) differ from category totals (%d); using category totals",
                prefix,
                reported_offline,
                offline_count,
            )
    elif reported_offline > 0:
        logger.warning("%s: %d offline visitors have no category breakdown", prefix, reported_offline)
        offline_count = reported_offline

    offline_revenue = unit_price * offline_count
    summary = MonthlySummary(
        total_days=len({d.date for d in days}),
        online_count=online_count,
        offline_count=offline_count,
        total_count=online_count + offline_count,
        online_gross_revenue=online_gross,
        online_fee=online_fee,
        online_net_revenue=online_gross - online_fee,
        offline_revenue=offline_revenue,
        total_gross_revenue=online_gross + offline_revenue,
        total_net_revenue=online_gross - online_fee + offline_revenue,
    )

    logger.debug(
        "Accumulated %s: %d days, %d online / %d offline",
        prefix,
        summary.total_days,
        online_count,
        offline_count,
    )
    return MonthlyAggregate(
        year=year,
        month=month,
        channel_totals=tuple(channel_rows),
        category_totals=tuple(category_rows),
        summary=summary,
        source=month_source(days),
        days=tuple(days),
    )


def _sum_channel_rows(
    days: Sequence[DailySaleRecord],
    unit_price: int,
    registry: ChannelRegistry,
) -> pd.DataFrame:
    """Value every channel row of every day, then sum per channel code."""
    rows = []
    for day in days:
        for sale in day.channel_sales:
            fee_rate = sale.fee_rate if sale.fee_rate is not None else registry.fee_rate(sale.channel_code)
            revenue = compute_channel_revenue(unit_price, fee_rate, sale.count)
            rows.append(
                (
                    day.date,
                    sale.channel_code,
                    sale.count,
                    fee_rate,
                    revenue.gross_revenue,
                    revenue.fee,
                    revenue.net_revenue,
                )
            )

    df = pd.DataFrame(rows, columns=_CHANNEL_COLUMNS)
    return df.groupby("channel_code", sort=False)[_SUM_COLUMNS].sum()


def _channel_totals_frame(
    totals: Sequence[ChannelSale],
    unit_price: int,
    registry: ChannelRegistry,
) -> pd.DataFrame:
    rows = []
    for total in totals:
        fee_rate = total.fee_rate if total.fee_rate is not None else registry.fee_rate(total.channel_code)
        revenue = compute_channel_revenue(unit_price, fee_rate, total.count)
        rows.append((total.channel_code, total.count, revenue.gross_revenue, revenue.fee, revenue.net_revenue))

    df = pd.DataFrame(rows, columns=["channel_code"] + _SUM_COLUMNS)
    return df.groupby("channel_code", sort=False)[_SUM_COLUMNS].sum()


def _sum_category_rows(sales: Iterable[tuple[str, CategorySale]]) -> pd.Series:
    rows = []
    for date, sale in sales:
        if sale.count < 0:
            raise DataQualityError(f"Negative count for category {sale.category_code} on {date}: {sale.count}")
        rows.append((date, sale.category_code, sale.count))

    df = pd.DataFrame(rows, columns=_CATEGORY_COLUMNS)
    return df.groupby("category_code", sort=False)["count"].sum()


def _ordered_codes(master_codes: list[str], data_codes) -> list[str]:
    codes = list(master_codes)
    for code in data_codes:
        if code not in codes:
            codes.append(code)
    return codes


def _channel_total_rows(
    sums: pd.DataFrame,
    registry: ChannelRegistry,
    names: Mapping[str, str],
) -> list[ChannelTotal]:
    rows = []
    for code in _ordered_codes(registry.codes(), sums.index):
        if code in sums.index:
            count, gross, fee, net = (int(v) for v in sums.loc[code, _SUM_COLUMNS])
        else:
            count = gross = fee = net = 0
        avg_fee_rate = round_rate(Decimal(fee) * 100 / Decimal(gross)) if gross else 0.0
        name = registry.name(code) if code in registry else names.get(code, code)
        rows.append(
            ChannelTotal(
                channel_code=code,
                channel_name=name,
                count=count,
                gross_revenue=gross,
                fee=fee,
                net_revenue=net,
                avg_fee_rate=avg_fee_rate,
            )
        )
    return rows


def _category_total_rows(
    sums: pd.Series,
    unit_price: int,
    registry: CategoryRegistry,
    names: Mapping[str, str],
) -> list[CategoryTotal]:
    rows = []
    for code in _ordered_codes(registry.codes(), sums.index):
        count = int(sums[code]) if code in sums.index else 0
        name = registry.name(code) if code in registry else names.get(code, code)
        rows.append(
            CategoryTotal(category_code=code, category_name=name, count=count, revenue=unit_price * count)
        )
    return rows


def split_rate_channels(channel_totals: Iterable[ChannelSale]) -> set[str]:
    """Channels whose month total rows report more than one fee rate.

    Each rate part of such a channel keeps the rate it was reported with.
    """
    rates: dict[str, set[float]] = {}
    for total in channel_totals:
        if total.fee_rate is not None:
            rates.setdefault(total.channel_code, set()).add(total.fee_rate)
    return {code for code, found in rates.items() if len(found) > 1}


def month_source(days: Sequence[DailySaleRecord]) -> str:
    """Source label of a month: "file" if any day came from a file, else "mixed" or "manual"."""
    sources = {d.source for d in days}
    if "file" in sources:
        return "file"
    if "mixed" in sources:
        return "mixed"
    return "manual"


def distribute(target: int, day_ratios: Sequence[float | Fraction]) -> list[int]:
    """Split an integer target across days by ratio, remainder on the last day.

    Args:
        target: Month total to split.
        day_ratios: One ratio per day, in chronological order.

    Returns:
        One integer per day. ``sum(result) == target`` whenever the ratios sum
        to at most 1.

    Raises:
        DataQualityError: If ``target`` or any ratio is negative.

    Examples:
        >>> distribute(100, [1 / 3, 1 / 3, 1 / 3])
        [33, 33, 34]
        >>> distribute(7, [])
        []

    """
    if target < 0:
        raise DataQualityError(f"Cannot distribute a negative target: {target}")
    if any(ratio < 0 for ratio in day_ratios):
        raise DataQualityError("Day ratios must be non-negative")

    allocations: list[int] = []
    distributed = 0
    last = len(day_ratios) - 1
    for i, ratio in enumerate(day_ratios):
        if i == last:
            count = max(0, target - distributed)
        else:
            count = min(math.floor(target * ratio), target - distributed)
        allocations.append(count)
        distributed += count
    return allocations


def distribute_by_day(
    dates: Sequence[str],
    day_weights: Sequence[int],
    totals: Mapping[Hashable, int],
) -> dict[Hashable, list[int]]:
    """Distribute each code's month total across days in proportion to day weights.

    Days are sorted ascending before ratios are taken, so the remainder always
    lands on the last calendar day regardless of input order. Ratios are exact
    fractions ``weight / sum(weights)``; when every weight is zero the whole
    target goes to the last day.

    Args:
        dates: Day of each weight, YYYY-MM-DD.
        day_weights: Non-negative weight per day (typically the day's visitors).
        totals: Month target per key (a channel or category code, or any other
            hashable such as ``(code, fee_rate)``).

    Returns:
        ``{key: [count per day]}`` aligned with ``sorted(dates)``.

    Raises:
        DataQualityError: If lengths differ or a weight is negative.

    """
    if len(dates) != len(day_weights):
        raise DataQualityError(f"Got {len(dates)} dates but {len(day_weights)} weights")
    if any(w < 0 for w in day_weights):
        raise DataQualityError("Day weights must be non-negative")

    ordered = sorted(zip(dates, day_weights), key=lambda pair: pair[0])
    total_weight = sum(w for _, w in ordered)
    if total_weight:
        ratios = [Fraction(w, total_weight) for _, w in ordered]
    else:
        ratios = [Fraction(0)] * len(ordered)

    return {code: distribute(target, ratios) for code, target in totals.items()}


def distribute_month_evenly(
    year: int,
    month: int,
    channel_totals: Sequence[ChannelSale],
    category_totals: Sequence[CategorySale],
    settings: MonthlyFeeSettings | None = None,
    registry: ChannelRegistry | None = None,
    source: str = "manual",
) -> list[DailySaleRecord]:
    """Spread month totals evenly over every calendar day of the month.

    Each day gets ``count // days``; the last day also gets ``count % days``.
    Channel rows carry the fee rate resolved for their own date, so a mid-month
    override is reflected on the days it covers. A channel reported at several
    rates keeps each row's reported rate instead.

    Returns:
        One DailySaleRecord per calendar day, ascending. Zero rows are omitted.

    """
    if registry is None:
        registry = ChannelRegistry()
    if settings is None:
        settings = default_fee_settings(year, month, registry)
    resolver = FeeRateResolver(settings, registry)
    split = split_rate_channels(channel_totals)

    dates = month_dates(year, month)
    n_days = len(dates)
    last = n_days - 1

    def share(count: int, i: int) -> int:
        if count < 0:
            raise DataQualityError(f"Negative month total: {count}")
        return count // n_days + (count % n_days if i == last else 0)

    records = []
    for i, date in enumerate(dates):
        channel_sales = tuple(
            ChannelSale(
                channel_code=t.channel_code,
                count=share(t.count, i),
                fee_rate=(
                    t.fee_rate
                    if t.channel_code in split and t.fee_rate is not None
                    else resolver.resolve(t.channel_code, date)
                ),
                channel_name=t.channel_name or registry.name(t.channel_code),
            )
            for t in channel_totals
            if share(t.count, i) > 0
        )
        category_sales = tuple(
            CategorySale(t.category_code, share(t.count, i), t.category_name)
            for t in category_totals
            if share(t.count, i) > 0
        )
        records.append(
            DailySaleRecord(
                date=date,
                channel_sales=channel_sales,
                category_sales=category_sales,
                source=source,
            )
        )

    logger.info(
        "Distributed %s evenly over %d days (%d online, %d offline)",
        period_key(year, month),
        n_days,
        sum(t.count for t in channel_totals),
        sum(t.count for t in category_totals),
    )
    return records
