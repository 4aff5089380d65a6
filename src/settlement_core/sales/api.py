"""Public API for month processing.

This module is the entry point that turns an upload into a settled month:

1. Merges the upload into the stored snapshot (new days win per date, month
   totals replaced).
2. Checks the source's grand totals against its rows.
3. Resolves the month's counts: channel and category month totals take
   priority over the daily summaries when the source reports them.
4. Redistributes month totals back onto days (remainder on the last day),
   capturing each day's resolved fee rate on its channel rows.
5. Aggregates the days and runs the settlement cascade.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import pandas as pd

from settlement_core.config import DEFAULT_SETTLEMENT_CONFIG, OTHER_CHANNEL, SettlementConfig
from settlement_core.fees.resolver import FeeRateResolver, default_fee_settings, update_channel_fee
from settlement_core.fees.types import MonthlyFeeSettings
from settlement_core.registry import CategoryRegistry, ChannelRegistry
from settlement_core.rollup.cumulative import MonthlySettlement
from settlement_core.sales.aggregate import (
    accumulate,
    distribute_by_day,
    distribute_month_evenly,
    split_rate_channels,
)
from settlement_core.sales.merge import merge_upload
from settlement_core.sales.types import (
    CategorySale,
    ChannelSale,
    DailySaleRecord,
    MonthlyAggregate,
    MonthlySummary,
    MonthUpload,
)
from settlement_core.sales.validation import UploadValidation, validate_upload
from settlement_core.settlement.cascade import calculate_settlement
from settlement_core.settlement.types import ChannelSales, SalesInput, SettlementResult
from settlement_core.utils import month_bounds, period_key, validate_period

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonthResult:
    """Everything derived from one month's snapshot.

    Attributes:
        upload: Merged snapshot, as it should be stored.
        days: Daily records the month was settled from (after redistribution).
        aggregate: Month totals of ``days``.
        settlement: Settlement of the month.
        validation: Grand total check of the snapshot.
        fee_settings: Fee settings the days were priced with.
    """

    upload: MonthUpload
    days: tuple[DailySaleRecord, ...]
    aggregate: MonthlyAggregate
    settlement: SettlementResult
    validation: UploadValidation
    fee_settings: MonthlyFeeSettings

    @property
    def year(self) -> int:
        return self.upload.year

    @property
    def month(self) -> int:
        return self.upload.month

    def monthly_settlement(self) -> MonthlySettlement:
        """This month as a rollup entry."""
        return MonthlySettlement.from_result(self.year, self.month, self.settlement)

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "dailyData": [d.to_dict() for d in self.days],
            "monthly": self.aggregate.to_dict(),
            "settlement": self.settlement.to_dict(),
            "validation": self.validation.to_dict(),
        }


def process_upload(
    upload: MonthUpload,
    existing: MonthUpload | None = None,
    merge: bool = True,
    config: SettlementConfig = DEFAULT_SETTLEMENT_CONFIG,
    fee_settings: MonthlyFeeSettings | None = None,
    registry: ChannelRegistry | None = None,
    category_registry: CategoryRegistry | None = None,
) -> MonthResult:
    """Merge an upload into a month and settle the month.

    Args:
        upload: Incoming upload.
        existing: Stored snapshot of the same month, if any.
        merge: If False the upload replaces the stored snapshot entirely.
        config: Settlement units and fallback rates.
        fee_settings: The month's fee settings. Defaults to the registry rates.
        registry: Channel master data.
        category_registry: Category master data.

    Returns:
        MonthResult with the snapshot to store and everything derived from it.

    Raises:
        ConfigError: If the upload's (year, month) is invalid or does not match
            ``existing``.
        DataQualityError: If any count is negative or a date is malformed.

    """
    validate_period(upload.year, upload.month)
    if registry is None:
        registry = ChannelRegistry()
    if category_registry is None:
        category_registry = CategoryRegistry()

    snapshot = merge_upload(existing if merge else None, upload)
    validation = validate_upload(snapshot)

    if fee_settings is None:
        fee_settings = default_fee_settings(snapshot.year, snapshot.month, registry)
    fee_settings = apply_reported_fee_rates(fee_settings, snapshot.channel_totals)

    days = derive_daily_records(snapshot, fee_settings, registry)
    aggregate, settlement = settle_records(
        snapshot.year,
        snapshot.month,
        days,
        config=config,
        registry=registry,
        category_registry=category_registry,
    )

    logger.info(
        "Processed %s upload (%s, %d days): %d online / %d offline",
        period_key(snapshot.year, snapshot.month),
        snapshot.source,
        len(snapshot.days),
        aggregate.summary.online_count,
        aggregate.summary.offline_count,
    )
    return MonthResult(
        upload=snapshot,
        days=tuple(days),
        aggregate=aggregate,
        settlement=settlement,
        validation=validation,
        fee_settings=fee_settings,
    )


def settle_records(
    year: int,
    month: int,
    days: Sequence[DailySaleRecord],
    config: SettlementConfig = DEFAULT_SETTLEMENT_CONFIG,
    registry: ChannelRegistry | None = None,
    category_registry: CategoryRegistry | None = None,
) -> tuple[MonthlyAggregate, SettlementResult]:
    """Aggregate a month of daily records and settle it.

    Channel rows are settled at the fee rate captured on each row, so a rate
    that changed mid-month settles each part of the month at its own rate.

    Returns:
        Tuple of (month aggregate, settlement).

    """
    validate_period(year, month)
    if registry is None:
        registry = ChannelRegistry()

    aggregate = accumulate(
        year,
        month,
        days,
        unit_price=config.base_price,
        registry=registry,
        category_registry=category_registry,
    )
    sales_input = sales_input_from_records(aggregate.days, aggregate.summary, config, registry)

    if aggregate.days:
        period_start, period_end = aggregate.days[0].date, aggregate.days[-1].date
    else:
        period_start, period_end = month_bounds(year, month)

    settlement = calculate_settlement(sales_input, config, period_start, period_end)
    return aggregate, settlement


def sales_input_from_records(
    days: Sequence[DailySaleRecord],
    summary: MonthlySummary,
    config: SettlementConfig = DEFAULT_SETTLEMENT_CONFIG,
    registry: ChannelRegistry | None = None,
) -> SalesInput:
    """Group channel rows by (channel, fee rate) into a settlement input.

    Rows without a captured rate take the configured rate. Online visitors the
    month summary counts but no channel row explains are settled as OTHER.

    Args:
        days: Daily records of the month.
        summary: MonthlySummary of the same days (source of the offline count).
        config: Fallback fee rates.
        registry: Channel master data for display names.

    """
    if registry is None:
        registry = ChannelRegistry()

    rows = [
        (
            sale.channel_code,
            sale.fee_rate if sale.fee_rate is not None else config.fee_rate_for(sale.channel_code),
            sale.count,
        )
        for day in days
        for sale in day.channel_sales
    ]
    df = pd.DataFrame(rows, columns=["channel_code", "fee_rate", "count"])
    grouped = df.groupby(["channel_code", "fee_rate"], sort=False)["count"].sum()

    online = [
        ChannelSales(
            channel_code=code,
            count=int(count),
            channel_name=registry.name(code),
            fee_rate=float(rate),
        )
        for (code, rate), count in grouped.items()
        if count > 0
    ]

    unclassified = summary.online_count - sum(s.count for s in online)
    if unclassified > 0:
        online.append(
            ChannelSales(
                channel_code=OTHER_CHANNEL,
                count=unclassified,
                channel_name=registry.name(OTHER_CHANNEL),
                fee_rate=registry.fee_rate(OTHER_CHANNEL),
            )
        )

    return SalesInput(online_sales=tuple(online), offline_count=summary.offline_count)


def apply_reported_fee_rates(
    settings: MonthlyFeeSettings,
    channel_totals: Sequence[ChannelSale],
) -> MonthlyFeeSettings:
    """Take the month rates reported by the source as the channels' monthly defaults.

    Rates set by hand (source "manual") are kept. A channel reported at several
    rates has no single monthly rate; its rows keep their own rates and its
    monthly setting is left alone.
    """
    split = split_rate_channels(channel_totals)
    for code in sorted(split):
        logger.info("Channel %s reported at several fee rates; keeping the rate of each row", code)

    for total in channel_totals:
        if total.fee_rate is None or total.channel_code in split:
            continue
        current = settings.channel_fee(total.channel_code)
        if current is not None and (current.source == "manual" or current.fee_rate == total.fee_rate):
            continue
        settings = update_channel_fee(settings, total.channel_code, total.fee_rate, source="excel")
    return settings


def derive_daily_records(
    snapshot: MonthUpload,
    fee_settings: MonthlyFeeSettings,
    registry: ChannelRegistry | None = None,
) -> list[DailySaleRecord]:
    """Build the daily records a month is settled from.

    When the snapshot carries month totals, they are spread over the days in
    proportion to each day's reported visitors, and over the whole calendar
    month when there are no days. Otherwise the stored day rows are used as they
    are. Every channel row gets the fee rate resolved for its own date unless the
    source captured one.
    """
    if registry is None:
        registry = ChannelRegistry()
    resolver = FeeRateResolver(fee_settings, registry)

    has_channel_totals = snapshot.channel_sum > 0
    has_category_totals = snapshot.category_sum > 0

    if not snapshot.days:
        return distribute_month_evenly(
            snapshot.year,
            snapshot.month,
            snapshot.channel_totals,
            snapshot.category_totals,
            fee_settings,
            registry,
            source=snapshot.source,
        )

    # Repeated rows of one code are summed; a channel reported at several
    # rates is split per (code, rate).
    split = split_rate_channels(snapshot.channel_totals)
    channel_targets: Counter[tuple[str, float | None]] = Counter()
    for t in snapshot.channel_totals:
        channel_targets[(t.channel_code, t.fee_rate if t.channel_code in split else None)] += t.count
    category_targets: Counter[str] = Counter()
    for t in snapshot.category_totals:
        category_targets[t.category_code] += t.count

    dates = [d.date for d in snapshot.days]
    online_split = {}
    if has_channel_totals:
        online_split = distribute_by_day(dates, [d.reported_online for d in snapshot.days], channel_targets)
    offline_split = {}
    if has_category_totals:
        offline_split = distribute_by_day(dates, [d.reported_offline for d in snapshot.days], category_targets)

    names = {t.channel_code: t.channel_name for t in snapshot.channel_totals}
    category_names = {t.category_code: t.category_name for t in snapshot.category_totals}

    records = []
    for i, day in enumerate(sorted(snapshot.days, key=lambda d: d.date)):
        if has_channel_totals:
            channel_sales = tuple(
                ChannelSale(
                    channel_code=code,
                    count=counts[i],
                    fee_rate=rate if rate is not None else resolver.resolve(code, day.date),
                    channel_name=names.get(code) or registry.name(code),
                )
                for (code, rate), counts in online_split.items()
                if counts[i] > 0
            )
        else:
            channel_sales = tuple(
                sale
                if sale.fee_rate is not None
                else ChannelSale(
                    sale.channel_code,
                    sale.count,
                    resolver.resolve(sale.channel_code, day.date),
                    sale.channel_name,
                )
                for sale in day.channel_sales
            )

        if has_category_totals:
            category_sales = tuple(
                CategorySale(code, counts[i], category_names.get(code, ""))
                for code, counts in offline_split.items()
                if counts[i] > 0
            )
        else:
            category_sales = day.category_sales

        records.append(
            DailySaleRecord(
                date=day.date,
                channel_sales=channel_sales,
                category_sales=category_sales,
                source=day.source,
                online_count=None if has_channel_totals else day.online_count,
                offline_count=None if has_category_totals else day.offline_count,
            )
        )
    return records
