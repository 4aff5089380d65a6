"""Merge-on-reupload.

A month may be uploaded many times as it progresses. Each upload replaces the
stored days it covers, wholesale, and leaves the other stored days alone.
Month-to-date totals are cumulative snapshots: the newest upload's totals
replace the stored ones instead of being added to them.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace
from typing import Any, TypeVar

from settlement_core.exceptions import ConfigError
from settlement_core.sales.types import DailySaleRecord, MonthUpload
from settlement_core.utils import period_key

logger = logging.getLogger(__name__)

DayT = TypeVar("DayT", DailySaleRecord, dict)


def _day_key(day: DailySaleRecord | dict[str, Any]) -> str:
    if isinstance(day, dict):
        return day["date"]
    return day.date


def merge_days(existing: Iterable[DayT], new: Iterable[DayT]) -> list[DayT]:
    """Merge two sets of daily records, the new records winning per date.

    Works on DailySaleRecord instances as well as plain dicts carrying a
    ``"date"`` key.

    Args:
        existing: Previously stored days.
        new: Days of the incoming upload.

    Returns:
        Union of both sets, one entry per date, sorted ascending by date.

    Examples:
        >>> merge_days([{"date": "2025-01-02", "n": 1}], [{"date": "2025-01-01", "n": 2}])
        [{'date': '2025-01-01', 'n': 2}, {'date': '2025-01-02', 'n': 1}]

    """
    by_date: dict[str, DayT] = {}
    for day in existing:
        by_date[_day_key(day)] = day
    for day in new:
        by_date[_day_key(day)] = day
    return [by_date[d] for d in sorted(by_date)]


def merge_upload(existing: MonthUpload | None, new: MonthUpload) -> MonthUpload:
    """Fold a new upload into the stored month snapshot.

    Args:
        existing: Stored snapshot, or None for a first upload.
        new: Incoming upload.

    Returns:
        Snapshot with merged days and the new upload's month totals. The source
        becomes "mixed" when the stored and incoming sources differ.

    Raises:
        ConfigError: If the two uploads belong to different months.

    """
    if existing is None:
        return replace(new, days=tuple(merge_days([], new.days)))

    if (existing.year, existing.month) != (new.year, new.month):
        raise ConfigError(
            f"Cannot merge {period_key(new.year, new.month)} upload into "
            f"{period_key(existing.year, existing.month)} snapshot"
        )

    days = merge_days(existing.days, new.days)
    stored_dates = {d.date for d in existing.days}
    replaced = sum(1 for d in new.days if d.date in stored_dates)

    source = new.source
    if existing.days and existing.source != new.source:
        source = "mixed"

    logger.info(
        "Merged upload for %s: %d stored days, %d uploaded (%d replaced) -> %d days",
        period_key(new.year, new.month),
        len(existing.days),
        len(new.days),
        replaced,
        len(days),
    )
    return replace(new, days=tuple(days), source=source)
