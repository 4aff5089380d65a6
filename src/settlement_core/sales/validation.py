"""Upload total checks.

Sources usually carry a grand-total row next to their per-channel and
per-category rows. A grand total that does not match the rows is surfaced as a
warning; it never stops the month from being settled from the rows.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from settlement_core.sales.types import MonthUpload
from settlement_core.utils import period_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadValidation:
    """Grand total vs row sum comparison of one upload.

    Attributes:
        excel_online_total: Online grand total reported by the source (0 = not reported).
        excel_offline_total: Offline grand total reported by the source (0 = not reported).
        calculated_online_total: Sum of the online rows.
        calculated_offline_total: Sum of the offline rows.
        has_online_mismatch: True when a reported online total differs from the rows.
        has_offline_mismatch: True when a reported offline total differs from the rows.
    """

    excel_online_total: int
    excel_offline_total: int
    calculated_online_total: int
    calculated_offline_total: int
    has_online_mismatch: bool
    has_offline_mismatch: bool

    @property
    def has_mismatch(self) -> bool:
        return self.has_online_mismatch or self.has_offline_mismatch

    def to_dict(self) -> dict[str, Any]:
        return {
            "excelOnlineTotal": self.excel_online_total,
            "excelOfflineTotal": self.excel_offline_total,
            "calculatedOnlineTotal": self.calculated_online_total,
            "calculatedOfflineTotal": self.calculated_offline_total,
            "hasOnlineMismatch": self.has_online_mismatch,
            "hasOfflineMismatch": self.has_offline_mismatch,
            "hasMismatch": self.has_mismatch,
        }


def check_upload_totals(
    excel_online_total: int,
    excel_offline_total: int,
    channel_counts: Iterable[int],
    category_counts: Iterable[int],
) -> UploadValidation:
    """Compare reported grand totals with the sums of the rows.

    Examples:
        >>> check_upload_totals(100, 0, [60, 30], [5]).has_online_mismatch
        True
        >>> check_upload_totals(0, 0, [60, 30], [5]).has_mismatch
        False

    """
    online = sum(channel_counts)
    offline = sum(category_counts)
    return UploadValidation(
        excel_online_total=excel_online_total,
        excel_offline_total=excel_offline_total,
        calculated_online_total=online,
        calculated_offline_total=offline,
        has_online_mismatch=excel_online_total > 0 and online != excel_online_total,
        has_offline_mismatch=excel_offline_total > 0 and offline != excel_offline_total,
    )


def validate_upload(upload: MonthUpload) -> UploadValidation:
    """Check an upload's grand-total rows against its month rows.

    Month total rows are compared when the upload has them; otherwise the sums
    of the daily summaries are.
    """
    if upload.channel_totals:
        channel_counts = [t.count for t in upload.channel_totals]
    else:
        channel_counts = [d.reported_online for d in upload.days]
    if upload.category_totals:
        category_counts = [t.count for t in upload.category_totals]
    else:
        category_counts = [d.reported_offline for d in upload.days]

    result = check_upload_totals(
        upload.reported_online_total,
        upload.reported_offline_total,
        channel_counts,
        category_counts,
    )
    if result.has_mismatch:
        logger.warning(
            "%s: grand totals do not match rows (online %d vs %d, offline %d vs %d)",
            period_key(upload.year, upload.month),
            result.excel_online_total,
            result.calculated_online_total,
            result.excel_offline_total,
            result.calculated_offline_total,
        )
    return result
