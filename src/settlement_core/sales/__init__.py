"""Sales domain module.

This module turns daily sales records into settled months:

- **accumulate**: daily records -> MonthlyAggregate (channel and category totals).
- **distribute** / **distribute_by_day**: month targets -> per-day counts, with
  the rounding remainder on the last day.
- **merge_days** / **merge_upload**: merge-on-reupload (new days win per date,
  month totals replaced).
- **process_upload**: the whole month flow, from an upload to a SettlementResult.

Example:
    >>> from settlement_core.sales import MonthUpload, process_upload
    >>>
    >>> upload = MonthUpload.from_dict(payload)
    >>> result = process_upload(upload, existing=stored_snapshot)
    >>> result.validation.has_mismatch
    False
    >>> result.aggregate.channel_frame()
    >>> result.settlement.party_frame()
"""

from settlement_core.sales.aggregate import (
    accumulate,
    distribute,
    distribute_by_day,
    distribute_month_evenly,
    split_rate_channels,
)
from settlement_core.sales.api import (
    MonthResult,
    derive_daily_records,
    process_upload,
    sales_input_from_records,
    settle_records,
)
from settlement_core.sales.merge import merge_days, merge_upload
from settlement_core.sales.types import (
    CategorySale,
    CategoryTotal,
    ChannelSale,
    ChannelTotal,
    DailySaleRecord,
    MonthlyAggregate,
    MonthlySummary,
    MonthUpload,
)
from settlement_core.sales.validation import UploadValidation, check_upload_totals, validate_upload

__all__ = [
    "CategorySale",
    "CategoryTotal",
    "ChannelSale",
    "ChannelTotal",
    "DailySaleRecord",
    "MonthResult",
    "MonthUpload",
    "MonthlyAggregate",
    "MonthlySummary",
    "UploadValidation",
    "accumulate",
    "check_upload_totals",
    "derive_daily_records",
    "distribute",
    "distribute_by_day",
    "distribute_month_evenly",
    "merge_days",
    "merge_upload",
    "process_upload",
    "sales_input_from_records",
    "settle_records",
    "split_rate_channels",
    "validate_upload",
]
