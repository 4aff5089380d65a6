"""Fee policy module.

This module resolves the commission rate a channel pays on a given day and
maintains the per-month fee settings:

- **MonthlyFeeSettings**: channel defaults for one month plus override windows.
- **resolve_fee_rate / FeeRateResolver**: override > monthly default > master default.

Example:
    >>> from settlement_core.fees import default_fee_settings, add_override, FeeRateResolver
    >>>
    >>> settings = default_fee_settings(2025, 1)
    >>> settings = add_override(settings, "NAVER_MAZE_25", "2025-01-10", "2025-01-20", 5)
    >>> FeeRateResolver(settings).resolve("NAVER_MAZE_25", "2025-01-12")
    5
"""

from settlement_core.fees.resolver import (
    FeeRateResolver,
    add_override,
    average_fee_rate,
    default_fee_settings,
    find_overlapping_overrides,
    remove_override,
    resolve_fee_rate,
    update_channel_fee,
)
from settlement_core.fees.types import ChannelMonthlyFee, FeeOverride, MonthlyFeeSettings

__all__ = [
    "ChannelMonthlyFee",
    "FeeOverride",
    "FeeRateResolver",
    "MonthlyFeeSettings",
    "add_override",
    "average_fee_rate",
    "default_fee_settings",
    "find_overlapping_overrides",
    "remove_override",
    "resolve_fee_rate",
    "update_channel_fee",
]
