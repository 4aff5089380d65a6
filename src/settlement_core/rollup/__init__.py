"""Rollup module.

This module sums settled months into cumulative views:

- **rollup_year**: every settled month of one calendar year.
- **rollup_all**: every settled month on record.

Example:
    >>> from settlement_core.rollup import MonthlySettlement, rollup_year
    >>>
    >>> months = [MonthlySettlement.from_result(2025, m, result) for m, result in settled.items()]
    >>> view = rollup_year(2025, months)
    >>> view.party_frame()[["income", "cost", "profit", "profit_rate"]]
    >>> view.breakdown_frame()
"""

from settlement_core.rollup.cumulative import (
    CumulativeView,
    MonthlySettlement,
    rollup_all,
    rollup_year,
)

__all__ = [
    "CumulativeView",
    "MonthlySettlement",
    "rollup_all",
    "rollup_year",
]
