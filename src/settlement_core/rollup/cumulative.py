"""Cumulative rollup of settled months.

This module sums settled months into a year view or an all-time view:
visitor totals, per-party revenue/income/cost/profit, and a chronological
month-by-month breakdown. Profit rates of the rolled-up parties are recomputed
from the summed income and profit, never averaged.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from settlement_core.settlement.revenue import profit_rate
from settlement_core.settlement.types import PARTY_CODES, PARTY_NAMES, PartySettlement, SettlementResult
from settlement_core.utils import period_key, validate_period

logger = logging.getLogger(__name__)

_AMOUNT_COLUMNS = ["revenue", "income", "cost", "profit"]


@dataclass(frozen=True)
class MonthlySettlement:
    """One settled month, as fed to the rollup.

    Attributes:
        year: Calendar year.
        month: Month number, 1-12.
        online_count: Online visitors of the month.
        offline_count: Offline visitors of the month.
        settlement: Unmasked settlement of the month.
    """

    year: int
    month: int
    online_count: int
    offline_count: int
    settlement: SettlementResult

    @property
    def total_count(self) -> int:
        return self.online_count + self.offline_count

    @classmethod
    def from_result(cls, year: int, month: int, result: SettlementResult) -> MonthlySettlement:
        return cls(
            year=year,
            month=month,
            online_count=result.online_count,
            offline_count=result.offline_count,
            settlement=result,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "totalCount": self.total_count,
            "onlineCount": self.online_count,
            "offlineCount": self.offline_count,
            "settlements": [s.to_dict() for s in self.settlement.settlements],
        }


@dataclass(frozen=True)
class CumulativeView:
    """Totals over a year or over all stored months.

    Attributes:
        scope: "year" or "all".
        period: Display label, e.g. "2025" or "2024 ~ 2025". Empty without data.
        year: The rolled-up year for scope "year", else None.
        month_count: Number of months included.
        total_visitors: Online plus offline visitors.
        total_online: Online visitors.
        total_offline: Offline visitors.
        monthly_breakdown: Included months, oldest first.
        party_totals: The four parties, in SKP, MAZE, CULTURE, AGENCY order.
        available_years: Every year present in the input, newest first.
    """

    scope: str
    period: str
    year: int | None
    month_count: int
    total_visitors: int
    total_online: int
    total_offline: int
    monthly_breakdown: tuple[MonthlySettlement, ...] = ()
    party_totals: tuple[PartySettlement, ...] = ()
    available_years: tuple[int, ...] = field(default_factory=tuple)

    def party(self, code: str) -> PartySettlement | None:
        for total in self.party_totals:
            if total.code == code:
                return total
        return None

    def party_frame(self) -> pd.DataFrame:
        """Party totals as a DataFrame indexed by party code."""
        columns = ["code", "name"] + _AMOUNT_COLUMNS + ["profit_rate"]
        rows = [{col: getattr(p, col) for col in columns} for p in self.party_totals]
        return pd.DataFrame(rows, columns=columns).set_index("code")

    def breakdown_frame(self) -> pd.DataFrame:
        """One row per month with visitor counts and each party's profit."""
        profit_columns = [f"{code.lower()}_profit" for code in PARTY_CODES]
        columns = ["year", "month", "online_count", "offline_count", "total_count"] + profit_columns
        rows = []
        for m in self.monthly_breakdown:
            row = {
                "year": m.year,
                "month": m.month,
                "online_count": m.online_count,
                "offline_count": m.offline_count,
                "total_count": m.total_count,
            }
            for code, column in zip(PARTY_CODES, profit_columns):
                party = m.settlement.party(code)
                row[column] = party.profit if party else 0
            rows.append(row)
        return pd.DataFrame(rows, columns=columns)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scope": self.scope,
            "period": self.period,
            "year": self.year,
            "monthCount": self.month_count,
            "totalVisitors": self.total_visitors,
            "totalOnline": self.total_online,
            "totalOffline": self.total_offline,
            "monthlyData": [m.to_dict() for m in self.monthly_breakdown],
            "settlements": [p.to_dict() for p in self.party_totals],
            "availableYears": list(self.available_years),
        }


def rollup_year(year: int, months: Sequence[MonthlySettlement]) -> CumulativeView:
    """Sum the settled months of one calendar year.

    Args:
        year: Year to roll up.
        months: Settled months of any years; other years are ignored but still
            reported in ``available_years``.

    Returns:
        CumulativeView with scope "year". A year without data yields a zeroed
        view with all four parties present.

    Raises:
        ConfigError: If ``year`` is not a valid year.

    """
    validate_period(year, 1)
    selected = [m for m in _unique_months(months) if m.year == year]
    return _build_view("year", str(year), year, selected, months)


def rollup_all(months: Sequence[MonthlySettlement]) -> CumulativeView:
    """Sum every settled month.

    Examples:
        >>> view = rollup_all([])
        >>> view.total_visitors, [p.code for p in view.party_totals]
        (0, ['SKP', 'MAZE', 'CULTURE', 'AGENCY'])

    """
    selected = _unique_months(months)
    years = sorted({m.year for m in selected})
    if not years:
        period = ""
    elif len(years) == 1:
        period = str(years[0])
    else:
        period = f"{years[0]} ~ {years[-1]}"
    return _build_view("all", period, None, selected, months)


def _unique_months(months: Sequence[MonthlySettlement]) -> list[MonthlySettlement]:
    """One entry per (year, month), the last one given winning, oldest first."""
    by_key: dict[tuple[int, int], MonthlySettlement] = {}
    for m in months:
        key = (m.year, m.month)
        if key in by_key:
            logger.warning("Duplicate settled month %s; keeping the last one", period_key(*key))
        by_key[key] = m
    return [by_key[k] for k in sorted(by_key)]


def _build_view(
    scope: str,
    period: str,
    year: int | None,
    selected: list[MonthlySettlement],
    all_months: Sequence[MonthlySettlement],
) -> CumulativeView:
    rows = [
        {"code": s.code, **{col: getattr(s, col) for col in _AMOUNT_COLUMNS}}
        for m in selected
        for s in m.settlement.settlements
    ]
    df = pd.DataFrame(rows, columns=["code"] + _AMOUNT_COLUMNS)
    sums = df.groupby("code")[_AMOUNT_COLUMNS].sum()

    party_totals = []
    for code in PARTY_CODES:
        if code in sums.index:
            revenue, income, cost, profit = (int(v) for v in sums.loc[code, _AMOUNT_COLUMNS])
        else:
            revenue = income = cost = profit = 0
        party_totals.append(
            PartySettlement(
                code=code,
                name=PARTY_NAMES[code],
                revenue=revenue,
                income=income,
                cost=cost,
                profit=profit,
                profit_rate=profit_rate(profit, income),
                details={"months": len(selected)},
            )
        )

    total_online = sum(m.online_count for m in selected)
    total_offline = sum(m.offline_count for m in selected)
    view = CumulativeView(
        scope=scope,
        period=period,
        year=year,
        month_count=len(selected),
        total_visitors=total_online + total_offline,
        total_online=total_online,
        total_offline=total_offline,
        monthly_breakdown=tuple(selected),
        party_totals=tuple(party_totals),
        available_years=tuple(sorted({m.year for m in all_months}, reverse=True)),
    )
    logger.info(
        "Rolled up %d months (%s %s): %d visitors",
        view.month_count,
        scope,
        period or "-",
        view.total_visitors,
    )
    return view
