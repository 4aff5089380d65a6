"""Example: Run the settlement cascade directly

This example shows the settlement cascade without any storage:
1. Build a SalesInput from channel counts
2. Settle it with the default units and with a custom agency fee base
3. Compare the party results side by side
"""

import logging

import pandas as pd

from settlement_core.config import CompanyConfig, SettlementConfig
from settlement_core.settlement import calculate_settlement, create_sales_input

logging.basicConfig(level=logging.INFO)

sales = create_sales_input(
    {
        "NAVER_MAZE_25": 459,
        "MAZE_TICKET": 200,
        "MAZE_TICKET_SINGLE": 124,
        "GENERAL_TICKET": 47,
    },
    offline_count=1457,
)

default_result = calculate_settlement(sales, period_start="2025-01-01", period_end="2025-01-31")

revenue_based = SettlementConfig(company=CompanyConfig(agency_fee_base="SKP_REVENUE"))
revenue_result = calculate_settlement(sales, revenue_based, "2025-01-01", "2025-01-31")

comparison = pd.concat(
    {
        "ticket_profit_base": default_result.party_frame()["profit"],
        "revenue_base": revenue_result.party_frame()["profit"],
    },
    axis=1,
)

print(f"Visitors: {default_result.total_count}")
print("\nPer-channel breakdown:")
print(default_result.channel_frame()[["channel_code", "count", "fee_rate", "revenue", "fee", "net_revenue"]])
print("\nProfit by agency fee base:")
print(comparison)
print(f"\nAgency fee formula: {default_result.party('AGENCY').details['calculation']}")
