"""Example: Settle a month from two uploads and roll up the year

This example demonstrates the month flow end to end using the store API:
1. Upload the first half of January (days 1-14 plus month-to-date totals)
2. Re-upload with days 15-31 and the month totals of the whole month
3. Print the settlement of every party and the masked view a partner sees
4. Roll up the year

Prerequisites:
- None. Data is written under data/ (or modify the path below)
"""

import logging
from pathlib import Path

from settlement_core import DataPaths, MonthStore
from settlement_core.fees import add_override
from settlement_core.sales import CategorySale, ChannelSale, DailySaleRecord, MonthUpload
from settlement_core.settlement import mask_settlement_for_party

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

paths = DataPaths.from_root(Path("data"))
store = MonthStore(paths)

year, month = 2025, 1  # MODIFY AS NEEDED

# A one-week promotion on the Naver channel
store.update_fee_settings(
    year,
    month,
    lambda settings: add_override(
        settings, "NAVER_MAZE_25", "2025-01-20", "2025-01-26", 5, reason="설 연휴 프로모션"
    ),
)


def day(d: int) -> DailySaleRecord:
    return DailySaleRecord(f"{year}-{month:02d}-{d:02d}", online_count=27, offline_count=47)


first_half = MonthUpload(
    year=year,
    month=month,
    days=tuple(day(d) for d in range(1, 15)),
    channel_totals=(
        ChannelSale("NAVER_MAZE_25", 210, 10),
        ChannelSale("MAZE_TICKET", 90, 12),
        ChannelSale("MAZE_TICKET_SINGLE", 58, 12),
        ChannelSale("GENERAL_TICKET", 20, 15),
    ),
    category_totals=(
        CategorySale("INDIVIDUAL", 520),
        CategorySale("TRAVEL_AGENCY", 138),
    ),
    reported_online_total=378,
    reported_offline_total=658,
)

# Month-to-date totals replace the previous upload's totals
second_half = MonthUpload(
    year=year,
    month=month,
    days=tuple(day(d) for d in range(15, 32)),
    channel_totals=(
        ChannelSale("NAVER_MAZE_25", 459, 10),
        ChannelSale("MAZE_TICKET", 200, 12),
        ChannelSale("MAZE_TICKET_SINGLE", 124, 12),
        ChannelSale("GENERAL_TICKET", 47, 15),
    ),
    category_totals=(
        CategorySale("INDIVIDUAL", 1150),
        CategorySale("TRAVEL_AGENCY", 307),
    ),
    reported_online_total=830,
    reported_offline_total=1457,
)

store.save_upload(first_half)
result = store.save_upload(second_half)

print(f"\n{year}-{month:02d}: {len(result.upload.days)} days stored")
print(f"Visitors: {result.settlement.total_count} "
      f"(online {result.settlement.online_count} / offline {result.settlement.offline_count})")
if result.validation.has_mismatch:
    print("WARNING: grand totals do not match the rows")

print("\nChannel totals:")
print(result.aggregate.channel_frame()[["channel_code", "count", "gross_revenue", "fee", "avg_fee_rate"]])

print("\nSettlement:")
print(result.settlement.party_frame())

print("\nAs seen by MAZE:")
print(mask_settlement_for_party(result.settlement, "MAZE").party_frame())

view = store.rollup(year=year)
print(f"\nYear {view.period}: {view.month_count} month(s), {view.total_visitors} visitors")
print(view.party_frame())

print("\nData written to:")
print(f"  - Month snapshots: {paths.uploads}")
print(f"  - Month results: {paths.results}")
print(f"  - Fee settings: {paths.fee_policy}")
