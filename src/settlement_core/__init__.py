"""Settlement Core - ticket sales aggregation and multi-party settlement.

This package tracks the ticket sales of an attraction operated by several
companies and computes how the revenue is split between them:

- **SKP**: ticketing operator
- **MAZE**: venue owner
- **CULTURE**: facility partner
- **AGENCY** (FMC): operating agency

Module Structure:
    settlement_core.fees: Fee rate resolution and monthly fee settings
    settlement_core.settlement: Channel revenue and the settlement cascade
    settlement_core.sales: Daily aggregation, merge-on-reupload, month pipeline
    settlement_core.rollup: Year and all-time cumulative views
    settlement_core.registry: Channel and category master data
    settlement_core.store: JSON month store
    settlement_core.paths: DataPaths configuration

Quick Start:
    >>> from settlement_core import DataPaths, MonthStore
    >>> from settlement_core.sales import MonthUpload
    >>>
    >>> store = MonthStore(DataPaths.from_root("data"))
    >>>
    >>> # Merge an upload into its month and settle it
    >>> result = store.save_upload(MonthUpload.from_dict(payload))
    >>> print(result.settlement.party_frame())
    >>>
    >>> # Year to date
    >>> view = store.rollup(year=2025)
    >>> print(view.breakdown_frame())
"""

__version__ = "0.1.0"

from settlement_core.config import DEFAULT_SETTLEMENT_CONFIG, CompanyConfig, SettlementConfig
from settlement_core.exceptions import ConfigError, DataQualityError, SettlementAPIError, StoreError
from settlement_core.paths import DataPaths
from settlement_core.store import MonthStore

__all__ = [
    "DEFAULT_SETTLEMENT_CONFIG",
    "CompanyConfig",
    "ConfigError",
    "DataPaths",
    "DataQualityError",
    "MonthStore",
    "SettlementAPIError",
    "SettlementConfig",
    "StoreError",
    "__version__",
]
