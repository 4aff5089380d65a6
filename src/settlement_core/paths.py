"""Data paths configuration for the month store.

This module provides the DataPaths class naming every directory the
file-backed MonthStore reads and writes.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass
class DataPaths:
    """All filesystem paths used by the month store.

    Attributes:
        data_root: Root directory for stored settlement data.

    Directory Structure:
        data_root/
        ├── uploads/      # one month snapshot per file: YYYY-MM.json
        ├── results/      # derived days, month totals and settlement: YYYY-MM.json
        └── fee_policy/   # MonthlyFeeSettings per month: YYYY-MM.json

    """

    data_root: Path

    @classmethod
    def from_root(cls, data_root: str | Path) -> DataPaths:
        """Create DataPaths from a root directory.

        Args:
            data_root: Root directory for stored data.

        Returns:
            DataPaths instance.

        Examples:
            >>> paths = DataPaths.from_root(".data")
            >>> paths.uploads
            PosixPath('.data/uploads')

        """
        if isinstance(data_root, str):
            data_root = Path(data_root)

        return cls(data_root=data_root)

    @property
    def uploads(self) -> Path:
        """Month snapshots (merged daily records plus month totals)."""
        return self.data_root / "uploads"

    @property
    def results(self) -> Path:
        """Derived month results, rewritten on every upload."""
        return self.data_root / "results"

    @property
    def fee_policy(self) -> Path:
        """Monthly fee settings."""
        return self.data_root / "fee_policy"

    def ensure_dirs(self) -> None:
        """Create all directories in the data structure."""
        for path in [self.uploads, self.results, self.fee_policy]:
            path.mkdir(parents=True, exist_ok=True)
