"""File-backed month store.

This module keeps one JSON snapshot per month (merged daily records plus the
latest month totals) and one fee settings file per month. The settled month is
written to ``results/`` for readers, but aggregates, settlements and rollups
are always rederived from the snapshot and fee settings.

Writes to the same (year, month) are serialized: each month has its own lock,
and read-merge-write sequences run entirely inside it, so two uploads of the
same month never lose each other's days. Different months never share a lock.
Files are replaced atomically (temp file + ``os.replace``).
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from settlement_core.config import DEFAULT_SETTLEMENT_CONFIG, SettlementConfig
from settlement_core.exceptions import StoreError
from settlement_core.fees.resolver import default_fee_settings
from settlement_core.fees.types import MonthlyFeeSettings
from settlement_core.paths import DataPaths
from settlement_core.registry import CategoryRegistry, ChannelRegistry
from settlement_core.rollup.cumulative import CumulativeView, rollup_all, rollup_year
from settlement_core.sales.api import MonthResult, process_upload
from settlement_core.sales.types import MonthUpload
from settlement_core.utils import period_key, validate_period

logger = logging.getLogger(__name__)


class MonthStore:
    """JSON store of month snapshots and fee settings.

    Example:
        >>> store = MonthStore(DataPaths.from_root(".data"))
        >>> result = store.save_upload(upload)
        >>> store.rollup(year=2025).total_visitors

    """

    def __init__(
        self,
        paths: DataPaths,
        config: SettlementConfig = DEFAULT_SETTLEMENT_CONFIG,
        registry: ChannelRegistry | None = None,
        category_registry: CategoryRegistry | None = None,
    ) -> None:
        self.paths = paths
        self.config = config
        self.registry = registry or ChannelRegistry()
        self.category_registry = category_registry or CategoryRegistry()
        self._locks: dict[tuple[int, int], threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def lock_for(self, year: int, month: int) -> threading.Lock:
        """The lock guarding one month's files."""
        with self._locks_guard:
            return self._locks.setdefault((year, month), threading.Lock())

    def snapshot_path(self, year: int, month: int) -> Path:
        return self.paths.uploads / f"{period_key(year, month)}.json"

    def fee_settings_path(self, year: int, month: int) -> Path:
        return self.paths.fee_policy / f"{period_key(year, month)}.json"

    def result_path(self, year: int, month: int) -> Path:
        return self.paths.results / f"{period_key(year, month)}.json"

    # Snapshots

    def load_month(self, year: int, month: int) -> MonthUpload | None:
        """Read a month snapshot, or None if the month was never uploaded."""
        validate_period(year, month)
        data = _read_json(self.snapshot_path(year, month))
        return MonthUpload.from_dict(data) if data is not None else None

    def update_month(
        self,
        year: int,
        month: int,
        fn: Callable[[MonthUpload | None], MonthUpload],
    ) -> MonthUpload:
        """Read, transform and write a month snapshot inside the month's lock.

        Args:
            year: Calendar year.
            month: Month number, 1-12.
            fn: Receives the stored snapshot (None if absent) and returns the
                snapshot to store.

        Returns:
            The stored snapshot.

        """
        validate_period(year, month)
        self.paths.ensure_dirs()
        with self.lock_for(year, month):
            current = self.load_month(year, month)
            updated = fn(current)
            _write_json(self.snapshot_path(year, month), updated.to_dict())
        logger.info("Stored %s snapshot (%d days)", period_key(year, month), len(updated.days))
        return updated

    def save_upload(self, upload: MonthUpload, merge: bool = True) -> MonthResult:
        """Merge an upload into its month, settle it and store the results.

        Args:
            upload: Incoming upload.
            merge: If False the upload replaces the stored snapshot.

        Returns:
            MonthResult of the merged month.

        Raises:
            ConfigError: If the upload's (year, month) is invalid.
            StoreError: If stored files cannot be read or written.

        """
        year, month = upload.year, upload.month
        validate_period(year, month)
        self.paths.ensure_dirs()
        with self.lock_for(year, month):
            existing = self.load_month(year, month)
            settings = self._read_fee_settings(year, month)
            result = process_upload(
                upload,
                existing=existing,
                merge=merge,
                config=self.config,
                fee_settings=settings,
                registry=self.registry,
                category_registry=self.category_registry,
            )
            _write_json(self.snapshot_path(year, month), result.upload.to_dict())
            _write_json(self.fee_settings_path(year, month), result.fee_settings.to_dict())
            _write_json(self.result_path(year, month), result.to_dict())

        logger.info(
            "Saved %s upload (merge=%s): %d visitors",
            period_key(year, month),
            merge,
            result.settlement.total_count,
        )
        return result

    def settle_month(self, year: int, month: int) -> MonthResult | None:
        """Recompute a stored month from its snapshot and current fee settings."""
        snapshot = self.load_month(year, month)
        if snapshot is None:
            return None
        return process_upload(
            snapshot,
            config=self.config,
            fee_settings=self.load_fee_settings(year, month),
            registry=self.registry,
            category_registry=self.category_registry,
        )

    def list_months(self) -> list[tuple[int, int]]:
        """(year, month) of every stored snapshot, oldest first."""
        if not self.paths.uploads.exists():
            return []
        months = []
        for path in self.paths.uploads.glob("*.json"):
            try:
                year, month = (int(part) for part in path.stem.split("-"))
            except ValueError:
                logger.warning("Ignoring unexpected file in uploads: %s", path.name)
                continue
            months.append((year, month))
        return sorted(months)

    def rollup(self, year: int | None = None) -> CumulativeView:
        """Roll up every stored month, or the months of one year."""
        months = []
        for y, m in self.list_months():
            result = self.settle_month(y, m)
            if result is not None:
                months.append(result.monthly_settlement())
        if year is None:
            return rollup_all(months)
        return rollup_year(year, months)

    # Fee settings

    def load_fee_settings(self, year: int, month: int) -> MonthlyFeeSettings:
        """Read a month's fee settings, building the defaults when none are stored."""
        validate_period(year, month)
        return self._read_fee_settings(year, month)

    def save_fee_settings(self, settings: MonthlyFeeSettings) -> None:
        validate_period(settings.year, settings.month)
        self.paths.ensure_dirs()
        with self.lock_for(settings.year, settings.month):
            _write_json(self.fee_settings_path(settings.year, settings.month), settings.to_dict())
        logger.info("Stored %s fee settings", period_key(settings.year, settings.month))

    def update_fee_settings(
        self,
        year: int,
        month: int,
        fn: Callable[[MonthlyFeeSettings], MonthlyFeeSettings],
    ) -> MonthlyFeeSettings:
        """Read, transform and write a month's fee settings inside the month's lock."""
        validate_period(year, month)
        self.paths.ensure_dirs()
        with self.lock_for(year, month):
            updated = fn(self._read_fee_settings(year, month))
            _write_json(self.fee_settings_path(year, month), updated.to_dict())
        return updated

    def _read_fee_settings(self, year: int, month: int) -> MonthlyFeeSettings:
        data = _read_json(self.fee_settings_path(year, month))
        if data is None:
            return default_fee_settings(year, month, self.registry)
        return MonthlyFeeSettings.from_dict(data)


def _read_json(path: Path) -> dict[str, Any] | None:
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise StoreError(f"Cannot read {path}: {e}") from e


def _write_json(path: Path, data: dict[str, Any]) -> None:
    """Write JSON next to ``path`` and atomically move it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_name, path)
    except OSError as e:
        Path(tmp_name).unlink(missing_ok=True)
        raise StoreError(f"Cannot write {path}: {e}") from e
    logger.debug("Wrote %s", path)
