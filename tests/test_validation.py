"""Tests for grand total checks of uploads."""

import logging

import pytest

from settlement_core.sales import (
    CategorySale,
    ChannelSale,
    DailySaleRecord,
    MonthUpload,
    check_upload_totals,
    validate_upload,
)


def test_matching_totals() -> None:
    result = check_upload_totals(90, 5, [60, 30], [5])

    assert result.calculated_online_total == 90
    assert result.calculated_offline_total == 5
    assert not result.has_mismatch


def test_online_mismatch() -> None:
    result = check_upload_totals(100, 5, [60, 30], [5])

    assert result.has_online_mismatch
    assert not result.has_offline_mismatch
    assert result.has_mismatch


def test_offline_mismatch() -> None:
    result = check_upload_totals(90, 6, [60, 30], [5])

    assert result.has_offline_mismatch
    assert result.has_mismatch


def test_unreported_total_is_not_a_mismatch() -> None:
    result = check_upload_totals(0, 0, [60, 30], [5])
    assert not result.has_mismatch


def test_to_dict() -> None:
    data = check_upload_totals(100, 0, [90], []).to_dict()

    assert data == {
        "excelOnlineTotal": 100,
        "excelOfflineTotal": 0,
        "calculatedOnlineTotal": 90,
        "calculatedOfflineTotal": 0,
        "hasOnlineMismatch": True,
        "hasOfflineMismatch": False,
        "hasMismatch": True,
    }


class TestValidateUpload:
    def test_uses_month_rows(self, caplog: pytest.LogCaptureFixture) -> None:
        upload = MonthUpload(
            2025,
            1,
            channel_totals=(ChannelSale("NAVER_MAZE_25", 60), ChannelSale("MAZE_TICKET", 30)),
            category_totals=(CategorySale("INDIVIDUAL", 5),),
            reported_online_total=91,
            reported_offline_total=5,
        )
        with caplog.at_level(logging.WARNING):
            result = validate_upload(upload)

        assert result.calculated_online_total == 90
        assert result.has_online_mismatch
        assert "grand totals do not match" in caplog.text

    def test_falls_back_to_daily_summaries(self) -> None:
        upload = MonthUpload(
            2025,
            1,
            days=(
                DailySaleRecord("2025-01-01", online_count=40, offline_count=2),
                DailySaleRecord("2025-01-02", online_count=50, offline_count=3),
            ),
            reported_online_total=90,
            reported_offline_total=5,
        )

        result = validate_upload(upload)

        assert result.calculated_online_total == 90
        assert result.calculated_offline_total == 5
        assert not result.has_mismatch
