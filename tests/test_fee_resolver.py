"""Tests for fee rate resolution and fee settings maintenance."""

import logging

import pytest

from settlement_core.exceptions import ConfigError
from settlement_core.fees import (
    FeeOverride,
    FeeRateResolver,
    MonthlyFeeSettings,
    add_override,
    average_fee_rate,
    default_fee_settings,
    find_overlapping_overrides,
    remove_override,
    resolve_fee_rate,
    update_channel_fee,
)
from settlement_core.registry import ChannelRegistry


@pytest.fixture
def january() -> MonthlyFeeSettings:
    return default_fee_settings(2025, 1)


class TestResolveFeeRate:
    """Override > monthly default > channel master default."""

    def test_monthly_default_from_registry_rates(self, january: MonthlyFeeSettings) -> None:
        assert resolve_fee_rate("NAVER_MAZE_25", "2025-01-05", january) == 10
        assert resolve_fee_rate("MAZE_TICKET", "2025-01-05", january) == 12
        assert resolve_fee_rate("GENERAL_TICKET", "2025-01-05", january) == 15

    def test_override_wins_inside_window(self, january: MonthlyFeeSettings) -> None:
        settings = add_override(january, "NAVER_MAZE_25", "2025-01-10", "2025-01-20", 5)

        assert resolve_fee_rate("NAVER_MAZE_25", "2025-01-09", settings) == 10
        assert resolve_fee_rate("NAVER_MAZE_25", "2025-01-10", settings) == 5
        assert resolve_fee_rate("NAVER_MAZE_25", "2025-01-15", settings) == 5
        assert resolve_fee_rate("NAVER_MAZE_25", "2025-01-20", settings) == 5
        assert resolve_fee_rate("NAVER_MAZE_25", "2025-01-21", settings) == 10

    def test_override_only_applies_to_its_channel(self, january: MonthlyFeeSettings) -> None:
        settings = add_override(january, "NAVER_MAZE_25", "2025-01-10", "2025-01-20", 5)
        assert resolve_fee_rate("MAZE_TICKET", "2025-01-15", settings) == 12

    def test_monthly_default_beats_master(self, january: MonthlyFeeSettings) -> None:
        settings = update_channel_fee(january, "MAZE_TICKET", 8)
        assert resolve_fee_rate("MAZE_TICKET", "2025-01-15", settings) == 8

    def test_master_default_when_month_has_no_entry(self) -> None:
        empty = MonthlyFeeSettings(2025, 1)
        assert resolve_fee_rate("MAZE_TICKET_SINGLE", "2025-01-15", empty) == 12

    def test_unknown_channel_uses_other_rate(self, january: MonthlyFeeSettings) -> None:
        assert resolve_fee_rate("NOT_A_CHANNEL", "2025-01-15", january) == 15

    def test_custom_registry_channel(self) -> None:
        registry = ChannelRegistry()
        registry.add_custom("POP_UP", "팝업", 7)
        settings = MonthlyFeeSettings(2025, 1)
        assert resolve_fee_rate("POP_UP", "2025-01-15", settings, registry) == 7


class TestFeeRateResolver:
    def test_rates_for_date(self, january: MonthlyFeeSettings) -> None:
        settings = add_override(january, "MAZE_TICKET", "2025-01-01", "2025-01-03", 0)
        rates = FeeRateResolver(settings).rates_for_date("2025-01-02")

        assert rates["MAZE_TICKET"] == 0
        assert rates["NAVER_MAZE_25"] == 10
        assert rates["OTHER"] == 15

    def test_overlapping_overrides_first_wins_and_warns(
        self, january: MonthlyFeeSettings, caplog: pytest.LogCaptureFixture
    ) -> None:
        settings = add_override(january, "NAVER_MAZE_25", "2025-01-01", "2025-01-15", 5)
        settings = add_override(settings, "NAVER_MAZE_25", "2025-01-10", "2025-01-31", 7)

        with caplog.at_level(logging.WARNING, logger="settlement_core.fees.resolver"):
            resolver = FeeRateResolver(settings)

        assert "Overlapping fee overrides" in caplog.text
        assert resolver.resolve("NAVER_MAZE_25", "2025-01-12") == 5
        assert resolver.resolve("NAVER_MAZE_25", "2025-01-20") == 7

    def test_no_warning_without_overlap(
        self, january: MonthlyFeeSettings, caplog: pytest.LogCaptureFixture
    ) -> None:
        settings = add_override(january, "NAVER_MAZE_25", "2025-01-01", "2025-01-09", 5)
        settings = add_override(settings, "NAVER_MAZE_25", "2025-01-10", "2025-01-31", 7)

        with caplog.at_level(logging.WARNING, logger="settlement_core.fees.resolver"):
            FeeRateResolver(settings)

        assert caplog.text == ""
        assert find_overlapping_overrides(settings) == []


def test_average_fee_rate_is_day_weighted(january: MonthlyFeeSettings) -> None:
    """11 days at 5% and 20 days at 10% over January."""
    settings = add_override(january, "NAVER_MAZE_25", "2025-01-10", "2025-01-20", 5)
    assert average_fee_rate(settings, "NAVER_MAZE_25") == 8.23
    assert average_fee_rate(settings, "MAZE_TICKET") == 12


def test_default_fee_settings_cover_active_channels() -> None:
    settings = default_fee_settings(2025, 3)
    codes = [c.channel_code for c in settings.channels]

    assert codes == ChannelRegistry().codes()
    assert all(c.source == "default" for c in settings.channels)
    assert settings.overrides == ()


def test_default_fee_settings_rejects_bad_month() -> None:
    with pytest.raises(ConfigError, match="Invalid month"):
        default_fee_settings(2025, 13)


class TestSettingsMaintenance:
    def test_add_override_does_not_mutate(self, january: MonthlyFeeSettings) -> None:
        updated = add_override(january, "NAVER_MAZE_25", "2025-01-10", "2025-01-20", 5, reason="promo")

        assert january.overrides == ()
        assert len(updated.overrides) == 1
        assert updated.overrides[0] == FeeOverride(
            channel_code="NAVER_MAZE_25",
            start_date="2025-01-10",
            end_date="2025-01-20",
            fee_rate=5,
            reason="promo",
            id="NAVER_MAZE_25-2025-01-10-1",
        )

    def test_add_override_rejects_inverted_window(self, january: MonthlyFeeSettings) -> None:
        with pytest.raises(ConfigError, match="inverted"):
            add_override(january, "NAVER_MAZE_25", "2025-01-20", "2025-01-10", 5)

    def test_add_override_rejects_bad_rate(self, january: MonthlyFeeSettings) -> None:
        with pytest.raises(ConfigError, match="between 0 and 100"):
            add_override(january, "NAVER_MAZE_25", "2025-01-10", "2025-01-20", 120)

    def test_remove_override(self, january: MonthlyFeeSettings) -> None:
        settings = add_override(january, "NAVER_MAZE_25", "2025-01-10", "2025-01-20", 5)
        settings = remove_override(settings, "NAVER_MAZE_25-2025-01-10-1")

        assert settings.overrides == ()
        assert resolve_fee_rate("NAVER_MAZE_25", "2025-01-15", settings) == 10

    def test_update_channel_fee_adds_missing_channel(self) -> None:
        settings = update_channel_fee(MonthlyFeeSettings(2025, 1), "POP_UP", 9, source="excel")

        fee = settings.channel_fee("POP_UP")
        assert fee is not None
        assert fee.fee_rate == 9
        assert fee.source == "excel"

    def test_update_channel_fee_rejects_unknown_source(self, january: MonthlyFeeSettings) -> None:
        with pytest.raises(ConfigError, match="Unknown fee source"):
            update_channel_fee(january, "MAZE_TICKET", 8, source="guess")

    def test_settings_dict_round_trip(self, january: MonthlyFeeSettings) -> None:
        settings = add_override(january, "NAVER_MAZE_25", "2025-01-10", "2025-01-20", 5)
        data = settings.to_dict()

        assert data["overrides"][0]["startDate"] == "2025-01-10"
        assert MonthlyFeeSettings.from_dict(data) == settings
