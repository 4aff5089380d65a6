"""Tests for settlement configuration, registries and period utilities."""

import json
from pathlib import Path

import pytest

from settlement_core.config import DEFAULT_SETTLEMENT_CONFIG, CompanyConfig, SettlementConfig
from settlement_core.exceptions import ConfigError, DataQualityError
from settlement_core.registry import CategoryRegistry, ChannelRegistry
from settlement_core.utils import (
    month_bounds,
    month_dates,
    parse_date,
    period_key,
    validate_period,
    windows_overlap,
)


class TestSettlementConfig:
    def test_defaults(self) -> None:
        cfg = DEFAULT_SETTLEMENT_CONFIG

        assert cfg.base_price == 3000
        assert cfg.company.maze_payment_per_person == 1000
        assert cfg.company.culture_payment_from_skp == 500
        assert cfg.company.culture_payment_from_maze == 500
        assert cfg.company.platform_fee_to_skp == 200
        assert cfg.company.agency_fee_rate == 20
        assert cfg.company.agency_fee_base == "SKP_TICKET_PROFIT"

    def test_fee_rate_falls_back_to_other(self) -> None:
        assert DEFAULT_SETTLEMENT_CONFIG.fee_rate_for("MAZE_TICKET") == 12
        assert DEFAULT_SETTLEMENT_CONFIG.fee_rate_for("NOPE") == 15

    def test_from_dict_partial(self) -> None:
        cfg = SettlementConfig.from_dict(
            {"basePrice": 4000, "channelFeeRates": {"MAZE_TICKET": 9}, "company": {"agencyFeeRate": 10}}
        )

        assert cfg.base_price == 4000
        assert cfg.fee_rate_for("MAZE_TICKET") == 9
        assert cfg.fee_rate_for("NAVER_MAZE_25") == 10
        assert cfg.company.agency_fee_rate == 10
        assert cfg.company.maze_payment_per_person == 1000

    def test_dict_round_trip(self) -> None:
        data = DEFAULT_SETTLEMENT_CONFIG.to_dict()

        assert data["company"]["mazePaymentPerPerson"] == 1000
        assert SettlementConfig.from_dict(data) == DEFAULT_SETTLEMENT_CONFIG

    def test_from_json(self, tmp_path: Path) -> None:
        path = tmp_path / "settlement.json"
        path.write_text(json.dumps({"company": {"agencyFeeBase": "SKP_REVENUE"}}), encoding="utf-8")

        assert SettlementConfig.from_json(path).company.agency_fee_base == "SKP_REVENUE"

    def test_from_json_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot load"):
            SettlementConfig.from_json(tmp_path / "missing.json")

    @pytest.mark.parametrize(
        "data,message",
        [
            ({"basePrice": -1}, "non-negative"),
            ({"company": {"agencyFeeRate": 150}}, "agencyFeeRate"),
            ({"company": {"agencyFeeBase": "GROSS"}}, "Unknown agencyFeeBase"),
            ({"channelFeeRates": {"MAZE_TICKET": -3}}, "between 0 and 100"),
            ({"basePrice": "lots"}, "Invalid settlement config"),
        ],
    )
    def test_invalid_config(self, data: dict, message: str) -> None:
        with pytest.raises(ConfigError, match=message):
            SettlementConfig.from_dict(data)

    def test_invalid_company_directly(self) -> None:
        with pytest.raises(ConfigError):
            SettlementConfig(company=CompanyConfig(maze_payment_per_person=-1))


class TestRegistries:
    def test_master_channels(self) -> None:
        registry = ChannelRegistry()

        assert registry.codes()[0] == "NAVER_MAZE_25"
        assert registry.codes()[-1] == "OTHER"
        assert registry.fee_rate("MAZE_TICKET") == 12
        assert registry.name("UNKNOWN") == "UNKNOWN"

    def test_custom_channel(self) -> None:
        registry = ChannelRegistry()
        channel = registry.add_custom("POP_UP", "팝업", 8)

        assert channel.custom
        assert "POP_UP" in registry
        assert registry.fee_rate("POP_UP") == 8
        assert registry.add_custom("POP_UP", "다른 이름", 1) is channel

    def test_custom_channel_defaults_to_other_rate(self) -> None:
        registry = ChannelRegistry()
        assert registry.add_custom("NEW").default_fee_rate == 15

    def test_deactivated_channel_hidden_but_resolvable(self) -> None:
        registry = ChannelRegistry()
        registry.deactivate("MAZE_25_SPECIAL")

        assert "MAZE_25_SPECIAL" not in registry.codes()
        assert len(registry.list_channels(include_inactive=True)) == 6
        assert registry.fee_rate("MAZE_25_SPECIAL") == 10

    def test_registries_are_independent(self) -> None:
        first = ChannelRegistry()
        first.add_custom("ONLY_HERE")
        assert "ONLY_HERE" not in ChannelRegistry()

    def test_categories(self) -> None:
        registry = CategoryRegistry()

        assert len(registry) == 8
        assert registry.name("TAXI") == "택시"
        registry.add_custom("VIP", "VIP")
        assert registry.codes()[-1] == "VIP"


class TestPeriodUtils:
    def test_validate_period(self) -> None:
        validate_period(2025, 1)
        validate_period(2025, 12)

    @pytest.mark.parametrize("year,month", [(2025, 0), (2025, 13), (2025, True), (2025, "1"), ("2025", 1), (1800, 1)])
    def test_invalid_period(self, year, month) -> None:
        with pytest.raises(ConfigError):
            validate_period(year, month)

    def test_month_dates(self) -> None:
        assert len(month_dates(2024, 2)) == 29
        assert len(month_dates(2025, 2)) == 28
        assert month_bounds(2025, 4) == ("2025-04-01", "2025-04-30")
        assert period_key(2025, 3) == "2025-03"

    def test_parse_date(self) -> None:
        assert parse_date("2025-01-15").day == 15
        with pytest.raises(DataQualityError):
            parse_date("2025-02-30")
        with pytest.raises(DataQualityError):
            parse_date("15/01/2025")

    def test_windows_overlap(self) -> None:
        assert windows_overlap("2025-01-01", "2025-01-10", "2025-01-10", "2025-01-20")
        assert not windows_overlap("2025-01-01", "2025-01-09", "2025-01-10", "2025-01-20")
