"""Tests for the multi-party settlement cascade."""

import pytest

from settlement_core.config import CompanyConfig, SettlementConfig
from settlement_core.exceptions import DataQualityError
from settlement_core.settlement import (
    PARTY_CODES,
    ChannelSales,
    SalesInput,
    SettlementResult,
    calculate_settlement,
    create_sales_input,
    get_settlement_by_party,
    mask_settlement_for_party,
)

SEED_CHANNELS = {
    "NAVER_MAZE_25": 459,
    "MAZE_TICKET": 200,
    "MAZE_TICKET_SINGLE": 124,
    "GENERAL_TICKET": 47,
}
SEED_OFFLINE = 1457


@pytest.fixture
def seed_input() -> SalesInput:
    return create_sales_input(SEED_CHANNELS, offline_count=SEED_OFFLINE)


@pytest.fixture
def seed_result(seed_input: SalesInput) -> SettlementResult:
    """Seed month at the 10/12/12/15 master rates."""
    return calculate_settlement(seed_input, period_start="2025-01-01", period_end="2025-01-31")


class TestSeedScenario:
    """830 online visitors over four channels plus 1,457 offline visitors."""

    def test_counts(self, seed_result: SettlementResult) -> None:
        assert seed_result.total_count == 2287
        assert seed_result.online_count == 830
        assert seed_result.offline_count == 1457

    def test_zero_fee_venue_and_facility_profit(self, seed_input: SalesInput) -> None:
        """With every channel at 0%, MAZE keeps 500 and CULTURE 800 per visitor."""
        zero_rates = {code: 0 for code in SEED_CHANNELS}
        result = calculate_settlement(seed_input, fee_rates=zero_rates)

        assert result.party("MAZE").profit == 500 * 2287 == 1_143_500
        assert result.party("CULTURE").profit == 800 * 2287 == 1_829_600
        assert result.party("MAZE").profit_rate == 50.0
        assert result.party("CULTURE").profit_rate == 80.0
        assert result.party("SKP").profit_rate == 43.75

    def test_zero_fee_via_config(self, seed_input: SalesInput) -> None:
        config = SettlementConfig().with_fee_rates({code: 0 for code in SEED_CHANNELS})
        result = calculate_settlement(seed_input, config)

        assert result.party("MAZE").profit == 1_143_500
        assert result.party("CULTURE").profit == 1_829_600

    def test_master_rates_party_amounts(self, seed_result: SettlementResult) -> None:
        skp = seed_result.party("SKP")
        maze = seed_result.party("MAZE")
        culture = seed_result.party("CULTURE")
        agency = seed_result.party("AGENCY")

        assert skp.revenue == 6_585_510
        assert skp.details["channelFees"] == 275_490
        assert skp.details["platformFeeIncome"] == 439_034
        assert skp.details["ticketProfit"] == 3_292_755
        assert skp.income == 7_024_544
        assert skp.cost == 3_951_306
        assert skp.profit == 3_073_238

        assert maze.income == 2_195_170
        assert maze.cost == 1_097_585
        assert maze.profit == 1_097_585

        assert culture.income == 2_195_170
        assert culture.cost == 439_034
        assert culture.profit == 1_756_136

        assert agency.income == 658_551
        assert agency.cost == 0
        assert agency.profit_rate == 100.0

    def test_channel_breakdown(self, seed_result: SettlementResult) -> None:
        naver = seed_result.channel_breakdown[0]

        assert naver.channel_code == "NAVER_MAZE_25"
        assert naver.fee_rate == 10
        assert naver.revenue == 1_377_000
        assert naver.fee == 137_700
        assert naver.net_revenue == 1_239_300
        assert naver.operator_revenue == 1_239_300
        assert naver.operator_to_venue == 413_100

        frame = seed_result.channel_frame()
        assert list(frame["channel_code"]) == list(SEED_CHANNELS)
        assert frame["count"].sum() == 830


class TestInvariants:
    @pytest.fixture(
        params=[
            ({}, 0),
            ({}, 100),
            ({"NAVER_MAZE_25": 1}, 0),
            ({"NAVER_MAZE_25": 459, "MAZE_TICKET": 200}, 1457),
            ({"GENERAL_TICKET": 33, "UNKNOWN_CHANNEL": 7}, 11),
        ]
    )
    def result(self, request: pytest.FixtureRequest) -> SettlementResult:
        channels, offline = request.param
        return calculate_settlement(create_sales_input(channels, offline))

    def test_total_is_online_plus_offline(self, result: SettlementResult) -> None:
        assert result.total_count == result.online_count + result.offline_count

    def test_income_minus_cost_is_profit(self, result: SettlementResult) -> None:
        for party in result.settlements:
            assert party.income - party.cost == party.profit

    def test_four_parties_in_order(self, result: SettlementResult) -> None:
        assert tuple(s.code for s in result.settlements) == PARTY_CODES
        assert result.party("AGENCY").name == "FMC"

    def test_maze_income_is_skp_maze_payment(self, result: SettlementResult) -> None:
        assert result.party("SKP").details["mazePayment"] == result.party("MAZE").income

    def test_culture_income_is_paid_by_skp_and_maze(self, result: SettlementResult) -> None:
        skp, maze, culture = result.party("SKP"), result.party("MAZE"), result.party("CULTURE")
        assert skp.details["culturePayment"] + maze.details["toCulture"] == culture.income

    def test_culture_cost_is_skp_platform_fee_income(self, result: SettlementResult) -> None:
        assert result.party("CULTURE").cost == result.party("SKP").details["platformFeeIncome"]

    def test_agency_income_is_skp_agency_payment(self, result: SettlementResult) -> None:
        assert result.party("SKP").details["agencyPayment"] == result.party("AGENCY").income

    def test_internal_transfers_cancel(self, result: SettlementResult) -> None:
        """What the parties keep between them is SKP's post-fee ticket revenue."""
        total_profit = sum(s.profit for s in result.settlements)
        assert total_profit == result.party("SKP").revenue

    def test_net_revenue_identity(self, result: SettlementResult) -> None:
        for line in result.channel_breakdown:
            assert line.net_revenue == line.revenue - line.fee


def test_all_zero_input() -> None:
    result = calculate_settlement(SalesInput(online_sales=(), offline_count=0))

    assert result.total_count == 0
    for party in result.settlements:
        assert party.revenue == 0
        assert party.income == 0
        assert party.cost == 0
        assert party.profit == 0
        assert party.profit_rate == 0


def test_offline_only_units() -> None:
    result = calculate_settlement(SalesInput(offline_count=100))

    assert result.party("SKP").revenue == 300_000
    assert result.party("MAZE").profit == 50_000
    assert result.party("CULTURE").profit == 80_000
    assert result.party("AGENCY").income == 30_000
    assert result.party("SKP").profit == 140_000


def test_captured_fee_rate_takes_priority() -> None:
    sales = SalesInput(online_sales=(ChannelSales("NAVER_MAZE_25", 100, fee_rate=0),))
    result = calculate_settlement(sales, fee_rates={"NAVER_MAZE_25": 50})

    assert result.channel_breakdown[0].fee_rate == 0
    assert result.party("SKP").revenue == 300_000


def test_unknown_channel_settles_at_other_rate() -> None:
    result = calculate_settlement(create_sales_input({"POP_UP": 10}, 0))

    line = result.channel_breakdown[0]
    assert line.fee_rate == 15
    assert line.channel_name == "POP_UP"
    assert result.party("SKP").revenue == 25_500


class TestAgencyFeeBase:
    @pytest.mark.parametrize(
        "base,expected",
        [
            ("SKP_TICKET_PROFIT", 30_000),
            ("SKP_REVENUE", 60_000),
            ("SKP_TOTAL_PROFIT", 34_000),
        ],
    )
    def test_agency_fee_per_base(self, base: str, expected: int) -> None:
        config = SettlementConfig(company=CompanyConfig(agency_fee_base=base))
        result = calculate_settlement(SalesInput(offline_count=100), config)

        agency = result.party("AGENCY")
        assert agency.income == expected
        assert agency.details["baseType"] == base


def test_negative_counts_rejected() -> None:
    with pytest.raises(DataQualityError, match="Negative visitor counts"):
        SalesInput(online_sales=(ChannelSales("NAVER_MAZE_25", -1),))
    with pytest.raises(DataQualityError, match="Negative offline count"):
        SalesInput(offline_count=-5)


class TestMasking:
    def test_skp_sees_everything(self, seed_result: SettlementResult) -> None:
        assert mask_settlement_for_party(seed_result, "SKP") is seed_result

    def test_other_viewer_sees_only_own_margin(self, seed_result: SettlementResult) -> None:
        masked = mask_settlement_for_party(seed_result, "MAZE")

        own = masked.party("MAZE")
        assert own == seed_result.party("MAZE")
        for code in ("SKP", "CULTURE", "AGENCY"):
            party = masked.party(code)
            assert party.profit == -1
            assert party.profit_rate == -1
            assert party.details is None
            assert party.income == seed_result.party(code).income

    def test_masking_leaves_original_untouched(self, seed_result: SettlementResult) -> None:
        mask_settlement_for_party(seed_result, "CULTURE")
        assert seed_result.party("SKP").profit == 3_073_238

    def test_unknown_viewer(self, seed_result: SettlementResult) -> None:
        with pytest.raises(ValueError, match="Unknown party"):
            mask_settlement_for_party(seed_result, "NOBODY")


def test_get_settlement_by_party(seed_result: SettlementResult) -> None:
    assert get_settlement_by_party(seed_result, "CULTURE").name == "컬처커넥션"
    assert get_settlement_by_party(seed_result, "NOBODY") is None


def test_result_dict_uses_camel_case(seed_result: SettlementResult) -> None:
    data = seed_result.to_dict()

    assert data["periodStart"] == "2025-01-01"
    assert data["totalCount"] == 2287
    assert data["settlements"][0]["companyCode"] == "SKP"
    assert data["settlements"][0]["profitRate"] == seed_result.party("SKP").profit_rate
    assert data["channelBreakdown"][0]["netRevenue"] == 1_239_300


def test_sales_input_from_dict() -> None:
    sales = SalesInput.from_dict(
        {
            "onlineSales": [{"channelCode": "NAVER_MAZE_25", "channelName": "네이버", "count": 459}],
            "offlineCount": 1457,
        }
    )

    assert sales.online_count == 459
    assert sales.total_count == 1916
    assert sales.to_dict()["onlineSales"][0]["channelCode"] == "NAVER_MAZE_25"


def test_party_frame(seed_result: SettlementResult) -> None:
    frame = seed_result.party_frame()

    assert list(frame.index) == list(PARTY_CODES)
    assert frame.loc["MAZE", "profit"] == 1_097_585
    assert (frame["income"] - frame["cost"] == frame["profit"]).all()
