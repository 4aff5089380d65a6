"""Settlement configuration.

This module provides the configuration dataclasses used by the settlement
cascade. Every per-visitor unit and rate lives here so that a change in the
contract between the parties touches a single place.

Per-visitor structure at a 0% channel fee (offline sale)::

    SKP revenue                        3,000
    SKP -> MAZE                        1,000
    SKP -> CULTURE                       500
    MAZE -> CULTURE                      500
    SKP -> FMC   (3,000 - 1,000 - 500) x 20% = 300
    CULTURE -> SKP (platform fee)        200

An online channel with fee rate f scales every amount by (1 - f/100).
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any

from settlement_core.exceptions import ConfigError

# Per-visitor units, in whole currency units
BASE_PRICE = 3000
VENUE_UNIT = 1000
FACILITY_UNIT_FROM_OPERATOR = 500
FACILITY_UNIT_FROM_VENUE = 500
PLATFORM_FEE_UNIT = 200

# Agency fee, percent of the agency fee base
AGENCY_FEE_RATE = 20

# Fee rate for channels nobody has configured
OTHER_FEE_RATE = 15
OTHER_CHANNEL = "OTHER"

AGENCY_FEE_BASES = ("SKP_TICKET_PROFIT", "SKP_REVENUE", "SKP_TOTAL_PROFIT")

DEFAULT_CHANNEL_FEE_RATES: dict[str, float] = {
    "NAVER_MAZE_25": 10,
    "MAZE_TICKET": 12,
    "MAZE_TICKET_SINGLE": 12,
    "MAZE_25_SPECIAL": 10,
    "GENERAL_TICKET": 15,
    OTHER_CHANNEL: OTHER_FEE_RATE,
}


@dataclass(frozen=True)
class CompanyConfig:
    """Per-visitor units exchanged between the four parties.

    Attributes:
        maze_payment_per_person: SKP -> MAZE unit (V).
        culture_payment_from_skp: SKP -> CULTURE unit (F1).
        culture_payment_from_maze: MAZE -> CULTURE unit (F2).
        platform_fee_to_skp: CULTURE -> SKP platform fee unit (PF).
        agency_fee_rate: Agency fee in percent of the agency fee base (A).
        agency_fee_base: What the agency fee is computed on:
            - "SKP_TICKET_PROFIT": SKP revenue minus MAZE and CULTURE payments
              (platform fee excluded). This is the contractual default.
            - "SKP_REVENUE": SKP ticket revenue.
            - "SKP_TOTAL_PROFIT": ticket profit plus platform fee income.
    """

    maze_payment_per_person: int = VENUE_UNIT
    culture_payment_from_skp: int = FACILITY_UNIT_FROM_OPERATOR
    culture_payment_from_maze: int = FACILITY_UNIT_FROM_VENUE
    platform_fee_to_skp: int = PLATFORM_FEE_UNIT
    agency_fee_rate: float = AGENCY_FEE_RATE
    agency_fee_base: str = "SKP_TICKET_PROFIT"


@dataclass(frozen=True)
class SettlementConfig:
    """Configuration for the settlement cascade.

    Attributes:
        base_price: Ticket price per visitor before channel fees (P).
        channel_fee_rates: Fallback fee rate (percent) per channel code. Used when
            the caller does not pass rates resolved from MonthlyFeeSettings.
        company: Per-visitor units exchanged between the parties.
    """

    base_price: int = BASE_PRICE
    channel_fee_rates: dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_CHANNEL_FEE_RATES)
    )
    company: CompanyConfig = field(default_factory=CompanyConfig)

    def __post_init__(self) -> None:
        _validate(self)

    def fee_rate_for(self, channel_code: str) -> float:
        """Return the configured fee rate for a channel, falling back to OTHER."""
        if channel_code in self.channel_fee_rates:
            return self.channel_fee_rates[channel_code]
        return self.channel_fee_rates.get(OTHER_CHANNEL, OTHER_FEE_RATE)

    def with_fee_rates(self, rates: dict[str, float]) -> SettlementConfig:
        """Return a copy with ``rates`` layered over the configured channel rates."""
        merged = dict(self.channel_fee_rates)
        merged.update(rates)
        return replace(self, channel_fee_rates=merged)

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the camelCase field names consumers expect."""
        company = asdict(self.company)
        return {
            "basePrice": self.base_price,
            "channelFeeRates": dict(self.channel_fee_rates),
            "company": {
                "mazePaymentPerPerson": company["maze_payment_per_person"],
                "culturePaymentFromSkp": company["culture_payment_from_skp"],
                "culturePaymentFromMaze": company["culture_payment_from_maze"],
                "platformFeeToSkp": company["platform_fee_to_skp"],
                "agencyFeeRate": company["agency_fee_rate"],
                "agencyFeeBase": company["agency_fee_base"],
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SettlementConfig:
        """Build a config from the camelCase ``SettlementConfig`` shape.

        Missing keys keep their defaults. Partial ``channelFeeRates`` are layered
        over the default table.

        Raises:
            ConfigError: If the data is not a mapping or holds invalid values.

        Examples:
            >>> cfg = SettlementConfig.from_dict({"basePrice": 4000})
            >>> cfg.base_price
            4000

        """
        if not isinstance(data, dict):
            raise ConfigError(f"Settlement config must be a mapping, got {type(data).__name__}")

        company_data = data.get("company") or {}
        defaults = CompanyConfig()
        try:
            company = CompanyConfig(
                maze_payment_per_person=int(
                    company_data.get("mazePaymentPerPerson", defaults.maze_payment_per_person)
                ),
                culture_payment_from_skp=int(
                    company_data.get("culturePaymentFromSkp", defaults.culture_payment_from_skp)
                ),
                culture_payment_from_maze=int(
                    company_data.get("culturePaymentFromMaze", defaults.culture_payment_from_maze)
                ),
                platform_fee_to_skp=int(
                    company_data.get("platformFeeToSkp", defaults.platform_fee_to_skp)
                ),
                agency_fee_rate=float(company_data.get("agencyFeeRate", defaults.agency_fee_rate)),
                agency_fee_base=company_data.get("agencyFeeBase", defaults.agency_fee_base),
            )
            rates = dict(DEFAULT_CHANNEL_FEE_RATES)
            rates.update({str(k): float(v) for k, v in (data.get("channelFeeRates") or {}).items()})
            return cls(
                base_price=int(data.get("basePrice", BASE_PRICE)),
                channel_fee_rates=rates,
                company=company,
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid settlement config: {e}") from e

    @classmethod
    def from_json(cls, path: str | Path) -> SettlementConfig:
        """Load a config from a JSON file in the ``SettlementConfig`` shape.

        Raises:
            ConfigError: If the file cannot be read or parsed.

        """
        if isinstance(path, str):
            path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot load settlement config from {path}: {e}") from e
        return cls.from_dict(data)


def _validate(config: SettlementConfig) -> None:
    units = {
        "basePrice": config.base_price,
        "mazePaymentPerPerson": config.company.maze_payment_per_person,
        "culturePaymentFromSkp": config.company.culture_payment_from_skp,
        "culturePaymentFromMaze": config.company.culture_payment_from_maze,
        "platformFeeToSkp": config.company.platform_fee_to_skp,
    }
    negative = [name for name, value in units.items() if value < 0]
    if negative:
        raise ConfigError(f"Settlement units must be non-negative: {negative}")

    if not 0 <= config.company.agency_fee_rate <= 100:
        raise ConfigError(
            f"agencyFeeRate must be between 0 and 100, got {config.company.agency_fee_rate}"
        )
    if config.company.agency_fee_base not in AGENCY_FEE_BASES:
        raise ConfigError(
            f"Unknown agencyFeeBase '{config.company.agency_fee_base}'. "
            f"Must be one of {AGENCY_FEE_BASES}."
        )

    bad_rates = {k: v for k, v in config.channel_fee_rates.items() if not 0 <= v <= 100}
    if bad_rates:
        raise ConfigError(f"Channel fee rates must be between 0 and 100: {bad_rates}")


DEFAULT_SETTLEMENT_CONFIG = SettlementConfig()
