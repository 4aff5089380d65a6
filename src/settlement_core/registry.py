"""Channel and category registries.

This module provides the master reference data for online sales channels and
offline sale categories. Fixed master entries and custom entries added at
runtime (a channel name the source data introduces) live side by side and are
looked up the same way, by their stable code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from settlement_core.config import OTHER_CHANNEL, OTHER_FEE_RATE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Channel:
    """An online sales channel.

    Attributes:
        code: Stable identifier (e.g., "NAVER_MAZE_25").
        name: Display name.
        default_fee_rate: Master commission rate in percent.
        order: Sort order for listings.
        active: Inactive channels are kept for history but not listed.
        custom: True for entries added at runtime rather than shipped as master data.
    """

    code: str
    name: str
    default_fee_rate: float
    order: int = 99
    active: bool = True
    custom: bool = False


@dataclass(frozen=True)
class Category:
    """An offline sales grouping (visitor type). Carries no fee rate."""

    code: str
    name: str
    order: int = 99
    active: bool = True
    custom: bool = False


CHANNEL_MASTER: tuple[Channel, ...] = (
    Channel("NAVER_MAZE_25", "네이버 메이즈랜드25년", 10, order=1),
    Channel("GENERAL_TICKET", "일반채널 입장권", 15, order=2),
    Channel("MAZE_TICKET", "메이즈랜드 입장권", 12, order=3),
    Channel("MAZE_TICKET_SINGLE", "메이즈랜드 입장권(단품)", 12, order=4),
    Channel("MAZE_25_SPECIAL", "25특가", 10, order=5),
    Channel(OTHER_CHANNEL, "기타", OTHER_FEE_RATE, order=99),
)

CATEGORY_MASTER: tuple[Category, ...] = (
    Category("INDIVIDUAL", "개인", order=1),
    Category("TRAVEL_AGENCY", "여행사", order=2),
    Category("TAXI", "택시", order=3),
    Category("RESIDENT", "도민", order=4),
    Category("ALL_PASS", "올패스", order=5),
    Category("SHUTTLE_DISCOUNT", "순환버스할인", order=6),
    Category("SCHOOL_GROUP", "학단", order=7),
    Category("OTHER", "기타", order=99),
)


class ChannelRegistry:
    """Registry of online sales channels keyed by code.

    Example:
        >>> registry = ChannelRegistry()
        >>> registry.fee_rate("NAVER_MAZE_25")
        10
        >>> registry.fee_rate("UNKNOWN")
        15
        >>> registry.add_custom("POP_UP", "팝업 채널", 8).custom
        True

    """

    def __init__(self, channels: tuple[Channel, ...] | list[Channel] = CHANNEL_MASTER) -> None:
        self._channels: dict[str, Channel] = {c.code: c for c in channels}

    def __contains__(self, code: str) -> bool:
        return code in self._channels

    def __len__(self) -> int:
        return len(self._channels)

    def get(self, code: str) -> Channel | None:
        return self._channels.get(code)

    def list_channels(self, include_inactive: bool = False) -> list[Channel]:
        """List channels sorted by display order.

        Args:
            include_inactive: Also return inactive entries (default: False).

        Returns:
            Channels ordered by ``order`` then code.

        """
        channels = [c for c in self._channels.values() if include_inactive or c.active]
        return sorted(channels, key=lambda c: (c.order, c.code))

    def codes(self) -> list[str]:
        return [c.code for c in self.list_channels()]

    def name(self, code: str) -> str:
        """Display name for a code, or the code itself when unknown."""
        channel = self._channels.get(code)
        return channel.name if channel else code

    def fee_rate(self, code: str) -> float:
        """Master fee rate for a code, or the OTHER bucket rate when unknown."""
        channel = self._channels.get(code)
        if channel is not None:
            return channel.default_fee_rate
        other = self._channels.get(OTHER_CHANNEL)
        return other.default_fee_rate if other else OTHER_FEE_RATE

    def add_custom(self, code: str, name: str | None = None, fee_rate: float | None = None) -> Channel:
        """Register a channel that is not part of the master data.

        Adding a code that already exists returns the existing entry unchanged.

        Args:
            code: Stable code for the new channel.
            name: Display name (defaults to the code).
            fee_rate: Master fee rate (defaults to the OTHER bucket rate).

        Returns:
            The registered Channel.

        """
        existing = self._channels.get(code)
        if existing is not None:
            return existing

        channel = Channel(
            code=code,
            name=name or code,
            default_fee_rate=self.fee_rate(OTHER_CHANNEL) if fee_rate is None else fee_rate,
            custom=True,
        )
        self._channels[code] = channel
        logger.info("Registered custom channel %s (fee rate %s%%)", code, channel.default_fee_rate)
        return channel

    def deactivate(self, code: str) -> None:
        channel = self._channels.get(code)
        if channel is not None:
            self._channels[code] = replace(channel, active=False)


class CategoryRegistry:
    """Registry of offline sale categories keyed by code."""

    def __init__(self, categories: tuple[Category, ...] | list[Category] = CATEGORY_MASTER) -> None:
        self._categories: dict[str, Category] = {c.code: c for c in categories}

    def __contains__(self, code: str) -> bool:
        return code in self._categories

    def __len__(self) -> int:
        return len(self._categories)

    def get(self, code: str) -> Category | None:
        return self._categories.get(code)

    def list_categories(self, include_inactive: bool = False) -> list[Category]:
        categories = [c for c in self._categories.values() if include_inactive or c.active]
        return sorted(categories, key=lambda c: (c.order, c.code))

    def codes(self) -> list[str]:
        return [c.code for c in self.list_categories()]

    def name(self, code: str) -> str:
        category = self._categories.get(code)
        return category.name if category else code

    def add_custom(self, code: str, name: str | None = None) -> Category:
        """Register a category that is not part of the master data."""
        existing = self._categories.get(code)
        if existing is not None:
            return existing

        category = Category(code=code, name=name or code, custom=True)
        self._categories[code] = category
        logger.info("Registered custom category %s", code)
        return category
