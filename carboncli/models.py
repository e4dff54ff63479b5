from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal
from enum import Enum
from typing import Optional, Union


class MarginalPriceOptions(Enum):
    """Sentinels accepted in place of a literal marginal price."""

    RESET = "RESET"
    MAINTAIN = "MAINTAIN"


MarginalPrice = Union[str, MarginalPriceOptions, None]


@dataclass(frozen=True)
class TokenPair:
    """A pair of token addresses as listed by the controller."""

    token0: str
    token1: str

    def matches(self, a: str, b: str) -> bool:
        """True if (a, b) names this pair in either order. Case-insensitive."""
        mine = (self.token0.lower(), self.token1.lower())
        return mine == (a.lower(), b.lower()) or mine == (b.lower(), a.lower())

    @staticmethod
    def from_chain(raw) -> TokenPair:
        return TokenPair(token0=raw[0], token1=raw[1])


@dataclass(frozen=True)
class EncodedOrder:
    """One side of a strategy in the controller's storage format.

    y: liquidity (wei of the token this order sells)
    z: capacity, y == z means the marginal rate sits at the high edge
    A, B: compressed rate width and lowest rate
    """

    y: int
    z: int
    A: int
    B: int

    def to_chain(self) -> tuple[int, int, int, int]:
        return (self.y, self.z, self.A, self.B)

    @staticmethod
    def from_chain(raw) -> EncodedOrder:
        return EncodedOrder(y=int(raw[0]), z=int(raw[1]), A=int(raw[2]), B=int(raw[3]))


@dataclass(frozen=True)
class EncodedStrategy:
    """A strategy as returned by CarbonController.strategy().

    order0 sells token0 for token1 (the sell side),
    order1 sells token1 for token0 (the buy side).
    """

    id: int
    owner: str
    token0: str
    token1: str
    order0: EncodedOrder
    order1: EncodedOrder

    @property
    def orders(self) -> tuple[EncodedOrder, EncodedOrder]:
        return (self.order0, self.order1)

    @staticmethod
    def from_chain(raw) -> EncodedStrategy:
        """Chain format: (id, owner, [token0, token1], [order0, order1])"""
        return EncodedStrategy(
            id=int(raw[0]),
            owner=raw[1],
            token0=raw[2][0],
            token1=raw[2][1],
            order0=EncodedOrder.from_chain(raw[3][0]),
            order1=EncodedOrder.from_chain(raw[3][1]),
        )


@dataclass(frozen=True)
class Strategy:
    """Human-readable strategy. Prices are quote per base, budgets in token units."""

    id: int
    owner: str
    base_token: str
    quote_token: str
    buy_price_low: Decimal
    buy_price_marginal: Decimal
    buy_price_high: Decimal
    buy_budget: Decimal
    sell_price_low: Decimal
    sell_price_marginal: Decimal
    sell_price_high: Decimal
    sell_budget: Decimal
    encoded: EncodedStrategy


@dataclass(frozen=True)
class StrategyUpdate:
    """Requested changes to a strategy. None means "leave unchanged"."""

    buy_price_low: Optional[str] = None
    buy_price_high: Optional[str] = None
    buy_budget: Optional[str] = None
    sell_price_low: Optional[str] = None
    sell_price_high: Optional[str] = None
    sell_budget: Optional[str] = None

    def changes(self) -> dict[str, str]:
        """Only the fields that were supplied."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}
