import logging
import threading
from decimal import ROUND_FLOOR, Decimal, localcontext
from typing import Optional

from web3.exceptions import ContractLogicError

from carboncli.cache import ChainCache
from carboncli.config import NATIVE_TOKEN
from carboncli.contracts import ContractsApi
from carboncli.encoding import (
    PRECISION,
    capacity,
    decode_order,
    encode_float,
    encode_rate,
    order_rates,
)
from carboncli.models import (
    EncodedOrder,
    EncodedStrategy,
    MarginalPrice,
    MarginalPriceOptions,
    Strategy,
    StrategyUpdate,
)

logger = logging.getLogger(__name__)


class StrategyNotFoundError(LookupError):
    pass


def to_wei(amount: str | Decimal, decimals: int) -> int:
    value = Decimal(amount)
    if value < 0:
        raise ValueError(f"Budget must not be negative: {amount}")
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return int((value * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_FLOOR))


def from_wei(amount: int, decimals: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return Decimal(amount) / (Decimal(10) ** decimals)


# Buy orders sell the quote token: rate = quote wei per base wei.
# Sell orders sell the base token: rate = base wei per quote wei, so the
# lowest rate is the highest sell price.


def buy_price_to_rate(price: str | Decimal, base_decimals: int, quote_decimals: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return Decimal(price) * Decimal(10) ** quote_decimals / Decimal(10) ** base_decimals


def buy_rate_to_price(rate: Decimal, base_decimals: int, quote_decimals: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return rate * Decimal(10) ** base_decimals / Decimal(10) ** quote_decimals


def sell_price_to_rate(price: str | Decimal, base_decimals: int, quote_decimals: int) -> Decimal:
    price = Decimal(price)
    if price <= 0:
        raise ValueError(f"Sell price must be positive: {price}")
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return Decimal(10) ** base_decimals / (price * Decimal(10) ** quote_decimals)


def sell_rate_to_price(rate: Decimal, base_decimals: int, quote_decimals: int) -> Decimal:
    if rate == 0:
        return Decimal(0)
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return Decimal(10) ** base_decimals / (rate * Decimal(10) ** quote_decimals)


def rebuild_order(
    current: EncodedOrder,
    y: int,
    low: int,
    high: int,
    range_changed: bool,
    marginal: int | MarginalPriceOptions | None,
) -> EncodedOrder:
    """Re-encode one order side after an update.

    marginal is an encoded rate, a sentinel, or None. None resets the
    marginal price when the range moved and maintains it otherwise.
    """
    if low > high:
        raise ValueError("Price range low must not exceed high")

    if isinstance(marginal, int):
        z = capacity(y, low, high, marginal)
    elif marginal is MarginalPriceOptions.RESET or (marginal is None and range_changed):
        z = y
    elif y == current.y:
        z = current.z
    elif current.y == 0:
        z = y
    else:
        z = current.z * y // current.y

    if range_changed:
        return EncodedOrder(y=y, z=z, A=encode_float(high - low), B=encode_float(low))
    return EncodedOrder(y=y, z=z, A=current.A, B=current.B)


class Toolkit:
    """Strategy lookups and update transactions on top of ContractsApi."""

    def __init__(self, api: ContractsApi, cache: Optional[ChainCache] = None):
        self._api = api
        self._cache = cache
        self._decimals: dict[str, int] = {}
        self._lock = threading.Lock()

    def decimals(self, token: str) -> int:
        key = token.lower()
        with self._lock:
            if key in self._decimals:
                return self._decimals[key]
        value = self._api.reader.decimals(token)
        with self._lock:
            self._decimals[key] = value
        return value

    def get_strategy_by_id(self, strategy_id: int) -> Strategy:
        encoded = self._cache.get_strategy_by_id(strategy_id) if self._cache else None
        if encoded is None:
            try:
                encoded = self._api.reader.strategy(strategy_id)
            except ContractLogicError as e:
                raise StrategyNotFoundError(f"Strategy {strategy_id} not found") from e
        return self.decode_strategy(encoded)

    def decode_strategy(self, encoded: EncodedStrategy) -> Strategy:
        d0 = self.decimals(encoded.token0)
        d1 = self.decimals(encoded.token1)
        sell = decode_order(encoded.order0)
        buy = decode_order(encoded.order1)

        return Strategy(
            id=encoded.id,
            owner=encoded.owner,
            base_token=encoded.token0,
            quote_token=encoded.token1,
            buy_price_low=buy_rate_to_price(buy.lowest_rate, d0, d1),
            buy_price_marginal=buy_rate_to_price(buy.marginal_rate, d0, d1),
            buy_price_high=buy_rate_to_price(buy.highest_rate, d0, d1),
            buy_budget=from_wei(buy.liquidity, d1),
            sell_price_low=sell_rate_to_price(sell.highest_rate, d0, d1),
            sell_price_marginal=sell_rate_to_price(sell.marginal_rate, d0, d1),
            sell_price_high=sell_rate_to_price(sell.lowest_rate, d0, d1),
            sell_budget=from_wei(sell.liquidity, d0),
            encoded=encoded,
        )

    def update_strategy(
        self,
        strategy_id: int,
        encoded: EncodedStrategy,
        update: StrategyUpdate,
        buy_price_marginal: MarginalPrice = None,
        sell_price_marginal: MarginalPrice = None,
    ) -> dict:
        """Build the updateStrategy transaction descriptor.

        Only fields present in `update` change. Marginal prices may be a
        literal price string, a MarginalPriceOptions sentinel, or None.
        """
        d0 = self.decimals(encoded.token0)
        d1 = self.decimals(encoded.token1)
        changes = update.changes()

        # buy side: order1, liquidity in quote token
        buy_low, buy_high = order_rates(encoded.order1)
        if "buy_price_low" in changes:
            buy_low = encode_rate(buy_price_to_rate(changes["buy_price_low"], d0, d1))
        if "buy_price_high" in changes:
            buy_high = encode_rate(buy_price_to_rate(changes["buy_price_high"], d0, d1))
        buy_y = to_wei(changes["buy_budget"], d1) if "buy_budget" in changes else encoded.order1.y
        buy_marginal = buy_price_marginal
        if isinstance(buy_marginal, str):
            buy_marginal = encode_rate(buy_price_to_rate(buy_marginal, d0, d1))

        # sell side: order0, liquidity in base token, rates inverted
        sell_low, sell_high = order_rates(encoded.order0)
        if "sell_price_high" in changes:
            sell_low = encode_rate(sell_price_to_rate(changes["sell_price_high"], d0, d1))
        if "sell_price_low" in changes:
            sell_high = encode_rate(sell_price_to_rate(changes["sell_price_low"], d0, d1))
        sell_y = to_wei(changes["sell_budget"], d0) if "sell_budget" in changes else encoded.order0.y
        sell_marginal = sell_price_marginal
        if isinstance(sell_marginal, str):
            sell_marginal = encode_rate(sell_price_to_rate(sell_marginal, d0, d1))

        new_order0 = rebuild_order(
            encoded.order0,
            sell_y,
            sell_low,
            sell_high,
            "sell_price_low" in changes or "sell_price_high" in changes,
            sell_marginal,
        )
        new_order1 = rebuild_order(
            encoded.order1,
            buy_y,
            buy_low,
            buy_high,
            "buy_price_low" in changes or "buy_price_high" in changes,
            buy_marginal,
        )

        value = 0
        if encoded.token0.lower() == NATIVE_TOKEN.lower() and new_order0.y > encoded.order0.y:
            value += new_order0.y - encoded.order0.y
        if encoded.token1.lower() == NATIVE_TOKEN.lower() and new_order1.y > encoded.order1.y:
            value += new_order1.y - encoded.order1.y

        logger.debug(f"Strategy {strategy_id} new orders: {new_order0}, {new_order1}")
        return self._api.composer.update_strategy(
            strategy_id,
            encoded.orders,
            (new_order0, new_order1),
            value,
        )
