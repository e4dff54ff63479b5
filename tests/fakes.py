"""Network-free stand-ins for the reader, toolkit, wallet and session."""

from dataclasses import replace
from decimal import Decimal
from types import SimpleNamespace

from hexbytes import HexBytes
from web3.exceptions import ContractLogicError

from carboncli.cache import ChainCache, pair_key
from carboncli.config import BASE_CONFIG, Config
from carboncli.contracts import ContractComposer
from carboncli.encoding import DecodedOrder, capacity, encode_float, encode_rate
from carboncli.models import EncodedOrder, EncodedStrategy
from carboncli.wallet import Wallet

BASE = "0x" + "11" * 20
QUOTE = "0x" + "22" * 20
OTHER = "0x" + "33" * 20
OWNER = "0x" + "ab" * 20
GOVERNOR = "0x" + "44" * 20
TIMELOCK = "0x" + "55" * 20
WEI = 10**18


def encode_order(order: DecodedOrder) -> EncodedOrder:
    if order.lowest_rate > order.highest_rate:
        raise ValueError(f"Lowest rate {order.lowest_rate} above highest rate {order.highest_rate}")

    y = int(order.liquidity)
    low = encode_rate(order.lowest_rate)
    high = encode_rate(order.highest_rate)
    marginal = encode_rate(order.marginal_rate)
    return EncodedOrder(y=y, z=capacity(y, low, high, marginal), A=encode_float(high - low), B=encode_float(low))


def make_strategy(
    strategy_id=1,
    token0=BASE,
    token1=QUOTE,
    buy_budget=1000 * WEI,
    sell_budget=10 * WEI,
    buy_marginal=Decimal(4),
    sell_marginal=Decimal("0.2"),
):
    """Strategy with buy range 1..4 and sell range 5..10 (18/18 decimals)."""
    sell = encode_order(
        DecodedOrder(
            liquidity=sell_budget,
            lowest_rate=Decimal("0.1"),
            highest_rate=Decimal("0.2"),
            marginal_rate=sell_marginal,
        )
    )
    buy = encode_order(
        DecodedOrder(
            liquidity=buy_budget,
            lowest_rate=Decimal(1),
            highest_rate=Decimal(4),
            marginal_rate=buy_marginal,
        )
    )
    return EncodedStrategy(id=strategy_id, owner=OWNER, token0=token0, token1=token1, order0=sell, order1=buy)


class FakeReader:
    def __init__(self, pairs=None, strategies=None, decimals=None):
        self._pairs = list(pairs or [])
        self.strategies = dict(strategies or {})  # pair_key -> list[EncodedStrategy]
        self.by_id = {}
        self.decimals_map = dict(decimals or {})
        self.calls = []

    def pairs(self):
        self.calls.append("pairs")
        return list(self._pairs)

    def set_pairs(self, pairs):
        self._pairs = list(pairs)

    def strategies_by_pair(self, token0, token1):
        self.calls.append(("strategies_by_pair", token0, token1))
        return self.strategies.get(pair_key(token0, token1), [])

    def strategies_by_pairs(self, pairs):
        return {p: self.strategies.get(pair_key(p.token0, p.token1), []) for p in pairs}

    def strategy(self, strategy_id):
        if strategy_id in self.by_id:
            return self.by_id[strategy_id]
        raise ContractLogicError("execution reverted")

    def decimals(self, token):
        return self.decimals_map.get(token.lower(), 18)


class RecordingComposer(ContractComposer):
    def __init__(self):
        super().__init__(BASE_CONFIG.carbon_controller, BASE_CONFIG.voucher)
        self.updates = []

    def update_strategy(self, strategy_id, current, new, value=0):
        self.updates.append(SimpleNamespace(strategy_id=strategy_id, current=current, new=new, value=value))
        return super().update_strategy(strategy_id, current, new, value)


class FakeToolkit:
    def __init__(self, encoded=None):
        self.encoded = encoded or make_strategy(strategy_id=12345)
        self.updates = []

    def get_strategy_by_id(self, strategy_id):
        return SimpleNamespace(id=strategy_id, encoded=self.encoded)

    def update_strategy(self, strategy_id, encoded, update, buy_price_marginal=None, sell_price_marginal=None):
        self.updates.append(
            SimpleNamespace(
                strategy_id=strategy_id,
                encoded=encoded,
                update=update,
                buy_price_marginal=buy_price_marginal,
                sell_price_marginal=sell_price_marginal,
            )
        )
        return {"to": BASE_CONFIG.carbon_controller, "data": HexBytes(b"\x01\x02\x03"), "value": 0}


class FakeWallet:
    address = "0x" + "cd" * 20

    def __init__(self, receipt=None, fail_send=False):
        self.receipt = receipt if receipt is not None else {"status": 1, "logs": []}
        self.fail_send = fail_send
        self.sent = []
        self.waited = []

    def send(self, tx):
        self.sent.append(tx)
        if self.fail_send:
            raise ValueError("nonce too low")
        return HexBytes(b"\x12" * 32)

    def wait(self, tx_hash):
        self.waited.append(tx_hash)
        return self.receipt


class FakeSession:
    """Session double. Without a wallet, wallet() reads PRIVATE_KEY like the real one."""

    def __init__(self, config=None, reader=None, toolkit=None, wallet=None):
        self.config = config or Config(
            network=replace(BASE_CONFIG, governor_address=GOVERNOR, timelock_address=TIMELOCK)
        )
        composer = ContractComposer(self.config.network.carbon_controller, self.config.network.voucher)
        self.api = SimpleNamespace(reader=reader or FakeReader(), composer=composer)
        self.cache = ChainCache()
        self.toolkit = toolkit or FakeToolkit()
        self._wallet = wallet
        self.started = 0

    def start(self):
        self.started += 1

    def wallet(self):
        if self._wallet is None:
            return Wallet.from_env(None, self.config.network.chain_id)
        return self._wallet
