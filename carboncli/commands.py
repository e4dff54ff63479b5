"""Command handlers.

Each handler takes the shared Session, runs one linear pipeline and returns
a process exit code. Failures are logged at the handler boundary; only
`init` reports them through a non-zero exit code.
"""

import logging
from typing import Any, Optional

from web3 import Web3

from carboncli.config import ConfigError
from carboncli.contracts import find_proposal_id
from carboncli.models import MarginalPrice, MarginalPriceOptions, StrategyUpdate, TokenPair

logger = logging.getLogger(__name__)

UPDATE_FIELDS = (
    "buy_price_low",
    "buy_price_high",
    "buy_budget",
    "sell_price_low",
    "sell_price_high",
    "sell_budget",
)


def resolve_marginal_price(value: Optional[str]) -> MarginalPrice:
    """Map RESET and MAINTAIN to sentinels and empty values to None. Other strings pass through."""
    if not value:
        return None
    if value == MarginalPriceOptions.RESET.value:
        return MarginalPriceOptions.RESET
    if value == MarginalPriceOptions.MAINTAIN.value:
        return MarginalPriceOptions.MAINTAIN
    return value


def build_strategy_update(options: Any) -> StrategyUpdate:
    """StrategyUpdate carrying only the options that were given."""
    return StrategyUpdate(**{name: getattr(options, name, None) for name in UPDATE_FIELDS})


def find_pair(pairs: list[TokenPair], token0: str, token1: str) -> Optional[TokenPair]:
    return next((p for p in pairs if p.matches(token0, token1)), None)


def _build_update_tx(session, strategy_id: int, options: Any) -> dict:
    existing = session.toolkit.get_strategy_by_id(strategy_id)
    logger.info(f"Existing strategy: {existing}")
    logger.info(f"Strategy encoded: {existing.encoded}")

    update = build_strategy_update(options)
    buy_marginal = resolve_marginal_price(getattr(options, "buy_price_marginal", None))
    sell_marginal = resolve_marginal_price(getattr(options, "sell_price_marginal", None))

    return session.toolkit.update_strategy(strategy_id, existing.encoded, update, buy_marginal, sell_marginal)


def init_sdk(session) -> int:
    try:
        session.start()
    except Exception:
        logger.exception("Error initializing Carbon SDK")
        return 1
    return 0


def get_pair_info(session, token0: str, token1: str) -> int:
    try:
        session.start()
        pair = find_pair(session.api.reader.pairs(), token0, token1)
        if pair:
            logger.info(f"Token Pair Info: {pair}")
        else:
            logger.info("Token Pair not found")
    except Exception:
        logger.exception("Error fetching pair info")
    return 0


def get_cached_pairs(session) -> int:
    try:
        session.start()
        logger.info(f"Cached Pairs: {session.cache.get_cached_pairs()}")
    except Exception:
        logger.exception("Error reading cached pairs")
    return 0


def update_strategy(session, strategy_id: int, options: Any) -> int:
    """Sign and broadcast a strategy update with the local key."""
    try:
        session.start()
        tx = _build_update_tx(session, strategy_id, options)
        logger.info(f"Update strategy transaction: {tx}")

        wallet = session.wallet()
        logger.info(f"Wallet loaded: {wallet.address}")

        tx_hash = wallet.send(tx)
        logger.info(f"Transaction sent: {Web3.to_hex(tx_hash)}")

        receipt = wallet.wait(tx_hash)
        logger.info(f"Transaction receipt: {receipt}")
    except Exception:
        logger.exception("Error updating strategy")
    return 0


def propose_update_strategy(session, strategy_id: int, options: Any, governor: Optional[str] = None) -> int:
    """Wrap a strategy update in a Governor.propose() call and submit it."""
    try:
        governor = governor or session.config.network.governor_address
        if not governor:
            raise ConfigError("No governor address: pass --governor or set governor_address in config.json")

        session.start()
        tx = _build_update_tx(session, strategy_id, options)

        proposal = session.api.composer.propose(
            governor,
            [tx["to"]],
            [0],
            [tx["data"]],
            f"Update strategy {strategy_id}",
        )
        proposal["gas"] = session.config.proposal_gas_limit
        logger.info(f"Proposal data: {Web3.to_hex(proposal['data'])}")

        wallet = session.wallet()
        tx_hash = wallet.send(proposal)
        logger.info(f"Proposal transaction sent: {Web3.to_hex(tx_hash)}")

        receipt = wallet.wait(tx_hash)
        logger.info(f"Proposal transaction receipt: {receipt}")

        proposal_id = find_proposal_id(receipt)
        if proposal_id is not None:
            logger.info(f"Proposal ID: {proposal_id}")
    except Exception:
        logger.exception("Error proposing update strategy")
    return 0


def transfer_strategy(session, strategy_id: int) -> int:
    """Move a strategy voucher to the configured timelock."""
    try:
        timelock = session.config.network.timelock_address
        if not timelock:
            raise ConfigError("No timelock_address in config.json")

        wallet = session.wallet()
        tx = session.api.composer.transfer_voucher(wallet.address, timelock, strategy_id)
        tx["gas"] = session.config.transfer_gas_limit

        tx_hash = wallet.send(tx)
        logger.info(f"Transfer transaction sent: {Web3.to_hex(tx_hash)}")

        receipt = wallet.wait(tx_hash)
        logger.info(f"Transfer transaction receipt: {receipt}")
    except Exception:
        logger.exception("Error transferring strategy")
    return 0
