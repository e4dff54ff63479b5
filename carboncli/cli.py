import argparse
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from carboncli import commands
from carboncli.config import load_config
from carboncli.session import Session

__version__ = "1.0.0"

UPDATE_OPTIONS = (
    ("--buyPriceLow", "buy_price_low", "PRICE", "New buy price low"),
    ("--buyPriceHigh", "buy_price_high", "PRICE", "New buy price high"),
    ("--buyBudget", "buy_budget", "AMOUNT", "New buy budget"),
    ("--sellPriceLow", "sell_price_low", "PRICE", "New sell price low"),
    ("--sellPriceHigh", "sell_price_high", "PRICE", "New sell price high"),
    ("--sellBudget", "sell_budget", "AMOUNT", "New sell budget"),
    ("--buyPriceMarginal", "buy_price_marginal", "PRICE", "New buy price marginal, or RESET / MAINTAIN"),
    ("--sellPriceMarginal", "sell_price_marginal", "PRICE", "New sell price marginal, or RESET / MAINTAIN"),
)


def setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("web3").setLevel(logging.WARNING)


def _add_update_options(parser: argparse.ArgumentParser):
    for flag, dest, metavar, help_text in UPDATE_OPTIONS:
        parser.add_argument(flag, dest=dest, metavar=metavar, help=help_text)


def cmd_init(session, args):
    return commands.init_sdk(session)


def cmd_get_pair_info(session, args):
    return commands.get_pair_info(session, args.token0, args.token1)


def cmd_get_cached_pairs(session, args):
    return commands.get_cached_pairs(session)


def cmd_update_strategy(session, args):
    return commands.update_strategy(session, args.strategy_id, args)


def cmd_propose_update_strategy(session, args):
    return commands.propose_update_strategy(session, args.strategy_id, args, governor=args.governor)


def cmd_transfer_strategy(session, args):
    return commands.transfer_strategy(session, args.strategy_id)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="carbon-cli", description="Carbon SDK CLI")
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument("--config", default="config.json", help="Path to config.json (optional)")
    parser.add_argument("--log-level", default=None, help="Override log level from config")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("init", help="Initialize the Carbon SDK")
    p.set_defaults(handler=cmd_init)

    p = sub.add_parser("get-pair-info", help="Get information about a token pair")
    p.add_argument("token0")
    p.add_argument("token1")
    p.set_defaults(handler=cmd_get_pair_info)

    p = sub.add_parser("get-cached-pairs", help="Get all cached pairs")
    p.set_defaults(handler=cmd_get_cached_pairs)

    p = sub.add_parser("update-strategy", help="Update a strategy")
    p.add_argument("strategy_id", metavar="strategyId", type=int)
    _add_update_options(p)
    p.set_defaults(handler=cmd_update_strategy)

    p = sub.add_parser(
        "propose-update-strategy",
        help="Propose an update to a strategy via the Governor contract",
    )
    p.add_argument("strategy_id", metavar="strategyId", type=int)
    p.add_argument(
        "--governor",
        default=None,
        help="Governor address (defaults to governor_address in config.json; there is no built-in default)",
    )
    _add_update_options(p)
    p.set_defaults(handler=cmd_propose_update_strategy)

    p = sub.add_parser(
        "transfer-strategy",
        help="Transfer a strategy voucher to the timelock (requires timelock_address in config.json)",
    )
    p.add_argument("strategy_id", metavar="strategyId", type=int)
    p.set_defaults(handler=cmd_transfer_strategy)

    return parser


def run(argv: Optional[list[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    config = load_config(Path(args.config))
    setup_logging(args.log_level or config.log_level)

    session = Session.create(config)
    try:
        return args.handler(session, args)
    finally:
        session.shutdown()
