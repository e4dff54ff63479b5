import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

NATIVE_TOKEN = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class NetworkConfig:
    """Static addresses and endpoints for one chain deployment."""

    rpc_url: str
    chain_id: int
    carbon_controller: str
    voucher: str
    multicall: str
    tokens: dict[str, str] = field(default_factory=dict)
    gas_symbol: str = "ETH"
    wgas_symbol: str = "WETH"
    carbon_api: Optional[str] = None
    governor_address: Optional[str] = None
    timelock_address: Optional[str] = None


BASE_CONFIG = NetworkConfig(
    rpc_url="https://mainnet.base.org",
    chain_id=8453,
    carbon_controller="0xfbF069Dbbf453C1ab23042083CFa980B3a672BbA",
    voucher="0x907F03ae649581EBFF369a21C587cb8F154A0B84",
    multicall="0xca11bde05977b3631167028862be2a173976ca11",
    tokens={
        "GAS": NATIVE_TOKEN,
        "WGAS": "0x4200000000000000000000000000000000000006",
        "ZERO": "0x0000000000000000000000000000000000000000",
        "USDC": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
        "DAI": "0x50c5725949A6F0c72E6C4a641F24049A917DB0Cb",
        "BVM": "0xd386a121991E51Eab5e3433Bf5B1cF4C8884b47a",
        "OBMX": "0x3Ff7AB26F2dfD482C40bDaDfC0e88D01BFf79713",
        "AERO": "0x940181a94A35A4569E4529A3CDfB74e38FD98631",
        "SCALE": "0x54016a4848a38f257B6E96331F7404073Fd9c32C",
    },
    carbon_api="https://p01--graphene-backend--wlcfywkylwkq.code.run/v1/",
)


@dataclass(frozen=True)
class Config:
    network: NetworkConfig = BASE_CONFIG
    log_level: str = "INFO"
    sync_interval_s: float = 30.0
    initial_sync_timeout_s: float = 60.0  # per RPC request, bounds the initial load
    receipt_timeout_s: float = 180.0
    proposal_gas_limit: int = 1_000_000
    transfer_gas_limit: int = 200_000


def load_config(path: Path = Path("config.json")) -> Config:
    """Load config.json on top of the built-in Base deployment.

    The file is optional. Network keys: rpc_url, chain_id, carbon_controller,
    voucher, multicall, governor_address, timelock_address.
    Runtime keys: log_level, sync_interval_s, initial_sync_timeout_s,
    receipt_timeout_s, proposal_gas_limit, transfer_gas_limit
    """
    if not path.exists():
        return Config()

    raw = json.loads(path.read_text())
    base = BASE_CONFIG

    network = replace(
        base,
        rpc_url=raw.get("rpc_url", base.rpc_url),
        chain_id=raw.get("chain_id", base.chain_id),
        carbon_controller=raw.get("carbon_controller", base.carbon_controller),
        voucher=raw.get("voucher", base.voucher),
        multicall=raw.get("multicall", base.multicall),
        governor_address=raw.get("governor_address", base.governor_address),
        timelock_address=raw.get("timelock_address", base.timelock_address),
    )

    return Config(
        network=network,
        log_level=raw.get("log_level", "INFO"),
        sync_interval_s=raw.get("sync_interval_s", 30.0),
        initial_sync_timeout_s=raw.get("initial_sync_timeout_s", 60.0),
        receipt_timeout_s=raw.get("receipt_timeout_s", 180.0),
        proposal_gas_limit=raw.get("proposal_gas_limit", 1_000_000),
        transfer_gas_limit=raw.get("transfer_gas_limit", 200_000),
    )
