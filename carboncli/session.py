import logging

from web3 import Web3

from carboncli.cache import PAIR_ADDED, PAIR_DATA_CHANGED, ChainCache, SyncWorker
from carboncli.config import Config
from carboncli.contracts import ContractsApi
from carboncli.toolkit import Toolkit
from carboncli.wallet import Wallet

logger = logging.getLogger(__name__)


class Session:
    """Process-wide SDK objects, built once and handed to every command.

    Lifecycle:
    1. create(config): wire provider, contracts API, cache and toolkit (no I/O)
    2. start(): load every pair on the calling thread, then start the sync worker
    3. shutdown(): stop the sync worker
    """

    def __init__(self, config: Config, w3: Web3, api: ContractsApi, cache: ChainCache, toolkit: Toolkit):
        self.config = config
        self.w3 = w3
        self.api = api
        self.cache = cache
        self.toolkit = toolkit
        self._sync_worker: SyncWorker | None = None
        self._started = False

    @classmethod
    def create(cls, config: Config) -> "Session":
        net = config.network
        w3 = Web3(Web3.HTTPProvider(net.rpc_url, request_kwargs={"timeout": config.initial_sync_timeout_s}))
        api = ContractsApi(w3, net.carbon_controller, net.multicall, net.voucher)
        cache = ChainCache()
        toolkit = Toolkit(api, cache)
        session = cls(config, w3, api, cache, toolkit)
        session._wire_cache()
        return session

    def _wire_cache(self):
        self.cache.on(PAIR_DATA_CHANGED, lambda pairs: logger.info(f"Pair data changed: {pairs}"))
        self.cache.on(PAIR_ADDED, lambda pairs: logger.info(f"Pair added to cache: {pairs}"))
        self.cache.set_cache_miss_handler(self._on_cache_miss)

    def _on_cache_miss(self, token0: str, token1: str):
        logger.info(f"Cache miss for pair: {token0}-{token1}")
        strategies = self.api.reader.strategies_by_pair(token0, token1)
        if strategies is not None:
            self.cache.add_pair(token0, token1, strategies)

    def start(self):
        """Load the cache, then keep it in sync. Safe to call twice.

        The initial load runs here so RPC failures reach the caller.
        """
        if self._started:
            return
        worker = SyncWorker(self.api.reader, self.cache, self.config.sync_interval_s)
        worker.sync_once()
        worker.start()
        self._sync_worker = worker
        self._started = True
        logger.info("Carbon SDK initialized successfully")

    def wallet(self) -> Wallet:
        return Wallet.from_env(self.w3, self.config.network.chain_id, self.config.receipt_timeout_s)

    def shutdown(self):
        if self._sync_worker is not None:
            self._sync_worker.stop()
