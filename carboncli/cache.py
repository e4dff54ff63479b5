import logging
import threading
from collections import defaultdict
from typing import Callable, Optional

from carboncli.models import EncodedStrategy, TokenPair

logger = logging.getLogger(__name__)

PAIR_DATA_CHANGED = "pair_data_changed"
PAIR_ADDED = "pair_added"

CacheMissHandler = Callable[[str, str], None]


def pair_key(token0: str, token1: str) -> tuple[str, str]:
    """Order-independent key for a token pair."""
    a, b = token0.lower(), token1.lower()
    return (a, b) if a <= b else (b, a)


class ChainCache:
    """Thread-safe in-memory cache of strategies per token pair.

    Written by the sync worker (background thread) and the cache-miss
    handler, read from the command thread. Stored lists are replaced,
    never mutated, so readers can use them after the lock is released.

    Listeners receive a list of TokenPair and run outside the lock,
    in the order updates arrive.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pairs: dict[tuple[str, str], TokenPair] = {}
        self._strategies: dict[tuple[str, str], tuple[EncodedStrategy, ...]] = {}
        self._listeners: dict[str, list[Callable]] = defaultdict(list)
        self._miss_handler: Optional[CacheMissHandler] = None
        self._synced = threading.Event()

    # --- events ---

    def on(self, event: str, callback: Callable[[list[TokenPair]], None]) -> None:
        if event not in (PAIR_DATA_CHANGED, PAIR_ADDED):
            raise ValueError(f"Unknown cache event: {event}")
        self._listeners[event].append(callback)

    def _emit(self, event: str, pairs: list[TokenPair]) -> None:
        for cb in self._listeners.get(event, []):
            try:
                cb(pairs)
            except Exception:
                logger.exception(f"Error in {event} listener")

    def set_cache_miss_handler(self, handler: CacheMissHandler) -> None:
        self._miss_handler = handler

    # --- sync state ---

    def mark_synced(self) -> None:
        self._synced.set()

    @property
    def is_synced(self) -> bool:
        return self._synced.is_set()

    # --- writes ---

    def bulk_load(self, data: dict[TokenPair, list[EncodedStrategy]]) -> None:
        """Replace the whole cache without notifying listeners."""
        with self._lock:
            self._pairs = {pair_key(p.token0, p.token1): p for p in data}
            self._strategies = {pair_key(p.token0, p.token1): tuple(s) for p, s in data.items()}

    def add_pair(self, token0: str, token1: str, strategies: list[EncodedStrategy]) -> None:
        key = pair_key(token0, token1)
        pair = TokenPair(token0, token1)
        with self._lock:
            if key in self._pairs:
                return
            self._pairs[key] = pair
            self._strategies[key] = tuple(strategies)
        self._emit(PAIR_ADDED, [pair])

    def update_pair(self, token0: str, token1: str, strategies: list[EncodedStrategy]) -> bool:
        """Store new strategies for a known pair. Returns True if anything changed."""
        key = pair_key(token0, token1)
        new = tuple(strategies)
        with self._lock:
            if key not in self._pairs:
                return False
            if self._strategies.get(key) == new:
                return False
            self._strategies[key] = new
            pair = self._pairs[key]
        self._emit(PAIR_DATA_CHANGED, [pair])
        return True

    # --- reads ---

    def has_pair(self, token0: str, token1: str) -> bool:
        with self._lock:
            return pair_key(token0, token1) in self._pairs

    def get_cached_pairs(self) -> list[TokenPair]:
        with self._lock:
            return list(self._pairs.values())

    def get_strategies_by_pair(self, token0: str, token1: str) -> Optional[list[EncodedStrategy]]:
        """Strategies for a pair, asking the cache-miss handler once if unknown."""
        key = pair_key(token0, token1)
        with self._lock:
            cached = self._strategies.get(key)
        if cached is None and self._miss_handler is not None:
            self._miss_handler(token0, token1)
            with self._lock:
                cached = self._strategies.get(key)
        return list(cached) if cached is not None else None

    def get_strategy_by_id(self, strategy_id: int) -> Optional[EncodedStrategy]:
        with self._lock:
            groups = list(self._strategies.values())
        for strategies in groups:
            for s in strategies:
                if s.id == strategy_id:
                    return s
        return None


class SyncWorker(threading.Thread):
    """Background thread that keeps a ChainCache in step with the controller.

    The first pass bulk-loads every pair and marks the cache synced. A worker
    started on a synced cache waits one interval before its first pass.
    Later passes add new pairs and report pairs whose strategies changed.
    """

    def __init__(self, reader, cache: ChainCache, interval_s: float = 30.0):
        super().__init__(daemon=True, name="carbon-sync")
        self._reader = reader
        self._cache = cache
        self._interval_s = interval_s
        self._stop_event = threading.Event()

    def run(self):
        if self._cache.is_synced:
            self._stop_event.wait(self._interval_s)
        while not self._stop_event.is_set():
            try:
                self.sync_once()
            except Exception:
                logger.exception("Chain cache sync failed")
            self._stop_event.wait(self._interval_s)

    def stop(self):
        self._stop_event.set()

    def sync_once(self) -> None:
        pairs = self._reader.pairs()
        data = self._reader.strategies_by_pairs(pairs)

        if not self._cache.is_synced:
            self._cache.bulk_load(data)
            self._cache.mark_synced()
            logger.info(f"Initial sync complete: {len(data)} pairs")
            return

        for pair, strategies in data.items():
            if self._cache.has_pair(pair.token0, pair.token1):
                self._cache.update_pair(pair.token0, pair.token1, strategies)
            else:
                self._cache.add_pair(pair.token0, pair.token1, strategies)
