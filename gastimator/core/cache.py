# /gastimator/core/cache.py
from cachetools import LRUCache

from gastimator.core.gas import AtLeastWithEstimate, ExactGasUsage
from gastimator.core.logger import get_logger
from gastimator.core.transaction import CanonicalTransaction

log = get_logger(__name__)


class GasCache:
    """
    Identity cache interface: maps an exact transaction to its final gas usage.

    Transactions without both a nonce and a sender have no key, for them
    ``lookup`` always misses and ``store`` never persists.
    """
    def lookup(self, tx: CanonicalTransaction) -> ExactGasUsage | AtLeastWithEstimate | None:
        raise NotImplementedError

    def store(self, tx: CanonicalTransaction, usage: ExactGasUsage | AtLeastWithEstimate) -> None:
        raise NotImplementedError


class InMemoryGasCache(GasCache):
    """
    Process lifetime, in-memory implementation, accessed from the event loop only.

    Entries are inserted once (first writer wins) and never mutated. When
    ``max_entries`` is set the least recently used entry is evicted first.
    """
    def __init__(self, max_entries: int | None = None):
        self.max_entries = max_entries or None
        self._entries = LRUCache(maxsize=self.max_entries) if self.max_entries else {}
        log.info("IDENTITY_CACHE_INITIALIZED", max_entries=self.max_entries)

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, tx: CanonicalTransaction) -> ExactGasUsage | AtLeastWithEstimate | None:
        if not tx.is_cacheable():
            return None
        return self._entries.get(tx)

    def store(self, tx: CanonicalTransaction, usage: ExactGasUsage | AtLeastWithEstimate) -> None:
        if not tx.is_cacheable() or tx in self._entries:
            return
        self._entries[tx] = usage
