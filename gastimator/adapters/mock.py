# /gastimator/adapters/mock.py
# Test implementations of the estimator and cache seams.
# - Deterministic values, forced failures and call counters.
# - Optional gates to control which estimator completes first.
import asyncio
import threading

from gastimator.adapters.local_simulator import LocalTxSimulator
from gastimator.adapters.remote_estimator import RemoteGasEstimator
from gastimator.core.cache import InMemoryGasCache
from gastimator.core.errors import RpcError, SimulationError
from gastimator.core.logger import get_logger
from gastimator.core.transaction import CanonicalTransaction

log = get_logger(__name__)


class HardcodedSimulator(LocalTxSimulator):
    """
    Returns a fixed gas value.

    If ``gate`` is given, ``simulate`` blocks its worker thread until the gate
    is set, which lets a test decide the completion order.
    """
    def __init__(self, gas: int, gate: threading.Event | None = None):
        self.gas = gas
        self.gate = gate
        self.calls = 0
        self.seen: list[CanonicalTransaction] = []

    def simulate(self, tx: CanonicalTransaction) -> int:
        self.calls += 1
        self.seen.append(tx)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        log.debug("MOCK_SIMULATION", gas=self.gas)
        return self.gas


class FailingSimulator(LocalTxSimulator):
    def __init__(self, reason: str = "execution reverted", gate: threading.Event | None = None):
        self.reason = reason
        self.gate = gate
        self.calls = 0

    def simulate(self, tx: CanonicalTransaction) -> int:
        self.calls += 1
        if self.gate is not None:
            self.gate.wait(timeout=5)
        raise SimulationError(self.reason)


class HardcodedRemoteEstimator(RemoteGasEstimator):
    """Returns a fixed gas value, optionally after ``gate`` is set."""
    def __init__(self, gas: int, gate: asyncio.Event | None = None):
        self.gas = gas
        self.gate = gate
        self.calls = 0
        self.seen: list[CanonicalTransaction] = []

    async def estimate_gas(self, tx: CanonicalTransaction) -> int:
        self.calls += 1
        self.seen.append(tx)
        if self.gate is not None:
            await self.gate.wait()
        log.debug("MOCK_REMOTE_ESTIMATE", gas=self.gas)
        return self.gas


class FailingRemoteEstimator(RemoteGasEstimator):
    def __init__(self, reason: str = "connection refused", gate: asyncio.Event | None = None):
        self.reason = reason
        self.gate = gate
        self.calls = 0

    async def estimate_gas(self, tx: CanonicalTransaction) -> int:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        raise RpcError(self.reason)


class RecordingGasCache(InMemoryGasCache):
    """In-memory cache that also records every lookup and store it sees."""
    def __init__(self, max_entries: int | None = None):
        super().__init__(max_entries)
        self.lookups: list[CanonicalTransaction] = []
        self.stores: list[CanonicalTransaction] = []

    def lookup(self, tx):
        self.lookups.append(tx)
        return super().lookup(tx)

    def store(self, tx, usage):
        self.stores.append(tx)
        super().store(tx, usage)
