# /gastimator/adapters/local_simulator.py
# Local, deterministic gas estimation against an in-memory chain.
import asyncio
import threading

from web3 import Web3, EthereumTesterProvider

from gastimator.core.errors import SimulationError
from gastimator.core.gas import EstimateOutcome, Failure, Success
from gastimator.core.logger import get_logger
from gastimator.core.transaction import CanonicalTransaction

log = get_logger(__name__)


class LocalTxSimulator:
    """Simulates a transaction locally and returns the gas it used."""
    def simulate(self, tx: CanonicalTransaction) -> int:
        raise NotImplementedError


class EthTesterSimulator(LocalTxSimulator):
    """
    Runs ``eth_estimateGas`` against an in-memory py-evm chain.

    The chain starts empty apart from the funded test accounts, so calls to
    contracts only pay intrinsic and calldata costs. Simulation always runs
    from a funded account: balance and nonce of the real sender play no part.
    """
    def __init__(self, w3: Web3 | None = None):
        self.w3 = w3 or Web3(EthereumTesterProvider())
        self.sender = self.w3.eth.accounts[0]
        # The py-evm backend is not thread safe
        self._lock = threading.Lock()
        log.info("LOCAL_TX_SIMULATOR_INITIALIZED", sender=self.sender)

    def _tx_params(self, tx: CanonicalTransaction) -> dict:
        params = {
            "from": self.sender,
            "value": tx.value,
            "data": "0x" + tx.input.hex(),
        }
        if tx.to is not None:
            params["to"] = tx.to
        return params

    def simulate(self, tx: CanonicalTransaction) -> int:
        params = self._tx_params(tx)
        try:
            with self._lock:
                return self.w3.eth.estimate_gas(params)
        except Exception as e:
            raise SimulationError(f"{type(e).__name__}: {e}") from e


class LocalEstimatorAdapter:
    """Single attempt, never raises: every failure becomes a ``Failure`` outcome."""
    source = "local"

    def __init__(self, simulator: LocalTxSimulator):
        self.simulator = simulator

    async def estimate(self, tx: CanonicalTransaction) -> EstimateOutcome:
        try:
            gas = await asyncio.to_thread(self.simulator.simulate, tx)
        except Exception as e:
            log.warning("LOCAL_SIMULATION_FAILED", error=str(e))
            return Failure(source=self.source, reason=str(e) or type(e).__name__)
        log.debug("LOCAL_SIMULATION_SUCCEEDED", gas=gas)
        return Success(source=self.source, gas=gas)
