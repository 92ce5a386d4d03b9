# /gastimator/adapters/remote_estimator.py
# Remote gas estimation over Alchemy's JSON-RPC endpoint.
import aiohttp
from web3 import AsyncWeb3, AsyncHTTPProvider
from web3.exceptions import Web3Exception

from gastimator.core.decorators import retriable_network_call
from gastimator.core.errors import RpcError
from gastimator.core.gas import EstimateOutcome, Failure, Success
from gastimator.core.logger import get_logger
from gastimator.core.transaction import CanonicalTransaction

log = get_logger(__name__)


class RemoteGasEstimator:
    """Estimates gas with a single network request per call."""
    async def estimate_gas(self, tx: CanonicalTransaction) -> int:
        raise NotImplementedError


def estimate_gas_params(tx: CanonicalTransaction) -> dict:
    """``eth_estimateGas`` call object; the caller's gas limit is never sent."""
    params = {"value": tx.value}
    if tx.to is not None:
        params["to"] = tx.to
    if tx.input:
        params["data"] = "0x" + tx.input.hex()
    return params


class AlchemyRpcClient(RemoteGasEstimator):
    def __init__(self, url: str | None = None, timeout: float = 10.0, w3: AsyncWeb3 | None = None):
        self.timeout = timeout
        if w3 is None:
            if url is None:
                raise ValueError("No Alchemy endpoint provided, set ALCHEMY_API_KEY.")
            w3 = AsyncWeb3(AsyncHTTPProvider(
                url, request_kwargs={"timeout": aiohttp.ClientTimeout(total=timeout)}
            ))
        self.w3 = w3
        log.info("ALCHEMY_RPC_CLIENT_INITIALIZED")

    @retriable_network_call
    async def _estimate_gas(self, params: dict) -> int:
        return await self.w3.eth.estimate_gas(params)

    async def estimate_gas(self, tx: CanonicalTransaction) -> int:
        params = estimate_gas_params(tx)
        try:
            gas = await self._estimate_gas(params)
        except (Web3Exception, ValueError) as e:
            # RPC error objects, e.g. reverts or "gas required exceeds allowance"
            raise RpcError(f"eth_estimateGas rejected: {e}") from e
        log.info("ALCHEMY_GAS_ESTIMATE_FETCHED", gas=gas)
        return int(gas)


class RemoteEstimatorAdapter:
    """Single attempt, never raises: every failure becomes a ``Failure`` outcome."""
    source = "remote"

    def __init__(self, estimator: RemoteGasEstimator):
        self.estimator = estimator

    async def estimate(self, tx: CanonicalTransaction) -> EstimateOutcome:
        try:
            gas = await self.estimator.estimate_gas(tx)
        except Exception as e:
            log.warning("REMOTE_GAS_ESTIMATE_FAILED", error=str(e))
            return Failure(source=self.source, reason=str(e) or type(e).__name__)
        return Success(source=self.source, gas=gas)
