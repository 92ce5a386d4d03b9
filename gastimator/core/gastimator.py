# /gastimator/core/gastimator.py
# Request flow: native transfer short-circuit -> identity cache -> fan-in
# merge of both estimators -> gas-limit guard -> cache store.
import asyncio
import time
from contextlib import aclosing
from typing import AsyncIterator

from gastimator.adapters.local_simulator import EthTesterSimulator, LocalEstimatorAdapter
from gastimator.adapters.remote_estimator import AlchemyRpcClient, RemoteEstimatorAdapter
from gastimator.core.cache import GasCache, InMemoryGasCache
from gastimator.core.errors import GasExceedsLimit, GastimatorError
from gastimator.core.gas import (
    GasEstimateResponse,
    NATIVE_TOKEN_TRANSFER_GAS,
    classify,
)
from gastimator.core.logger import get_logger, ESTIMATES_TOTAL, CACHE_HITS
from gastimator.core.merger import FanInMerger, check_gas_limit
from gastimator.core.transaction import CanonicalTransaction

log = get_logger(__name__)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class Gastimator:
    """
    Dual-source gas estimator.

    The cache is an explicitly constructed resource so the whole request
    flow can be exercised with test doubles.
    """
    def __init__(self, local: LocalEstimatorAdapter, remote: RemoteEstimatorAdapter, cache: GasCache):
        self.merger = FanInMerger(local, remote)
        self.cache = cache
        self._inflight: set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, settings) -> "Gastimator":
        """Production wiring: py-evm simulator, Alchemy RPC and an in-memory cache."""
        return cls(
            local=LocalEstimatorAdapter(EthTesterSimulator()),
            remote=RemoteEstimatorAdapter(AlchemyRpcClient(
                url=settings.alchemy_url, timeout=settings.RPC_TIMEOUT_SECONDS
            )),
            cache=InMemoryGasCache(settings.CACHE_MAX_ENTRIES),
        )

    async def estimate_gas(self, tx: CanonicalTransaction) -> GasEstimateResponse:
        """Request/response flavour, returns only the final estimate."""
        final = None
        async with aclosing(self.stream_estimates(tx)) as updates:
            async for final in updates:
                pass
        return final

    async def stream_estimates(self, tx: CanonicalTransaction) -> AsyncIterator[GasEstimateResponse]:
        """
        Streaming flavour: zero or one partial estimate, then exactly one
        final one.

        The merge runs in a background task. Abandoning this iterator stops
        delivery only; both estimators still run to completion and the result
        still reaches the cache.
        """
        start = time.perf_counter()
        log.info("TX_RECEIVED", kind=tx.kind().value, **tx.log_fields())

        try:
            immediate = self._check_native_transfer(tx, start) or self._use_cached_value_if_able(tx, start)
        except GasExceedsLimit:
            ESTIMATES_TOTAL.labels("GasExceedsLimit").inc()
            raise
        if immediate is not None:
            ESTIMATES_TOTAL.labels("success").inc()
            yield immediate
            return

        updates: asyncio.Queue = asyncio.Queue()
        task = asyncio.create_task(self._compute(tx, start, updates))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

        while True:
            update = await updates.get()
            if isinstance(update, Exception):
                raise update
            yield update
            if update.is_final:
                return

    def _check_native_transfer(self, tx: CanonicalTransaction, start: float) -> GasEstimateResponse | None:
        """A native token transfer costs exactly 21_000, no estimation needed."""
        if not tx.kind().is_native_token_transfer:
            return None
        check_gas_limit(NATIVE_TOKEN_TRANSFER_GAS, tx.gas_limit)
        return GasEstimateResponse(
            gas_usage=classify(tx, NATIVE_TOKEN_TRANSFER_GAS),
            time_elapsed_in_millis=_elapsed_ms(start),
        )

    def _use_cached_value_if_able(self, tx: CanonicalTransaction, start: float) -> GasEstimateResponse | None:
        cached = self.cache.lookup(tx)
        if cached is None:
            return None
        CACHE_HITS.inc()
        log.debug("CACHED_ESTIMATE_FOUND", gas_usage=cached.model_dump(mode="json"))
        return GasEstimateResponse(gas_usage=cached, time_elapsed_in_millis=_elapsed_ms(start))

    async def _compute(self, tx: CanonicalTransaction, start: float, updates: asyncio.Queue):
        try:
            async for merged in self.merger.merge(tx):
                if not merged.is_final:
                    updates.put_nowait(GasEstimateResponse(
                        gas_usage=classify(tx, merged.gas),
                        is_final=False,
                        time_elapsed_in_millis=_elapsed_ms(start),
                    ))
                    continue
                check_gas_limit(merged.gas, tx.gas_limit)
                gas_usage = classify(tx, merged.gas)
                self.cache.store(tx, gas_usage)
                ESTIMATES_TOTAL.labels("success").inc()
                log.info("ESTIMATE_COMPLETED", gas=merged.gas, elapsed_ms=_elapsed_ms(start))
                updates.put_nowait(GasEstimateResponse(
                    gas_usage=gas_usage,
                    is_final=True,
                    time_elapsed_in_millis=_elapsed_ms(start),
                ))
        except GastimatorError as e:
            ESTIMATES_TOTAL.labels(type(e).__name__).inc()
            log.error("ESTIMATE_FAILED", error=str(e))
            updates.put_nowait(e)
        except Exception as e:
            # Forwarded so the consumer never waits on a dead task
            log.error("ESTIMATE_CRASHED", error=str(e), exc_info=True)
            updates.put_nowait(e)
