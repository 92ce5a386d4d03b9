# /gastimator/core/merger.py
# Races the local and remote estimators and folds their outcomes into a
# monotonically improving MergedEstimate.
import asyncio
import time
from enum import Enum
from typing import AsyncIterator

from gastimator.core.errors import BothEstimatorsFailed, GasExceedsLimit
from gastimator.core.gas import Failure, MergedEstimate, Success
from gastimator.core.logger import get_logger, ESTIMATOR_FAILURES
from gastimator.core.transaction import CanonicalTransaction

log = get_logger(__name__)


class MergeState(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    FINAL = "final"


def check_gas_limit(estimate: int, gas_limit: int | None) -> int:
    """Gas-limit guard, passes ``estimate`` through unless it exceeds ``gas_limit``."""
    if gas_limit is not None and estimate > gas_limit:
        raise GasExceedsLimit(estimated_cost=estimate, gas_limit=gas_limit)
    return estimate


class FanInMerger:
    """
    Two-source asynchronous join.

    Both adapters run as independent tasks reporting into a queue owned by
    the merge loop. Neither is ever cancelled because of the other.
    """
    def __init__(self, local, remote):
        self.local = local
        self.remote = remote
        # asyncio only keeps weak references to tasks
        self._tasks: set[asyncio.Task] = set()

    async def _run(self, adapter, tx: CanonicalTransaction, completions: asyncio.Queue):
        try:
            outcome = await adapter.estimate(tx)
        except Exception as e:
            log.error("ESTIMATOR_ADAPTER_RAISED", source=adapter.source, error=str(e), exc_info=True)
            outcome = Failure(source=adapter.source, reason=str(e) or type(e).__name__)
        completions.put_nowait(outcome)

    def _spawn(self, adapter, tx: CanonicalTransaction, completions: asyncio.Queue):
        task = asyncio.create_task(self._run(adapter, tx, completions))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def merge(self, tx: CanonicalTransaction) -> AsyncIterator[MergedEstimate]:
        """
        Yields at most one partial estimate followed by exactly one final one.

        Raises:
            BothEstimatorsFailed: neither adapter produced a value.
        """
        start = time.perf_counter()
        completions: asyncio.Queue = asyncio.Queue()
        adapters = (self.local, self.remote)
        for adapter in adapters:
            self._spawn(adapter, tx, completions)

        state = MergeState.PENDING
        best: int | None = None
        failures: dict[str, str] = {}

        for _ in adapters:
            outcome = await completions.get()
            elapsed_ms = int((time.perf_counter() - start) * 1000)

            if isinstance(outcome, Success):
                log.debug("ESTIMATOR_SUCCEEDED", source=outcome.source, gas=outcome.gas, elapsed_ms=elapsed_ms)
                best = outcome.gas if best is None else max(best, outcome.gas)
            else:
                ESTIMATOR_FAILURES.labels(outcome.source).inc()
                log.warning("ESTIMATOR_FAILED", source=outcome.source, reason=outcome.reason, elapsed_ms=elapsed_ms)
                failures[outcome.source] = outcome.reason

            if state is MergeState.PENDING:
                state = MergeState.PARTIAL
                if best is not None:
                    yield MergedEstimate(gas=best, is_final=False, elapsed_ms=elapsed_ms)
                continue

            state = MergeState.FINAL
            if best is None:
                raise BothEstimatorsFailed(
                    local_reason=failures.get(self.local.source, "unknown"),
                    remote_reason=failures.get(self.remote.source, "unknown"),
                )
            log.info("ESTIMATES_MERGED", gas=best, failed_sources=sorted(failures), elapsed_ms=elapsed_ms)
            yield MergedEstimate(gas=best, is_final=True, elapsed_ms=elapsed_ms)
