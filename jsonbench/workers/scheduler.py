from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Callable

from jsonbench.core import config
from jsonbench.core.decoder import UnitOutcome, decode_unit
from jsonbench.core.errors import PoolCreationError
from jsonbench.domain import JobParameters, Strategy
from jsonbench.infrastructure.pools import PoolHandle

logger = logging.getLogger(__name__)

UnitFunction = Callable[[int, str], UnitOutcome]


class WorkUnitScheduler:
    """Fans ``replication_factor`` decode units out according to the strategy."""

    def __init__(self, unit: UnitFunction = decode_unit, *, max_width: int | None = None) -> None:
        self._unit = unit
        self._max_width = max_width

    @property
    def max_width(self) -> int:
        return self._max_width if self._max_width is not None else config.available_parallelism()

    def normalise(self, params: JobParameters) -> JobParameters:
        return params.clamped(self.max_width)

    def schedule(self, source: str, params: JobParameters, pool: PoolHandle | None = None) -> list[Future]:
        params = self.normalise(params)
        if params.strategy is Strategy.SEQUENTIAL:
            return self._run_inline(source, params.replication_factor)

        if pool is None:
            raise ValueError(f"strategy {params.strategy.value!r} needs a pool")
        if params.strategy is Strategy.BOUNDED_POOL and pool.width != params.concurrency_width:
            raise ValueError(f"pool width {pool.width} does not match requested width {params.concurrency_width}")

        futures: list[Future] = []
        for index in range(params.replication_factor):
            try:
                futures.append(pool.submit(self._unit, index, source))
            except RuntimeError as exc:
                pool.cancel_pending()
                raise PoolCreationError(f"pool refused work unit {index}: {exc}") from exc
        logger.debug("Submitted %d units (%s)", len(futures), params.strategy.value)
        return futures

    def _run_inline(self, source: str, count: int) -> list[Future]:
        futures: list[Future] = []
        for index in range(count):
            future: Future = Future()
            future.set_running_or_notify_cancel()
            try:
                outcome = self._unit(index, source)
            except Exception as exc:
                future.set_exception(exc)
                futures.append(future)
                break
            future.set_result(outcome)
            futures.append(future)
            # fail fast
            if not outcome.ok:
                break
        return futures
