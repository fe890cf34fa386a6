"""Application service layer for decode benchmark jobs."""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import CancelledError, Future, as_completed
from contextlib import AbstractContextManager, nullcontext
from typing import Callable

from jsonbench.core import config
from jsonbench.core.decoder import UnitOutcome
from jsonbench.core.errors import JobAlreadyRunningError, JobError, PoolCreationError, SourceLoadError
from jsonbench.domain import ErrorInfo, JobNotification, JobParameters, JobPhase, JobRecord, JobResult, Strategy
from jsonbench.infrastructure import (
    FanOutSink,
    InMemoryJobRepository,
    JobRepository,
    LoggingSink,
    NullSink,
    PoolHandle,
    PoolManager,
    PresentationSink,
    RecordingSink,
    SourceLoader,
    default_source_loader,
)
from jsonbench.workers.scheduler import WorkUnitScheduler

logger = logging.getLogger(__name__)


class Stopwatch:
    """Wall-clock timer around the submit, decode and aggregate span of a job."""

    def __init__(self, clock: Callable[[], float] = time.perf_counter) -> None:
        self._clock = clock
        self._started: float | None = None
        self._stopped: float | None = None

    def start(self) -> None:
        self._started = self._clock()

    def stop(self) -> None:
        if self._started is not None and self._stopped is None:
            self._stopped = self._clock()

    @property
    def elapsed_millis(self) -> int:
        if self._started is None:
            return 0
        end = self._stopped if self._stopped is not None else self._clock()
        return max(0, int((end - self._started) * 1000))


class JobRunner:
    """Runs one decode job end to end: load, schedule, await, aggregate."""

    def __init__(
        self,
        pools: PoolManager,
        scheduler: WorkUnitScheduler | None = None,
        *,
        repository: JobRepository | None = None,
        sink: PresentationSink | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._pools = pools
        self._scheduler = scheduler or WorkUnitScheduler()
        self._repository = repository or InMemoryJobRepository()
        self._sink = sink or NullSink()
        self._clock = clock
        self._running = threading.Lock()

    @property
    def pools(self) -> PoolManager:
        return self._pools

    @property
    def scheduler(self) -> WorkUnitScheduler:
        return self._scheduler

    @property
    def busy(self) -> bool:
        return self._running.locked()

    def run_job(
        self,
        params: JobParameters,
        source_loader: SourceLoader,
        sink: PresentationSink | None = None,
        *,
        job_id: str | None = None,
    ) -> JobResult:
        if not self._running.acquire(blocking=False):
            raise JobAlreadyRunningError("a job is already running; wait for it to finish")
        try:
            return self._run(job_id or self._repository.next_job_id(), params, source_loader, sink or self._sink)
        finally:
            self._running.release()

    # ------------------------------------------------------------------
    # state machine
    # ------------------------------------------------------------------
    def _run(self, job_id: str, params: JobParameters, source_loader: SourceLoader, sink: PresentationSink) -> JobResult:
        params = self._scheduler.normalise(params)
        self._repository.register_job(job_id, params)
        logger.info(
            "Job %s starting: strategy=%s width=%d replication=%d",
            job_id,
            params.strategy.value,
            params.concurrency_width,
            params.replication_factor,
        )

        self._transition(job_id, JobPhase.LOADING, sink)
        try:
            source = self._load(source_loader)
        except SourceLoadError as exc:
            return self._finish(job_id, JobResult(0, 0, ErrorInfo.from_exception(exc)), sink)

        self._transition(job_id, JobPhase.SCHEDULING, sink)

        stopwatch = Stopwatch(self._clock)
        try:
            with self._pool_scope(params) as pool:
                # the sink renders before any unit is submitted
                self._transition(job_id, JobPhase.AWAITING, sink)
                stopwatch.start()
                futures = self._scheduler.schedule(source, params, pool)
                total, error = self._await(futures, pool)
                stopwatch.stop()
        except PoolCreationError as exc:
            stopwatch.stop()
            result = JobResult(0, stopwatch.elapsed_millis, ErrorInfo.from_exception(exc))
            return self._finish(job_id, result, sink)

        if error is not None:
            return self._finish(job_id, JobResult(0, stopwatch.elapsed_millis, error), sink)
        return self._finish(job_id, JobResult(total, stopwatch.elapsed_millis), sink)

    def _load(self, source_loader: SourceLoader) -> str:
        try:
            text = source_loader()
        except SourceLoadError:
            raise
        except Exception as exc:
            raise SourceLoadError(f"source loader failed: {exc}") from exc
        if not isinstance(text, str):
            raise SourceLoadError(f"source loader returned {type(text).__name__}, expected str")
        return text

    def _pool_scope(self, params: JobParameters) -> AbstractContextManager[PoolHandle | None]:
        if params.strategy is Strategy.SEQUENTIAL:
            return nullcontext(None)
        if params.strategy is Strategy.SYSTEM_DEFAULT:
            return self._pools.lease_system_default()
        return self._pools.lease(params.concurrency_width)

    def _await(self, futures: list[Future], pool: PoolHandle | None) -> tuple[int, ErrorInfo | None]:
        outcomes: list[UnitOutcome] = []
        error: ErrorInfo | None = None
        for future in as_completed(futures):
            try:
                outcome = future.result()
            except CancelledError:
                continue
            except Exception as exc:
                outcome = UnitOutcome(index=-1, error=ErrorInfo.from_exception(exc))

            if not outcome.ok:
                if error is None:
                    error = outcome.error
                    cancelled = pool.cancel_pending() if pool is not None else 0
                    logger.debug("Unit %d failed; cancelled %d queued units", outcome.index, cancelled)
                continue
            outcomes.append(outcome)

        if error is not None:
            return 0, error
        return sum(outcome.item_count for outcome in outcomes), None

    def _transition(self, job_id: str, phase: JobPhase, sink: PresentationSink, result: JobResult | None = None) -> None:
        self._repository.update_job_status(job_id, phase, result=result)
        logger.debug("Job %s -> %s", job_id, phase.value)
        sink.render(JobNotification(job_id=job_id, phase=phase, result=result))

    def _finish(self, job_id: str, result: JobResult, sink: PresentationSink) -> JobResult:
        if result.error is None:
            logger.info("Job %s completed: %d items in %d ms", job_id, result.total_item_count, result.elapsed_millis)
            self._transition(job_id, JobPhase.COMPLETED, sink, result)
        else:
            logger.warning("Job %s failed with %s: %s", job_id, result.error.kind, result.error.message)
            self._transition(job_id, JobPhase.FAILED, sink, result)
        return result


class JobService:
    """Coordinates job use cases for the presentation layer."""

    def __init__(
        self,
        runner: JobRunner,
        repository: JobRepository,
        recorder: RecordingSink,
        *,
        source_loader_factory: Callable[[], SourceLoader] = default_source_loader,
    ) -> None:
        self._runner = runner
        self._repository = repository
        self._recorder = recorder
        self._source_loader_factory = source_loader_factory

    # ------------------------------------------------------------------
    # job orchestration
    # ------------------------------------------------------------------
    def run(self, params: JobParameters) -> JobRecord:
        job_id = self._repository.next_job_id()
        # reload the source on every run
        result = self._runner.run_job(params, self._source_loader_factory(), job_id=job_id)
        record = self._repository.get_job(job_id)
        if record is None:  # pragma: no cover - the runner always registers the job
            raise JobError(f"job {job_id} missing from history: {result.summary()}")
        return record

    def options(self) -> dict[str, object]:
        return {
            "max_concurrency_width": self._runner.scheduler.max_width,
            "strategies": [strategy.value for strategy in Strategy],
            "defaults": {
                "concurrency_width": config.DEFAULT_CONCURRENCY_WIDTH,
                "replication_factor": config.default_replication_factor(),
                "strategy": Strategy.BOUNDED_POOL.value,
            },
        }

    def list_jobs(self) -> list[dict[str, object]]:
        return [record.to_dict() for record in self._repository.list_jobs()]

    def get_job(self, job_id: str) -> dict[str, object] | None:
        record = self._repository.get_job(job_id)
        return record.to_dict() if record else None

    def status(self) -> dict[str, object]:
        latest = self._recorder.latest()
        return {
            "running": self._runner.busy,
            "phase": latest.phase.value if latest else JobPhase.IDLE.value,
            "job_id": latest.job_id if latest else None,
            "result": latest.result.to_dict() if latest and latest.result else None,
            "pools": self._runner.pools.stats(),
        }

    # ------------------------------------------------------------------
    # lifecycle helpers
    # ------------------------------------------------------------------
    def close(self) -> None:
        self._runner.pools.close()


def build_job_service(*, source_loader_factory: Callable[[], SourceLoader] = default_source_loader) -> JobService:
    pools = PoolManager(capacity=config.pool_capacity(), reuse=config.reuse_pools())
    repository = InMemoryJobRepository()
    recorder = RecordingSink()
    runner = JobRunner(
        pools,
        WorkUnitScheduler(),
        repository=repository,
        sink=FanOutSink(recorder, LoggingSink()),
    )
    return JobService(runner, repository, recorder, source_loader_factory=source_loader_factory)


_service: JobService | None = None


def get_job_service() -> JobService:
    """Return the singleton job service for the process."""

    global _service
    if _service is None:
        _service = build_job_service()
    return _service


def reset_job_state() -> None:
    """Drop the process-wide service (used in tests)."""

    global _service
    if _service is not None:
        _service.close()
    _service = None
