from __future__ import annotations

import sys
import threading
import time
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from jsonbench.application import JobRunner, Stopwatch
from jsonbench.core.decoder import UnitOutcome, decode, decode_unit
from jsonbench.core.errors import JobAlreadyRunningError
from jsonbench.domain import JobParameters, JobPhase, Strategy
from jsonbench.infrastructure import (
    FileSourceLoader,
    InMemoryJobRepository,
    PoolManager,
    RecordingSink,
    StaticSourceLoader,
)
from jsonbench.workers.scheduler import WorkUnitScheduler

ANA = '[{"name":"Ana","language":"Kotlin","id":"1","bio":"x","version":1.0}]'
DATA_FILE = Path(__file__).resolve().parents[1] / "data" / "weather.json"
ALL_STRATEGIES = list(Strategy)


@pytest.fixture()
def pools():
    manager = PoolManager()
    yield manager
    manager.close()


def _runner(pools: PoolManager, unit=decode_unit, **kwargs) -> JobRunner:
    return JobRunner(pools, WorkUnitScheduler(unit, max_width=4), **kwargs)


@pytest.mark.parametrize("strategy", ALL_STRATEGIES)
@pytest.mark.parametrize("replication", [1, 3, 30])
def test_total_is_replication_times_single_decode(pools, strategy, replication):
    text = DATA_FILE.read_text(encoding="utf-8")
    params = JobParameters(concurrency_width=3, replication_factor=replication, strategy=strategy)

    result = _runner(pools).run_job(params, StaticSourceLoader(text))

    assert result.error is None
    assert result.total_item_count == replication * len(decode(text))
    assert result.elapsed_millis >= 0


@pytest.mark.parametrize("strategy", ALL_STRATEGIES)
def test_single_record_payload_replicated_three_times(pools, strategy):
    params = JobParameters(concurrency_width=2, replication_factor=3, strategy=strategy)
    result = _runner(pools).run_job(params, StaticSourceLoader(ANA))
    assert result.total_item_count == 3
    assert result.succeeded


def test_sequential_matches_bounded_pool_of_width_one(pools):
    loader = FileSourceLoader(DATA_FILE)
    runner = _runner(pools)

    sequential = runner.run_job(JobParameters(1, 30, Strategy.SEQUENTIAL), loader)
    pooled = runner.run_job(JobParameters(1, 30, Strategy.BOUNDED_POOL), loader)

    assert sequential.total_item_count == pooled.total_item_count
    assert sequential.error is None and pooled.error is None


@pytest.mark.parametrize("strategy", ALL_STRATEGIES)
def test_malformed_input_fails_with_decode_error(pools, strategy):
    sink = RecordingSink()
    params = JobParameters(concurrency_width=2, replication_factor=4, strategy=strategy)

    result = _runner(pools).run_job(params, StaticSourceLoader("not json"), sink)

    assert result.error is not None
    assert result.error.kind == "DecodeError"
    assert result.total_item_count == 0
    assert sink.latest().phase is JobPhase.FAILED


def test_one_failing_unit_fails_the_whole_job(pools):
    def flaky(index: int, text: str) -> UnitOutcome:
        if index == 5:
            return decode_unit(index, "[{}]")
        return decode_unit(index, text)

    repository = InMemoryJobRepository()
    runner = _runner(pools, flaky, repository=repository)
    result = runner.run_job(JobParameters(2, 10, Strategy.BOUNDED_POOL), StaticSourceLoader(ANA), job_id="job-x")

    assert result.error is not None
    assert result.error.kind == "DecodeError"
    assert "name" in result.error.message
    assert result.total_item_count == 0
    assert repository.get_job("job-x").status is JobPhase.FAILED
    assert pools.stats()["leased_workers"] == 0


def test_unexpected_unit_exception_is_surfaced(pools):
    def explode(index: int, text: str) -> UnitOutcome:
        raise RuntimeError("worker crashed")

    result = _runner(pools, explode).run_job(JobParameters(2, 4, Strategy.BOUNDED_POOL), StaticSourceLoader(ANA))

    assert result.error.kind == "RuntimeError"
    assert result.error.message == "worker crashed"


def test_source_load_failure_skips_scheduling(pools):
    calls: list[int] = []

    def unit(index: int, text: str) -> UnitOutcome:
        calls.append(index)
        return decode_unit(index, text)

    sink = RecordingSink()
    result = _runner(pools, unit).run_job(
        JobParameters(2, 3, Strategy.BOUNDED_POOL),
        FileSourceLoader(DATA_FILE.with_name("missing.json")),
        sink,
    )

    assert result.error.kind == "SourceLoadError"
    assert calls == []
    assert [item.phase for item in sink.notifications] == [JobPhase.LOADING, JobPhase.FAILED]
    assert pools.stats()["pools_created"] == 0


def test_loader_exceptions_become_source_load_errors(pools):
    def loader() -> str:
        raise ConnectionError("asset store offline")

    result = _runner(pools).run_job(JobParameters(), loader)
    assert result.error.kind == "SourceLoadError"
    assert "asset store offline" in result.error.message


def test_loader_is_called_exactly_once(pools):
    calls: list[int] = []

    def loader() -> str:
        calls.append(1)
        return ANA

    _runner(pools).run_job(JobParameters(2, 10, Strategy.BOUNDED_POOL), loader)
    assert calls == [1]


def test_pool_creation_failure_fails_before_scheduling():
    calls: list[int] = []

    def unit(index: int, text: str) -> UnitOutcome:
        calls.append(index)
        return decode_unit(index, text)

    capped = PoolManager(capacity=1)
    try:
        result = _runner(capped, unit).run_job(JobParameters(2, 3, Strategy.BOUNDED_POOL), StaticSourceLoader(ANA))
    finally:
        capped.close()

    assert result.error.kind == "PoolCreationError"
    assert calls == []


def test_pool_is_released_so_next_job_fits_under_cap():
    capped = PoolManager(capacity=3, reuse=False)
    runner = _runner(capped)
    try:
        first = runner.run_job(JobParameters(3, 6, Strategy.BOUNDED_POOL), StaticSourceLoader(ANA))
        failed = runner.run_job(JobParameters(3, 6, Strategy.BOUNDED_POOL), StaticSourceLoader("not json"))
        again = runner.run_job(JobParameters(3, 6, Strategy.BOUNDED_POOL), StaticSourceLoader(ANA))
        with capped.lease(3) as handle:
            assert handle.width == 3
    finally:
        capped.close()

    assert first.total_item_count == 6
    assert failed.error.kind == "DecodeError"
    assert again.total_item_count == 6
    assert capped.stats()["leased_workers"] == 0


def test_phases_follow_the_state_machine(pools):
    sink = RecordingSink()
    repository = InMemoryJobRepository()
    runner = _runner(pools, repository=repository)
    result = runner.run_job(JobParameters(2, 2, Strategy.BOUNDED_POOL), StaticSourceLoader(ANA), sink, job_id="job-1")

    phases = [item.phase for item in sink.notifications]
    assert phases == [JobPhase.LOADING, JobPhase.SCHEDULING, JobPhase.AWAITING, JobPhase.COMPLETED]
    assert sink.latest().result == result
    assert repository.get_job("job-1").history == [
        JobPhase.IDLE,
        JobPhase.LOADING,
        JobPhase.SCHEDULING,
        JobPhase.AWAITING,
        JobPhase.COMPLETED,
    ]


def test_elapsed_time_excludes_sink_rendering(pools):
    class SlowSink:
        def render(self, notification) -> None:
            time.sleep(0.3)

    result = _runner(pools).run_job(JobParameters(2, 3, Strategy.BOUNDED_POOL), StaticSourceLoader(ANA), SlowSink())

    assert result.total_item_count == 3
    assert 0 <= result.elapsed_millis < 300


def test_concurrent_run_is_rejected(pools):
    loading = threading.Event()
    release = threading.Event()

    def slow_loader() -> str:
        loading.set()
        release.wait(timeout=5)
        return ANA

    runner = _runner(pools)
    results = []
    worker = threading.Thread(
        target=lambda: results.append(runner.run_job(JobParameters(1, 2, Strategy.BOUNDED_POOL), slow_loader))
    )
    worker.start()
    try:
        assert loading.wait(timeout=5)
        assert runner.busy
        with pytest.raises(JobAlreadyRunningError):
            runner.run_job(JobParameters(), StaticSourceLoader(ANA))
    finally:
        release.set()
        worker.join(timeout=5)

    assert results and results[0].total_item_count == 2
    assert not runner.busy


def test_elapsed_time_covers_units_running_while_sink_renders(pools):
    reads: list[float] = []
    seen_at_terminal: list[int] = []

    def clock() -> float:
        reads.append(time.perf_counter())
        return reads[-1]

    def slow_unit(index: int, text: str) -> UnitOutcome:
        time.sleep(0.25)
        return decode_unit(index, text)

    class SlowAwaitingSink:
        def render(self, notification) -> None:
            if notification.phase is JobPhase.AWAITING:
                time.sleep(0.3)
            if notification.phase.terminal:
                seen_at_terminal.append(len(reads))
                time.sleep(0.3)

    runner = JobRunner(pools, WorkUnitScheduler(slow_unit, max_width=4), clock=clock)
    result = runner.run_job(JobParameters(2, 2, Strategy.BOUNDED_POOL), StaticSourceLoader(ANA), SlowAwaitingSink())

    assert result.total_item_count == 2
    assert 250 <= result.elapsed_millis < 550
    # start and stop were both read before the terminal notification
    assert seen_at_terminal == [2]
    assert len(reads) == 2


def test_pool_creation_failure_never_reaches_awaiting():
    sink = RecordingSink()
    capped = PoolManager(capacity=1)
    try:
        result = _runner(capped).run_job(JobParameters(2, 3, Strategy.BOUNDED_POOL), StaticSourceLoader(ANA), sink)
    finally:
        capped.close()

    assert result.elapsed_millis == 0
    assert [item.phase for item in sink.notifications] == [JobPhase.LOADING, JobPhase.SCHEDULING, JobPhase.FAILED]


def test_stopwatch_measures_start_to_stop():
    ticks = iter([1.0, 1.5])
    stopwatch = Stopwatch(lambda: next(ticks))
    assert stopwatch.elapsed_millis == 0
    stopwatch.start()
    stopwatch.stop()
    stopwatch.stop()
    assert stopwatch.elapsed_millis == 500
