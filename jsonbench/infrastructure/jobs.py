"""Infrastructure layer for job history."""
from __future__ import annotations

import threading
from typing import Protocol

from jsonbench.domain import JobParameters, JobPhase, JobRecord, JobResult


class JobRepository(Protocol):
    """Storage contract for job records."""

    def next_job_id(self) -> str: ...

    def register_job(self, job_id: str, parameters: JobParameters) -> JobRecord: ...

    def update_job_status(self, job_id: str, status: JobPhase, *, result: JobResult | None = None) -> None: ...

    def get_job(self, job_id: str) -> JobRecord | None: ...

    def list_jobs(self) -> list[JobRecord]: ...


class InMemoryJobRepository:
    """Simple in-memory repository for fast iteration and tests."""

    def __init__(self) -> None:
        self._jobs: dict[str, JobRecord] = {}
        self._job_counter = 0
        self._lock = threading.Lock()

    def next_job_id(self) -> str:
        with self._lock:
            self._job_counter += 1
            return f"job-{self._job_counter:05d}"

    def register_job(self, job_id: str, parameters: JobParameters) -> JobRecord:
        record = JobRecord(job_id=job_id, parameters=parameters, history=[JobPhase.IDLE])
        with self._lock:
            self._jobs[job_id] = record
        return record

    def update_job_status(self, job_id: str, status: JobPhase, *, result: JobResult | None = None) -> None:
        with self._lock:
            record = self._jobs.get(job_id)
            if record is None:
                return
            record.status = status
            record.history.append(status)
            if result is not None:
                record.result = result

    def get_job(self, job_id: str) -> JobRecord | None:
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(self) -> list[JobRecord]:
        with self._lock:
            return list(self._jobs.values())
