"""Application services."""

from .jobs import JobRunner, JobService, Stopwatch, build_job_service, get_job_service, reset_job_state

__all__ = [
    "JobRunner",
    "JobService",
    "Stopwatch",
    "build_job_service",
    "get_job_service",
    "reset_job_state",
]
