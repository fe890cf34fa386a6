"""Domain layer definitions."""

from .jobs import ErrorInfo, JobNotification, JobParameters, JobPhase, JobRecord, JobResult, Strategy

__all__ = [
    "ErrorInfo",
    "JobNotification",
    "JobParameters",
    "JobPhase",
    "JobRecord",
    "JobResult",
    "Strategy",
]
