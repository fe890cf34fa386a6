from __future__ import annotations


class JobError(Exception):
    """Base class for failures that end a decode job."""

    kind = "JobError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SourceLoadError(JobError):
    """Raised when the source text cannot be read."""

    kind = "SourceLoadError"


class DecodeError(JobError):
    """Raised when the payload is not valid JSON or a record is incomplete."""

    kind = "DecodeError"


class PoolCreationError(JobError):
    """Raised when a worker pool of the requested width cannot be allocated."""

    kind = "PoolCreationError"


class JobAlreadyRunningError(JobError):
    """Raised when a job is requested while another one is still in flight."""

    kind = "JobAlreadyRunningError"
