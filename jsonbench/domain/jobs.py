"""Domain entities for decode benchmark jobs."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any


class Strategy(str, Enum):
    SEQUENTIAL = "sequential"
    BOUNDED_POOL = "bounded_pool"
    SYSTEM_DEFAULT = "system_default"


class JobPhase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SCHEDULING = "scheduling"
    AWAITING = "awaiting"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (JobPhase.COMPLETED, JobPhase.FAILED)


@dataclass(frozen=True, slots=True)
class JobParameters:
    """Inputs for one run, built fresh from the caller's choices each time."""

    concurrency_width: int = 1
    replication_factor: int = 1
    strategy: Strategy = Strategy.BOUNDED_POOL

    def clamped(self, max_width: int) -> "JobParameters":
        """Return a copy with width in ``[1, max_width]`` and replication ``>= 1``."""

        width = min(max(1, self.concurrency_width), max(1, max_width))
        return replace(self, concurrency_width=width, replication_factor=max(1, self.replication_factor))


@dataclass(frozen=True, slots=True)
class ErrorInfo:
    kind: str
    message: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorInfo":
        kind = getattr(exc, "kind", None) or type(exc).__name__
        return cls(kind=str(kind), message=str(exc))


@dataclass(frozen=True, slots=True)
class JobResult:
    total_item_count: int
    elapsed_millis: int
    error: ErrorInfo | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def summary(self) -> str:
        if self.error is not None:
            return f"Failed to load data ({self.error.kind}): {self.error.message}"
        return f"Records loaded: {self.total_item_count}\nTotal time: {self.elapsed_millis}ms"

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_item_count": self.total_item_count,
            "elapsed_millis": self.elapsed_millis,
            "error": asdict(self.error) if self.error else None,
            "summary": self.summary(),
        }


@dataclass(frozen=True, slots=True)
class JobNotification:
    """What the presentation sink receives on every phase change."""

    job_id: str
    phase: JobPhase
    result: JobResult | None = None


@dataclass(slots=True)
class JobRecord:
    """Represents one benchmark run and its outcome."""

    job_id: str
    parameters: JobParameters
    status: JobPhase = JobPhase.IDLE
    result: JobResult | None = None
    history: list[JobPhase] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "status": self.status.value,
            "parameters": {
                "concurrency_width": self.parameters.concurrency_width,
                "replication_factor": self.parameters.replication_factor,
                "strategy": self.parameters.strategy.value,
            },
            "result": self.result.to_dict() if self.result else None,
            "phases": [phase.value for phase in self.history],
        }
