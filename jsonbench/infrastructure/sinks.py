"""Presentation sinks notified of job phases and results.

The runner calls ``render`` on every phase change. Rendering happens outside
the timed span, so a slow sink never inflates the reported elapsed time.
"""
from __future__ import annotations

import logging
import threading
from typing import Protocol

from jsonbench.domain import JobNotification, JobPhase

logger = logging.getLogger(__name__)


class PresentationSink(Protocol):
    """Contract for anything that displays job progress."""

    def render(self, notification: JobNotification) -> None:
        """Consume one phase notification."""


class NullSink:
    def render(self, notification: JobNotification) -> None:  # pragma: no cover - trivial
        return None


class LoggingSink:
    def render(self, notification: JobNotification) -> None:
        if notification.phase is JobPhase.FAILED and notification.result is not None:
            logger.warning("Job %s failed: %s", notification.job_id, notification.result.summary())
        elif notification.result is not None:
            logger.info("Job %s %s: %s", notification.job_id, notification.phase.value, notification.result.summary())
        else:
            logger.debug("Job %s entered %s", notification.job_id, notification.phase.value)


class RecordingSink:
    """Keeps every notification so the HTTP layer can report the latest state."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._notifications: list[JobNotification] = []

    def render(self, notification: JobNotification) -> None:
        with self._lock:
            self._notifications.append(notification)

    @property
    def notifications(self) -> list[JobNotification]:
        with self._lock:
            return list(self._notifications)

    def latest(self) -> JobNotification | None:
        with self._lock:
            return self._notifications[-1] if self._notifications else None


class FanOutSink:
    def __init__(self, *sinks: PresentationSink) -> None:
        self._sinks = sinks

    def render(self, notification: JobNotification) -> None:
        for sink in self._sinks:
            sink.render(notification)
