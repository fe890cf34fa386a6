"""Worker pool lifecycle for decode jobs.

A :class:`PoolManager` hands out pools of an exact width, one job at a time.
Released pools are drained first, then either parked in a one-slot idle cache
for the next job of the same width or shut down. Every leased worker counts
against an optional capacity so exhaustion can be reproduced in tests.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from jsonbench.core.errors import PoolCreationError

logger = logging.getLogger(__name__)

ExecutorFactory = Callable[[int], Executor]


def thread_pool_factory(width: int) -> Executor:
    return ThreadPoolExecutor(max_workers=width, thread_name_prefix=f"decode-w{width}")


class PoolHandle:
    """A leased executor plus the futures submitted to it during one job."""

    def __init__(self, executor: Executor, width: int | None, *, shared: bool = False) -> None:
        self.executor = executor
        self.width = width
        self.shared = shared
        self._submitted: list[Future] = []
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def submit(self, fn: Callable[..., Any], /, *args: Any) -> Future:
        if self._released:
            raise RuntimeError("pool handle has already been released")
        future = self.executor.submit(fn, *args)
        self._submitted.append(future)
        return future

    def cancel_pending(self) -> int:
        """Cancel every queued unit that has not started; return how many."""

        return sum(1 for future in self._submitted if future.cancel())

    def mark_released(self) -> None:
        self._released = True

    def drain(self) -> None:
        if self._submitted:
            wait(self._submitted)
        self._submitted.clear()


class PoolManager:
    def __init__(
        self,
        *,
        capacity: int | None = None,
        reuse: bool = True,
        factory: ExecutorFactory = thread_pool_factory,
        system_factory: Callable[[], Executor] | None = None,
    ) -> None:
        self._capacity = capacity
        self._reuse = reuse
        self._factory = factory
        self._system_factory = system_factory or (lambda: ThreadPoolExecutor(thread_name_prefix="decode-default"))
        self._lock = threading.Lock()
        self._leased_workers = 0
        self._idle: PoolHandle | None = None
        self._system: Executor | None = None
        self._created = 0
        self._closed = False

    # ------------------------------------------------------------------
    # bounded pools
    # ------------------------------------------------------------------
    def acquire_pool(self, width: int) -> PoolHandle:
        if width < 1:
            raise PoolCreationError(f"pool width must be at least 1, got {width}")

        with self._lock:
            if self._closed:
                raise PoolCreationError("pool manager is closed")
            idle = self._idle
            if idle is not None and idle.width == width:
                self._idle = None
                self._leased_workers += width
                logger.debug("Reusing idle pool of width %d", width)
                return PoolHandle(idle.executor, width)

            if idle is not None:
                self._idle = None
                logger.debug("Discarding idle pool of width %s", idle.width)
                idle.executor.shutdown(wait=True)

            if self._capacity is not None and self._leased_workers + width > self._capacity:
                raise PoolCreationError(
                    f"cannot allocate {width} workers: {self._leased_workers} of "
                    f"{self._capacity} already in use"
                )

            try:
                executor = self._factory(width)
            except (RuntimeError, OSError, ValueError) as exc:
                raise PoolCreationError(f"failed to create pool of width {width}: {exc}") from exc

            self._created += 1
            self._leased_workers += width
            logger.debug("Created pool of width %d", width)
            return PoolHandle(executor, width)

    def release(self, handle: PoolHandle) -> None:
        if handle.released:
            return
        handle.drain()
        handle.mark_released()
        if handle.shared:
            return

        with self._lock:
            self._leased_workers -= handle.width or 0
            if self._reuse and self._idle is None and not self._closed:
                self._idle = PoolHandle(handle.executor, handle.width)
                logger.debug("Parked pool of width %s for reuse", handle.width)
                return
        handle.executor.shutdown(wait=True)
        logger.debug("Shut down pool of width %s", handle.width)

    @contextmanager
    def lease(self, width: int) -> Iterator[PoolHandle]:
        handle = self.acquire_pool(width)
        try:
            yield handle
        except BaseException:
            handle.cancel_pending()
            raise
        finally:
            self.release(handle)

    # ------------------------------------------------------------------
    # runtime-managed pool
    # ------------------------------------------------------------------
    def system_default(self) -> PoolHandle:
        with self._lock:
            if self._closed:
                raise PoolCreationError("pool manager is closed")
            if self._system is None:
                try:
                    self._system = self._system_factory()
                except (RuntimeError, OSError, ValueError) as exc:
                    raise PoolCreationError(f"failed to create the default pool: {exc}") from exc
            return PoolHandle(self._system, None, shared=True)

    @contextmanager
    def lease_system_default(self) -> Iterator[PoolHandle]:
        handle = self.system_default()
        try:
            yield handle
        except BaseException:
            handle.cancel_pending()
            raise
        finally:
            self.release(handle)

    # ------------------------------------------------------------------
    # housekeeping
    # ------------------------------------------------------------------
    def stats(self) -> dict[str, object]:
        with self._lock:
            return {
                "capacity": self._capacity,
                "leased_workers": self._leased_workers,
                "idle_width": self._idle.width if self._idle else None,
                "pools_created": self._created,
                "reuse": self._reuse,
            }

    def close(self) -> None:
        """Shut down cached pools; leases still out are shut down on release."""

        with self._lock:
            self._closed = True
            idle, self._idle = self._idle, None
            system, self._system = self._system, None
        if idle is not None:
            idle.executor.shutdown(wait=True)
        if system is not None:
            system.shutdown(wait=True)
