"""Infrastructure layer exports."""

from .jobs import InMemoryJobRepository, JobRepository
from .pools import PoolHandle, PoolManager, thread_pool_factory
from .sinks import FanOutSink, LoggingSink, NullSink, PresentationSink, RecordingSink
from .sources import FileSourceLoader, SourceLoader, StaticSourceLoader, default_source_loader

__all__ = [
    "FanOutSink",
    "FileSourceLoader",
    "InMemoryJobRepository",
    "JobRepository",
    "LoggingSink",
    "NullSink",
    "PoolHandle",
    "PoolManager",
    "PresentationSink",
    "RecordingSink",
    "SourceLoader",
    "StaticSourceLoader",
    "default_source_loader",
    "thread_pool_factory",
]
