"""Source loaders supplying the raw JSON text for a job.

A loader is any zero-argument callable returning ``str``. Whatever it raises
is reported by the job runner as a :class:`SourceLoadError`.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from jsonbench.core import config
from jsonbench.core.errors import SourceLoadError


class SourceLoader(Protocol):
    def __call__(self) -> str: ...


@dataclass(slots=True)
class FileSourceLoader:
    path: Path
    encoding: str = "utf-8"

    def __call__(self) -> str:
        try:
            return self.path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as exc:
            raise SourceLoadError(f"cannot read {self.path.name}: {exc}") from exc


@dataclass(frozen=True, slots=True)
class StaticSourceLoader:
    text: str

    def __call__(self) -> str:
        return self.text


def default_source_loader() -> FileSourceLoader:
    return FileSourceLoader(config.source_path())
