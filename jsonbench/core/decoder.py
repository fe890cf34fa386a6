"""Decode a JSON payload into :class:`WeatherRecord` values.

``decode`` only reads its argument and builds a fresh list on every call, so
any number of workers may call it on the same string at once.
"""
from __future__ import annotations

from dataclasses import dataclass

from pydantic import TypeAdapter, ValidationError

from jsonbench.core.errors import DecodeError
from jsonbench.core.schema import WeatherRecord
from jsonbench.domain import ErrorInfo

_RECORDS = TypeAdapter(list[WeatherRecord])


def _describe(exc: ValidationError) -> str:
    first = exc.errors(include_url=False)[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    if first.get("type") == "json_invalid":
        return f"malformed JSON: {first.get('msg')}"
    if location:
        return f"invalid record at {location}: {first.get('msg')}"
    return str(first.get("msg"))


def decode(text: str) -> list[WeatherRecord]:
    try:
        return _RECORDS.validate_json(text)
    except ValidationError as exc:
        raise DecodeError(_describe(exc)) from exc


@dataclass(frozen=True, slots=True)
class UnitOutcome:
    """Result of one work unit: either decoded records or the decode error."""

    index: int
    records: tuple[WeatherRecord, ...] = ()
    error: ErrorInfo | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def item_count(self) -> int:
        return len(self.records)


def decode_unit(index: int, text: str) -> UnitOutcome:
    try:
        records = decode(text)
    except DecodeError as exc:
        return UnitOutcome(index=index, error=ErrorInfo.from_exception(exc))
    return UnitOutcome(index=index, records=tuple(records))
