from __future__ import annotations

import asyncio

from fastapi import APIRouter, Body, HTTPException

from jsonbench.application import get_job_service
from jsonbench.core import config
from jsonbench.core.errors import JobAlreadyRunningError
from jsonbench.domain import JobParameters, Strategy

router = APIRouter(prefix="/jobs", tags=["jobs"])


def _int_field(payload: dict, key: str, default: int) -> int:
    value = payload.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise HTTPException(status_code=400, detail=f"{key} must be an integer")
    return value


def _parse_parameters(payload: dict) -> JobParameters:
    raw_strategy = payload.get("strategy") or Strategy.BOUNDED_POOL.value
    try:
        strategy = Strategy(str(raw_strategy))
    except ValueError:
        allowed = ", ".join(item.value for item in Strategy)
        raise HTTPException(status_code=400, detail=f"strategy must be one of: {allowed}") from None

    return JobParameters(
        concurrency_width=_int_field(payload, "concurrency_width", config.DEFAULT_CONCURRENCY_WIDTH),
        replication_factor=_int_field(payload, "replication_factor", config.default_replication_factor()),
        strategy=strategy,
    )


@router.get("/options")
async def get_job_options() -> dict:
    return get_job_service().options()


@router.post("")
async def run_job(payload: dict | None = Body(default=None)) -> dict:
    """Run one decode job with the given parameters and return its record."""
    params = _parse_parameters(payload or {})
    service = get_job_service()
    try:
        record = await asyncio.to_thread(service.run, params)
    except JobAlreadyRunningError as exc:
        raise HTTPException(status_code=409, detail=exc.message) from exc
    return record.to_dict()


@router.get("")
async def list_jobs() -> dict:
    return {"items": get_job_service().list_jobs()}


@router.get("/status")
async def get_job_status() -> dict:
    return get_job_service().status()


@router.get("/{job_id}")
async def get_job(job_id: str) -> dict:
    record = get_job_service().get_job(job_id)
    if record is None:
        raise HTTPException(status_code=404, detail="job not found")
    return record
