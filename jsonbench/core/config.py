from __future__ import annotations

import os
from pathlib import Path

DEFAULT_REPLICATION_FACTOR = 30
DEFAULT_CONCURRENCY_WIDTH = 1

_TRUTHY = {"1", "true", "yes", "on"}


def _int_env(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def source_path() -> Path:
    env_path = os.getenv("JSONBENCH_SOURCE_PATH")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return Path(__file__).resolve().parents[2] / "data" / "weather.json"


def available_parallelism() -> int:
    """Upper bound for a caller-chosen pool width."""

    override = _int_env("JSONBENCH_MAX_PARALLELISM")
    if override is not None:
        return max(1, override)
    return os.cpu_count() or 1


def pool_capacity() -> int | None:
    capacity = _int_env("JSONBENCH_POOL_CAPACITY")
    if capacity is None or capacity <= 0:
        return None
    return capacity


def reuse_pools() -> bool:
    raw = os.getenv("JSONBENCH_REUSE_POOLS")
    if raw is None:
        return True
    return raw.strip().lower() in _TRUTHY


def default_replication_factor() -> int:
    value = _int_env("JSONBENCH_DEFAULT_REPLICATION")
    return max(1, value) if value is not None else DEFAULT_REPLICATION_FACTOR


def log_level() -> str:
    return (os.getenv("JSONBENCH_LOG_LEVEL") or "INFO").upper()


def cors_origins() -> list[str]:
    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    if not origins:
        origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
    return origins
