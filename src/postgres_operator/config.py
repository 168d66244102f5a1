"""Runtime configuration for the Postgres Operator."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping


def _env_float(env: Mapping[str, str], name: str, default: float, minimum: float = 0.0) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_int(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


@dataclass(frozen=True)
class OperatorConfig:
    """Operator settings, read once at startup."""

    metrics_port: int = 8080
    worker_count: int = 4

    # Requeue delays in seconds
    create_requeue_seconds: float = 1.0
    ready_poll_seconds: float = 15.0
    cleanup_requeue_seconds: float = 10.0

    # Error backoff: base * 2**(failures - 1), capped, with +/- jitter
    backoff_base_seconds: float = 1.0
    backoff_max_seconds: float = 60.0
    backoff_jitter: float = 0.1

    k8s_rate_limit_per_second: float = 10.0
    postgres_image: str = "postgres"

    def __post_init__(self) -> None:
        if self.backoff_max_seconds < self.backoff_base_seconds:
            raise ValueError("BACKOFF_MAX_SECONDS must be >= BACKOFF_BASE_SECONDS")
        if not 0.0 <= self.backoff_jitter < 1.0:
            raise ValueError("BACKOFF_JITTER must be in [0, 1)")

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "OperatorConfig":
        """Build the configuration from environment variables."""
        if env is None:
            env = os.environ
        return cls(
            metrics_port=_env_int(env, "METRICS_PORT", 8080, minimum=1),
            worker_count=_env_int(env, "WORKER_COUNT", 4, minimum=1),
            create_requeue_seconds=_env_float(env, "CREATE_REQUEUE_SECONDS", 1.0),
            ready_poll_seconds=_env_float(env, "READY_POLL_SECONDS", 15.0),
            cleanup_requeue_seconds=_env_float(env, "CLEANUP_REQUEUE_SECONDS", 10.0),
            backoff_base_seconds=_env_float(env, "BACKOFF_BASE_SECONDS", 1.0),
            backoff_max_seconds=_env_float(env, "BACKOFF_MAX_SECONDS", 60.0),
            backoff_jitter=_env_float(env, "BACKOFF_JITTER", 0.1),
            k8s_rate_limit_per_second=_env_float(env, "K8S_RATE_LIMIT_PER_SECOND", 10.0, minimum=0.1),
            postgres_image=env.get("POSTGRES_IMAGE") or "postgres",
        )
