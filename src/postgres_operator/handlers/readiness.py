"""Readiness evaluation of the Postgres workload."""

from __future__ import annotations

from typing import Any

from ..constants import WORKLOAD_REPLICAS


def is_ready(workload: dict[str, Any]) -> bool:
    """Return True when every desired replica of the workload is ready."""
    desired = (workload.get("spec") or {}).get("replicas")
    if desired is None:
        desired = WORKLOAD_REPLICAS
    ready = (workload.get("status") or {}).get("readyReplicas") or 0
    return ready == desired
