"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_CHILD_CREATED,
    EVENT_REASON_CHILD_DELETED,
    EVENT_REASON_CHILD_UPDATED,
    EVENT_REASON_FINALIZER_ADDED,
    EVENT_REASON_NOT_READY,
    EVENT_REASON_OWNERSHIP_CONFLICT,
    EVENT_REASON_READY,
    EVENT_REASON_RECONCILE_FAILED,
)


def emit_event(
    body: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        body: Full resource body (apiVersion, kind and metadata are used)
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        body,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_failed(body: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(body, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_finalizer_added(body: dict[str, Any]) -> None:
    """Emit finalizer added event."""
    emit_event(body, EVENT_REASON_FINALIZER_ADDED, "Cleanup finalizer attached")


def emit_child_created(body: dict[str, Any], kind: str, name: str) -> None:
    """Emit child created event."""
    emit_event(body, EVENT_REASON_CHILD_CREATED, f"{kind} {name} created")


def emit_child_updated(body: dict[str, Any], kind: str, name: str) -> None:
    """Emit child updated event."""
    emit_event(body, EVENT_REASON_CHILD_UPDATED, f"{kind} {name} updated to match spec")


def emit_child_deleted(body: dict[str, Any], kind: str, name: str) -> None:
    """Emit child deleted event."""
    emit_event(body, EVENT_REASON_CHILD_DELETED, f"{kind} {name} deleted")


def emit_ready_changed(body: dict[str, Any], ready: bool) -> None:
    """Emit readiness transition event."""
    if ready:
        emit_event(body, EVENT_REASON_READY, "Postgres is ready")
    else:
        emit_event(body, EVENT_REASON_NOT_READY, "Postgres is not ready", type_="Warning")


def emit_ownership_conflict(body: dict[str, Any], kind: str, name: str) -> None:
    """Emit a warning that a child name is taken by a foreign object."""
    emit_event(
        body,
        EVENT_REASON_OWNERSHIP_CONFLICT,
        f"{kind} {name} exists but is not owned by this Postgres; leaving it untouched",
        type_="Warning",
    )
