"""Value types passed between the reconcile components."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NamedTuple


class ObjectKey(NamedTuple):
    """Namespace/name key of a Postgres resource."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one reconcile pass.

    requeue_after is None when the resource reached a fixed point and only an
    external change should trigger the next pass.
    """

    requeue_after: float | None = None
    reason: str = "done"

    @classmethod
    def done(cls) -> "ReconcileResult":
        return cls()

    @classmethod
    def requeue(cls, delay: float, reason: str) -> "ReconcileResult":
        return cls(requeue_after=delay, reason=reason)


@dataclass
class ChildResult:
    """Outcome of ensuring one child object."""

    obj: dict[str, Any]
    created: bool = False
    updated: bool = False

    @property
    def changed(self) -> bool:
        return self.created or self.updated


@dataclass(frozen=True)
class CleanupResult:
    """Outcome of one finalizer cleanup pass."""

    complete: bool
    waiting_on: str | None = None
