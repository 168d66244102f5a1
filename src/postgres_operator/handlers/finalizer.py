"""Finalizer protocol gating the removal of a Postgres resource."""

from __future__ import annotations

import copy
from typing import Any

from .. import metrics
from ..builders import child_name, controlled_by, controller_reference
from ..constants import FINALIZER, KIND_POSTGRES, KIND_SERVICE, KIND_STATEFULSET
from ..models import CleanupResult
from ..services.store import ObjectStore
from ..utils.errors import NotFoundError
from ..utils.events import emit_child_deleted, emit_finalizer_added, emit_ownership_conflict
from .base import BaseHandler

# Deleted in this order; the workload must be gone before the endpoint goes
CLEANUP_ORDER = (KIND_STATEFULSET, KIND_SERVICE)


def has_marker(resource: dict[str, Any]) -> bool:
    """Check whether the cleanup finalizer is present."""
    return FINALIZER in (resource.get("metadata", {}).get("finalizers") or [])


def with_marker(resource: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of the resource with the cleanup finalizer appended."""
    updated = copy.deepcopy(resource)
    finalizers = list(updated["metadata"].get("finalizers") or [])
    if FINALIZER not in finalizers:
        finalizers.append(FINALIZER)
    updated["metadata"]["finalizers"] = finalizers
    return updated


def without_marker(resource: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of the resource with the cleanup finalizer removed."""
    updated = copy.deepcopy(resource)
    finalizers = [f for f in updated["metadata"].get("finalizers") or [] if f != FINALIZER]
    updated["metadata"]["finalizers"] = finalizers
    return updated


class FinalizerManager(BaseHandler):
    """Attaches the cleanup marker and performs ordered child deletion."""

    def __init__(self, store: ObjectStore):
        super().__init__(KIND_POSTGRES)
        self.store = store

    def attach(self, resource: dict[str, Any]) -> dict[str, Any]:
        """Persist the cleanup finalizer on the resource."""
        updated = self.store.replace(with_marker(resource))
        self.log_info(resource["metadata"], "Attached cleanup finalizer", reason="FinalizerAdded")
        emit_finalizer_added(resource)
        return updated

    def release(self, resource: dict[str, Any]) -> dict[str, Any]:
        """Remove the cleanup finalizer so the API server can drop the resource."""
        updated = self.store.replace(without_marker(resource))
        self.log_info(resource["metadata"], "Released cleanup finalizer", event="deletion", reason="FinalizerRemoved")
        return updated

    def cleanup(self, resource: dict[str, Any]) -> CleanupResult:
        """Delete owned children in order, one step per pass.

        A child that still exists after its delete request keeps the result
        pending; the caller requeues instead of sleeping so the next pass can
        confirm the deletion went through.

        Args:
            resource: Postgres resource body, being deleted

        Returns:
            CleanupResult, complete once no child is left to wait on
        """
        meta = resource["metadata"]
        namespace = meta["namespace"]

        for kind in CLEANUP_ORDER:
            name = child_name(kind, meta["name"])
            try:
                child = self.store.get(kind, namespace, name)
            except NotFoundError:
                continue

            if not controlled_by(child, resource):
                self._skip_foreign(resource, kind, child)
                continue

            if not (child.get("metadata") or {}).get("deletionTimestamp"):
                self._delete_child(resource, kind, name)

            # Terminating is enough for the last child
            if kind != CLEANUP_ORDER[-1]:
                return CleanupResult(complete=False, waiting_on=f"{kind}/{name}")

        return CleanupResult(complete=True)

    def _delete_child(self, resource: dict[str, Any], kind: str, name: str) -> None:
        meta = resource["metadata"]
        try:
            self.store.delete(kind, meta["namespace"], name)
        except NotFoundError:
            metrics.child_operations_total.labels(kind=kind, operation="delete", result="absent").inc()
            return
        except Exception:
            metrics.child_operations_total.labels(kind=kind, operation="delete", result="failed").inc()
            raise

        metrics.child_operations_total.labels(kind=kind, operation="delete", result="success").inc()
        self.log_info(meta, f"Deleted {kind} {name}", event="deletion", reason="ChildDeleted", child_kind=kind, child_name=name)
        emit_child_deleted(resource, kind, name)

    def _skip_foreign(self, resource: dict[str, Any], kind: str, child: dict[str, Any]) -> None:
        # Left in place; release proceeds without it
        meta = resource["metadata"]
        name = child["metadata"]["name"]
        ref = controller_reference(child)
        metrics.child_operations_total.labels(kind=kind, operation="delete", result="foreign").inc()
        self.log_warning(
            meta,
            f"Not deleting {kind} {name}: it is not owned by this Postgres",
            event="deletion",
            reason="OwnershipConflict",
            child_kind=kind,
            child_name=name,
            child_owner=f"{ref.get('kind')}/{ref.get('name')}" if ref else None,
        )
        emit_ownership_conflict(resource, kind, name)
