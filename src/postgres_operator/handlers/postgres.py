"""Handler for Postgres CRD."""

from __future__ import annotations

import copy
import threading
from typing import Any

import kopf

from .. import metrics
from ..config import OperatorConfig
from ..constants import (
    API_GROUP_VERSION,
    FIELD_MANAGER,
    KIND_POSTGRES,
    KIND_SECRET,
    KIND_SERVICE,
    KIND_STATEFULSET,
    LABEL_MANAGED_BY,
)
from ..controller.manager import get_manager
from ..models import ObjectKey, ReconcileResult
from ..services.store import ObjectStore
from ..tracing import add_span_attribute, trace_span
from ..utils.conditions import set_ready_condition
from ..utils.errors import DependencyNotFoundError, InvalidSpecError, NotFoundError, ReconcileAborted
from ..utils.events import emit_ready_changed
from .base import BaseHandler
from .children import ChildReconciler
from .finalizer import FinalizerManager, has_marker
from .readiness import is_ready

# Children are ensured one per pass, in this order
CHILD_KINDS = (KIND_STATEFULSET, KIND_SERVICE)


def _checkpoint(stopped: threading.Event | None) -> None:
    if stopped is not None and stopped.is_set():
        raise ReconcileAborted("shutdown requested")


class PostgresHandler(BaseHandler):
    """Handler for Postgres resources."""

    def __init__(self, store: ObjectStore, config: OperatorConfig | None = None):
        """Initialize postgres handler.

        Args:
            store: Object store used for every read and write
            config: Operator settings (requeue delays, image)
        """
        super().__init__(KIND_POSTGRES)
        self.store = store
        self.config = config if config is not None else OperatorConfig()
        self.children = ChildReconciler(store, image=self.config.postgres_image)
        self.finalizers = FinalizerManager(store)

    def reconcile(self, key: ObjectKey, stopped: threading.Event | None = None) -> ReconcileResult:
        """Run one reconcile pass for a Postgres resource.

        Safe to call repeatedly: all state is re-read from the store, so a
        pass at the fixed point performs no writes.

        Args:
            key: Namespace and name of the resource
            stopped: Cancellation signal checked between steps

        Returns:
            ReconcileResult telling the caller whether to requeue

        Raises:
            DependencyNotFoundError: The credential secret does not exist
            ConflictError: A write raced another writer
            StoreError: Any other API failure
            ReconcileAborted: stopped was set mid-pass
        """
        with trace_span(
            "reconcile_postgres",
            kind=KIND_POSTGRES,
            attributes={"postgres.namespace": key.namespace, "postgres.name": key.name},
        ):
            try:
                resource = self.store.get(KIND_POSTGRES, key.namespace, key.name)
            except NotFoundError:
                self.log_info(
                    {"name": key.name, "namespace": key.namespace},
                    "Postgres not found, assuming it was deleted",
                    reason="NotFound",
                )
                return ReconcileResult.done()

            result = self.reconcile_with_metrics(resource, lambda: self._reconcile(resource, stopped))
            add_span_attribute("reconcile.outcome", result.reason)
            return result

    def _reconcile(self, resource: dict[str, Any], stopped: threading.Event | None) -> ReconcileResult:
        meta = resource["metadata"]

        if meta.get("deletionTimestamp"):
            return self._finalize(resource, stopped)

        if not has_marker(resource):
            # The update triggers the next pass
            self.finalizers.attach(resource)
            return ReconcileResult.done()

        _checkpoint(stopped)
        secret_ref = self._load_credential(resource)

        workload: dict[str, Any] = {}
        for kind in CHILD_KINDS:
            _checkpoint(stopped)
            child = self.children.ensure(resource, kind, secret_ref)
            if child.changed:
                action = "created" if child.created else "updated"
                return ReconcileResult.requeue(
                    self.config.create_requeue_seconds, f"{kind.lower()}_{action}"
                )
            if kind == KIND_STATEFULSET:
                workload = child.obj

        _checkpoint(stopped)
        return self._update_readiness(resource, workload)

    def _finalize(self, resource: dict[str, Any], stopped: threading.Event | None) -> ReconcileResult:
        meta = resource["metadata"]
        if not has_marker(resource):
            return ReconcileResult.done()

        cleanup = self.finalizers.cleanup(resource)
        if not cleanup.complete:
            self.log_info(
                meta,
                f"Waiting for {cleanup.waiting_on} to terminate",
                event="deletion",
                reason="CleanupPending",
            )
            return ReconcileResult.requeue(self.config.cleanup_requeue_seconds, "cleanup_pending")

        _checkpoint(stopped)
        self.finalizers.release(resource)
        return ReconcileResult.done()

    def _load_credential(self, resource: dict[str, Any]) -> str:
        """Check the referenced credential secret exists and return its name."""
        meta = resource["metadata"]
        secret_ref = ((resource.get("spec") or {}).get("auth") or {}).get("secretRef")
        if not secret_ref:
            raise InvalidSpecError("spec.auth.secretRef is required")

        try:
            self.store.get(KIND_SECRET, meta["namespace"], secret_ref)
        except NotFoundError as e:
            self.log_warning(
                meta,
                f"Referenced secret {secret_ref} not found",
                reason="CredentialMissing",
                secret_ref=secret_ref,
            )
            raise DependencyNotFoundError(KIND_SECRET, meta["namespace"], secret_ref) from e
        return secret_ref

    def _update_readiness(self, resource: dict[str, Any], workload: dict[str, Any]) -> ReconcileResult:
        meta = resource["metadata"]
        ready = is_ready(workload)
        current = bool((resource.get("status") or {}).get("ready", False))
        metrics.resource_status_total.labels(kind=self.kind, status="ready" if ready else "not_ready").inc()

        if ready != current:
            self._write_ready(resource, ready)

        if not ready:
            self.log_info(meta, "StatefulSet is not ready yet", reason="NotReady")
            return ReconcileResult.requeue(self.config.ready_poll_seconds, "waiting_for_ready")
        return ReconcileResult.done()

    def _write_ready(self, resource: dict[str, Any], ready: bool) -> None:
        meta = resource["metadata"]
        generation = meta.get("generation")
        body = copy.deepcopy(resource)
        status = dict(body.get("status") or {})
        message = "All replicas are ready" if ready else "Waiting for replicas to become ready"
        status["ready"] = ready
        status["conditions"] = set_ready_condition(status.get("conditions") or [], ready, message, generation)
        if generation is not None:
            status["observedGeneration"] = generation
        body["status"] = status

        self.store.replace_status(body)
        self.log_info(meta, f"Ready changed to {ready}", reason="ReadyChanged", ready=ready)
        emit_ready_changed(resource, ready)


def owner_key(meta: dict[str, Any], namespace: str | None) -> ObjectKey | None:
    """Key of the Postgres that controls a child object, if any."""
    if not namespace:
        return None
    for ref in meta.get("ownerReferences") or []:
        if (
            ref.get("controller")
            and ref.get("kind") == KIND_POSTGRES
            and ref.get("apiVersion") == API_GROUP_VERSION
        ):
            return ObjectKey(namespace, ref["name"])
    return None


@kopf.on.event(API_GROUP_VERSION, KIND_POSTGRES)
def handle_postgres_event(
    name: str,
    namespace: str,
    **kwargs: Any,
) -> None:
    """Queue a reconcile for every change of a Postgres resource."""
    get_manager().enqueue(ObjectKey(namespace, name))


@kopf.on.event("apps", "v1", "statefulsets", labels={LABEL_MANAGED_BY: FIELD_MANAGER})
def handle_statefulset_event(
    meta: dict[str, Any],
    namespace: str,
    **kwargs: Any,
) -> None:
    """Queue a reconcile of the owning Postgres when its StatefulSet changes."""
    key = owner_key(meta, namespace)
    if key is not None:
        get_manager().enqueue(key)


@kopf.on.event("v1", "services", labels={LABEL_MANAGED_BY: FIELD_MANAGER})
def handle_service_event(
    meta: dict[str, Any],
    namespace: str,
    **kwargs: Any,
) -> None:
    """Queue a reconcile of the owning Postgres when its Service changes."""
    key = owner_key(meta, namespace)
    if key is not None:
        get_manager().enqueue(key)
