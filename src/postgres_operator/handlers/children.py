"""Get-or-create and drift correction of the objects owned by a Postgres."""

from __future__ import annotations

import copy
from typing import Any

from .. import metrics
from ..builders import (
    build_service,
    build_statefulset,
    child_name,
    controlled_by,
    controller_reference,
    owner_reference,
)
from ..constants import CONTAINER_NAME, KIND_POSTGRES, KIND_SERVICE, KIND_STATEFULSET, WORKLOAD_REPLICAS
from ..models import ChildResult
from ..services.store import ObjectStore
from ..utils.errors import AlreadyExistsError, ChildOwnershipError, NotFoundError
from ..utils.events import emit_child_created, emit_child_updated
from .base import BaseHandler


def _find_container(pod_spec: dict[str, Any]) -> dict[str, Any] | None:
    for container in pod_spec.get("containers") or []:
        if container.get("name") == CONTAINER_NAME:
            return container
    return None


def _pod_spec(workload: dict[str, Any]) -> dict[str, Any]:
    return ((workload.get("spec") or {}).get("template") or {}).get("spec") or {}


def _normalize_env(entry: dict[str, Any]) -> tuple[Any, ...]:
    secret_ref = (entry.get("valueFrom") or {}).get("secretKeyRef")
    if secret_ref:
        return (entry.get("name"), "secret", secret_ref.get("name"), secret_ref.get("key"))
    return (entry.get("name"), "value", entry.get("value") or "")


def _normalize_container_port(port: dict[str, Any]) -> tuple[Any, ...]:
    return (port.get("name"), port.get("containerPort"), port.get("protocol") or "TCP")


def _normalize_service_port(port: dict[str, Any]) -> tuple[Any, ...]:
    return (
        port.get("name"),
        port.get("port"),
        port.get("protocol") or "TCP",
        port.get("targetPort") or port.get("port"),
    )


def _owned_labels(obj: dict[str, Any], desired: dict[str, Any]) -> dict[str, Any]:
    live_labels = (obj.get("metadata") or {}).get("labels") or {}
    return {key: live_labels.get(key) for key in (desired.get("metadata") or {}).get("labels") or {}}


def _owner(obj: dict[str, Any]) -> tuple[Any, ...] | None:
    ref = controller_reference(obj)
    if ref is None:
        return None
    return (ref.get("apiVersion"), ref.get("kind"), ref.get("name"), ref.get("uid"))


def workload_fields(workload: dict[str, Any], desired: dict[str, Any]) -> dict[str, Any]:
    """Project the StatefulSet fields this controller owns into a comparable form."""
    spec = workload.get("spec") or {}
    container = _find_container(_pod_spec(workload)) or {}
    replicas = spec.get("replicas")
    return {
        "labels": _owned_labels(workload, desired),
        "owner": _owner(workload),
        "replicas": WORKLOAD_REPLICAS if replicas is None else replicas,
        "image": container.get("image"),
        "env": [_normalize_env(e) for e in container.get("env") or []],
        "ports": sorted(_normalize_container_port(p) for p in container.get("ports") or []),
    }


def service_fields(service: dict[str, Any], desired: dict[str, Any]) -> dict[str, Any]:
    """Project the Service fields this controller owns into a comparable form."""
    spec = service.get("spec") or {}
    return {
        "labels": _owned_labels(service, desired),
        "owner": _owner(service),
        "type": spec.get("type") or "ClusterIP",
        "selector": dict(spec.get("selector") or {}),
        "ports": sorted(_normalize_service_port(p) for p in spec.get("ports") or []),
    }


def _merge_labels(target: dict[str, Any], desired: dict[str, Any]) -> None:
    meta = target.setdefault("metadata", {})
    labels = dict(meta.get("labels") or {})
    labels.update(desired["metadata"]["labels"])
    meta["labels"] = labels


def _set_controller(target: dict[str, Any], desired: dict[str, Any]) -> None:
    # Other actors' non-controller references are kept
    ref = controller_reference(desired)
    if ref is None:
        return
    meta = target.setdefault("metadata", {})
    refs = [r for r in meta.get("ownerReferences") or [] if not r.get("controller")]
    refs.append(copy.deepcopy(ref))
    meta["ownerReferences"] = refs


def apply_workload_fields(live: dict[str, Any], desired: dict[str, Any]) -> dict[str, Any]:
    """Copy the owned StatefulSet fields from desired onto a copy of live."""
    updated = copy.deepcopy(live)
    _merge_labels(updated, desired)
    _set_controller(updated, desired)
    spec = updated.setdefault("spec", {})
    spec["replicas"] = desired["spec"]["replicas"]

    desired_container = _find_container(_pod_spec(desired))
    pod_spec = spec.setdefault("template", {}).setdefault("spec", {})
    container = _find_container(pod_spec)
    if container is None:
        pod_spec.setdefault("containers", []).append(copy.deepcopy(desired_container))
    else:
        container["image"] = desired_container["image"]
        container["env"] = copy.deepcopy(desired_container["env"])
        container["ports"] = copy.deepcopy(desired_container["ports"])
    return updated


def apply_service_fields(live: dict[str, Any], desired: dict[str, Any]) -> dict[str, Any]:
    """Copy the owned Service fields from desired onto a copy of live."""
    updated = copy.deepcopy(live)
    _merge_labels(updated, desired)
    _set_controller(updated, desired)
    spec = updated.setdefault("spec", {})
    spec["type"] = desired["spec"]["type"]
    spec["selector"] = dict(desired["spec"]["selector"])
    spec["ports"] = copy.deepcopy(desired["spec"]["ports"])
    return updated


class ChildReconciler(BaseHandler):
    """Ensures the StatefulSet and Service of a Postgres exist and match its spec."""

    def __init__(self, store: ObjectStore, image: str = "postgres"):
        super().__init__(KIND_POSTGRES)
        self.store = store
        self.image = image

    def desired(self, resource: dict[str, Any], kind: str, secret_ref: str) -> dict[str, Any]:
        """Render the desired child object of the given kind, controller reference included."""
        if kind == KIND_STATEFULSET:
            desired = build_statefulset(resource, secret_ref, image=self.image)
        elif kind == KIND_SERVICE:
            desired = build_service(resource)
        else:
            raise ValueError(f"Unsupported child kind: {kind}")
        desired["metadata"]["ownerReferences"] = [owner_reference(resource)]
        return desired

    def ensure(self, resource: dict[str, Any], kind: str, secret_ref: str) -> ChildResult:
        """Create the child if missing, otherwise bring its owned fields back in line.

        Args:
            resource: Postgres resource body
            kind: Child kind (StatefulSet or Service)
            secret_ref: Name of the credential secret

        Returns:
            ChildResult with the live object and whether it was created or updated
        """
        meta = resource["metadata"]
        namespace = meta["namespace"]
        name = child_name(kind, meta["name"])
        desired = self.desired(resource, kind, secret_ref)

        try:
            live = self.store.get(kind, namespace, name)
        except NotFoundError:
            return self._create(resource, kind, desired)

        return self._correct_drift(resource, kind, live, desired)

    def _create(self, resource: dict[str, Any], kind: str, desired: dict[str, Any]) -> ChildResult:
        meta = resource["metadata"]
        name = desired["metadata"]["name"]
        try:
            created = self.store.create(copy.deepcopy(desired))
        except AlreadyExistsError:
            # A redundant delivery raced us to it; treat as found
            self.log_info(meta, f"{kind} {name} already exists", reason="AlreadyExists", child_kind=kind, child_name=name)
            metrics.child_operations_total.labels(kind=kind, operation="create", result="exists").inc()
            live = self.store.get(kind, meta["namespace"], name)
            return self._correct_drift(resource, kind, live, desired)
        except Exception:
            metrics.child_operations_total.labels(kind=kind, operation="create", result="failed").inc()
            raise

        metrics.child_operations_total.labels(kind=kind, operation="create", result="success").inc()
        self.log_info(meta, f"Created {kind} {name}", reason="ChildCreated", child_kind=kind, child_name=name)
        emit_child_created(resource, kind, name)
        return ChildResult(obj=created, created=True)

    def _correct_drift(
        self,
        resource: dict[str, Any],
        kind: str,
        live: dict[str, Any],
        desired: dict[str, Any],
    ) -> ChildResult:
        live_meta = live.get("metadata") or {}
        if not controlled_by(live, resource):
            self._reject_foreign(resource, kind, live)

        if live_meta.get("deletionTimestamp"):
            # Recreated once the deletion completes
            return ChildResult(obj=live)

        if kind == KIND_STATEFULSET:
            in_sync = workload_fields(live, desired) == workload_fields(desired, desired)
        else:
            in_sync = service_fields(live, desired) == service_fields(desired, desired)
        if in_sync:
            return ChildResult(obj=live)

        meta = resource["metadata"]
        name = live_meta.get("name", desired["metadata"]["name"])
        metrics.drift_detected_total.labels(kind=kind).inc()
        self.log_info(meta, f"Drift detected on {kind} {name}", reason="DriftDetected", child_kind=kind, child_name=name)

        if kind == KIND_STATEFULSET:
            body = apply_workload_fields(live, desired)
        else:
            body = apply_service_fields(live, desired)

        try:
            updated = self.store.replace(body)
        except Exception:
            metrics.child_operations_total.labels(kind=kind, operation="update", result="failed").inc()
            raise

        metrics.child_operations_total.labels(kind=kind, operation="update", result="success").inc()
        emit_child_updated(resource, kind, name)
        return ChildResult(obj=updated, updated=True)

    def _reject_foreign(self, resource: dict[str, Any], kind: str, live: dict[str, Any]) -> None:
        meta = resource["metadata"]
        live_meta = live.get("metadata") or {}
        ref = controller_reference(live)
        owner = f"{ref.get('kind')}/{ref.get('name')}" if ref else None
        metrics.child_operations_total.labels(kind=kind, operation="adopt", result="foreign").inc()
        self.log_warning(
            meta,
            f"{kind} {live_meta.get('name')} is not owned by this Postgres",
            reason="OwnershipConflict",
            child_kind=kind,
            child_name=live_meta.get("name"),
            child_owner=owner,
        )
        raise ChildOwnershipError(kind, live_meta.get("namespace", meta["namespace"]), live_meta.get("name", ""), owner)
