"""Naming, labels and ownership shared by the child object builders."""

from __future__ import annotations

from typing import Any

from ..constants import (
    API_GROUP_VERSION,
    FIELD_MANAGER,
    KIND_POSTGRES,
    KIND_SERVICE,
    KIND_STATEFULSET,
    LABEL_INSTANCE,
    LABEL_MANAGED_BY,
    LABEL_NAME,
    SERVICE_NAME_SUFFIX,
)
from ..utils.errors import InvalidSpecError


def child_name(kind: str, resource_name: str) -> str:
    """Return the deterministic name of a child object.

    The workload shares the resource name; the service is suffixed so that
    every Postgres in a namespace gets its own endpoint.
    """
    if kind == KIND_STATEFULSET:
        return resource_name
    if kind == KIND_SERVICE:
        return f"{resource_name}-{SERVICE_NAME_SUFFIX}"
    raise ValueError(f"Unsupported child kind: {kind}")


def selector_labels(resource_name: str) -> dict[str, str]:
    """Labels that select the pods of one Postgres instance."""
    return {LABEL_INSTANCE: resource_name}


def object_labels(resource_name: str) -> dict[str, str]:
    """Labels stamped on every child object."""
    labels = selector_labels(resource_name)
    labels[LABEL_NAME] = "postgres"
    labels[LABEL_MANAGED_BY] = FIELD_MANAGER
    return labels


def owner_reference(resource: dict[str, Any]) -> dict[str, Any]:
    """Controller owner reference pointing back at the Postgres resource."""
    meta = resource["metadata"]
    return {
        "apiVersion": API_GROUP_VERSION,
        "kind": KIND_POSTGRES,
        "name": meta["name"],
        "uid": meta["uid"],
        "controller": True,
        "blockOwnerDeletion": True,
    }


def controller_reference(obj: dict[str, Any]) -> dict[str, Any] | None:
    """The ownerReference marked as controller, if any."""
    for ref in (obj.get("metadata") or {}).get("ownerReferences") or []:
        if ref.get("controller"):
            return ref
    return None


def controlled_by(obj: dict[str, Any], resource: dict[str, Any]) -> bool:
    """Check whether a live child belongs to the given Postgres resource.

    An object without a controller reference still counts when it carries
    the resource's managed-by and instance labels, so a stripped reference
    can be restored.
    """
    meta = resource["metadata"]
    ref = controller_reference(obj)
    if ref is not None:
        return ref.get("uid") == meta.get("uid")
    labels = (obj.get("metadata") or {}).get("labels") or {}
    return labels.get(LABEL_MANAGED_BY) == FIELD_MANAGER and labels.get(LABEL_INSTANCE) == meta["name"]


def require_field(spec: dict[str, Any], path: str) -> str:
    """Read a dotted path from a spec, raising InvalidSpecError if unset."""
    value: Any = spec
    for part in path.split("."):
        value = value.get(part) if isinstance(value, dict) else None
        if value is None:
            break
    if value is None or value == "":
        raise InvalidSpecError(f"spec.{path} is required")
    return str(value)
