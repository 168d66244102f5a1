"""Builder for the Postgres Service."""

from __future__ import annotations

from typing import Any

from ..constants import KIND_SERVICE, POSTGRES_PORT, POSTGRES_PORT_NAME
from .common import child_name, object_labels, selector_labels


def build_service(resource: dict[str, Any]) -> dict[str, Any]:
    """Create the ClusterIP Service body exposing a Postgres instance."""
    meta = resource["metadata"]
    name = meta["name"]

    return {
        "apiVersion": "v1",
        "kind": KIND_SERVICE,
        "metadata": {
            "name": child_name(KIND_SERVICE, name),
            "namespace": meta["namespace"],
            "labels": object_labels(name),
        },
        "spec": {
            "type": "ClusterIP",
            "selector": selector_labels(name),
            "ports": [
                {
                    "name": POSTGRES_PORT_NAME,
                    "port": POSTGRES_PORT,
                    "protocol": "TCP",
                }
            ],
        },
    }
