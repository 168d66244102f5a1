"""Builder for the Postgres StatefulSet."""

from __future__ import annotations

from typing import Any

from ..constants import (
    CONTAINER_NAME,
    DATA_MOUNT_PATH,
    DATA_VOLUME_NAME,
    KIND_STATEFULSET,
    KIND_SERVICE,
    PGDATA_PATH,
    POSTGRES_PORT,
    POSTGRES_PORT_NAME,
    SECRET_KEY_PASSWORD,
    SECRET_KEY_USERNAME,
    WORKLOAD_REPLICAS,
)
from .common import child_name, object_labels, require_field, selector_labels

# Force password authentication for remote clients once the data directory exists
_PG_HBA_HOOK = (
    f"sed -i 's/trust/md5/g' {PGDATA_PATH}/pg_hba.conf && "
    f"echo 'host all all all md5' >> {PGDATA_PATH}/pg_hba.conf"
)


def _secret_env(env_name: str, secret_ref: str, key: str) -> dict[str, Any]:
    return {
        "name": env_name,
        "valueFrom": {"secretKeyRef": {"name": secret_ref, "key": key}},
    }


def build_statefulset(
    resource: dict[str, Any],
    secret_ref: str,
    image: str = "postgres",
) -> dict[str, Any]:
    """Create the StatefulSet body for a Postgres resource.

    Credentials are projected by reference so rotating the secret never
    requires recreating the workload.

    Args:
        resource: Postgres resource body
        secret_ref: Name of the credential secret
        image: Image repository, tagged with spec.version

    Returns:
        StatefulSet manifest as a dict
    """
    meta = resource["metadata"]
    spec = resource.get("spec", {})
    name = meta["name"]

    version = require_field(spec, "version")
    storage_size = require_field(spec, "persistence.size")
    database = require_field(spec, "auth.database")

    return {
        "apiVersion": "apps/v1",
        "kind": KIND_STATEFULSET,
        "metadata": {
            "name": child_name(KIND_STATEFULSET, name),
            "namespace": meta["namespace"],
            "labels": object_labels(name),
        },
        "spec": {
            "serviceName": child_name(KIND_SERVICE, name),
            "replicas": WORKLOAD_REPLICAS,
            "selector": {"matchLabels": selector_labels(name)},
            "template": {
                "metadata": {"labels": object_labels(name)},
                "spec": {
                    "containers": [
                        {
                            "name": CONTAINER_NAME,
                            "image": f"{image}:{version}",
                            "ports": [
                                {"containerPort": POSTGRES_PORT, "name": POSTGRES_PORT_NAME},
                            ],
                            "env": [
                                {"name": "POSTGRES_DB", "value": database},
                                _secret_env("POSTGRES_USER", secret_ref, SECRET_KEY_USERNAME),
                                _secret_env("POSTGRES_PASSWORD", secret_ref, SECRET_KEY_PASSWORD),
                                {"name": "PGDATA", "value": PGDATA_PATH},
                            ],
                            "volumeMounts": [
                                {"name": DATA_VOLUME_NAME, "mountPath": DATA_MOUNT_PATH},
                            ],
                            "lifecycle": {
                                "postStart": {
                                    "exec": {"command": ["/bin/sh", "-c", _PG_HBA_HOOK]},
                                },
                            },
                        }
                    ],
                },
            },
            "volumeClaimTemplates": [
                {
                    "metadata": {"name": DATA_VOLUME_NAME},
                    "spec": {
                        "accessModes": ["ReadWriteOnce"],
                        "resources": {"requests": {"storage": storage_size}},
                    },
                }
            ],
        },
    }
