"""Constants for the Postgres Operator."""

# API Group
API_GROUP = "postgres.snappcloud.io"
API_VERSION = "v1alpha1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Resource Kinds
KIND_POSTGRES = "Postgres"
KIND_STATEFULSET = "StatefulSet"
KIND_SERVICE = "Service"
KIND_SECRET = "Secret"

PLURAL_POSTGRES = "postgreses"

# Labels
LABEL_MANAGED_BY = "app.kubernetes.io/managed-by"
LABEL_NAME = "app.kubernetes.io/name"
LABEL_INSTANCE = f"{API_GROUP}/instance"

# Finalizers
FINALIZER = f"{API_GROUP}/finalizer"

# Field Manager
FIELD_MANAGER = "postgres-operator"

# Workload layout
CONTAINER_NAME = "postgresql"
POSTGRES_PORT = 5432
POSTGRES_PORT_NAME = "postgres"
DATA_VOLUME_NAME = "data"
DATA_MOUNT_PATH = "/var/lib/postgresql/data"
PGDATA_PATH = f"{DATA_MOUNT_PATH}/pgdata"
SERVICE_NAME_SUFFIX = "postgres"
WORKLOAD_REPLICAS = 1
SECRET_KEY_USERNAME = "username"
SECRET_KEY_PASSWORD = "password"

# Condition Types
COND_READY = "Ready"

# Event Reasons
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_FINALIZER_ADDED = "FinalizerAdded"
EVENT_REASON_CHILD_CREATED = "ChildCreated"
EVENT_REASON_CHILD_UPDATED = "ChildUpdated"
EVENT_REASON_CHILD_DELETED = "ChildDeleted"
EVENT_REASON_READY = "Ready"
EVENT_REASON_NOT_READY = "NotReady"
EVENT_REASON_OWNERSHIP_CONFLICT = "OwnershipConflict"
