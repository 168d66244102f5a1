"""Prometheus metrics for the Postgres Operator."""

from prometheus_client import Counter, Gauge, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "postgres_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "postgres_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

error_total = Counter(
    "postgres_operator_error_total",
    "Total number of reconciliation errors",
    ["kind", "error_type"],
)

resource_status_total = Counter(
    "postgres_operator_resource_status_total",
    "Readiness evaluations by outcome",
    ["kind", "status"],
)

# Child object metrics
child_operations_total = Counter(
    "postgres_operator_child_operations_total",
    "Total number of operations on owned child objects",
    ["kind", "operation", "result"],
)

drift_detected_total = Counter(
    "postgres_operator_drift_detected_total",
    "Total number of configuration drift detections",
    ["kind"],
)

# API call metrics
api_call_total = Counter(
    "postgres_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "postgres_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

rate_limit_hits_total = Counter(
    "postgres_operator_rate_limit_hits_total",
    "Total number of rate limit hits",
    ["api_type"],
)

# Work queue metrics
queue_depth = Gauge(
    "postgres_operator_queue_depth",
    "Number of keys waiting in the reconcile queue",
)

requeue_total = Counter(
    "postgres_operator_requeue_total",
    "Total number of requeues by cause",
    ["reason"],
)
