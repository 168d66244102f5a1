"""Utility functions for the Postgres Operator."""

from .conditions import get_condition, set_ready_condition, update_condition
from .context import get_context_dict, get_correlation_id, new_correlation_id, with_correlation_id
from .events import emit_event
from .rate_limit import configure_k8s_rate_limit, is_rate_limit_error, rate_limit_k8s

__all__ = [
    "update_condition",
    "set_ready_condition",
    "get_condition",
    "emit_event",
    "rate_limit_k8s",
    "configure_k8s_rate_limit",
    "is_rate_limit_error",
    "new_correlation_id",
    "get_correlation_id",
    "with_correlation_id",
    "get_context_dict",
]
