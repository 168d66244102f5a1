"""Builders rendering the desired child objects of a Postgres resource."""

from .common import (
    child_name,
    controlled_by,
    controller_reference,
    object_labels,
    owner_reference,
    selector_labels,
)
from .service import build_service
from .statefulset import build_statefulset

__all__ = [
    "build_service",
    "build_statefulset",
    "child_name",
    "controlled_by",
    "controller_reference",
    "object_labels",
    "owner_reference",
    "selector_labels",
]
