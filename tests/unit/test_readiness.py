"""Unit tests for workload readiness evaluation."""

from __future__ import annotations

import pytest

from postgres_operator.handlers.readiness import is_ready


@pytest.mark.parametrize(
    ("workload", "expected"),
    [
        ({"spec": {"replicas": 1}, "status": {"readyReplicas": 1}}, True),
        ({"spec": {"replicas": 1}, "status": {"readyReplicas": 0}}, False),
        ({"spec": {"replicas": 1}, "status": {}}, False),
        ({"spec": {"replicas": 1}}, False),
        ({"spec": {}, "status": {"readyReplicas": 1}}, True),
        ({"spec": {"replicas": 3}, "status": {"readyReplicas": 2}}, False),
        ({"spec": {"replicas": 1}, "status": {"readyReplicas": None}}, False),
    ],
)
def test_is_ready(workload, expected) -> None:
    assert is_ready(workload) is expected


def test_is_ready_does_not_mutate() -> None:
    workload = {"spec": {"replicas": 1}, "status": {"readyReplicas": 1}}
    is_ready(workload)
    assert workload == {"spec": {"replicas": 1}, "status": {"readyReplicas": 1}}
