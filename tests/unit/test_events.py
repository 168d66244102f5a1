"""Tests for Kubernetes event utilities."""

from __future__ import annotations

from postgres_operator.constants import (
    EVENT_REASON_CHILD_CREATED,
    EVENT_REASON_CHILD_DELETED,
    EVENT_REASON_CHILD_UPDATED,
    EVENT_REASON_FINALIZER_ADDED,
    EVENT_REASON_NOT_READY,
    EVENT_REASON_OWNERSHIP_CONFLICT,
    EVENT_REASON_READY,
    EVENT_REASON_RECONCILE_FAILED,
)
from postgres_operator.utils.events import (
    emit_child_created,
    emit_child_deleted,
    emit_child_updated,
    emit_event,
    emit_finalizer_added,
    emit_ownership_conflict,
    emit_ready_changed,
    emit_reconcile_failed,
)

BODY = {
    "apiVersion": "postgres.snappcloud.io/v1alpha1",
    "kind": "Postgres",
    "metadata": {"name": "db", "namespace": "default", "uid": "uid-default-db"},
}


class TestEmitEvent:
    """Test cases for emit_event function."""

    def test_emit_event_normal(self, mock_kopf_event):
        """Test emitting normal event."""
        emit_event(BODY, "TestReason", "Test message")

        mock_kopf_event.assert_called_once_with(
            BODY,
            reason="TestReason",
            message="Test message",
            type="Normal",
        )

    def test_emit_event_warning(self, mock_kopf_event):
        """Test emitting warning event."""
        emit_event(BODY, "TestReason", "Test message", type_="Warning")

        assert mock_kopf_event.call_args.kwargs["type"] == "Warning"


class TestSpecificEvents:
    """Test cases for the reason-specific helpers."""

    def test_reconcile_failed(self, mock_kopf_event):
        """Test reconcile failed event is a warning."""
        emit_reconcile_failed(BODY, "boom")

        kwargs = mock_kopf_event.call_args.kwargs
        assert kwargs["reason"] == EVENT_REASON_RECONCILE_FAILED
        assert kwargs["message"] == "boom"
        assert kwargs["type"] == "Warning"

    def test_finalizer_added(self, mock_kopf_event):
        emit_finalizer_added(BODY)

        assert mock_kopf_event.call_args.kwargs["reason"] == EVENT_REASON_FINALIZER_ADDED

    def test_child_events_name_the_child(self, mock_kopf_event):
        """Test child events carry kind and name in the message."""
        for emit, reason in (
            (emit_child_created, EVENT_REASON_CHILD_CREATED),
            (emit_child_updated, EVENT_REASON_CHILD_UPDATED),
            (emit_child_deleted, EVENT_REASON_CHILD_DELETED),
        ):
            emit(BODY, "Service", "db-postgres")

            kwargs = mock_kopf_event.call_args.kwargs
            assert kwargs["reason"] == reason
            assert "Service db-postgres" in kwargs["message"]
            assert kwargs["type"] == "Normal"

    def test_ready_changed(self, mock_kopf_event):
        """Test readiness transitions in both directions."""
        emit_ready_changed(BODY, True)
        assert mock_kopf_event.call_args.kwargs["reason"] == EVENT_REASON_READY
        assert mock_kopf_event.call_args.kwargs["type"] == "Normal"

        emit_ready_changed(BODY, False)
        assert mock_kopf_event.call_args.kwargs["reason"] == EVENT_REASON_NOT_READY
        assert mock_kopf_event.call_args.kwargs["type"] == "Warning"

    def test_ownership_conflict(self, mock_kopf_event):
        emit_ownership_conflict(BODY, "StatefulSet", "db")

        kwargs = mock_kopf_event.call_args.kwargs
        assert kwargs["reason"] == EVENT_REASON_OWNERSHIP_CONFLICT
        assert "StatefulSet db" in kwargs["message"]
        assert kwargs["type"] == "Warning"
