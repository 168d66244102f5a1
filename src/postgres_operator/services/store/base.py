"""Object store interface consumed by the reconcile engine."""

from __future__ import annotations

from typing import Any, Protocol


class ObjectStore(Protocol):
    """Protocol defining the object store operations.

    Objects are plain dicts in Kubernetes JSON form. Writes carry
    metadata.resourceVersion for optimistic concurrency.
    """

    def get(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        """Get an object, raising NotFoundError if it does not exist."""
        ...

    def create(self, obj: dict[str, Any]) -> dict[str, Any]:
        """Create an object, raising AlreadyExistsError if the name is taken."""
        ...

    def replace(self, obj: dict[str, Any]) -> dict[str, Any]:
        """Replace an object, raising ConflictError on a stale resourceVersion."""
        ...

    def replace_status(self, obj: dict[str, Any]) -> dict[str, Any]:
        """Replace the status subresource, raising ConflictError on a stale resourceVersion."""
        ...

    def delete(self, kind: str, namespace: str, name: str) -> None:
        """Delete an object, raising NotFoundError if it does not exist."""
        ...
