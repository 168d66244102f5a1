"""Shared fixtures: an in-memory object store with API server semantics."""

from __future__ import annotations

import copy
import itertools
import uuid
from typing import Any, Callable
from unittest.mock import patch

import pytest

from postgres_operator.constants import API_GROUP_VERSION, KIND_POSTGRES, KIND_SECRET
from postgres_operator.utils.errors import AlreadyExistsError, ConflictError, NotFoundError

TIMESTAMP = "2024-05-01T12:00:00Z"


class FakeStore:
    """In-memory ObjectStore.

    - writes carry resourceVersion and conflict when stale
    - deleting an object with finalizers only sets deletionTimestamp
    - removing the last finalizer of a deleting object drops it
    - replace() never touches status, replace_status() only touches status
    """

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str, str], dict[str, Any]] = {}
        self.writes: list[tuple[str, str, str, str]] = []
        self.graceful_child_deletion = False
        self.failures: dict[str, Exception] = {}
        self._versions = itertools.count(1)

    # Test helpers, not recorded as writes

    def seed(self, obj: dict[str, Any]) -> dict[str, Any]:
        obj = copy.deepcopy(obj)
        meta = obj.setdefault("metadata", {})
        meta.setdefault("uid", str(uuid.uuid4()))
        meta.setdefault("generation", 1)
        meta["resourceVersion"] = str(next(self._versions))
        self.objects[self._key(obj)] = obj
        return copy.deepcopy(obj)

    def peek(self, kind: str, namespace: str, name: str) -> dict[str, Any] | None:
        obj = self.objects.get((kind, namespace, name))
        return copy.deepcopy(obj) if obj is not None else None

    def mutate(self, kind: str, namespace: str, name: str, fn: Callable[[dict[str, Any]], None]) -> None:
        obj = self.objects[(kind, namespace, name)]
        fn(obj)
        obj["metadata"]["resourceVersion"] = str(next(self._versions))

    def request_deletion(self, kind: str, namespace: str, name: str) -> None:
        """Delete as a user would."""
        self._delete(kind, namespace, name, graceful=False)

    def finish_termination(self, kind: str, namespace: str, name: str) -> None:
        self.objects.pop((kind, namespace, name), None)

    def writes_of(self, op: str) -> list[tuple[str, str, str, str]]:
        return [w for w in self.writes if w[0] == op]

    # ObjectStore

    @staticmethod
    def _key(obj: dict[str, Any]) -> tuple[str, str, str]:
        meta = obj["metadata"]
        return obj["kind"], meta["namespace"], meta["name"]

    def _maybe_fail(self, op: str) -> None:
        if op in self.failures:
            raise self.failures.pop(op)

    def _check_version(self, obj: dict[str, Any]) -> dict[str, Any]:
        kind, namespace, name = self._key(obj)
        current = self.objects.get((kind, namespace, name))
        if current is None:
            raise NotFoundError(kind, namespace, name)
        if obj["metadata"].get("resourceVersion") != current["metadata"]["resourceVersion"]:
            raise ConflictError(kind, namespace, name)
        return current

    def get(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        self._maybe_fail("get")
        obj = self.objects.get((kind, namespace, name))
        if obj is None:
            raise NotFoundError(kind, namespace, name)
        return copy.deepcopy(obj)

    def create(self, obj: dict[str, Any]) -> dict[str, Any]:
        self._maybe_fail("create")
        kind, namespace, name = self._key(obj)
        if (kind, namespace, name) in self.objects:
            raise AlreadyExistsError(kind, namespace, name)
        self.writes.append(("create", kind, namespace, name))
        self.seed(obj)
        created_meta = self.objects[(kind, namespace, name)]["metadata"]
        created_meta["creationTimestamp"] = TIMESTAMP
        return self.get(kind, namespace, name)

    def replace(self, obj: dict[str, Any]) -> dict[str, Any]:
        self._maybe_fail("replace")
        current = self._check_version(obj)
        kind, namespace, name = self._key(obj)
        self.writes.append(("replace", kind, namespace, name))

        updated = copy.deepcopy(obj)
        if "status" in current:
            updated["status"] = copy.deepcopy(current["status"])
        else:
            updated.pop("status", None)
        updated["metadata"]["resourceVersion"] = str(next(self._versions))
        self.objects[(kind, namespace, name)] = updated

        if updated["metadata"].get("deletionTimestamp") and not updated["metadata"].get("finalizers"):
            del self.objects[(kind, namespace, name)]
        return copy.deepcopy(updated)

    def replace_status(self, obj: dict[str, Any]) -> dict[str, Any]:
        self._maybe_fail("replace_status")
        current = self._check_version(obj)
        kind, namespace, name = self._key(obj)
        self.writes.append(("replace_status", kind, namespace, name))
        current["status"] = copy.deepcopy(obj.get("status") or {})
        current["metadata"]["resourceVersion"] = str(next(self._versions))
        return copy.deepcopy(current)

    def delete(self, kind: str, namespace: str, name: str) -> None:
        self._maybe_fail("delete")
        if (kind, namespace, name) not in self.objects:
            raise NotFoundError(kind, namespace, name)
        self.writes.append(("delete", kind, namespace, name))
        self._delete(kind, namespace, name, graceful=self.graceful_child_deletion)

    def _delete(self, kind: str, namespace: str, name: str, graceful: bool) -> None:
        obj = self.objects[(kind, namespace, name)]
        if obj["metadata"].get("finalizers") or graceful:
            obj["metadata"]["deletionTimestamp"] = TIMESTAMP
            obj["metadata"]["resourceVersion"] = str(next(self._versions))
        else:
            del self.objects[(kind, namespace, name)]


@pytest.fixture(autouse=True)
def mock_kopf_event():
    """Kubernetes events need a running operator; capture them instead."""
    with patch("postgres_operator.utils.events.kopf.event") as mock_event:
        yield mock_event


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def make_postgres() -> Callable[..., dict[str, Any]]:
    def _make(
        name: str = "db",
        namespace: str = "default",
        version: str = "16",
        size: str = "10Gi",
        database: str = "app",
        secret_ref: str = "pg-creds",
        **metadata: Any,
    ) -> dict[str, Any]:
        return {
            "apiVersion": API_GROUP_VERSION,
            "kind": KIND_POSTGRES,
            "metadata": {
                "name": name,
                "namespace": namespace,
                "uid": f"uid-{namespace}-{name}",
                "generation": 1,
                **metadata,
            },
            "spec": {
                "version": version,
                "persistence": {"size": size},
                "auth": {"database": database, "secretRef": secret_ref},
            },
        }

    return _make


@pytest.fixture
def make_secret() -> Callable[..., dict[str, Any]]:
    def _make(name: str = "pg-creds", namespace: str = "default") -> dict[str, Any]:
        return {
            "apiVersion": "v1",
            "kind": KIND_SECRET,
            "metadata": {"name": name, "namespace": namespace},
            "type": "Opaque",
            "data": {"username": "YWRtaW4=", "password": "czNjcjN0"},
        }

    return _make
