"""Unit tests for the child object builders."""

from __future__ import annotations

import pytest

from postgres_operator.builders import (
    build_service,
    build_statefulset,
    child_name,
    controlled_by,
    controller_reference,
    owner_reference,
    selector_labels,
)
from postgres_operator.constants import (
    API_GROUP_VERSION,
    FIELD_MANAGER,
    KIND_POSTGRES,
    KIND_SERVICE,
    KIND_STATEFULSET,
    LABEL_INSTANCE,
    LABEL_MANAGED_BY,
)
from postgres_operator.utils.errors import InvalidSpecError


class TestChildName:
    """Test deterministic child naming."""

    def test_workload_uses_resource_name(self) -> None:
        assert child_name(KIND_STATEFULSET, "orders") == "orders"

    def test_service_is_resource_qualified(self) -> None:
        assert child_name(KIND_SERVICE, "orders") == "orders-postgres"
        assert child_name(KIND_SERVICE, "orders") != child_name(KIND_SERVICE, "billing")

    def test_unknown_kind(self) -> None:
        with pytest.raises(ValueError):
            child_name("ConfigMap", "orders")


class TestBuildStatefulSet:
    """Test StatefulSet rendering."""

    def test_renders_spec_fields(self, make_postgres) -> None:
        sts = build_statefulset(make_postgres(name="orders", version="15", size="20Gi", database="shop"), "creds")

        assert sts["kind"] == "StatefulSet"
        assert sts["metadata"]["name"] == "orders"
        assert sts["metadata"]["namespace"] == "default"
        assert sts["spec"]["replicas"] == 1
        assert sts["spec"]["serviceName"] == "orders-postgres"

        container = sts["spec"]["template"]["spec"]["containers"][0]
        assert container["image"] == "postgres:15"
        assert container["ports"] == [{"containerPort": 5432, "name": "postgres"}]

        claim = sts["spec"]["volumeClaimTemplates"][0]
        assert claim["metadata"]["name"] == "data"
        assert claim["spec"]["resources"]["requests"]["storage"] == "20Gi"
        assert claim["spec"]["accessModes"] == ["ReadWriteOnce"]

        env = {e["name"]: e for e in container["env"]}
        assert env["POSTGRES_DB"]["value"] == "shop"

    def test_credentials_projected_by_reference(self, make_postgres) -> None:
        sts = build_statefulset(make_postgres(), "pg-creds")
        env = {e["name"]: e for e in sts["spec"]["template"]["spec"]["containers"][0]["env"]}

        assert "value" not in env["POSTGRES_USER"]
        assert env["POSTGRES_USER"]["valueFrom"]["secretKeyRef"] == {"name": "pg-creds", "key": "username"}
        assert env["POSTGRES_PASSWORD"]["valueFrom"]["secretKeyRef"] == {"name": "pg-creds", "key": "password"}

    def test_selector_matches_pod_labels(self, make_postgres) -> None:
        sts = build_statefulset(make_postgres(name="orders"), "creds")
        selector = sts["spec"]["selector"]["matchLabels"]
        pod_labels = sts["spec"]["template"]["metadata"]["labels"]

        assert selector == {LABEL_INSTANCE: "orders"}
        assert all(pod_labels[k] == v for k, v in selector.items())
        assert sts["metadata"]["labels"][LABEL_MANAGED_BY] == "postgres-operator"

    def test_custom_image(self, make_postgres) -> None:
        sts = build_statefulset(make_postgres(version="16"), "creds", image="registry.local/postgres")
        assert sts["spec"]["template"]["spec"]["containers"][0]["image"] == "registry.local/postgres:16"

    def test_deterministic(self, make_postgres) -> None:
        resource = make_postgres()
        first = build_statefulset(resource, "creds")
        second = build_statefulset(resource, "creds")

        assert first == second
        # Fresh label maps on every call
        first["metadata"]["labels"]["extra"] = "x"
        assert "extra" not in build_statefulset(resource, "creds")["metadata"]["labels"]

    @pytest.mark.parametrize(
        "path",
        ["version", "persistence", "auth"],
    )
    def test_missing_fields(self, make_postgres, path: str) -> None:
        resource = make_postgres()
        del resource["spec"][path]

        with pytest.raises(InvalidSpecError):
            build_statefulset(resource, "creds")


class TestBuildService:
    """Test Service rendering."""

    def test_renders_endpoint(self, make_postgres) -> None:
        svc = build_service(make_postgres(name="orders", namespace="shop"))

        assert svc["kind"] == "Service"
        assert svc["metadata"] == {
            "name": "orders-postgres",
            "namespace": "shop",
            "labels": svc["metadata"]["labels"],
        }
        assert svc["spec"]["type"] == "ClusterIP"
        assert svc["spec"]["selector"] == selector_labels("orders")
        assert svc["spec"]["ports"] == [{"name": "postgres", "port": 5432, "protocol": "TCP"}]

    def test_deterministic(self, make_postgres) -> None:
        resource = make_postgres()
        assert build_service(resource) == build_service(resource)

    def test_two_resources_do_not_collide(self, make_postgres) -> None:
        a = build_service(make_postgres(name="a"))
        b = build_service(make_postgres(name="b"))

        assert a["metadata"]["name"] != b["metadata"]["name"]
        assert a["spec"]["selector"] != b["spec"]["selector"]


class TestOwnerReference:
    """Test owner reference construction."""

    def test_owner_reference(self, make_postgres) -> None:
        ref = owner_reference(make_postgres(name="orders"))

        assert ref == {
            "apiVersion": API_GROUP_VERSION,
            "kind": KIND_POSTGRES,
            "name": "orders",
            "uid": "uid-default-orders",
            "controller": True,
            "blockOwnerDeletion": True,
        }


class TestControlledBy:
    """Test recognizing children that belong to a resource."""

    def test_controller_reference_picks_controller(self, make_postgres) -> None:
        child = build_service(make_postgres())
        extra = {"apiVersion": "v1", "kind": "ConfigMap", "name": "extra", "uid": "uid-extra"}
        child["metadata"]["ownerReferences"] = [extra, owner_reference(make_postgres())]

        assert controller_reference(child)["uid"] == "uid-default-db"
        assert controller_reference({"metadata": {"ownerReferences": [extra]}}) is None
        assert controller_reference({}) is None

    def test_own_controller_reference(self, make_postgres) -> None:
        resource = make_postgres()
        child = build_statefulset(resource, "pg-creds")
        child["metadata"]["ownerReferences"] = [owner_reference(resource)]

        assert controlled_by(child, resource)

    def test_other_controller_reference(self, make_postgres) -> None:
        resource = make_postgres()
        child = build_statefulset(resource, "pg-creds")
        child["metadata"]["ownerReferences"] = [owner_reference(make_postgres(name="other"))]

        assert not controlled_by(child, resource)

    def test_same_name_from_previous_incarnation(self, make_postgres) -> None:
        """Test a reference to an earlier resource with the same name is not ours."""
        resource = make_postgres()
        child = build_service(resource)
        ref = owner_reference(resource)
        ref["uid"] = "uid-deleted"
        child["metadata"]["ownerReferences"] = [ref]

        assert not controlled_by(child, resource)

    def test_stripped_reference_recognized_by_labels(self, make_postgres) -> None:
        resource = make_postgres()
        child = build_service(resource)

        assert "ownerReferences" not in child["metadata"]
        assert child["metadata"]["labels"][LABEL_MANAGED_BY] == FIELD_MANAGER
        assert controlled_by(child, resource)

    @pytest.mark.parametrize(
        "labels",
        [
            {},
            {LABEL_INSTANCE: "db"},
            {LABEL_MANAGED_BY: FIELD_MANAGER, LABEL_INSTANCE: "other"},
            {LABEL_MANAGED_BY: "helm", LABEL_INSTANCE: "db"},
        ],
    )
    def test_unowned_without_our_labels(self, make_postgres, labels) -> None:
        child = {"kind": KIND_SERVICE, "metadata": {"name": "db-postgres", "labels": labels}}

        assert not controlled_by(child, make_postgres())
