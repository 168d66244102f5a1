"""Kubernetes API implementation of the object store."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from ... import metrics
from ...constants import (
    API_GROUP,
    API_VERSION,
    FIELD_MANAGER,
    KIND_POSTGRES,
    KIND_SECRET,
    KIND_SERVICE,
    KIND_STATEFULSET,
    PLURAL_POSTGRES,
)
from ...utils.errors import AlreadyExistsError, ConflictError, NotFoundError, StoreError
from ...utils.rate_limit import is_rate_limit_error, rate_limit_k8s

logger = logging.getLogger(__name__)


def get_k8s_api_client() -> client.ApiClient:
    """Load in-cluster config, falling back to kubeconfig, and build an ApiClient."""
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()

    return client.ApiClient()


def _api_reason(e: ApiException) -> str | None:
    """Extract the Status reason from an ApiException body."""
    if not e.body:
        return None
    try:
        body = json.loads(e.body)
    except (TypeError, ValueError):
        return None
    return body.get("reason") if isinstance(body, dict) else None


def _key(obj: dict[str, Any]) -> tuple[str, str, str]:
    meta = obj.get("metadata", {})
    return obj.get("kind", ""), meta.get("namespace", ""), meta.get("name", "")


class KubeStore:
    """Object store backed by the Kubernetes API server."""

    def __init__(self, api_client: client.ApiClient | None = None) -> None:
        """Initialize the store.

        Args:
            api_client: Configured ApiClient; loads cluster config when omitted
        """
        self.api_client = api_client or get_k8s_api_client()
        self.custom = client.CustomObjectsApi(self.api_client)
        self.apps = client.AppsV1Api(self.api_client)
        self.core = client.CoreV1Api(self.api_client)

    def _serialize(self, obj: Any) -> dict[str, Any]:
        """Turn a typed client model into its JSON dict form."""
        if isinstance(obj, dict):
            return obj
        return self.api_client.sanitize_for_serialization(obj)

    def _call(self, operation: str, fn: Callable[..., Any], **kwargs: Any) -> Any:
        """Invoke an API method with rate limiting and call metrics."""
        start_time = time.time()
        try:
            result = rate_limit_k8s(fn)(**kwargs)
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="success").inc()
            return result
        except ApiException as e:
            result_label = "throttled" if is_rate_limit_error(e) else "error"
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result=result_label).inc()
            raise
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="k8s", operation=operation).observe(duration)

    def _translate(
        self,
        e: ApiException,
        kind: str,
        namespace: str,
        name: str,
        on_conflict: type[StoreError] = ConflictError,
    ) -> StoreError:
        if e.status == 404:
            return NotFoundError(kind, namespace, name)
        if e.status == 409:
            reason = _api_reason(e)
            if reason == "AlreadyExists" or (reason is None and on_conflict is AlreadyExistsError):
                return AlreadyExistsError(kind, namespace, name)
            return ConflictError(kind, namespace, name)
        return StoreError(
            f"{kind} {namespace}/{name}: API request failed ({e.status} {e.reason})",
            status=e.status,
            reason=_api_reason(e) or e.reason,
        )

    def get(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        """Get an object by kind and key."""
        try:
            if kind == KIND_POSTGRES:
                return self._call(
                    "get_postgres",
                    self.custom.get_namespaced_custom_object,
                    group=API_GROUP,
                    version=API_VERSION,
                    namespace=namespace,
                    plural=PLURAL_POSTGRES,
                    name=name,
                )
            if kind == KIND_STATEFULSET:
                obj = self._call(
                    "get_statefulset",
                    self.apps.read_namespaced_stateful_set,
                    name=name,
                    namespace=namespace,
                )
            elif kind == KIND_SERVICE:
                obj = self._call(
                    "get_service",
                    self.core.read_namespaced_service,
                    name=name,
                    namespace=namespace,
                )
            elif kind == KIND_SECRET:
                obj = self._call(
                    "get_secret",
                    self.core.read_namespaced_secret,
                    name=name,
                    namespace=namespace,
                )
            else:
                raise ValueError(f"Unsupported kind: {kind}")
        except ApiException as e:
            raise self._translate(e, kind, namespace, name) from e

        data = self._serialize(obj)
        # Typed reads do not always carry apiVersion/kind
        data.setdefault("kind", kind)
        return data

    def create(self, obj: dict[str, Any]) -> dict[str, Any]:
        """Create a child object."""
        kind, namespace, name = _key(obj)
        try:
            if kind == KIND_STATEFULSET:
                created = self._call(
                    "create_statefulset",
                    self.apps.create_namespaced_stateful_set,
                    namespace=namespace,
                    body=obj,
                    field_manager=FIELD_MANAGER,
                )
            elif kind == KIND_SERVICE:
                created = self._call(
                    "create_service",
                    self.core.create_namespaced_service,
                    namespace=namespace,
                    body=obj,
                    field_manager=FIELD_MANAGER,
                )
            else:
                raise ValueError(f"Unsupported kind for create: {kind}")
        except ApiException as e:
            raise self._translate(e, kind, namespace, name, on_conflict=AlreadyExistsError) from e

        data = self._serialize(created)
        data.setdefault("kind", kind)
        return data

    def replace(self, obj: dict[str, Any]) -> dict[str, Any]:
        """Replace an object; the body's resourceVersion guards against lost updates."""
        kind, namespace, name = _key(obj)
        try:
            if kind == KIND_POSTGRES:
                return self._call(
                    "replace_postgres",
                    self.custom.replace_namespaced_custom_object,
                    group=API_GROUP,
                    version=API_VERSION,
                    namespace=namespace,
                    plural=PLURAL_POSTGRES,
                    name=name,
                    body=obj,
                    field_manager=FIELD_MANAGER,
                )
            if kind == KIND_STATEFULSET:
                replaced = self._call(
                    "replace_statefulset",
                    self.apps.replace_namespaced_stateful_set,
                    name=name,
                    namespace=namespace,
                    body=obj,
                    field_manager=FIELD_MANAGER,
                )
            elif kind == KIND_SERVICE:
                replaced = self._call(
                    "replace_service",
                    self.core.replace_namespaced_service,
                    name=name,
                    namespace=namespace,
                    body=obj,
                    field_manager=FIELD_MANAGER,
                )
            else:
                raise ValueError(f"Unsupported kind for replace: {kind}")
        except ApiException as e:
            raise self._translate(e, kind, namespace, name) from e

        data = self._serialize(replaced)
        data.setdefault("kind", kind)
        return data

    def replace_status(self, obj: dict[str, Any]) -> dict[str, Any]:
        """Replace the status subresource of a Postgres resource."""
        kind, namespace, name = _key(obj)
        if kind != KIND_POSTGRES:
            raise ValueError(f"Unsupported kind for status update: {kind}")
        try:
            return self._call(
                "replace_postgres_status",
                self.custom.replace_namespaced_custom_object_status,
                group=API_GROUP,
                version=API_VERSION,
                namespace=namespace,
                plural=PLURAL_POSTGRES,
                name=name,
                body=obj,
                field_manager=FIELD_MANAGER,
            )
        except ApiException as e:
            raise self._translate(e, kind, namespace, name) from e

    def delete(self, kind: str, namespace: str, name: str) -> None:
        """Request deletion of a child object; dependents are collected in the background."""
        try:
            if kind == KIND_STATEFULSET:
                self._call(
                    "delete_statefulset",
                    self.apps.delete_namespaced_stateful_set,
                    name=name,
                    namespace=namespace,
                    propagation_policy="Background",
                )
            elif kind == KIND_SERVICE:
                self._call(
                    "delete_service",
                    self.core.delete_namespaced_service,
                    name=name,
                    namespace=namespace,
                    propagation_policy="Background",
                )
            else:
                raise ValueError(f"Unsupported kind for delete: {kind}")
        except ApiException as e:
            raise self._translate(e, kind, namespace, name) from e
