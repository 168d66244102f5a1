"""Access to the Kubernetes object store."""

from .base import ObjectStore
from .kube import KubeStore, get_k8s_api_client

__all__ = ["ObjectStore", "KubeStore", "get_k8s_api_client"]
