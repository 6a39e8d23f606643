"""Shared utilities for handlers."""

from __future__ import annotations

import threading
from typing import Any

from kubernetes import client, config

from ..constants import API_GROUP, API_VERSION, PLURAL_BINDING
from ..utils.k8s import call_k8s

_config_lock = threading.Lock()
_config_loaded = False


def load_kube_config() -> None:
    """Load in-cluster configuration, falling back to the local kubeconfig."""
    global _config_loaded
    with _config_lock:
        if _config_loaded:
            return
        try:
            config.load_incluster_config()
        except config.ConfigException:
            config.load_kube_config()
        _config_loaded = True


def get_k8s_client() -> client.CustomObjectsApi:
    """Get Kubernetes CustomObjectsApi client.

    Returns:
        CustomObjectsApi instance
    """
    load_kube_config()
    return client.CustomObjectsApi()


def get_core_client() -> client.CoreV1Api:
    """Get Kubernetes CoreV1Api client.

    Returns:
        CoreV1Api instance
    """
    load_kube_config()
    return client.CoreV1Api()


def get_binding(
    api: client.CustomObjectsApi,
    namespace: str,
    name: str,
) -> dict[str, Any] | None:
    """Get a WIpullbinding, or None when it no longer exists.

    Args:
        api: Kubernetes CustomObjectsApi instance
        namespace: Namespace of the binding
        name: Name of the binding

    Returns:
        Binding object or None

    Raises:
        client.exceptions.ApiException: On any API error other than 404
    """
    try:
        return call_k8s(
            "get_binding",
            api.get_namespaced_custom_object,
            group=API_GROUP,
            version=API_VERSION,
            namespace=namespace,
            plural=PLURAL_BINDING,
            name=name,
        )
    except client.exceptions.ApiException as e:
        if e.status == 404:
            return None
        raise


def patch_binding_status(
    api: client.CustomObjectsApi,
    namespace: str,
    name: str,
    status: dict[str, Any],
) -> dict[str, Any]:
    """Merge-patch a WIpullbinding's status subresource.

    Keys set to None are removed from the stored status.
    """
    return call_k8s(
        "patch_binding_status",
        api.patch_namespaced_custom_object_status,
        group=API_GROUP,
        version=API_VERSION,
        namespace=namespace,
        plural=PLURAL_BINDING,
        name=name,
        body={"status": status},
    )
