"""Utilities for managing service account image pull secret references."""

from __future__ import annotations

import logging

from kubernetes import client

from .. import metrics
from ..constants import FIELD_MANAGER
from .k8s import call_k8s, is_not_found

logger = logging.getLogger(__name__)


def has_image_pull_secret_ref(service_account: client.V1ServiceAccount, secret_name: str) -> bool:
    """Check whether a service account lists the secret as an image pull secret."""
    return any(ref.name == secret_name for ref in service_account.image_pull_secrets or [])


def _replace_service_account(
    api: client.CoreV1Api,
    namespace: str,
    service_account: client.V1ServiceAccount,
    operation: str,
) -> None:
    # The body carries the resourceVersion that was read, so a concurrent
    # writer makes the API server answer 409.
    try:
        call_k8s(
            f"{operation}_service_account_ref",
            api.replace_namespaced_service_account,
            name=service_account.metadata.name,
            namespace=namespace,
            body=service_account,
            field_manager=FIELD_MANAGER,
        )
    except Exception:
        metrics.service_account_operations_total.labels(operation=operation, result="error").inc()
        raise
    metrics.service_account_operations_total.labels(operation=operation, result="success").inc()


def ensure_image_pull_secret_ref(
    api: client.CoreV1Api,
    namespace: str,
    service_account_name: str,
    secret_name: str,
) -> bool:
    """Add the secret to a service account's image pull secrets.

    Existing entries are never reordered or removed.

    Args:
        api: Kubernetes CoreV1Api client
        namespace: Namespace of the service account
        service_account_name: Service account to modify
        secret_name: Pull secret to reference

    Returns:
        True if the service account was updated, False if it already referenced the secret

    Raises:
        client.exceptions.ApiException: If the account cannot be read or written (404 included)
    """
    service_account = call_k8s(
        "get_service_account",
        api.read_namespaced_service_account,
        name=service_account_name,
        namespace=namespace,
    )
    if has_image_pull_secret_ref(service_account, secret_name):
        metrics.service_account_operations_total.labels(operation="add", result="unchanged").inc()
        return False

    refs = list(service_account.image_pull_secrets or [])
    refs.append(client.V1LocalObjectReference(name=secret_name))
    service_account.image_pull_secrets = refs

    _replace_service_account(api, namespace, service_account, "add")
    logger.info(f"Added image pull secret {secret_name} to service account {namespace}/{service_account_name}")
    return True


def remove_image_pull_secret_ref(
    api: client.CoreV1Api,
    namespace: str,
    service_account_name: str,
    secret_name: str,
) -> bool:
    """Remove every reference to the secret from a service account.

    Other entries keep their order. Nothing is written when the secret is
    not referenced.

    Returns:
        True if the service account was updated

    Raises:
        client.exceptions.ApiException: If the account cannot be read or written (404 included)
    """
    service_account = call_k8s(
        "get_service_account",
        api.read_namespaced_service_account,
        name=service_account_name,
        namespace=namespace,
    )
    refs = list(service_account.image_pull_secrets or [])
    kept = [ref for ref in refs if ref.name != secret_name]
    if len(kept) == len(refs):
        metrics.service_account_operations_total.labels(operation="remove", result="unchanged").inc()
        return False

    service_account.image_pull_secrets = kept
    _replace_service_account(api, namespace, service_account, "remove")
    logger.info(
        f"Removed image pull secret {secret_name} from service account {namespace}/{service_account_name}"
    )
    return True


def release_image_pull_secret_ref(
    api: client.CoreV1Api,
    namespace: str,
    service_account_name: str,
    secret_name: str,
) -> bool:
    """Remove the secret from a service account, treating a missing account as released.

    Returns:
        True if the service account was updated

    Raises:
        client.exceptions.ApiException: On any API error other than a 404 on the account
    """
    try:
        return remove_image_pull_secret_ref(api, namespace, service_account_name, secret_name)
    except client.exceptions.ApiException as e:
        if not is_not_found(e):
            raise
        logger.info(f"Service account {namespace}/{service_account_name} not found, nothing to release")
        return False
