"""Utilities for managing registry pull secrets."""

from __future__ import annotations

import base64
import logging

from kubernetes import client

from .. import metrics
from ..constants import (
    ANNOTATION_SERVICE_ACCOUNT,
    CONTROLLER_NAME,
    DOCKER_CONFIG_KEY,
    FIELD_MANAGER,
    LABEL_BINDING_NAME,
    LABEL_MANAGED_BY,
    PULL_SECRET_TYPE,
)
from ..errors import AcrPullError, OwnerReferenceError
from ..models import Binding
from .k8s import call_k8s

logger = logging.getLogger(__name__)

SECRET_CREATED = "created"
SECRET_UPDATED = "updated"
SECRET_UNCHANGED = "unchanged"


def encode_secret_value(value: str) -> str:
    """Base64-encode a secret value for the data field."""
    return base64.b64encode(value.encode("utf-8")).decode("utf-8")


def decode_secret_value(value: str | bytes) -> str:
    """Decode a secret data value."""
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return base64.b64decode(value).decode("utf-8")


def build_owner_reference(binding: Binding) -> client.V1OwnerReference:
    """Build a controller owner reference pointing at a binding.

    Raises:
        OwnerReferenceError: If the binding lacks any identifying field
    """
    missing = [
        field
        for field, value in (
            ("apiVersion", binding.api_version),
            ("kind", binding.kind),
            ("name", binding.name),
            ("uid", binding.uid),
        )
        if not value
    ]
    if missing:
        raise OwnerReferenceError(
            f"failed to create ACR ImagePullSecret: binding {binding.namespace}/{binding.name} "
            f"is missing {', '.join(missing)}"
        )

    return client.V1OwnerReference(
        api_version=binding.api_version,
        kind=binding.kind,
        name=binding.name,
        uid=binding.uid,
        controller=True,
        block_owner_deletion=True,
    )


def build_pull_secret(
    binding: Binding,
    docker_config: str,
    service_account: str | None = None,
) -> client.V1Secret:
    """Build a new pull secret for a binding.

    Args:
        binding: Owning binding
        docker_config: Rendered .dockerconfigjson document
        service_account: Service account that will reference the secret

    Returns:
        Secret object ready to be created
    """
    return client.V1Secret(
        metadata=client.V1ObjectMeta(
            name=binding.pull_secret_name,
            namespace=binding.namespace,
            labels={
                LABEL_MANAGED_BY: CONTROLLER_NAME,
                LABEL_BINDING_NAME: binding.name,
            },
            annotations={ANNOTATION_SERVICE_ACCOUNT: service_account} if service_account else {},
            owner_references=[build_owner_reference(binding)],
        ),
        type=PULL_SECRET_TYPE,
        data={DOCKER_CONFIG_KEY: encode_secret_value(docker_config)},
    )


def is_owned_by(secret: client.V1Secret, binding: Binding) -> bool:
    """Check whether a secret's controller owner is the binding."""
    for ref in secret.metadata.owner_references or []:
        if ref.controller and ref.uid == binding.uid:
            return True
    return False


def bound_service_account(secret: client.V1Secret | None) -> str | None:
    """Return the service account recorded on a pull secret, if any."""
    if secret is None:
        return None
    return (secret.metadata.annotations or {}).get(ANNOTATION_SERVICE_ACCOUNT) or None


def find_pull_secret(api: client.CoreV1Api, binding: Binding) -> client.V1Secret | None:
    """Find the binding's pull secret.

    Lists the binding's labelled secrets in its namespace and picks the one
    with the derived name, falling back to a read by name for a secret that
    lost its label. Either way the secret must be controlled by the binding.

    Raises:
        AcrPullError: If the derived name is taken by a secret the binding does not own
    """
    secrets = call_k8s(
        "list_pull_secrets",
        api.list_namespaced_secret,
        namespace=binding.namespace,
        label_selector=f"{LABEL_BINDING_NAME}={binding.name}",
    )
    secret = next(
        (s for s in secrets.items or [] if s.metadata.name == binding.pull_secret_name),
        None,
    )
    if secret is None:
        try:
            secret = call_k8s(
                "get_pull_secret",
                api.read_namespaced_secret,
                name=binding.pull_secret_name,
                namespace=binding.namespace,
            )
        except client.exceptions.ApiException as e:
            if e.status == 404:
                return None
            raise

    if not is_owned_by(secret, binding):
        raise AcrPullError(
            f"secret {binding.namespace}/{binding.pull_secret_name} exists and is not owned by "
            f"WIpullbinding {binding.name}"
        )
    return secret


def sync_pull_secret(
    api: client.CoreV1Api,
    binding: Binding,
    docker_config: str,
    service_account: str | None = None,
) -> tuple[client.V1Secret, str]:
    """Ensure the binding's pull secret exists and holds the docker config.

    The secret is created when missing and otherwise overwritten in place;
    it is never deleted and recreated. The replace carries the observed
    resourceVersion, so a concurrent writer causes a 409 that is surfaced.

    Args:
        api: Kubernetes CoreV1Api client
        binding: Owning binding
        docker_config: Rendered .dockerconfigjson document
        service_account: Service account recorded in the secret's annotations

    Returns:
        Tuple of the stored secret and the operation performed
        ("created", "updated" or "unchanged")
    """
    existing = find_pull_secret(api, binding)

    if existing is None:
        secret = build_pull_secret(binding, docker_config, service_account)
        try:
            created = call_k8s(
                "create_pull_secret",
                api.create_namespaced_secret,
                namespace=binding.namespace,
                body=secret,
                field_manager=FIELD_MANAGER,
            )
        except Exception:
            metrics.pull_secret_operations_total.labels(operation="create", result="error").inc()
            raise
        metrics.pull_secret_operations_total.labels(operation="create", result="success").inc()
        logger.info(f"Created pull secret {binding.namespace}/{binding.pull_secret_name}")
        return created, SECRET_CREATED

    encoded = encode_secret_value(docker_config)
    data = dict(existing.data or {})
    labels = dict(existing.metadata.labels or {})
    annotations = dict(existing.metadata.annotations or {})
    if (
        data.get(DOCKER_CONFIG_KEY) == encoded
        and labels.get(LABEL_BINDING_NAME) == binding.name
        and (not service_account or annotations.get(ANNOTATION_SERVICE_ACCOUNT) == service_account)
    ):
        metrics.pull_secret_operations_total.labels(operation="update", result="unchanged").inc()
        return existing, SECRET_UNCHANGED

    data[DOCKER_CONFIG_KEY] = encoded
    labels[LABEL_BINDING_NAME] = binding.name
    labels.setdefault(LABEL_MANAGED_BY, CONTROLLER_NAME)
    if service_account:
        annotations[ANNOTATION_SERVICE_ACCOUNT] = service_account
    existing.data = data
    existing.metadata.labels = labels
    existing.metadata.annotations = annotations

    try:
        updated = call_k8s(
            "update_pull_secret",
            api.replace_namespaced_secret,
            name=existing.metadata.name,
            namespace=binding.namespace,
            body=existing,
            field_manager=FIELD_MANAGER,
        )
    except Exception:
        metrics.pull_secret_operations_total.labels(operation="update", result="error").inc()
        raise
    metrics.pull_secret_operations_total.labels(operation="update", result="success").inc()
    logger.info(f"Updated pull secret {binding.namespace}/{binding.pull_secret_name}")
    return updated, SECRET_UPDATED


def read_pull_secret_payload(secret: client.V1Secret) -> str | None:
    """Return the decoded .dockerconfigjson payload of a pull secret."""
    value = (secret.data or {}).get(DOCKER_CONFIG_KEY)
    if value is None:
        return None
    return decode_secret_value(value)
