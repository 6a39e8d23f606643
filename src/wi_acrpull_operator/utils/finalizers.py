"""Finalizer lifecycle for WIpullbindings.

A binding is either unregistered (no finalizer), registered (finalizer
present, live) or in cleanup (finalizer present and deletion requested).
Registration must be persisted before any dependent object is created, and
the finalizer is only removed once no service account references the pull
secret: neither the one the binding names now nor the one recorded on the
secret when it was last bound. The pull secret itself is garbage collected
through its owner reference.
"""

from __future__ import annotations

import enum
import logging
from typing import Any

from kubernetes import client

from .. import metrics
from ..constants import API_GROUP, API_VERSION, FINALIZER, PLURAL_BINDING
from ..errors import AcrPullError
from ..models import Binding
from .events import emit_service_account_unbound
from .k8s import call_k8s
from .secrets import bound_service_account, find_pull_secret
from .service_accounts import release_image_pull_secret_ref

logger = logging.getLogger(__name__)


class FinalizerState(enum.Enum):
    UNREGISTERED = "unregistered"
    REGISTERED = "registered"
    CLEANUP = "cleanup"


def get_finalizer_state(binding: Binding) -> FinalizerState:
    """Return where the binding is in its finalizer lifecycle."""
    if not binding.has_finalizer:
        return FinalizerState.UNREGISTERED
    if binding.is_deleting:
        return FinalizerState.CLEANUP
    return FinalizerState.REGISTERED


class FinalizerManager:
    """Adds and removes the binding finalizer with optimistic concurrency."""

    def __init__(self, custom_api: client.CustomObjectsApi, core_api: client.CoreV1Api):
        self.custom_api = custom_api
        self.core_api = core_api

    def _patch_finalizers(self, binding: Binding, finalizers: list[str], operation: str) -> None:
        body: dict[str, Any] = {
            "metadata": {
                "finalizers": finalizers if finalizers else None,
                "resourceVersion": binding.resource_version,
            }
        }
        try:
            updated = call_k8s(
                f"{operation}_finalizer",
                self.custom_api.patch_namespaced_custom_object,
                group=API_GROUP,
                version=API_VERSION,
                namespace=binding.namespace,
                plural=PLURAL_BINDING,
                name=binding.name,
                body=body,
            )
        except Exception:
            metrics.finalizer_operations_total.labels(operation=operation, result="error").inc()
            raise
        metrics.finalizer_operations_total.labels(operation=operation, result="success").inc()

        binding.finalizers = list(finalizers)
        meta = (updated or {}).get("metadata", {})
        binding.resource_version = meta.get("resourceVersion", binding.resource_version)

    def register(self, binding: Binding) -> bool:
        """Persist the finalizer on a live binding.

        Returns:
            True if the finalizer was added, False if it was already present
        """
        if binding.has_finalizer:
            return False
        self._patch_finalizers(binding, [*binding.finalizers, FINALIZER], "add")
        logger.info(f"Added finalizer to WIpullbinding {binding.namespace}/{binding.name}")
        return True

    def teardown(self, binding: Binding) -> bool:
        """Release the binding's service account references and drop the finalizer.

        The account named in the spec is released first, then the account
        recorded on the pull secret if it differs. A missing service account
        counts as already released. Any other failure is raised and the
        finalizer stays in place.

        Returns:
            True if cleanup ran, False if the binding had no finalizer
        """
        if not binding.has_finalizer:
            return False

        current = binding.spec.effective_service_account_name
        self._release(binding, current)

        recorded = self._recorded_service_account(binding)
        if recorded and recorded != current:
            self._release(binding, recorded)

        self._patch_finalizers(binding, [f for f in binding.finalizers if f != FINALIZER], "remove")
        logger.info(f"Removed finalizer from WIpullbinding {binding.namespace}/{binding.name}")
        return True

    def _release(self, binding: Binding, service_account_name: str) -> None:
        if release_image_pull_secret_ref(
            self.core_api,
            binding.namespace,
            service_account_name,
            binding.pull_secret_name,
        ):
            emit_service_account_unbound(binding.body, service_account_name, binding.pull_secret_name)

    def _recorded_service_account(self, binding: Binding) -> str | None:
        try:
            return bound_service_account(find_pull_secret(self.core_api, binding))
        except AcrPullError as e:
            # A foreign secret under the derived name records nothing for us.
            logger.warning(f"Ignoring pull secret during teardown: {e}")
            return None
