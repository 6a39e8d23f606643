"""Models for WIpullbinding resources."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .constants import DEFAULT_SERVICE_ACCOUNT_NAME, FINALIZER, PULL_SECRET_SUFFIX


def derive_pull_secret_name(binding_name: str) -> str:
    """Return the pull secret name owned by a binding."""
    return f"{binding_name}{PULL_SECRET_SUFFIX}"


@dataclass
class BindingSpec:
    """Desired state of a WIpullbinding."""

    acr_server: str
    client_id: str = ""
    tenant_id: str = ""
    service_account_name: str = ""

    @property
    def effective_service_account_name(self) -> str:
        """Service account to bind, falling back to the namespace default."""
        return self.service_account_name or DEFAULT_SERVICE_ACCOUNT_NAME


@dataclass
class Binding:
    """A WIpullbinding as read from the API server."""

    name: str
    namespace: str
    uid: str
    spec: BindingSpec
    api_version: str
    kind: str
    resource_version: str | None = None
    generation: int = 0
    finalizers: list[str] = field(default_factory=list)
    deletion_timestamp: str | None = None
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def meta(self) -> dict[str, Any]:
        return self.body.get("metadata", {})

    @property
    def status(self) -> dict[str, Any]:
        return self.body.get("status") or {}

    @property
    def is_deleting(self) -> bool:
        return bool(self.deletion_timestamp)

    @property
    def has_finalizer(self) -> bool:
        return FINALIZER in self.finalizers

    @property
    def pull_secret_name(self) -> str:
        return derive_pull_secret_name(self.name)


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one reconciliation.

    ``requeue_after`` is None for terminal outcomes (binding gone or
    teardown finished); otherwise the number of seconds until the next
    token refresh.
    """

    requeue_after: float | None = None
    token_expiry: datetime | None = None

    @property
    def terminal(self) -> bool:
        return self.requeue_after is None
