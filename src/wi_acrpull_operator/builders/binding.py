"""Builder for binding models."""

from __future__ import annotations

from typing import Any

from ..constants import API_GROUP_VERSION, KIND_BINDING
from ..models import Binding, BindingSpec


def create_binding_spec_from_spec(spec: dict[str, Any]) -> BindingSpec:
    """Create a BindingSpec from the CRD spec.

    Args:
        spec: WIpullbinding CRD spec

    Returns:
        Parsed binding spec (not validated, see validate_binding_spec)
    """
    return BindingSpec(
        acr_server=(spec.get("acrServer") or "").strip(),
        client_id=spec.get("servicePrincipalClientID") or "",
        tenant_id=spec.get("servicePrincipalTenantID") or "",
        service_account_name=spec.get("serviceAccountName") or "",
    )


def create_binding_from_object(obj: dict[str, Any]) -> Binding:
    """Create a Binding from a raw custom object.

    Args:
        obj: WIpullbinding object as returned by CustomObjectsApi

    Returns:
        Parsed binding
    """
    meta = obj.get("metadata", {})

    return Binding(
        name=meta.get("name", ""),
        namespace=meta.get("namespace", "default"),
        uid=meta.get("uid", ""),
        spec=create_binding_spec_from_spec(obj.get("spec", {})),
        api_version=obj.get("apiVersion", API_GROUP_VERSION),
        kind=obj.get("kind", KIND_BINDING),
        resource_version=meta.get("resourceVersion"),
        generation=meta.get("generation", 0),
        finalizers=list(meta.get("finalizers") or []),
        deletion_timestamp=meta.get("deletionTimestamp"),
        body=obj,
    )


def validate_binding_spec(spec: BindingSpec, default_tenant_id: str = "") -> list[str]:
    """Return validation errors for a binding spec (empty when valid).

    Args:
        spec: Parsed binding spec
        default_tenant_id: Tenant used when the binding leaves it empty
    """
    errors = []
    if not spec.acr_server:
        errors.append("acrServer is required")
    if not spec.client_id:
        errors.append("servicePrincipalClientID is required")
    if not spec.tenant_id and not default_tenant_id:
        errors.append("servicePrincipalTenantID is required when AZURE_TENANT_ID is not set")
    return errors
