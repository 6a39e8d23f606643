"""Shared fixtures for unit tests."""

from __future__ import annotations

import copy
import time
from typing import Any
from unittest.mock import patch

import jwt
import pytest
from kubernetes import client
from kubernetes.client.exceptions import ApiException

from wi_acrpull_operator.constants import API_GROUP_VERSION, KIND_BINDING
from wi_acrpull_operator.services.acr.models import AccessToken


def make_token(expires_in: float = 3600, **claims: Any) -> str:
    """Build a signed JWT carrying an exp claim."""
    payload = {"exp": int(time.time() + expires_in), "iss": "test.azurecr.io", **claims}
    return jwt.encode(payload, "test-signing-key", algorithm="HS256")


def make_binding(
    name: str = "x",
    namespace: str = "default",
    acr_server: str = "x.azurecr.io",
    client_id: str = "abc",
    tenant_id: str = "def",
    service_account_name: str | None = None,
    finalizers: list[str] | None = None,
    deletion_timestamp: str | None = None,
) -> dict[str, Any]:
    spec: dict[str, Any] = {
        "acrServer": acr_server,
        "servicePrincipalClientID": client_id,
        "servicePrincipalTenantID": tenant_id,
    }
    if service_account_name is not None:
        spec["serviceAccountName"] = service_account_name
    meta: dict[str, Any] = {
        "name": name,
        "namespace": namespace,
        "uid": f"uid-{name}",
        "generation": 1,
        "finalizers": list(finalizers or []),
    }
    if deletion_timestamp:
        meta["deletionTimestamp"] = deletion_timestamp
    return {
        "apiVersion": API_GROUP_VERSION,
        "kind": KIND_BINDING,
        "metadata": meta,
        "spec": spec,
    }


class FakeExchanger:
    """Token exchanger returning a fixed token or raising a fixed error."""

    def __init__(self, token: str | None = None, error: Exception | None = None):
        self.token = token or make_token()
        self.error = error
        self.calls: list[tuple[str, str, str]] = []

    def exchange(self, client_id: str, tenant_id: str, registry: str) -> AccessToken:
        self.calls.append((client_id, tenant_id, registry))
        if self.error is not None:
            raise self.error
        return AccessToken(self.token)


class FakeCluster:
    """In-memory stand-in for CustomObjectsApi and CoreV1Api.

    Writes carrying a stale resourceVersion are rejected with 409, and
    every write is appended to ``writes`` as (operation, name).
    """

    def __init__(self) -> None:
        self.bindings: dict[tuple[str, str], dict[str, Any]] = {}
        self.secrets: dict[tuple[str, str], client.V1Secret] = {}
        self.service_accounts: dict[tuple[str, str], client.V1ServiceAccount] = {}
        self.writes: list[tuple[str, str]] = []
        self.status_error: Exception | None = None
        self._rv = 0

    def _next_rv(self) -> str:
        self._rv += 1
        return str(self._rv)

    @staticmethod
    def _not_found() -> ApiException:
        return ApiException(status=404, reason="Not Found")

    @staticmethod
    def _conflict() -> ApiException:
        return ApiException(status=409, reason="Conflict")

    # Seeding helpers

    def add_binding(self, obj: dict[str, Any]) -> dict[str, Any]:
        obj = copy.deepcopy(obj)
        obj["metadata"]["resourceVersion"] = self._next_rv()
        meta = obj["metadata"]
        self.bindings[(meta["namespace"], meta["name"])] = obj
        return obj

    def add_service_account(
        self,
        name: str = "default",
        namespace: str = "default",
        pull_secrets: list[str] | None = None,
    ) -> None:
        self.service_accounts[(namespace, name)] = client.V1ServiceAccount(
            metadata=client.V1ObjectMeta(name=name, namespace=namespace, resource_version=self._next_rv()),
            image_pull_secrets=[client.V1LocalObjectReference(name=n) for n in pull_secrets or []],
        )

    def pull_secret_names(self, name: str = "default", namespace: str = "default") -> list[str]:
        sa = self.service_accounts[(namespace, name)]
        return [ref.name for ref in sa.image_pull_secrets or []]

    def writes_of(self, *operations: str) -> list[tuple[str, str]]:
        return [w for w in self.writes if w[0] in operations]

    # CustomObjectsApi

    def get_namespaced_custom_object(self, group, version, namespace, plural, name):
        obj = self.bindings.get((namespace, name))
        if obj is None:
            raise self._not_found()
        return copy.deepcopy(obj)

    def patch_namespaced_custom_object(self, group, version, namespace, plural, name, body):
        obj = self.bindings.get((namespace, name))
        if obj is None:
            raise self._not_found()
        meta_patch = dict(body.get("metadata", {}))
        expected_rv = meta_patch.pop("resourceVersion", None)
        if expected_rv is not None and expected_rv != obj["metadata"]["resourceVersion"]:
            raise self._conflict()
        if "finalizers" in meta_patch:
            obj["metadata"]["finalizers"] = list(meta_patch["finalizers"] or [])
        obj["metadata"]["resourceVersion"] = self._next_rv()
        self.writes.append(("patch_binding", name))
        result = copy.deepcopy(obj)
        if obj["metadata"].get("deletionTimestamp") and not obj["metadata"]["finalizers"]:
            del self.bindings[(namespace, name)]
        return result

    def patch_namespaced_custom_object_status(self, group, version, namespace, plural, name, body):
        if self.status_error is not None:
            raise self.status_error
        obj = self.bindings.get((namespace, name))
        if obj is None:
            raise self._not_found()
        status = obj.setdefault("status", {})
        for key, value in body.get("status", {}).items():
            if value is None:
                status.pop(key, None)
            else:
                status[key] = copy.deepcopy(value)
        obj["metadata"]["resourceVersion"] = self._next_rv()
        self.writes.append(("patch_status", name))
        return copy.deepcopy(obj)

    # CoreV1Api: secrets

    def list_namespaced_secret(self, namespace, label_selector=None):
        key, _, value = (label_selector or "").partition("=")
        items = [
            copy.deepcopy(secret)
            for (ns, _name), secret in self.secrets.items()
            if ns == namespace and (not key or (secret.metadata.labels or {}).get(key) == value)
        ]
        return client.V1SecretList(items=items)

    def read_namespaced_secret(self, name, namespace):
        secret = self.secrets.get((namespace, name))
        if secret is None:
            raise self._not_found()
        return copy.deepcopy(secret)

    def create_namespaced_secret(self, namespace, body, field_manager=None):
        name = body.metadata.name
        if (namespace, name) in self.secrets:
            raise self._conflict()
        stored = copy.deepcopy(body)
        stored.metadata.resource_version = self._next_rv()
        self.secrets[(namespace, name)] = stored
        self.writes.append(("create_secret", name))
        return copy.deepcopy(stored)

    def replace_namespaced_secret(self, name, namespace, body, field_manager=None):
        current = self.secrets.get((namespace, name))
        if current is None:
            raise self._not_found()
        if body.metadata.resource_version != current.metadata.resource_version:
            raise self._conflict()
        stored = copy.deepcopy(body)
        stored.metadata.resource_version = self._next_rv()
        self.secrets[(namespace, name)] = stored
        self.writes.append(("replace_secret", name))
        return copy.deepcopy(stored)

    # CoreV1Api: service accounts

    def read_namespaced_service_account(self, name, namespace):
        sa = self.service_accounts.get((namespace, name))
        if sa is None:
            raise self._not_found()
        return copy.deepcopy(sa)

    def replace_namespaced_service_account(self, name, namespace, body, field_manager=None):
        current = self.service_accounts.get((namespace, name))
        if current is None:
            raise self._not_found()
        if body.metadata.resource_version != current.metadata.resource_version:
            raise self._conflict()
        stored = copy.deepcopy(body)
        stored.metadata.resource_version = self._next_rv()
        self.service_accounts[(namespace, name)] = stored
        self.writes.append(("replace_service_account", name))
        return copy.deepcopy(stored)


@pytest.fixture(autouse=True)
def no_k8s_rate_limit():
    """Disable client-side rate limiting so tests do not sleep."""
    with patch("wi_acrpull_operator.utils.rate_limit._K8S_RATE_LIMIT_PER_SECOND", 1_000_000.0):
        yield


@pytest.fixture
def cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture
def token() -> str:
    return make_token()

