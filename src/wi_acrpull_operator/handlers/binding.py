"""Handler for WIpullbinding CRD."""

from __future__ import annotations

import contextlib
import logging
from datetime import datetime, timezone
from typing import Any

import kopf
from kubernetes import client

from .. import metrics
from ..builders.binding import create_binding_from_object, validate_binding_spec
from ..builders.docker_config import render_docker_config
from ..builders.exchanger import create_token_exchanger
from ..config import OperatorConfig, get_config
from ..constants import API_GROUP_VERSION, KIND_BINDING, LABEL_BINDING_NAME
from ..errors import InvalidBindingError
from ..models import Binding, ReconcileResult
from ..services.acr.base import TokenExchanger
from ..services.acr.models import AccessToken
from ..tracing import trace_span
from ..utils.conditions import set_ready_condition
from ..utils.context import with_correlation_id
from ..utils.errors import sanitize_exception
from ..utils.events import (
    emit_pull_secret_created,
    emit_pull_secret_updated,
    emit_service_account_bound,
    emit_service_account_unbound,
    emit_token_exchange_failed,
    emit_token_refreshed,
)
from ..utils.finalizers import FinalizerManager, FinalizerState, get_finalizer_state
from ..utils.scheduling import BindingScheduler, compute_backoff_delay, compute_requeue_delay
from ..utils.secrets import (
    SECRET_CREATED,
    SECRET_UPDATED,
    bound_service_account,
    find_pull_secret,
    sync_pull_secret,
)
from ..utils.service_accounts import ensure_image_pull_secret_ref, release_image_pull_secret_ref
from .base import BaseHandler
from .shared import get_binding, get_core_client, get_k8s_client, patch_binding_status

logger = logging.getLogger(__name__)


def format_timestamp(value: datetime) -> str:
    """Format a datetime the way Kubernetes serialises metav1.Time."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class BindingHandler(BaseHandler):
    """Handler for WIpullbinding resources.

    Every entry point funnels into :meth:`reconcile`, which re-reads the
    binding and converges it, so repeated or out-of-order invocations are safe.
    """

    def __init__(
        self,
        custom_api: client.CustomObjectsApi | None = None,
        core_api: client.CoreV1Api | None = None,
        exchanger: TokenExchanger | None = None,
        config: OperatorConfig | None = None,
    ):
        """Initialize binding handler.

        Clients left as None are created on first use, once the operator
        has loaded its kube config.
        """
        super().__init__(KIND_BINDING)
        self._custom_api = custom_api
        self._core_api = core_api
        self._exchanger = exchanger
        self._config = config

    @property
    def config(self) -> OperatorConfig:
        return self._config or get_config()

    @property
    def custom_api(self) -> client.CustomObjectsApi:
        if self._custom_api is None:
            self._custom_api = get_k8s_client()
        return self._custom_api

    @property
    def core_api(self) -> client.CoreV1Api:
        if self._core_api is None:
            self._core_api = get_core_client()
        return self._core_api

    @property
    def exchanger(self) -> TokenExchanger:
        if self._exchanger is None:
            self._exchanger = create_token_exchanger(self.config)
        return self._exchanger

    @property
    def finalizers(self) -> FinalizerManager:
        return FinalizerManager(self.custom_api, self.core_api)

    def reconcile(self, namespace: str, name: str) -> ReconcileResult:
        """Reconcile one WIpullbinding.

        Returns:
            Result with the delay until the next token refresh, or a terminal
            result when the binding is gone or its teardown finished

        Raises:
            Exception: Any failure; the caller retries with backoff
        """
        with with_correlation_id(), trace_span(
            "reconcile_binding",
            kind=KIND_BINDING,
            attributes={"binding.name": name, "binding.namespace": namespace},
        ):
            obj = get_binding(self.custom_api, namespace, name)
            if obj is None:
                self.log_info(
                    {"name": name, "namespace": namespace},
                    "WIpullbinding not found, nothing to reconcile",
                    event="reconcile",
                    reason="NotFound",
                )
                return ReconcileResult()

            binding = create_binding_from_object(obj)
            if binding.is_deleting:
                return self.reconcile_with_metrics(binding.meta, lambda: self.delete(binding))
            return self.reconcile_with_metrics(
                binding.meta,
                lambda: self._reconcile_live(binding),
                body=binding.body,
            )

    def delete(self, binding: Binding) -> ReconcileResult:
        """Run the teardown path for a binding marked for deletion."""
        meta = binding.meta
        if get_finalizer_state(binding) is FinalizerState.UNREGISTERED:
            self.log_info(meta, "WIpullbinding has no finalizer, nothing to clean up", event="deletion", reason="Deletion")
            return ReconcileResult()

        self.log_info(
            meta,
            "WIpullbinding is being deleted",
            event="deletion",
            reason="Deletion",
            service_account=binding.spec.effective_service_account_name,
        )
        with trace_span("teardown_binding", kind=KIND_BINDING):
            self.finalizers.teardown(binding)
        self.log_info(meta, "Released pull secret and removed finalizer", event="deletion", reason="FinalizerRemoved")
        return ReconcileResult()

    def _reconcile_live(self, binding: Binding) -> ReconcileResult:
        meta = binding.meta
        config = self.config
        service_account = binding.spec.effective_service_account_name

        # The finalizer must be persisted before anything is created.
        if self.finalizers.register(binding):
            self.log_info(meta, "Added finalizer", event="finalizer", reason="FinalizerAdded")

        try:
            errors = validate_binding_spec(binding.spec, config.default_tenant_id)
            if errors:
                raise InvalidBindingError("; ".join(errors))

            token, expiry = self._exchange_token(binding)
            docker_config = render_docker_config(binding.spec.acr_server, token)

            with trace_span("sync_pull_secret", kind=KIND_BINDING):
                self._release_previous_service_account(binding, service_account)
                _, operation = sync_pull_secret(self.core_api, binding, docker_config, service_account)
            if operation == SECRET_CREATED:
                emit_pull_secret_created(binding.body, binding.pull_secret_name)
            elif operation == SECRET_UPDATED:
                emit_pull_secret_updated(binding.body, binding.pull_secret_name)

            with trace_span("bind_service_account", kind=KIND_BINDING):
                bound = ensure_image_pull_secret_ref(
                    self.core_api,
                    binding.namespace,
                    service_account,
                    binding.pull_secret_name,
                )
            if bound:
                emit_service_account_bound(binding.body, service_account, binding.pull_secret_name)

            self._write_success_status(binding, expiry)
        except Exception as e:
            self._write_error_status(binding, e)
            raise

        delay = compute_requeue_delay(expiry, config.token_refresh_buffer_seconds)
        metrics.token_requeue_seconds.labels(namespace=binding.namespace, name=binding.name).set(delay)
        self.log_info(
            meta,
            "Pull secret is up to date",
            event="reconcile",
            reason="Reconciled",
            secret=binding.pull_secret_name,
            service_account=service_account,
            token_expiration=format_timestamp(expiry),
            requeue_after_seconds=round(delay, 1),
        )
        return ReconcileResult(requeue_after=delay, token_expiry=expiry)

    def _release_previous_service_account(self, binding: Binding, service_account: str) -> None:
        """Drop the pull secret from the account it was bound to before a serviceAccountName change."""
        previous = bound_service_account(find_pull_secret(self.core_api, binding))
        if not previous or previous == service_account:
            return
        if release_image_pull_secret_ref(self.core_api, binding.namespace, previous, binding.pull_secret_name):
            emit_service_account_unbound(binding.body, previous, binding.pull_secret_name)
        self.log_info(
            binding.meta,
            f"Service account changed from {previous} to {service_account}",
            event="reconcile",
            reason="ServiceAccountChanged",
            secret=binding.pull_secret_name,
        )

    def _exchange_token(self, binding: Binding) -> tuple[AccessToken, datetime]:
        spec = binding.spec
        tenant_id = spec.tenant_id or self.config.default_tenant_id
        with trace_span("exchange_token", kind=KIND_BINDING, attributes={"acr.server": spec.acr_server}):
            try:
                token = self.exchanger.exchange(spec.client_id, tenant_id, spec.acr_server)
                expiry = token.expiry()
            except Exception as e:
                metrics.token_exchange_total.labels(result="error").inc()
                emit_token_exchange_failed(binding.body, f"Failed to retrieve ACR token: {sanitize_exception(e)}")
                raise
        metrics.token_exchange_total.labels(result="success").inc()
        return token, expiry

    def _write_success_status(self, binding: Binding, expiry: datetime) -> None:
        expires_at = format_timestamp(expiry)
        conditions = set_ready_condition(
            binding.status.get("conditions") or [],
            True,
            f"Pull secret {binding.pull_secret_name} holds a token valid until {expires_at}",
            observed_generation=binding.generation,
            reason="TokenRefreshed",
        )
        patch_binding_status(
            self.custom_api,
            binding.namespace,
            binding.name,
            {
                "lastTokenRefreshTime": format_timestamp(datetime.now(timezone.utc)),
                "tokenExpirationTime": expires_at,
                "error": None,
                "conditions": conditions,
                "observedGeneration": binding.generation,
            },
        )
        self.record_resource_status(True)
        emit_token_refreshed(binding.body, expires_at)

    def _write_error_status(self, binding: Binding, error: Exception) -> None:
        """Record a failure in status; a failed write is only logged."""
        message = sanitize_exception(error)
        conditions = set_ready_condition(
            binding.status.get("conditions") or [],
            False,
            message,
            observed_generation=binding.generation,
            reason=type(error).__name__,
        )
        try:
            patch_binding_status(
                self.custom_api,
                binding.namespace,
                binding.name,
                {
                    "error": message,
                    "conditions": conditions,
                    "observedGeneration": binding.generation,
                },
            )
            self.record_resource_status(False)
        except Exception as status_error:
            self.log_error(
                binding.meta,
                "Failed to record error in status",
                error=status_error,
                reason="StatusUpdateFailed",
            )

    def run(self, namespace: str, name: str, stopped: Any, scheduler: BindingScheduler) -> None:
        """Reconcile a binding until it is gone or ``stopped`` is set.

        After a success the loop sleeps until the next token refresh; after a
        failure it backs off exponentially. Wake-ups from the scheduler cut
        either wait short.
        """
        key = (namespace, name)
        config = self.config
        failures = 0
        try:
            while not stopped:
                scheduler.clear_wakeup(key)
                try:
                    with scheduler.lock(key):
                        result = self.reconcile(namespace, name)
                except Exception:
                    failures += 1
                    delay = compute_backoff_delay(
                        failures,
                        config.min_retry_delay_seconds,
                        config.max_retry_delay_seconds,
                        config.retry_backoff,
                        config.backoff_jitter,
                    )
                    logger.info(f"Retrying WIpullbinding {namespace}/{name} in {delay:.1f}s after {failures} failure(s)")
                else:
                    failures = 0
                    if result.terminal:
                        return
                    delay = max(result.requeue_after, config.min_requeue_delay_seconds)
                scheduler.wait(key, delay, stopped)
        finally:
            scheduler.forget(key)
            with contextlib.suppress(KeyError):
                metrics.token_requeue_seconds.remove(namespace, name)


# Global handler instance
_handler = BindingHandler()
_scheduler = BindingScheduler()


@kopf.daemon(API_GROUP_VERSION, KIND_BINDING, cancellation_timeout=60.0)
def run_binding(
    namespace: str,
    name: str,
    stopped: kopf.DaemonStopped,
    **kwargs: Any,
) -> None:
    """Keep a WIpullbinding's pull secret refreshed."""
    _handler.run(namespace, name, stopped, _scheduler)


@kopf.on.delete(API_GROUP_VERSION, KIND_BINDING, backoff=get_config().teardown_retry_seconds)
def handle_binding_delete(
    namespace: str,
    name: str,
    **kwargs: Any,
) -> None:
    """Handle WIpullbinding resource deletion."""
    with _scheduler.lock((namespace, name)):
        _handler.reconcile(namespace, name)


@kopf.on.event(API_GROUP_VERSION, KIND_BINDING)
def watch_binding(
    event: dict[str, Any],
    namespace: str,
    name: str,
    meta: dict[str, Any],
    **kwargs: Any,
) -> None:
    """Wake the refresh loop when a binding's spec changes."""
    key = (namespace, name)
    if event.get("type") == "DELETED":
        _scheduler.forget(key)
        return
    if _scheduler.observe_generation(key, meta.get("generation")):
        _scheduler.wake(key)


@kopf.on.event("v1", "secrets", labels={LABEL_BINDING_NAME: kopf.PRESENT})
def watch_pull_secret(
    event: dict[str, Any],
    namespace: str,
    meta: dict[str, Any],
    **kwargs: Any,
) -> None:
    """Wake the owning binding when its pull secret is deleted."""
    if event.get("type") != "DELETED":
        return
    binding_name = (meta.get("labels") or {}).get(LABEL_BINDING_NAME)
    if binding_name and (namespace, binding_name) in _scheduler:
        _scheduler.wake((namespace, binding_name))
