"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

import logging
from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_PULL_SECRET_CREATED,
    EVENT_REASON_PULL_SECRET_UPDATED,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
    EVENT_REASON_SERVICE_ACCOUNT_BOUND,
    EVENT_REASON_SERVICE_ACCOUNT_UNBOUND,
    EVENT_REASON_TOKEN_EXCHANGE_FAILED,
    EVENT_REASON_TOKEN_REFRESHED,
)

logger = logging.getLogger(__name__)


def emit_event(
    body: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Events are informational: a failure to post one is logged and dropped.

    Args:
        body: Resource body (apiVersion, kind and metadata are required)
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    try:
        kopf.event(
            body,
            reason=reason,
            message=message,
            type=type_,
        )
    except Exception as e:
        logger.debug(f"Failed to emit event {reason}: {e}")


def emit_reconcile_started(body: dict[str, Any]) -> None:
    """Emit reconcile started event."""
    emit_event(body, EVENT_REASON_RECONCILE_STARTED, "Reconciliation started")


def emit_reconcile_failed(body: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(body, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_token_refreshed(body: dict[str, Any], expires_at: str) -> None:
    """Emit token refreshed event."""
    emit_event(body, EVENT_REASON_TOKEN_REFRESHED, f"ACR token refreshed, expires at {expires_at}")


def emit_token_exchange_failed(body: dict[str, Any], message: str) -> None:
    """Emit token exchange failed event."""
    emit_event(body, EVENT_REASON_TOKEN_EXCHANGE_FAILED, message, type_="Warning")


def emit_pull_secret_created(body: dict[str, Any], secret_name: str) -> None:
    """Emit pull secret created event."""
    emit_event(body, EVENT_REASON_PULL_SECRET_CREATED, f"Pull secret {secret_name} created")


def emit_pull_secret_updated(body: dict[str, Any], secret_name: str) -> None:
    """Emit pull secret updated event."""
    emit_event(body, EVENT_REASON_PULL_SECRET_UPDATED, f"Pull secret {secret_name} updated")


def emit_service_account_bound(body: dict[str, Any], service_account: str, secret_name: str) -> None:
    """Emit service account bound event."""
    emit_event(
        body,
        EVENT_REASON_SERVICE_ACCOUNT_BOUND,
        f"Service account {service_account} references pull secret {secret_name}",
    )


def emit_service_account_unbound(body: dict[str, Any], service_account: str, secret_name: str) -> None:
    """Emit service account unbound event."""
    emit_event(
        body,
        EVENT_REASON_SERVICE_ACCOUNT_UNBOUND,
        f"Pull secret {secret_name} removed from service account {service_account}",
    )
