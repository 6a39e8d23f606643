"""Instrumented Kubernetes API calls."""

from __future__ import annotations

import time
from typing import Any, Callable

from .. import metrics
from .rate_limit import rate_limit_k8s


def call_k8s(operation: str, fn: Callable[..., Any], **kwargs: Any) -> Any:
    """Call a Kubernetes API method with rate limiting and call metrics.

    Errors are recorded and re-raised unchanged.

    Args:
        operation: Operation name used as a metric label
        fn: Bound API client method
        **kwargs: Arguments for the API method

    Returns:
        The API method's return value
    """
    start_time = time.time()
    try:
        result = rate_limit_k8s(fn)(**kwargs)
        metrics.api_call_total.labels(api_type="k8s", operation=operation, result="success").inc()
        return result
    except Exception:
        metrics.api_call_total.labels(api_type="k8s", operation=operation, result="error").inc()
        raise
    finally:
        duration = time.time() - start_time
        metrics.api_call_duration_seconds.labels(api_type="k8s", operation=operation).observe(duration)


def is_not_found(error: Exception) -> bool:
    """Check whether an API error is a 404."""
    return getattr(error, "status", None) == 404

