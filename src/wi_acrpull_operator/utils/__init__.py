"""Utility functions for the WI ACR pull operator."""

from .conditions import get_condition, set_ready_condition, update_condition
from .context import (
    get_context_dict,
    get_correlation_id,
    propagate_trace_context,
    set_correlation_id,
    with_correlation_id,
)
from .events import emit_event
from .k8s import call_k8s
from .rate_limit import rate_limit_k8s

__all__ = [
    "update_condition",
    "set_ready_condition",
    "get_condition",
    "emit_event",
    "call_k8s",
    "rate_limit_k8s",
    "set_correlation_id",
    "get_correlation_id",
    "with_correlation_id",
    "get_context_dict",
    "propagate_trace_context",
]
