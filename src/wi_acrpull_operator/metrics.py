"""Prometheus metrics for the WI ACR Pull Operator."""

from prometheus_client import Counter, Gauge, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "wi_acrpull_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "wi_acrpull_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

error_total = Counter(
    "wi_acrpull_operator_error_total",
    "Total number of reconciliation errors",
    ["kind", "error_type"],
)

resource_status_total = Counter(
    "wi_acrpull_operator_resource_status_total",
    "Resource status transitions",
    ["kind", "status"],
)

# Token metrics
token_exchange_total = Counter(
    "wi_acrpull_operator_token_exchange_total",
    "Total number of ACR token exchanges",
    ["result"],
)

token_requeue_seconds = Gauge(
    "wi_acrpull_operator_token_requeue_seconds",
    "Seconds until the next scheduled token refresh",
    ["namespace", "name"],
)

# Dependent object metrics
pull_secret_operations_total = Counter(
    "wi_acrpull_operator_pull_secret_operations_total",
    "Total number of pull secret operations",
    ["operation", "result"],
)

service_account_operations_total = Counter(
    "wi_acrpull_operator_service_account_operations_total",
    "Total number of service account pull secret reference operations",
    ["operation", "result"],
)

finalizer_operations_total = Counter(
    "wi_acrpull_operator_finalizer_operations_total",
    "Total number of finalizer operations",
    ["operation", "result"],
)

# API call metrics
api_call_total = Counter(
    "wi_acrpull_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "wi_acrpull_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

rate_limit_hits_total = Counter(
    "wi_acrpull_operator_rate_limit_hits_total",
    "Total number of client-side rate limit waits",
    ["api_type"],
)
