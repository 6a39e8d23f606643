"""Runtime configuration for the WI ACR Pull Operator."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .constants import (
    DEFAULT_AUTHORITY_HOST,
    DEFAULT_IDENTITY_TOKEN_PATH,
    DEFAULT_TOKEN_REFRESH_BUFFER_SECONDS,
    DEFAULT_TOKEN_SCOPE,
)


@dataclass(frozen=True)
class OperatorConfig:
    """Operator settings, read from the environment once at startup."""

    identity_token_path: str = DEFAULT_IDENTITY_TOKEN_PATH
    authority_host: str = DEFAULT_AUTHORITY_HOST
    token_scope: str = DEFAULT_TOKEN_SCOPE
    default_tenant_id: str = ""
    token_refresh_buffer_seconds: float = DEFAULT_TOKEN_REFRESH_BUFFER_SECONDS
    http_timeout_seconds: float = 30.0
    min_retry_delay_seconds: float = 1.0
    max_retry_delay_seconds: float = 60.0
    retry_backoff: float = 2.0
    backoff_jitter: float = 0.1
    min_requeue_delay_seconds: float = 1.0
    teardown_retry_seconds: float = 10.0
    metrics_port: int = 8080
    max_workers: int = 4

    @classmethod
    def from_env(cls) -> OperatorConfig:
        """Build a configuration from environment variables.

        Unset variables fall back to the dataclass defaults.
        """
        return cls(
            identity_token_path=os.getenv("IDENTITY_TOKEN_PATH", DEFAULT_IDENTITY_TOKEN_PATH),
            authority_host=os.getenv("AZURE_AUTHORITY_HOST", DEFAULT_AUTHORITY_HOST),
            token_scope=os.getenv("AZURE_TOKEN_SCOPE", DEFAULT_TOKEN_SCOPE),
            default_tenant_id=os.getenv("AZURE_TENANT_ID", ""),
            token_refresh_buffer_seconds=float(
                os.getenv("TOKEN_REFRESH_BUFFER_SECONDS", str(DEFAULT_TOKEN_REFRESH_BUFFER_SECONDS))
            ),
            http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", "30.0")),
            min_retry_delay_seconds=float(os.getenv("MIN_RETRY_DELAY_SECONDS", "1.0")),
            max_retry_delay_seconds=float(os.getenv("MAX_RETRY_DELAY_SECONDS", "60.0")),
            retry_backoff=float(os.getenv("RETRY_BACKOFF", "2.0")),
            backoff_jitter=float(os.getenv("BACKOFF_JITTER", "0.1")),
            min_requeue_delay_seconds=float(os.getenv("MIN_REQUEUE_DELAY_SECONDS", "1.0")),
            teardown_retry_seconds=float(os.getenv("TEARDOWN_RETRY_SECONDS", "10.0")),
            metrics_port=int(os.getenv("METRICS_PORT", "8080")),
            max_workers=int(os.getenv("MAX_WORKERS", "4")),
        )


_config: OperatorConfig | None = None


def get_config() -> OperatorConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = OperatorConfig.from_env()
    return _config


def set_config(config: OperatorConfig | None) -> None:
    """Replace the process-wide configuration (None forces a reload)."""
    global _config
    _config = config
