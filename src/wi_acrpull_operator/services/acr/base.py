"""Base token exchanger interface."""

from __future__ import annotations

from typing import Protocol

from .models import AccessToken


class TokenExchanger(Protocol):
    """Protocol defining the registry token exchange."""

    def exchange(self, client_id: str, tenant_id: str, registry: str) -> AccessToken:
        """Exchange the workload identity for a registry-scoped refresh token."""
        ...
