"""Builder for token exchanger instances."""

from __future__ import annotations

from ..config import OperatorConfig
from ..services.acr.client import AcrTokenExchanger


def create_token_exchanger(config: OperatorConfig) -> AcrTokenExchanger:
    """Create a token exchanger from operator configuration.

    Args:
        config: Operator configuration

    Returns:
        Configured ACR token exchanger
    """
    return AcrTokenExchanger(
        identity_token_path=config.identity_token_path,
        authority_host=config.authority_host,
        scope=config.token_scope,
        timeout=config.http_timeout_seconds,
    )
