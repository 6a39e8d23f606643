"""Azure Container Registry token exchange."""

from .base import TokenExchanger
from .client import AcrTokenExchanger
from .models import AccessToken

__all__ = [
    "AccessToken",
    "AcrTokenExchanger",
    "TokenExchanger",
]
