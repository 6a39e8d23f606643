"""Models for ACR token operations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import jwt

from ...errors import TokenDecodeError


@dataclass(frozen=True)
class AccessToken:
    """Opaque ACR refresh token.

    The token is a JWT issued by the registry; only its ``exp`` claim is
    read, the signature is never verified here.
    """

    value: str

    def __str__(self) -> str:
        return self.value

    def claims(self) -> dict:
        """Decode the token claims without verifying the signature."""
        try:
            return jwt.decode(self.value, options={"verify_signature": False})
        except jwt.PyJWTError as e:
            raise TokenDecodeError(f"failed to decode ACR token: {e}") from e

    def expiry(self) -> datetime:
        """Return the token expiry as an aware UTC datetime.

        Raises:
            TokenDecodeError: If the token is not a JWT or has no usable exp claim
        """
        claims = self.claims()
        exp = claims.get("exp")
        if exp is None:
            raise TokenDecodeError("ACR token has no exp claim")
        try:
            return datetime.fromtimestamp(float(exp), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError) as e:
            raise TokenDecodeError(f"ACR token has an invalid exp claim: {exp!r}") from e
