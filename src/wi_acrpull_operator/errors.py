"""Error hierarchy for the WI ACR Pull Operator.

All of these are retried the same way: the reconciliation fails, the error
lands in the binding status, and the binding is reconciled again after
backoff. The types exist so that callers and logs can tell the failure
modes apart.
"""

from __future__ import annotations


class AcrPullError(Exception):
    """Base class for all operator errors."""


class IdentityTokenError(AcrPullError):
    """The projected workload identity token could not be read."""

    def __init__(self, path: str, cause: Exception | None = None):
        self.path = path
        self.cause = cause
        message = f"unable to read identity token from {path}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class BearerTokenError(AcrPullError):
    """The identity provider refused to issue a bearer token."""


class TokenExchangeError(AcrPullError):
    """The registry token exchange endpoint failed or returned garbage."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class TokenDecodeError(AcrPullError):
    """A registry token does not carry a decodable expiry."""


class OwnerReferenceError(AcrPullError):
    """An owner reference could not be built for a dependent object."""


class InvalidBindingError(AcrPullError):
    """Raised when a binding's spec cannot be reconciled as written."""
