"""ACR token exchange client implementation."""

from __future__ import annotations

import logging
import time
from urllib.parse import urlparse

import msal
import requests

from ... import metrics
from ...errors import BearerTokenError, IdentityTokenError, TokenExchangeError
from ...tracing import trace_span
from .models import AccessToken

logger = logging.getLogger(__name__)


class AcrTokenExchanger:
    """Exchanges a workload identity for an ACR refresh token.

    Two steps per exchange: an MSAL client-credentials flow against Azure AD
    with the projected service account token as the client assertion, then
    the registry's ``/oauth2/exchange`` endpoint. Nothing is retried or cached.
    """

    def __init__(
        self,
        identity_token_path: str,
        authority_host: str,
        scope: str,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the exchanger.

        Args:
            identity_token_path: Path of the projected identity token
            authority_host: Azure AD authority host, e.g. https://login.microsoftonline.com/
            scope: Scope requested for the bearer token
            timeout: Timeout for each HTTP request in seconds
            session: Optional requests session shared by MSAL and the registry call
        """
        self.identity_token_path = identity_token_path
        self.authority_host = authority_host
        self.scope = scope
        self.timeout = timeout
        self.session = session or requests.Session()

    def read_identity_token(self) -> str:
        """Read the projected identity token used as the client assertion."""
        try:
            with open(self.identity_token_path, encoding="utf-8") as f:
                token = f.read().strip()
        except OSError as e:
            raise IdentityTokenError(self.identity_token_path, e) from e
        if not token:
            raise IdentityTokenError(self.identity_token_path, ValueError("token file is empty"))
        return token

    def authority(self, tenant_id: str) -> str:
        """Return the Azure AD authority URL for a tenant."""
        return f"{self.authority_host.rstrip('/')}/{tenant_id}"

    def acquire_bearer_token(self, client_id: str, tenant_id: str) -> str:
        """Acquire an AAD bearer token for the workload identity.

        Raises:
            IdentityTokenError: If the identity token cannot be read
            BearerTokenError: If Azure AD rejects the assertion
            requests.RequestException: On transport failures
        """
        assertion = self.read_identity_token()

        with trace_span("acquire_bearer_token", attributes={"azure.tenant_id": tenant_id}):
            start_time = time.time()
            result = "error"
            try:
                app = msal.ConfidentialClientApplication(
                    client_id,
                    authority=self.authority(tenant_id),
                    client_credential={"client_assertion": assertion},
                    http_client=self.session,
                    timeout=self.timeout,
                )
                token_response = app.acquire_token_for_client(scopes=[self.scope]) or {}
                result = "success" if token_response.get("access_token") else "failed"
            except ValueError as e:
                # msal raises ValueError when the authority cannot be resolved
                raise BearerTokenError(f"unable to create confidential credential: {e}") from e
            finally:
                duration = time.time() - start_time
                metrics.api_call_total.labels(api_type="aad", operation="acquire_bearer_token", result=result).inc()
                metrics.api_call_duration_seconds.labels(api_type="aad", operation="acquire_bearer_token").observe(
                    duration
                )

        error = token_response.get("error")
        if error:
            description = token_response.get("error_description") or error
            raise BearerTokenError(f"unable to acquire bearer token: {description}")
        access_token = token_response.get("access_token")
        if not access_token:
            raise BearerTokenError("unable to acquire bearer token: response has no access_token")
        return access_token

    def exchange(self, client_id: str, tenant_id: str, registry: str) -> AccessToken:
        """Exchange the workload identity for an ACR refresh token.

        Args:
            client_id: Workload identity client ID
            tenant_id: Azure AD tenant ID
            registry: Registry login server, e.g. example.azurecr.io

        Returns:
            Registry refresh token

        Raises:
            IdentityTokenError: If the identity token cannot be read
            BearerTokenError: If no bearer token could be acquired
            TokenExchangeError: If the registry exchange fails
            requests.RequestException: On transport failures
        """
        bearer_token = self.acquire_bearer_token(client_id, tenant_id)

        exchange_url = f"https://{registry}/oauth2/exchange"
        service = urlparse(exchange_url).hostname
        if not service:
            raise TokenExchangeError(f"failed to parse token exchange url {exchange_url}")

        data = {
            "grant_type": "access_token",
            "service": service,
            "tenant": tenant_id,
            "access_token": bearer_token,
        }

        with trace_span("exchange_acr_token", attributes={"acr.server": registry}):
            response = self._post("acr", "exchange_token", exchange_url, data)

        if response.status_code != 200:
            raise TokenExchangeError(
                f"ACR token exchange endpoint returned error status: {response.status_code}. body: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            refresh_token = response.json()["refresh_token"]
        except (ValueError, KeyError, TypeError) as e:
            raise TokenExchangeError(
                f"failed to read token exchange response: {e}. response: {response.text}",
                status_code=response.status_code,
                body=response.text,
            ) from e
        if not isinstance(refresh_token, str) or not refresh_token:
            raise TokenExchangeError(
                "token exchange response has an empty refresh_token",
                status_code=response.status_code,
                body=response.text,
            )

        logger.debug(f"Exchanged workload identity {client_id} for an ACR token on {registry}")
        return AccessToken(refresh_token)

    def _post(self, api_type: str, operation: str, url: str, data: dict[str, str]) -> requests.Response:
        """POST a form and record call metrics."""
        start_time = time.time()
        try:
            response = self.session.post(
                url,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException:
            metrics.api_call_total.labels(api_type=api_type, operation=operation, result="error").inc()
            raise
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type=api_type, operation=operation).observe(duration)

        result = "success" if response.status_code == 200 else "failed"
        metrics.api_call_total.labels(api_type=api_type, operation=operation, result=result).inc()
        return response

