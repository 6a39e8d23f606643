"""Builder for registry docker-config documents."""

from __future__ import annotations

import json

from ..services.acr.models import AccessToken


def render_docker_config(acr_server: str, token: AccessToken | str) -> str:
    """Render the .dockerconfigjson document for an ACR refresh token.

    Args:
        acr_server: Registry login server, e.g. example.azurecr.io
        token: ACR refresh token

    Returns:
        JSON document of the shape {"auths": {<server>: {"identitytoken": <token>}}}
    """
    document = {
        "auths": {
            acr_server: {
                "identitytoken": str(token),
            },
        },
    }
    return json.dumps(document, separators=(",", ":"))


def parse_docker_config(payload: str | bytes, acr_server: str) -> str:
    """Extract the identity token for a registry from a docker-config document.

    Raises:
        ValueError: If the document is malformed or has no entry for the registry
    """
    try:
        document = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ValueError(f"docker config is not valid JSON: {e}") from e

    auths = document.get("auths") if isinstance(document, dict) else None
    if not isinstance(auths, dict) or acr_server not in auths:
        raise ValueError(f"docker config has no auths entry for {acr_server}")

    entry = auths[acr_server]
    token = entry.get("identitytoken") if isinstance(entry, dict) else None
    if not token:
        raise ValueError(f"docker config entry for {acr_server} has no identitytoken")
    return token
