"""Health check endpoints for the operator."""

from typing import Any

from prometheus_client import make_wsgi_app
from werkzeug.wrappers import Request, Response

_ready = False


def set_ready(ready: bool = True) -> None:
    """Mark the operator as ready to serve /readyz."""
    global _ready
    _ready = ready


def is_ready() -> bool:
    return _ready


def _json_response(body: str, status: int) -> Response:
    return Response(body, mimetype="application/json", status=status)


def create_combined_wsgi_app() -> Any:
    """Create a WSGI app that combines metrics and health check endpoints.

    Returns:
        Combined WSGI application
    """
    metrics_app = make_wsgi_app()

    def combined_app(environ: dict[str, Any], start_response: Any) -> list[bytes]:
        """WSGI app that routes /healthz and /readyz, delegates /metrics to prometheus."""
        path = Request(environ).path

        if path == "/healthz":
            response = _json_response('{"status":"ok"}', 200)
            return response(environ, start_response)
        elif path == "/readyz":
            if _ready:
                response = _json_response('{"status":"ready"}', 200)
            else:
                response = _json_response('{"status":"starting"}', 503)
            return response(environ, start_response)
        else:
            # Delegate all other paths (including /metrics) to prometheus app
            return metrics_app(environ, start_response)

    return combined_app
