"""Main entry point for the WI ACR Pull Operator.

Run with ``kopf run -m wi_acrpull_operator.main --all-namespaces``.
"""

from __future__ import annotations

import threading
from typing import Any

import kopf
from werkzeug.serving import make_server

from . import handlers  # noqa: F401
from . import health
from . import logging as structured_logging
from .config import get_config
from .handlers.shared import load_kube_config
from .tracing import initialize_tracing


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the operator."""
    config = get_config()

    # Set up structured JSON logging
    structured_logging.setup_structured_logging()

    # Configure persistence
    # Use AnnotationsProgressStorage to avoid conflicts with status updates
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()

    settings.posting.level = 0
    settings.networking.request_timeout = config.http_timeout_seconds
    settings.execution.max_workers = config.max_workers

    load_kube_config()
    initialize_tracing()

    # Start metrics HTTP server with health check endpoints
    combined_app = health.create_combined_wsgi_app()
    server = make_server("", config.metrics_port, combined_app, threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    health.set_ready()
