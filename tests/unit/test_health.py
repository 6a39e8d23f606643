"""Tests for health check endpoints."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from wi_acrpull_operator import health
from wi_acrpull_operator.health import create_combined_wsgi_app, is_ready, set_ready


def make_environ(path: str) -> dict:
    return {
        "REQUEST_METHOD": "GET",
        "PATH_INFO": path,
        "SCRIPT_NAME": "",
        "SERVER_NAME": "localhost",
        "SERVER_PORT": "8080",
        "wsgi.url_scheme": "http",
    }


@pytest.fixture(autouse=True)
def reset_ready():
    set_ready(False)
    yield
    set_ready(False)


class TestCombinedWsgiApp:
    """Test cases for the combined metrics and health app."""

    def test_healthz(self):
        start_response = MagicMock()

        result = create_combined_wsgi_app()(make_environ("/healthz"), start_response)

        assert b'"status":"ok"' in b"".join(result)
        assert "200" in start_response.call_args[0][0]

    def test_readyz_before_startup(self):
        start_response = MagicMock()

        result = create_combined_wsgi_app()(make_environ("/readyz"), start_response)

        assert b'"status":"starting"' in b"".join(result)
        assert "503" in start_response.call_args[0][0]

    def test_readyz_after_startup(self):
        set_ready()
        start_response = MagicMock()

        result = create_combined_wsgi_app()(make_environ("/readyz"), start_response)

        assert b'"status":"ready"' in b"".join(result)
        assert "200" in start_response.call_args[0][0]

    def test_other_paths_go_to_metrics(self):
        metrics_app = MagicMock(return_value=[b"# metrics"])
        start_response = MagicMock()
        environ = make_environ("/metrics")

        with patch.object(health, "make_wsgi_app", return_value=metrics_app):
            result = create_combined_wsgi_app()(environ, start_response)

        assert result == [b"# metrics"]
        metrics_app.assert_called_once_with(environ, start_response)

    def test_metrics_exposes_operator_metrics(self):
        start_response = MagicMock()

        result = create_combined_wsgi_app()(make_environ("/metrics"), start_response)

        assert b"wi_acrpull_operator_reconcile_total" in b"".join(result)


class TestReadiness:
    def test_set_ready(self):
        assert not is_ready()

        set_ready()
        assert is_ready()

        set_ready(False)
        assert not is_ready()
