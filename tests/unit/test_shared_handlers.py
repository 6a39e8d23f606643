"""Tests for shared handler utilities."""

from __future__ import annotations

from unittest.mock import Mock, patch

import pytest
from kubernetes import client, config

from wi_acrpull_operator.handlers import shared
from wi_acrpull_operator.handlers.shared import (
    get_binding,
    get_k8s_client,
    load_kube_config,
    patch_binding_status,
)
from wi_acrpull_operator.utils.k8s import call_k8s, is_not_found


@pytest.fixture
def fresh_kube_config(monkeypatch):
    monkeypatch.setattr(shared, "_config_loaded", False)


class TestLoadKubeConfig:
    """Test cases for load_kube_config."""

    @patch("wi_acrpull_operator.handlers.shared.config")
    def test_in_cluster(self, mock_config, fresh_kube_config):
        mock_config.ConfigException = config.ConfigException

        load_kube_config()

        mock_config.load_incluster_config.assert_called_once()
        mock_config.load_kube_config.assert_not_called()

    @patch("wi_acrpull_operator.handlers.shared.config")
    def test_falls_back_to_kubeconfig(self, mock_config, fresh_kube_config):
        mock_config.ConfigException = config.ConfigException
        mock_config.load_incluster_config.side_effect = config.ConfigException("not in cluster")

        load_kube_config()

        mock_config.load_kube_config.assert_called_once()

    @patch("wi_acrpull_operator.handlers.shared.config")
    def test_loads_once(self, mock_config, fresh_kube_config):
        mock_config.ConfigException = config.ConfigException

        load_kube_config()
        load_kube_config()

        assert mock_config.load_incluster_config.call_count == 1

    @patch("wi_acrpull_operator.handlers.shared.client")
    @patch("wi_acrpull_operator.handlers.shared.load_kube_config")
    def test_get_k8s_client(self, mock_load, mock_client):
        assert get_k8s_client() is mock_client.CustomObjectsApi.return_value

        mock_load.assert_called_once()


class TestGetBinding:
    """Test cases for get_binding."""

    def test_returns_object(self):
        api = Mock()
        api.get_namespaced_custom_object.return_value = {"metadata": {"name": "x"}}

        assert get_binding(api, "default", "x") == {"metadata": {"name": "x"}}

        api.get_namespaced_custom_object.assert_called_once_with(
            group="wi-acrpull.microsoft.com",
            version="v1",
            namespace="default",
            plural="wipullbindings",
            name="x",
        )

    def test_not_found_returns_none(self):
        api = Mock()
        api.get_namespaced_custom_object.side_effect = client.exceptions.ApiException(status=404)

        assert get_binding(api, "default", "x") is None

    def test_other_errors_raise(self):
        api = Mock()
        api.get_namespaced_custom_object.side_effect = client.exceptions.ApiException(status=500)

        with pytest.raises(client.exceptions.ApiException):
            get_binding(api, "default", "x")


class TestPatchBindingStatus:
    def test_patch_binding_status_wraps_body(self):
        """Test that the status dict is wrapped under a status key."""
        api = Mock()

        patch_binding_status(api, "default", "x", {"error": None})

        kwargs = api.patch_namespaced_custom_object_status.call_args.kwargs
        assert kwargs["body"] == {"status": {"error": None}}
        assert kwargs["plural"] == "wipullbindings"
        assert kwargs["name"] == "x"


class TestCallK8s:
    """Test cases for call_k8s."""

    @patch("wi_acrpull_operator.utils.k8s.metrics")
    def test_success_metrics(self, mock_metrics):
        fn = Mock(return_value="ok")

        assert call_k8s("read_secret", fn, name="s") == "ok"

        fn.assert_called_once_with(name="s")
        mock_metrics.api_call_total.labels.assert_called_with(
            api_type="k8s", operation="read_secret", result="success"
        )
        mock_metrics.api_call_duration_seconds.labels.assert_called_with(
            api_type="k8s", operation="read_secret"
        )

    @patch("wi_acrpull_operator.utils.k8s.metrics")
    def test_error_metrics_and_reraise(self, mock_metrics):
        fn = Mock(side_effect=client.exceptions.ApiException(status=409))

        with pytest.raises(client.exceptions.ApiException):
            call_k8s("replace_secret", fn)

        mock_metrics.api_call_total.labels.assert_called_with(
            api_type="k8s", operation="replace_secret", result="error"
        )

    def test_is_not_found(self):
        assert is_not_found(client.exceptions.ApiException(status=404))
        assert not is_not_found(client.exceptions.ApiException(status=409))
        assert not is_not_found(ValueError("x"))
