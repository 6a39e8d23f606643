"""Tests for rate limiting utilities."""

from __future__ import annotations

import time
from unittest.mock import patch

from wi_acrpull_operator.utils.rate_limit import rate_limit_k8s


class TestRateLimitK8s:
    """Test cases for Kubernetes API rate limiting."""

    def test_rate_limit_k8s_decorator(self):
        """Test that k8s rate limiting decorator works."""
        call_count = 0

        @rate_limit_k8s
        def test_func():
            nonlocal call_count
            call_count += 1
            return "success"

        assert test_func() == "success"
        assert call_count == 1

    def test_rate_limit_k8s_with_args(self):
        """Test rate limiting with function arguments."""

        @rate_limit_k8s
        def test_func(a, b, c=None):
            return f"{a}-{b}-{c}"

        assert test_func("x", "y", c="z") == "x-y-z"

    def test_rate_limit_k8s_preserves_name(self):
        @rate_limit_k8s
        def read_secret():
            return None

        assert read_secret.__name__ == "read_secret"

    @patch("wi_acrpull_operator.utils.rate_limit._K8S_RATE_LIMIT_PER_SECOND", 20.0)
    def test_rate_limit_k8s_enforces_rate(self):
        """Test that rate limiting enforces minimum interval."""
        call_times = []

        @rate_limit_k8s
        def test_func():
            call_times.append(time.time())

        for _ in range(3):
            test_func()

        for earlier, later in zip(call_times, call_times[1:]):
            # 1/20s apart, with a small tolerance for timer resolution
            assert later - earlier >= 0.04

    @patch("wi_acrpull_operator.utils.rate_limit.metrics")
    @patch("wi_acrpull_operator.utils.rate_limit._K8S_RATE_LIMIT_PER_SECOND", 20.0)
    def test_rate_limit_hits_are_counted(self, mock_metrics):
        @rate_limit_k8s
        def test_func():
            return None

        test_func()
        test_func()

        mock_metrics.rate_limit_hits_total.labels.assert_called_with(api_type="k8s")

    def test_errors_propagate(self):
        @rate_limit_k8s
        def failing():
            raise RuntimeError("boom")

        try:
            failing()
        except RuntimeError as e:
            assert str(e) == "boom"
        else:
            raise AssertionError("expected RuntimeError")
