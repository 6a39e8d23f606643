"""Tests for error sanitization."""

from __future__ import annotations

import jwt

from wi_acrpull_operator.utils.errors import sanitize_error_message, sanitize_exception


class TestSanitizeErrorMessage:
    """Test cases for sanitize_error_message."""

    def test_plain_message_unchanged(self):
        message = "ACR token exchange endpoint returned error status: 401"

        assert sanitize_error_message(message) == message

    def test_form_encoded_tokens(self):
        message = "POST failed: access_token=abc123&service=x.azurecr.io&client_assertion=xyz"

        sanitized = sanitize_error_message(message)

        assert "abc123" not in sanitized
        assert "xyz" not in sanitized
        assert "access_token=[REDACTED]" in sanitized
        assert "service=x.azurecr.io" in sanitized

    def test_json_tokens(self):
        message = 'body: {"refresh_token": "secret-value", "scope": "repository:*:pull"}'

        sanitized = sanitize_error_message(message)

        assert "secret-value" not in sanitized
        assert "repository:*:pull" in sanitized

    def test_docker_config_identity_token(self):
        message = '{"auths":{"x.azurecr.io":{"identitytoken":"opaque-token"}}}'

        assert "opaque-token" not in sanitize_error_message(message)

    def test_bearer_header(self):
        sanitized = sanitize_error_message("Authorization: Bearer abc.def-ghi")

        assert "abc.def-ghi" not in sanitized
        assert "Bearer [REDACTED]" in sanitized

    def test_bare_jwt(self):
        token = jwt.encode({"exp": 1}, "key", algorithm="HS256")

        sanitized = sanitize_error_message(f"unexpected token {token} in response")

        assert token not in sanitized
        assert sanitized == "unexpected token [REDACTED] in response"


class TestSanitizeException:
    def test_uses_exception_message(self):
        error = RuntimeError("refresh_token=abc")

        assert sanitize_exception(error) == "refresh_token=[REDACTED]"
