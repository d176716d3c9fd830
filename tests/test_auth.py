"""
Tests for bearer authentication and client identification.
"""

from __future__ import annotations

import pytest
from pydantic import SecretStr
from starlette.requests import Request

from inference_gateway.api.auth import (
    ANONYMOUS_CLIENT,
    authenticate,
    extract_bearer_token,
    get_client_address,
    get_client_identifier,
    load_server_api_key,
)
from inference_gateway.core.config import AuthConfig
from inference_gateway.domain.exceptions import AuthenticationError, ServerConfigurationError


def _request(headers: dict[str, str] | None = None, client: tuple[str, int] | None = None) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/v1/chat",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestLoadServerApiKey:
    def test_inline_key(self):
        assert load_server_api_key(AuthConfig(api_key=SecretStr("secret"))) == "secret"

    def test_key_file(self, tmp_path):
        key_file = tmp_path / "api_key"
        key_file.write_text("from-file\n", encoding="utf-8")

        assert load_server_api_key(AuthConfig(api_key_file=key_file)) == "from-file"

    def test_inline_key_takes_precedence(self, tmp_path):
        key_file = tmp_path / "api_key"
        key_file.write_text("from-file", encoding="utf-8")

        config = AuthConfig(api_key=SecretStr("inline"), api_key_file=key_file)

        assert load_server_api_key(config) == "inline"

    def test_rotated_key_file_is_reread(self, tmp_path):
        key_file = tmp_path / "api_key"
        key_file.write_text("first", encoding="utf-8")
        config = AuthConfig(api_key_file=key_file)
        assert load_server_api_key(config) == "first"

        key_file.write_text("second", encoding="utf-8")

        assert load_server_api_key(config) == "second"

    def test_missing_file_and_empty_values(self, tmp_path):
        assert load_server_api_key(AuthConfig()) is None
        assert load_server_api_key(AuthConfig(api_key=SecretStr(""))) is None
        assert load_server_api_key(AuthConfig(api_key_file=tmp_path / "absent")) is None


class TestAuthenticate:
    @pytest.fixture
    def config(self):
        return AuthConfig(api_key=SecretStr("correct-horse"))

    def test_valid_token(self, config):
        assert authenticate("Bearer correct-horse", config) == "correct-horse"

    @pytest.mark.parametrize(
        ("header", "message"),
        [
            (None, "Missing Authorization header"),
            ("", "Missing Authorization header"),
            ("Basic dXNlcjpwYXNz", "Invalid authorization scheme. Use Bearer token"),
            ("bearer correct-horse", "Invalid authorization scheme. Use Bearer token"),
            ("Bearer ", "Missing API token"),
            ("Bearer wrong-token", "Invalid API token"),
        ],
    )
    def test_rejections(self, config, header, message):
        with pytest.raises(AuthenticationError, match=message):
            authenticate(header, config)

    def test_unconfigured_server_key(self):
        with pytest.raises(ServerConfigurationError, match="Server configuration error"):
            authenticate("Bearer anything", AuthConfig())

    def test_missing_header_checked_before_configuration(self):
        with pytest.raises(AuthenticationError):
            authenticate(None, AuthConfig())

    def test_extract_strips_whitespace(self):
        assert extract_bearer_token("Bearer   token-1  ") == "token-1"


class TestClientIdentification:
    def test_token_prefix(self):
        assert get_client_identifier(_request(), "abcdefghijklmnop") == "token:abcdefgh"

    def test_cf_connecting_ip_preferred(self):
        request = _request(
            {"CF-Connecting-IP": "203.0.113.7", "X-Forwarded-For": "198.51.100.1"},
            client=("10.0.0.1", 5000),
        )

        assert get_client_identifier(request) == "ip:203.0.113.7"

    def test_first_forwarded_hop(self):
        request = _request({"X-Forwarded-For": "198.51.100.1, 10.0.0.2"}, client=("10.0.0.1", 5000))

        assert get_client_identifier(request) == "ip:198.51.100.1"

    def test_peer_address(self):
        assert get_client_identifier(_request(client=("10.0.0.1", 5000))) == "ip:10.0.0.1"

    def test_anonymous(self):
        assert get_client_identifier(_request()) == ANONYMOUS_CLIENT

    def test_get_client_address_ignores_blank_headers(self):
        assert get_client_address({"x-forwarded-for": " , "}, "10.0.0.9") == "10.0.0.9"
