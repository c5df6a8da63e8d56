"""
Test suite for http_base http_client.

Tests cover:
- Request building from parsed url properties
- Basic / digest auth
- Success code range
"""

import pytest
from unittest.mock import patch
from requests.auth import HTTPBasicAuth, HTTPDigestAuth
from http_base.config_parser import parse_url_property
from http_base.http_client import http_request, is_http_success_code


class TestHttpRequest:
    """Tests for http_request."""

    def test_simple_get(self):
        url_object = parse_url_property("http://sensor.local/co2")
        with patch("http_base.http_client.requests.request") as mock_request:
            response = http_request(url_object)

        assert response is mock_request.return_value
        mock_request.assert_called_once_with(
            "GET",
            "http://sensor.local/co2",
            data=None,
            headers=None,
            auth=None,
            verify=False,
            timeout=20.0,
        )

    def test_post_with_options(self):
        url_object = parse_url_property({
            "url": "https://sensor.local/api",
            "method": "POST",
            "body": "read",
            "headers": {"Accept": "text/plain"},
            "auth": {"username": "admin", "password": "pw"},
            "strictSSL": True,
            "requestTimeout": 2500,
        })
        with patch("http_base.http_client.requests.request") as mock_request:
            http_request(url_object)

        args, kwargs = mock_request.call_args
        assert args == ("POST", "https://sensor.local/api")
        assert kwargs["data"] == "read"
        assert kwargs["headers"] == {"Accept": "text/plain"}
        assert isinstance(kwargs["auth"], HTTPBasicAuth)
        assert kwargs["auth"].username == "admin"
        assert kwargs["verify"] is True
        assert kwargs["timeout"] == 2.5

    def test_digest_auth(self):
        url_object = parse_url_property({
            "url": "http://sensor.local",
            "auth": {"username": "admin", "password": "pw", "digest": True},
        })
        with patch("http_base.http_client.requests.request") as mock_request:
            http_request(url_object)

        assert isinstance(mock_request.call_args[1]["auth"], HTTPDigestAuth)


class TestIsHttpSuccessCode:
    """Tests for is_http_success_code."""

    @pytest.mark.parametrize("code", [200, 201, 204, 299])
    def test_success(self, code):
        assert is_http_success_code(code) is True

    @pytest.mark.parametrize("code", [199, 300, 304, 404, 500])
    def test_failure(self, code):
        assert is_http_success_code(code) is False
