"""
Tests for the bearer token provider and the shared transport.
"""
from __future__ import annotations

import dataclasses
import json

import httpx
import pytest

from oci_puller.errors import AuthError, PullCancelled
from oci_puller.storage.auth import TokenProvider, auth_headers
from oci_puller.storage.transport import Transport


class TestTokenProvider:
    """Test token acquisition against the fake token service."""

    def test_fetches_pull_scoped_token(self, transport, settings, registry):
        """Test that the request carries service and pull scope for the repository."""
        token = TokenProvider(transport, settings).fetch_token("library/alpine")

        assert token == registry.token
        [request] = registry.requests_of("token")
        url = httpx.URL(request.url)
        assert url.params["service"] == settings.auth_service
        assert url.params["scope"] == "repository:library/alpine:pull"

    def test_token_cached_per_repository(self, transport, settings, registry):
        """Test that one repository costs one token request per run."""
        provider = TokenProvider(transport, settings)
        provider.fetch_token("library/alpine")
        provider.fetch_token("library/alpine")
        provider.fetch_token("library/busybox")

        scopes = [httpx.URL(r.url).params["scope"] for r in registry.requests_of("token")]
        assert scopes == ["repository:library/alpine:pull", "repository:library/busybox:pull"]

    def test_access_token_field_accepted(self, transport, settings, registry):
        registry.token_response = (200, json.dumps({"access_token": "abc"}).encode())
        assert TokenProvider(transport, settings).fetch_token("library/alpine") == "abc"

    @pytest.mark.parametrize("status,body", [
        (200, b'{"expires_in": 300}'),
        (200, b'{"token": ""}'),
        (200, b'["token"]'),
        (200, b"not json"),
        (401, b'{"token": "x"}'),
        (503, b""),
    ])
    def test_bad_token_responses_raise_auth_error(self, transport, settings, registry, status, body):
        """Test that every malformed or failed token response is an AuthError."""
        registry.token_response = (status, body)
        with pytest.raises(AuthError):
            TokenProvider(transport, settings).fetch_token("library/alpine")

    def test_network_error_is_auth_error(self, settings):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with Transport(settings, transport=httpx.MockTransport(handler)) as t:
            with pytest.raises(AuthError, match="Network error"):
                TokenProvider(t, settings).fetch_token("library/alpine")

    def test_anonymous_makes_no_request(self, settings, registry):
        anonymous = dataclasses.replace(settings, auth_realm="")
        with Transport(anonymous, transport=registry.transport()) as t:
            assert TokenProvider(t, anonymous).fetch_token("library/alpine") is None
        assert registry.requests == []


class TestAuthHeaders:

    def test_bearer_header(self):
        assert auth_headers("abc") == {"Authorization": "Bearer abc"}

    def test_no_header_without_token(self):
        assert auth_headers(None) == {}


class TestTransport:
    """Test transport configuration and cancellation."""

    def test_user_agent_sent(self, settings):
        seen = {}

        def handler(request):
            seen["ua"] = request.headers["User-Agent"]
            return httpx.Response(200)

        with Transport(settings, transport=httpx.MockTransport(handler)) as t:
            t.get("https://registry.test/v2/")
        assert seen["ua"].startswith("oci-puller/")

    def test_configured_proxy_routes_all_traffic(self, settings):
        """Test that the configured proxy carries registry and token requests alike."""
        proxied = dataclasses.replace(settings, http_proxy="http://proxy.local:3128")

        with Transport(proxied) as t:
            mounts = t.client._mounts
            assert [pattern.pattern for pattern in mounts] == ["all://"]
            assert all(mount is not None for mount in mounts.values())
            for url in ("https://registry-1.docker.io/v2/", "https://auth.docker.io/token"):
                assert t.client._transport_for_url(httpx.URL(url)) is not t.client._transport

    def test_environment_proxy_ignored(self, settings, monkeypatch):
        """Test that HTTPS_PROXY and HTTP_PROXY never override the configured setting."""
        monkeypatch.setenv("HTTPS_PROXY", "http://env-proxy.local:3128")
        monkeypatch.setenv("HTTP_PROXY", "http://env-proxy.local:3128")
        direct = dataclasses.replace(settings, http_proxy=None)

        with Transport(direct) as t:
            assert t.client._mounts == {}
            url = httpx.URL("https://registry-1.docker.io/v2/")
            assert t.client._transport_for_url(url) is t.client._transport

    def test_cancel_stops_new_requests(self, settings, registry):
        with Transport(settings, transport=registry.transport()) as t:
            t.cancel()
            with pytest.raises(PullCancelled):
                t.get("https://registry.test/v2/")
        assert registry.requests == []

    def test_cancel_stops_streaming_between_chunks(self, settings):
        def handler(request):
            return httpx.Response(200, content=b"x" * 10)

        with Transport(settings, transport=httpx.MockTransport(handler)) as t:
            with t.stream("https://registry.test/v2/blob") as response:
                chunks = t.iter_bytes(response, chunk_size=4)
                assert next(chunks) == b"xxxx"
                t.cancel()
                with pytest.raises(PullCancelled):
                    next(chunks)
