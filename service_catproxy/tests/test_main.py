"""
Unit tests for the proxy service HTTP surface and CLI.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi import FastAPI
from fastapi.testclient import TestClient

from service_catproxy.app.main import CatProxyService, config_from_args, create_app, main
from shared.config import ServiceConfig
from shared.errors import InvalidKeyError


CAT = b"\xff\xd8\xff\xe0upstream-cat\xff\xd9"


class TestCatProxyService:
    """Test cases for CatProxyService."""

    @pytest.fixture
    def cache_dir(self, tmp_path):
        """Cache root that does not exist yet."""
        return tmp_path / "cache"

    @pytest.fixture
    def config(self, cache_dir):
        """Service configuration pointing at a temporary cache."""
        return ServiceConfig(cache_dir=str(cache_dir), upstream_url="http://upstream.test")

    @pytest.fixture
    def upstream(self):
        """Upstream that always has the image."""
        client = MagicMock()
        client.fetch = AsyncMock(return_value=CAT)
        return client

    @pytest.fixture
    def service(self, config, upstream):
        """Create CatProxyService instance."""
        return CatProxyService(config, upstream=upstream)

    @pytest.fixture
    def client(self, service):
        """Create test client; entering it runs startup."""
        with TestClient(service.app) as client:
            yield client

    def test_startup_creates_cache_dir(self, client, cache_dir):
        """The cache root exists before the first request."""
        assert cache_dir.is_dir()

    def test_root_endpoint(self, client):
        """Root path serves the usage page."""
        response = client.get("/")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "Caching proxy for HTTP Cat" in response.text

    def test_invalid_code(self, client):
        """Invalid codes are a 400 echoing the value."""
        response = client.get("/abc")

        assert response.status_code == 400
        assert response.headers["content-type"].startswith("text/plain")
        assert '"abc"' in response.text

    def test_invalid_code_on_delete(self, client):
        """Validation applies to every method."""
        response = client.delete("/12345")

        assert response.status_code == 400
        assert '"12345"' in response.text

    def test_get_fetches_then_serves_from_cache(self, client, upstream, cache_dir):
        """First GET populates the cache file, second GET is a hit."""
        first = client.get("/200")

        assert first.status_code == 200
        assert first.headers["content-type"] == "image/jpeg"
        assert first.content == CAT
        assert first.headers["x-cache-outcome"] == "served_fetched"
        assert (cache_dir / "200.jpg").read_bytes() == CAT

        second = client.get("/200")

        assert second.status_code == 200
        assert second.content == CAT
        assert second.headers["x-cache-outcome"] == "served_cached"
        upstream.fetch.assert_awaited_once_with("200")

    def test_get_upstream_absent(self, client, upstream, cache_dir):
        """Upstream absence is a 404 and leaves no file."""
        upstream.fetch.return_value = None

        response = client.get("/999")

        assert response.status_code == 404
        assert response.text == "Image not found"
        assert not (cache_dir / "999.jpg").exists()

    def test_put_then_get(self, client, upstream, cache_dir):
        """PUT stores the raw body which GET then serves."""
        payload = bytes(range(256)) * 64

        put = client.put("/201", content=payload)

        assert put.status_code == 201
        assert put.text == "Image cached successfully"
        assert (cache_dir / "201.jpg").read_bytes() == payload

        get = client.get("/201")

        assert get.status_code == 200
        assert get.content == payload
        upstream.fetch.assert_not_awaited()

    def test_delete(self, client, cache_dir):
        """DELETE removes an existing entry and 404s afterwards."""
        client.put("/500", content=b"cat")

        deleted = client.delete("/500")
        again = client.delete("/500")

        assert deleted.status_code == 200
        assert deleted.text == "Image deleted from cache"
        assert not (cache_dir / "500.jpg").exists()
        assert again.status_code == 404
        assert again.text == "Image not found in cache"

    @pytest.mark.parametrize("method", ["POST", "PATCH", "TRACE", "PROPFIND", "CONNECT"])
    def test_method_not_allowed(self, client, method):
        """Unsupported methods on a valid code are a plain-text 405."""
        response = client.request(method, "/200", content=b"x")

        assert response.status_code == 405
        assert response.text == "Method not allowed"
        assert response.headers["content-type"].startswith("text/plain")
        assert response.headers["x-cache-outcome"] == "method_rejected"

    @pytest.mark.parametrize(
        "method",
        ["GET", "PUT", "DELETE", "POST", "PATCH", "OPTIONS", "TRACE", "PROPFIND", "CONNECT"],
    )
    def test_invalid_key_rejected_for_every_method(self, client, method):
        """Key validation runs before the method check."""
        response = client.request(method, "/abc")

        assert response.status_code == 400
        assert response.headers["content-type"].startswith("text/plain")
        assert '"abc"' in response.text

    @pytest.mark.parametrize("method", ["POST", "TRACE", "PROPFIND"])
    def test_root_page_for_any_method(self, client, method):
        """The usage page answers every method on the root path."""
        response = client.request(method, "/")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "Caching proxy for HTTP Cat" in response.text

    def test_preflight_not_answered_by_default(self, client):
        """Without configured origins a preflight is treated as a request."""
        response = client.options(
            "/abc",
            headers={"Origin": "https://cats.example", "Access-Control-Request-Method": "GET"},
        )

        assert response.status_code == 400
        assert '"abc"' in response.text
        assert "access-control-allow-origin" not in response.headers

    def test_preflight_answered_when_origins_configured(self, cache_dir, upstream):
        """Configured origins turn CORS on."""
        config = ServiceConfig(cache_dir=str(cache_dir), cors_origins=["https://cats.example"])
        service = CatProxyService(config, upstream=upstream)

        with TestClient(service.app) as client:
            response = client.options(
                "/200",
                headers={"Origin": "https://cats.example", "Access-Control-Request-Method": "GET"},
            )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "https://cats.example"

    @pytest.mark.parametrize("path,echoed", [("/%20abc", "%20abc"), ("/20%30", "20%30")])
    def test_invalid_key_echoed_as_sent(self, client, path, echoed):
        """Rejected keys are quoted without percent-decoding."""
        response = client.get(path)

        assert response.status_code == 400
        assert f'"{echoed}"' in response.text

    def test_query_string_ignored(self, client, upstream):
        """Only the path selects the key."""
        response = client.get("/200", params={"size": "large"})

        assert response.status_code == 200
        upstream.fetch.assert_awaited_once_with("200")

    def test_request_id_header(self, client):
        """Each response carries a request id, echoing the caller's."""
        response = client.get("/", headers={"X-Request-ID": "req-123"})

        assert response.headers["x-request-id"] == "req-123"
        assert client.get("/").headers["x-request-id"]

    def test_http_metrics_recorded(self, client, service):
        """Requests are counted by method and status."""
        client.get("/abc")

        assert service.metrics.get_sample(
            "http_requests_total", {"method": "GET", "status_code": "400"}
        ) == 1

    def test_escaping_proxy_exception_rendered_as_text(self, client, service):
        """Proxy errors escaping the coordinator keep their status."""
        service.coordinator.handle = AsyncMock(side_effect=InvalidKeyError("zzz"))

        response = client.get("/200")

        assert response.status_code == 400
        assert '"zzz"' in response.text

    def test_unhandled_exception_is_internal_error(self, service):
        """Anything else escaping becomes a generic 500."""
        service.coordinator.handle = AsyncMock(side_effect=RuntimeError("boom"))

        with TestClient(service.app, raise_server_exceptions=False) as client:
            response = client.get("/200")

        assert response.status_code == 500
        assert response.text == "Internal server error"

    def test_create_app(self, config):
        """create_app builds a FastAPI application."""
        assert isinstance(create_app(config), FastAPI)

    def test_default_store_uses_cache_dir(self, config, cache_dir):
        """Without an injected store the file store targets cache_dir."""
        service = CatProxyService(config)

        assert service.store.root == cache_dir
        assert service.upstream.base_url == "http://upstream.test"


class TestCommandLine:
    """Test cases for the command-line entry point."""

    def test_config_from_args(self, tmp_path):
        """Short flags mirror host, port and cache directory."""
        config = config_from_args(["-h", "127.0.0.1", "-p", "9000", "-c", str(tmp_path)])

        assert config.host == "127.0.0.1"
        assert config.port == 9000
        assert config.cache_dir == str(tmp_path)

    def test_long_flags(self, tmp_path):
        """Long flags and optional settings are accepted."""
        config = config_from_args([
            "--host", "0.0.0.0",
            "--port", "8081",
            "--cache", str(tmp_path),
            "--log-level", "debug",
            "--metrics-port", "9100",
        ])

        assert config.port == 8081
        assert config.log_level == "debug"
        assert config.metrics_port == 9100

    def test_missing_required_option(self):
        """All of host, port and cache are required."""
        with pytest.raises(SystemExit) as exc_info:
            config_from_args(["-h", "127.0.0.1", "-p", "9000"])

        assert exc_info.value.code == 2

    def test_help(self, capsys):
        """--help prints usage and exits cleanly."""
        with pytest.raises(SystemExit) as exc_info:
            config_from_args(["--help"])

        assert exc_info.value.code == 0
        assert "--cache" in capsys.readouterr().out

    @patch('service_catproxy.app.main.CatProxyService.run')
    def test_main_runs_service(self, mock_run, tmp_path):
        """main builds the service from arguments and runs it."""
        main(["-h", "127.0.0.1", "-p", "9000", "-c", str(tmp_path / "cache")])

        mock_run.assert_called_once_with()
