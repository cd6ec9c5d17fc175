import asyncio
import logging
import ssl

import httpx
import pytest

from pipeline.errors import TransportError
from pipeline.fetcher import HttpFetcher, build_ssl_context, load_extra_ca

from conftest import FakeWeb

PAGE = "https://site.example/page"


def _fetch(web: FakeWeb, method: str = "get_text", url: str = PAGE, **kwargs):
    async def run():
        async with HttpFetcher(user_agent="TestAgent/1.0", transport=web.transport) as fetcher:
            return await getattr(fetcher, method)(url, **kwargs)

    return asyncio.run(run())


class TestLoadExtraCa:
    def test_pem_is_returned_as_is(self, tmp_path):
        pem = "-----BEGIN CERTIFICATE-----\nMIIB\n-----END CERTIFICATE-----\n"
        path = tmp_path / "ca.pem"
        path.write_text(pem)

        assert load_extra_ca(str(path)) == pem

    def test_der_is_wrapped_in_pem(self, tmp_path):
        path = tmp_path / "ca.der"
        path.write_bytes(bytes(range(256)) * 2)

        pem = load_extra_ca(str(path))
        lines = pem.strip().split("\n")

        assert lines[0] == "-----BEGIN CERTIFICATE-----"
        assert lines[-1] == "-----END CERTIFICATE-----"
        assert all(len(line) <= 64 for line in lines[1:-1])


class TestBuildSslContext:
    def test_default_roots_without_extra_path(self):
        assert isinstance(build_ssl_context(None), ssl.SSLContext)

    def test_missing_file_falls_back_with_warning(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING):
            context = build_ssl_context(str(tmp_path / "missing.pem"))

        assert isinstance(context, ssl.SSLContext)
        assert "Failed to load extra CA certs" in caplog.text

    def test_malformed_certificate_falls_back_with_warning(self, tmp_path, caplog):
        path = tmp_path / "bad.der"
        path.write_bytes(b"\x00\x01not a certificate")

        with caplog.at_level(logging.WARNING):
            context = build_ssl_context(str(path))

        assert isinstance(context, ssl.SSLContext)
        assert "Failed to load extra CA certs" in caplog.text


class TestHttpFetcher:
    def test_sends_identification_header(self):
        web = FakeWeb({PAGE: "<p>ok</p>"})

        assert _fetch(web) == "<p>ok</p>"
        assert web.requests[0].headers["User-Agent"] == "TestAgent/1.0"

    def test_follows_redirects(self):
        def handler(request):
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": PAGE})
            return httpx.Response(200, text="moved")

        async def run():
            async with HttpFetcher(user_agent="t", transport=httpx.MockTransport(handler)) as fetcher:
                return await fetcher.get_text("https://site.example/old")

        assert asyncio.run(run()) == "moved"

    def test_error_status_raises(self):
        web = FakeWeb({PAGE: 404})

        with pytest.raises(TransportError) as exc_info:
            _fetch(web)
        assert exc_info.value.status_code == 404
        assert exc_info.value.url == PAGE

    def test_network_failure_raises(self):
        web = FakeWeb({PAGE: httpx.ReadTimeout("timed out")})

        with pytest.raises(TransportError) as exc_info:
            _fetch(web)
        assert exc_info.value.status_code is None

    def test_get_json(self):
        web = FakeWeb({PAGE: {"items": [1, 2]}})

        assert _fetch(web, "get_json", params={"q": "x"}) == {"items": [1, 2]}
        assert web.requests[0].url.params["q"] == "x"

    def test_invalid_json_raises(self):
        web = FakeWeb({PAGE: "<html>not json</html>"})

        with pytest.raises(TransportError, match="invalid JSON"):
            _fetch(web, "get_json")
