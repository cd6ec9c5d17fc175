"""
HTTP Fetcher

One httpx client per pipeline run, sending a fixed identification header and
trusting the platform roots plus an optional extra certificate.
"""

from __future__ import annotations

import base64
import logging
import ssl
import textwrap
from pathlib import Path
from typing import Any, Optional

import httpx

from config import Settings
from .errors import TransportError

logger = logging.getLogger(__name__)

PEM_MARKER = "BEGIN CERTIFICATE"


def load_extra_ca(path: str) -> str:
    """Read a certificate file as PEM text, wrapping raw DER bytes if needed."""
    raw = Path(path).read_bytes()
    text = raw.decode("utf-8", errors="ignore")
    if PEM_MARKER in text:
        return text

    b64 = base64.b64encode(raw).decode("ascii")
    body = "\n".join(textwrap.wrap(b64, 64))
    return f"-----BEGIN CERTIFICATE-----\n{body}\n-----END CERTIFICATE-----\n"


def build_ssl_context(extra_ca_path: Optional[str] = None) -> ssl.SSLContext:
    """Default trust roots, merged with ``extra_ca_path`` when it loads cleanly."""
    context = ssl.create_default_context()
    if not extra_ca_path:
        return context

    try:
        context.load_verify_locations(cadata=load_extra_ca(extra_ca_path))
        logger.info("Loaded extra CA certificate from %s", extra_ca_path)
    except (OSError, ssl.SSLError, ValueError) as exc:
        logger.warning("Failed to load extra CA certs from %s: %s", extra_ca_path, exc)
        return ssl.create_default_context()
    return context


class HttpFetcher:
    """
    Thin async wrapper over httpx used by every outbound call in the pipeline.

    Failures (connection errors and non-2xx statuses) are raised as
    TransportError. There is no retry: a failed call aborts the run.
    """

    def __init__(
        self,
        user_agent: str,
        timeout: float = 30.0,
        verify: ssl.SSLContext | bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.user_agent = user_agent
        self._client = httpx.AsyncClient(
            headers={"User-Agent": user_agent},
            timeout=timeout,
            verify=verify,
            follow_redirects=True,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "HttpFetcher":
        return cls(
            user_agent=settings.user_agent,
            timeout=settings.http_timeout_seconds,
            verify=build_ssl_context(settings.extra_ca_certs_path),
            transport=transport,
        )

    async def __aenter__(self) -> "HttpFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        logger.debug("%s %s", method, url)
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {url} failed: {exc}", url=url) from exc

        if response.is_error:
            raise TransportError(
                f"{method} {url} returned HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
            )
        return response

    async def get_text(
        self,
        url: str,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> str:
        response = await self._request("GET", url, params=params, headers=headers)
        return response.text

    async def get_json(
        self,
        url: str,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> Any:
        response = await self._request("GET", url, params=params, headers=headers)
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"GET {url} returned invalid JSON", url=url) from exc

