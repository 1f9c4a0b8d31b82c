"""The shared httpx client used for every provider call."""

import os
from pathlib import Path
from typing import Any

import httpx
import structlog

from claudish.config.settings import HTTPSettings, Settings


logger = structlog.get_logger(__name__)

_PROXY_ENV_VARS = ("HTTPS_PROXY", "https_proxy", "ALL_PROXY", "HTTP_PROXY", "http_proxy")
_CA_BUNDLE_ENV_VARS = ("REQUESTS_CA_BUNDLE", "SSL_CERT_FILE")


class HTTPClientFactory:
    """Builds the client the service container shares between providers.

    The read timeout is long because provider streams can idle between
    tokens; transports that need a tighter ceiling (OAuth, local servers)
    pass their own timeout per request.
    """

    @staticmethod
    def create_client(
        *, settings: Settings | None = None, **kwargs: Any
    ) -> httpx.AsyncClient:
        http = settings.http if settings is not None else HTTPSettings()
        proxy = proxy_from_env()
        verify = ca_bundle_from_env() if http.verify_ssl else False

        transport = httpx.AsyncHTTPTransport(
            limits=httpx.Limits(
                max_connections=http.max_connections,
                max_keepalive_connections=http.max_keepalive_connections,
            ),
            verify=verify,
            proxy=proxy,
        )
        timeout = httpx.Timeout(
            connect=http.connect_timeout,
            read=http.read_timeout,
            write=http.write_timeout,
            pool=http.pool_timeout,
        )

        logger.info(
            "http_client_created",
            connect_timeout=http.connect_timeout,
            read_timeout=http.read_timeout,
            max_connections=http.max_connections,
            verify_ssl=http.verify_ssl,
            has_proxy=proxy is not None,
        )
        return httpx.AsyncClient(timeout=timeout, transport=transport, **kwargs)


def proxy_from_env() -> str | None:
    """First proxy URL set in the environment, HTTPS before HTTP."""
    for name in _PROXY_ENV_VARS:
        value = os.environ.get(name)
        if value:
            logger.debug("proxy_configured", env_var=name)
            return value
    return None


def ca_bundle_from_env() -> str | bool:
    """Path of a CA bundle named in the environment, or default verification."""
    for name in _CA_BUNDLE_ENV_VARS:
        path = os.environ.get(name)
        if path and Path(path).exists():
            logger.info("ssl_ca_bundle_configured", ca_bundle_path=path)
            return path
    return True
