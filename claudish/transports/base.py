"""Base class for provider transports.

A transport owns everything about *where* and *how* a request is sent to
one provider: endpoint, headers, last-minute payload shaping, credentials
and admission through the provider's request queue. What the payload
contains is the adapter's job.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog
from pydantic import SecretStr

from claudish.auth import AuthCredential, AuthManager
from claudish.config.settings import Settings
from claudish.core.errors import (
    AuthenticationError,
    GatewayError,
    TransportConfigurationError,
)
from claudish.services.request_queue import RequestQueue
from claudish.streaming.base import StreamFormat


logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RequestOptions:
    """Per-request transport options passed to the HTTP client."""

    timeout: float | None = None


class ProviderTransport(ABC):
    """One provider's endpoint, headers, auth and queue."""

    name: str = "provider"
    display_name: str = "Provider"
    stream_format: StreamFormat = StreamFormat.OPENAI_SSE
    supports_forced_refresh: bool = False

    def __init__(
        self,
        model_id: str,
        *,
        settings: Settings,
        queue: RequestQueue | None = None,
    ) -> None:
        self.model_id = model_id
        self.settings = settings
        self.queue = queue

    @abstractmethod
    def get_endpoint(self) -> str:
        """Full URL of the streaming endpoint."""

    @abstractmethod
    def get_headers(self) -> dict[str, str]:
        """Provider headers, including credentials loaded by :meth:`refresh_auth`."""

    def transform_payload(self, payload: dict[str, Any]) -> dict[str, Any]:
        return payload

    def get_extra_payload_fields(self) -> dict[str, Any]:
        return {}

    def get_request_options(self) -> RequestOptions:
        return RequestOptions()

    def parser_options(self) -> dict[str, Any]:
        """Extra keyword arguments for this transport's stream parser."""
        return {}

    def context_window(self) -> int | None:
        """Context window discovered by the transport, if any."""
        return None

    async def refresh_auth(self) -> None:
        """Make sure credentials are loaded; cheap when they already are."""

    async def force_refresh_auth(self) -> None:
        raise NotImplementedError(f"{self.name} does not support forced refresh")

    async def enqueue_request(self, send: Callable[[], Awaitable[T]]) -> T:
        """Run ``send`` through the bound queue, or directly without one."""
        if self.queue is None:
            return await send()
        return await self.queue.enqueue(send)

    def _require_key(self, key: SecretStr | None, env_var: str) -> str:
        if key is None or not key.get_secret_value():
            raise TransportConfigurationError(
                self.name, f"API key not configured (set {env_var})"
            )
        return key.get_secret_value()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model_id={self.model_id!r})"


class OAuthTransport(ProviderTransport):
    """Transport whose bearer token comes from a shared :class:`AuthManager`.

    The transport keeps only a transient copy of the credential, loaded
    before each call. Calls carry a fixed timeout from the HTTP settings.
    """

    supports_forced_refresh = True

    def __init__(
        self,
        model_id: str,
        *,
        settings: Settings,
        auth: AuthManager,
        queue: RequestQueue | None = None,
    ) -> None:
        super().__init__(model_id, settings=settings, queue=queue)
        self.auth = auth
        self._credential: AuthCredential | None = None

    @property
    def access_token(self) -> str:
        if self._credential is None:
            raise AuthenticationError(
                f"{self.display_name} credentials not loaded", provider=self.name
            )
        return self._credential.access_token.get_secret_value()

    def get_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    def get_request_options(self) -> RequestOptions:
        return RequestOptions(timeout=self.settings.http.oauth_request_timeout)

    async def refresh_auth(self) -> None:
        try:
            self._credential = await self.auth.get_credential()
        except GatewayError as e:
            raise AuthenticationError(
                f"{self.display_name} auth failed: {e.message}", provider=self.name
            ) from e

    async def force_refresh_auth(self) -> None:
        logger.info("auth_force_refresh", provider=self.name)
        await self.auth.refresh_token()
        self._credential = await self.auth.get_credential()
