"""Dependency injection container for the gateway's shared services.

The container is built once per application and passed explicitly to
whatever needs it. It owns everything that must be shared across
concurrent streams: the HTTP client, per-provider request queues, auth
managers and per-model adapter state.
"""

import inspect
from collections.abc import Callable
from typing import Any, TypeVar, cast

import httpx
import structlog

from claudish.adapters.gemini import GeminiAdapter, ToolCallCache
from claudish.auth import (
    AuthManager,
    CodeAssistTokenSource,
    OAuthRefreshTokenSource,
    TokenSource,
)
from claudish.config.settings import Settings
from claudish.core.errors import TransportConfigurationError
from claudish.core.http_client import HTTPClientFactory
from claudish.services.request_queue import QueueStats, RequestQueue
from claudish.services.token_tracker import UsageRegistry
from claudish.transports.local import LocalTransport


logger = structlog.get_logger(__name__)

T = TypeVar("T")

VERTEX_AUTH = "vertex"
CODE_ASSIST_AUTH = "gemini-codeassist"


class ServiceContainer:
    """Dependency injection container for all services."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._services: dict[object, Any] = {}
        self._factories: dict[object, Callable[[], Any]] = {}
        self._queues: dict[str, RequestQueue] = {}
        self._auth_managers: dict[str, AuthManager] = {}
        self._gemini_tool_calls: dict[str, ToolCallCache] = {}
        self._local_transports: dict[tuple[str, str], LocalTransport] = {}

        self.register_service(Settings, self.settings)
        self.register_service(
            httpx.AsyncClient,
            factory=lambda: HTTPClientFactory.create_client(settings=self.settings),
        )
        self.register_service(UsageRegistry, factory=UsageRegistry)

    def register_service(
        self,
        service_type: object,
        instance: Any | None = None,
        factory: Callable[[], Any] | None = None,
    ) -> None:
        """Register a service instance or factory."""
        if instance is not None:
            self._services[service_type] = instance
        elif factory is not None:
            self._factories[service_type] = factory
        else:
            raise ValueError("Either instance or factory must be provided")

    def get_service(self, service_type: type[T]) -> T:
        """Get a service instance, creating it from its factory on first use."""
        if service_type not in self._services:
            if service_type in self._factories:
                self._services[service_type] = self._factories[service_type]()
            else:
                type_name = getattr(service_type, "__name__", str(service_type))
                raise ValueError(f"Service {type_name} not registered")
        return cast(T, self._services[service_type])

    def get_http_client(self) -> httpx.AsyncClient:
        return self.get_service(httpx.AsyncClient)

    def get_usage_registry(self) -> UsageRegistry:
        return self.get_service(UsageRegistry)

    # Queues

    def get_queue(self, name: str) -> RequestQueue:
        """Shared queue for a provider class (``gemini``, ``openrouter``, local names)."""
        queue = self._queues.get(name)
        if queue is None:
            queue = self._create_queue(name)
            self._queues[name] = queue
            logger.debug(
                "request_queue_created",
                queue=name,
                max_concurrency=queue.max_concurrency,
                min_interval=queue.min_interval,
            )
        return queue

    def _create_queue(self, name: str) -> RequestQueue:
        queues = self.settings.queues
        if name == "gemini":
            concurrency, interval = queues.gemini_concurrency, queues.gemini_min_interval
        elif name == "openrouter":
            concurrency, interval = (
                queues.openrouter_concurrency,
                queues.openrouter_min_interval,
            )
        else:
            concurrency, interval = queues.local_concurrency, 0.0
        return RequestQueue(
            name,
            max_concurrency=concurrency,
            min_interval=interval,
            acquire_timeout=queues.acquire_timeout,
        )

    def queue_stats(self) -> list[QueueStats]:
        return [queue.stats() for queue in self._queues.values()]

    # Auth

    def get_auth_manager(self, name: str) -> AuthManager:
        """Auth manager for an OAuth credential domain, built on first use."""
        manager = self._auth_managers.get(name)
        if manager is None:
            manager = AuthManager(name, self._create_token_source(name))
            self._auth_managers[name] = manager
            logger.debug("auth_manager_created", provider=name)
        return manager

    def set_auth_manager(self, name: str, manager: AuthManager) -> None:
        self._auth_managers[name] = manager

    def _create_token_source(self, name: str) -> TokenSource:
        if name not in (VERTEX_AUTH, CODE_ASSIST_AUTH):
            raise TransportConfigurationError(name, "no OAuth flow for this provider")
        providers = self.settings.providers
        if not (providers.google_oauth_client_id and providers.google_oauth_refresh_token):
            raise TransportConfigurationError(
                name,
                "Google OAuth not configured (set PROVIDERS__GOOGLE_OAUTH_CLIENT_ID "
                "and PROVIDERS__GOOGLE_OAUTH_REFRESH_TOKEN)",
            )
        source: TokenSource = OAuthRefreshTokenSource(
            client_id=providers.google_oauth_client_id,
            client_secret=providers.google_oauth_client_secret,
            refresh_token=providers.google_oauth_refresh_token,
            http_client=self.get_http_client(),
            provider=name,
        )
        if name == CODE_ASSIST_AUTH:
            source = CodeAssistTokenSource(
                source,
                self.get_http_client(),
                project_id=providers.google_cloud_project,
            )
        return source

    # Per-model state shared across requests

    def get_gemini_adapter(self, model_id: str) -> GeminiAdapter:
        """Fresh adapter sharing the model's tool-call signature map.

        Stream state stays per request; the signatures must survive
        between turns.
        """
        tool_calls = self._gemini_tool_calls.setdefault(model_id, ToolCallCache())
        return GeminiAdapter(model_id, tool_calls=tool_calls)

    def get_local_transport(self, provider: str, model_id: str) -> LocalTransport:
        """Local transports cache the health check and detected context window."""
        key = (provider, model_id)
        transport = self._local_transports.get(key)
        if transport is None:
            transport = LocalTransport(
                model_id,
                settings=self.settings,
                provider=provider,
                http_client=self.get_http_client(),
                queue=self.get_queue(provider),
            )
            self._local_transports[key] = transport
        return transport

    async def close(self) -> None:
        """Close all managed resources during shutdown."""
        for service in list(self._services.values()):
            if service is self:
                continue
            try:
                if hasattr(service, "aclose") and callable(service.aclose):
                    maybe_coro = service.aclose()
                    if inspect.isawaitable(maybe_coro):
                        await maybe_coro
            except Exception as e:
                logger.error(
                    "service_close_failed",
                    service=type(service).__name__,
                    error=str(e),
                    exc_info=e,
                )
        self._services.clear()
        self._queues.clear()
        self._auth_managers.clear()
        self._gemini_tool_calls.clear()
        self._local_transports.clear()
        logger.debug("service_container_resources_closed")
