"""Request orchestration: route, adapt, send, re-frame.

The gateway holds no per-request state of its own. Everything shared
between concurrent streams (HTTP client, queues, auth managers, per-model
adapter state, usage totals) lives in the :class:`ServiceContainer`.
"""

from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from claudish.adapters import (
    AdapterManager,
    AnthropicPassthroughAdapter,
    DefaultAdapter,
    LiteLLMAdapter,
    LocalModelAdapter,
    ModelAdapter,
    OllamaCloudAdapter,
    OpenAIAdapter,
    OpenRouterAdapter,
    filter_identity,
)
from claudish.core.errors import (
    AuthenticationError,
    GatewayError,
    ProviderConnectionError,
    UpstreamError,
    UpstreamTimeoutError,
)
from claudish.models.requests import (
    ImageBlock,
    MessageRequest,
    TextBlock,
    ToolResultBlock,
)
from claudish.routing import ANTHROPIC_COMPAT, LOCAL_PROVIDERS, Route, resolve_route
from claudish.services.container import (
    CODE_ASSIST_AUTH,
    VERTEX_AUTH,
    ServiceContainer,
)
from claudish.services.token_tracker import TokenStrategy
from claudish.streaming import GeminiSSEParser, StreamParser, parser_class_for
from claudish.transports import (
    AnthropicCompatTransport,
    GeminiApiKeyTransport,
    GeminiCodeAssistTransport,
    LiteLLMTransport,
    OllamaCloudTransport,
    OpenAITransport,
    OpenRouterTransport,
    PoeTransport,
    ProviderTransport,
    VertexOAuthTransport,
    parse_vertex_model,
)


logger = structlog.get_logger(__name__)

IMAGE_PLACEHOLDER = "[Image omitted: model does not support image input]"

_TOKEN_STRATEGIES = {
    "openai": TokenStrategy.DELTA,
    "glm": TokenStrategy.DELTA,
    "ollamacloud": TokenStrategy.ACCUMULATE,
}


def strip_images(request: MessageRequest) -> MessageRequest:
    """Copy of ``request`` with every image block replaced by a text placeholder."""

    def replace(block: Any) -> Any:
        if isinstance(block, ImageBlock):
            return TextBlock(text=IMAGE_PLACEHOLDER)
        if isinstance(block, ToolResultBlock) and not isinstance(block.content, str):
            return block.model_copy(
                update={"content": [replace(b) for b in block.content]}
            )
        return block

    messages = [
        message
        if isinstance(message.content, str)
        else message.model_copy(update={"content": [replace(b) for b in message.content]})
        for message in request.messages
    ]
    return request.model_copy(update={"messages": messages})


@dataclass
class UpstreamStream:
    """An accepted upstream response and the parser that will re-frame it."""

    route: Route
    transport: ProviderTransport
    adapter: ModelAdapter
    response: httpx.Response
    parser: StreamParser

    def events(self) -> AsyncIterator[bytes]:
        return self.parser.parse(self.response)

    async def aclose(self) -> None:
        await self.response.aclose()


class Gateway:
    """Serves canonical requests against whichever provider a model routes to."""

    def __init__(self, container: ServiceContainer) -> None:
        self.container = container
        self.settings = container.settings
        self.adapter_manager = AdapterManager()
        self._transport_builders: dict[str, Callable[[Route], ProviderTransport]] = {
            "openrouter": self._openrouter_transport,
            "gemini": self._gemini_transport,
            "gemini-codeassist": self._codeassist_transport,
            "vertex": self._vertex_transport,
            "openai": self._openai_transport,
            "glm": self._glm_transport,
            "litellm": self._litellm_transport,
            "poe": self._poe_transport,
            "ollamacloud": self._ollamacloud_transport,
            **{name: self._anthropic_compat_transport for name in ANTHROPIC_COMPAT},
            **{name: self._local_transport for name in LOCAL_PROVIDERS},
        }

    # --- routing and construction ---

    def resolve_route(self, model: str) -> Route:
        return resolve_route(model, self.settings.providers)

    def build_transport(self, route: Route) -> ProviderTransport:
        return self._transport_builders[route.provider](route)

    def build_adapter(self, route: Route, transport: ProviderTransport) -> ModelAdapter:
        provider, model = route.provider, route.model
        if provider == "openrouter":
            return OpenRouterAdapter(model, self.adapter_manager.get_adapter(model))
        if provider in ("gemini", "gemini-codeassist"):
            return self.container.get_gemini_adapter(model)
        if provider == "vertex":
            parsed = parse_vertex_model(model)
            if parsed.publisher == "google":
                return self.container.get_gemini_adapter(parsed.model)
            if parsed.publisher == "anthropic":
                return AnthropicPassthroughAdapter(parsed.model, "vertex")
            return DefaultAdapter(parsed.openapi_model_id)
        if provider in ("openai", "glm"):
            return OpenAIAdapter(model)
        if provider == "litellm":
            return LiteLLMAdapter(model)
        if provider in ANTHROPIC_COMPAT:
            return AnthropicPassthroughAdapter(model, provider)
        if provider == "ollamacloud":
            return OllamaCloudAdapter(model)
        if provider in LOCAL_PROVIDERS:
            return LocalModelAdapter(
                model, provider, context_window=transport.context_window() or 0
            )
        return DefaultAdapter(model)

    def token_strategy(self, route: Route) -> TokenStrategy:
        if route.is_local:
            return TokenStrategy.LOCAL
        return _TOKEN_STRATEGIES.get(route.provider, TokenStrategy.STANDARD)

    def _openrouter_transport(self, route: Route) -> ProviderTransport:
        return OpenRouterTransport(
            route.model,
            settings=self.settings,
            queue=self.container.get_queue("openrouter"),
        )

    def _gemini_transport(self, route: Route) -> ProviderTransport:
        return GeminiApiKeyTransport(
            route.model,
            settings=self.settings,
            queue=self.container.get_queue("gemini"),
        )

    def _codeassist_transport(self, route: Route) -> ProviderTransport:
        return GeminiCodeAssistTransport(
            route.model,
            settings=self.settings,
            auth=self.container.get_auth_manager(CODE_ASSIST_AUTH),
            queue=self.container.get_queue("gemini"),
        )

    def _vertex_transport(self, route: Route) -> ProviderTransport:
        providers = self.settings.providers
        parsed = parse_vertex_model(route.model)
        if providers.vertex_api_key is not None and parsed.publisher == "google":
            # Express mode: Gemini API endpoint with a Vertex key
            transport = GeminiApiKeyTransport(
                parsed.model,
                settings=self.settings,
                queue=self.container.get_queue("gemini"),
                api_key=providers.vertex_api_key,
                key_env_var="PROVIDERS__VERTEX_API_KEY",
            )
            transport.name = "vertex"
            transport.display_name = "Vertex AI Express"
            return transport
        return VertexOAuthTransport(
            route.model,
            settings=self.settings,
            auth=self.container.get_auth_manager(VERTEX_AUTH),
        )

    def _openai_transport(self, route: Route) -> ProviderTransport:
        return OpenAITransport(
            route.model,
            settings=self.settings,
            api_key=self.settings.providers.openai_api_key,
        )

    def _glm_transport(self, route: Route) -> ProviderTransport:
        providers = self.settings.providers
        return OpenAITransport(
            route.model,
            settings=self.settings,
            provider="glm",
            base_url=providers.glm_base_url,
            api_path="/chat/completions",
            api_key=providers.glm_api_key,
        )

    def _litellm_transport(self, route: Route) -> ProviderTransport:
        return LiteLLMTransport(route.model, settings=self.settings)

    def _poe_transport(self, route: Route) -> ProviderTransport:
        return PoeTransport(route.model, settings=self.settings)

    def _ollamacloud_transport(self, route: Route) -> ProviderTransport:
        return OllamaCloudTransport(route.model, settings=self.settings)

    def _anthropic_compat_transport(self, route: Route) -> ProviderTransport:
        return AnthropicCompatTransport(
            route.model, settings=self.settings, provider=route.provider
        )

    def _local_transport(self, route: Route) -> ProviderTransport:
        return self.container.get_local_transport(route.provider, route.model)

    # --- pipeline ---

    async def stream(self, request: MessageRequest) -> AsyncIterator[bytes]:
        """Canonical SSE bytes for ``request``.

        Errors raised before the upstream accepted the request propagate
        from the first iteration; later failures become ``error`` events.
        """
        upstream = await self.open_stream(request)
        async for chunk in upstream.events():
            yield chunk

    async def open_stream(self, request: MessageRequest) -> UpstreamStream:
        """Send ``request`` upstream and return the accepted response with its parser."""
        route = self.resolve_route(request.model)
        transport = self.build_transport(route)

        await self._refresh_auth(transport)

        adapter = self.build_adapter(route, transport)
        body = self.build_body(request, adapter, transport)

        logger.info(
            "upstream_request",
            provider=transport.name,
            model=route.model,
            requested_model=route.requested,
            stream_format=transport.stream_format.value,
            adapter=type(adapter).__name__,
            message_count=len(request.messages),
            tool_count=len(request.tools or []),
        )
        response = await self._send_with_auth_retry(transport, body)
        parser = self._build_parser(route, transport, adapter)
        return UpstreamStream(route, transport, adapter, response, parser)

    def build_body(
        self,
        request: MessageRequest,
        adapter: ModelAdapter,
        transport: ProviderTransport,
    ) -> dict[str, Any]:
        """Provider request body: adapter payload, transport extras, transport shaping."""
        if request.has_images() and not adapter.supports_vision():
            logger.info("images_stripped", model=adapter.model_id)
            request = strip_images(request)

        translation = self.settings.translation
        message_filter = filter_identity if translation.filter_identity else None
        messages = adapter.convert_messages(request, message_filter)
        tools = adapter.convert_tools(request, summarize=translation.summarize_tools)
        payload = adapter.build_payload(request, messages, tools).to_wire()
        payload.update(transport.get_extra_payload_fields())
        return transport.transform_payload(payload)

    async def _refresh_auth(self, transport: ProviderTransport) -> None:
        try:
            await transport.refresh_auth()
        except GatewayError:
            raise
        except Exception as e:
            logger.error(
                "auth_refresh_failed", provider=transport.name, error=str(e), exc_info=e
            )
            raise ProviderConnectionError(
                f"{transport.display_name} unavailable: {e}", provider=transport.name
            ) from e

    async def _send_with_auth_retry(
        self, transport: ProviderTransport, body: dict[str, Any]
    ) -> httpx.Response:
        response = await self._send(transport, body)
        if response.status_code == 401 and transport.supports_forced_refresh:
            await response.aread()
            await response.aclose()
            logger.warning("upstream_auth_rejected", provider=transport.name, attempt=1)
            await transport.force_refresh_auth()
            response = await self._send(transport, body)
            if response.status_code == 401:
                detail = await _error_body(response)
                logger.error("upstream_auth_rejected", provider=transport.name, attempt=2)
                raise AuthenticationError(
                    f"{transport.display_name} rejected refreshed credentials: {detail}",
                    provider=transport.name,
                )

        if not response.is_success:
            detail = await _error_body(response)
            logger.warning(
                "upstream_error",
                provider=transport.name,
                status_code=response.status_code,
                body=detail[:200],
            )
            raise UpstreamError(transport.name, response.status_code, detail)
        return response

    async def _send(
        self, transport: ProviderTransport, body: dict[str, Any]
    ) -> httpx.Response:
        client = self.container.get_http_client()
        headers = {"Content-Type": "application/json", **transport.get_headers()}
        options = transport.get_request_options()
        timeout: Any = (
            options.timeout if options.timeout is not None else httpx.USE_CLIENT_DEFAULT
        )
        http_request = client.build_request(
            "POST", transport.get_endpoint(), json=body, headers=headers, timeout=timeout
        )

        async def send() -> httpx.Response:
            return await client.send(http_request, stream=True)

        try:
            return await transport.enqueue_request(send)
        except httpx.TimeoutException as e:
            logger.warning("upstream_timeout", provider=transport.name, timeout=options.timeout)
            raise UpstreamTimeoutError(transport.name, options.timeout) from e
        except httpx.TransportError as e:
            logger.warning("upstream_unreachable", provider=transport.name, error=str(e))
            raise ProviderConnectionError(
                f"Cannot reach {transport.display_name}: {e}", provider=transport.name
            ) from e

    def _build_parser(
        self, route: Route, transport: ProviderTransport, adapter: ModelAdapter
    ) -> StreamParser:
        tracker = self.container.get_usage_registry().tracker(
            transport.name,
            route.model,
            strategy=self.token_strategy(route),
            context_window=transport.context_window() or adapter.get_context_window(),
        )
        parser_cls = parser_class_for(transport.stream_format)
        options = transport.parser_options()
        if parser_cls is GeminiSSEParser and hasattr(adapter, "register_tool_call"):
            options["on_tool_call"] = adapter.register_tool_call
        return parser_cls(route.model, adapter=adapter, on_usage=tracker.record, **options)


async def _error_body(response: httpx.Response) -> str:
    try:
        await response.aread()
        return response.text
    finally:
        await response.aclose()
