"""Provider transports: endpoint, headers, auth and queueing per provider."""

from .anthropic_compat import AnthropicCompatTransport
from .base import OAuthTransport, ProviderTransport, RequestOptions
from .gemini import GeminiApiKeyTransport, GeminiCodeAssistTransport
from .local import LocalTransport
from .ollamacloud import OllamaCloudTransport
from .openai import LiteLLMTransport, OpenAITransport, PoeTransport
from .openrouter import OpenRouterTransport
from .vertex import VertexModel, VertexOAuthTransport, parse_vertex_model


__all__ = [
    "AnthropicCompatTransport",
    "GeminiApiKeyTransport",
    "GeminiCodeAssistTransport",
    "LiteLLMTransport",
    "LocalTransport",
    "OAuthTransport",
    "OllamaCloudTransport",
    "OpenAITransport",
    "OpenRouterTransport",
    "PoeTransport",
    "ProviderTransport",
    "RequestOptions",
    "VertexModel",
    "VertexOAuthTransport",
    "parse_vertex_model",
]
