from .anthropic_passthrough import AnthropicPassthroughAdapter
from .base import AdapterResult, ModelAdapter, ToolCall, filter_identity
from .gemini import GeminiAdapter
from .litellm import LiteLLMAdapter
from .local import LocalModelAdapter
from .manager import AdapterManager
from .ollamacloud import OllamaCloudAdapter
from .openai import DefaultAdapter, OpenAIAdapter
from .openrouter import OpenRouterAdapter


__all__ = [
    "AdapterManager",
    "AdapterResult",
    "AnthropicPassthroughAdapter",
    "DefaultAdapter",
    "GeminiAdapter",
    "LiteLLMAdapter",
    "LocalModelAdapter",
    "ModelAdapter",
    "OllamaCloudAdapter",
    "OpenAIAdapter",
    "OpenRouterAdapter",
    "ToolCall",
    "filter_identity",
]
