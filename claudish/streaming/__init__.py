"""Stream parsers, one per upstream wire format."""

from .anthropic_sse import AnthropicSSEParser
from .base import (
    CanonicalStreamParser,
    StreamFormat,
    StreamParser,
    TokenUsage,
    UsageCallback,
    with_idle_ticks,
)
from .gemini_sse import GeminiSSEParser
from .ollama_jsonl import OllamaJSONLParser
from .openai_responses_sse import OpenAIResponsesSSEParser
from .openai_sse import OpenAISSEParser


PARSERS: dict[StreamFormat, type[StreamParser]] = {
    StreamFormat.ANTHROPIC_SSE: AnthropicSSEParser,
    StreamFormat.OPENAI_SSE: OpenAISSEParser,
    StreamFormat.OPENAI_RESPONSES_SSE: OpenAIResponsesSSEParser,
    StreamFormat.GEMINI_SSE: GeminiSSEParser,
    StreamFormat.OLLAMA_JSONL: OllamaJSONLParser,
}


def parser_class_for(stream_format: StreamFormat) -> type[StreamParser]:
    return PARSERS[stream_format]


__all__ = [
    "PARSERS",
    "AnthropicSSEParser",
    "CanonicalStreamParser",
    "GeminiSSEParser",
    "OllamaJSONLParser",
    "OpenAIResponsesSSEParser",
    "OpenAISSEParser",
    "StreamFormat",
    "StreamParser",
    "TokenUsage",
    "UsageCallback",
    "parser_class_for",
    "with_idle_ticks",
]
