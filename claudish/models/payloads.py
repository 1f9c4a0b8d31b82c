"""Typed provider request payloads.

Every payload serializes through :meth:`ProviderPayload.to_wire`, which
drops unset optional fields so providers never see ``null`` for a field
the caller did not send.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .requests import Message, ToolDefinition


class ProviderPayload(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True, by_alias=True)


# --- Anthropic Messages (passthrough) -------------------------------------


class AnthropicPayload(ProviderPayload):
    model: str
    messages: list[Message]
    max_tokens: int
    stream: bool = True
    system: str | list[dict[str, Any]] | None = None
    tools: list[ToolDefinition] | None = None
    thinking: dict[str, Any] | None = None
    tool_choice: dict[str, Any] | None = None
    temperature: float | None = None
    stop_sequences: list[str] | None = None
    metadata: dict[str, Any] | None = None


# --- OpenAI chat completions -----------------------------------------------


class OpenAIFunctionCall(BaseModel):
    name: str
    arguments: str


class OpenAIToolCall(BaseModel):
    id: str
    type: Literal["function"] = "function"
    function: OpenAIFunctionCall


class OpenAIChatMessage(BaseModel):
    role: Literal["system", "user", "assistant", "tool"]
    content: str | list[dict[str, Any]] | None = None
    tool_calls: list[OpenAIToolCall] | None = None
    tool_call_id: str | None = None


class OpenAIFunction(BaseModel):
    name: str
    description: str | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)


class OpenAITool(BaseModel):
    type: Literal["function"] = "function"
    function: OpenAIFunction


class OpenAIChatPayload(ProviderPayload):
    model: str
    messages: list[OpenAIChatMessage]
    stream: bool = True
    temperature: float | None = None
    max_tokens: int | None = None
    max_completion_tokens: int | None = None
    stream_options: dict[str, bool] | None = None
    tools: list[OpenAITool] | None = None
    tool_choice: str | dict[str, Any] | None = None
    parallel_tool_calls: bool | None = None
    stop: list[str] | None = None
    top_p: float | None = None
    top_k: int | None = None
    min_p: float | None = None
    repetition_penalty: float | None = None
    reasoning_effort: Literal["minimal", "low", "medium", "high"] | None = None
    include_reasoning: bool | None = None
    thinking: dict[str, Any] | None = None


class OpenAIResponsesPayload(ProviderPayload):
    """``/v1/responses`` body used by Codex models."""

    model: str
    input: list[dict[str, Any]]
    stream: bool = True
    instructions: str | None = None
    max_output_tokens: int | None = None
    tools: list[dict[str, Any]] | None = None


# --- Gemini generateContent --------------------------------------------------


class _GeminiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GeminiInlineData(_GeminiModel):
    mime_type: str
    data: str


class GeminiFunctionCall(_GeminiModel):
    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class GeminiFunctionResponse(_GeminiModel):
    name: str
    response: dict[str, Any]


class GeminiPart(_GeminiModel):
    text: str | None = None
    inline_data: GeminiInlineData | None = None
    function_call: GeminiFunctionCall | None = None
    function_response: GeminiFunctionResponse | None = None
    thought_signature: str | None = None


class GeminiContent(_GeminiModel):
    role: Literal["user", "model"]
    parts: list[GeminiPart]


class GeminiThinkingConfig(_GeminiModel):
    thinking_level: Literal["low", "high"] | None = None
    thinking_budget: int | None = None


class GeminiGenerationConfig(_GeminiModel):
    temperature: float | None = None
    max_output_tokens: int | None = None
    stop_sequences: list[str] | None = None
    thinking_config: GeminiThinkingConfig | None = None


class GeminiSystemInstruction(_GeminiModel):
    parts: list[GeminiPart]


class GeminiToolSet(_GeminiModel):
    function_declarations: list[dict[str, Any]]


class GeminiPayload(ProviderPayload):
    model_config = ConfigDict(
        extra="forbid", alias_generator=to_camel, populate_by_name=True
    )

    contents: list[GeminiContent]
    generation_config: GeminiGenerationConfig
    system_instruction: GeminiSystemInstruction | None = None
    tools: list[GeminiToolSet] | None = None


# --- Ollama chat -------------------------------------------------------------


class OllamaMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class OllamaPayload(ProviderPayload):
    model: str
    messages: list[OllamaMessage]
    stream: bool = True
    options: dict[str, Any] | None = None


# --- Gemini Code Assist envelope ---------------------------------------------


class CodeAssistEnvelope(ProviderPayload):
    model: str
    project: str
    user_prompt_id: str
    request: dict[str, Any]
