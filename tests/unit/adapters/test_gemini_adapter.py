"""Tests for the Gemini contents/parts adapter."""

from collections.abc import Callable

import pytest

from claudish.adapters import GeminiAdapter
from claudish.adapters.base import IDENTITY_NOTICE, filter_identity
from claudish.adapters.gemini import (
    DUMMY_THOUGHT_SIGNATURE,
    ToolCallCache,
    sanitize_gemini_schema,
)
from claudish.config.constants import GEMINI_REASONING_SUPPRESSION
from claudish.models.requests import MessageRequest


def _wire(adapter: GeminiAdapter, request: MessageRequest) -> dict:
    messages = adapter.convert_messages(request)
    tools = adapter.convert_tools(request)
    return adapter.build_payload(request, messages, tools).to_wire()


def _tool_history(tool_id: str = "toolu_1") -> list[dict[str, object]]:
    return [
        {"role": "user", "content": "read a.py"},
        {
            "role": "assistant",
            "content": [
                {"type": "tool_use", "id": tool_id, "name": "read_file", "input": {"path": "a.py"}}
            ],
        },
        {
            "role": "user",
            "content": [{"type": "tool_result", "tool_use_id": tool_id, "content": "print(1)"}],
        },
    ]


@pytest.mark.unit
class TestGeminiAdapterConversion:
    """Canonical request → generateContent body."""

    def test_basic_payload_shape(self, make_request: Callable[..., MessageRequest]) -> None:
        request = make_request("gemini-2.5-pro", system="be brief", max_tokens=1000)

        payload = _wire(GeminiAdapter("gemini-2.5-pro"), request)

        assert payload["contents"] == [{"role": "user", "parts": [{"text": "hi"}]}]
        assert payload["generationConfig"] == {"temperature": 1, "maxOutputTokens": 1000}
        assert payload["systemInstruction"] == {
            "parts": [{"text": f"be brief\n\n{GEMINI_REASONING_SUPPRESSION}"}]
        }
        assert "tools" not in payload

    def test_identity_filter_applies_to_system_instruction(
        self, make_request: Callable[..., MessageRequest]
    ) -> None:
        adapter = GeminiAdapter("gemini-2.5-pro")
        request = make_request("gemini-2.5-pro", system="be brief")

        contents = adapter.convert_messages(request, filter_identity)
        payload = adapter.build_payload(request, contents, []).to_wire()

        assert payload["systemInstruction"]["parts"][0]["text"] == (
            f"{IDENTITY_NOTICE}\n\nbe brief\n\n{GEMINI_REASONING_SUPPRESSION}"
        )

    def test_captured_signature_is_echoed(
        self, make_request: Callable[..., MessageRequest]
    ) -> None:
        adapter = GeminiAdapter("gemini-2.5-pro")
        adapter.register_tool_call("toolu_1", "read_file", "sig-abc")

        payload = _wire(adapter, make_request("gemini-2.5-pro", messages=_tool_history()))
        model_turn, result_turn = payload["contents"][1], payload["contents"][2]

        assert model_turn == {
            "role": "model",
            "parts": [
                {
                    "functionCall": {"name": "read_file", "args": {"path": "a.py"}},
                    "thoughtSignature": "sig-abc",
                }
            ],
        }
        assert result_turn["parts"][0]["functionResponse"] == {
            "name": "read_file",
            "response": {"content": "print(1)"},
        }

    def test_unknown_tool_call_gets_placeholder_signature(
        self, make_request: Callable[..., MessageRequest]
    ) -> None:
        adapter = GeminiAdapter("gemini-2.5-pro")

        payload = _wire(adapter, make_request("gemini-2.5-pro", messages=_tool_history("toolu_9")))
        part = payload["contents"][1]["parts"][0]

        assert part["thoughtSignature"] == DUMMY_THOUGHT_SIGNATURE
        # The result can be matched to its function name afterwards
        assert payload["contents"][2]["parts"][0]["functionResponse"]["name"] == "read_file"

    def test_tool_map_is_shared_between_adapters(self) -> None:
        shared: dict[str, tuple[str, str | None]] = {}
        GeminiAdapter("gemini-2.5-pro", tool_calls=shared).register_tool_call(
            "toolu_1", "ls", "sig"
        )

        assert GeminiAdapter("gemini-2.5-pro", tool_calls=shared).lookup_tool_call(
            "toolu_1"
        ) == ("ls", "sig")

    def test_tool_map_evicts_least_recently_registered(self) -> None:
        cache = ToolCallCache(maxsize=2)
        adapter = GeminiAdapter("gemini-2.5-pro", tool_calls=cache)
        adapter.register_tool_call("toolu_1", "ls", "sig-1")
        adapter.register_tool_call("toolu_2", "cat", "sig-2")
        adapter.register_tool_call("toolu_1", "ls", "sig-1b")
        adapter.register_tool_call("toolu_3", "rm", None)

        assert len(cache) == 2
        assert adapter.lookup_tool_call("toolu_2") is None
        assert adapter.lookup_tool_call("toolu_1") == ("ls", "sig-1b")
        assert adapter.lookup_tool_call("toolu_3") == ("rm", None)

    def test_tool_declarations_are_sanitized(
        self, make_request: Callable[..., MessageRequest]
    ) -> None:
        request = make_request(
            "gemini-2.5-pro",
            tools=[
                {
                    "name": "fetch",
                    "description": "Fetch a URL.",
                    "input_schema": {
                        "$schema": "http://json-schema.org/draft-07/schema#",
                        "type": "object",
                        "additionalProperties": False,
                        "properties": {"url": {"type": "string", "format": "uri"}},
                    },
                }
            ],
        )

        payload = _wire(GeminiAdapter("gemini-2.5-pro"), request)

        assert payload["tools"] == [
            {
                "functionDeclarations": [
                    {
                        "name": "fetch",
                        "description": "Fetch a URL.",
                        "parameters": {
                            "type": "object",
                            "properties": {"url": {"type": "string"}},
                        },
                    }
                ]
            }
        ]

    def test_property_named_like_a_keyword_survives(self) -> None:
        schema = {"type": "object", "properties": {"examples": {"type": "array"}}}

        assert sanitize_gemini_schema(schema) == schema

    @pytest.mark.parametrize(
        ("model", "budget", "expected"),
        [
            ("gemini-2.5-pro", 50000, {"thinkingBudget": 24576}),
            ("gemini-2.5-pro", 1024, {"thinkingBudget": 1024}),
            ("gemini-3-pro-preview", 20000, {"thinkingLevel": "high"}),
            ("gemini-3-pro-preview", 2000, {"thinkingLevel": "low"}),
        ],
    )
    def test_thinking_config(
        self,
        make_request: Callable[..., MessageRequest],
        model: str,
        budget: int,
        expected: dict[str, object],
    ) -> None:
        request = make_request(model, thinking={"type": "enabled", "budget_tokens": budget})

        payload = _wire(GeminiAdapter(model), request)

        assert payload["generationConfig"]["thinkingConfig"] == expected


@pytest.mark.unit
class TestGeminiReasoningFilter:
    def test_plain_text_is_untouched(self) -> None:
        result = GeminiAdapter("gemini-2.5-pro").process_text_content("Hello world", "")

        assert result.cleaned_text == "Hello world"
        assert result.was_transformed is False

    def test_reasoning_block_and_continuations_are_dropped(self) -> None:
        adapter = GeminiAdapter("gemini-2.5-pro")

        result = adapter.process_text_content(
            "Wait, I'm checking the file.\nActually, the path is wrong.\n"
            "Here is the corrected configuration file for you.",
            "",
        )

        assert result.cleaned_text == "Here is the corrected configuration file for you."
        assert result.was_transformed is True

    def test_reset_clears_reasoning_state(self) -> None:
        adapter = GeminiAdapter("gemini-2.5-pro")
        adapter.process_text_content("Let me check.", "")

        adapter.reset()
        result = adapter.process_text_content("Actually, done.", "")

        assert result.cleaned_text == "Actually, done."
