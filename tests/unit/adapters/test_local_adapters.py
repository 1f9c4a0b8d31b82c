"""Tests for the local-model and Ollama Cloud adapters."""

from collections.abc import Callable

import pytest

from claudish.adapters import LocalModelAdapter, OllamaCloudAdapter
from claudish.adapters.local import LOCAL_SYSTEM_GUIDANCE, MIN_LOCAL_MAX_TOKENS
from claudish.models.requests import MessageRequest


@pytest.mark.unit
class TestLocalModelAdapter:
    def test_sampling_and_token_floor(self, make_request: Callable[..., MessageRequest]) -> None:
        adapter = LocalModelAdapter("qwen2.5-coder:7b", "ollama")
        request = make_request("qwen2.5-coder:7b", max_tokens=1024, system="sys")

        messages = adapter.convert_messages(request)
        payload = adapter.build_payload(request, messages, []).to_wire()

        assert payload["max_tokens"] == MIN_LOCAL_MAX_TOKENS
        assert payload["temperature"] == 0.7
        assert payload["top_k"] == 20
        assert payload["repetition_penalty"] == 1.05
        assert payload["messages"][0]["content"] == "sys" + LOCAL_SYSTEM_GUIDANCE

    def test_tools_dropped_when_unsupported(
        self, make_request: Callable[..., MessageRequest]
    ) -> None:
        request = make_request("tiny", tools=[{"name": "ls"}])

        assert LocalModelAdapter("tiny", "ollama", supports_tools=False).convert_tools(request) == []
        assert len(LocalModelAdapter("tiny", "ollama").convert_tools(request)) == 1

    def test_tool_call_split_across_fragments(self) -> None:
        adapter = LocalModelAdapter("qwen", "lmstudio")

        first = adapter.process_text_content("ok <tool", "")
        second = adapter.process_text_content(
            '_call>{"name": "grep", "arguments": "{\\"q\\": \\"x\\"}"}</tool_call> done', "ok "
        )

        assert first.cleaned_text == "ok "
        assert second.cleaned_text == " done"
        assert [(c.name, c.arguments) for c in second.extracted_tool_calls] == [
            ("grep", {"q": "x"})
        ]

    def test_unterminated_tool_call_is_flushed_as_text(self) -> None:
        adapter = LocalModelAdapter("qwen", "vllm")

        result = adapter.process_text_content("<tool_call>{broken", "")

        assert result.cleaned_text == ""
        assert adapter.flush() == "<tool_call>{broken"
        assert adapter.flush() == ""

    def test_text_without_markup_is_identity(self) -> None:
        result = LocalModelAdapter("qwen", "mlx").process_text_content("a < b", "")

        assert result.cleaned_text == "a < b"


@pytest.mark.unit
class TestOllamaCloudAdapter:
    def test_messages_are_flattened_to_text(
        self, make_request: Callable[..., MessageRequest]
    ) -> None:
        request = make_request(
            "gpt-oss:120b",
            system="sys",
            tools=[{"name": "ls"}],
            messages=[
                {"role": "user", "content": "list"},
                {
                    "role": "assistant",
                    "content": [
                        {"type": "text", "text": "Listing."},
                        {"type": "tool_use", "id": "t1", "name": "ls", "input": {"p": "."}},
                    ],
                },
                {
                    "role": "user",
                    "content": [{"type": "tool_result", "tool_use_id": "t1", "content": "a.py"}],
                },
            ],
        )
        adapter = OllamaCloudAdapter("gpt-oss:120b")

        payload = adapter.build_payload(
            request, adapter.convert_messages(request), adapter.convert_tools(request)
        ).to_wire()

        assert payload == {
            "model": "gpt-oss:120b",
            "stream": True,
            "messages": [
                {"role": "system", "content": "sys"},
                {"role": "user", "content": "list"},
                {"role": "assistant", "content": 'Listing.\n[Tool Call: ls]: {"p": "."}'},
                {"role": "user", "content": "[Tool Result]: a.py"},
            ],
        }
