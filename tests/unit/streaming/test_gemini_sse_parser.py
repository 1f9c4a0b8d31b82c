"""Tests for Gemini ``streamGenerateContent`` SSE → canonical SSE."""

import json

import pytest

from claudish.adapters import GeminiAdapter
from claudish.streaming import GeminiSSEParser
from tests.helpers.streams import (
    collect,
    event_payloads,
    event_types,
    split_every,
    sse_lines,
    stream_response,
)


def _chunk(parts: list[dict[str, object]], **extra: object) -> dict[str, object]:
    candidate: dict[str, object] = {"content": {"role": "model", "parts": parts}}
    finish = extra.pop("finishReason", None)
    if finish:
        candidate["finishReason"] = finish
    return {"candidates": [candidate], **extra}


BODY = sse_lines(
    json.dumps(_chunk([{"text": "considering", "thought": True}])),
    json.dumps(
        _chunk(
            [{"text": "Reading the file."}],
            usageMetadata={"promptTokenCount": 7, "candidatesTokenCount": 2},
        )
    ),
    json.dumps(
        _chunk(
            [
                {
                    "functionCall": {"name": "read_file", "args": {"path": "a.py"}},
                    "thoughtSignature": "sig-1",
                }
            ],
            finishReason="STOP",
            usageMetadata={"promptTokenCount": 7, "candidatesTokenCount": 9},
        )
    ),
)


@pytest.mark.unit
class TestGeminiSSEParser:
    """Thinking, text, whole function calls and signature capture."""

    async def test_parts_map_to_ordered_blocks(self) -> None:
        output = await collect(
            GeminiSSEParser("gemini-2.5-pro").parse(stream_response([BODY]))
        )
        payloads = event_payloads(output)

        starts = [
            p["content_block"]["type"]
            for p in payloads
            if p["type"] == "content_block_start"
        ]
        assert starts == ["thinking", "text", "tool_use"]
        indices = [p["index"] for p in payloads if p["type"] == "content_block_start"]
        assert indices == [0, 1, 2]
        assert event_types(output)[-2:] == ["message_delta", "message_stop"]
        assert payloads[-2]["delta"]["stop_reason"] == "tool_use"
        assert payloads[-2]["usage"] == {"input_tokens": 7, "output_tokens": 9}

    async def test_function_call_signature_is_registered(self) -> None:
        tool_calls: dict[str, tuple[str, str | None]] = {}
        adapter = GeminiAdapter("gemini-2.5-pro", tool_calls=tool_calls)
        parser = GeminiSSEParser(
            "gemini-2.5-pro",
            adapter=adapter,
            on_tool_call=adapter.register_tool_call,
        )

        output = await collect(parser.parse(stream_response(split_every(BODY, 11))))
        tool_start = next(
            p["content_block"]
            for p in event_payloads(output)
            if p["type"] == "content_block_start"
            and p["content_block"]["type"] == "tool_use"
        )

        assert tool_calls == {tool_start["id"]: ("read_file", "sig-1")}

    async def test_code_assist_frames_are_unwrapped(self) -> None:
        body = sse_lines(
            json.dumps({"response": _chunk([{"text": "hi"}], finishReason="STOP")})
        )

        output = await collect(
            GeminiSSEParser("gemini-2.5-flash", unwrap_response=True).parse(
                stream_response([body])
            )
        )
        texts = [
            p["delta"]["text"]
            for p in event_payloads(output)
            if p["type"] == "content_block_delta"
        ]

        assert texts == ["hi"]
        assert event_types(output).count("message_stop") == 1

    async def test_max_tokens_finish_reason(self) -> None:
        body = sse_lines(json.dumps(_chunk([{"text": "cut"}], finishReason="MAX_TOKENS")))

        output = await collect(
            GeminiSSEParser("gemini-2.5-pro").parse(stream_response([body]))
        )

        assert event_payloads(output)[-2]["delta"]["stop_reason"] == "max_tokens"

    async def test_leaked_reasoning_is_filtered_through_adapter(self) -> None:
        body = sse_lines(
            json.dumps(_chunk([{"text": "Let me check the config.\nThe answer is 42."}])),
            json.dumps(_chunk([], finishReason="STOP")),
        )
        adapter = GeminiAdapter("gemini-2.5-pro")

        output = await collect(
            GeminiSSEParser("gemini-2.5-pro", adapter=adapter).parse(
                stream_response([body])
            )
        )
        text = "".join(
            p["delta"]["text"]
            for p in event_payloads(output)
            if p["type"] == "content_block_delta"
        )

        assert text == "The answer is 42."

    async def test_error_frame_ends_stream(self) -> None:
        body = sse_lines(json.dumps({"error": {"code": 429, "message": "quota"}}))

        output = await collect(
            GeminiSSEParser("gemini-2.5-pro").parse(stream_response([body]))
        )

        assert event_types(output)[-1] == "error"
        assert "message_stop" not in event_types(output)
