"""Tests for Ollama JSON-lines → canonical SSE."""

import json

import pytest

from claudish.streaming import OllamaJSONLParser
from tests.helpers.streams import (
    collect,
    event_payloads,
    event_types,
    split_every,
    stream_response,
)


def _lines(*objects: object) -> bytes:
    return "\n".join(json.dumps(o) for o in objects).encode()


BODY = _lines(
    {"model": "llama3", "message": {"role": "assistant", "content": "Hi"}, "done": False},
    {"model": "llama3", "message": {"role": "assistant", "content": " there"}, "done": False},
    {"model": "llama3", "done": True, "prompt_eval_count": 5, "eval_count": 2},
)


@pytest.mark.unit
class TestOllamaJSONLParser:
    """One JSON object per line, final object carries usage."""

    @pytest.mark.parametrize("chunk_size", [2, 9, 1000])
    async def test_final_object_without_newline_finishes_stream(
        self, chunk_size: int
    ) -> None:
        calls: list[tuple[int, int]] = []
        parser = OllamaJSONLParser("llama3", on_usage=lambda i, o: calls.append((i, o)))

        output = await collect(parser.parse(stream_response(split_every(BODY, chunk_size))))
        payloads = event_payloads(output)

        text = "".join(
            p["delta"]["text"] for p in payloads if p["type"] == "content_block_delta"
        )
        assert text == "Hi there"
        assert event_types(output).count("message_stop") == 1
        assert payloads[-2]["usage"] == {"input_tokens": 5, "output_tokens": 2}
        assert calls == [(5, 2)]

    async def test_malformed_lines_are_skipped(self) -> None:
        body = b"not json\n\n" + BODY + b"\n"

        output = await collect(OllamaJSONLParser("llama3").parse(stream_response([body])))

        assert event_types(output)[-1] == "message_stop"

    async def test_length_done_reason_maps_to_max_tokens(self) -> None:
        body = _lines(
            {"message": {"content": "x"}, "done": False},
            {"done": True, "done_reason": "length", "eval_count": 1},
        )

        output = await collect(OllamaJSONLParser("llama3").parse(stream_response([body])))

        assert event_payloads(output)[-2]["delta"]["stop_reason"] == "max_tokens"

    async def test_error_object_ends_stream(self) -> None:
        body = _lines({"error": "model 'nope' not found"})

        output = await collect(OllamaJSONLParser("nope").parse(stream_response([body])))

        assert event_types(output)[-1] == "error"
        assert event_payloads(output)[-1]["error"]["message"] == "model 'nope' not found"
