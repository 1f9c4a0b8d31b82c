"""Stream parser base classes.

A parser consumes the raw body of one upstream ``httpx.Response`` and
yields canonical SSE bytes as soon as each upstream line is complete.
"""

import asyncio
import codecs
import contextlib
import json
from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, AsyncIterator, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

import httpx
import structlog

from claudish.adapters.base import ModelAdapter, ToolCall
from claudish.config.constants import STREAM_KEEPALIVE_INTERVAL

from . import events


logger = structlog.get_logger(__name__)

UsageCallback = Callable[[int, int], None]


class StreamFormat(str, Enum):
    """Wire format of a provider's streamed response."""

    ANTHROPIC_SSE = "anthropic-sse"
    OPENAI_SSE = "openai-sse"
    OPENAI_RESPONSES_SSE = "openai-responses-sse"
    GEMINI_SSE = "gemini-sse"
    OLLAMA_JSONL = "ollama-jsonl"


@dataclass
class TokenUsage:
    """Token counts for one stream; values only ever grow."""

    input_tokens: int = 0
    output_tokens: int = 0

    def observe(
        self, input_tokens: int | None = None, output_tokens: int | None = None
    ) -> None:
        if isinstance(input_tokens, int) and input_tokens > self.input_tokens:
            self.input_tokens = input_tokens
        if isinstance(output_tokens, int) and output_tokens > self.output_tokens:
            self.output_tokens = output_tokens


def parse_data_line(line: str) -> Any | None:
    """JSON payload of an SSE ``data:`` line, or None if absent or malformed."""
    if not line.startswith("data:"):
        return None
    raw = line[5:].strip()
    if not raw or raw == "[DONE]":
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.debug("stream_line_malformed", line=raw[:100])
        return None


async def with_idle_ticks(
    chunks: AsyncIterator[bytes], interval: float
) -> AsyncGenerator[bytes | None, None]:
    """Relay ``chunks``, yielding None after every ``interval`` seconds of silence.

    A pump task reads upstream into a queue so a slow read is never
    cancelled by the idle timer; an upstream exception is re-raised here.
    """
    queue: asyncio.Queue[bytes | Exception | None] = asyncio.Queue(maxsize=16)

    async def pump() -> None:
        try:
            async for chunk in chunks:
                await queue.put(chunk)
        except Exception as e:
            await queue.put(e)
            return
        await queue.put(None)

    task = asyncio.create_task(pump())
    try:
        while True:
            try:
                item = await asyncio.wait_for(queue.get(), timeout=interval)
            except asyncio.TimeoutError:
                yield None
                continue
            if item is None:
                return
            if isinstance(item, Exception):
                raise item
            yield item
    finally:
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task


class StreamParser(ABC):
    """Re-frames one upstream body into canonical SSE.

    Guarantees, whatever happens upstream:

    * lines are emitted in upstream order, each as soon as it is complete
    * ``on_usage`` is called exactly once, when the stream ends, is
      cancelled by the consumer, or fails
    * the terminating sequence is emitted at most once (``closed``)
    * upstream errors end the stream instead of propagating

    Parsers that synthesize events (``sends_keepalive``) also emit a
    ``ping`` for every ``keepalive_interval`` seconds the upstream is idle.
    """

    stream_format: ClassVar[StreamFormat]
    sends_keepalive: ClassVar[bool] = False

    def __init__(
        self,
        model: str,
        *,
        adapter: ModelAdapter | None = None,
        on_usage: UsageCallback | None = None,
        keepalive_interval: float = STREAM_KEEPALIVE_INTERVAL,
    ) -> None:
        self.model = model
        self.adapter = adapter
        self.on_usage = on_usage
        self.keepalive_interval = keepalive_interval
        self.usage = TokenUsage()
        self.closed = False
        self._usage_reported = False

    async def parse(self, response: httpx.Response) -> AsyncIterator[bytes]:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        buffer = ""
        chunks: AsyncIterator[bytes | None] = response.aiter_bytes()
        if self.sends_keepalive:
            chunks = with_idle_ticks(chunks, self.keepalive_interval)
        try:
            for chunk in self.open():
                yield chunk
            try:
                async for raw in chunks:
                    if raw is None:
                        for chunk in self.keepalive():
                            yield chunk
                        continue
                    buffer += decoder.decode(raw)
                    *lines, buffer = buffer.split("\n")
                    for line in lines:
                        for chunk in self.handle_line(line.rstrip("\r")):
                            yield chunk
                        if self.closed:
                            break
                    if self.closed:
                        break
                else:
                    buffer += decoder.decode(b"", final=True)
                    if buffer:
                        for chunk in self.handle_trailing(buffer):
                            yield chunk
            except Exception as exc:
                logger.error(
                    "upstream_stream_failed",
                    parser=type(self).__name__,
                    model=self.model,
                    error=str(exc),
                    exc_info=True,
                )
                for chunk in self.fail(str(exc) or type(exc).__name__):
                    yield chunk
            else:
                for chunk in self.finish():
                    yield chunk
        finally:
            self.closed = True
            self._report_usage()
            if isinstance(chunks, AsyncGenerator):
                await chunks.aclose()
            await response.aclose()

    def open(self) -> list[bytes]:
        """Bytes emitted before the first upstream read."""
        return []

    def keepalive(self) -> list[bytes]:
        """Bytes emitted after each idle interval while the upstream is silent."""
        return []

    @abstractmethod
    def handle_line(self, line: str) -> list[bytes]:
        """Canonical bytes for one complete upstream line."""

    def handle_trailing(self, remainder: str) -> list[bytes]:
        """Handle an unterminated final line. Dropped by default."""
        logger.debug("stream_partial_line_dropped", size=len(remainder))
        return []

    def finish(self) -> list[bytes]:
        """Terminating bytes for a normally ended stream."""
        self.closed = True
        return []

    def fail(self, message: str) -> list[bytes]:
        """Terminating bytes for a stream that failed mid-read."""
        self.closed = True
        return []

    def _report_usage(self) -> None:
        if self._usage_reported:
            return
        self._usage_reported = True
        logger.debug(
            "stream_usage_final",
            model=self.model,
            input_tokens=self.usage.input_tokens,
            output_tokens=self.usage.output_tokens,
        )
        if self.on_usage is not None:
            self.on_usage(self.usage.input_tokens, self.usage.output_tokens)


class CanonicalStreamParser(StreamParser):
    """Base for parsers that synthesize canonical events from another format.

    Tracks content block indices: at most one text and one thinking block
    are open at a time. Tool-use blocks are keyed by the provider's own
    index and stay open together, so argument deltas for an earlier call
    still land in its block; they close when a text or thinking block
    starts, when the provider ends the call, or when the message ends.
    """

    sends_keepalive = True

    def __init__(
        self,
        model: str,
        *,
        adapter: ModelAdapter | None = None,
        on_usage: UsageCallback | None = None,
        keepalive_interval: float = STREAM_KEEPALIVE_INTERVAL,
    ) -> None:
        super().__init__(
            model,
            adapter=adapter,
            on_usage=on_usage,
            keepalive_interval=keepalive_interval,
        )
        self.message_id = events.new_message_id()
        self.accumulated_text = ""
        self.stop_reason: str | None = None
        self._next_index = 0
        self._text_index: int | None = None
        self._thinking_index: int | None = None
        self._open_tools: dict[Any, int] = {}
        self._saw_tool_use = False
        if adapter is not None:
            adapter.reset()

    def open(self) -> list[bytes]:
        return [
            events.message_start(self.message_id, self.model),
            events.ping(),
        ]

    def keepalive(self) -> list[bytes]:
        if self.closed:
            return []
        return [events.ping()]

    # --- block helpers ---

    def _allocate_index(self) -> int:
        index = self._next_index
        self._next_index += 1
        return index

    def _close_text(self) -> list[bytes]:
        if self._text_index is None:
            return []
        index, self._text_index = self._text_index, None
        return [events.content_block_stop(index)]

    def _close_thinking(self) -> list[bytes]:
        if self._thinking_index is None:
            return []
        index, self._thinking_index = self._thinking_index, None
        return [events.content_block_stop(index)]

    def _close_tools(self) -> list[bytes]:
        out = [events.content_block_stop(index) for index in self._open_tools.values()]
        self._open_tools.clear()
        return out

    def emit_thinking(self, text: str) -> list[bytes]:
        if not text:
            return []
        out = self._close_text() + self._close_tools()
        if self._thinking_index is None:
            self._thinking_index = self._allocate_index()
            out.append(
                events.content_block_start(
                    self._thinking_index, {"type": "thinking", "thinking": ""}
                )
            )
        out.append(
            events.content_block_delta(
                self._thinking_index, {"type": "thinking_delta", "thinking": text}
            )
        )
        return out

    def emit_text(self, text: str) -> list[bytes]:
        """Text delta, passed through the adapter's text processing first."""
        out: list[bytes] = []
        calls: list[ToolCall] = []
        if self.adapter is not None and text:
            result = self.adapter.process_text_content(text, self.accumulated_text)
            text = result.cleaned_text
            calls = result.extracted_tool_calls
        out.extend(self._emit_raw_text(text))
        for call in calls:
            out.extend(self.emit_complete_tool(call.id, call.name, call.arguments))
        return out

    def _emit_raw_text(self, text: str) -> list[bytes]:
        if not text:
            return []
        out = self._close_thinking() + self._close_tools()
        if self._text_index is None:
            self._text_index = self._allocate_index()
            out.append(
                events.content_block_start(self._text_index, {"type": "text", "text": ""})
            )
        self.accumulated_text += text
        out.append(
            events.content_block_delta(self._text_index, {"type": "text_delta", "text": text})
        )
        return out

    def start_tool(self, key: Any, tool_id: str, name: str) -> list[bytes]:
        out = self._close_thinking() + self._close_text()
        index = self._allocate_index()
        self._open_tools[key] = index
        self._saw_tool_use = True
        out.append(
            events.content_block_start(
                index, {"type": "tool_use", "id": tool_id, "name": name, "input": {}}
            )
        )
        return out

    def tool_arguments(self, key: Any, partial_json: str) -> list[bytes]:
        index = self._open_tools.get(key)
        if index is None or not partial_json:
            return []
        return [
            events.content_block_delta(
                index, {"type": "input_json_delta", "partial_json": partial_json}
            )
        ]

    def close_tool(self, key: Any) -> list[bytes]:
        index = self._open_tools.pop(key, None)
        if index is None:
            return []
        return [events.content_block_stop(index)]

    def emit_complete_tool(
        self, tool_id: str, name: str, arguments: dict[str, Any]
    ) -> list[bytes]:
        key = ("complete", tool_id)
        out = self.start_tool(key, tool_id, name)
        out.extend(self.tool_arguments(key, json.dumps(arguments)))
        out.extend(self.close_tool(key))
        return out

    # --- termination ---

    def _close_all_blocks(self) -> list[bytes]:
        out: list[bytes] = []
        if self.adapter is not None:
            held = self.adapter.flush()
            if held:
                out.extend(self._emit_raw_text(held))
        return out + self._close_thinking() + self._close_text() + self._close_tools()

    def finish(self) -> list[bytes]:
        if self.closed:
            return []
        out = self._close_all_blocks()
        self.closed = True
        if self._saw_tool_use:
            stop_reason = "tool_use"
        else:
            stop_reason = self.stop_reason or "end_turn"
        out.append(
            events.message_delta(
                stop_reason, self.usage.input_tokens, self.usage.output_tokens
            )
        )
        out.append(events.message_stop())
        return out

    def fail(self, message: str) -> list[bytes]:
        if self.closed:
            return []
        out = self._close_all_blocks()
        self.closed = True
        out.append(events.error_event(message))
        return out
