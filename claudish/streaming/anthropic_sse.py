"""Passthrough parser for providers that already stream canonical SSE."""

from typing import Any

from .base import StreamFormat, StreamParser, parse_data_line


class AnthropicSSEParser(StreamParser):
    """Forwards every upstream line unchanged while reading usage.

    Usage is taken from ``message.usage`` on ``message_start`` and from
    ``usage`` on ``message_delta``. The terminating events are the
    provider's own, so nothing is synthesized on finish or failure.
    """

    stream_format = StreamFormat.ANTHROPIC_SSE

    def handle_line(self, line: str) -> list[bytes]:
        data = parse_data_line(line)
        if isinstance(data, dict):
            self._observe_usage(data)
        return [f"{line}\n".encode()]

    def handle_trailing(self, remainder: str) -> list[bytes]:
        data = parse_data_line(remainder)
        if isinstance(data, dict):
            self._observe_usage(data)
        return [remainder.encode()]

    def _observe_usage(self, data: dict[str, Any]) -> None:
        message = data.get("message")
        if isinstance(message, dict) and isinstance(message.get("usage"), dict):
            usage = message["usage"]
            self.usage.observe(usage.get("input_tokens"), usage.get("output_tokens"))
        usage = data.get("usage")
        if isinstance(usage, dict):
            self.usage.observe(usage.get("input_tokens"), usage.get("output_tokens"))
