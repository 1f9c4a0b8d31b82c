"""Ollama newline-delimited JSON → canonical SSE."""

import json

import structlog

from .base import CanonicalStreamParser, StreamFormat


logger = structlog.get_logger(__name__)


class OllamaJSONLParser(CanonicalStreamParser):
    """Ollama streams one JSON object per line, not SSE.

    ``{"message": {"content": ...}, "done": false}`` carries text and the
    final ``{"done": true, "prompt_eval_count": N, "eval_count": M}``
    carries usage.
    """

    stream_format = StreamFormat.OLLAMA_JSONL

    def handle_line(self, line: str) -> list[bytes]:
        if not line.strip():
            return []
        try:
            chunk = json.loads(line)
        except json.JSONDecodeError:
            logger.debug("ollama_line_malformed", line=line[:100])
            return []
        if not isinstance(chunk, dict):
            return []

        if chunk.get("error"):
            return self.fail(str(chunk["error"]))

        out: list[bytes] = []
        message = chunk.get("message") or {}
        thinking = message.get("thinking")
        if isinstance(thinking, str) and thinking:
            out.extend(self.emit_thinking(thinking))
        content = message.get("content")
        if isinstance(content, str) and content:
            out.extend(self.emit_text(content))

        if chunk.get("done"):
            self.usage.observe(chunk.get("prompt_eval_count"), chunk.get("eval_count"))
            if chunk.get("done_reason") == "length":
                self.stop_reason = "max_tokens"
            out.extend(self.finish())
        return out

    def handle_trailing(self, remainder: str) -> list[bytes]:
        # A complete JSON object is self-delimiting even without a newline.
        return self.handle_line(remainder)
