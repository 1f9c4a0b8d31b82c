"""Adapter for models served through a LiteLLM proxy."""

import re
from typing import Any

import structlog

from claudish.models.payloads import OpenAIChatMessage
from claudish.models.requests import MessageRequest

from .base import MessageFilter
from .openai import DefaultAdapter


logger = structlog.get_logger(__name__)

# LiteLLM does not forward image_url parts to these backends.
INLINE_IMAGE_MODEL_PATTERNS = ("minimax",)

_DATA_URL = re.compile(r"^data:[^;]+;base64,(.+)$", re.DOTALL)


class LiteLLMAdapter(DefaultAdapter):
    name = "litellm"

    def __init__(self, model_id: str, vision_supported: bool = True) -> None:
        super().__init__(model_id)
        self._vision_supported = vision_supported
        lowered = model_id.lower()
        self.needs_inline_images = any(p in lowered for p in INLINE_IMAGE_MODEL_PATTERNS)

    def should_handle(self, model_id: str) -> bool:
        return False

    def convert_messages(
        self, request: MessageRequest, message_filter: MessageFilter | None = None
    ) -> list[Any]:
        messages = super().convert_messages(request, message_filter)
        if not self.needs_inline_images:
            return messages
        return [_inline_images(message) for message in messages]

    def get_context_window(self) -> int:
        return 200_000

    def supports_vision(self) -> bool:
        return self._vision_supported


def _inline_images(message: OpenAIChatMessage) -> OpenAIChatMessage:
    if not isinstance(message.content, list):
        return message

    kept: list[dict[str, Any]] = []
    inline = ""
    for part in message.content:
        if part.get("type") != "image_url":
            kept.append(dict(part))
            continue
        url = part.get("image_url")
        if isinstance(url, dict):
            url = url.get("url")
        if not url:
            continue
        match = _DATA_URL.match(url)
        if match:
            inline += f"\n[Image base64:{match.group(1)}]"
        elif not url.startswith("data:"):
            inline += f"\n[Image URL: {url}]"

    if not inline:
        return message

    logger.debug("litellm_images_inlined", role=message.role)
    text_parts = [part for part in kept if part.get("type") == "text"]
    if text_parts:
        text_parts[-1]["text"] += inline
    else:
        kept.append({"type": "text", "text": inline.strip()})

    if len(kept) == 1 and kept[0]["type"] == "text":
        return message.model_copy(update={"content": kept[0]["text"]})
    return message.model_copy(update={"content": kept})
