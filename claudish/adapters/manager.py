"""Adapter selection by model id."""

from collections.abc import Callable

import structlog

from .base import ModelAdapter
from .gemini import GeminiAdapter
from .openai import DefaultAdapter, OpenAIAdapter


logger = structlog.get_logger(__name__)

AdapterFactory = Callable[[str], ModelAdapter]


class AdapterManager:
    """Picks the first registered adapter whose ``should_handle`` matches.

    Passthrough-style adapters are never registered here: they always
    answer False and are bound explicitly by provider name.
    """

    def __init__(self, factories: list[AdapterFactory] | None = None) -> None:
        self._factories: list[AdapterFactory] = list(
            factories if factories is not None else [GeminiAdapter, OpenAIAdapter]
        )

    def register(self, factory: AdapterFactory) -> None:
        self._factories.append(factory)

    def get_adapter(self, model_id: str) -> ModelAdapter:
        for factory in self._factories:
            adapter = factory(model_id)
            if adapter.should_handle(model_id):
                logger.debug(
                    "adapter_selected", model=model_id, adapter=type(adapter).__name__
                )
                return adapter
        return DefaultAdapter(model_id)
