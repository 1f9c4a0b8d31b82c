"""Shared test fixtures for the claudish test suite.

Fixtures build real components (settings, container, gateway) and only
mock the upstream providers, through pytest-httpx.
"""

from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
from pydantic import SecretStr

from claudish.config.settings import ProviderSettings, QueueSettings, Settings
from claudish.core.logging import setup_logging
from claudish.gateway import Gateway
from claudish.models.requests import MessageRequest
from claudish.services.container import ServiceContainer


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom settings."""
    config.option.asyncio_mode = "auto"

    # Same logging pipeline as the application, at DEBUG so every event
    # path is exercised.
    setup_logging(json_logs=False, log_level_name="DEBUG")


@pytest.fixture
def provider_settings() -> ProviderSettings:
    """Provider settings with a key for every key-based provider."""
    return ProviderSettings(
        default_provider="openrouter",
        openrouter_api_key=SecretStr("or-test-key"),
        openai_api_key=SecretStr("sk-test-key"),
        gemini_api_key=SecretStr("gemini-test-key"),
        glm_api_key=SecretStr("glm-test-key"),
        minimax_api_key=SecretStr("minimax-test-key"),
        kimi_api_key=SecretStr("kimi-test-key"),
        zai_api_key=SecretStr("zai-test-key"),
        litellm_base_url="http://litellm.test",
        litellm_api_key=SecretStr("litellm-test-key"),
        poe_api_key=SecretStr("poe-test-key"),
        ollama_cloud_api_key=SecretStr("ollama-test-key"),
        vertex_project="test-project",
        vertex_location="us-central1",
    )


@pytest.fixture
def settings(provider_settings: ProviderSettings) -> Settings:
    """Settings isolated from the environment, without queue waits."""
    return Settings(
        providers=provider_settings,
        queues=QueueSettings(gemini_min_interval=0.0, acquire_timeout=5.0),
    )


@pytest.fixture
async def container(settings: Settings) -> AsyncGenerator[ServiceContainer, None]:
    container = ServiceContainer(settings)
    try:
        yield container
    finally:
        await container.close()


@pytest.fixture
def gateway(container: ServiceContainer) -> Gateway:
    return Gateway(container)


@pytest.fixture
def make_request() -> Callable[..., MessageRequest]:
    """Factory for canonical requests with a single user turn by default."""

    def _make(model: str = "test-model", **overrides: Any) -> MessageRequest:
        data: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": "hi"}],
        }
        data.update(overrides)
        return MessageRequest.model_validate(data)

    return _make

