"""Tests for local model servers: health check and context-window detection."""

from collections.abc import AsyncGenerator

import httpx
import pytest
from pytest_httpx import HTTPXMock

from claudish.config.settings import ProviderSettings, Settings
from claudish.core.errors import ProviderConnectionError, TransportConfigurationError
from claudish.transports import LocalTransport
from claudish.transports.local import DEFAULT_CONTEXT_WINDOW


OLLAMA = "http://localhost:11434"
LMSTUDIO = "http://localhost:1234"


@pytest.fixture
async def http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient() as client:
        yield client


def _transport(
    settings: Settings, http_client: httpx.AsyncClient, provider: str, model: str
) -> LocalTransport:
    return LocalTransport(model, settings=settings, provider=provider, http_client=http_client)


@pytest.mark.unit
class TestLocalTransport:
    """Health probing and server-reported context windows."""

    async def test_ollama_context_from_model_info(
        self, settings: Settings, http_client: httpx.AsyncClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=f"{OLLAMA}/api/tags", json={"models": []})
        httpx_mock.add_response(
            url=f"{OLLAMA}/api/show",
            method="POST",
            json={"model_info": {"llama.context_length": 131072}},
        )
        transport = _transport(settings, http_client, "ollama", "llama3.1:8b")

        await transport.refresh_auth()

        assert transport.context_window() == 131072
        assert transport.get_extra_payload_fields() == {"options": {"num_ctx": 131072}}
        assert transport.get_endpoint() == f"{OLLAMA}/v1/chat/completions"
        assert transport.get_request_options().timeout == settings.http.local_request_timeout

    async def test_ollama_context_from_parameters(
        self, settings: Settings, http_client: httpx.AsyncClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=f"{OLLAMA}/api/tags", json={"models": []})
        httpx_mock.add_response(
            url=f"{OLLAMA}/api/show",
            method="POST",
            json={"model_info": {}, "parameters": "stop <|eot|>\nnum_ctx 8192"},
        )
        transport = _transport(settings, http_client, "ollama", "custom")

        await transport.refresh_auth()

        assert transport.context_window() == 8192
        # Ollama is never asked for less than the default window
        assert transport.get_extra_payload_fields() == {
            "options": {"num_ctx": DEFAULT_CONTEXT_WINDOW}
        }

    async def test_health_check_runs_once_after_success(
        self, settings: Settings, http_client: httpx.AsyncClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=f"{OLLAMA}/api/tags", json={"models": []})
        httpx_mock.add_response(url=f"{OLLAMA}/api/show", method="POST", status_code=404)
        transport = _transport(settings, http_client, "ollama", "llama3")

        await transport.refresh_auth()
        await transport.refresh_auth()

        assert len(httpx_mock.get_requests()) == 2
        assert transport.context_window() == DEFAULT_CONTEXT_WINDOW

    async def test_unreachable_server_raises_with_hint(
        self, settings: Settings, http_client: httpx.AsyncClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_exception(httpx.ConnectError("refused"), url=f"{OLLAMA}/api/tags")
        httpx_mock.add_exception(httpx.ConnectError("refused"), url=f"{OLLAMA}/v1/models")
        transport = _transport(settings, http_client, "ollama", "llama3")

        with pytest.raises(ProviderConnectionError, match="ollama serve") as exc_info:
            await transport.refresh_auth()

        assert exc_info.value.status_code == 503

    async def test_failed_check_is_retried_on_next_request(
        self, settings: Settings, http_client: httpx.AsyncClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_exception(httpx.ConnectError("refused"), url=f"{LMSTUDIO}/api/tags")
        httpx_mock.add_response(url=f"{LMSTUDIO}/v1/models", status_code=503)
        httpx_mock.add_response(url=f"{LMSTUDIO}/api/tags", status_code=404)
        httpx_mock.add_response(url=f"{LMSTUDIO}/v1/models", json={"data": []})
        httpx_mock.add_response(url=f"{LMSTUDIO}/v1/models", json={"data": []})
        transport = _transport(settings, http_client, "lmstudio", "qwen3-8b")

        with pytest.raises(ProviderConnectionError, match="LM Studio"):
            await transport.refresh_auth()
        await transport.refresh_auth()

        assert transport.context_window() == DEFAULT_CONTEXT_WINDOW

    async def test_lmstudio_matches_model_by_suffix(
        self, settings: Settings, http_client: httpx.AsyncClient, httpx_mock: HTTPXMock
    ) -> None:
        models = {
            "data": [
                {"id": "text-embedding-nomic", "max_context_length": 2048},
                {"id": "qwen/qwen3-8b", "max_context_length": 65536},
            ]
        }
        httpx_mock.add_response(url=f"{LMSTUDIO}/api/tags", status_code=404)
        httpx_mock.add_response(url=f"{LMSTUDIO}/v1/models", json=models)
        httpx_mock.add_response(url=f"{LMSTUDIO}/v1/models", json=models)
        transport = _transport(settings, http_client, "lmstudio", "qwen3-8b")

        await transport.refresh_auth()

        assert transport.context_window() == 65536
        assert transport.get_extra_payload_fields() == {}

    async def test_configured_context_window_is_not_overridden(
        self,
        provider_settings: ProviderSettings,
        http_client: httpx.AsyncClient,
        httpx_mock: HTTPXMock,
    ) -> None:
        settings = Settings(
            providers=provider_settings.model_copy(update={"local_context_window": 4096})
        )
        httpx_mock.add_response(url=f"{OLLAMA}/api/tags", json={"models": []})
        transport = _transport(settings, http_client, "ollama", "llama3")

        await transport.refresh_auth()

        assert transport.context_window() == 4096

    async def test_unknown_provider_without_url(
        self, settings: Settings, http_client: httpx.AsyncClient
    ) -> None:
        with pytest.raises(TransportConfigurationError):
            _transport(settings, http_client, "llamafile", "m")
