"""Tests for model string → provider route resolution."""

import pytest
from pydantic import SecretStr

from claudish.config.settings import ProviderSettings
from claudish.core.errors import RouteNotFoundError
from claudish.routing import Route, parse_model, resolve_route


@pytest.mark.unit
class TestParseModel:
    @pytest.mark.parametrize(
        ("model", "provider", "native"),
        [
            ("glm@glm-5", "glm", "glm-5"),
            ("openrouter@z-ai/glm-5", "openrouter", "z-ai/glm-5"),
            ("google@gemini-2.5-pro", "gemini", "gemini-2.5-pro"),
            ("moonshot@kimi-k2", "kimi", "kimi-k2"),
            ("Vertex@anthropic/claude-3-5-sonnet", "vertex", "anthropic/claude-3-5-sonnet"),
            ("g/gemini-2.5-flash", "gemini", "gemini-2.5-flash"),
            ("go/gemini-2.5-pro", "gemini-codeassist", "gemini-2.5-pro"),
            ("oai/gpt-4o", "openai", "gpt-4o"),
            ("v/meta/llama-4", "vertex", "meta/llama-4"),
            ("ollama/qwen2.5-coder:7b", "ollama", "qwen2.5-coder:7b"),
            ("mm/MiniMax-M2", "minimax", "MiniMax-M2"),
            ("oc/gpt-oss:120b", "ollamacloud", "gpt-oss:120b"),
            ("google/gemini-2.5-pro", "openrouter", "google/gemini-2.5-pro"),
            ("x-ai/grok-4", "openrouter", "x-ai/grok-4"),
            ("meta-llama/llama-3@preview", "openrouter", "meta-llama/llama-3@preview"),
        ],
    )
    def test_forms(self, model: str, provider: str, native: str) -> None:
        route = parse_model(model)

        assert (route.provider, route.model, route.requested) == (provider, native, model)

    def test_default_provider(self) -> None:
        assert parse_model("llama3", default_provider="ollama") == Route(
            "ollama", "llama3", "llama3"
        )

    @pytest.mark.parametrize("model", ["", "   ", "nope@model", "glm@", "g/"])
    def test_invalid(self, model: str) -> None:
        with pytest.raises(RouteNotFoundError) as exc_info:
            parse_model(model)

        assert exc_info.value.status_code == 400

    def test_local_routes(self) -> None:
        assert parse_model("lmstudio/qwen3").is_local
        assert not parse_model("oai/gpt-4o").is_local


@pytest.mark.unit
class TestResolveRoute:
    """Direct Gemini falls back when no Gemini key is configured."""

    def test_gemini_with_key_stays(self) -> None:
        providers = ProviderSettings(gemini_api_key=SecretStr("k"))

        route = resolve_route("g/gemini-2.5-pro", providers)

        assert route == Route("gemini", "gemini-2.5-pro", "g/gemini-2.5-pro")

    def test_falls_back_to_vertex(self) -> None:
        providers = ProviderSettings(vertex_project="proj", openrouter_api_key=SecretStr("k"))

        route = resolve_route("g/gemini-2.5-pro", providers)

        assert (route.provider, route.model, route.fallback) == ("vertex", "gemini-2.5-pro", True)

    def test_falls_back_to_openrouter(self) -> None:
        providers = ProviderSettings(openrouter_api_key=SecretStr("k"))

        route = resolve_route("g/gemini-2.5-pro", providers)

        assert (route.provider, route.model) == ("openrouter", "google/gemini-2.5-pro")

    def test_no_fallback_available_keeps_gemini(self) -> None:
        route = resolve_route("g/gemini-2.5-pro", ProviderSettings())

        assert route.provider == "gemini"
        assert route.fallback is False
