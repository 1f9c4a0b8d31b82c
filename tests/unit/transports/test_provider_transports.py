"""Tests for provider endpoints, headers and payload shaping."""

import pytest
from pydantic import SecretStr

from claudish.auth import AuthCredential, AuthManager, StaticTokenSource
from claudish.config.settings import ProviderSettings, Settings
from claudish.core.errors import AuthenticationError, TransportConfigurationError
from claudish.streaming import StreamFormat
from claudish.transports import (
    AnthropicCompatTransport,
    GeminiApiKeyTransport,
    GeminiCodeAssistTransport,
    LiteLLMTransport,
    OllamaCloudTransport,
    OpenAITransport,
    OpenRouterTransport,
    PoeTransport,
    VertexOAuthTransport,
    parse_vertex_model,
)


def _static_auth(name: str = "vertex", token: str = "ya29.test") -> AuthManager:
    return AuthManager(name, StaticTokenSource(token))


@pytest.mark.unit
class TestVertexTransport:
    """Publisher-specific endpoints and payload shaping on Vertex AI."""

    def test_anthropic_model_parsing_and_payload(self, settings: Settings) -> None:
        transport = VertexOAuthTransport(
            "anthropic/claude-3-5-sonnet", settings=settings, auth=_static_auth()
        )

        assert transport.parsed.publisher == "anthropic"
        assert transport.parsed.model == "claude-3-5-sonnet"
        payload = transport.transform_payload(
            {"model": "claude-3-5-sonnet", "messages": [], "max_tokens": 10}
        )
        assert payload == {
            "messages": [],
            "max_tokens": 10,
            "anthropic_version": "vertex-2023-10-16",
        }
        assert transport.stream_format is StreamFormat.ANTHROPIC_SSE
        assert transport.get_endpoint() == (
            "https://us-central1-aiplatform.googleapis.com/v1/projects/test-project"
            "/locations/us-central1/publishers/anthropic/models/claude-3-5-sonnet"
            ":streamRawPredict"
        )

    def test_google_model_endpoint(self, settings: Settings) -> None:
        transport = VertexOAuthTransport(
            "gemini-2.5-pro", settings=settings, auth=_static_auth()
        )

        assert transport.stream_format is StreamFormat.GEMINI_SSE
        assert transport.get_endpoint().endswith(
            "/publishers/google/models/gemini-2.5-pro:streamGenerateContent?alt=sse"
        )
        payload = {"contents": []}
        assert transport.transform_payload(payload) == payload

    def test_partner_model_uses_openapi_endpoint(self, settings: Settings) -> None:
        transport = VertexOAuthTransport(
            "meta/llama-4-maverick", settings=settings, auth=_static_auth()
        )

        assert transport.stream_format is StreamFormat.OPENAI_SSE
        assert transport.get_endpoint().endswith("/endpoints/openapi/chat/completions")

    @pytest.mark.parametrize(
        ("model_id", "publisher", "model", "openapi_id"),
        [
            ("gemini-2.5-flash", "google", "gemini-2.5-flash", "google/gemini-2.5-flash"),
            ("mistralai/codestral-2", "mistralai", "codestral-2", "codestral-2"),
            ("qwen/qwen3-coder", "qwen", "qwen3-coder", "qwen/qwen3-coder"),
        ],
    )
    def test_parse_vertex_model(
        self, model_id: str, publisher: str, model: str, openapi_id: str
    ) -> None:
        parsed = parse_vertex_model(model_id)

        assert (parsed.publisher, parsed.model) == (publisher, model)
        assert parsed.openapi_model_id == openapi_id

    def test_global_location_host(self, provider_settings: ProviderSettings) -> None:
        settings = Settings(
            providers=provider_settings.model_copy(update={"vertex_location": "global"})
        )
        transport = VertexOAuthTransport("gemini-2.5-pro", settings=settings, auth=_static_auth())

        assert transport.get_endpoint().startswith(
            "https://aiplatform.googleapis.com/v1/projects/test-project/locations/global/"
        )

    def test_missing_project_is_a_configuration_error(self) -> None:
        with pytest.raises(TransportConfigurationError, match="VERTEX_PROJECT"):
            VertexOAuthTransport(
                "gemini-2.5-pro", settings=Settings(providers=ProviderSettings()), auth=_static_auth()
            )

    async def test_headers_require_loaded_credentials(self, settings: Settings) -> None:
        transport = VertexOAuthTransport("gemini-2.5-pro", settings=settings, auth=_static_auth())

        with pytest.raises(AuthenticationError):
            transport.get_headers()

        await transport.refresh_auth()

        assert transport.get_headers() == {"Authorization": "Bearer ya29.test"}
        assert transport.get_request_options().timeout == 30.0


@pytest.mark.unit
class TestLiteLLMTransport:
    def test_kimi_models_get_extra_headers(self, settings: Settings) -> None:
        transport = LiteLLMTransport("moonshot/kimi-k2-instruct", settings=settings)

        assert transport.get_extra_payload_fields() == {
            "extra_headers": {"User-Agent": "claude-code/1.0"}
        }

    def test_other_models_get_no_extra_headers_field(self, settings: Settings) -> None:
        transport = LiteLLMTransport("gpt-4o", settings=settings)

        assert "extra_headers" not in transport.get_extra_payload_fields()

    def test_endpoint_and_headers(self, settings: Settings) -> None:
        transport = LiteLLMTransport("gpt-4o", settings=settings)

        assert transport.get_endpoint() == "http://litellm.test/v1/chat/completions"
        assert transport.get_headers() == {"Authorization": "Bearer litellm-test-key"}

    def test_missing_base_url(self) -> None:
        with pytest.raises(TransportConfigurationError, match="LITELLM_BASE_URL"):
            LiteLLMTransport("gpt-4o", settings=Settings(providers=ProviderSettings()))


@pytest.mark.unit
class TestKeyedTransports:
    """Endpoints and credential headers of API-key providers."""

    def test_openrouter(self, settings: Settings) -> None:
        transport = OpenRouterTransport("openai/gpt-4o", settings=settings)

        assert transport.get_endpoint() == "https://openrouter.ai/api/v1/chat/completions"
        headers = transport.get_headers()
        assert headers["Authorization"] == "Bearer or-test-key"
        assert headers["HTTP-Referer"] == settings.providers.openrouter_referer
        assert headers["X-Title"] == "claudish"

    def test_gemini_api_key(self, settings: Settings) -> None:
        transport = GeminiApiKeyTransport("gemini-2.5-pro", settings=settings)

        assert transport.get_endpoint() == (
            "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.5-pro"
            ":streamGenerateContent?alt=sse"
        )
        assert transport.get_headers() == {"x-goog-api-key": "gemini-test-key"}
        assert transport.stream_format is StreamFormat.GEMINI_SSE

    def test_openai(self, settings: Settings) -> None:
        transport = OpenAITransport(
            "gpt-4o", settings=settings, api_key=settings.providers.openai_api_key
        )

        assert transport.get_endpoint() == "https://api.openai.com/v1/chat/completions"
        assert transport.get_headers() == {"Authorization": "Bearer sk-test-key"}

    def test_openai_compatible_vendor(self, settings: Settings) -> None:
        transport = OpenAITransport(
            "glm-4.6",
            settings=settings,
            provider="glm",
            base_url="http://glm.test/",
            api_key=settings.providers.glm_api_key,
        )

        assert transport.get_endpoint() == "http://glm.test/v1/chat/completions"
        assert transport.get_headers() == {"Authorization": "Bearer glm-test-key"}
        assert transport.display_name == "GLM"

    def test_codex_models_use_responses_api(self, settings: Settings) -> None:
        transport = OpenAITransport(
            "gpt-5-codex", settings=settings, api_key=settings.providers.openai_api_key
        )

        assert transport.get_endpoint() == "https://api.openai.com/v1/responses"
        assert transport.stream_format is StreamFormat.OPENAI_RESPONSES_SSE

    @pytest.mark.parametrize(
        ("provider", "api_key", "env_var"),
        [
            ("openai", None, "PROVIDERS__OPENAI_API_KEY"),
            ("openai", SecretStr(""), "PROVIDERS__OPENAI_API_KEY"),
            ("glm", None, "PROVIDERS__GLM_API_KEY"),
            ("glm-coding", None, "PROVIDERS__GLM_API_KEY"),
        ],
    )
    def test_openai_compatible_requires_key(
        self, settings: Settings, provider: str, api_key: SecretStr | None, env_var: str
    ) -> None:
        transport = OpenAITransport(
            "gpt-4o", settings=settings, provider=provider, api_key=api_key
        )

        with pytest.raises(TransportConfigurationError, match=env_var):
            transport.get_headers()

    def test_anthropic_compatible(self, settings: Settings) -> None:
        transport = AnthropicCompatTransport("kimi-k2", settings=settings, provider="kimi")

        assert transport.get_endpoint() == "https://api.moonshot.ai/anthropic/v1/messages"
        assert transport.get_headers() == {
            "x-api-key": "kimi-test-key",
            "anthropic-version": "2023-06-01",
        }
        assert transport.stream_format is StreamFormat.ANTHROPIC_SSE

    def test_ollama_cloud(self, settings: Settings) -> None:
        transport = OllamaCloudTransport("gpt-oss:120b", settings=settings)

        assert transport.get_endpoint() == "https://ollama.com/api/chat"
        assert transport.stream_format is StreamFormat.OLLAMA_JSONL

    @pytest.mark.parametrize(
        ("factory", "env_var"),
        [
            (lambda s: PoeTransport("m", settings=s), "POE_API_KEY"),
            (lambda s: OpenRouterTransport("m", settings=s), "OPENROUTER_API_KEY"),
            (lambda s: GeminiApiKeyTransport("m", settings=s), "GEMINI_API_KEY"),
            (lambda s: OllamaCloudTransport("m", settings=s), "OLLAMA_CLOUD_API_KEY"),
            (lambda s: AnthropicCompatTransport("m", settings=s, provider="zai"), "ZAI_API_KEY"),
        ],
    )
    def test_missing_key_names_the_variable(self, factory, env_var: str) -> None:
        transport = factory(Settings(providers=ProviderSettings()))

        with pytest.raises(TransportConfigurationError, match=env_var):
            transport.get_headers()


@pytest.mark.unit
class TestGeminiCodeAssistTransport:
    async def test_payload_wrapped_in_envelope(self, settings: Settings) -> None:
        source = StaticTokenSource("ya29.code")
        auth = AuthManager("gemini-codeassist", source)
        transport = GeminiCodeAssistTransport("gemini-2.5-pro", settings=settings, auth=auth)
        transport._credential = AuthCredential(
            access_token=SecretStr("ya29.code"), project_id="proj-7"
        )

        wrapped = transport.transform_payload({"contents": []})

        assert wrapped["model"] == "gemini-2.5-pro"
        assert wrapped["project"] == "proj-7"
        assert wrapped["request"] == {"contents": []}
        assert wrapped["user_prompt_id"]
        assert transport.parser_options() == {"unwrap_response": True}

    async def test_envelope_requires_project(self, settings: Settings) -> None:
        auth = AuthManager("gemini-codeassist", StaticTokenSource("ya29.code"))
        transport = GeminiCodeAssistTransport("gemini-2.5-pro", settings=settings, auth=auth)
        await transport.refresh_auth()

        with pytest.raises(AuthenticationError, match="project"):
            transport.transform_payload({"contents": []})
