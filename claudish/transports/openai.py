"""Transports for OpenAI-compatible chat completion APIs."""

from typing import Any

from pydantic import SecretStr

from claudish.config.constants import POE_API_URL
from claudish.config.settings import Settings
from claudish.core.errors import TransportConfigurationError
from claudish.streaming.base import StreamFormat

from .base import ProviderTransport, RequestOptions


_DISPLAY_NAMES = {
    "openai": "OpenAI",
    "glm": "GLM",
    "glm-coding": "GLM Coding",
}

_KEY_ENV_VARS = {
    "openai": "PROVIDERS__OPENAI_API_KEY",
    "glm": "PROVIDERS__GLM_API_KEY",
    "glm-coding": "PROVIDERS__GLM_API_KEY",
}


class OpenAITransport(ProviderTransport):
    """OpenAI and OpenAI-compatible vendors such as GLM.

    Chat models stream from ``/chat/completions``; Codex models only speak
    the Responses API and stream from ``/v1/responses``.
    """

    def __init__(
        self,
        model_id: str,
        *,
        settings: Settings,
        provider: str = "openai",
        base_url: str | None = None,
        api_path: str | None = None,
        api_key: SecretStr | None = None,
        timeout: float | None = None,
    ) -> None:
        super().__init__(model_id, settings=settings)
        providers = settings.providers
        self.name = provider
        self.display_name = _DISPLAY_NAMES.get(provider, provider.capitalize())
        self.base_url = (base_url or providers.openai_base_url).rstrip("/")
        self.api_path = api_path if api_path is not None else providers.openai_api_path
        self.api_key = api_key
        self.timeout = timeout
        self.is_codex = "codex" in model_id.lower()
        if self.is_codex:
            self.stream_format = StreamFormat.OPENAI_RESPONSES_SSE

    def get_endpoint(self) -> str:
        if self.is_codex:
            return f"{self.base_url}/v1/responses"
        return f"{self.base_url}{self.api_path}"

    def get_headers(self) -> dict[str, str]:
        env_var = _KEY_ENV_VARS.get(self.name, f"PROVIDERS__{self.name.upper()}_API_KEY")
        key = self._require_key(self.api_key, env_var)
        return {"Authorization": f"Bearer {key}"}

    def get_request_options(self) -> RequestOptions:
        return RequestOptions(timeout=self.timeout)


class PoeTransport(ProviderTransport):
    name = "poe"
    display_name = "Poe"

    def __init__(self, model_id: str, *, settings: Settings) -> None:
        super().__init__(model_id, settings=settings)
        self.api_key = settings.providers.poe_api_key

    def get_endpoint(self) -> str:
        return POE_API_URL

    def get_headers(self) -> dict[str, str]:
        key = self._require_key(self.api_key, "PROVIDERS__POE_API_KEY")
        return {"Authorization": f"Bearer {key}"}


# Extra upstream headers LiteLLM forwards for matching model names
MODEL_EXTRA_HEADERS: list[tuple[str, dict[str, str]]] = [
    ("kimi", {"User-Agent": "claude-code/1.0"}),
]


class LiteLLMTransport(ProviderTransport):
    """LiteLLM proxy in front of arbitrary models."""

    name = "litellm"
    display_name = "LiteLLM"

    def __init__(
        self,
        model_id: str,
        *,
        settings: Settings,
        base_url: str | None = None,
        api_key: SecretStr | None = None,
    ) -> None:
        super().__init__(model_id, settings=settings)
        providers = settings.providers
        base_url = base_url or providers.litellm_base_url
        if not base_url:
            raise TransportConfigurationError(
                self.name, "base URL not configured (set PROVIDERS__LITELLM_BASE_URL)"
            )
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key if api_key is not None else providers.litellm_api_key

    def get_endpoint(self) -> str:
        return f"{self.base_url}/v1/chat/completions"

    def get_headers(self) -> dict[str, str]:
        key = self.api_key.get_secret_value() if self.api_key is not None else ""
        return {"Authorization": f"Bearer {key}"}

    def get_extra_payload_fields(self) -> dict[str, Any]:
        extra_headers = self._extra_headers()
        if extra_headers is None:
            return {}
        return {"extra_headers": extra_headers}

    def _extra_headers(self) -> dict[str, str] | None:
        model = self.model_id.lower()
        merged: dict[str, str] = {}
        found = False
        for pattern, headers in MODEL_EXTRA_HEADERS:
            if pattern in model:
                merged.update(headers)
                found = True
        return merged if found else None
