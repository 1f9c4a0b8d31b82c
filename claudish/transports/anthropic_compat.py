"""Transport for providers that expose a native Anthropic Messages API."""

from pydantic import SecretStr

from claudish.config.constants import ANTHROPIC_COMPAT_PROVIDERS, ANTHROPIC_VERSION
from claudish.config.settings import Settings
from claudish.streaming.base import StreamFormat

from .base import ProviderTransport


# Provider name -> settings attribute holding its key
_KEY_FIELDS = {
    "minimax": "minimax_api_key",
    "minimax-coding": "minimax_api_key",
    "kimi": "kimi_api_key",
    "kimi-coding": "kimi_api_key",
    "zai": "zai_api_key",
}


class AnthropicCompatTransport(ProviderTransport):
    """MiniMax, Kimi and Z.AI: Anthropic wire format, provider key."""

    stream_format = StreamFormat.ANTHROPIC_SSE

    def __init__(
        self,
        model_id: str,
        *,
        settings: Settings,
        provider: str,
        base_url: str | None = None,
        api_key: SecretStr | None = None,
    ) -> None:
        super().__init__(model_id, settings=settings)
        self.name = provider
        display, default_url = ANTHROPIC_COMPAT_PROVIDERS.get(
            provider, (provider.capitalize(), "")
        )
        self.display_name = display
        providers = settings.providers
        self.base_url = (
            base_url
            or providers.anthropic_compat_base_urls.get(provider)
            or default_url
        ).rstrip("/")
        if api_key is None and provider in _KEY_FIELDS:
            api_key = getattr(providers, _KEY_FIELDS[provider])
        self.api_key = api_key

    def get_endpoint(self) -> str:
        return f"{self.base_url}/v1/messages"

    def get_headers(self) -> dict[str, str]:
        env_var = f"PROVIDERS__{_KEY_FIELDS.get(self.name, 'API_KEY').upper()}"
        return {
            "x-api-key": self._require_key(self.api_key, env_var),
            "anthropic-version": ANTHROPIC_VERSION,
        }
