from claudish.config.constants import OPENROUTER_API_URL
from claudish.config.settings import Settings
from claudish.services.request_queue import RequestQueue

from .base import ProviderTransport


class OpenRouterTransport(ProviderTransport):
    """OpenRouter chat completions, admitted through the OpenRouter queue."""

    name = "openrouter"
    display_name = "OpenRouter"

    def __init__(
        self,
        model_id: str,
        *,
        settings: Settings,
        queue: RequestQueue | None = None,
    ) -> None:
        super().__init__(model_id, settings=settings, queue=queue)
        self.api_key = settings.providers.openrouter_api_key

    def get_endpoint(self) -> str:
        return OPENROUTER_API_URL

    def get_headers(self) -> dict[str, str]:
        providers = self.settings.providers
        key = self._require_key(self.api_key, "PROVIDERS__OPENROUTER_API_KEY")
        return {
            "Authorization": f"Bearer {key}",
            "HTTP-Referer": providers.openrouter_referer,
            "X-Title": providers.openrouter_title,
        }
