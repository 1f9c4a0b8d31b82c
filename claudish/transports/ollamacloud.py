from claudish.config.constants import OLLAMA_CLOUD_API_URL
from claudish.config.settings import Settings
from claudish.streaming.base import StreamFormat

from .base import ProviderTransport


class OllamaCloudTransport(ProviderTransport):
    """Ollama's hosted native chat API, streamed as JSON lines."""

    name = "ollamacloud"
    display_name = "OllamaCloud"
    stream_format = StreamFormat.OLLAMA_JSONL

    def __init__(self, model_id: str, *, settings: Settings) -> None:
        super().__init__(model_id, settings=settings)
        self.api_key = settings.providers.ollama_cloud_api_key

    def get_endpoint(self) -> str:
        return OLLAMA_CLOUD_API_URL

    def get_headers(self) -> dict[str, str]:
        key = self._require_key(self.api_key, "PROVIDERS__OLLAMA_CLOUD_API_KEY")
        return {"Authorization": f"Bearer {key}"}
