"""Vertex AI with OAuth: Google, Anthropic and partner publishers."""

from dataclasses import dataclass
from typing import Any

from claudish.auth import AuthManager
from claudish.config.constants import VERTEX_ANTHROPIC_VERSION, VERTEX_API_VERSION
from claudish.config.settings import Settings
from claudish.core.errors import TransportConfigurationError
from claudish.streaming.base import StreamFormat

from .base import OAuthTransport


@dataclass(frozen=True)
class VertexModel:
    publisher: str
    model: str

    @property
    def openapi_model_id(self) -> str:
        """Model id expected by the OpenAI-compatible endpoint."""
        if self.publisher == "mistralai":
            return self.model
        return f"{self.publisher}/{self.model}"


def parse_vertex_model(model_id: str) -> VertexModel:
    """Split ``publisher/model``; a bare name is a Google model."""
    publisher, sep, model = model_id.partition("/")
    if not sep:
        return VertexModel(publisher="google", model=model_id)
    return VertexModel(publisher=publisher, model=model)


_STREAM_FORMATS = {
    "google": StreamFormat.GEMINI_SSE,
    "anthropic": StreamFormat.ANTHROPIC_SSE,
}


class VertexOAuthTransport(OAuthTransport):
    name = "vertex"
    display_name = "Vertex AI"

    def __init__(
        self,
        model_id: str,
        *,
        settings: Settings,
        auth: AuthManager,
    ) -> None:
        super().__init__(model_id, settings=settings, auth=auth)
        providers = settings.providers
        if not providers.vertex_project:
            raise TransportConfigurationError(
                self.name, "project not configured (set PROVIDERS__VERTEX_PROJECT)"
            )
        self.project = providers.vertex_project
        self.location = providers.vertex_location
        self.parsed = parse_vertex_model(model_id)
        self.stream_format = _STREAM_FORMATS.get(
            self.parsed.publisher, StreamFormat.OPENAI_SSE
        )

    @property
    def host(self) -> str:
        if self.location == "global":
            return "https://aiplatform.googleapis.com"
        return f"https://{self.location}-aiplatform.googleapis.com"

    def get_endpoint(self) -> str:
        base = (
            f"{self.host}/{VERTEX_API_VERSION}/projects/{self.project}"
            f"/locations/{self.location}"
        )
        publisher, model = self.parsed.publisher, self.parsed.model
        if publisher == "google":
            return (
                f"{base}/publishers/google/models/{model}"
                ":streamGenerateContent?alt=sse"
            )
        if publisher == "anthropic":
            return f"{base}/publishers/anthropic/models/{model}:streamRawPredict"
        return f"{base}/endpoints/openapi/chat/completions"

    def transform_payload(self, payload: dict[str, Any]) -> dict[str, Any]:
        if self.parsed.publisher == "anthropic":
            payload = {k: v for k, v in payload.items() if k != "model"}
            payload["anthropic_version"] = VERTEX_ANTHROPIC_VERSION
        return payload
