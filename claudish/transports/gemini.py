"""Transports for Google's Gemini API and the Code Assist backend."""

import uuid
from typing import Any

from pydantic import SecretStr

from claudish.auth import AuthManager
from claudish.config.constants import CODE_ASSIST_STREAM_URL
from claudish.config.settings import Settings
from claudish.core.errors import AuthenticationError
from claudish.models.payloads import CodeAssistEnvelope
from claudish.services.request_queue import RequestQueue
from claudish.streaming.base import StreamFormat

from .base import OAuthTransport, ProviderTransport


class GeminiApiKeyTransport(ProviderTransport):
    """Generative Language API with an API key.

    Also serves Vertex express mode, which accepts the same request on the
    same endpoint with a Vertex key.
    """

    name = "gemini"
    display_name = "Gemini API"
    stream_format = StreamFormat.GEMINI_SSE

    def __init__(
        self,
        model_id: str,
        *,
        settings: Settings,
        queue: RequestQueue | None = None,
        api_key: SecretStr | None = None,
        key_env_var: str = "PROVIDERS__GEMINI_API_KEY",
    ) -> None:
        super().__init__(model_id, settings=settings, queue=queue)
        self.api_key = api_key if api_key is not None else settings.providers.gemini_api_key
        self.key_env_var = key_env_var
        self.base_url = settings.providers.gemini_base_url.rstrip("/")

    def get_endpoint(self) -> str:
        return (
            f"{self.base_url}/v1beta/models/{self.model_id}"
            ":streamGenerateContent?alt=sse"
        )

    def get_headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self._require_key(self.api_key, self.key_env_var)}


class GeminiCodeAssistTransport(OAuthTransport):
    """Gemini through the Code Assist backend (OAuth, free tier).

    The Gemini request is wrapped in an envelope naming the model and the
    Code Assist project bound to the token; responses come back wrapped in
    ``{"response": ...}``.
    """

    name = "gemini-codeassist"
    display_name = "Gemini Free"
    stream_format = StreamFormat.GEMINI_SSE

    def __init__(
        self,
        model_id: str,
        *,
        settings: Settings,
        auth: AuthManager,
        queue: RequestQueue | None = None,
    ) -> None:
        super().__init__(model_id, settings=settings, auth=auth, queue=queue)

    def get_endpoint(self) -> str:
        return CODE_ASSIST_STREAM_URL

    def transform_payload(self, payload: dict[str, Any]) -> dict[str, Any]:
        project = self._credential.project_id if self._credential else None
        if not project:
            raise AuthenticationError(
                "Code Assist project not resolved", provider=self.name
            )
        envelope = CodeAssistEnvelope(
            model=self.model_id,
            project=project,
            user_prompt_id=str(uuid.uuid4()),
            request=payload,
        )
        return envelope.to_wire()

    def parser_options(self) -> dict[str, Any]:
        return {"unwrap_response": True}
