"""Transport for OpenAI-compatible model servers on the local machine."""

import re
from typing import Any

import httpx
import structlog

from claudish.config.settings import Settings
from claudish.core.errors import ProviderConnectionError, TransportConfigurationError
from claudish.services.request_queue import RequestQueue

from .base import ProviderTransport, RequestOptions


logger = structlog.get_logger(__name__)

DEFAULT_CONTEXT_WINDOW = 32768
HEALTH_CHECK_TIMEOUT = 5.0
MODEL_INFO_TIMEOUT = 3.0

DISPLAY_NAMES = {
    "ollama": "Ollama",
    "lmstudio": "LM Studio",
    "vllm": "vLLM",
    "mlx": "MLX",
}

_CONNECTION_HINTS = {
    "ollama": "Make sure Ollama is running with: ollama serve",
    "lmstudio": "Make sure LM Studio server is running.",
    "vllm": "Make sure vLLM server is running.",
}

_NUM_CTX = re.compile(r"num_ctx\s+(\d+)")


class LocalTransport(ProviderTransport):
    """Ollama, LM Studio, vLLM and MLX servers.

    Local servers run one model at a time, so calls go through a
    single-slot queue and get a long timeout. The first call checks the
    server is up and asks it for the model's context window.
    """

    def __init__(
        self,
        model_id: str,
        *,
        settings: Settings,
        provider: str,
        http_client: httpx.AsyncClient,
        queue: RequestQueue | None = None,
        base_url: str | None = None,
    ) -> None:
        super().__init__(model_id, settings=settings, queue=queue)
        providers = settings.providers
        base_url = base_url or providers.local_base_urls.get(provider)
        if not base_url:
            raise TransportConfigurationError(provider, "no base URL configured")
        self.name = provider
        self.display_name = DISPLAY_NAMES.get(provider, "Local")
        self.base_url = base_url.rstrip("/")
        self.api_key = providers.local_api_key
        self.http_client = http_client
        self._fixed_context_window = providers.local_context_window
        self._context_window = self._fixed_context_window or DEFAULT_CONTEXT_WINDOW
        self._healthy = False

    def get_endpoint(self) -> str:
        return f"{self.base_url}/v1/chat/completions"

    def get_headers(self) -> dict[str, str]:
        if self.api_key is not None and self.api_key.get_secret_value():
            return {"Authorization": f"Bearer {self.api_key.get_secret_value()}"}
        return {}

    def get_request_options(self) -> RequestOptions:
        return RequestOptions(timeout=self.settings.http.local_request_timeout)

    def get_extra_payload_fields(self) -> dict[str, Any]:
        if self.name == "ollama":
            # Ollama otherwise truncates prompts at its small default context
            return {"options": {"num_ctx": max(self._context_window, DEFAULT_CONTEXT_WINDOW)}}
        return {}

    def context_window(self) -> int:
        return self._context_window

    async def refresh_auth(self) -> None:
        """Health check and context detection until the first success.

        A failed check is not remembered, so the next request retries it.
        """
        if self._healthy:
            return
        if not await self.check_health():
            raise ProviderConnectionError(self._connection_error(), provider=self.name)
        await self.detect_context_window()

    async def check_health(self) -> bool:
        """Try ``/api/tags`` (Ollama) and then ``/v1/models``."""
        for path in ("/api/tags", "/v1/models"):
            url = f"{self.base_url}{path}"
            try:
                response = await self.http_client.get(url, timeout=HEALTH_CHECK_TIMEOUT)
            except httpx.HTTPError as e:
                logger.debug("local_health_check_failed", provider=self.name, url=url, error=str(e))
                continue
            if response.is_success:
                logger.info("local_health_check_passed", provider=self.name, url=url)
                self._healthy = True
                return True
            logger.debug(
                "local_health_check_rejected",
                provider=self.name,
                url=url,
                status_code=response.status_code,
            )

        self._healthy = False
        logger.warning("local_health_check_failed", provider=self.name, base_url=self.base_url)
        return False

    async def detect_context_window(self) -> int:
        """Ask the server for the model's context length.

        Keeps the default when the server does not report one, and never
        overrides an explicitly configured window.
        """
        if self._fixed_context_window:
            return self._context_window
        try:
            if self.name == "ollama":
                detected = await self._ollama_context_window()
            elif self.name == "lmstudio":
                detected = await self._lmstudio_context_window()
            else:
                detected = None
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("context_window_detection_failed", provider=self.name, error=str(e))
            detected = None

        if detected:
            self._context_window = detected
        logger.info(
            "local_context_window",
            provider=self.name,
            model=self.model_id,
            context_window=self._context_window,
            detected=bool(detected),
        )
        return self._context_window

    async def _ollama_context_window(self) -> int | None:
        response = await self.http_client.post(
            f"{self.base_url}/api/show",
            json={"name": self.model_id},
            timeout=MODEL_INFO_TIMEOUT,
        )
        if not response.is_success:
            return None
        data = response.json()
        model_info = data.get("model_info") or {}
        value = model_info.get("general.context_length")
        if value is None:
            for key, candidate in model_info.items():
                if key.endswith(".context_length"):
                    value = candidate
                    break
        if value is not None:
            return int(value)
        match = _NUM_CTX.search(data.get("parameters") or "")
        return int(match.group(1)) if match else None

    async def _lmstudio_context_window(self) -> int | None:
        response = await self.http_client.get(
            f"{self.base_url}/v1/models", timeout=MODEL_INFO_TIMEOUT
        )
        if not response.is_success:
            return None
        models = response.json().get("data") or []
        target = (
            next((m for m in models if m.get("id") == self.model_id), None)
            or next(
                (m for m in models if str(m.get("id", "")).endswith(f"/{self.model_id}")),
                None,
            )
            or next((m for m in models if m.get("id") and m["id"] in self.model_id), None)
        )
        if target is None:
            return None
        for key in ("context_length", "max_context_length", "context_window", "max_tokens"):
            value = target.get(key)
            if isinstance(value, int) and value > 0:
                return value
        return None

    def _connection_error(self) -> str:
        hint = _CONNECTION_HINTS.get(self.name, "Make sure the server is running.")
        return f"Cannot connect to {self.display_name} at {self.base_url}. {hint}"
