"""Token sources: where an :class:`AuthManager` gets fresh credentials.

Sources perform exactly one upstream fetch per call; caching and
de-duplication of concurrent refreshes belong to the manager.
"""

from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

import httpx
import structlog
from pydantic import SecretStr

from claudish.config.constants import CODE_ASSIST_LOAD_URL, GOOGLE_TOKEN_URL
from claudish.core.errors import AuthenticationError

from .models import AuthCredential


logger = structlog.get_logger(__name__)


class TokenSource(Protocol):
    async def fetch(self) -> AuthCredential: ...


class StaticTokenSource:
    """Returns a pre-issued token (service tokens, tests)."""

    def __init__(self, token: str, ttl: timedelta | None = None) -> None:
        self.token = token
        self.ttl = ttl
        self.fetch_count = 0

    async def fetch(self) -> AuthCredential:
        self.fetch_count += 1
        expires_at = datetime.now(UTC) + self.ttl if self.ttl else None
        return AuthCredential(access_token=SecretStr(self.token), expires_at=expires_at)


class OAuthRefreshTokenSource:
    """OAuth 2.0 ``refresh_token`` grant against Google's token endpoint."""

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: SecretStr | None,
        refresh_token: SecretStr,
        http_client: httpx.AsyncClient,
        token_url: str = GOOGLE_TOKEN_URL,
        provider: str = "google",
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.http_client = http_client
        self.token_url = token_url
        self.provider = provider

    async def fetch(self) -> AuthCredential:
        data = {
            "grant_type": "refresh_token",
            "refresh_token": self.refresh_token.get_secret_value(),
            "client_id": self.client_id,
        }
        if self.client_secret is not None:
            data["client_secret"] = self.client_secret.get_secret_value()

        try:
            response = await self.http_client.post(self.token_url, data=data, timeout=30.0)
        except httpx.HTTPError as e:
            logger.error(
                "oauth_refresh_request_failed",
                provider=self.provider,
                error=str(e),
                exc_info=e,
            )
            raise AuthenticationError(
                f"{self.provider} token refresh failed: {e}", provider=self.provider
            ) from e

        if response.status_code != 200:
            logger.error(
                "oauth_refresh_rejected",
                provider=self.provider,
                status_code=response.status_code,
                body=response.text[:200],
            )
            raise AuthenticationError(
                f"{self.provider} token refresh failed with status "
                f"{response.status_code}",
                provider=self.provider,
            )

        body = response.json()
        if "access_token" not in body:
            raise AuthenticationError(
                f"{self.provider} token response missing access_token",
                provider=self.provider,
            )
        logger.info(
            "oauth_token_refreshed",
            provider=self.provider,
            expires_in=body.get("expires_in"),
        )
        return AuthCredential.from_token_response(body)


class CodeAssistTokenSource:
    """OAuth token plus the Code Assist project the token is bound to.

    The project comes from configuration when set, otherwise from
    ``v1internal:loadCodeAssist`` (resolved once, then reused).
    """

    def __init__(
        self,
        token_source: TokenSource,
        http_client: httpx.AsyncClient,
        project_id: str | None = None,
        load_url: str = CODE_ASSIST_LOAD_URL,
    ) -> None:
        self.token_source = token_source
        self.http_client = http_client
        self.project_id = project_id
        self.load_url = load_url

    async def fetch(self) -> AuthCredential:
        credential = await self.token_source.fetch()
        if self.project_id is None:
            self.project_id = await self._load_project(credential)
        return credential.model_copy(update={"project_id": self.project_id})

    async def _load_project(self, credential: AuthCredential) -> str:
        payload: dict[str, Any] = {
            "metadata": {
                "ideType": "IDE_UNSPECIFIED",
                "platform": "PLATFORM_UNSPECIFIED",
                "pluginType": "GEMINI",
            }
        }
        headers = {
            "Authorization": f"Bearer {credential.access_token.get_secret_value()}",
            "Content-Type": "application/json",
        }
        try:
            response = await self.http_client.post(
                self.load_url, json=payload, headers=headers, timeout=30.0
            )
        except httpx.HTTPError as e:
            raise AuthenticationError(
                f"Code Assist project lookup failed: {e}", provider="gemini-codeassist"
            ) from e

        if response.status_code != 200:
            raise AuthenticationError(
                f"Code Assist project lookup failed with status {response.status_code}",
                provider="gemini-codeassist",
            )

        project = response.json().get("cloudaicompanionProject")
        if isinstance(project, dict):
            project = project.get("id")
        if not isinstance(project, str) or not project:
            raise AuthenticationError(
                "Code Assist account has no project; set PROVIDERS__GOOGLE_CLOUD_PROJECT",
                provider="gemini-codeassist",
            )
        logger.info("code_assist_project_resolved", project=project)
        return project
