"""Cached access tokens with single-flight refresh."""

import asyncio
from datetime import timedelta

import structlog

from claudish.core.errors import AuthenticationError, GatewayError

from .models import AuthCredential
from .sources import TokenSource


logger = structlog.get_logger(__name__)


class AuthManager:
    """Owns one credential domain's access token.

    Concurrent callers that find no valid token await the same refresh
    task, so the identity provider sees one refresh however many streams
    start at once. The task is shielded: a caller that is cancelled while
    waiting does not cancel the refresh for the others.
    """

    def __init__(
        self,
        name: str,
        source: TokenSource,
        *,
        refresh_margin: timedelta = timedelta(minutes=5),
    ) -> None:
        self.name = name
        self.source = source
        self.refresh_margin = refresh_margin
        self._credential: AuthCredential | None = None
        self._refresh_task: asyncio.Task[AuthCredential] | None = None
        self.refresh_count = 0

    @property
    def refreshing(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    async def get_credential(self) -> AuthCredential:
        """Cached credential if still valid, otherwise a refreshed one."""
        credential = self._credential
        if credential is not None and not credential.is_expired(self.refresh_margin):
            return credential
        return await self._refresh()

    async def get_access_token(self) -> str:
        credential = await self.get_credential()
        return credential.access_token.get_secret_value()

    async def refresh_token(self) -> None:
        """Discard the cached token and fetch a new one.

        Joins a refresh that is already in flight instead of starting
        another.
        """
        if not self.refreshing:
            self._credential = None
        await self._refresh()

    def invalidate(self) -> None:
        self._credential = None

    async def _refresh(self) -> AuthCredential:
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.create_task(
                self._do_refresh(), name=f"auth-refresh-{self.name}"
            )
        return await asyncio.shield(self._refresh_task)

    async def _do_refresh(self) -> AuthCredential:
        self.refresh_count += 1
        logger.debug("auth_refresh_started", provider=self.name)
        try:
            credential = await self.source.fetch()
        except GatewayError:
            raise
        except Exception as e:
            logger.error("auth_refresh_failed", provider=self.name, error=str(e), exc_info=e)
            raise AuthenticationError(
                f"{self.name} auth refresh failed: {e}", provider=self.name
            ) from e
        self._credential = credential
        logger.info(
            "auth_refresh_completed",
            provider=self.name,
            expires_at=credential.expires_at.isoformat() if credential.expires_at else None,
        )
        return credential
