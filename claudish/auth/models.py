"""Credential models."""

from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class AuthCredential(BaseModel):
    """An access token and its expiry."""

    model_config = ConfigDict(frozen=True)

    access_token: SecretStr
    expires_at: datetime | None = Field(
        default=None, description="UTC expiry; None means valid until rejected"
    )
    project_id: str | None = Field(
        default=None, description="Project bound to the token (Code Assist)"
    )

    def is_expired(self, margin: timedelta = timedelta(0)) -> bool:
        if self.expires_at is None:
            return False
        return datetime.now(UTC) + margin >= self.expires_at

    @classmethod
    def from_token_response(
        cls, data: dict[str, object], project_id: str | None = None
    ) -> "AuthCredential":
        """Build from an OAuth token endpoint response body."""
        expires_at = None
        expires_in = data.get("expires_in")
        if isinstance(expires_in, int | float):
            expires_at = datetime.now(UTC) + timedelta(seconds=float(expires_in))
        return cls(
            access_token=SecretStr(str(data["access_token"])),
            expires_at=expires_at,
            project_id=project_id,
        )
