"""Exception hierarchy for the gateway.

Only :mod:`claudish.api` turns these into client-facing error payloads.
"""

from typing import Any


class GatewayError(Exception):
    """Base exception for gateway errors."""

    def __init__(
        self,
        message: str,
        error_type: str = "api_error",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        self.details = details or {}


class AuthenticationError(GatewayError):
    """Authentication error (401)."""

    def __init__(
        self, message: str = "Authentication failed", provider: str | None = None
    ) -> None:
        super().__init__(
            message=message,
            error_type="authentication_error",
            status_code=401,
            details={"provider": provider} if provider else None,
        )
        self.provider = provider


class UpstreamError(GatewayError):
    """Non-2xx response from a provider, surfaced with its status and body."""

    def __init__(self, provider: str, status_code: int, body: str) -> None:
        super().__init__(
            message=f"{provider} API error {status_code}: {body}",
            error_type="api_error",
            status_code=status_code,
            details={"provider": provider, "body": body},
        )
        self.provider = provider
        self.body = body


class TransportConfigurationError(GatewayError):
    """Missing or invalid provider configuration (API key, project, endpoint)."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(
            message=f"{provider}: {message}",
            error_type="configuration_error",
            status_code=500,
            details={"provider": provider},
        )
        self.provider = provider


class ProviderConnectionError(GatewayError):
    """Provider unreachable or auth refresh failed before the call (503)."""

    def __init__(self, message: str, provider: str | None = None) -> None:
        super().__init__(
            message=message,
            error_type="connection_error",
            status_code=503,
            details={"provider": provider} if provider else None,
        )
        self.provider = provider


class QueueTimeoutError(GatewayError):
    """Request waited too long for a queue slot or for upstream bytes (504)."""

    def __init__(self, queue_name: str, timeout: float) -> None:
        super().__init__(
            message=f"Timed out after {timeout:.1f}s waiting for {queue_name}",
            error_type="timeout_error",
            status_code=504,
            details={"queue": queue_name, "timeout": timeout},
        )


class RouteNotFoundError(GatewayError):
    """Model identifier could not be mapped to a provider (400)."""

    def __init__(self, model: str, reason: str | None = None) -> None:
        message = f"No provider route for model '{model}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message=message, error_type="invalid_request_error", status_code=400
        )
        self.model = model


class UpstreamTimeoutError(GatewayError):
    """Provider did not answer within the transport's timeout (504)."""

    def __init__(self, provider: str, timeout: float | None = None) -> None:
        suffix = f" after {timeout:.0f}s" if timeout else ""
        super().__init__(
            message=f"{provider} request timed out{suffix}",
            error_type="timeout_error",
            status_code=504,
            details={"provider": provider},
        )
        self.provider = provider
