from .settings import (
    HTTPSettings,
    LoggingSettings,
    ProviderSettings,
    QueueSettings,
    ServerSettings,
    Settings,
    TranslationSettings,
)


__all__ = [
    "HTTPSettings",
    "LoggingSettings",
    "ProviderSettings",
    "QueueSettings",
    "ServerSettings",
    "Settings",
    "TranslationSettings",
]
