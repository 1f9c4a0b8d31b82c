from .manager import AuthManager
from .models import AuthCredential
from .sources import (
    CodeAssistTokenSource,
    OAuthRefreshTokenSource,
    StaticTokenSource,
    TokenSource,
)


__all__ = [
    "AuthCredential",
    "AuthManager",
    "CodeAssistTokenSource",
    "OAuthRefreshTokenSource",
    "StaticTokenSource",
    "TokenSource",
]
